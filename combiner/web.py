from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, File, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .env import host, max_file_size, max_files, output_filename, port
from .errors import CombineError
from .merge import combine_epubs_async

APP_NAME = "EPUB Combiner API"
APP_VERSION = "1.0.0"
EPUB_CONTENT_TYPE = "application/epub+zip"
MIN_FILES = 2
UPLOAD_CHUNK_SIZE = 1024 * 1024

app = FastAPI(title=APP_NAME, version=APP_VERSION)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
    allow_credentials=False,
)

logger = logging.getLogger("combiner.web")


class UploadRejected(Exception):
    def __init__(self, error: str, message: str) -> None:
        super().__init__(message)
        self.error = error
        self.message = message


def _size_mb(size: int) -> str:
    value = size / (1024 * 1024)
    return f"{value:g}MB"


def _error_response(status_code: int, error: str, message: str, **extra: object) -> JSONResponse:
    return JSONResponse({"error": error, "message": message, **extra}, status_code=status_code)


def _is_epub_upload(upload: UploadFile) -> bool:
    content_type = (upload.content_type or "").split(";", 1)[0].strip().lower()
    filename = (upload.filename or "").strip().lower()
    return content_type == EPUB_CONTENT_TYPE or filename.endswith(".epub")


async def _read_upload(upload: UploadFile, limit: int) -> bytes:
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await upload.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        total += len(chunk)
        if total > limit:
            raise UploadRejected("File too large", f"File size must be less than {_size_mb(limit)}")
        chunks.append(chunk)
    return b"".join(chunks)


async def read_epub_uploads(files: list[UploadFile]) -> list[bytes]:
    """Validate the uploaded files and return their payloads in upload order."""
    limit_files = max_files()
    if not files:
        raise UploadRejected("No files uploaded", "Please upload at least one EPUB file")
    if len(files) < MIN_FILES:
        raise UploadRejected("Insufficient files", f"Please upload at least {MIN_FILES} EPUB files to combine")
    if len(files) > limit_files:
        raise UploadRejected("Too many files", f"Maximum {limit_files} files allowed")
    for upload in files:
        if not _is_epub_upload(upload):
            raise UploadRejected("Invalid file type", "Only EPUB files are allowed")

    limit_size = max_file_size()
    payloads: list[bytes] = []
    for upload in files:
        payloads.append(await _read_upload(upload, limit_size))
    return payloads


@app.get("/")
async def index() -> dict[str, object]:
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "description": "Combine multiple EPUB files into a single EPUB with automatic Table of Contents",
        "endpoints": {
            "GET /": "This endpoint - API information",
            "GET /health": "Health check",
            "GET /config": "API configuration",
            "POST /combine-epubs": "Combine multiple EPUB files",
        },
        "usage": 'POST /combine-epubs with multipart/form-data containing "epubs" files',
    }


@app.get("/health")
async def health() -> dict[str, object]:
    return {
        "status": "ok",
        "message": f"{APP_NAME} is running",
        "config": {
            "maxFiles": max_files(),
            "maxFileSize": _size_mb(max_file_size()),
        },
    }


@app.get("/config")
async def config() -> dict[str, object]:
    size = max_file_size()
    return {
        "maxFiles": max_files(),
        "maxFileSize": size,
        "maxFileSizeMB": size / (1024 * 1024),
        "port": port(),
    }


@app.post("/combine-epubs")
async def combine(epubs: Optional[list[UploadFile]] = File(None)) -> Response:
    try:
        payloads = await read_epub_uploads(epubs or [])
    except UploadRejected as exc:
        return _error_response(400, exc.error, exc.message)

    logger.info("processing %d EPUB files", len(payloads))
    try:
        combined = await combine_epubs_async(payloads)
    except CombineError as exc:
        logger.warning("failed to combine EPUB files: %s", exc)
        return _error_response(
            500,
            "Internal server error",
            "Failed to combine EPUB files",
            kind=type(exc).__name__,
            book=exc.book_index,
            details=str(exc),
        )

    filename = output_filename()
    logger.info("combined %d EPUB files into %s", len(payloads), filename)
    return Response(
        content=combined,
        media_type=EPUB_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return _error_response(404, "Not found", "The requested endpoint does not exist")
    return _error_response(exc.status_code, "Request failed", str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error on %s", request.url.path)
    return _error_response(500, "Internal server error", str(exc))


def main() -> None:
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logger.info("maximum files per request: %d", max_files())
    logger.info("maximum file size: %s", _size_mb(max_file_size()))
    uvicorn.run(app, host=host(), port=port())


if __name__ == "__main__":
    main()
