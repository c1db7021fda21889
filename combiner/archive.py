from __future__ import annotations

import io
import logging
import posixpath
import urllib.parse
import zipfile
import zlib
from typing import Iterable, Optional

from .errors import ArchiveWriteError, MalformedArchiveError, MissingEntryError
from .models import OutputFile

EPUB_MIMETYPE = b"application/epub+zip"

logger = logging.getLogger("combiner.archive")


def canonical_member(name: str) -> str:
    normalized = posixpath.normpath((name or "").replace("\\", "/")).lstrip("/")
    while normalized.startswith("../"):
        normalized = normalized[3:]
    return "" if normalized in {"", ".", ".."} else normalized


def _lookup_keys(path: str) -> list[str]:
    canonical = canonical_member(path)
    if not canonical:
        return []
    keys = [canonical]
    decoded = canonical_member(urllib.parse.unquote(canonical))
    if decoded and decoded not in keys:
        keys.append(decoded)
    return keys


class ArchiveHandle:
    """Read access to the members of one in-memory ZIP archive."""

    def __init__(self, zf: zipfile.ZipFile, book_index: Optional[int] = None) -> None:
        self._zf = zf
        self.book_index = book_index
        self._index: dict[str, str] = {}
        for info in zf.infolist():
            if info.is_dir():
                continue
            canonical = canonical_member(info.filename)
            if canonical and canonical not in self._index:
                self._index[canonical] = info.filename

    def names(self) -> list[str]:
        return list(self._index)

    def contains(self, path: str) -> bool:
        return self._locate(path) is not None

    def _locate(self, path: str) -> Optional[str]:
        for key in _lookup_keys(path):
            actual = self._index.get(key)
            if actual is not None:
                return actual
        return None

    def read_binary(self, path: str) -> Optional[bytes]:
        actual = self._locate(path)
        if actual is None:
            return None
        try:
            return self._zf.read(actual)
        except (
            zipfile.BadZipFile,
            zipfile.LargeZipFile,
            zlib.error,
            EOFError,
            NotImplementedError,
            RuntimeError,
            OSError,
        ) as exc:
            raise MalformedArchiveError(str(exc), book_index=self.book_index, document=path) from exc

    def read_text(self, path: str) -> Optional[str]:
        payload = self.read_binary(path)
        if payload is None:
            return None
        try:
            return payload.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            logger.debug(
                "book %s: %s is not valid UTF-8 (%s), undecodable bytes replaced",
                self.book_index,
                path,
                exc.reason,
            )
            return payload.decode("utf-8-sig", errors="replace")

    def require_binary(self, path: str) -> bytes:
        payload = self.read_binary(path)
        if payload is None:
            raise MissingEntryError(book_index=self.book_index, document=path)
        return payload

    def require_text(self, path: str) -> str:
        text = self.read_text(path)
        if text is None:
            raise MissingEntryError(book_index=self.book_index, document=path)
        return text

    def close(self) -> None:
        self._zf.close()

    def __enter__(self) -> "ArchiveHandle":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def open_archive(data: bytes, book_index: Optional[int] = None) -> ArchiveHandle:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise MalformedArchiveError("expected a byte buffer", book_index=book_index)
    try:
        zf = zipfile.ZipFile(io.BytesIO(bytes(data)), "r")
    except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError, OSError) as exc:
        raise MalformedArchiveError(str(exc) or "not a zip file", book_index=book_index) from exc
    return ArchiveHandle(zf, book_index=book_index)


def write_archive(files: Iterable[OutputFile]) -> bytes:
    buffer = io.BytesIO()
    written: set[str] = set()
    try:
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
            # EPUB readers sniff the format from an uncompressed first entry.
            zf.writestr("mimetype", EPUB_MIMETYPE, compress_type=zipfile.ZIP_STORED)
            written.add("mimetype")
            for item in files:
                if item.path in written:
                    raise ArchiveWriteError("duplicate member", document=item.path)
                compress_type = zipfile.ZIP_DEFLATED if item.compress else zipfile.ZIP_STORED
                zf.writestr(item.path, item.data, compress_type=compress_type)
                written.add(item.path)
    except ArchiveWriteError:
        raise
    except (OSError, ValueError, zipfile.LargeZipFile) as exc:
        raise ArchiveWriteError(str(exc)) from exc
    logger.debug("wrote archive with %d members", len(written))
    return buffer.getvalue()
