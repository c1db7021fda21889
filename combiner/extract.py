from __future__ import annotations

import logging
import posixpath
import re
import urllib.parse
from typing import Callable, Iterator, Optional, Union

from .archive import ArchiveHandle, open_archive
from .errors import CombineError, MissingEntryError
from .models import FONT, IMAGE, STYLE, Asset, BookBatch, BookMetadata, Chapter
from .opf import PackageDocument, read_package

DOCUMENT_MEDIA_TYPES = {"application/xhtml+xml", "text/html"}
STYLE_MEDIA_TYPE = "text/css"
FONT_MEDIA_TYPES = {
    "font/ttf",
    "font/otf",
    "font/woff",
    "font/woff2",
    "font/sfnt",
    "application/font-woff",
    "application/font-woff2",
    "application/font-sfnt",
    "application/vnd.ms-opentype",
    "application/x-font-ttf",
    "application/x-font-otf",
    "application/x-font-opentype",
    "application/x-font-truetype",
}

logger = logging.getLogger("combiner.extract")


def is_document_media_type(media_type: str) -> bool:
    return (media_type or "").strip().lower() in DOCUMENT_MEDIA_TYPES


def is_image_media_type(media_type: str) -> bool:
    return (media_type or "").strip().lower().startswith("image/")


def is_style_media_type(media_type: str) -> bool:
    return (media_type or "").strip().lower() == STYLE_MEDIA_TYPE


def is_font_media_type(media_type: str) -> bool:
    return (media_type or "").strip().lower() in FONT_MEDIA_TYPES


UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def _basename(href: str) -> str:
    return posixpath.basename(href.split("#", 1)[0].split("?", 1)[0])


def _output_name(href: str) -> str:
    # Output hrefs are used verbatim as zip member names and as URLs.
    return UNSAFE_NAME_CHARS.sub("_", urllib.parse.unquote(_basename(href)))


def _member_path(package: PackageDocument, href: str) -> str:
    return package.base_directory + href.split("#", 1)[0]


def extract_chapters(handle: ArchiveHandle, package: PackageDocument, book_index: int) -> list[Chapter]:
    chapters: list[Chapter] = []
    seen: set[str] = set()
    for idref in package.spine_order:
        entry = package.manifest_by_id.get(idref)
        if entry is None:
            logger.debug("book %d: spine idref %r not in manifest, skipped", book_index, idref)
            continue
        if not is_document_media_type(entry.media_type):
            continue
        chapter_id = f"chapter_{book_index}_{entry.item_id}"
        if chapter_id in seen:
            continue
        try:
            content = handle.require_text(_member_path(package, entry.href))
        except MissingEntryError as exc:
            logger.debug("%s, skipped", exc)
            continue
        seen.add(chapter_id)
        chapters.append(
            Chapter(
                id=chapter_id,
                href=f"Text/{chapter_id}.xhtml",
                content=content,
                original_href=entry.href,
                book_index=book_index,
            )
        )
    return chapters


def _extract_assets(
    handle: ArchiveHandle,
    package: PackageDocument,
    book_index: int,
    *,
    kind: str,
    prefix: str,
    folder: str,
    matches: Callable[[str], bool],
    as_text: bool = False,
) -> Iterator[Asset]:
    used: set[str] = set()
    for entry in package.manifest_by_id.values():
        if not matches(entry.media_type):
            continue
        member = _member_path(package, entry.href)
        content: Union[bytes, str]
        try:
            content = handle.require_text(member) if as_text else handle.require_binary(member)
        except MissingEntryError as exc:
            logger.debug("%s, skipped", exc)
            continue
        asset_id = f"{prefix}_{book_index}_{entry.item_id}"
        name = _output_name(entry.href)
        href = f"{folder}/{asset_id}_{name}"
        suffix = 1
        while href in used:
            suffix += 1
            href = f"{folder}/{asset_id}_{suffix}_{name}"
        used.add(href)
        yield Asset(
            id=asset_id,
            href=href,
            content=content,
            media_type=entry.media_type,
            original_href=entry.href,
            book_index=book_index,
            kind=kind,
        )


def extract_images(handle: ArchiveHandle, package: PackageDocument, book_index: int) -> list[Asset]:
    return list(
        _extract_assets(
            handle, package, book_index, kind=IMAGE, prefix="img", folder="Images", matches=is_image_media_type
        )
    )


def extract_styles(handle: ArchiveHandle, package: PackageDocument, book_index: int) -> list[Asset]:
    return list(
        _extract_assets(
            handle,
            package,
            book_index,
            kind=STYLE,
            prefix="style",
            folder="Styles",
            matches=is_style_media_type,
            as_text=True,
        )
    )


def extract_fonts(handle: ArchiveHandle, package: PackageDocument, book_index: int) -> list[Asset]:
    return list(
        _extract_assets(
            handle, package, book_index, kind=FONT, prefix="font", folder="Fonts", matches=is_font_media_type
        )
    )


def extract_book(handle: ArchiveHandle, package: PackageDocument, book_index: int) -> BookBatch:
    source = package.source_book(book_index)
    batch = BookBatch(
        book_index=book_index,
        metadata=BookMetadata(title=source.title, author=source.author, book_index=book_index),
        source_title=package.title,
        source_author=package.author,
        language=package.language,
        chapters=tuple(extract_chapters(handle, package, book_index)),
        images=tuple(extract_images(handle, package, book_index)),
        styles=tuple(extract_styles(handle, package, book_index)),
        fonts=tuple(extract_fonts(handle, package, book_index)),
    )
    logger.debug(
        "book %d (%s): %d chapters, %d images, %d styles, %d fonts",
        book_index,
        source.title,
        len(batch.chapters),
        len(batch.images),
        len(batch.styles),
        len(batch.fonts),
    )
    return batch


def load_book(data: bytes, book_index: int) -> BookBatch:
    """Open one source archive and extract everything the merge needs from it."""
    handle: Optional[ArchiveHandle] = None
    try:
        handle = open_archive(data, book_index=book_index)
        package = read_package(handle, book_index)
        return extract_book(handle, package, book_index)
    except CombineError as exc:
        raise exc.for_book(book_index)
    finally:
        if handle is not None:
            handle.close()

