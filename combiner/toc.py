from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import Iterable

from .models import BookMetadata, Chapter, TocPage
from .render import render_epub_template

TOC_PAGE_ID = "toc-page"
TOC_PAGE_HREF = "Text/toc.xhtml"
TOC_HEADING = "Table of Contents"


@dataclass(frozen=True)
class TocEntry:
    number: int
    title: str
    author: str
    href: str


def first_chapters(chapters: Iterable[Chapter]) -> dict[int, Chapter]:
    firsts: dict[int, Chapter] = {}
    for chapter in chapters:
        firsts.setdefault(chapter.book_index, chapter)
    return firsts


def toc_entries(books: Iterable[BookMetadata], chapters: Iterable[Chapter]) -> list[TocEntry]:
    firsts = first_chapters(chapters)
    toc_dir = posixpath.dirname(TOC_PAGE_HREF)
    entries: list[TocEntry] = []
    for book in books:
        chapter = firsts.get(book.book_index)
        if chapter is None:
            continue
        entries.append(
            TocEntry(
                number=book.book_index + 1,
                title=book.title,
                author=book.author,
                href=posixpath.relpath(chapter.href, start=toc_dir),
            )
        )
    return entries


def build_toc_page(books: Iterable[BookMetadata], chapters: Iterable[Chapter], lang: str = "en") -> TocPage:
    """Render the synthetic first page linking to the opening chapter of each book."""
    content = render_epub_template(
        "toc.xhtml.j2",
        lang=lang,
        heading=TOC_HEADING,
        entries=toc_entries(books, chapters),
    )
    return TocPage(id=TOC_PAGE_ID, href=TOC_PAGE_HREF, content=content)
