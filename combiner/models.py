from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

IMAGE = "image"
STYLE = "style"
FONT = "font"


@dataclass(frozen=True)
class ManifestEntry:
    item_id: str
    href: str
    media_type: str


@dataclass(frozen=True)
class SourceBook:
    index: int
    base_directory: str
    title: str
    author: str


@dataclass
class Chapter:
    id: str
    href: str
    content: str
    original_href: str
    book_index: int

    def __setattr__(self, name: str, value: object) -> None:
        # The origin tag is fixed once the record exists.
        if name == "book_index" and "book_index" in self.__dict__:
            raise AttributeError("book_index is immutable")
        super().__setattr__(name, value)


@dataclass(frozen=True)
class Asset:
    id: str
    href: str
    content: Union[bytes, str]
    media_type: str
    original_href: str
    book_index: int
    kind: str = IMAGE

    def with_content(self, content: Union[bytes, str]) -> "Asset":
        return Asset(
            id=self.id,
            href=self.href,
            content=content,
            media_type=self.media_type,
            original_href=self.original_href,
            book_index=self.book_index,
            kind=self.kind,
        )


@dataclass(frozen=True)
class BookMetadata:
    title: str
    author: str
    book_index: int


@dataclass(frozen=True)
class CombinedMetadata:
    title: str
    author: str
    language: str
    identifier: str


@dataclass(frozen=True)
class BookBatch:
    """Everything extracted from one source archive, tagged with its index."""

    book_index: int
    metadata: BookMetadata
    source_title: Optional[str] = None
    source_author: Optional[str] = None
    language: Optional[str] = None
    chapters: tuple[Chapter, ...] = ()
    images: tuple[Asset, ...] = ()
    styles: tuple[Asset, ...] = ()
    fonts: tuple[Asset, ...] = ()


@dataclass
class MergeState:
    chapters: list[Chapter] = field(default_factory=list)
    images: list[Asset] = field(default_factory=list)
    styles: list[Asset] = field(default_factory=list)
    fonts: list[Asset] = field(default_factory=list)
    books: list[BookMetadata] = field(default_factory=list)
    first: Optional[BookBatch] = None

    @property
    def assets(self) -> list[Asset]:
        return [*self.images, *self.styles, *self.fonts]


@dataclass(frozen=True)
class TocPage:
    id: str
    href: str
    content: str
    media_type: str = "application/xhtml+xml"


@dataclass(frozen=True)
class OutputFile:
    path: str
    data: bytes
    compress: bool = True
