from __future__ import annotations

from typing import Optional


class CombineError(Exception):
    """Base class for every failure raised by the merge pipeline."""

    reason = "combine failed"

    def __init__(
        self,
        detail: str = "",
        *,
        book_index: Optional[int] = None,
        document: Optional[str] = None,
    ) -> None:
        self.detail = detail
        self.book_index = book_index
        self.document = document
        super().__init__(self._compose())

    def _compose(self) -> str:
        parts: list[str] = []
        if self.book_index is not None:
            parts.append(f"book {self.book_index}: ")
        parts.append(self.reason)
        if self.document:
            parts.append(f" {self.document}")
        if self.detail:
            parts.append(f": {self.detail}")
        return "".join(parts)

    def for_book(self, book_index: int) -> "CombineError":
        if self.book_index is None:
            self.book_index = book_index
            self.args = (self._compose(),)
        return self

    def __str__(self) -> str:
        return self._compose()


class MalformedArchiveError(CombineError):
    reason = "malformed archive"


class InvalidContainerError(CombineError):
    reason = "invalid container document"


class InvalidPackageDocumentError(CombineError):
    reason = "invalid package document"


class MissingEntryError(CombineError):
    reason = "missing archive entry"


class ArchiveWriteError(CombineError):
    reason = "failed to write archive"
