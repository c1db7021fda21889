from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Callable, Iterable, Optional, Sequence

from .archive import write_archive
from .assemble import assemble
from .extract import load_book
from .models import BookBatch, CombinedMetadata, MergeState
from .opf import DEFAULT_LANGUAGE
from .rewrite import rewrite_references
from .toc import build_toc_page

DEFAULT_TITLE = "Combined EPUB"
DEFAULT_AUTHOR = "Multiple Authors"

IdFactory = Callable[[], str]

logger = logging.getLogger("combiner.merge")


def new_identifier() -> str:
    return f"urn:uuid:{uuid.uuid4()}"


def accumulate(batches: Iterable[BookBatch]) -> MergeState:
    """Fold per-book batches into one working set, ordered by input index."""
    state = MergeState()
    for batch in sorted(batches, key=lambda item: item.book_index):
        if state.first is None:
            state.first = batch
        state.books.append(batch.metadata)
        state.chapters.extend(batch.chapters)
        state.images.extend(batch.images)
        state.styles.extend(batch.styles)
        state.fonts.extend(batch.fonts)
    return state


def combined_metadata(state: MergeState, id_factory: Optional[IdFactory] = None) -> CombinedMetadata:
    first = state.first
    return CombinedMetadata(
        title=(first.source_title if first else None) or DEFAULT_TITLE,
        author=(first.source_author if first else None) or DEFAULT_AUTHOR,
        language=(first.language if first else None) or DEFAULT_LANGUAGE,
        identifier=(id_factory or new_identifier)(),
    )


def build_combined(state: MergeState, id_factory: Optional[IdFactory] = None) -> bytes:
    metadata = combined_metadata(state, id_factory)
    assets = rewrite_references(state.chapters, state.assets)
    toc = build_toc_page(state.books, state.chapters, lang=metadata.language)
    files = assemble(metadata, toc, state.chapters, assets)
    payload = write_archive(files)
    logger.info(
        "combined %d books into %d chapters and %d assets (%d bytes)",
        len(state.books),
        len(state.chapters),
        len(assets),
        len(payload),
    )
    return payload


def _require_buffers(buffers: Sequence[bytes]) -> list[bytes]:
    items = list(buffers)
    if not items:
        raise ValueError("at least one EPUB buffer is required")
    return items


def combine_epubs(buffers: Sequence[bytes], *, id_factory: Optional[IdFactory] = None) -> bytes:
    items = _require_buffers(buffers)
    logger.info("combining %d EPUB files", len(items))
    batches = [load_book(data, index) for index, data in enumerate(items)]
    return build_combined(accumulate(batches), id_factory)


async def combine_epubs_async(buffers: Sequence[bytes], *, id_factory: Optional[IdFactory] = None) -> bytes:
    """Same result as :func:`combine_epubs`, reading the source books concurrently."""
    items = _require_buffers(buffers)
    logger.info("combining %d EPUB files", len(items))
    results = await asyncio.gather(
        *(asyncio.to_thread(load_book, data, index) for index, data in enumerate(items)),
        return_exceptions=True,
    )
    # Report the failing book with the lowest index, whatever finished first.
    for result in results:
        if isinstance(result, BaseException):
            raise result
    batches = [result for result in results if isinstance(result, BookBatch)]
    return await asyncio.to_thread(build_combined, accumulate(batches), id_factory)
