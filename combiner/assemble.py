from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union

from .models import Asset, Chapter, CombinedMetadata, OutputFile, TocPage
from .render import render_epub_template

CONTENT_ROOT = "OEBPS"
PACKAGE_PATH = f"{CONTENT_ROOT}/content.opf"
NCX_PATH = f"{CONTENT_ROOT}/toc.ncx"
NCX_ID = "ncx"
NCX_HREF = "toc.ncx"
NCX_MEDIA_TYPE = "application/x-dtbncx+xml"
XHTML_MEDIA_TYPE = "application/xhtml+xml"


@dataclass(frozen=True)
class ManifestItem:
    id: str
    href: str
    media_type: str


@dataclass(frozen=True)
class NavPoint:
    order: int
    label: str
    src: str


def _member(href: str) -> str:
    return f"{CONTENT_ROOT}/{href}"


def _encode(content: Union[bytes, str]) -> bytes:
    return content.encode("utf-8") if isinstance(content, str) else content


def manifest_items(toc: TocPage, chapters: Sequence[Chapter], assets: Sequence[Asset]) -> list[ManifestItem]:
    items = [ManifestItem(id=toc.id, href=toc.href, media_type=toc.media_type)]
    items.extend(ManifestItem(id=chapter.id, href=chapter.href, media_type=XHTML_MEDIA_TYPE) for chapter in chapters)
    items.extend(ManifestItem(id=asset.id, href=asset.href, media_type=asset.media_type) for asset in assets)
    items.append(ManifestItem(id=NCX_ID, href=NCX_HREF, media_type=NCX_MEDIA_TYPE))
    return items


def nav_points(chapters: Sequence[Chapter]) -> list[NavPoint]:
    return [
        NavPoint(order=position, label=f"Chapter {position}", src=chapter.href)
        for position, chapter in enumerate(chapters, start=1)
    ]


def render_container() -> str:
    return render_epub_template("container.xml.j2", package_path=PACKAGE_PATH)


def render_package(
    metadata: CombinedMetadata, toc: TocPage, chapters: Sequence[Chapter], assets: Sequence[Asset]
) -> str:
    return render_epub_template(
        "content.opf.j2",
        metadata=metadata,
        manifest=manifest_items(toc, chapters, assets),
        spine=[toc.id, *(chapter.id for chapter in chapters)],
        ncx_id=NCX_ID,
    )


def render_ncx(metadata: CombinedMetadata, chapters: Sequence[Chapter]) -> str:
    return render_epub_template("toc.ncx.j2", metadata=metadata, nav_points=nav_points(chapters))


def assemble(
    metadata: CombinedMetadata, toc: TocPage, chapters: Sequence[Chapter], assets: Sequence[Asset]
) -> list[OutputFile]:
    """Return every archive member after ``mimetype``, in write order.

    The manifest, spine and NCX are rendered from the same sequences that
    produce the content members, so each referenced href is written.
    """
    files = [
        OutputFile(path="META-INF/container.xml", data=render_container().encode("utf-8")),
        OutputFile(path=PACKAGE_PATH, data=render_package(metadata, toc, chapters, assets).encode("utf-8")),
        OutputFile(path=NCX_PATH, data=render_ncx(metadata, chapters).encode("utf-8")),
        OutputFile(path=_member(toc.href), data=toc.content.encode("utf-8")),
    ]
    files.extend(OutputFile(path=_member(chapter.href), data=_encode(chapter.content)) for chapter in chapters)
    files.extend(OutputFile(path=_member(asset.href), data=_encode(asset.content)) for asset in assets)
    return files
