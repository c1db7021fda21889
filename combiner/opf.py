from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from lxml import etree as LXML_ET

from .archive import ArchiveHandle, canonical_member
from .errors import InvalidContainerError, InvalidPackageDocumentError
from .models import ManifestEntry, SourceBook

CONTAINER_PATH = "META-INF/container.xml"
DEFAULT_AUTHOR = "Unknown Author"
DEFAULT_LANGUAGE = "en"


@dataclass
class PackageDocument:
    path: str
    base_directory: str
    manifest_by_id: dict[str, ManifestEntry] = field(default_factory=dict)
    spine_order: list[str] = field(default_factory=list)
    title: Optional[str] = None
    author: Optional[str] = None
    language: Optional[str] = None

    def source_book(self, book_index: int) -> SourceBook:
        return SourceBook(
            index=book_index,
            base_directory=self.base_directory,
            title=self.title or f"Book {book_index + 1}",
            author=self.author or DEFAULT_AUTHOR,
        )


def _tag_local_name(tag: object) -> str:
    if not tag or not isinstance(tag, str):
        return ""
    if "}" in tag:
        return tag.split("}", 1)[1]
    if ":" in tag:
        return tag.split(":", 1)[1]
    return tag


def _child_by_local_name(node: LXML_ET._Element, local_name: str) -> Optional[LXML_ET._Element]:
    for child in node:
        if _tag_local_name(child.tag) == local_name:
            return child
    return None


def _iter_children_by_local_name(node: LXML_ET._Element, local_name: str) -> list[LXML_ET._Element]:
    return [child for child in node if _tag_local_name(child.tag) == local_name]


def _node_text(node: Optional[LXML_ET._Element]) -> Optional[str]:
    if node is None:
        return None
    text = " ".join("".join(node.itertext()).split())
    return text or None


def _xml_root_from_bytes(raw: bytes) -> LXML_ET._Element:
    parser = LXML_ET.XMLParser(resolve_entities=False, no_network=True, recover=False, huge_tree=False)
    root = LXML_ET.fromstring(raw, parser=parser)
    if root is None:
        raise ValueError("empty document")
    return root


def base_directory(package_path: str) -> str:
    return package_path[: package_path.rfind("/") + 1]


def package_path_from_container(handle: ArchiveHandle) -> str:
    raw = handle.read_binary(CONTAINER_PATH)
    if raw is None:
        raise InvalidContainerError("not found", book_index=handle.book_index, document=CONTAINER_PATH)
    try:
        root = _xml_root_from_bytes(raw)
    except (LXML_ET.XMLSyntaxError, ValueError) as exc:
        raise InvalidContainerError(str(exc), book_index=handle.book_index, document=CONTAINER_PATH) from exc

    full_path = ""
    for node in root.iter():
        if _tag_local_name(node.tag) != "rootfile":
            continue
        candidate = str(node.attrib.get("full-path") or "").strip()
        if candidate:
            full_path = candidate
            break
    normalized = canonical_member(full_path)
    if not normalized:
        raise InvalidContainerError(
            "missing rootfile full-path", book_index=handle.book_index, document=CONTAINER_PATH
        )
    return normalized


def read_package(handle: ArchiveHandle, book_index: Optional[int] = None) -> PackageDocument:
    """Locate and parse the OPF package document of one source archive."""
    if book_index is None:
        book_index = handle.book_index
    opf_path = package_path_from_container(handle)
    raw = handle.read_binary(opf_path)
    if raw is None:
        raise InvalidPackageDocumentError("not found", book_index=book_index, document=opf_path)
    try:
        root = _xml_root_from_bytes(raw)
    except (LXML_ET.XMLSyntaxError, ValueError) as exc:
        raise InvalidPackageDocumentError(str(exc), book_index=book_index, document=opf_path) from exc

    sections: dict[str, LXML_ET._Element] = {}
    for name in ("metadata", "manifest", "spine"):
        node = _child_by_local_name(root, name)
        if node is None:
            raise InvalidPackageDocumentError(f"missing {name}", book_index=book_index, document=opf_path)
        sections[name] = node

    metadata = sections["metadata"]
    package = PackageDocument(
        path=opf_path,
        base_directory=base_directory(opf_path),
        title=_node_text(_child_by_local_name(metadata, "title")),
        author=_node_text(_child_by_local_name(metadata, "creator")),
        language=_node_text(_child_by_local_name(metadata, "language")),
    )

    for node in _iter_children_by_local_name(sections["manifest"], "item"):
        item_id = str(node.attrib.get("id") or "").strip()
        href = str(node.attrib.get("href") or "").strip()
        if not item_id or not href or item_id in package.manifest_by_id:
            continue
        package.manifest_by_id[item_id] = ManifestEntry(
            item_id=item_id,
            href=href,
            media_type=str(node.attrib.get("media-type") or "").strip().lower(),
        )

    for itemref in _iter_children_by_local_name(sections["spine"], "itemref"):
        idref = str(itemref.attrib.get("idref") or "").strip()
        if idref:
            package.spine_order.append(idref)
    return package
