from __future__ import annotations

import posixpath
import re
import urllib.parse
from collections import defaultdict
from typing import Iterable

from .models import STYLE, Asset, Chapter

# Chapters live in Text/ and stylesheets in Styles/, both one level below the content root.
PARENT_PREFIX = "../"


def relative_reference(asset: Asset) -> str:
    return f"{PARENT_PREFIX}{asset.href}"


def _source_dir(original_href: str) -> str:
    parent = posixpath.dirname(posixpath.normpath(original_href.split("#", 1)[0]))
    return parent or "."


def _literal_forms(asset: Asset, from_dir: str) -> list[str]:
    forms = [asset.original_href]
    target = posixpath.normpath(asset.original_href)
    relative = posixpath.relpath(target, start=from_dir)
    if relative not in forms:
        forms.append(relative)
    for form in list(forms):
        decoded = urllib.parse.unquote(form)
        if decoded not in forms:
            forms.append(decoded)
    return forms


def _replacement_table(assets: list[Asset], from_dir: str) -> dict[str, str]:
    table: dict[str, str] = {}
    for asset in assets:
        table.setdefault(asset.original_href, relative_reference(asset))
    for asset in assets:
        for form in _literal_forms(asset, from_dir):
            table.setdefault(form, relative_reference(asset))
    return {literal: new for literal, new in table.items() if literal}


def replace_literals(text: str, table: dict[str, str]) -> str:
    """Replace every literal key of ``table`` in one left-to-right pass.

    Longer keys win over their own prefixes, and replaced text is never
    scanned again, so one asset's new path cannot be rewritten on behalf of
    another asset.
    """
    if not table or not text:
        return text
    keys = sorted(table, key=len, reverse=True)
    pattern = re.compile("|".join(re.escape(key) for key in keys))
    return pattern.sub(lambda match: table[match.group(0)], text)


def _by_book(assets: Iterable[Asset]) -> dict[int, list[Asset]]:
    grouped: dict[int, list[Asset]] = defaultdict(list)
    for asset in assets:
        grouped[asset.book_index].append(asset)
    return grouped


def rewrite_chapter(chapter: Chapter, same_book_assets: list[Asset]) -> None:
    assets = [asset for asset in same_book_assets if asset.book_index == chapter.book_index]
    table = _replacement_table(assets, _source_dir(chapter.original_href))
    chapter.content = replace_literals(chapter.content, table)


def rewrite_stylesheet(style: Asset, same_book_assets: list[Asset]) -> Asset:
    if not isinstance(style.content, str):
        return style
    assets = [
        asset
        for asset in same_book_assets
        if asset.book_index == style.book_index and asset.id != style.id
    ]
    table = _replacement_table(assets, _source_dir(style.original_href))
    updated = replace_literals(style.content, table)
    return style if updated == style.content else style.with_content(updated)


def rewrite_references(chapters: list[Chapter], assets: list[Asset]) -> list[Asset]:
    """Point every chapter and stylesheet at the renamed assets of its own book.

    Chapters are updated in place. The returned asset list has the same
    order as ``assets`` with stylesheets replaced by their rewritten copies.
    """
    grouped = _by_book(assets)
    for chapter in chapters:
        rewrite_chapter(chapter, grouped.get(chapter.book_index, []))

    result: list[Asset] = []
    for asset in assets:
        if asset.kind == STYLE:
            asset = rewrite_stylesheet(asset, grouped.get(asset.book_index, []))
        result.append(asset)
    return result
