from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

EPUB_TEMPLATES_DIR = Path(__file__).resolve().parent / "epub_templates"


@lru_cache(maxsize=1)
def _epub_template_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(EPUB_TEMPLATES_DIR)),
        autoescape=select_autoescape(
            enabled_extensions=("xml.j2", "opf.j2", "ncx.j2", "xhtml.j2"),
            default_for_string=False,
        ),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def render_epub_template(template_name: str, **context: object) -> str:
    return _epub_template_env().get_template(template_name).render(**context)
