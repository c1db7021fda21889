from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

DEFAULT_MAX_FILES = 10
DEFAULT_MAX_FILE_SIZE = 50 * 1024 * 1024
DEFAULT_OUTPUT_FILENAME = "combined.epub"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000


def read_env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value not in {None, ""}:
        return value

    file_var = os.getenv(f"{name}_FILE")
    if not file_var:
        return default

    try:
        content = Path(file_var).read_text(encoding="utf-8")
    except OSError:
        return default
    return content.rstrip("\r\n")


def read_int_env(name: str, default: int, minimum: int = 1) -> int:
    raw = read_env(name)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return value if value >= minimum else default


def max_files() -> int:
    return read_int_env("COMBINER_MAX_FILES", DEFAULT_MAX_FILES, minimum=2)


def max_file_size() -> int:
    return read_int_env("COMBINER_MAX_FILE_SIZE", DEFAULT_MAX_FILE_SIZE)


def output_filename() -> str:
    name = (read_env("COMBINER_OUTPUT_FILENAME") or "").strip()
    return Path(name).name if name else DEFAULT_OUTPUT_FILENAME


def host() -> str:
    return (read_env("COMBINER_HOST") or "").strip() or DEFAULT_HOST


def port() -> int:
    return read_int_env("COMBINER_PORT", DEFAULT_PORT)
