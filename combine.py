#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from combiner.env import output_filename
from combiner.errors import CombineError
from combiner.merge import combine_epubs


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Combine several EPUB files into one EPUB 2 book with a generated table of contents."
    )
    parser.add_argument("inputs", nargs="+", help="Input EPUB file paths, in reading order")
    parser.add_argument("-o", "--output", help="Output EPUB file path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log skipped items and progress")
    return parser.parse_args(argv)


def main(argv: list[str]) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    input_paths = [Path(raw) for raw in args.inputs]
    for input_path in input_paths:
        if not input_path.is_file():
            print(f"Input file not found: {input_path}", file=sys.stderr)
            return 1

    output_path = Path(args.output) if args.output else Path.cwd() / output_filename()
    try:
        combined = combine_epubs([path.read_bytes() for path in input_paths])
    except CombineError as exc:
        print(f"Failed to combine EPUB files: {exc}", file=sys.stderr)
        return 1

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(combined)
    print(f"EPUB saved to: {output_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
