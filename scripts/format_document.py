#!/usr/bin/env python3
"""Run the format pass over a document text file.

Cleans the text, expands placeholders, regroups it into one block per
document type under each patient (priority labels first) and plans each
paragraph's heading kind, style tag and page break.

Usage:
    python3 scripts/format_document.py notes.txt
    python3 scripts/format_document.py notes.txt --config clinidoc.json --output formatted.txt
    cat notes.txt | python3 scripts/format_document.py -

Structured JSON output (text + paragraph plan) goes to stdout; human
messages go to stderr.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

import orjson

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from clinidoc.config import ConfigError, load_config
from clinidoc.formatter import FormatResult, format_document
from clinidoc.io_utils import read_document

log = logging.getLogger("format_document")


def dump_json(obj: Any) -> None:
    sys.stdout.buffer.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")


def result_payload(result: FormatResult) -> dict[str, Any]:
    """JSON-ready view of a format result."""
    return {
        "text": result.text,
        "paragraph_count": len(result.paragraphs),
        "page_breaks": sum(1 for p in result.paragraphs if p.page_break),
        "paragraphs": [
            {
                "text": p.text,
                "kind": p.kind,
                "rule": p.rule_name,
                "style": p.style,
                "page_break": p.page_break,
                "repeated_headline1": p.repeated_headline1,
            }
            for p in result.paragraphs
        ],
    }


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Format a clinical document and print its paragraph plan."
    )
    parser.add_argument("document", help="Document text file, or '-' for stdin")
    parser.add_argument(
        "--config", type=Path, default=None,
        help="JSON configuration (priority headlines, placeholder values)",
    )
    parser.add_argument(
        "--output", type=Path, default=None,
        help="Also write the formatted text to this file",
    )
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config(args.config)
    except (ConfigError, OSError, orjson.JSONDecodeError) as exc:
        log.error("cannot load config %s: %s", args.config, exc)
        sys.exit(1)

    if args.document == "-":
        text = sys.stdin.read()
    else:
        path = Path(args.document)
        if not path.exists():
            log.error("document not found: %s", path)
            sys.exit(1)
        text = read_document(path)

    result = format_document(text, config)
    log.info(
        "formatted %d paragraph(s), %d page break(s)",
        len(result.paragraphs), sum(1 for p in result.paragraphs if p.page_break),
    )

    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(result.text + "\n", encoding="utf-8")
        log.info("wrote %s", args.output)

    dump_json(result_payload(result))


if __name__ == "__main__":
    main()
