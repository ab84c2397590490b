#!/usr/bin/env python3
"""Merge pre-generated edits into a document and print the batch report.

The requests file holds one batch request or a list of them (JSON), or
one request per line (``.jsonl``)::

    {"target_patients": ["Nome: JOHN SMITH"],
     "edits": [{"from_label": "Prontuário Médico",
                "to_label": "Prontuário Médico",
                "generated_text": "..."}]}

Every edit must carry ``generated_text``; this script never calls a
language model, so edits without it are reported as failures.

Usage:
    python3 scripts/apply_edits.py --document notes.txt --requests edits.json
    python3 scripts/apply_edits.py --document notes.txt --requests edits.jsonl --output merged.txt

Structured JSON output goes to stdout; human messages go to stderr.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

import orjson

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from clinidoc.batch import BatchError, apply_batch, requests_from_payload
from clinidoc.config import ConfigError, ModelConfig, load_config
from clinidoc.io_utils import load_json, load_jsonl, read_document
from clinidoc.rules import headline1_rules, headline2_rules
from clinidoc.section_store import SectionStore
from clinidoc.section_types import BatchReport, BatchRequest

log = logging.getLogger("apply_edits")


def dump_json(obj: Any) -> None:
    sys.stdout.buffer.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")


def load_requests(path: Path) -> list[BatchRequest]:
    """Read batch requests from a ``.json`` or ``.jsonl`` file."""
    if path.suffix == ".jsonl":
        return requests_from_payload(load_jsonl(path))
    return requests_from_payload(load_json(path))


def merge_document(
    text: str, requests: list[BatchRequest], config: ModelConfig,
) -> BatchReport:
    """Build a store from *text* and apply *requests* to it."""
    store = SectionStore.from_text(
        text, headline1_rules(), headline2_rules(),
        override_pairs=config.override_pairs,
    )
    return apply_batch(store, requests, priority=config.priority_headlines)


def report_payload(report: BatchReport) -> dict[str, Any]:
    return {
        "completed": report.completed,
        "skipped": report.skipped,
        "outcomes": list(report.outcomes),
        "failures": [
            {"headline1": f.headline1, "to_label": f.to_label, "message": f.message}
            for f in report.failures
        ],
        "text": report.text,
    }


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Merge pre-generated edits into a clinical document."
    )
    parser.add_argument("--document", type=Path, required=True)
    parser.add_argument("--requests", type=Path, required=True)
    parser.add_argument(
        "--config", type=Path, default=None,
        help="JSON configuration (override pairs, priority headlines)",
    )
    parser.add_argument(
        "--output", type=Path, default=None,
        help="Write the merged document text to this file",
    )
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    for path in (args.document, args.requests):
        if not path.exists():
            log.error("file not found: %s", path)
            sys.exit(1)

    try:
        config = load_config(args.config)
        requests = load_requests(args.requests)
    except (ConfigError, ValueError, OSError) as exc:
        log.error("invalid input: %s", exc)
        sys.exit(1)

    try:
        report = merge_document(read_document(args.document), requests, config)
    except BatchError as exc:
        log.error("%s", exc)
        sys.exit(1)

    log.info(
        "%d completed, %d skipped, %d failed",
        report.completed, report.skipped, len(report.failures),
    )
    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(report.text + "\n", encoding="utf-8")
        log.info("wrote %s", args.output)

    dump_json(report_payload(report))


if __name__ == "__main__":
    main()
