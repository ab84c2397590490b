"""Line preprocessor: raw document text -> lines ready for classification.

Steps run in a fixed order (see :func:`preprocess_text`); each one is also
a standalone function operating on a list of lines.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

from clinidoc.normalization import extract_name, is_name_line, title_case_name
from clinidoc.placeholders import apply_placeholders
from clinidoc.section_types import NAME_PREFIX, PlaceholderRule

log = logging.getLogger(__name__)

RE_LINE_BREAK: re.Pattern[str] = re.compile(r"\r\n|\r|\n")
RE_LEADING_WS_THEN_TEXT: re.Pattern[str] = re.compile(r"^\s+\S+")
# Upper-case letters (accents included) and spaces only.
RE_UPPERCASE_NAME: re.Pattern[str] = re.compile(
    r"[A-ZÇÃÕÁÉÍÓÚÂÊÎÔÛÀÈÌÒÙÄËÏÖÜŸŠŽČĐÑ ]+",
)


@dataclass(frozen=True, slots=True)
class PreprocessedText:
    """Preprocessor output: cleaned lines plus the last tracked patient name."""

    lines: tuple[str, ...]
    patient_name: str | None = None


def split_lines(text: str) -> list[str]:
    """Split on ``\\r\\n``, ``\\r`` or ``\\n``."""
    return RE_LINE_BREAK.split(text)


def drop_empty_lines(lines: Sequence[str]) -> list[str]:
    """Drop lines that are exactly ``""``; whitespace-only lines stay."""
    return [line for line in lines if line != ""]


def _trim_if_indented(line: str) -> str:
    if RE_LEADING_WS_THEN_TEXT.match(line):
        return line.strip()
    return line


def trim_leading_whitespace(lines: Sequence[str]) -> list[str]:
    """Trim lines that start with whitespace followed by text.

    Pure-whitespace lines are spacer lines and are left untouched.
    """
    return [_trim_if_indented(line) for line in lines]


def strip_escape_characters(lines: Sequence[str]) -> list[str]:
    """Remove ``\\`` and turn ``*`` into a space."""
    return [line.replace("\\", "").replace("*", " ") for line in lines]


def infer_name_line(lines: Sequence[object]) -> list[str]:
    """Normalize the first line, prefixing bare upper-case names with ``Nome:``.

    A first line of two or more upper-case words becomes a ``Nome:`` line.
    A blank or non-string first line becomes ``""``; anything else is trimmed.
    """
    out = list(lines)
    if not out:
        return []
    first = out[0]
    if not isinstance(first, str):
        out[0] = ""
        return out  # type: ignore[return-value]
    trimmed = first.strip()
    words = [w for w in trimmed.split(" ") if w]
    if trimmed and RE_UPPERCASE_NAME.fullmatch(trimmed) and len(words) >= 2:
        out[0] = NAME_PREFIX + trimmed
        log.debug("first line treated as patient name: %s", out[0])
    else:
        out[0] = trimmed
    return out  # type: ignore[return-value]


def expand_placeholders(
    lines: Sequence[str],
    placeholders: Sequence[PlaceholderRule],
    patient_name: str | None = None,
) -> PreprocessedText:
    """Track the patient name line by line and expand placeholders.

    The name from a ``Nome:`` line is title-cased and is visible to
    placeholders on that same line and every later one.
    """
    out: list[str] = []
    for raw in lines:
        line = raw if raw.strip() == "" else _trim_if_indented(raw)
        if is_name_line(line):
            name = extract_name(line)
            if name:
                patient_name = title_case_name(name)
        if placeholders:
            line = apply_placeholders(line, placeholders, patient_name)
        out.append(line)
    return PreprocessedText(lines=tuple(out), patient_name=patient_name)


def preprocess_text(
    text: str,
    placeholders: Sequence[PlaceholderRule] = (),
    *,
    drop_empty: bool = True,
    patient_name: str | None = None,
) -> PreprocessedText:
    """Run the full preprocessing pipeline over *text*.

    Args:
        text: Raw document body (any line-ending convention).
        placeholders: Placeholder rules; empty disables substitution.
        drop_empty: Drop lines that are exactly empty.
        patient_name: Name known before the first ``Nome:`` line.

    Returns:
        The cleaned lines and the last tracked patient name.
    """
    lines = split_lines(text if isinstance(text, str) else "")
    if drop_empty:
        lines = drop_empty_lines(lines)
    lines = trim_leading_whitespace(lines)
    lines = strip_escape_characters(lines)
    lines = infer_name_line(lines)
    return expand_placeholders(lines, placeholders, patient_name)
