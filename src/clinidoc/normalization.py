"""Canonical text normalization for label comparison and patient names.

Every comparison between a configured label and document text (store
lookups, override pairs, priority lists, brush pairs) goes through
:func:`canonical_label`. Display text is never rewritten here except by
the explicit ``Nome:`` helpers.
"""
from __future__ import annotations

import re
import unicodedata

from clinidoc.section_types import NAME_PREFIX

# "Nome:" in any casing, with the whitespace that follows it.
RE_NAME_PREFIX: re.Pattern[str] = re.compile(r"^nome:\s*", re.IGNORECASE)


def canonical_label(label: str | None) -> str:
    """Comparison key for a heading label: NFC, trimmed, case-folded."""
    if not label:
        return ""
    return unicodedata.normalize("NFC", label).strip().casefold()


def labels_equal(a: str | None, b: str | None) -> bool:
    """True if *a* and *b* are the same label under :func:`canonical_label`.

    Two absent labels compare equal; an absent and a present label never do.
    """
    if a is None or b is None:
        return a is None and b is None
    return canonical_label(a) == canonical_label(b)


def is_name_line(line: str) -> bool:
    """True if *line* declares a patient name (``Nome:`` in any casing)."""
    return line.strip().upper().startswith("NOME:")


def extract_name(line: str) -> str | None:
    """Return the text after the first colon of a ``Nome:`` line, or None."""
    _, sep, rest = line.partition(":")
    if not sep:
        return None
    name = rest.split(":", 1)[0].strip()
    return name or None


def title_case_name(name: str) -> str:
    """Upper-case the first letter of each space-separated word, lower the rest."""
    return " ".join(word[:1].upper() + word[1:].lower() for word in name.split(" "))


def canonical_headline1(line: str) -> str:
    """Rewrite a ``Nome:`` line to ``"Nome: " + NAME``; other lines unchanged."""
    match = RE_NAME_PREFIX.match(line)
    if match is None:
        return line
    return NAME_PREFIX + line[match.end():].upper()
