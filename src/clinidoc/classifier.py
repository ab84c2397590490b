"""Line classification: ordered predicate rules, first match wins.

Rules are plain data (:class:`~clinidoc.section_types.ClassificationRule`)
built from the predicate factories below. Two rule lists drive the
section builder -- one tagged H1 (patient boundary), one tagged H2
(document-type boundary) -- and H1 rules are always tried first.

No document model here, pure functions only.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from typing import TypeAlias

from clinidoc.section_types import ClassificationRule, HeadingKind

Predicate: TypeAlias = Callable[[str], bool]


# ── Predicate factories ─────────────────────────────────────────────────


def keyword_prefix(keywords: Sequence[str], *, strip: bool = False) -> Predicate:
    """Case-insensitive ``startswith`` against any keyword.

    The line is upper-cased (and trimmed when *strip*) before comparison.
    """
    upper = tuple(k.upper() for k in keywords)

    def _match(line: str) -> bool:
        text = line.upper()
        if strip:
            text = text.strip()
        return text.startswith(upper) if upper else False

    return _match


def keyword_prefix_exact(keywords: Sequence[str], *, strip: bool = False) -> Predicate:
    """Case-sensitive ``startswith`` against any keyword."""
    kws = tuple(keywords)

    def _match(line: str) -> bool:
        text = line.strip() if strip else line
        return text.startswith(kws) if kws else False

    return _match


def suffix(ending: str) -> Predicate:
    """True when the trimmed line ends with *ending*."""

    def _match(line: str) -> bool:
        return line.strip().endswith(ending)

    return _match


def full_pattern(pattern: re.Pattern[str] | str) -> Predicate:
    """True when the trimmed line matches *pattern* end to end."""
    compiled = re.compile(pattern) if isinstance(pattern, str) else pattern

    def _match(line: str) -> bool:
        return compiled.fullmatch(line.strip()) is not None

    return _match


def any_of(*predicates: Predicate) -> Predicate:
    """Logical OR of *predicates*."""

    def _match(line: str) -> bool:
        return any(p(line) for p in predicates)

    return _match


def always(_line: str) -> bool:
    """Catch-all predicate."""
    return True


CATCH_ALL_RULE = ClassificationRule(name="body", kind="NORMAL", condition=always)


# ── Classification ──────────────────────────────────────────────────────


def classify_line(
    line: str, rules: Sequence[ClassificationRule],
) -> ClassificationRule | None:
    """Return the first rule in *rules* whose condition holds, else None."""
    for rule in rules:
        if rule.matches(line):
            return rule
    return None


def classify_heading(
    line: str,
    h1_rules: Sequence[ClassificationRule],
    h2_rules: Sequence[ClassificationRule],
) -> HeadingKind | None:
    """Classify *line* as ``"H1"``, ``"H2"`` or None (body text).

    H1 rules are checked before H2 rules. The returned kind is the list
    the line matched in, regardless of the rule's own ``kind`` tag.
    """
    if classify_line(line, h1_rules) is not None:
        return "H1"
    if classify_line(line, h2_rules) is not None:
        return "H2"
    return None


def classify_paragraph(
    line: str, rules: Sequence[ClassificationRule],
) -> ClassificationRule:
    """Whole-paragraph classification; never returns None.

    An empty rule set, or one without a catch-all, degrades to
    :data:`CATCH_ALL_RULE`.
    """
    return classify_line(line, rules) or CATCH_ALL_RULE


def rules_of_kind(
    rules: Sequence[ClassificationRule], kind: HeadingKind,
) -> list[ClassificationRule]:
    """Filter *rules* to those tagged *kind*, preserving order."""
    return [r for r in rules if r.kind == kind]
