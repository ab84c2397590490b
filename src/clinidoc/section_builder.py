"""Section builder: classified line stream -> ordered :class:`Section` list.

State machine, one transition per input line::

    NO_H1 --H1--> AWAITING_H2 --H2 / body--> IN_SECTION
                      ^                          |
                      +------------H1------------+

- H1 line: becomes the current patient (``Nome:`` casing canonicalized).
- H2 line: opens a new Section with empty text.
- Body line right after an H1: opens a ``"Título"`` Section holding it.
- Other body line: appended to the last Section, or dropped if none exists.

The bounded policy (``ensure_h1_sections=True``) also skips whitespace-only
lines and gives every H1 at least one Section: an H1 that never receives an
H2 or body line yields an empty ``"Documento Indefinido"`` Section.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Literal, TypeAlias

from clinidoc.classifier import classify_heading
from clinidoc.normalization import canonical_headline1
from clinidoc.preprocessor import preprocess_text
from clinidoc.section_types import (
    TITLE_LABEL,
    UNDEFINED_DOCUMENT_LABEL,
    ClassificationRule,
    Section,
)

log = logging.getLogger(__name__)

BuildState: TypeAlias = Literal["NO_H1", "AWAITING_H2", "IN_SECTION"]


@dataclass(slots=True)
class _PendingSection:
    """Mutable accumulator for one Section under construction."""

    headline1: str | None
    headline2: str
    lines: list[str] = field(default_factory=list)

    def freeze(self) -> Section:
        return Section(
            headline1=self.headline1,
            headline2=self.headline2,
            text="".join(line + "\n" for line in self.lines),
        )


@dataclass(slots=True)
class _BuildContext:
    state: BuildState = "NO_H1"
    headline1: str | None = None
    pending: list[_PendingSection] = field(default_factory=list)

    def open(self, headline2: str, first_line: str | None = None) -> None:
        section = _PendingSection(self.headline1, headline2)
        if first_line is not None:
            section.lines.append(first_line)
        self.pending.append(section)
        self.state = "IN_SECTION"


def build_sections(
    lines: Iterable[str],
    h1_rules: Sequence[ClassificationRule],
    h2_rules: Sequence[ClassificationRule],
    *,
    limit_to_one_h2: bool = False,
    ensure_h1_sections: bool = False,
) -> list[Section]:
    """Build Sections from already-preprocessed *lines*.

    Args:
        lines: Line stream without line terminators.
        h1_rules: Patient-boundary rules (checked first).
        h2_rules: Document-type boundary rules.
        limit_to_one_h2: Capture a single block; later H2 lines are
            ignored while body accumulation continues.
        ensure_h1_sections: Bounded policy (see module docstring).

    Returns:
        Sections in document order.
    """
    ctx = _BuildContext()

    for line in lines:
        if ensure_h1_sections and line.strip() == "":
            continue

        kind = classify_heading(line, h1_rules, h2_rules)
        if kind == "H1":
            if ensure_h1_sections and ctx.state == "AWAITING_H2":
                ctx.open(UNDEFINED_DOCUMENT_LABEL)
            ctx.headline1 = canonical_headline1(line)
            ctx.state = "AWAITING_H2"
        elif kind == "H2":
            if limit_to_one_h2 and ctx.pending:
                continue
            ctx.open(line)
        elif ctx.state == "AWAITING_H2":
            ctx.open(TITLE_LABEL, line)
        elif ctx.pending:
            ctx.pending[-1].lines.append(line)
        else:
            log.debug("dropping line before any heading: %r", line)

    if ensure_h1_sections and ctx.state == "AWAITING_H2":
        ctx.open(UNDEFINED_DOCUMENT_LABEL)

    sections = [p.freeze() for p in ctx.pending]
    log.debug("built %d sections", len(sections))
    return sections


def build_sections_from_text(
    text: str,
    h1_rules: Sequence[ClassificationRule],
    h2_rules: Sequence[ClassificationRule],
    *,
    drop_empty: bool = True,
    limit_to_one_h2: bool = False,
    ensure_h1_sections: bool = False,
) -> list[Section]:
    """Preprocess *text* (no placeholders) and build its Sections."""
    pre = preprocess_text(text, drop_empty=drop_empty)
    return build_sections(
        pre.lines,
        h1_rules,
        h2_rules,
        limit_to_one_h2=limit_to_one_h2,
        ensure_h1_sections=ensure_h1_sections,
    )
