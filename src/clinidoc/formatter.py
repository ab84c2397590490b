"""Document format pass: clean, classify, regroup and plan paragraphs.

This is the logical half of formatting a whole document. Rendering (fonts,
spacing, inline emphasis) is left to the host; each planned paragraph
carries the rule's opaque ``style`` tag and a page-break flag.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from clinidoc.classifier import classify_heading, classify_paragraph, rules_of_kind
from clinidoc.config import ModelConfig
from clinidoc.normalization import (
    canonical_headline1,
    canonical_label,
    extract_name,
    title_case_name,
)
from clinidoc.placeholders import default_placeholder_rules
from clinidoc.preprocessor import preprocess_text
from clinidoc.reorder import priority_rank
from clinidoc.rules import default_paragraph_rules
from clinidoc.section_builder import build_sections_from_text
from clinidoc.section_types import (
    UNDEFINED_DOCUMENT_LABEL,
    UNDEFINED_PATIENT_LABEL,
    ClassificationRule,
    ClassifiedLine,
    ParagraphPlan,
    PlaceholderRule,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FormatResult:
    """Formatted document text plus the per-paragraph plan."""

    text: str
    paragraphs: tuple[ParagraphPlan, ...]


# ---------------------------------------------------------------------------
# Classification and block structure
# ---------------------------------------------------------------------------


def classify_lines(
    lines: Sequence[str],
    h1_rules: Sequence[ClassificationRule],
    h2_rules: Sequence[ClassificationRule],
) -> list[ClassifiedLine]:
    """Tag each line H1, H2 or body; ``Nome:`` H1 lines are canonicalized."""
    out: list[ClassifiedLine] = []
    for line in lines:
        kind = classify_heading(line, h1_rules, h2_rules)
        if kind == "H1":
            out.append(ClassifiedLine(canonical_headline1(line), "H1"))
        else:
            out.append(ClassifiedLine(line, kind))
    return out


@dataclass(slots=True)
class _Group:
    headline1: ClassifiedLine
    blocks: list[list[ClassifiedLine]]


def structure_blocks(
    classified: Sequence[ClassifiedLine],
    priority: Sequence[str] | None = None,
) -> list[ClassifiedLine]:
    """Regroup lines into one block per H2, each preceded by its H1.

    Body lines without an H1 go under ``"Nome: PACIENTE INDEFINIDO"``;
    body lines without an H2 open a ``"Documento Indefinido"`` block.
    Repeated H1 text merges into the first group of that text. Blocks are
    stable-sorted by *priority* within each group, and an H1 with no
    blocks is emitted on its own.
    """
    groups: dict[str, _Group] = {}
    current: _Group | None = None
    block: list[ClassifiedLine] | None = None

    def _group_for(h1: ClassifiedLine) -> _Group:
        return groups.setdefault(canonical_label(h1.text), _Group(h1, []))

    for item in classified:
        if item.kind == "H1":
            current = _group_for(item)
            block = None
            continue
        if current is None:
            current = _group_for(ClassifiedLine(UNDEFINED_PATIENT_LABEL, "H1"))
        if item.kind == "H2":
            block = [item]
            current.blocks.append(block)
            continue
        if block is None:
            block = [ClassifiedLine(UNDEFINED_DOCUMENT_LABEL, "H2")]
            current.blocks.append(block)
        block.append(item)

    out: list[ClassifiedLine] = []
    for group in groups.values():
        blocks = group.blocks
        if priority:
            key = priority_rank(priority)
            blocks = sorted(blocks, key=lambda b: key(b[0].text))
        if not blocks:
            out.append(group.headline1)
            continue
        for b in blocks:
            out.append(group.headline1)
            out.extend(b)
    log.debug("structured %d groups into %d lines", len(groups), len(out))
    return out


# ---------------------------------------------------------------------------
# Paragraph planning
# ---------------------------------------------------------------------------


def plan_paragraphs(
    lines: Sequence[ClassifiedLine],
    paragraph_rules: Sequence[ClassificationRule],
) -> list[ParagraphPlan]:
    """Decide heading kind, style tag and page break for each paragraph.

    Leading empty lines are dropped; later empty lines become empty body
    paragraphs. A repeated H1 is planned as NORMAL with the H1 style. A
    page break goes before every line the H1 rule claims that requires
    one, except the first paragraph.
    """
    h1_rule = next(iter(rules_of_kind(paragraph_rules, "H1")), None)
    h2_rule = next(iter(rules_of_kind(paragraph_rules, "H2")), None)
    seen_h1: set[str] = set()
    plans: list[ParagraphPlan] = []

    for item in lines:
        text = item.text
        if text == "":
            if plans:
                plans.append(ParagraphPlan(text, "NORMAL", "empty", ""))
            continue

        repeated = False
        if item.kind == "H1":
            repeated = text in seen_h1
            seen_h1.add(text)
            kind = "NORMAL" if repeated else "H1"
            rule_name = h1_rule.name if h1_rule else "patient"
            style = h1_rule.style if h1_rule else ""
        elif item.kind == "H2":
            kind = "H2"
            rule_name = h2_rule.name if h2_rule else "document_type"
            style = h2_rule.style if h2_rule else ""
        else:
            rule = classify_paragraph(text, paragraph_rules)
            kind, rule_name, style = rule.kind, rule.name, rule.style

        page_break = bool(
            plans and h1_rule is not None and h1_rule.requires_break
            and h1_rule.matches(text)
        )
        plans.append(ParagraphPlan(
            text=text,
            kind=kind,
            rule_name=rule_name,
            style=style,
            page_break=page_break,
            repeated_headline1=repeated,
        ))
    return plans


# ---------------------------------------------------------------------------
# Full pass
# ---------------------------------------------------------------------------


def _initial_patient_name(
    text: str,
    h1_rules: Sequence[ClassificationRule],
    h2_rules: Sequence[ClassificationRule],
) -> str | None:
    sections = build_sections_from_text(text, h1_rules, h2_rules)
    if not sections or not sections[0].headline1:
        return None
    name = extract_name(sections[0].headline1)
    return title_case_name(name) if name else None


def format_document(
    text: str,
    config: ModelConfig | None = None,
    *,
    paragraph_rules: Sequence[ClassificationRule] | None = None,
    placeholders: Sequence[PlaceholderRule] | None = None,
) -> FormatResult:
    """Run the whole format pass over a document body.

    Args:
        text: Raw document body.
        config: Priority headlines and placeholder values; defaults apply
            when None.
        paragraph_rules: Whole-paragraph rules; H1/H2 rules are derived
            from it. Defaults to :func:`~clinidoc.rules.default_paragraph_rules`.
        placeholders: Placeholder rules; defaults to the standard set
            filled from ``config.placeholder_values``.

    Returns:
        The regrouped text (one paragraph per line) and its plan.
    """
    config = config or ModelConfig()
    rules = list(paragraph_rules) if paragraph_rules is not None else default_paragraph_rules()
    h1_rules = rules_of_kind(rules, "H1")
    h2_rules = rules_of_kind(rules, "H2")
    if placeholders is None:
        placeholders = default_placeholder_rules(config.placeholder_values)

    pre = preprocess_text(
        text,
        placeholders,
        patient_name=_initial_patient_name(text, h1_rules, h2_rules),
    )
    classified = classify_lines(pre.lines, h1_rules, h2_rules)
    structured = structure_blocks(classified, config.priority_headlines)
    plans = plan_paragraphs(structured, rules)
    return FormatResult(
        text="\n".join(item.text for item in structured),
        paragraphs=tuple(plans),
    )
