"""Append helpers: choose where new text goes, and patient rosters.

Appending to a document with several patients needs a target: the
document is first regrouped (one block per H2, H1 repeated), then the
new text goes after the last line of the chosen patient's run of blocks.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Literal, TypeAlias

from clinidoc.classifier import classify_heading
from clinidoc.formatter import classify_lines, structure_blocks
from clinidoc.normalization import labels_equal
from clinidoc.preprocessor import (
    drop_empty_lines,
    expand_placeholders,
    infer_name_line,
    split_lines,
    trim_leading_whitespace,
)
from clinidoc.section_builder import build_sections
from clinidoc.section_types import NAME_PREFIX, ClassificationRule, PlaceholderRule

log = logging.getLogger(__name__)

AppendAction: TypeAlias = Literal["append_direct", "append_normal", "choose_headline1"]
RosterPeriod: TypeAlias = Literal["all", "morning", "afternoon"]

# Last minute that still counts as a morning appointment.
MORNING_CUTOFF = "12:59"


@dataclass(frozen=True, slots=True)
class AppendDecision:
    """Where an append should go, plus the patients found."""

    action: AppendAction
    headline1s: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class Appointment:
    """One scheduled patient: ``time`` is ``HH:MM``."""

    time: str
    patient: str


# ---------------------------------------------------------------------------
# Append
# ---------------------------------------------------------------------------


def structured_text(
    text: str,
    h1_rules: Sequence[ClassificationRule],
    h2_rules: Sequence[ClassificationRule],
    placeholders: Sequence[PlaceholderRule] = (),
) -> str:
    """Regroup *text* into H1-prefixed H2 blocks without reordering.

    Escape characters are kept; this view is only used to locate patients.
    """
    lines = infer_name_line(trim_leading_whitespace(drop_empty_lines(split_lines(text))))
    pre = expand_placeholders(lines, placeholders)
    return "\n".join(
        item.text for item in structure_blocks(classify_lines(pre.lines, h1_rules, h2_rules))
    )


def _patients(
    structured: str,
    h1_rules: Sequence[ClassificationRule],
    h2_rules: Sequence[ClassificationRule],
) -> tuple[str, ...]:
    sections = build_sections(
        structured.split("\n"), h1_rules, h2_rules, ensure_h1_sections=True,
    )
    return tuple(dict.fromkeys(s.headline1 for s in sections if s.headline1))


def decide_append_action(
    text: str,
    h1_rules: Sequence[ClassificationRule],
    h2_rules: Sequence[ClassificationRule],
) -> AppendDecision:
    """No patient: append at the end. One: append normally. More: ask."""
    patients = _patients(structured_text(text, h1_rules, h2_rules), h1_rules, h2_rules)
    if not patients:
        action: AppendAction = "append_direct"
    elif len(patients) == 1:
        action = "append_normal"
    else:
        action = "choose_headline1"
    log.debug("append action %s for %d patient(s)", action, len(patients))
    return AppendDecision(action=action, headline1s=patients)


def insert_into_headline1(
    text: str,
    target_h1: str,
    new_text: str,
    h1_rules: Sequence[ClassificationRule],
) -> str:
    """Insert *new_text* after the last line belonging to *target_h1*.

    The target's run ends before the next H1 line naming a different
    patient, or at the end of the text. A blank separator line is added
    when that last line is not blank. Text without the target is
    returned unchanged.
    """
    lines = text.split("\n")
    start: int | None = None
    end: int | None = None
    for i, line in enumerate(lines):
        if classify_heading(line, h1_rules, ()) != "H1":
            continue
        if start is None:
            if labels_equal(line, target_h1):
                start = i
        elif not labels_equal(line, target_h1):
            end = i - 1
            break
    if start is None:
        return text
    if end is None:
        end = len(lines) - 1

    out = lines[: end + 1]
    if lines[end].strip() != "":
        out.append("")
    out.append(new_text)
    out.extend(lines[end + 1:])
    return "\n".join(out)


def append_to_headline1(
    text: str,
    target_h1: str,
    new_text: str,
    h1_rules: Sequence[ClassificationRule],
    h2_rules: Sequence[ClassificationRule],
) -> str | None:
    """Regroup *text* and insert *new_text* under *target_h1*.

    Returns None when *target_h1* is not a patient of the document.
    """
    structured = structured_text(text, h1_rules, h2_rules)
    patients = _patients(structured, h1_rules, h2_rules)
    if not any(labels_equal(p, target_h1) for p in patients):
        log.warning("patient %r not found in document", target_h1)
        return None
    return insert_into_headline1(structured, target_h1, new_text, h1_rules)


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------


def appointments_from_payload(payload: Any) -> list[Appointment]:
    """Decode ``{"agendamento": [{"horario": ..., "paciente": ...}]}``.

    A bare list of such objects is accepted too; malformed items are
    skipped.
    """
    items = payload.get("agendamento", []) if isinstance(payload, dict) else payload
    out: list[Appointment] = []
    for item in items or []:
        if not isinstance(item, dict):
            continue
        time = item.get("horario", item.get("time"))
        patient = item.get("paciente", item.get("patient"))
        if isinstance(time, str) and isinstance(patient, str):
            out.append(Appointment(time.strip(), patient.strip()))
    return out


def filter_appointments(
    appointments: Iterable[Appointment], period: RosterPeriod = "all",
) -> list[Appointment]:
    """Sort by time and keep the *period* (``"morning"`` is up to 12:59)."""
    ordered = sorted(appointments, key=lambda a: a.time)
    if period == "morning":
        return [a for a in ordered if a.time <= MORNING_CUTOFF]
    if period == "afternoon":
        return [a for a in ordered if a.time > MORNING_CUTOFF]
    return ordered


def roster_text(appointments: Iterable[Appointment]) -> str:
    """One ``Nome:`` line per appointment, each followed by a blank line."""
    lines: list[str] = []
    for a in appointments:
        lines.append(NAME_PREFIX + a.patient)
        lines.append("")
    return "\n".join(lines)
