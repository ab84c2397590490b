"""Grouping and reordering of Sections by patient.

Sections are partitioned by ``headline1`` in first-seen order. Within a
group, the order is either left alone, sorted by a priority list of H2
labels, or adjusted so a single primary-record label comes first.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Literal, TypeAlias

from clinidoc.normalization import canonical_label
from clinidoc.section_types import PRIMARY_RECORD_LABEL, Section

ReorderMode: TypeAlias = Literal["priority", "primary_record", "none"]


def group_by_headline1(sections: Sequence[Section]) -> dict[str | None, list[Section]]:
    """Partition *sections* by ``headline1``, first-seen order.

    Patients compare under :func:`~clinidoc.normalization.canonical_label`;
    each group is keyed by the first spelling seen.
    """
    spellings: dict[str | None, str | None] = {}
    groups: dict[str | None, list[Section]] = {}
    for section in sections:
        h1 = section.headline1
        key = spellings.setdefault(None if h1 is None else canonical_label(h1), h1)
        groups.setdefault(key, []).append(section)
    return groups


def priority_rank(priority: Sequence[str]) -> Callable[[str], int]:
    """Sort key for labels: position in *priority*, or after every entry.

    Labels compare under :func:`~clinidoc.normalization.canonical_label`.
    """
    rank: dict[str, int] = {}
    for i, label in enumerate(priority):
        rank.setdefault(canonical_label(label), i)
    missing = len(priority)

    def _key(label: str) -> int:
        return rank.get(canonical_label(label), missing)

    return _key


def sort_by_priority(
    sections: Sequence[Section], priority: Sequence[str],
) -> list[Section]:
    """Stable sort: priority labels first in list order, others unchanged."""
    key = priority_rank(priority)
    return sorted(sections, key=lambda s: key(s.headline2))


def float_primary_record(
    sections: Sequence[Section], primary_label: str = PRIMARY_RECORD_LABEL,
) -> list[Section]:
    """Move Sections labelled *primary_label* to the front, stable."""
    return sort_by_priority(sections, [primary_label])


def group_and_reorder(
    sections: Sequence[Section],
    *,
    priority: Sequence[str] | None = None,
    mode: ReorderMode = "priority",
    primary_label: str = PRIMARY_RECORD_LABEL,
) -> list[Section]:
    """Group Sections by patient and reorder each group.

    Args:
        sections: Sections in store order.
        priority: H2 labels to put first (``"priority"`` mode). None or
            empty means group only.
        mode: ``"priority"``, ``"primary_record"`` (float *primary_label*)
            or ``"none"`` (group only).
        primary_label: Label floated in ``"primary_record"`` mode.

    Returns:
        A new list; the input is not modified.
    """
    out: list[Section] = []
    for group in group_by_headline1(sections).values():
        if mode == "priority" and priority:
            out.extend(sort_by_priority(group, priority))
        elif mode == "primary_record":
            out.extend(float_primary_record(group, primary_label))
        else:
            out.extend(group)
    return out
