"""Section store: ordered Sections plus query and merge operations.

A store lives for one logical action: build it from the current document
text, run queries and :meth:`SectionStore.create_or_update` calls,
serialize, discard. Queries never mutate and never raise; lookups that
find nothing return None, never ``""``.

All label comparisons (patient and document type) go through
:func:`~clinidoc.normalization.labels_equal`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence

from clinidoc.normalization import canonical_label, labels_equal
from clinidoc.reorder import ReorderMode, group_and_reorder
from clinidoc.section_builder import build_sections, build_sections_from_text
from clinidoc.section_types import (
    PRIMARY_RECORD_LABEL,
    ClassificationRule,
    HeadlinePair,
    MergeOutcome,
    OverridePair,
    Section,
)
from clinidoc.serializer import to_flat_text, to_grouped_text

log = logging.getLogger(__name__)


def strip_label_echo(new_text: str, label: str) -> str:
    """Remove a leading copy of *label* from generated text.

    Applies only when *new_text*, once trimmed, starts with *label*.
    Whitespace-only remainder becomes ``""``; otherwise exactly one
    leading newline is dropped.
    """
    if not label or not new_text.strip().startswith(label):
        return new_text
    rest = new_text[new_text.index(label) + len(label):]
    if rest.strip() == "":
        return ""
    return rest[1:] if rest.startswith("\n") else rest


class SectionStore:
    """Ordered, replace-by-index collection of :class:`Section` records."""

    def __init__(
        self,
        sections: Iterable[Section] = (),
        *,
        override_pairs: Sequence[OverridePair] = (),
    ) -> None:
        self._sections: list[Section] = list(sections)
        self.override_pairs: tuple[OverridePair, ...] = tuple(override_pairs)

    @classmethod
    def from_text(
        cls,
        text: str,
        h1_rules: Sequence[ClassificationRule],
        h2_rules: Sequence[ClassificationRule],
        *,
        override_pairs: Sequence[OverridePair] = (),
        drop_empty: bool = True,
        ensure_h1_sections: bool = False,
    ) -> SectionStore:
        """Build a store from a whole document body."""
        sections = build_sections_from_text(
            text, h1_rules, h2_rules,
            drop_empty=drop_empty, ensure_h1_sections=ensure_h1_sections,
        )
        return cls(sections, override_pairs=override_pairs)

    @classmethod
    def from_selection(
        cls,
        text: str,
        h1_rules: Sequence[ClassificationRule],
        h2_rules: Sequence[ClassificationRule],
        *,
        override_pairs: Sequence[OverridePair] = (),
    ) -> SectionStore:
        """Build a store from a selected range: at most one H2 block.

        The selection is split on ``\\n`` only and not otherwise cleaned.
        """
        sections = build_sections(
            text.split("\n"), h1_rules, h2_rules, limit_to_one_h2=True,
        )
        return cls(sections, override_pairs=override_pairs)

    # ------------------------------------------------------------------
    # Container protocol
    # ------------------------------------------------------------------

    @property
    def sections(self) -> tuple[Section, ...]:
        return tuple(self._sections)

    def __len__(self) -> int:
        return len(self._sections)

    def __iter__(self) -> Iterator[Section]:
        return iter(tuple(self._sections))

    def __repr__(self) -> str:
        return f"SectionStore({len(self._sections)} sections)"

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _matching(self, h1: str | None, h2: str | None = None) -> list[Section]:
        return [
            s for s in self._sections
            if labels_equal(s.headline1, h1)
            and (h2 is None or labels_equal(s.headline2, h2))
        ]

    def unique_headline1s(self) -> list[str]:
        """Distinct non-empty ``headline1`` values, first-occurrence order."""
        seen: dict[str, str] = {}
        for s in self._sections:
            if s.headline1:
                seen.setdefault(canonical_label(s.headline1), s.headline1)
        return list(seen.values())

    def headline2s_for(self, h1: str) -> list[str]:
        """Distinct ``headline2`` values under *h1*, first-occurrence order."""
        seen: dict[str, str] = {}
        for s in self._matching(h1):
            if s.headline2:
                seen.setdefault(canonical_label(s.headline2), s.headline2)
        return list(seen.values())

    def sections_for(self, h1: str) -> list[Section]:
        """All Sections under *h1*, store order."""
        return self._matching(h1)

    def content_for(self, h1: str | None, h2: str) -> str | None:
        """Text of the first ``(h1, h2)`` Section; None when there is none.

        An existing Section with empty text yields ``""``.
        """
        for s in self._matching(h1, h2):
            return s.text
        return None

    def augmented_content_for(self, h1: str) -> str | None:
        """Every Section under *h1* as ``headline2\\ntext``, blank-line joined.

        Returns None (and logs a warning) when *h1* owns no Sections.
        """
        sections = self._matching(h1)
        if not sections:
            log.warning("no sections for patient %r", h1)
            return None
        blocks = []
        for s in sections:
            body = s.text[:-1] if s.text.endswith("\n") else s.text
            blocks.append(f"{s.headline2}\n{body}")
        return "\n\n".join(blocks)

    def headline_pairs(self) -> list[HeadlinePair]:
        """``(headline1, headline2)`` for every Section, store order."""
        return [HeadlinePair(s.headline1, s.headline2) for s in self._sections]

    def headline_pairs_with_content(self) -> list[HeadlinePair]:
        """Like :meth:`headline_pairs` with trimmed text as ``content``."""
        return [
            HeadlinePair(s.headline1, s.headline2, s.text.strip())
            for s in self._sections
        ]

    def has_headline2(self, h2: str) -> bool:
        """True if any Section, for any patient, is labelled *h2*."""
        return any(labels_equal(s.headline2, h2) for s in self._sections)

    def headline1_for(self, h2: str) -> str | None:
        """Patient of the first Section labelled *h2*."""
        for s in self._sections:
            if labels_equal(s.headline2, h2):
                return s.headline1
        return None

    def first_headline2_for(self, h1: str) -> str | None:
        """Label of the first Section under *h1*."""
        for s in self._matching(h1):
            return s.headline2
        return None

    def first_text_for(self, h2: str) -> str | None:
        """Text of the first Section labelled *h2*, any patient."""
        for s in self._sections:
            if labels_equal(s.headline2, h2):
                return s.text
        return None

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def is_override_pair(self, from_h2: str | None, to_h2: str) -> bool:
        if from_h2 is None:
            return False
        return any(
            labels_equal(p.from_label, from_h2) and labels_equal(p.to_label, to_h2)
            for p in self.override_pairs
        )

    def _stored_headline1(self, h1: str | None) -> str | None:
        for s in self._sections:
            if labels_equal(s.headline1, h1):
                return s.headline1
        return h1

    def _remove(self, h1: str | None, h2: str) -> int:
        before = len(self._sections)
        self._sections = [
            s for s in self._sections
            if not (labels_equal(s.headline1, h1) and labels_equal(s.headline2, h2))
        ]
        return before - len(self._sections)

    def create_or_update(
        self,
        new_text: str,
        h1: str | None,
        to_h2: str,
        from_h2: str | None = None,
    ) -> MergeOutcome:
        """Merge *new_text* into the store as ``(h1, to_h2)``.

        Precedence, first match wins:

        1. A leading echo of *to_h2* in *new_text* is stripped.
        2. ``from_h2 == to_h2``: every ``(h1, from_h2)`` Section is
           replaced by the new one (``"replaced"``).
        3. ``(from_h2, to_h2)`` is an override pair: ``(h1, to_h2)``
           Sections are replaced, ``from_h2`` Sections kept (``"override"``).
        4. The exact ``(h1, to_h2, text)`` triple exists: no-op
           (``"unchanged"``).
        5. Otherwise the Section is appended (``"appended"``).

        A patient already in the store keeps its stored ``headline1``
        spelling. Non-string *new_text* is merged as its ``str()`` form
        (``None`` as ``""``). Never raises.
        """
        if not isinstance(new_text, str):
            log.warning("non-string text for %r/%r: %r", h1, to_h2, type(new_text))
            new_text = "" if new_text is None else str(new_text)
        h1 = self._stored_headline1(h1)
        cleaned = strip_label_echo(new_text, to_h2)
        new = Section(headline1=h1, headline2=to_h2, text=cleaned)

        if from_h2 and labels_equal(from_h2, to_h2):
            removed = self._remove(h1, from_h2)
            self._sections.append(new)
            log.debug("replaced %d section(s) %r/%r", removed, h1, to_h2)
            return "replaced"

        if self.is_override_pair(from_h2, to_h2):
            removed = self._remove(h1, to_h2)
            self._sections.append(new)
            log.debug(
                "override %r -> %r for %r, removed %d", from_h2, to_h2, h1, removed,
            )
            return "override"

        for s in self._matching(h1, to_h2):
            if s.text == cleaned:
                log.debug("identical section %r/%r already present", h1, to_h2)
                return "unchanged"

        self._sections.append(new)
        log.debug("appended section %r/%r", h1, to_h2)
        return "appended"

    # ------------------------------------------------------------------
    # Reorder + serialize
    # ------------------------------------------------------------------

    def group_and_reorder(
        self,
        priority: Sequence[str] | None = None,
        *,
        mode: ReorderMode = "priority",
        primary_label: str = PRIMARY_RECORD_LABEL,
    ) -> SectionStore:
        """Return a new store grouped by patient and reordered."""
        reordered = group_and_reorder(
            self._sections, priority=priority, mode=mode, primary_label=primary_label,
        )
        return SectionStore(reordered, override_pairs=self.override_pairs)

    def to_flat_text(self) -> str:
        return to_flat_text(self._sections)

    def to_grouped_text(self) -> str:
        return to_grouped_text(self._sections)

    def process_and_update(
        self,
        new_text: str,
        h1: str | None,
        to_h2: str,
        from_h2: str | None = None,
        *,
        primary_label: str = PRIMARY_RECORD_LABEL,
    ) -> str:
        """Merge, float the primary record, and return the flat document text.

        The store itself is left in the merged, regrouped order.
        """
        self.create_or_update(new_text, h1, to_h2, from_h2)
        self._sections = group_and_reorder(
            self._sections, mode="primary_record", primary_label=primary_label,
        )
        return self.to_flat_text()
