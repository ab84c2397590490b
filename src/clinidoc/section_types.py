"""Core types for the document section model.

A document is a flat stream of lines. Each line is either a patient
boundary (H1), a document-type boundary (H2) or body text. Parsing turns
the stream into an ordered list of :class:`Section` records keyed by
``(headline1, headline2)``; serialization turns them back into lines.

Pure data -- no parsing or I/O here.
"""
from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Literal, TypeAlias


HeadingKind: TypeAlias = Literal["H1", "H2", "NORMAL"]
MergeOutcome: TypeAlias = Literal["replaced", "override", "unchanged", "appended"]
Replacement: TypeAlias = str | Callable[[str | None], str]


# ---------------------------------------------------------------------------
# Synthetic labels
# ---------------------------------------------------------------------------

# H2 for the first bare paragraph directly after an H1.
TITLE_LABEL = "Título"
# H2 for a bare paragraph with no H2 context at all.
UNDEFINED_DOCUMENT_LABEL = "Documento Indefinido"
# H1 invented when body lines appear before any patient boundary.
UNDEFINED_PATIENT_LABEL = "Nome: PACIENTE INDEFINIDO"
# Canonical prefix of a patient-name H1.
NAME_PREFIX = "Nome: "
# Legacy "primary record" label floated to the top of each patient group.
PRIMARY_RECORD_LABEL = "Prontuário Médico"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Section:
    """One ``(headline1, headline2, text)`` record.

    ``text`` holds the body lines, each newline-terminated. It never
    contains the H2 label itself.
    """

    headline1: str | None
    headline2: str
    text: str = ""


@dataclass(frozen=True, slots=True)
class HeadlinePair:
    """An ``(headline1, headline2)`` pair, optionally with trimmed content."""

    headline1: str | None
    headline2: str
    content: str | None = None


@dataclass(frozen=True, slots=True)
class ClassificationRule:
    """A line predicate tagged with the heading kind it assigns.

    ``condition`` receives the raw line; ``keywords`` is informational
    (the predicate factories in :mod:`clinidoc.classifier` close over it).
    ``requires_break`` travels with the classification result for the
    paragraph formatter. ``style`` is an opaque tag for the renderer.
    """

    name: str
    kind: HeadingKind
    condition: Callable[[str], bool]
    keywords: tuple[str, ...] = ()
    requires_break: bool = False
    style: str = ""

    def matches(self, line: str) -> bool:
        """True if this rule claims *line*."""
        return bool(self.condition(line))


@dataclass(frozen=True, slots=True)
class PlaceholderRule:
    """Case-insensitive placeholder substitution.

    ``replacement`` is a fixed string or a function of the currently
    tracked patient name (``None`` when no ``Nome:`` line was seen).
    """

    match: str
    replacement: Replacement

    def resolve(self, patient_name: str | None) -> str:
        if callable(self.replacement):
            return self.replacement(patient_name)
        return self.replacement


@dataclass(frozen=True, slots=True)
class OverridePair:
    """Updating ``from_label`` refreshes ``to_label`` and keeps ``from_label``."""

    from_label: str
    to_label: str


@dataclass(frozen=True, slots=True)
class ClassifiedLine:
    """A line plus the heading kind and rule that claimed it."""

    text: str
    kind: HeadingKind | None = None
    rule_name: str = ""


@dataclass(frozen=True, slots=True)
class ParagraphPlan:
    """Logical formatting decision for one output paragraph."""

    text: str
    kind: HeadingKind
    rule_name: str
    style: str
    page_break: bool = False
    repeated_headline1: bool = False


@dataclass(frozen=True, slots=True)
class PromptTemplate:
    """A named generation prompt mapping one category to another."""

    title: str
    to_label: str
    content: str
    from_label: str = ""


@dataclass(frozen=True, slots=True)
class EditRequest:
    """One edit of a batch merge request.

    When ``generated_text`` is ``None`` the batch layer calls the
    generator with ``prompt`` plus the patient context.
    """

    from_label: str | None
    to_label: str
    generated_text: str | None = None
    prompt: str = ""
    use_aggregated_context: bool = False


@dataclass(frozen=True, slots=True)
class BatchRequest:
    """Edits applied to every patient in ``target_patients``."""

    target_patients: tuple[str, ...]
    edits: tuple[EditRequest, ...]


@dataclass(frozen=True, slots=True)
class TargetFailure:
    """A skipped ``(patient, category)`` target with a short reason."""

    headline1: str
    to_label: str
    message: str


@dataclass(frozen=True, slots=True)
class BatchReport:
    """Result of a batch merge: partial success is normal."""

    completed: int
    skipped: int
    failures: tuple[TargetFailure, ...]
    outcomes: tuple[MergeOutcome, ...]
    text: str
    metadata: Mapping[str, object] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """True if at least one target was merged."""
        return self.completed > 0
