"""Default whole-paragraph rule set for ophthalmology clinical documents.

Order matters: eye-measurement lines are claimed before the H1 rule so a
line such as ``OD: ...`` is never a patient boundary, and the list ends
with an unconditional catch-all.
"""

from __future__ import annotations

import re

from clinidoc.classifier import (
    always,
    any_of,
    full_pattern,
    keyword_prefix,
    keyword_prefix_exact,
    rules_of_kind,
    suffix,
)
from clinidoc.section_types import ClassificationRule

# ── Keyword tables ──────────────────────────────────────────────────────

MEASUREMENT_KEYWORDS: tuple[str, ...] = ("OD:", "OE:", "AO:", "ADIÇÃO:")

HEADLINE1_KEYWORDS: tuple[str, ...] = ("NOME:", "REF:", "PACIENTE:")

HEADLINE2_KEYWORDS: tuple[str, ...] = (
    "PRONTUÁRIO", "LAUDO", "RECEITUÁRIO", "PRESCRIÇÃO", "RECEITA",
    "RELATÓRIO", "ATESTADO", "SOLICITAÇÃO", "ORIENTAÇÃO", "ENCAMINHAMENTO",
    "RECOMENDAÇÕES", "DESCRIÇÃO", "GUIA", "JUSTIFICATIVA", "TRANSCRIÇÃO",
    "DOCUMENTO INDEFINIDO",
)

SECTION_LABEL_KEYWORDS: tuple[str, ...] = (
    "História", "Exame Físico", "Exames Complementares",
    "Hipótese Diagnóstica", "Conclusão", "Conduta", "Prezad", "Uso",
    "Orientações",
)

EYE_SIDE_KEYWORDS: tuple[str, ...] = ("OLHO DIREITO", "OLHO ESQUERDO")

CLOSING_KEYWORDS: tuple[str, ...] = ("À disposição", "Auxiliar")

# ── Patterns ────────────────────────────────────────────────────────────

# ICD-10 code with its description, e.g. "H10.0 (Conjuntivite mucopurulenta)"
RE_ICD_CODE: re.Pattern[str] = re.compile(r"[A-Z][0-9]{2}[.][0-9]\s*\(.*\)")

# Medication line, e.g. "Simbrinza (colírio de uso contínuo)"
RE_MEDICATION: re.Pattern[str] = re.compile(
    r"[a-zA-ZçÇãÃõÕáÁéÉíÍóÓúÚâÂêÊîÎôÔûÛàÀèÈìÌòÒùÙ].*\)", re.DOTALL,
)

# All-caps label ending in a colon, e.g. "ACUIDADE VISUAL SEM CORREÇÃO:"
RE_CAPS_LABEL: re.Pattern[str] = re.compile(
    r"[A-ZÀ-Ÿ0-9\s:/çÇãÃõÕáÁéÉíÍóÓúÚâÂêÊîÎôÔûÛàÀèÈìÌòÒùÙ]+:",
)


def _is_caps_label(line: str) -> bool:
    text = line.strip()
    if text.startswith("CID"):
        return False
    return RE_CAPS_LABEL.fullmatch(text) is not None or any(
        k in text for k in EYE_SIDE_KEYWORDS
    )


def _is_icd_heading(line: str) -> bool:
    text = line.strip()
    return text.startswith("CID") and text.endswith(":")


# ── Rule set ────────────────────────────────────────────────────────────


def default_paragraph_rules() -> list[ClassificationRule]:
    """Return a fresh copy of the default ordered rule list."""
    return [
        ClassificationRule(
            name="measurement",
            kind="NORMAL",
            condition=any_of(
                keyword_prefix(MEASUREMENT_KEYWORDS, strip=True), suffix(";"),
            ),
            keywords=MEASUREMENT_KEYWORDS,
            style="measurement",
        ),
        ClassificationRule(
            name="patient",
            kind="H1",
            condition=keyword_prefix(HEADLINE1_KEYWORDS),
            keywords=HEADLINE1_KEYWORDS,
            requires_break=True,
            style="heading1",
        ),
        ClassificationRule(
            name="document_type",
            kind="H2",
            condition=keyword_prefix(HEADLINE2_KEYWORDS),
            keywords=HEADLINE2_KEYWORDS,
            style="heading2",
        ),
        ClassificationRule(
            name="section_label",
            kind="NORMAL",
            condition=keyword_prefix_exact(SECTION_LABEL_KEYWORDS),
            keywords=SECTION_LABEL_KEYWORDS,
            style="section_label",
        ),
        ClassificationRule(
            name="icd_code",
            kind="NORMAL",
            condition=full_pattern(RE_ICD_CODE),
            style="icd_code",
        ),
        ClassificationRule(
            name="medication",
            kind="NORMAL",
            condition=full_pattern(RE_MEDICATION),
            style="medication",
        ),
        ClassificationRule(
            name="caps_label",
            kind="NORMAL",
            condition=_is_caps_label,
            keywords=EYE_SIDE_KEYWORDS,
            style="caps_label",
        ),
        ClassificationRule(
            name="composition",
            kind="NORMAL",
            condition=keyword_prefix_exact(("composição:",)),
            keywords=("composição:",),
            style="composition",
        ),
        ClassificationRule(
            name="icd_heading",
            kind="NORMAL",
            condition=_is_icd_heading,
            keywords=("CID",),
            style="icd_heading",
        ),
        ClassificationRule(
            name="closing",
            kind="NORMAL",
            condition=keyword_prefix_exact(CLOSING_KEYWORDS, strip=True),
            keywords=CLOSING_KEYWORDS,
            style="closing",
        ),
        ClassificationRule(
            name="body",
            kind="NORMAL",
            condition=always,
            style="body",
        ),
    ]


def headline1_rules() -> list[ClassificationRule]:
    """Default rules tagged H1."""
    return rules_of_kind(default_paragraph_rules(), "H1")


def headline2_rules() -> list[ClassificationRule]:
    """Default rules tagged H2."""
    return rules_of_kind(default_paragraph_rules(), "H2")
