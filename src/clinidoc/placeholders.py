"""Placeholder rules expanded by the line preprocessor.

A placeholder is literal text such as ``{Nome}`` matched case-insensitively.
Replacements are fixed strings or functions of the patient name tracked
from the most recent ``Nome:`` line.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from datetime import datetime

from clinidoc.section_types import PlaceholderRule

CLOSING_SENTENCE = "À disposição para quaisquer outros esclarecimentos,"

# Lower-case shorthand -> canonical document-type label.
LABEL_SHORTCUTS: dict[str, str] = {
    "{prontuário médico}": "Prontuário Médico",
    "{encaminhamento}": "Encaminhamento",
    "{laudo de mapeamento de retina}": "Laudo de Mapeamento de Retina",
    "{relatório médico}": "Relatório Médico",
    "{laudo de tomografia de coerência óptica}": "Laudo de Tomografia de Coerência Óptica",
    "{laudo de angiografia fluoresceínica digital}": "Laudo de Angiografia Fluoresceínica Digital",
    "{laudo de retinografia colorida digital}": "Laudo de Retinografia Colorida Digital",
}

# Placeholder text -> key in the ``placeholder_values`` config mapping.
CONFIGURED_PLACEHOLDERS: dict[str, str] = {
    "{Secretária do consultório 13}": "secretary13",
    "{Secretária do consultório 12}": "secretary12",
}


def first_name(patient_name: str | None) -> str:
    """``{Nome}``: the first word of the tracked name, or ``"Nome"``."""
    if not patient_name:
        return "Nome"
    return patient_name.split(" ")[0]


def full_name(patient_name: str | None) -> str:
    """``{Nome Completo}``: the tracked name, or ``"Nome Completo"``."""
    return patient_name or "Nome Completo"


def rounded_clock(now: datetime | None = None) -> str:
    """Current time rounded up to the next quarter hour, as ``HH:MM``.

    Minute 60 wraps to ``00`` and the hour rolls over modulo 24.
    """
    now = now or datetime.now()
    hours = now.hour
    minutes = -(-now.minute // 15) * 15
    if minutes == 60:
        minutes = 0
        hours = (hours + 1) % 24
    return f"{hours:02d}:{minutes:02d}"


def default_placeholder_rules(
    values: Mapping[str, str] | None = None,
) -> list[PlaceholderRule]:
    """Build the default placeholder list.

    Args:
        values: Fixed values for configured placeholders (e.g. the
            ``secretary13`` name). Missing keys expand to ``""``.
    """
    values = values or {}
    rules = [
        PlaceholderRule("{Nome}", first_name),
        PlaceholderRule("{Nome Completo}", full_name),
    ]
    rules.extend(
        PlaceholderRule(text, values.get(key, ""))
        for text, key in CONFIGURED_PLACEHOLDERS.items()
    )
    rules.append(PlaceholderRule("{HH:MM}", lambda _name: rounded_clock()))
    rules.append(PlaceholderRule("{À}", CLOSING_SENTENCE))
    rules.extend(PlaceholderRule(k, v) for k, v in LABEL_SHORTCUTS.items())
    return rules


def apply_placeholders(
    line: str, rules: Sequence[PlaceholderRule],
    patient_name: str | None,
) -> str:
    """Replace every occurrence of each rule's text in *line*, ignoring case.

    Rules apply in list order, each to the output of the previous one.
    """
    for rule in rules:
        pattern = re.compile(re.escape(rule.match), re.IGNORECASE)
        if pattern.search(line) is None:
            continue
        replacement = rule.resolve(patient_name)
        line = pattern.sub(lambda _m: replacement, line)
    return line
