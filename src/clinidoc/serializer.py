"""Serialize Sections back into a flat line stream."""

from __future__ import annotations

from collections.abc import Sequence

from clinidoc.reorder import group_by_headline1
from clinidoc.section_types import Section


def _body(text: str) -> str:
    return text[:-1] if text.endswith("\n") else text


def render_section(section: Section) -> str:
    """``headline1``, ``headline2`` and the body, one per line."""
    return f"{section.headline1 or ''}\n{section.headline2}\n{_body(section.text)}"


def to_flat_text(sections: Sequence[Section]) -> str:
    """Every Section as its own block, blocks separated by one blank line.

    The H1 is repeated for each Section, which keeps every block
    self-describing for a re-parse.
    """
    return "\n\n".join(render_section(s) for s in sections)


def to_grouped_text(sections: Sequence[Section]) -> str:
    """Each H1 once per group followed by its ``headline2``/text pairs.

    Groups are separated by a blank line; the result is trimmed.
    """
    parts: list[str] = []
    for headline1, group in group_by_headline1(sections).items():
        parts.append(f"{headline1 or ''}\n")
        for section in group:
            parts.append(f"{section.headline2}\n")
            if section.text:
                parts.append(f"{_body(section.text)}\n")
        parts.append("\n")
    return "".join(parts).strip()
