"""Model configuration: override pairs, priorities, brush pairs, prompts.

A missing key falls back to the default deployment values; an empty list
disables the feature (no override pairs, no priority reordering). Files
are JSON objects::

    {
      "override_pairs": [{"from_label": "...", "to_label": "..."}],
      "priority_headlines": ["Prontuário Médico", ...],
      "primary_label": "Prontuário Médico",
      "brush_pairs": "Prontuário Médico, Prontuário Médico; ...",
      "placeholder_values": {"secretary13": "..."},
      "prompts": [{"title": "...", "to_label": "...", "content": "..."}]
    }
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from clinidoc.io_utils import load_json, save_json
from clinidoc.section_types import PRIMARY_RECORD_LABEL, OverridePair, PromptTemplate


class ConfigError(ValueError):
    """Raised when a configuration payload has the wrong shape."""


DEFAULT_OVERRIDE_PAIRS: tuple[OverridePair, ...] = (
    OverridePair("Prontuário Médico", "Prescrição de Óculos"),
)

DEFAULT_PRIORITY_HEADLINES: tuple[str, ...] = (
    "Prontuário Médico",
    "Laudo de Mapeamento de Retina",
)

DEFAULT_BRUSH_PAIRS = (
    "Prontuário Médico, Prontuário Médico; "
    "Prontuário Médico, Prescrição de Óculos; "
    "Laudo de Mapeamento de Retina, Laudo de Mapeamento de Retina"
)


@dataclass(frozen=True, slots=True)
class ModelConfig:
    """Everything the section model reads from the host environment."""

    override_pairs: tuple[OverridePair, ...] = DEFAULT_OVERRIDE_PAIRS
    priority_headlines: tuple[str, ...] = DEFAULT_PRIORITY_HEADLINES
    primary_label: str = PRIMARY_RECORD_LABEL
    brush_pairs: str = DEFAULT_BRUSH_PAIRS
    placeholder_values: Mapping[str, str] = field(default_factory=dict)
    prompts: tuple[PromptTemplate, ...] = ()

    def prompt_for(self, title: str) -> PromptTemplate | None:
        """Prompt whose title matches exactly, or None."""
        for prompt in self.prompts:
            if prompt.title == title:
                return prompt
        return None


def _str_list(payload: Mapping[str, Any], key: str) -> list[str]:
    value = payload[key]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{key} must be a list of strings")
    return value


def _object_list(payload: Mapping[str, Any], key: str) -> list[dict[str, Any]]:
    value = payload[key]
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise ConfigError(f"{key} must be a list of objects")
    return value


def config_from_dict(payload: Any) -> ModelConfig:
    """Build a :class:`ModelConfig` from a decoded JSON payload.

    Raises:
        ConfigError: If *payload* is not an object or a field has the
            wrong type.
    """
    if not isinstance(payload, dict):
        raise ConfigError("configuration payload must be a JSON object")

    kwargs: dict[str, Any] = {}
    if "override_pairs" in payload:
        try:
            kwargs["override_pairs"] = tuple(
                OverridePair(str(p["from_label"]), str(p["to_label"]))
                for p in _object_list(payload, "override_pairs")
            )
        except KeyError as exc:
            raise ConfigError(f"override pair missing {exc.args[0]!r}") from exc
    if "priority_headlines" in payload:
        kwargs["priority_headlines"] = tuple(_str_list(payload, "priority_headlines"))
    if "primary_label" in payload:
        kwargs["primary_label"] = str(payload["primary_label"])
    if "brush_pairs" in payload:
        kwargs["brush_pairs"] = str(payload["brush_pairs"])
    if "placeholder_values" in payload:
        values = payload["placeholder_values"]
        if not isinstance(values, dict):
            raise ConfigError("placeholder_values must be an object")
        kwargs["placeholder_values"] = {str(k): str(v) for k, v in values.items()}
    if "prompts" in payload:
        try:
            kwargs["prompts"] = tuple(
                PromptTemplate(
                    title=str(p["title"]),
                    to_label=str(p["to_label"]),
                    content=str(p["content"]),
                    from_label=str(p.get("from_label", "")),
                )
                for p in _object_list(payload, "prompts")
            )
        except KeyError as exc:
            raise ConfigError(f"prompt missing {exc.args[0]!r}") from exc
    return ModelConfig(**kwargs)


def config_to_dict(config: ModelConfig) -> dict[str, Any]:
    """Inverse of :func:`config_from_dict`."""
    return {
        "override_pairs": [
            {"from_label": p.from_label, "to_label": p.to_label}
            for p in config.override_pairs
        ],
        "priority_headlines": list(config.priority_headlines),
        "primary_label": config.primary_label,
        "brush_pairs": config.brush_pairs,
        "placeholder_values": dict(config.placeholder_values),
        "prompts": [
            {
                "title": p.title,
                "to_label": p.to_label,
                "content": p.content,
                "from_label": p.from_label,
            }
            for p in config.prompts
        ],
    }


def load_config(path: Path | None) -> ModelConfig:
    """Load configuration from *path*; None yields the defaults."""
    if path is None:
        return ModelConfig()
    return config_from_dict(load_json(path))


def save_config(config: ModelConfig, path: Path) -> None:
    save_json(config_to_dict(config), path)
