"""Batch merge orchestration over a live :class:`SectionStore`.

Edits are applied edit-outer, patient-inner, in strict input order: a
later edit sees (and may supersede) what an earlier one merged. A target
whose generation step fails is logged, recorded and skipped; the batch
only fails as a whole when targets were attempted and none succeeded.

The language model is any ``Callable[[str], str]``; nothing here talks
to the network.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeAlias

from clinidoc.normalization import canonical_label
from clinidoc.section_store import SectionStore
from clinidoc.section_types import (
    BatchReport,
    BatchRequest,
    EditRequest,
    MergeOutcome,
    PromptTemplate,
    TargetFailure,
)
from clinidoc.serializer import to_grouped_text

log = logging.getLogger(__name__)

Generator: TypeAlias = Callable[[str], str]


class BatchError(RuntimeError):
    """Raised when a batch attempted targets and none of them succeeded."""


@dataclass(frozen=True, slots=True)
class BrushPair:
    """Run the prompt titled ``prompt_prefix`` when ``from_label`` exists."""

    prompt_prefix: str
    from_label: str


# ---------------------------------------------------------------------------
# Context and prompt assembly
# ---------------------------------------------------------------------------


def edit_context(store: SectionStore, headline1: str, edit: EditRequest) -> str | None:
    """Patient context for *edit*: all sections, or the ``from_label`` one."""
    if edit.use_aggregated_context:
        return store.augmented_content_for(headline1)
    if edit.from_label is None:
        return None
    return store.content_for(headline1, edit.from_label)


def build_prompt(prompt: str, headline1: str, context: str) -> str:
    return f"{prompt}\n\n{headline1}\n\n{context}"


def _field(obj: Mapping[str, Any], snake: str, camel: str, default: Any = None) -> Any:
    if snake in obj:
        return obj[snake]
    return obj.get(camel, default)


def requests_from_payload(payload: Any) -> list[BatchRequest]:
    """Decode batch requests from JSON (snake_case or camelCase keys).

    Accepts one request object or a list of them.

    Raises:
        ValueError: If the payload does not have the request shape.
    """
    items = payload if isinstance(payload, list) else [payload]
    requests: list[BatchRequest] = []
    for item in items:
        if not isinstance(item, dict):
            raise ValueError("batch request must be a JSON object")
        patients = _field(item, "target_patients", "targetPatients", [])
        edits = _field(item, "edits", "edits", [])
        if not isinstance(patients, list) or not isinstance(edits, list):
            raise ValueError("target_patients and edits must be lists")
        parsed: list[EditRequest] = []
        for edit in edits:
            if not isinstance(edit, dict):
                raise ValueError("each edit must be a JSON object")
            to_label = _field(edit, "to_label", "toLabel")
            if not to_label:
                raise ValueError("edit is missing to_label")
            generated = _field(edit, "generated_text", "generatedText")
            if generated is not None and not isinstance(generated, str):
                raise ValueError("generated_text must be a string or null")
            parsed.append(EditRequest(
                from_label=_field(edit, "from_label", "fromLabel"),
                to_label=str(to_label),
                generated_text=generated,
                prompt=str(_field(edit, "prompt", "prompt", "")),
                use_aggregated_context=bool(
                    _field(edit, "use_aggregated_context", "useAggregatedContext", False)
                ),
            ))
        requests.append(BatchRequest(
            target_patients=tuple(str(p) for p in patients),
            edits=tuple(parsed),
        ))
    return requests


# ---------------------------------------------------------------------------
# Batch loop
# ---------------------------------------------------------------------------


def apply_batch(
    store: SectionStore,
    requests: BatchRequest | Sequence[BatchRequest],
    generator: Generator | None = None,
    *,
    priority: Sequence[str] | None = None,
) -> BatchReport:
    """Apply every edit of *requests* to *store*, in order.

    Edits carrying ``generated_text`` merge it directly. Otherwise the
    edit's prompt plus the patient context goes to *generator*; targets
    whose context is absent or blank are skipped without a call.

    Args:
        store: Live store, mutated in place.
        requests: One request or an ordered list of them.
        generator: Language-model call for edits without text.
        priority: H2 labels placed first in the returned text.

    Returns:
        Counts, per-target failures, merge outcomes and the regrouped
        document text.

    Raises:
        BatchError: If targets were attempted and none succeeded.
    """
    if isinstance(requests, BatchRequest):
        requests = [requests]

    completed = 0
    skipped = 0
    failures: list[TargetFailure] = []
    outcomes: list[MergeOutcome] = []

    for request in requests:
        for edit in request.edits:
            for headline1 in request.target_patients:
                text = edit.generated_text
                if text is None:
                    context = edit_context(store, headline1, edit)
                    if context is None or context.strip() == "":
                        log.info(
                            "skipping %r / %r: no context", headline1, edit.to_label,
                        )
                        skipped += 1
                        continue
                    if generator is None:
                        failures.append(TargetFailure(
                            headline1, edit.to_label, "no generator configured",
                        ))
                        continue
                    try:
                        text = generator(build_prompt(edit.prompt, headline1, context))
                    except Exception as exc:
                        log.warning(
                            "generation failed for %r / %r: %s",
                            headline1, edit.to_label, exc,
                        )
                        failures.append(TargetFailure(
                            headline1, edit.to_label, f"{type(exc).__name__}: {exc}",
                        ))
                        continue
                    if not isinstance(text, str):
                        log.warning(
                            "generator returned %s for %r / %r",
                            type(text).__name__, headline1, edit.to_label,
                        )
                        failures.append(TargetFailure(
                            headline1, edit.to_label,
                            f"generator returned {type(text).__name__}, not text",
                        ))
                        continue
                outcomes.append(store.create_or_update(
                    text, headline1, edit.to_label, edit.from_label,
                ))
                completed += 1

    if completed == 0 and failures:
        first = failures[0]
        raise BatchError(
            f"no targets succeeded; {first.headline1} / {first.to_label}: {first.message}"
        )

    reordered = store.group_and_reorder(priority)
    log.info(
        "batch done: %d completed, %d skipped, %d failed",
        completed, skipped, len(failures),
    )
    return BatchReport(
        completed=completed,
        skipped=skipped,
        failures=tuple(failures),
        outcomes=tuple(outcomes),
        text=to_grouped_text(reordered.sections),
        metadata={"requests": len(requests)},
    )


# ---------------------------------------------------------------------------
# Brush flow
# ---------------------------------------------------------------------------


def parse_brush_pairs(raw: str | None) -> list[BrushPair]:
    """Parse ``"prefix, label; prefix, label"`` into :class:`BrushPair` items.

    Entries without a comma are ignored.
    """
    pairs: list[BrushPair] = []
    if not raw or not raw.strip():
        return pairs
    for entry in raw.split(";"):
        if not entry.strip():
            continue
        prefix, sep, label = entry.partition(",")
        if not sep:
            log.warning("ignoring brush pair without a label: %r", entry.strip())
            continue
        pairs.append(BrushPair(prefix.strip(), label.split(",")[0].strip()))
    return pairs


def _prompt_map(
    prompts: Mapping[str, PromptTemplate] | Sequence[PromptTemplate],
) -> Mapping[str, PromptTemplate]:
    if isinstance(prompts, Mapping):
        return prompts
    return {p.title: p for p in prompts}


def plan_brush_edits(
    store: SectionStore,
    pairs: Sequence[BrushPair],
    prompts: Mapping[str, PromptTemplate] | Sequence[PromptTemplate],
) -> BatchRequest:
    """Turn brush pairs into a batch request for the document's only patient.

    A pair contributes an edit when its ``from_label`` exists under the
    patient and a prompt titled ``prompt_prefix`` is known.

    Raises:
        BatchError: If the document does not have exactly one patient, or
            no pair matched.
    """
    patients = store.unique_headline1s()
    if len(patients) != 1:
        raise BatchError(f"brush needs exactly one patient, found {len(patients)}")
    headline1 = patients[0]
    by_title = _prompt_map(prompts)
    present = {canonical_label(h2) for h2 in store.headline2s_for(headline1)}

    edits: list[EditRequest] = []
    for pair in pairs:
        if canonical_label(pair.from_label) not in present:
            continue
        prompt = by_title.get(pair.prompt_prefix)
        if prompt is None:
            log.debug("no prompt titled %r", pair.prompt_prefix)
            continue
        edits.append(EditRequest(
            from_label=pair.from_label,
            to_label=prompt.to_label,
            prompt=prompt.content,
            use_aggregated_context=True,
        ))
    if not edits:
        raise BatchError(f"none of the configured brush sections exist for {headline1}")
    return BatchRequest(target_patients=(headline1,), edits=tuple(edits))


def run_brush(
    store: SectionStore,
    pairs: Sequence[BrushPair],
    prompts: Mapping[str, PromptTemplate] | Sequence[PromptTemplate],
    generator: Generator,
    *,
    priority: Sequence[str] | None = None,
) -> BatchReport:
    """Plan and apply the brush edits for the single patient in *store*."""
    request = plan_brush_edits(store, pairs, prompts)
    return apply_batch(store, request, generator, priority=priority)
