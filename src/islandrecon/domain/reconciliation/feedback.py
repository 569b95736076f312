"""Turn a run's exceptions into a draft override layer for manual triage."""

from __future__ import annotations

from typing import TYPE_CHECKING

from islandrecon.domain.model import Correction, ExceptionReason, OverrideLayer, RecordKind

from .record_ops import ops_for

if TYPE_CHECKING:
    from .pipeline import ReconciliationResult


def draft_review_layers(
    result: ReconciliationResult,
    *,
    name: str,
    sequence: int | None = None,
) -> tuple[OverrideLayer, ...]:
    """Return one draft layer per record kind with a stub per open field.

    Stubs carry ``None`` and mention the current value in the justification;
    curators replace both before feeding the layer back into the next run.
    Unmatched checklist names have no record to correct and are skipped.
    """

    corrections: dict[RecordKind, list[Correction]] = {kind: [] for kind in RecordKind}
    for record in result.exceptions:
        if record.reason is ExceptionReason.NO_TAXONOMIC_MATCH:
            continue
        ops = ops_for(record.record_kind)
        for field_name in record.fields:
            corrections[record.record_kind].append(
                Correction(
                    target_id=record.record_id,
                    field=field_name,
                    new_value=None,
                    justification=(
                        f"pending review: {record.reason.value}; "
                        f"current value {ops.get(record.record, field_name)!r}"
                    ),
                )
            )

    layers: list[OverrideLayer] = []
    for kind in RecordKind:
        if not corrections[kind]:
            continue
        layers.append(
            OverrideLayer(
                name=f"{name}-{kind.value}",
                kind=kind,
                corrections=tuple(corrections[kind]),
                sequence=None if sequence is None else sequence + len(layers),
                description="Draft generated from reconciliation exceptions",
            )
        )
    return tuple(layers)
