"""Ordered override layers with field-level provenance.

Layers are a total order and are applied strictly one after another onto a
fresh copy of the base records. The last layer to touch an (id, field) pair
sets the live value; earlier values survive only in the provenance log.

Failures never abort a layer: a correction against an unknown id or field, or
with a value the field cannot hold, is collected as a
``LayerApplicationError`` and the remaining corrections still apply.
Corrections inside one layer are independent of their row order: if a layer
sets the same (id, field) to different values, all of them are rejected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from islandrecon.domain.model import (
    LayerApplicationError,
    LayerErrorReason,
    LayerOrderError,
    ProvenanceEntry,
    ProvenanceLog,
    SchemaViolationError,
)

from .record_ops import ops_for

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from islandrecon.domain.model import Correction, OverrideLayer, RecordKind

    from .record_ops import RecordOps

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OverrideResult[TRecord]:
    records: tuple[TRecord, ...]
    provenance: ProvenanceLog = field(default_factory=ProvenanceLog)
    errors: tuple[LayerApplicationError, ...] = ()

    def by_id(self) -> dict[str, TRecord]:
        return {getattr(record, "id"): record for record in self.records}  # noqa: B009


class ApplyLayers(Protocol):
    def __call__[TRecord](
        self,
        base: Iterable[TRecord],
        layers: Sequence[OverrideLayer],
        *,
        kind: RecordKind,
    ) -> OverrideResult[TRecord]: ...


def validate_layer_order(layers: Sequence[OverrideLayer]) -> None:
    """Reject duplicate layer names and declared sequences that go backwards."""

    names: set[str] = set()
    last_sequence: int | None = None
    for layer in layers:
        if layer.name in names:
            raise LayerOrderError(f"Override layer {layer.name!r} appears more than once")
        names.add(layer.name)
        if layer.sequence is None:
            continue
        if last_sequence is not None and layer.sequence <= last_sequence:
            raise LayerOrderError(
                f"Override layer {layer.name!r} (sequence {layer.sequence}) is out of order "
                f"after sequence {last_sequence}"
            )
        last_sequence = layer.sequence


def apply_layers[TRecord](
    base: Iterable[TRecord],
    layers: Sequence[OverrideLayer],
    *,
    kind: RecordKind,
) -> OverrideResult[TRecord]:
    """Apply every layer of ``kind`` in declared order onto a copy of ``base``.

    Layers of another record kind keep their place in the order but are
    skipped. The input records are never modified.
    """

    validate_layer_order(layers)
    ops: RecordOps[TRecord] = ops_for(kind)
    records: dict[str, TRecord] = {}
    for record in base:
        record_id = ops.record_id(record)
        if record_id in records:
            raise SchemaViolationError(f"Duplicate {kind} record id {record_id!r}")
        records[record_id] = record

    provenance = ProvenanceLog()
    errors: list[LayerApplicationError] = []
    for layer in layers:
        if layer.kind is not kind:
            continue
        _LayerApplication(layer=layer, ops=ops, records=records).run(provenance, errors)

    if errors:
        log.warning("Override layers produced %s application errors", len(errors))
    log.info(
        "Applied override layers: kind=%s, layers=%s, corrections=%s, errors=%s",
        kind,
        sum(1 for layer in layers if layer.kind is kind),
        len(provenance),
        len(errors),
    )
    return OverrideResult(
        records=tuple(records[key] for key in sorted(records)),
        provenance=provenance,
        errors=tuple(errors),
    )


def rollback[TRecord](
    base: Iterable[TRecord],
    layers: Sequence[OverrideLayer],
    layer_name: str,
    *,
    kind: RecordKind,
) -> OverrideResult[TRecord]:
    """Replay ``layers`` without ``layer_name``."""

    remaining = [layer for layer in layers if layer.name != layer_name]
    if len(remaining) == len(layers):
        raise ValueError(f"Unknown override layer {layer_name!r}")
    return apply_layers(base, remaining, kind=kind)


type _FieldKey = tuple[str, str]


@dataclass(slots=True)
class _LayerApplication[TRecord]:
    layer: OverrideLayer
    ops: RecordOps[TRecord]
    records: dict[str, TRecord]

    def run(self, provenance: ProvenanceLog, errors: list[LayerApplicationError]) -> None:
        grouped: dict[_FieldKey, list[Correction]] = {}
        for correction in self.layer.corrections:
            record = self.records.get(correction.target_id)
            if record is None:
                errors.append(self._error(correction, LayerErrorReason.UNKNOWN_TARGET))
                continue
            field_name = self.ops.resolve_field(record, correction.field)
            if field_name is None:
                errors.append(self._error(correction, LayerErrorReason.UNKNOWN_FIELD))
                continue
            grouped.setdefault((correction.target_id, field_name), []).append(correction)

        for key in sorted(grouped):
            target_id, field_name = key
            corrections = grouped[key]
            values: list[object] = []
            for correction in corrections:
                if correction.new_value not in values:
                    values.append(correction.new_value)
            if len(values) > 1:
                errors.extend(
                    self._error(
                        correction,
                        LayerErrorReason.CONFLICTING_CORRECTION,
                        detail=f"{len(values)} different values in one layer",
                    )
                    for correction in corrections
                )
                continue
            entry = self._apply(target_id, field_name, corrections[-1], errors)
            if entry is not None:
                provenance.record(entry)

    def _apply(
        self,
        target_id: str,
        field_name: str,
        correction: Correction,
        errors: list[LayerApplicationError],
    ) -> ProvenanceEntry | None:
        record = self.records[target_id]
        previous = self.ops.get(record, field_name)
        try:
            updated = self.ops.set(record, field_name, correction.new_value)
        except ValueError as exc:
            errors.append(self._error(correction, LayerErrorReason.INVALID_VALUE, detail=str(exc)))
            return None
        self.records[target_id] = updated
        current = self.ops.get(updated, field_name)
        return ProvenanceEntry(
            record_kind=self.ops.kind,
            target_id=target_id,
            field=field_name,
            layer=self.layer.name,
            previous_value=previous,
            new_value=current,
            justification=correction.justification,
            authored_at=correction.authored_at,
            changed=previous != current,
        )

    def _error(
        self,
        correction: Correction,
        reason: LayerErrorReason,
        *,
        detail: str | None = None,
    ) -> LayerApplicationError:
        return LayerApplicationError(
            layer=self.layer.name,
            record_kind=self.ops.kind,
            target_id=correction.target_id,
            field=correction.field,
            reason=reason,
            detail=detail,
        )
