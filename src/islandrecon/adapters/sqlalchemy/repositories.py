"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import insert, select

from islandrecon.adapters.sqlalchemy.mappings import (
    diagnostic_table,
    geo_snapshot_table,
    provenance_entry_table,
    reconciliation_run_table,
    taxon_snapshot_table,
)
from islandrecon.domain.model import (
    NEEDS_REVIEW_VALUE,
    UNKNOWN_VALUE,
    EntityClass,
    ExceptionReason,
    ExceptionRecord,
    GeoEntity,
    KnownClassification,
    NeedsReviewClassification,
    ProvenanceEntry,
    ReconciledTaxon,
    RecordKind,
    TaxonStatus,
    UnknownClassification,
)
from islandrecon.domain.ports.persistence import RunSummary

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from sqlalchemy.engine import Row
    from sqlalchemy.orm import Session

    from islandrecon.domain.model import Classification
    from islandrecon.domain.reconciliation import ReconciliationResult

log = logging.getLogger(__name__)

EXCEPTION_CATEGORY = "exception"


def _jsonable(value: object) -> Any:
    if value is None or isinstance(value, bool | int | float):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, str):
        return value
    if isinstance(value, list | tuple):
        return [_jsonable(item) for item in cast("Iterable[object]", value)]
    if isinstance(value, dict):
        return {
            str(key): _jsonable(item)
            for key, item in cast("dict[object, object]", value).items()
        }
    return str(value)


def _classification_payload(classification: Classification) -> dict[str, str]:
    payload = {"status": classification.status.value, "value": classification.value}
    if isinstance(classification, NeedsReviewClassification):
        payload["raw"] = classification.raw_value
    return payload


def _classification_from_payload(payload: Mapping[str, str]) -> Classification:
    value = payload.get("value")
    if value == NEEDS_REVIEW_VALUE and "raw" in payload:
        return NeedsReviewClassification(raw_value=payload["raw"])
    if value == UNKNOWN_VALUE or value is None:
        return UnknownClassification()
    return KnownClassification(value=value)


class SqlAlchemySnapshotRepository:
    """Insert-only persistence of finalized runs; a stored run is never rewritten."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, result: ReconciliationResult, *, label: str | None = None) -> uuid.UUID:
        run_id = uuid.uuid4()
        self.session.execute(
            insert(reconciliation_run_table).values(
                id=run_id,
                created_at=datetime.now(UTC),
                label=label,
                layer_names=list(result.layer_names),
                counts=result.summary(),
            )
        )
        if result.taxon_out:
            self.session.execute(
                insert(taxon_snapshot_table),
                [
                    {
                        "run_id": run_id,
                        "species_id": row.id,
                        "name": row.name,
                        "status": row.status.value,
                        "genus": row.genus,
                        "subtribe": row.subtribe,
                        "tribe": row.tribe,
                        "subfamily": row.subfamily,
                        "family": row.family,
                    }
                    for row in result.taxon_out
                ],
            )
        if result.geo_out:
            self.session.execute(
                insert(geo_snapshot_table),
                [
                    {
                        "run_id": run_id,
                        "entity_id": entity.id,
                        "name": entity.name,
                        "entity_class": (
                            None if entity.entity_class is None else entity.entity_class.value
                        ),
                        "raw_attributes": dict(entity.raw_attributes),
                        "derived_attributes": {
                            name: _classification_payload(classification)
                            for name, classification in entity.derived_attributes.items()
                        },
                    }
                    for entity in result.geo_out
                ],
            )
        self._add_provenance(run_id, result)
        self._add_diagnostics(run_id, result)
        log.info(
            "Stored reconciliation run %s (%s taxa, %s geo entities)",
            run_id,
            len(result.taxon_out),
            len(result.geo_out),
        )
        return run_id

    def get(self, run_id: uuid.UUID) -> RunSummary | None:
        stmt = select(reconciliation_run_table).where(reconciliation_run_table.c.id == run_id)
        row = self.session.execute(stmt).one_or_none()
        return None if row is None else self._summary(row)

    def list_runs(self) -> tuple[RunSummary, ...]:
        stmt = select(reconciliation_run_table).order_by(
            reconciliation_run_table.c.created_at, reconciliation_run_table.c.id
        )
        return tuple(self._summary(row) for row in self.session.execute(stmt))

    def taxon_rows(self, run_id: uuid.UUID) -> tuple[ReconciledTaxon, ...]:
        table = taxon_snapshot_table
        stmt = select(table).where(table.c.run_id == run_id).order_by(table.c.species_id)
        return tuple(
            ReconciledTaxon(
                id=row.species_id,
                name=row.name,
                status=TaxonStatus(row.status),
                genus=row.genus,
                subtribe=row.subtribe,
                tribe=row.tribe,
                subfamily=row.subfamily,
                family=row.family,
            )
            for row in self.session.execute(stmt)
        )

    def geo_rows(self, run_id: uuid.UUID) -> tuple[GeoEntity, ...]:
        table = geo_snapshot_table
        stmt = select(table).where(table.c.run_id == run_id).order_by(table.c.entity_id)
        return tuple(
            GeoEntity(
                id=row.entity_id,
                name=row.name,
                entity_class=None if row.entity_class is None else EntityClass(row.entity_class),
                raw_attributes=row.raw_attributes,
                derived_attributes={
                    name: _classification_from_payload(payload)
                    for name, payload in row.derived_attributes.items()
                },
            )
            for row in self.session.execute(stmt)
        )

    def provenance(self, run_id: uuid.UUID) -> tuple[ProvenanceEntry, ...]:
        table = provenance_entry_table
        stmt = select(table).where(table.c.run_id == run_id).order_by(table.c.position)
        return tuple(
            ProvenanceEntry(
                record_kind=RecordKind(row.record_kind),
                target_id=row.target_id,
                field=row.field,
                layer=row.layer,
                previous_value=row.previous_value,
                new_value=row.new_value,
                justification=row.justification,
                authored_at=row.authored_at,
                changed=bool(row.changed),
            )
            for row in self.session.execute(stmt)
        )

    def exceptions(self, run_id: uuid.UUID) -> tuple[ExceptionRecord, ...]:
        table = diagnostic_table
        stmt = (
            select(table)
            .where(table.c.run_id == run_id)
            .where(table.c.category == EXCEPTION_CATEGORY)
            .order_by(table.c.id)
        )
        records: list[ExceptionRecord] = []
        for row in self.session.execute(stmt):
            payload = cast("dict[str, Any]", row.payload)
            records.append(
                ExceptionRecord(
                    record_kind=RecordKind(row.record_kind),
                    record_id=row.record_id,
                    reason=ExceptionReason(row.reason),
                    record=row.record_id,
                    fields=tuple(payload.get("fields", ())),
                    detail=payload.get("detail"),
                )
            )
        return tuple(records)

    def _add_provenance(self, run_id: uuid.UUID, result: ReconciliationResult) -> None:
        entries = [
            entry
            for log_ in (result.taxon_provenance, result.geo_provenance)
            if log_ is not None
            for entry in log_
        ]
        if not entries:
            return
        self.session.execute(
            insert(provenance_entry_table),
            [
                {
                    "run_id": run_id,
                    "position": position,
                    "record_kind": entry.record_kind.value,
                    "target_id": entry.target_id,
                    "field": entry.field,
                    "layer": entry.layer,
                    "previous_value": _jsonable(entry.previous_value),
                    "new_value": _jsonable(entry.new_value),
                    "justification": entry.justification,
                    "authored_at": entry.authored_at,
                    "changed": int(entry.changed),
                }
                for position, entry in enumerate(entries)
            ],
        )

    def _add_diagnostics(self, run_id: uuid.UUID, result: ReconciliationResult) -> None:
        rows: list[dict[str, Any]] = [
            {
                "run_id": run_id,
                "category": EXCEPTION_CATEGORY,
                "record_kind": record.record_kind.value,
                "record_id": record.record_id,
                "reason": record.reason.value,
                "payload": {"fields": list(record.fields), "detail": record.detail},
            }
            for record in result.exceptions
        ]
        grouped: tuple[tuple[str, Iterable[object]], ...] = (
            ("conflict", result.conflicts),
            ("gap", result.gaps),
            ("review", result.review_list),
            ("ambiguity", result.ambiguities),
            ("layer_error", result.layer_errors),
        )
        for category, items in grouped:
            rows.extend(
                {
                    "run_id": run_id,
                    "category": category,
                    "record_kind": None,
                    "record_id": None,
                    "reason": None,
                    "payload": _jsonable(asdict(cast("Any", item))),
                }
                for item in items
            )
        if rows:
            self.session.execute(insert(diagnostic_table), rows)

    @staticmethod
    def _summary(row: Row[Any]) -> RunSummary:
        return RunSummary(
            run_id=row.id,
            created_at=row.created_at,
            label=row.label,
            layer_names=tuple(row.layer_names),
            counts=dict(row.counts),
        )
