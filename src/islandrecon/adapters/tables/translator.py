"""Translate validated table rows into domain records and back."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError

from islandrecon.domain.model import (
    Correction,
    GeoEntity,
    OverrideLayer,
    RecordKind,
    SchemaViolationError,
    TaxonRecord,
)
from islandrecon.domain.reconciliation import RuleTable

from .schema import (
    CorrectionRow,
    DiagnosticBundle,
    ExceptionOutput,
    GeoEntityOutput,
    GeoEntityRow,
    OverrideLayerDocument,
    ReconciledTables,
    ReconciledTaxonOutput,
    RuleTableDocument,
    TaxonRow,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from islandrecon.domain.reconciliation import ReconciliationResult


def _validate[TModel: BaseModel](
    model: type[TModel], payload: Mapping[str, Any], where: str
) -> TModel:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise SchemaViolationError(f"{where}: {exc}") from exc


def parse_taxon_records(rows: Iterable[Mapping[str, Any]]) -> list[TaxonRecord]:
    records: list[TaxonRecord] = []
    for index, payload in enumerate(rows):
        row = _validate(TaxonRow, payload, f"taxon row {index}")
        records.append(
            TaxonRecord(
                id=row.id,
                name=row.name,
                rank=row.rank,
                parent_id=row.parent_id,
                status=row.status,
            )
        )
    return records


def parse_geo_entities(rows: Iterable[Mapping[str, Any]]) -> list[GeoEntity]:
    entities: list[GeoEntity] = []
    for index, payload in enumerate(rows):
        row = _validate(GeoEntityRow, payload, f"geo row {index}")
        entities.append(
            GeoEntity(
                id=row.id,
                name=row.name,
                raw_attributes=row.raw_attributes,
                entity_class=row.entity_class,
            )
        )
    return entities


def parse_rule_tables(documents: Iterable[Mapping[str, Any]]) -> list[RuleTable]:
    tables: list[RuleTable] = []
    for index, payload in enumerate(documents):
        document = _validate(RuleTableDocument, payload, f"rule table {index}")
        tables.append(
            RuleTable(
                attribute=document.attribute,
                target=document.target,
                name=document.name,
                rules={entry.raw.strip(): entry.coarse for entry in document.rules},
            )
        )
    return tables


def parse_override_layer(payload: Mapping[str, Any]) -> OverrideLayer:
    document = _validate(OverrideLayerDocument, payload, f"override layer {payload.get('name')!r}")
    return OverrideLayer(
        name=document.name,
        kind=document.kind,
        sequence=document.sequence,
        description=document.description,
        corrections=tuple(
            Correction(
                target_id=row.target_id,
                field=row.field,
                new_value=row.new_value,
                justification=row.justification,
                authored_at=row.authored_at,
            )
            for row in document.corrections
        ),
    )


def layer_document(layer: OverrideLayer) -> OverrideLayerDocument:
    return OverrideLayerDocument(
        name=layer.name,
        kind=layer.kind,
        sequence=layer.sequence,
        description=layer.description,
        corrections=[
            CorrectionRow(
                target_id=correction.target_id,
                field=correction.field,
                new_value=correction.new_value,
                justification=correction.justification,
                authored_at=correction.authored_at,
            )
            for correction in layer.corrections
        ],
    )


def reconciled_tables(result: ReconciliationResult) -> ReconciledTables:
    taxa = [
        ReconciledTaxonOutput(
            id=row.id,
            name=row.name,
            status=row.status.value,
            genus=row.genus,
            subtribe=row.subtribe,
            tribe=row.tribe,
            subfamily=row.subfamily,
            family=row.family,
            provenance=_provenance(result, RecordKind.TAXON, row.id),
        )
        for row in result.taxon_out
    ]
    geo = [
        GeoEntityOutput(
            id=entity.id,
            name=entity.name,
            entity_class=None if entity.entity_class is None else entity.entity_class.value,
            raw_attributes=dict(entity.raw_attributes),
            derived_attributes={
                name: classification.value
                for name, classification in entity.derived_attributes.items()
            },
            provenance=_provenance(result, RecordKind.GEO, entity.id),
        )
        for entity in result.geo_out
    ]
    return ReconciledTables(taxa=taxa, geo_entities=geo)


def diagnostic_bundle(
    result: ReconciliationResult,
    *,
    draft_layers: Iterable[OverrideLayer] = (),
) -> DiagnosticBundle:
    return DiagnosticBundle(
        summary=result.summary(),
        exceptions=[
            ExceptionOutput(
                record_kind=record.record_kind.value,
                record_id=record.record_id,
                reason=record.reason.value,
                fields=list(record.fields),
                detail=record.detail,
            )
            for record in result.exceptions
        ],
        conflicts=[_plain(conflict) for conflict in result.conflicts],
        gaps=[_plain(gap) for gap in result.gaps],
        review_list=[_plain(gap) for gap in result.review_list],
        ambiguities=[_plain(match) for match in result.ambiguities],
        layer_errors=[_plain(error) for error in result.layer_errors],
        draft_layers=[layer_document(layer) for layer in draft_layers],
    )


def _provenance(result: ReconciliationResult, kind: RecordKind, record_id: str) -> dict[str, str]:
    log_ = result.taxon_provenance if kind is RecordKind.TAXON else result.geo_provenance
    return {} if log_ is None else log_.fields_for(kind, record_id)


def _plain(item: object) -> dict[str, Any]:
    slots: tuple[str, ...] = getattr(type(item), "__slots__", ())
    plain: dict[str, Any] = {}
    for name in slots:
        value = getattr(item, name)
        if isinstance(value, tuple):
            value = list(value)
        elif hasattr(value, "value") and isinstance(value.value, str):
            value = value.value
        plain[name] = value
    return plain
