"""Central registry for per-record-kind field access used by override layers."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Any, Final, Protocol

from islandrecon.domain.model import (
    LINEAGE_RANKS,
    UNKNOWN_VALUE,
    EntityClass,
    GeoEntity,
    KnownClassification,
    ReconciledTaxon,
    RecordKind,
    TaxonStatus,
    UnknownClassification,
)

if TYPE_CHECKING:
    from islandrecon.domain.model import Classification

RAW_PREFIX: Final[str] = "raw."


class RecordOps[TRecord](Protocol):
    """Field-level access to one record kind.

    ``set`` returns a fresh record and raises ``ValueError`` when the value
    cannot be stored in the field.
    """

    kind: RecordKind

    def record_id(self, record: TRecord) -> str: ...

    def resolve_field(self, record: TRecord, field_name: str) -> str | None: ...

    def fields(self, record: TRecord) -> tuple[str, ...]: ...

    def get(self, record: TRecord, field_name: str) -> object: ...

    def set(self, record: TRecord, field_name: str, value: object) -> TRecord: ...


class TaxonOps:
    kind: RecordKind = RecordKind.TAXON

    _FIELDS: Final[tuple[str, ...]] = (
        "name",
        "status",
        *(rank.field_name for rank in LINEAGE_RANKS),
    )

    def record_id(self, record: ReconciledTaxon) -> str:
        return record.id

    def resolve_field(self, record: ReconciledTaxon, field_name: str) -> str | None:
        _ = record
        return field_name if field_name in self._FIELDS else None

    def fields(self, record: ReconciledTaxon) -> tuple[str, ...]:
        _ = record
        return self._FIELDS

    def get(self, record: ReconciledTaxon, field_name: str) -> object:
        value = getattr(record, field_name)
        if isinstance(value, TaxonStatus):
            return value.value
        return value

    def set(self, record: ReconciledTaxon, field_name: str, value: object) -> ReconciledTaxon:
        if field_name == "status":
            return replace(record, status=TaxonStatus(_require_text(value)))
        if field_name == "name":
            return replace(record, name=_require_text(value))
        return replace(record, **{field_name: _optional_text(value)})


class GeoOps:
    kind: RecordKind = RecordKind.GEO

    _ALIASES: Final[dict[str, str]] = {"entityClass": "entity_class"}

    def record_id(self, record: GeoEntity) -> str:
        return record.id

    def resolve_field(self, record: GeoEntity, field_name: str) -> str | None:
        canonical = self._ALIASES.get(field_name, field_name)
        if canonical in ("name", "entity_class"):
            return canonical
        if canonical.startswith(RAW_PREFIX):
            raw_name = canonical.removeprefix(RAW_PREFIX)
            return canonical if raw_name in record.raw_attributes else None
        return canonical if canonical in record.derived_attributes else None

    def fields(self, record: GeoEntity) -> tuple[str, ...]:
        return (
            "name",
            "entity_class",
            *record.derived_attributes,
            *(f"{RAW_PREFIX}{name}" for name in record.raw_attributes),
        )

    def get(self, record: GeoEntity, field_name: str) -> object:
        if field_name == "name":
            return record.name
        if field_name == "entity_class":
            return None if record.entity_class is None else record.entity_class.value
        if field_name.startswith(RAW_PREFIX):
            return record.raw_attributes.get(field_name.removeprefix(RAW_PREFIX))
        return record.derived_value(field_name)

    def set(self, record: GeoEntity, field_name: str, value: object) -> GeoEntity:
        if field_name == "name":
            return replace(record, name=_require_text(value))
        if field_name == "entity_class":
            entity_class = None if value is None else EntityClass(_require_text(value))
            return replace(record, entity_class=entity_class)
        if field_name.startswith(RAW_PREFIX):
            raw = dict(record.raw_attributes)
            raw[field_name.removeprefix(RAW_PREFIX)] = _optional_text(value)
            return replace(record, raw_attributes=raw)
        derived = dict(record.derived_attributes)
        derived[field_name] = _curated_classification(value)
        return replace(record, derived_attributes=derived)


def _curated_classification(value: object) -> Classification:
    text = _optional_text(value)
    if text is None or text == UNKNOWN_VALUE:
        return UnknownClassification()
    return KnownClassification(value=text)


def _require_text(value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected a non-blank string, got {value!r}")
    return value.strip()


def _optional_text(value: object) -> str | None:
    if value is None:
        return None
    return _require_text(value)


_REGISTRY: Final[dict[RecordKind, RecordOps[Any]]] = {
    RecordKind.TAXON: TaxonOps(),
    RecordKind.GEO: GeoOps(),
}


def ops_for(kind: RecordKind) -> RecordOps[Any]:
    try:
        return _REGISTRY[kind]
    except KeyError as exc:
        raise RuntimeError(f"No ops registered for {kind}") from exc
