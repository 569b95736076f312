"""Pydantic models describing the flat input tables and the output bundle."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime  # noqa: TC003
from typing import Any, ClassVar, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from islandrecon.domain.model import EntityClass, Rank, RecordKind, TaxonStatus

log = logging.getLogger(__name__)


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _enum_value(enum_type: type[Rank | TaxonStatus | EntityClass], value: object) -> object:
    """Accept enum values case-insensitively ("genus" -> "Genus")."""

    if not isinstance(value, str):
        return value
    folded = value.strip().casefold()
    for member in enum_type:
        if member.value.casefold() == folded:
            return member.value
    return value


class TableBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)
    _logged_extra_keys: ClassVar[set[str]] = set()
    _warn_on_extra: ClassVar[bool] = True

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras or not self._warn_on_extra:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.warning(
            "%s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class TaxonRow(TableBaseModel):
    id: str
    name: str
    rank: Rank
    parent_id: str | None = Field(default=None, alias="parentId")
    status: TaxonStatus = TaxonStatus.ACCEPTED

    _normalize_parent = field_validator("parent_id", mode="before")(_blank_to_none)

    @field_validator("rank", mode="before")
    @classmethod
    def _normalize_rank(cls, value: object) -> object:
        return _enum_value(Rank, value)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: object) -> object:
        if _blank_to_none(value) is None:
            return TaxonStatus.ACCEPTED.value
        return _enum_value(TaxonStatus, value)


class GeoEntityRow(TableBaseModel):
    """Geo base row; every column besides the modeled ones is a raw attribute."""

    _warn_on_extra: ClassVar[bool] = False

    id: str
    name: str
    entity_class: EntityClass | None = Field(default=None, alias="entityClass")
    raw_attributes: dict[str, str | None] = Field(default_factory=dict, alias="rawAttributes")

    @field_validator("entity_class", mode="before")
    @classmethod
    def _normalize_entity_class(cls, value: object) -> object:
        return _enum_value(EntityClass, _blank_to_none(value))

    @model_validator(mode="before")
    @classmethod
    def _collect_raw_columns(cls, value: object) -> object:
        if not isinstance(value, Mapping):
            return value
        data = dict(cast(Mapping[str, object], value))
        modeled = {"id", "name", "entity_class", "entityClass", "raw_attributes", "rawAttributes"}
        nested = data.pop("rawAttributes", data.pop("raw_attributes", None))
        raw: dict[str, object] = dict(cast(Mapping[str, object], nested or {}))
        for key in [key for key in data if key not in modeled]:
            raw[key] = data.pop(key)
        data["rawAttributes"] = {
            key: None if item is None else str(item) for key, item in raw.items()
        }
        return data


class RuleEntry(TableBaseModel):
    raw: str
    coarse: str


class RuleTableDocument(TableBaseModel):
    attribute: str
    target: str
    name: str | None = None
    rules: list[RuleEntry] = Field(default_factory=list)

    @field_validator("rules", mode="before")
    @classmethod
    def _accept_mapping(cls, value: object) -> object:
        if isinstance(value, Mapping):
            mapping = cast(Mapping[str, object], value)
            return [{"raw": raw, "coarse": coarse} for raw, coarse in mapping.items()]
        return value

    @model_validator(mode="after")
    def _reject_conflicting_duplicates(self) -> RuleTableDocument:
        seen: dict[str, str] = {}
        for entry in self.rules:
            key = entry.raw.strip()
            previous = seen.get(key)
            if previous is not None and previous != entry.coarse:
                raise ValueError(
                    f"raw value {key!r} maps to both {previous!r} and {entry.coarse!r}"
                )
            seen[key] = entry.coarse
        return self


class CorrectionRow(TableBaseModel):
    target_id: str = Field(alias="targetId")
    field: str
    new_value: Any = Field(default=None, alias="newValue")
    justification: str = ""
    authored_at: datetime | None = Field(default=None, alias="authoredAt")


class OverrideLayerDocument(TableBaseModel):
    name: str
    kind: RecordKind
    sequence: int | None = None
    description: str | None = None
    corrections: list[CorrectionRow] = Field(default_factory=list)


# Output bundle ---------------------------------------------------------------


class OutputModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ReconciledTaxonOutput(OutputModel):
    id: str
    name: str
    status: str
    genus: str | None = None
    subtribe: str | None = None
    tribe: str | None = None
    subfamily: str | None = None
    family: str | None = None
    provenance: dict[str, str] = Field(default_factory=dict)


class GeoEntityOutput(OutputModel):
    id: str
    name: str
    entity_class: str | None = Field(default=None, alias="entityClass")
    raw_attributes: dict[str, str | None] = Field(default_factory=dict, alias="rawAttributes")
    derived_attributes: dict[str, str] = Field(default_factory=dict, alias="derivedAttributes")
    provenance: dict[str, str] = Field(default_factory=dict)


class ExceptionOutput(OutputModel):
    record_kind: str = Field(alias="recordKind")
    record_id: str = Field(alias="recordId")
    reason: str
    fields: list[str] = Field(default_factory=list)
    detail: str | None = None


class DiagnosticBundle(OutputModel):
    """Everything a curator needs to author the next override layer."""

    summary: dict[str, int] = Field(default_factory=dict)
    exceptions: list[ExceptionOutput] = Field(default_factory=list)
    conflicts: list[dict[str, Any]] = Field(default_factory=list)
    gaps: list[dict[str, Any]] = Field(default_factory=list)
    review_list: list[dict[str, Any]] = Field(default_factory=list, alias="reviewList")
    ambiguities: list[dict[str, Any]] = Field(default_factory=list)
    layer_errors: list[dict[str, Any]] = Field(default_factory=list, alias="layerErrors")
    draft_layers: list[OverrideLayerDocument] = Field(default_factory=list, alias="draftLayers")


class ReconciledTables(OutputModel):
    taxa: list[ReconciledTaxonOutput] = Field(default_factory=list)
    geo_entities: list[GeoEntityOutput] = Field(default_factory=list, alias="geoEntities")
