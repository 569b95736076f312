"""Collected (non-fatal) reconciliation diagnostics.

Reconciliation over messy backbone and geographic extracts degrades to
"flag for human review"; each kind below is accumulated by the stage that
detects it and surfaced in the final diagnostic bundle.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from islandrecon.domain.model.enums import Rank, RecordKind
    from islandrecon.domain.model.geo import GeoEntity
    from islandrecon.domain.model.taxon import ReconciledTaxon, TaxonRecord


class GapReason(StrEnum):
    MISSING_PARENT = "missing_parent"
    DANGLING_PARENT = "dangling_parent"
    PARENT_NOT_GENUS = "parent_not_genus"
    PARENT_RANK_NOT_HIGHER = "parent_rank_not_higher"


@dataclass(frozen=True, slots=True, kw_only=True)
class ResolutionGap:
    """Resolution of a species stopped before ``rank``.

    ``record_id`` is the record whose parent link could not be followed (the
    species itself when no genus was found).
    """

    species_id: str
    rank: Rank
    reason: GapReason
    record_id: str
    parent_id: str | None = None


class ConflictKind(StrEnum):
    DISAGREEING_PATHS = "disagreeing_paths"
    PARTIAL_PATH = "partial_path"


@dataclass(frozen=True, slots=True, kw_only=True)
class LineageConflict:
    """The chained and the rank-skipping resolution paths disagree at ``rank``.

    ``resolved_to`` is set only for partial paths, where the single non-null
    candidate was kept.
    """

    species_id: str
    rank: Rank
    kind: ConflictKind
    via_chain: str | None
    via_skip: str | None
    resolved_to: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ClassificationGap:
    """Raw value present but missing from the rule table (advisory)."""

    entity_id: str
    attribute: str
    target: str
    raw_value: str


class LayerErrorReason(StrEnum):
    UNKNOWN_TARGET = "unknown_target"
    UNKNOWN_FIELD = "unknown_field"
    INVALID_VALUE = "invalid_value"
    CONFLICTING_CORRECTION = "conflicting_correction"


@dataclass(frozen=True, slots=True, kw_only=True)
class LayerApplicationError:
    layer: str
    record_kind: RecordKind
    target_id: str
    field: str
    reason: LayerErrorReason
    detail: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class AmbiguousMatch:
    """An external name matched several backbone records; ``chosen`` won the tie-break."""

    key: str
    candidates: tuple[str, ...]
    chosen: str
    rule: str


class ExceptionReason(StrEnum):
    UNRESOLVED_LINEAGE = "unresolved_lineage"
    LINEAGE_CONFLICT = "lineage_conflict"
    NO_CLASSIFICATION_MAPPING = "no_classification_mapping"
    NO_TAXONOMIC_MATCH = "no_taxonomic_match"


type ExceptionPayload = TaxonRecord | ReconciledTaxon | GeoEntity | str


@dataclass(frozen=True, slots=True, kw_only=True)
class ExceptionRecord:
    """An entity queued for manual, out-of-band correction."""

    record_kind: RecordKind
    record_id: str
    reason: ExceptionReason
    record: ExceptionPayload
    fields: tuple[str, ...] = ()
    detail: str | None = None

    @property
    def sort_key(self) -> tuple[str, str, str]:
        return (self.record_kind.value, self.record_id, self.reason.value)
