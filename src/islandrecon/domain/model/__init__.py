"""Domain model for taxon backbones, geographic entities and their corrections."""

from __future__ import annotations

from .diagnostics import (
    AmbiguousMatch,
    ClassificationGap,
    ConflictKind,
    ExceptionReason,
    ExceptionRecord,
    GapReason,
    LayerApplicationError,
    LayerErrorReason,
    LineageConflict,
    ResolutionGap,
)
from .enums import (
    LINEAGE_RANKS,
    RANK_ORDER,
    STATUS_PRECEDENCE,
    ClassificationStatus,
    EntityClass,
    PipelineStage,
    Rank,
    RecordKind,
    TaxonStatus,
)
from .errors import LayerOrderError, SchemaViolationError
from .geo import (
    NEEDS_REVIEW_VALUE,
    UNKNOWN_VALUE,
    Classification,
    GeoEntity,
    KnownClassification,
    NeedsReviewClassification,
    UnknownClassification,
)
from .lineage import Lineage, LineageSlot
from .overrides import Correction, OverrideLayer
from .provenance import AUTOMATED, ProvenanceEntry, ProvenanceLog
from .taxon import ReconciledTaxon, TaxonKey, TaxonRecord

__all__ = [
    "AUTOMATED",
    "LINEAGE_RANKS",
    "NEEDS_REVIEW_VALUE",
    "RANK_ORDER",
    "STATUS_PRECEDENCE",
    "UNKNOWN_VALUE",
    "AmbiguousMatch",
    "Classification",
    "ClassificationGap",
    "ClassificationStatus",
    "ConflictKind",
    "Correction",
    "EntityClass",
    "ExceptionReason",
    "ExceptionRecord",
    "GapReason",
    "GeoEntity",
    "KnownClassification",
    "LayerApplicationError",
    "LayerErrorReason",
    "LayerOrderError",
    "Lineage",
    "LineageConflict",
    "LineageSlot",
    "NeedsReviewClassification",
    "OverrideLayer",
    "PipelineStage",
    "ProvenanceEntry",
    "ProvenanceLog",
    "Rank",
    "ReconciledTaxon",
    "RecordKind",
    "ResolutionGap",
    "SchemaViolationError",
    "TaxonKey",
    "TaxonRecord",
    "TaxonStatus",
    "UnknownClassification",
]
