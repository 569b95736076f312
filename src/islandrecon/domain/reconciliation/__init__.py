"""Reconciliation core for taxon backbones and geographic entities.

Layered flow of one run:
1) resolve rank lineages for every species
2) optionally match an external checklist against the backbone
3) classify raw geo attributes through rule tables
4) apply override layers in declared order with field provenance
5) finalize the snapshot and the diagnostic bundle
"""

from __future__ import annotations

from .classify import ClassificationOutcome, RuleTable, classify, classify_value
from .feedback import draft_review_layers
from .lineage import LineageResolution, resolve_lineages
from .matching import MatchResult, choose_candidate, match_names, normalize_name
from .overrides import OverrideResult, apply_layers, rollback, validate_layer_order
from .pipeline import (
    PipelineOptions,
    ReconciliationPipeline,
    ReconciliationResult,
)

__all__ = [
    "ClassificationOutcome",
    "LineageResolution",
    "MatchResult",
    "OverrideResult",
    "PipelineOptions",
    "ReconciliationPipeline",
    "ReconciliationResult",
    "RuleTable",
    "apply_layers",
    "choose_candidate",
    "classify",
    "classify_value",
    "draft_review_layers",
    "match_names",
    "normalize_name",
    "resolve_lineages",
    "rollback",
    "validate_layer_order",
]
