"""Reconciliation run defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass

from islandrecon.domain.reconciliation import PipelineOptions
from islandrecon.domain.reconciliation.classify import DEFAULT_MISSING_MARKERS

from .env import env_flag


@dataclass(frozen=True, slots=True)
class ReconciliationConfig:
    block_on_conflicts: bool = True
    missing_markers: frozenset[str] = DEFAULT_MISSING_MARKERS

    def pipeline_options(self) -> PipelineOptions:
        return PipelineOptions(
            block_on_conflicts=self.block_on_conflicts,
            missing_markers=self.missing_markers,
        )


def _missing_markers_from_env() -> frozenset[str]:
    value = os.getenv("ISLANDRECON_MISSING_MARKERS")
    if value is None:
        return DEFAULT_MISSING_MARKERS
    # the empty string always counts as missing
    return frozenset({"", *(marker.strip() for marker in value.split(","))})


def get_reconciliation_config() -> ReconciliationConfig:
    return ReconciliationConfig(
        block_on_conflicts=env_flag("ISLANDRECON_BLOCK_ON_CONFLICTS", default=True),
        missing_markers=_missing_markers_from_env(),
    )
