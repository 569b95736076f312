"""Ports for persisting reconciliation snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from islandrecon.domain.model import (
        ExceptionRecord,
        GeoEntity,
        ProvenanceEntry,
        ReconciledTaxon,
    )
    from islandrecon.domain.reconciliation import ReconciliationResult


@dataclass(frozen=True, slots=True, kw_only=True)
class RunSummary:
    """Header row of a stored snapshot."""

    run_id: UUID
    created_at: datetime
    label: str | None = None
    layer_names: tuple[str, ...] = ()
    counts: dict[str, int] = field(default_factory=dict["str", "int"])


@runtime_checkable
class SnapshotRepository(Protocol):
    """Insert-only store of reconciliation snapshots."""

    def add(self, result: ReconciliationResult, *, label: str | None = None) -> UUID: ...

    def get(self, run_id: UUID) -> RunSummary | None: ...

    def list_runs(self) -> tuple[RunSummary, ...]: ...

    def taxon_rows(self, run_id: UUID) -> tuple[ReconciledTaxon, ...]: ...

    def geo_rows(self, run_id: UUID) -> tuple[GeoEntity, ...]: ...

    def provenance(self, run_id: UUID) -> tuple[ProvenanceEntry, ...]: ...

    def exceptions(self, run_id: UUID) -> tuple[ExceptionRecord, ...]: ...
