"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import RunSummary, SnapshotRepository
from .unit_of_work import (
    RepositoryCollection,
    SnapshotRepositories,
    SnapshotUnitOfWork,
    UnitOfWork,
)

__all__ = [
    "RepositoryCollection",
    "RunSummary",
    "SnapshotRepositories",
    "SnapshotRepository",
    "SnapshotUnitOfWork",
    "UnitOfWork",
]
