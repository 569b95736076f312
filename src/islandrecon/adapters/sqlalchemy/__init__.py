"""SQLAlchemy adapter package for islandrecon."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry
from .repositories import SqlAlchemySnapshotRepository
from .unit_of_work import (
    SqlAlchemySnapshotUnitOfWork,
    StartupError,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemySnapshotRepository",
    "SqlAlchemySnapshotUnitOfWork",
    "StartupError",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shutdown",
    "startup",
]
