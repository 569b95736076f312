"""SQLAlchemy Core tables for reconciliation snapshots."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    Uuid,
    orm,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

reconciliation_run_table = Table(
    "reconciliation_run",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("label", String(255), nullable=True),
    Column("layer_names", JSON, nullable=False),
    Column("counts", JSON, nullable=False),
)

taxon_snapshot_table = Table(
    "taxon_snapshot",
    mapper_registry.metadata,
    Column("run_id", UUIDColumnType, ForeignKey("reconciliation_run.id"), primary_key=True),
    Column("species_id", String(255), primary_key=True),
    Column("name", String(512), nullable=False),
    Column("status", String(32), nullable=False),
    Column("genus", String(512), nullable=True),
    Column("subtribe", String(512), nullable=True),
    Column("tribe", String(512), nullable=True),
    Column("subfamily", String(512), nullable=True),
    Column("family", String(512), nullable=True),
)

geo_snapshot_table = Table(
    "geo_snapshot",
    mapper_registry.metadata,
    Column("run_id", UUIDColumnType, ForeignKey("reconciliation_run.id"), primary_key=True),
    Column("entity_id", String(255), primary_key=True),
    Column("name", String(512), nullable=False),
    Column("entity_class", String(32), nullable=True),
    Column("raw_attributes", JSON, nullable=False),
    Column("derived_attributes", JSON, nullable=False),
)

provenance_entry_table = Table(
    "provenance_entry",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("run_id", UUIDColumnType, ForeignKey("reconciliation_run.id"), nullable=False),
    Column("position", Integer, nullable=False),
    Column("record_kind", String(16), nullable=False),
    Column("target_id", String(255), nullable=False),
    Column("field", String(255), nullable=False),
    Column("layer", String(255), nullable=False),
    Column("previous_value", JSON, nullable=True),
    Column("new_value", JSON, nullable=True),
    Column("justification", Text, nullable=False, default=""),
    Column("authored_at", UTCDateTime(), nullable=True),
    Column("changed", Integer, nullable=False, default=1),
    Index("ix_provenance_entry_run_target", "run_id", "record_kind", "target_id"),
)

diagnostic_table = Table(
    "diagnostic",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("run_id", UUIDColumnType, ForeignKey("reconciliation_run.id"), nullable=False),
    Column("category", String(32), nullable=False),
    Column("record_kind", String(16), nullable=True),
    Column("record_id", String(255), nullable=True),
    Column("reason", String(64), nullable=True),
    Column("payload", JSON, nullable=False),
    Index("ix_diagnostic_run_category", "run_id", "category"),
)


def create_all_tables(engine: Engine) -> None:
    """Create every snapshot table that does not exist yet."""

    mapper_registry.metadata.create_all(engine)
    log.debug("Snapshot tables ensured on %s", engine.url.render_as_string(hide_password=True))
