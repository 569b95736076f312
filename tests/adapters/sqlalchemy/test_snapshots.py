from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, func, select

from islandrecon.adapters.sqlalchemy.mappings import diagnostic_table, provenance_entry_table
from islandrecon.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemySnapshotUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from islandrecon.domain.model import (
    Correction,
    ExceptionReason,
    NeedsReviewClassification,
    OverrideLayer,
    RecordKind,
)
from islandrecon.domain.reconciliation import ReconciliationPipeline
from tests.helpers.records import conflicting_backbone, geology_rules, make_geo

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from sqlalchemy.engine import Engine

    from islandrecon.domain.reconciliation import ReconciliationResult


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def _result() -> ReconciliationResult:
    layer = OverrideLayer(
        name="Layer1",
        kind=RecordKind.GEO,
        corrections=(
            Correction(
                target_id="5",
                field="entityClass",
                new_value="Island",
                justification="atlas",
                authored_at=datetime(2024, 3, 1, tzinfo=UTC),
            ),
        ),
    )
    return ReconciliationPipeline().run(
        conflicting_backbone(),
        [
            make_geo("5", "Tristan da Cunha", geology="volcanic"),
            make_geo("7", "Kerguelen", geology="atoll/shelf"),
        ],
        [geology_rules()],
        [layer],
    )


def test_unit_of_work_requires_startup() -> None:
    with pytest.raises(StartupError):
        SqlAlchemySnapshotUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b
    assert is_started()


def test_snapshot_round_trip(
    sqlite_unit_of_work: Callable[[], SqlAlchemySnapshotUnitOfWork],
) -> None:
    result = _result()

    with sqlite_unit_of_work() as uow:
        run_id = uow.repositories.snapshots.add(result, label="first pass")
        uow.commit()

    with sqlite_unit_of_work() as uow:
        snapshots = uow.repositories.snapshots
        summary = snapshots.get(run_id)
        assert summary is not None
        assert summary.label == "first pass"
        assert summary.layer_names == ("Layer1",)
        assert summary.counts == result.summary()
        assert summary.created_at.tzinfo is not None

        assert snapshots.taxon_rows(run_id) == result.taxon_out
        geo_rows = snapshots.geo_rows(run_id)
        assert geo_rows == result.geo_out
        assert geo_rows[1].derived_attributes["geologyClass"] == NeedsReviewClassification(
            "atoll/shelf"
        )

        (entry,) = snapshots.provenance(run_id)
        assert entry.layer == "Layer1"
        assert entry.field == "entity_class"
        assert entry.new_value == "Island"
        assert entry.authored_at == datetime(2024, 3, 1, tzinfo=UTC)

        reasons = [record.reason for record in snapshots.exceptions(run_id)]
        assert reasons == [record.reason for record in result.exceptions]
        assert ExceptionReason.LINEAGE_CONFLICT in reasons


def test_each_run_is_a_separate_snapshot(
    sqlite_unit_of_work: Callable[[], SqlAlchemySnapshotUnitOfWork],
    sqlite_engine: Engine,
) -> None:
    result = _result()

    with sqlite_unit_of_work() as uow:
        first = uow.repositories.snapshots.add(result)
        second = uow.repositories.snapshots.add(result, label="again")
        uow.commit()

    with sqlite_unit_of_work() as uow:
        runs = uow.repositories.snapshots.list_runs()

    assert first != second
    assert {run.run_id for run in runs} == {first, second}
    with sqlite_engine.connect() as connection:
        entries = connection.execute(
            select(func.count()).select_from(provenance_entry_table)
        ).scalar_one()
        conflicts = connection.execute(
            select(func.count())
            .select_from(diagnostic_table)
            .where(diagnostic_table.c.category == "conflict")
        ).scalar_one()
    assert entries == 2
    assert conflicts == 2


def test_failed_unit_of_work_rolls_back(
    sqlite_unit_of_work: Callable[[], SqlAlchemySnapshotUnitOfWork],
) -> None:
    result = _result()

    with pytest.raises(RuntimeError), sqlite_unit_of_work() as uow:
        uow.repositories.snapshots.add(result)
        raise RuntimeError("boom")

    with sqlite_unit_of_work() as uow:
        assert uow.repositories.snapshots.list_runs() == ()
