"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from islandrecon.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemySnapshotUnitOfWork,
    is_started,
    startup,
)
from islandrecon.adapters.tables import (
    diagnostic_bundle,
    parse_geo_entities,
    parse_override_layer,
    parse_rule_tables,
    parse_taxon_records,
    read_documents,
    read_names,
    reconciled_tables,
)
from islandrecon.config import get_reconciliation_config
from islandrecon.domain.reconciliation import (
    PipelineOptions,
    ReconciliationPipeline,
    draft_review_layers,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path
    from uuid import UUID

    from pydantic import BaseModel

    from islandrecon.domain.model import OverrideLayer
    from islandrecon.domain.ports.persistence import RunSummary
    from islandrecon.domain.ports.unit_of_work import SnapshotUnitOfWork
    from islandrecon.domain.reconciliation import ReconciliationResult

UnitOfWorkFactory = Callable[[], "SnapshotUnitOfWork"]

DRAFT_LAYER_PREFIX = "review"

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReconcileFilesResult:
    result: ReconciliationResult
    run_id: UUID | None = None
    draft_layers: tuple[OverrideLayer, ...] = ()


def load_layers(paths: Sequence[Path]) -> list[OverrideLayer]:
    """Read override layers in the order given; a file may hold one layer or a list."""

    return [
        parse_override_layer(document) for path in paths for document in read_documents(path)
    ]


def reconcile_files(  # noqa: PLR0913
    *,
    taxa: Path,
    geo: Path | None = None,
    rules: Sequence[Path] = (),
    layers: Sequence[Path] = (),
    checklist: Path | None = None,
    output: Path | None = None,
    bundle: Path | None = None,
    label: str | None = None,
    persist: bool = True,
    block_on_conflicts: bool | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ReconcileFilesResult:
    """Reconcile the given extracts and write the reconciled tables and diagnostics."""

    config = get_reconciliation_config()
    options = PipelineOptions(
        block_on_conflicts=(
            config.block_on_conflicts if block_on_conflicts is None else block_on_conflicts
        ),
        missing_markers=config.missing_markers,
    )
    taxon_records = parse_taxon_records(read_documents(taxa))
    geo_entities = parse_geo_entities(read_documents(geo)) if geo is not None else []
    rule_tables = [table for path in rules for table in parse_rule_tables(read_documents(path))]
    override_layers = load_layers(layers)
    names = read_names(checklist) if checklist is not None else None

    result = ReconciliationPipeline(options=options).run(
        taxon_records,
        geo_entities,
        rule_tables,
        override_layers,
        checklist=names,
    )
    drafts = draft_review_layers(
        result,
        name=f"{DRAFT_LAYER_PREFIX}-{label or 'draft'}",
        sequence=_next_sequence(override_layers),
    )

    run_id: UUID | None = None
    if persist:
        if unit_of_work_factory is None and not is_started():
            startup()
        effective_uow = unit_of_work_factory or SqlAlchemySnapshotUnitOfWork
        with effective_uow() as uow:
            run_id = uow.repositories.snapshots.add(result, label=label)
            uow.commit()

    if output is not None:
        _write_model(output, reconciled_tables(result))
    if bundle is not None:
        _write_model(bundle, diagnostic_bundle(result, draft_layers=drafts))

    log.info(
        "Finished reconcile: run_id=%s, taxa=%s, geo_entities=%s, exceptions=%s",
        run_id,
        len(result.taxon_out),
        len(result.geo_out),
        len(result.exceptions),
    )
    return ReconcileFilesResult(result=result, run_id=run_id, draft_layers=drafts)


def list_runs(*, unit_of_work_factory: UnitOfWorkFactory | None = None) -> tuple[RunSummary, ...]:
    """Return the headers of every stored snapshot, oldest first."""

    if unit_of_work_factory is None and not is_started():
        startup()
    effective_uow = unit_of_work_factory or SqlAlchemySnapshotUnitOfWork
    with effective_uow() as uow:
        return uow.repositories.snapshots.list_runs()


def _next_sequence(layers: Sequence[OverrideLayer]) -> int | None:
    sequences = [layer.sequence for layer in layers if layer.sequence is not None]
    return max(sequences) + 1 if sequences else None


def _write_model(path: Path, model: BaseModel) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(model.model_dump_json(by_alias=True, indent=2) + "\n", encoding="utf-8")
    log.info("Wrote %s", path)
