from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from islandrecon.app import list_runs, reconcile_files
from islandrecon.domain.model import LayerOrderError

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from islandrecon.adapters.sqlalchemy.unit_of_work import SqlAlchemySnapshotUnitOfWork


def _write(path: Path, payload: object) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


@pytest.fixture
def inputs(tmp_path: Path) -> dict[str, Path]:
    taxa = _write(
        tmp_path / "taxa.json",
        [
            {"id": "S1", "name": "A", "rank": "Species", "parentId": "G1"},
            {"id": "G1", "name": "Ga", "rank": "Genus", "parentId": "T1"},
            {"id": "T1", "name": "Ta", "rank": "Tribe", "parentId": "F1"},
            {"id": "F1", "name": "Fa", "rank": "Subfamily", "parentId": None},
        ],
    )
    geo = tmp_path / "geo.jsonl"
    geo.write_text(
        "\n".join(
            json.dumps(row)
            for row in (
                {"id": "5", "name": "Tristan", "area": "unknown"},
                {"id": "7", "name": "Kerguelen", "geology": "atoll/floor/fragment/shelf/volcanic"},
            )
        ),
        encoding="utf-8",
    )
    rules = _write(
        tmp_path / "rules.json",
        [
            {"attribute": "geology", "target": "geologyClass", "rules": {"volcanic": "Volcanic"}},
            {"attribute": "area", "target": "areaClass", "rules": {"small": "small"}},
        ],
    )
    layer1 = _write(
        tmp_path / "layer1.json",
        {
            "name": "Layer1",
            "kind": "geo",
            "sequence": 1,
            "corrections": [{"targetId": "5", "field": "areaClass", "newValue": "continental"}],
        },
    )
    layer2 = _write(
        tmp_path / "layer2.json",
        {
            "name": "Layer2",
            "kind": "geo",
            "sequence": 2,
            "corrections": [{"targetId": "5", "field": "entityClass", "newValue": "IslandPart"}],
        },
    )
    return {"taxa": taxa, "geo": geo, "rules": rules, "layer1": layer1, "layer2": layer2}


def test_reconcile_files_writes_tables_and_bundle(
    inputs: dict[str, Path],
    tmp_path: Path,
) -> None:
    outcome = reconcile_files(
        taxa=inputs["taxa"],
        geo=inputs["geo"],
        rules=[inputs["rules"]],
        layers=[inputs["layer1"], inputs["layer2"]],
        output=tmp_path / "out" / "tables.json",
        bundle=tmp_path / "out" / "bundle.json",
        persist=False,
    )

    assert outcome.run_id is None
    tables = json.loads((tmp_path / "out" / "tables.json").read_text(encoding="utf-8"))
    (taxon,) = tables["taxa"]
    assert (taxon["genus"], taxon["subtribe"], taxon["tribe"], taxon["subfamily"]) == (
        "Ga",
        None,
        "Ta",
        "Fa",
    )
    tristan = next(row for row in tables["geoEntities"] if row["id"] == "5")
    assert tristan["derivedAttributes"]["areaClass"] == "continental"
    assert tristan["entityClass"] == "IslandPart"
    assert tristan["provenance"] == {"areaClass": "Layer1", "entity_class": "Layer2"}

    bundle = json.loads((tmp_path / "out" / "bundle.json").read_text(encoding="utf-8"))
    assert [row["recordId"] for row in bundle["exceptions"]] == ["7"]
    (draft,) = bundle["draftLayers"]
    assert draft["sequence"] == 3
    assert draft["kind"] == "geo"


def test_reconcile_files_persists_snapshot(
    inputs: dict[str, Path],
    sqlite_unit_of_work: Callable[[], SqlAlchemySnapshotUnitOfWork],
) -> None:
    outcome = reconcile_files(
        taxa=inputs["taxa"],
        geo=inputs["geo"],
        rules=[inputs["rules"]],
        label="nightly",
        unit_of_work_factory=sqlite_unit_of_work,
    )

    (run,) = list_runs(unit_of_work_factory=sqlite_unit_of_work)
    assert run.run_id == outcome.run_id
    assert run.label == "nightly"


def test_layers_out_of_order_abort_the_run(inputs: dict[str, Path]) -> None:
    with pytest.raises(LayerOrderError):
        reconcile_files(
            taxa=inputs["taxa"],
            layers=[inputs["layer2"], inputs["layer1"]],
            persist=False,
        )
