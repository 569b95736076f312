from __future__ import annotations

import pytest

from islandrecon.domain.model import Rank, SchemaViolationError
from islandrecon.domain.store import RecordStore
from tests.helpers.records import clean_backbone, conflicting_backbone, make_geo, make_taxon


def test_store_partitions_taxa_by_rank() -> None:
    store = RecordStore.from_records(clean_backbone())

    assert [record.id for record in store.species()] == ["S1", "S2"]
    assert list(store.rank_table(Rank.TRIBE)) == ["T1", "T2"]
    assert store.taxon_count == len(clean_backbone())


def test_same_id_may_exist_once_per_rank() -> None:
    store = RecordStore.from_records(conflicting_backbone())

    assert store.ranks_containing("10") == (Rank.SUBTRIBE, Rank.TRIBE)
    tribe = store.taxon((Rank.TRIBE, "10"))
    assert tribe is not None
    assert tribe.name == "Tribe via genus"


def test_duplicate_rank_and_id_is_rejected() -> None:
    records = [
        make_taxon("G1", "Vanda", Rank.GENUS),
        make_taxon("G1", "Vanda again", Rank.GENUS),
    ]

    with pytest.raises(SchemaViolationError):
        RecordStore.from_records(records)


def test_duplicate_geo_entity_is_rejected() -> None:
    with pytest.raises(SchemaViolationError):
        RecordStore.from_records((), [make_geo("5", "Tristan"), make_geo("5", "Gough")])


def test_views_are_sorted_and_read_only() -> None:
    store = RecordStore.from_records((), [make_geo("9", "Gough"), make_geo("5", "Tristan")])

    assert [entity.id for entity in store.geo_entities()] == ["5", "9"]
    table = store.rank_table(Rank.GENUS)
    with pytest.raises(TypeError):
        table["X"] = make_taxon("X", "X", Rank.GENUS)  # pyright: ignore[reportIndexIssue]
