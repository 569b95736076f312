from __future__ import annotations

import random

from islandrecon.domain.model import (
    ConflictKind,
    GapReason,
    Rank,
    TaxonStatus,
)
from islandrecon.domain.reconciliation import resolve_lineages
from islandrecon.domain.store import RecordStore
from tests.helpers.records import (
    clean_backbone,
    conflicting_backbone,
    make_taxon,
    upper_backbone,
)


def test_clean_lineage_with_skipped_subtribe() -> None:
    records = [
        make_taxon("S1", "A", Rank.SPECIES, "G1"),
        make_taxon("G1", "Ga", Rank.GENUS, "T1"),
        make_taxon("T1", "Ta", Rank.TRIBE, "F1"),
        make_taxon("F1", "Fa", Rank.SUBFAMILY),
    ]

    resolution = resolve_lineages(records)

    lineage = resolution.lineages["S1"]
    assert lineage.genus == "Ga"
    assert lineage.subtribe is None
    assert lineage.tribe == "Ta"
    assert lineage.subfamily == "Fa"
    assert lineage.family is None
    assert resolution.conflicts == ()
    assert resolution.gaps == ()


def test_full_chain_through_subtribe() -> None:
    resolution = resolve_lineages(clean_backbone())

    vanda = resolution.lineages["S1"]
    assert (vanda.genus, vanda.subtribe, vanda.tribe, vanda.subfamily, vanda.family) == (
        "Vanda",
        "Aeridinae",
        "Vandeae",
        "Epidendroideae",
        "Orchidaceae",
    )
    bulbophyllum = resolution.lineages["S2"]
    assert bulbophyllum.subtribe is None
    assert bulbophyllum.tribe == "Dendrobieae"
    assert resolution.conflicts == ()


def test_one_lineage_per_species() -> None:
    resolution = resolve_lineages(conflicting_backbone())

    assert sorted(resolution.lineages) == ["S1", "S2", "S3"]


def test_disagreeing_paths_leave_rank_unresolved() -> None:
    resolution = resolve_lineages(conflicting_backbone())

    (conflict,) = resolution.conflicts_for("S3")
    assert conflict.rank is Rank.TRIBE
    assert conflict.kind is ConflictKind.DISAGREEING_PATHS
    assert conflict.via_chain == "Tribe via subtribe"
    assert conflict.via_skip == "Tribe via genus"
    assert conflict.resolved_to is None

    lineage = resolution.lineages["S3"]
    assert lineage.genus == "Conflictia"
    assert lineage.subtribe == "Conflictinae"
    assert lineage.tribe is None
    assert lineage.family is None


def test_partial_path_keeps_the_non_null_candidate() -> None:
    records = [
        *upper_backbone(),
        make_taxon("10", "Orphan subtribe", Rank.SUBTRIBE),
        make_taxon("10", "Vandeae sensu lato", Rank.TRIBE, "SF1"),
        make_taxon("G4", "Partialis", Rank.GENUS, "10"),
        make_taxon("S4", "Partialis una", Rank.SPECIES, "G4"),
    ]

    resolution = resolve_lineages(records)

    (conflict,) = resolution.conflicts_for("S4")
    assert conflict.kind is ConflictKind.PARTIAL_PATH
    assert conflict.via_chain is None
    assert conflict.resolved_to == "Vandeae sensu lato"
    lineage = resolution.lineages["S4"]
    assert lineage.subtribe is None
    assert lineage.tribe == "Vandeae sensu lato"
    assert lineage.subfamily == "Epidendroideae"


def test_agreeing_paths_are_not_a_conflict() -> None:
    # ST1 is also the id of a tribe that carries the same name as T1
    records = [
        *upper_backbone(),
        make_taxon("ST1", "Vandeae", Rank.TRIBE, "SF1"),
        make_taxon("G5", "Aerides", Rank.GENUS, "ST1"),
        make_taxon("S5", "Aerides odorata", Rank.SPECIES, "G5"),
    ]

    resolution = resolve_lineages(records)

    assert resolution.conflicts_for("S5") == ()
    assert resolution.lineages["S5"].tribe == "Vandeae"


def test_species_without_genus_keeps_species_only_lineage() -> None:
    records = [
        *upper_backbone(),
        make_taxon("S6", "Rootless", Rank.SPECIES),
        make_taxon("S7", "Dangling", Rank.SPECIES, "missing"),
        make_taxon("S8", "Under a tribe", Rank.SPECIES, "T1"),
        make_taxon("S9", "Under a species", Rank.SPECIES, "S6"),
    ]

    resolution = resolve_lineages(records)

    reasons = {gap.species_id: gap.reason for gap in resolution.gaps}
    assert reasons == {
        "S6": GapReason.MISSING_PARENT,
        "S7": GapReason.DANGLING_PARENT,
        "S8": GapReason.PARENT_NOT_GENUS,
        "S9": GapReason.PARENT_RANK_NOT_HIGHER,
    }
    assert all(gap.rank is Rank.GENUS for gap in resolution.gaps)
    assert all(not resolution.lineages[key].is_anchored for key in reasons)


def test_dangling_top_node_yields_gap_at_next_rank() -> None:
    records = [
        make_taxon("G1", "Vanda", Rank.GENUS, "ghost"),
        make_taxon("S1", "Vanda coerulea", Rank.SPECIES, "G1"),
    ]

    resolution = resolve_lineages(records)

    (gap,) = resolution.gaps
    assert gap.rank is Rank.SUBTRIBE
    assert gap.reason is GapReason.DANGLING_PARENT
    assert gap.record_id == "G1"
    assert resolution.lineages["S1"].genus == "Vanda"


def test_unplaced_ancestor_is_present_not_absent() -> None:
    records = [
        make_taxon("T9", "Incertae sedis", Rank.TRIBE, status=TaxonStatus.UNPLACED),
        make_taxon("G9", "Orphanella", Rank.GENUS, "T9"),
        make_taxon("S9", "Orphanella rara", Rank.SPECIES, "G9"),
    ]

    lineage = resolve_lineages(records).lineages["S9"]

    assert lineage.status_at(Rank.TRIBE) is TaxonStatus.UNPLACED
    assert lineage.status_at(Rank.SUBTRIBE) is None


def test_resolution_is_independent_of_input_order() -> None:
    records = conflicting_backbone()
    expected = resolve_lineages(records)

    for seed in range(5):
        shuffled = list(records)
        random.Random(seed).shuffle(shuffled)
        assert resolve_lineages(shuffled) == expected


def test_clean_lineages_are_monotone() -> None:
    store = RecordStore.from_records(clean_backbone())
    resolution = resolve_lineages(store)

    for species_id, lineage in resolution.lineages.items():
        if resolution.conflicts_for(species_id):
            continue
        subtribe = lineage.slot(Rank.SUBTRIBE)
        tribe = lineage.slot(Rank.TRIBE)
        if subtribe is not None and tribe is not None:
            assert subtribe.parent_id == tribe.record_id


def test_ids_shared_across_upper_rank_tables_are_not_a_conflict() -> None:
    # each rank table numbers its own ids
    records = [
        make_taxon("1", "Asteraceae", Rank.FAMILY),
        make_taxon("1", "Asteroideae", Rank.SUBFAMILY, "1"),
        make_taxon("2", "Carduoideae", Rank.SUBFAMILY, "1"),
        make_taxon("1", "Astereae", Rank.TRIBE, "1"),
        make_taxon("2", "Anthemideae", Rank.TRIBE, "1"),
        make_taxon("7", "Achillea", Rank.GENUS, "2"),
        make_taxon("S1", "Achillea millefolium", Rank.SPECIES, "7"),
    ]

    resolution = resolve_lineages(records)

    assert resolution.conflicts == ()
    assert resolution.gaps == ()
    lineage = resolution.lineages["S1"]
    assert (lineage.genus, lineage.subtribe, lineage.tribe, lineage.subfamily, lineage.family) == (
        "Achillea",
        None,
        "Anthemideae",
        "Asteroideae",
        "Asteraceae",
    )


def test_partial_path_lineage_stays_monotone() -> None:
    records = [
        *upper_backbone(),
        make_taxon("10", "Orphan subtribe", Rank.SUBTRIBE),
        make_taxon("10", "Vandeae sensu lato", Rank.TRIBE, "SF1"),
        make_taxon("G4", "Partialis", Rank.GENUS, "10"),
        make_taxon("S4", "Partialis una", Rank.SPECIES, "G4"),
    ]

    lineage = resolve_lineages(records).lineages["S4"]

    subtribe = lineage.slot(Rank.SUBTRIBE)
    tribe = lineage.slot(Rank.TRIBE)
    assert tribe is not None
    assert subtribe is None or subtribe.parent_id == tribe.record_id
