from __future__ import annotations

import pytest

from islandrecon.domain.model import Rank, TaxonStatus
from islandrecon.domain.reconciliation import choose_candidate, match_names, normalize_name
from islandrecon.domain.reconciliation.matching import TIE_BREAK_RULE
from islandrecon.domain.store import RecordStore
from tests.helpers.records import clean_backbone, make_taxon


def test_normalize_name_folds_case_and_whitespace() -> None:
    assert normalize_name("  Vanda   COERULEA ") == "vanda coerulea"
    assert normalize_name("Cattleya\u0301") == normalize_name("Cattley\u00e1")


def test_match_names_reports_unmatched() -> None:
    store = RecordStore.from_records(clean_backbone())

    result = match_names(["vanda coerulea", "Nonexistens fictus"], store)

    assert result.matches["vanda coerulea"].id == "S1"
    assert result.unmatched == ("Nonexistens fictus",)
    assert result.ambiguities == ()
    assert result.matched_ids == frozenset({"S1"})


def test_ambiguous_names_use_status_precedence() -> None:
    store = RecordStore.from_records(
        [
            make_taxon("S1", "Vanda tricolor", Rank.SPECIES, status=TaxonStatus.SYNONYM),
            make_taxon("S9", "Vanda tricolor", Rank.SPECIES, status=TaxonStatus.ACCEPTED),
        ]
    )

    result = match_names(["Vanda tricolor"], store)

    (ambiguity,) = result.ambiguities
    assert ambiguity.chosen == "S9"
    assert ambiguity.candidates == ("S1", "S9")
    assert ambiguity.rule == TIE_BREAK_RULE
    assert result.matches["Vanda tricolor"].id == "S9"


def test_equal_status_prefers_smallest_id() -> None:
    candidates = [
        make_taxon("S3", "Vanda", Rank.SPECIES, status=TaxonStatus.UNASSESSED),
        make_taxon("S2", "Vanda", Rank.SPECIES, status=TaxonStatus.UNASSESSED),
        make_taxon("S1", "Vanda", Rank.SPECIES, status=TaxonStatus.UNPLACED),
    ]

    assert choose_candidate(candidates).id == "S2"


def test_choose_candidate_requires_candidates() -> None:
    with pytest.raises(ValueError, match="at least one"):
        choose_candidate([])
