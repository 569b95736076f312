"""Match external checklist names against backbone species.

Several backbone rows may carry the same name (an accepted name and a synonym
from another authority, for example). Such ties are never settled by row
order; the documented rule is:

1. prefer the better status, in ``STATUS_PRECEDENCE`` order
   (Accepted > Unassessed > Unplaced > Synonym);
2. among equal statuses, prefer the smallest record id.

Each tie produces an ``AmbiguousMatch`` so the choice stays auditable.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from islandrecon.domain.model import STATUS_PRECEDENCE, AmbiguousMatch, TaxonRecord

if TYPE_CHECKING:
    from collections.abc import Iterable

    from islandrecon.domain.store import RecordStore

log = logging.getLogger(__name__)

TIE_BREAK_RULE: Final[str] = "status_precedence_then_lowest_id"

_WHITESPACE = re.compile(r"\s+")


def normalize_name(value: str) -> str:
    """Return the comparison key of a scientific name."""

    normalized = unicodedata.normalize("NFC", value)
    return _WHITESPACE.sub(" ", normalized).strip().casefold()


@dataclass(frozen=True, slots=True)
class MatchResult:
    matches: dict[str, TaxonRecord] = field(default_factory=dict["str", "TaxonRecord"])
    ambiguities: tuple[AmbiguousMatch, ...] = ()
    unmatched: tuple[str, ...] = ()

    @property
    def matched_ids(self) -> frozenset[str]:
        return frozenset(record.id for record in self.matches.values())


def match_names(names: Iterable[str], store: RecordStore) -> MatchResult:
    """Match ``names`` against the species table of ``store``.

    Names are compared after Unicode and whitespace normalization and case
    folding. The returned ``matches`` mapping is keyed by the name as given.
    """

    index: dict[str, list[TaxonRecord]] = {}
    for record in store.species():
        index.setdefault(normalize_name(record.name), []).append(record)

    matches: dict[str, TaxonRecord] = {}
    ambiguities: list[AmbiguousMatch] = []
    unmatched: list[str] = []
    for name in sorted(set(names)):
        candidates = index.get(normalize_name(name), [])
        if not candidates:
            unmatched.append(name)
            continue
        chosen = choose_candidate(candidates)
        matches[name] = chosen
        if len(candidates) > 1:
            ambiguities.append(
                AmbiguousMatch(
                    key=name,
                    candidates=tuple(sorted(record.id for record in candidates)),
                    chosen=chosen.id,
                    rule=TIE_BREAK_RULE,
                )
            )

    log.info(
        "Matched checklist names: matched=%s, ambiguous=%s, unmatched=%s",
        len(matches),
        len(ambiguities),
        len(unmatched),
    )
    return MatchResult(matches=matches, ambiguities=tuple(ambiguities), unmatched=tuple(unmatched))


def choose_candidate(candidates: Iterable[TaxonRecord]) -> TaxonRecord:
    """Apply the documented tie-break to a non-empty candidate set."""

    ordered = sorted(
        candidates,
        key=lambda record: (STATUS_PRECEDENCE.index(record.status), record.id),
    )
    if not ordered:
        raise ValueError("choose_candidate requires at least one candidate")
    return ordered[0]
