"""Rank lineage resolution over a parent-pointer forest.

Each species is walked upward one rank at a time. Two paths can reach a rank:

- the *chain* path follows ``parent_id`` of the nearest resolved node;
- the *skip* path follows ``parent_id`` of the genus below a resolved
  Subtribe, which is how a Genus reaches its Tribe directly.

Subtribe is the only optional rank, so the skip path exists only at Tribe.

Both paths are evaluated explicitly so disagreement is reported instead of
being hidden by whichever lookup happens first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from islandrecon.domain.model import (
    LINEAGE_RANKS,
    RANK_ORDER,
    ConflictKind,
    GapReason,
    Lineage,
    LineageConflict,
    LineageSlot,
    Rank,
    ResolutionGap,
    TaxonRecord,
)
from islandrecon.domain.store import RecordStore

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

log = logging.getLogger(__name__)

type RankTables = Mapping[Rank, Mapping[str, TaxonRecord]]


@dataclass(frozen=True, slots=True)
class LineageResolution:
    """Resolved lineages keyed by species id plus the collected diagnostics."""

    lineages: dict[str, Lineage] = field(default_factory=dict["str", "Lineage"])
    conflicts: tuple[LineageConflict, ...] = ()
    gaps: tuple[ResolutionGap, ...] = ()

    def conflicts_for(self, species_id: str) -> tuple[LineageConflict, ...]:
        return tuple(conflict for conflict in self.conflicts if conflict.species_id == species_id)

    def gaps_for(self, species_id: str) -> tuple[ResolutionGap, ...]:
        return tuple(gap for gap in self.gaps if gap.species_id == species_id)


class ResolveLineages(Protocol):
    def __call__(self, records: RecordStore | Iterable[TaxonRecord]) -> LineageResolution: ...


def resolve_lineages(records: RecordStore | Iterable[TaxonRecord]) -> LineageResolution:
    """Resolve the ancestor chain of every species in ``records``.

    The result holds exactly one lineage per species id. Species without a
    resolvable genus keep a species-only lineage and yield a gap; conflicts
    and gaps never abort the run.
    """

    store = records if isinstance(records, RecordStore) else RecordStore.from_records(records)
    tables: RankTables = {rank: store.rank_table(rank) for rank in RANK_ORDER}

    lineages: dict[str, Lineage] = {}
    conflicts: list[LineageConflict] = []
    gaps: list[ResolutionGap] = []
    for species in store.species():
        walk = _LineageWalk(species=species, tables=tables)
        walk.run()
        lineages[species.id] = walk.lineage()
        conflicts.extend(walk.conflicts)
        gaps.extend(walk.gaps)

    if conflicts:
        log.warning(
            "Lineage conflicts for %s species", len({conflict.species_id for conflict in conflicts})
        )
    log.info(
        "Resolved lineages: species=%s, conflicts=%s, gaps=%s",
        len(lineages),
        len(conflicts),
        len(gaps),
    )
    return LineageResolution(lineages=lineages, conflicts=tuple(conflicts), gaps=tuple(gaps))


@dataclass(slots=True)
class _LineageWalk:
    species: TaxonRecord
    tables: RankTables
    chain: list[TaxonRecord] = field(default_factory=list["TaxonRecord"])
    conflicts: list[LineageConflict] = field(default_factory=list["LineageConflict"])
    gaps: list[ResolutionGap] = field(default_factory=list["ResolutionGap"])

    def run(self) -> None:
        genus = _lookup(self.tables[Rank.GENUS], self.species.parent_id)
        if genus is None:
            self.gaps.append(
                ResolutionGap(
                    species_id=self.species.id,
                    rank=Rank.GENUS,
                    reason=self._genus_gap_reason(),
                    record_id=self.species.id,
                    parent_id=self.species.parent_id,
                )
            )
            return

        self.chain.append(genus)
        for rank in LINEAGE_RANKS[1:]:
            if not self._step(rank):
                return
        self._check_dangling_top()

    def lineage(self) -> Lineage:
        slots = {record.rank: _slot(record) for record in self.chain}
        return Lineage(
            species_id=self.species.id,
            species_name=self.species.name,
            species_status=self.species.status,
            slots=slots,
        )

    def _step(self, rank: Rank) -> bool:
        """Resolve ``rank``; return False when the walk must stop."""

        table = self.tables[rank]
        prev = self.chain[-1]
        via_chain = _lookup(table, prev.parent_id)
        via_skip = None
        if rank is Rank.TRIBE and prev.rank is Rank.SUBTRIBE:
            via_skip = _lookup(table, self.chain[-2].parent_id)

        if via_chain is not None and via_skip is not None and not _same_taxon(via_chain, via_skip):
            self.conflicts.append(
                LineageConflict(
                    species_id=self.species.id,
                    rank=rank,
                    kind=ConflictKind.DISAGREEING_PATHS,
                    via_chain=via_chain.name,
                    via_skip=via_skip.name,
                )
            )
            # higher ranks would depend on which path is right
            return False

        if via_chain is None and via_skip is not None:
            self.conflicts.append(
                LineageConflict(
                    species_id=self.species.id,
                    rank=rank,
                    kind=ConflictKind.PARTIAL_PATH,
                    via_chain=None,
                    via_skip=via_skip.name,
                    resolved_to=via_skip.name,
                )
            )
            # the subtribe is not under the tribe that won
            self.chain.pop()

        resolved = via_chain or via_skip
        if resolved is not None:
            self.chain.append(resolved)
        return True

    def _check_dangling_top(self) -> None:
        top = self.chain[-1]
        if top.parent_id is None or top.rank is RANK_ORDER[-1]:
            return
        reason = (
            GapReason.PARENT_RANK_NOT_HIGHER
            if any(top.parent_id in self.tables[rank] for rank in RANK_ORDER[: top.rank.level + 1])
            else GapReason.DANGLING_PARENT
        )
        self.gaps.append(
            ResolutionGap(
                species_id=self.species.id,
                rank=RANK_ORDER[top.rank.level + 1],
                reason=reason,
                record_id=top.id,
                parent_id=top.parent_id,
            )
        )

    def _genus_gap_reason(self) -> GapReason:
        parent_id = self.species.parent_id
        if parent_id is None:
            return GapReason.MISSING_PARENT
        if any(parent_id in self.tables[rank] for rank in LINEAGE_RANKS[1:]):
            return GapReason.PARENT_NOT_GENUS
        if parent_id in self.tables[Rank.SPECIES]:
            return GapReason.PARENT_RANK_NOT_HIGHER
        return GapReason.DANGLING_PARENT


def _lookup(table: Mapping[str, TaxonRecord], record_id: str | None) -> TaxonRecord | None:
    if record_id is None:
        return None
    return table.get(record_id)


def _same_taxon(left: TaxonRecord, right: TaxonRecord) -> bool:
    return left.id == right.id or left.name == right.name


def _slot(record: TaxonRecord) -> LineageSlot:
    return LineageSlot(
        record_id=record.id,
        name=record.name,
        status=record.status,
        parent_id=record.parent_id,
    )
