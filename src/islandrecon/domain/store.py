"""In-memory snapshot of the raw backbone and geo-entity tables for one run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from islandrecon.domain.model import (
    RANK_ORDER,
    GeoEntity,
    Rank,
    SchemaViolationError,
    TaxonRecord,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from islandrecon.domain.model import TaxonKey

log = logging.getLogger(__name__)


def _new_rank_index() -> dict[Rank, dict[str, TaxonRecord]]:
    return {rank: {} for rank in RANK_ORDER}


@dataclass(slots=True)
class RecordStore:
    """Owns the taxon and geo-entity records of a run.

    Taxon records are partitioned by rank; identity is ``(rank, id)`` so a
    backbone that numbers each rank table independently can be loaded as-is.
    Geo entities are keyed by id. All accessors return read-only views sorted
    by id, which keeps every downstream stage independent of input row order.
    """

    _taxa_by_rank: dict[Rank, dict[str, TaxonRecord]] = field(
        default_factory=_new_rank_index, repr=False
    )
    _geo_by_id: dict[str, GeoEntity] = field(default_factory=dict["str", "GeoEntity"], repr=False)

    @classmethod
    def from_records(
        cls,
        taxa: Iterable[TaxonRecord] = (),
        geo_entities: Iterable[GeoEntity] = (),
    ) -> RecordStore:
        store = cls()
        for record in taxa:
            store.add_taxon(record)
        for entity in geo_entities:
            store.add_geo_entity(entity)
        log.debug(
            "Loaded record store: taxa=%s, geo_entities=%s",
            store.taxon_count,
            len(store._geo_by_id),
        )
        return store

    def add_taxon(self, record: TaxonRecord) -> None:
        table = self._taxa_by_rank[record.rank]
        if record.id in table:
            raise SchemaViolationError(
                f"Duplicate taxon record for rank {record.rank} and id {record.id!r}"
            )
        table[record.id] = record

    def add_geo_entity(self, entity: GeoEntity) -> None:
        if entity.id in self._geo_by_id:
            raise SchemaViolationError(f"Duplicate geo entity id {entity.id!r}")
        self._geo_by_id[entity.id] = entity

    @property
    def taxon_count(self) -> int:
        return sum(len(table) for table in self._taxa_by_rank.values())

    def rank_table(self, rank: Rank) -> Mapping[str, TaxonRecord]:
        table = self._taxa_by_rank[rank]
        return MappingProxyType({key: table[key] for key in sorted(table)})

    def taxon(self, key: TaxonKey) -> TaxonRecord | None:
        rank, record_id = key
        return self._taxa_by_rank[rank].get(record_id)

    def species(self) -> tuple[TaxonRecord, ...]:
        table = self._taxa_by_rank[Rank.SPECIES]
        return tuple(table[key] for key in sorted(table))

    def taxa(self) -> tuple[TaxonRecord, ...]:
        return tuple(
            record
            for rank in RANK_ORDER
            for _, record in sorted(self._taxa_by_rank[rank].items())
        )

    def ranks_containing(self, record_id: str) -> tuple[Rank, ...]:
        """Return every rank whose table holds ``record_id``."""

        return tuple(rank for rank in RANK_ORDER if record_id in self._taxa_by_rank[rank])

    def geo_entity(self, entity_id: str) -> GeoEntity | None:
        return self._geo_by_id.get(entity_id)

    def geo_entities(self) -> tuple[GeoEntity, ...]:
        return tuple(self._geo_by_id[key] for key in sorted(self._geo_by_id))
