"""Derived per-species lineage projections."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from islandrecon.domain.model.enums import LINEAGE_RANKS, Rank, TaxonStatus


@dataclass(frozen=True, slots=True)
class LineageSlot:
    """The ancestor resolved at one rank."""

    record_id: str
    name: str
    status: TaxonStatus
    parent_id: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class Lineage:
    """Resolved ancestor chain of one species.

    ``slots`` holds an entry for every rank above Species; ``None`` means the
    rank is absent from the chain, which is different from an ancestor that
    is present with an ``Unplaced`` status.
    """

    species_id: str
    species_name: str
    species_status: TaxonStatus
    slots: Mapping[Rank, LineageSlot | None] = field(
        default_factory=dict["Rank", "LineageSlot | None"]
    )

    def __post_init__(self) -> None:
        filled = {rank: self.slots.get(rank) for rank in LINEAGE_RANKS}
        object.__setattr__(self, "slots", MappingProxyType(filled))

    def __hash__(self) -> int:
        return hash((self.species_id, tuple(self.slots.items())))

    def slot(self, rank: Rank) -> LineageSlot | None:
        return self.slots.get(rank)

    def name_at(self, rank: Rank) -> str | None:
        slot = self.slots.get(rank)
        return None if slot is None else slot.name

    def status_at(self, rank: Rank) -> TaxonStatus | None:
        slot = self.slots.get(rank)
        return None if slot is None else slot.status

    @property
    def genus(self) -> str | None:
        return self.name_at(Rank.GENUS)

    @property
    def subtribe(self) -> str | None:
        return self.name_at(Rank.SUBTRIBE)

    @property
    def tribe(self) -> str | None:
        return self.name_at(Rank.TRIBE)

    @property
    def subfamily(self) -> str | None:
        return self.name_at(Rank.SUBFAMILY)

    @property
    def family(self) -> str | None:
        return self.name_at(Rank.FAMILY)

    @property
    def is_anchored(self) -> bool:
        """True when at least the genus was resolved."""
        return self.slots.get(Rank.GENUS) is not None
