"""Taxonomic backbone records."""

from __future__ import annotations

from dataclasses import dataclass

from islandrecon.domain.model.enums import Rank, TaxonStatus
from islandrecon.domain.model.errors import SchemaViolationError

type TaxonKey = tuple[Rank, str]


@dataclass(frozen=True, slots=True, kw_only=True)
class TaxonRecord:
    """One row of the backbone: a name at a rank with a link to its parent."""

    id: str
    name: str
    rank: Rank
    parent_id: str | None = None
    status: TaxonStatus = TaxonStatus.ACCEPTED

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            raise SchemaViolationError("Taxon record requires a non-blank id")
        if not isinstance(self.rank, Rank):
            raise SchemaViolationError(f"Taxon record {self.id!r} has no valid rank")

    @property
    def key(self) -> TaxonKey:
        return (self.rank, self.id)


@dataclass(frozen=True, slots=True, kw_only=True)
class ReconciledTaxon:
    """Per-species output row with resolved lineage names."""

    id: str
    name: str
    status: TaxonStatus
    genus: str | None = None
    subtribe: str | None = None
    tribe: str | None = None
    subfamily: str | None = None
    family: str | None = None

    def rank_name(self, rank: Rank) -> str | None:
        if rank is Rank.SPECIES:
            return self.name
        return getattr(self, rank.field_name)
