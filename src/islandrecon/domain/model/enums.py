"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Rank(StrEnum):
    """Taxonomic ranks, declared from the lowest to the highest."""

    SPECIES = "Species"
    GENUS = "Genus"
    SUBTRIBE = "Subtribe"
    TRIBE = "Tribe"
    SUBFAMILY = "Subfamily"
    FAMILY = "Family"

    @property
    def level(self) -> int:
        return RANK_ORDER.index(self)

    def is_higher_than(self, other: Rank) -> bool:
        return self.level > other.level

    @property
    def field_name(self) -> str:
        """Column name used for this rank in reconciled taxon tables."""
        return self.value.lower()


RANK_ORDER: tuple[Rank, ...] = tuple(Rank)
LINEAGE_RANKS: tuple[Rank, ...] = RANK_ORDER[1:]


class TaxonStatus(StrEnum):
    ACCEPTED = "Accepted"
    SYNONYM = "Synonym"
    UNPLACED = "Unplaced"
    UNASSESSED = "Unassessed"


# Tie-break order for ambiguous name matches; earlier wins.
STATUS_PRECEDENCE: tuple[TaxonStatus, ...] = (
    TaxonStatus.ACCEPTED,
    TaxonStatus.UNASSESSED,
    TaxonStatus.UNPLACED,
    TaxonStatus.SYNONYM,
)


class EntityClass(StrEnum):
    """Assigned class of a geographic entity (never inferred)."""

    ISLAND = "Island"
    ISLAND_PART = "IslandPart"
    ISLAND_GROUP = "IslandGroup"
    ISLAND_GROUP_LIST = "IslandGroupList"


class RecordKind(StrEnum):
    """Discriminator for the two record sets a run reconciles."""

    TAXON = "taxon"
    GEO = "geo"


class ClassificationStatus(StrEnum):
    KNOWN = "known"
    UNKNOWN = "unknown"
    NEEDS_REVIEW = "needs_review"


class PipelineStage(StrEnum):
    LOADED = "loaded"
    LINEAGE_RESOLVED = "lineage_resolved"
    CLASSIFIED = "classified"
    LAYERS_APPLIED = "layers_applied"
    FINALIZED = "finalized"
