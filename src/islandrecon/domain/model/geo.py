"""Geographic entities and their three-valued classifications."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Final, Literal

from islandrecon.domain.model.enums import ClassificationStatus, EntityClass
from islandrecon.domain.model.errors import SchemaViolationError

UNKNOWN_VALUE: Final[str] = "Unknown"
NEEDS_REVIEW_VALUE: Final[str] = "NeedsReview"


@dataclass(frozen=True, slots=True)
class KnownClassification:
    """Raw value matched a rule, or a curator set the value."""

    value: str
    status: Literal[ClassificationStatus.KNOWN] = ClassificationStatus.KNOWN


@dataclass(frozen=True, slots=True)
class UnknownClassification:
    """No raw data was recorded for the governing attribute."""

    status: Literal[ClassificationStatus.UNKNOWN] = ClassificationStatus.UNKNOWN

    @property
    def value(self) -> str:
        return UNKNOWN_VALUE


@dataclass(frozen=True, slots=True)
class NeedsReviewClassification:
    """Raw value present but absent from the rule table."""

    raw_value: str
    status: Literal[ClassificationStatus.NEEDS_REVIEW] = ClassificationStatus.NEEDS_REVIEW

    @property
    def value(self) -> str:
        return NEEDS_REVIEW_VALUE


type Classification = KnownClassification | UnknownClassification | NeedsReviewClassification


def _frozen[V](mapping: Mapping[str, V] | None) -> Mapping[str, V]:
    return MappingProxyType(dict(sorted((mapping or {}).items())))


@dataclass(frozen=True, slots=True, kw_only=True)
class GeoEntity:
    """An island, island part or island group extracted from a geographic database."""

    id: str
    name: str
    raw_attributes: Mapping[str, str | None] = field(default_factory=dict["str", "str | None"])
    derived_attributes: Mapping[str, Classification] = field(
        default_factory=dict["str", "Classification"]
    )
    entity_class: EntityClass | None = None

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            raise SchemaViolationError("Geo entity requires a non-blank id")
        object.__setattr__(self, "raw_attributes", _frozen(self.raw_attributes))
        object.__setattr__(self, "derived_attributes", _frozen(self.derived_attributes))

    def __hash__(self) -> int:
        return hash((self.id, self.name, self.entity_class))

    def derived_value(self, attribute: str) -> str | None:
        classification = self.derived_attributes.get(attribute)
        return None if classification is None else classification.value

    @property
    def needs_review(self) -> tuple[str, ...]:
        return tuple(
            name
            for name, classification in self.derived_attributes.items()
            if classification.status is ClassificationStatus.NEEDS_REVIEW
        )
