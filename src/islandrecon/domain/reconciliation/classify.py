"""Rule-table classification of raw geo-entity attributes.

The mapping is three-valued and never collapses to a bare null:

- raw value absent            -> ``UnknownClassification`` ("Unknown")
- raw value present, unmapped -> ``NeedsReviewClassification`` ("NeedsReview")
- raw value mapped            -> ``KnownClassification(value)``

Lookup is exact after stripping surrounding whitespace. Composite values such
as ``"atoll/floor/volcanic"`` are only mapped when the table lists them
verbatim; the table is never asked to infer composition.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from islandrecon.domain.model import (
    Classification,
    ClassificationGap,
    GeoEntity,
    KnownClassification,
    NeedsReviewClassification,
    SchemaViolationError,
    UnknownClassification,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

log = logging.getLogger(__name__)

DEFAULT_MISSING_MARKERS: Final[frozenset[str]] = frozenset({"", "NA"})


@dataclass(frozen=True, slots=True, kw_only=True)
class RuleTable:
    """Ordered raw -> coarse mapping for one raw attribute.

    ``attribute`` names the raw attribute read from each entity and ``target``
    the derived attribute written back.
    """

    attribute: str
    target: str
    rules: Mapping[str, str] = field(default_factory=dict["str", "str"])
    name: str | None = None

    def __post_init__(self) -> None:
        if not self.attribute or not self.target:
            raise SchemaViolationError("Rule table requires an attribute and a target")
        object.__setattr__(self, "rules", MappingProxyType(dict(self.rules)))

    def __hash__(self) -> int:
        return hash((self.attribute, self.target, tuple(self.rules.items())))

    @property
    def label(self) -> str:
        return self.name or f"{self.attribute}->{self.target}"

    def lookup(self, raw_value: str) -> str | None:
        return self.rules.get(raw_value.strip())


@dataclass(frozen=True, slots=True)
class ClassificationOutcome:
    entities: tuple[GeoEntity, ...] = ()
    review_list: tuple[ClassificationGap, ...] = ()

    def entity(self, entity_id: str) -> GeoEntity | None:
        return next((entity for entity in self.entities if entity.id == entity_id), None)


def classify_value(
    raw_value: str | None,
    table: RuleTable,
    *,
    missing_markers: frozenset[str] = DEFAULT_MISSING_MARKERS,
) -> Classification:
    """Classify one raw value against ``table``."""

    if raw_value is None or is_missing(raw_value, missing_markers=missing_markers):
        return UnknownClassification()
    coarse = table.lookup(raw_value)
    if coarse is None:
        return NeedsReviewClassification(raw_value=raw_value)
    return KnownClassification(value=coarse)


def is_missing(raw_value: str, *, missing_markers: frozenset[str]) -> bool:
    return raw_value.strip() in missing_markers


def classify(
    entities: Iterable[GeoEntity],
    rules: Sequence[RuleTable],
    *,
    missing_markers: frozenset[str] = DEFAULT_MISSING_MARKERS,
) -> ClassificationOutcome:
    """Populate derived attributes of every entity from ``rules``.

    Pure function of the entities and rule tables: each entity is replaced by
    a fresh copy, and gaps go to an advisory review list instead of blocking.
    """

    _check_unique_targets(rules)
    classified: list[GeoEntity] = []
    review_list: list[ClassificationGap] = []
    for entity in sorted(entities, key=lambda item: item.id):
        derived = dict(entity.derived_attributes)
        for table in rules:
            raw_value = entity.raw_attributes.get(table.attribute)
            classification = classify_value(raw_value, table, missing_markers=missing_markers)
            derived[table.target] = classification
            if isinstance(classification, NeedsReviewClassification):
                review_list.append(
                    ClassificationGap(
                        entity_id=entity.id,
                        attribute=table.attribute,
                        target=table.target,
                        raw_value=classification.raw_value,
                    )
                )
        classified.append(replace(entity, derived_attributes=derived))

    log.info(
        "Classified geo entities: entities=%s, rule_tables=%s, needs_review=%s",
        len(classified),
        len(rules),
        len(review_list),
    )
    return ClassificationOutcome(entities=tuple(classified), review_list=tuple(review_list))


def _check_unique_targets(rules: Sequence[RuleTable]) -> None:
    seen: set[str] = set()
    for table in rules:
        if table.target in seen:
            raise SchemaViolationError(
                f"Several rule tables write derived attribute {table.target!r}"
            )
        seen.add(table.target)
