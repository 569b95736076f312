"""Field-level provenance for override layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import datetime

    from islandrecon.domain.model.enums import RecordKind

AUTOMATED: Final[str] = "automated"

type FieldRef = tuple[RecordKind, str, str]


@dataclass(frozen=True, slots=True, kw_only=True)
class ProvenanceEntry:
    """One applied correction, kept for audit even after a later layer overwrites it."""

    record_kind: RecordKind
    target_id: str
    field: str
    layer: str
    previous_value: object
    new_value: object
    justification: str = ""
    authored_at: datetime | None = None
    changed: bool = True

    @property
    def ref(self) -> FieldRef:
        return (self.record_kind, self.target_id, self.field)


@dataclass(slots=True)
class ProvenanceLog:
    """Append-only log of applied corrections with a pointer to the last writer."""

    entries: list[ProvenanceEntry] = field(default_factory=list["ProvenanceEntry"])
    _current: dict[FieldRef, ProvenanceEntry] = field(
        default_factory=dict["FieldRef", "ProvenanceEntry"], repr=False
    )

    def __iter__(self) -> Iterator[ProvenanceEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def record(self, entry: ProvenanceEntry) -> None:
        self.entries.append(entry)
        self._current[entry.ref] = entry

    def extend(self, other: ProvenanceLog) -> None:
        for entry in other.entries:
            self.record(entry)

    def source_of(self, kind: RecordKind, target_id: str, field_name: str) -> str:
        """Return the layer that last set the field, or ``"automated"``."""

        entry = self._current.get((kind, target_id, field_name))
        return AUTOMATED if entry is None else entry.layer

    def current(self, kind: RecordKind, target_id: str, field_name: str) -> ProvenanceEntry | None:
        return self._current.get((kind, target_id, field_name))

    def history(
        self, kind: RecordKind, target_id: str, field_name: str
    ) -> tuple[ProvenanceEntry, ...]:
        ref = (kind, target_id, field_name)
        return tuple(entry for entry in self.entries if entry.ref == ref)

    def fields_for(self, kind: RecordKind, target_id: str) -> dict[str, str]:
        """Map each touched field of one record to its last writing layer."""

        return {
            ref[2]: entry.layer
            for ref, entry in sorted(self._current.items())
            if ref[0] == kind and ref[1] == target_id
        }

    def layers(self) -> tuple[str, ...]:
        seen: dict[str, None] = {}
        for entry in self.entries:
            seen.setdefault(entry.layer, None)
        return tuple(seen)
