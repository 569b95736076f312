"""Manually curated correction layers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from islandrecon.domain.model.enums import RecordKind


@dataclass(frozen=True, slots=True, kw_only=True)
class Correction:
    """Set ``field`` of record ``target_id`` to ``new_value``."""

    target_id: str
    field: str
    new_value: object
    justification: str = ""
    authored_at: datetime | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class OverrideLayer:
    """Named, ordered batch of corrections against one record set.

    ``sequence`` is the declared position of the layer (commonly the review
    pass number); when present it must increase across the layers of a run.
    """

    name: str
    kind: RecordKind
    corrections: tuple[Correction, ...] = ()
    sequence: int | None = None
    description: str | None = None
