"""Fatal domain errors.

Everything else the engine encounters is collected as a diagnostic; these are
raised because continuing would produce meaningless output.
"""

from __future__ import annotations


class SchemaViolationError(ValueError):
    """Raised when input records violate the basic schema (missing id/rank, duplicates)."""


class LayerOrderError(ValueError):
    """Raised when override layers are supplied out of their declared order."""
