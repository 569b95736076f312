"""Flat-table adapter: JSON/JSON-lines extracts in, reconciled tables out."""

from __future__ import annotations

from .reader import read_documents, read_names
from .schema import DiagnosticBundle, ReconciledTables
from .translator import (
    diagnostic_bundle,
    layer_document,
    parse_geo_entities,
    parse_override_layer,
    parse_rule_tables,
    parse_taxon_records,
    reconciled_tables,
)

__all__ = [
    "DiagnosticBundle",
    "ReconciledTables",
    "diagnostic_bundle",
    "layer_document",
    "parse_geo_entities",
    "parse_override_layer",
    "parse_rule_tables",
    "parse_taxon_records",
    "read_documents",
    "read_names",
    "reconciled_tables",
]
