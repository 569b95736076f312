"""Phase-based orchestrator for one reconciliation run.

Stages advance linearly::

    Loaded -> LineageResolved -> Classified -> LayersApplied -> Finalized

Every transition succeeds and only accumulates diagnostics, so a run always
ends with a best-effort snapshot plus the bundle of cases that need manual
triage. Those cases are corrected out of band and fed back as the next
override layer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from islandrecon.domain.model import (
    AUTOMATED,
    ExceptionReason,
    ExceptionRecord,
    PipelineStage,
    Rank,
    ReconciledTaxon,
    RecordKind,
)
from islandrecon.domain.store import RecordStore

from .classify import DEFAULT_MISSING_MARKERS, ClassificationOutcome, classify
from .lineage import LineageResolution, resolve_lineages
from .matching import MatchResult, match_names
from .overrides import OverrideResult, apply_layers, validate_layer_order

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from islandrecon.domain.model import (
        AmbiguousMatch,
        ClassificationGap,
        GeoEntity,
        LayerApplicationError,
        Lineage,
        LineageConflict,
        OverrideLayer,
        ProvenanceLog,
        ResolutionGap,
        TaxonRecord,
    )

    from .classify import RuleTable

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PipelineOptions:
    """Caller decisions that shape finalization.

    ``block_on_conflicts`` keeps species with an uncorrected lineage conflict
    out of the clean taxon table (they are always reported as exceptions).
    """

    block_on_conflicts: bool = True
    missing_markers: frozenset[str] = DEFAULT_MISSING_MARKERS


@dataclass(frozen=True, slots=True)
class ReconciliationInput:
    store: RecordStore
    rules: tuple[RuleTable, ...] = ()
    layers: tuple[OverrideLayer, ...] = ()
    checklist: tuple[str, ...] | None = None


@dataclass(slots=True)
class PipelineContext:
    """Mutable state threaded through the phases of one run."""

    options: PipelineOptions = field(default_factory=PipelineOptions)
    stage: PipelineStage = PipelineStage.LOADED
    history: list[PipelineStage] = field(
        default_factory=lambda: [PipelineStage.LOADED]
    )
    lineage: LineageResolution | None = None
    matches: MatchResult | None = None
    classification: ClassificationOutcome | None = None
    taxon_overrides: OverrideResult[ReconciledTaxon] | None = None
    geo_overrides: OverrideResult[GeoEntity] | None = None
    result: ReconciliationResult | None = None

    def advance(self, *, expected: PipelineStage, to: PipelineStage) -> None:
        if self.stage is not expected:
            raise RuntimeError(f"Cannot move to {to}: pipeline is at {self.stage}, not {expected}")
        self.stage = to
        self.history.append(to)
        log.debug("Pipeline stage: %s", to)


@dataclass(frozen=True, slots=True, kw_only=True)
class ReconciliationResult:
    """Immutable snapshot produced by a run, plus its diagnostic bundle."""

    taxon_out: tuple[ReconciledTaxon, ...] = ()
    geo_out: tuple[GeoEntity, ...] = ()
    exceptions: tuple[ExceptionRecord, ...] = ()
    conflicts: tuple[LineageConflict, ...] = ()
    layer_errors: tuple[LayerApplicationError, ...] = ()
    gaps: tuple[ResolutionGap, ...] = ()
    review_list: tuple[ClassificationGap, ...] = ()
    ambiguities: tuple[AmbiguousMatch, ...] = ()
    taxon_provenance: ProvenanceLog | None = None
    geo_provenance: ProvenanceLog | None = None
    lineages: dict[str, Lineage] = field(default_factory=dict["str", "Lineage"])
    stages: tuple[PipelineStage, ...] = ()
    layer_names: tuple[str, ...] = ()

    def taxon(self, species_id: str) -> ReconciledTaxon | None:
        return next((row for row in self.taxon_out if row.id == species_id), None)

    def geo(self, entity_id: str) -> GeoEntity | None:
        return next((entity for entity in self.geo_out if entity.id == entity_id), None)

    def source_of(self, kind: RecordKind, record_id: str, field_name: str) -> str:
        """Name of the layer that last set the field, or ``"automated"``."""

        log_ = self.taxon_provenance if kind is RecordKind.TAXON else self.geo_provenance
        if log_ is None:
            return AUTOMATED
        return log_.source_of(kind, record_id, field_name)

    def exceptions_for(self, reason: ExceptionReason) -> tuple[ExceptionRecord, ...]:
        return tuple(record for record in self.exceptions if record.reason is reason)

    def summary(self) -> dict[str, int]:
        return {
            "taxa": len(self.taxon_out),
            "geo_entities": len(self.geo_out),
            "exceptions": len(self.exceptions),
            "conflicts": len(self.conflicts),
            "gaps": len(self.gaps),
            "review": len(self.review_list),
            "ambiguities": len(self.ambiguities),
            "layer_errors": len(self.layer_errors),
        }


class ReconciliationPhase(Protocol):
    """Contract implemented by each reconciliation phase."""

    name: str

    def run(self, inputs: ReconciliationInput, *, context: PipelineContext) -> None: ...


class LineagePhase:
    name: str = "lineage"

    def run(self, inputs: ReconciliationInput, *, context: PipelineContext) -> None:
        context.advance(expected=PipelineStage.LOADED, to=PipelineStage.LINEAGE_RESOLVED)
        context.lineage = resolve_lineages(inputs.store)
        if inputs.checklist is not None:
            context.matches = match_names(inputs.checklist, inputs.store)


class ClassificationPhase:
    name: str = "classification"

    def run(self, inputs: ReconciliationInput, *, context: PipelineContext) -> None:
        context.advance(expected=PipelineStage.LINEAGE_RESOLVED, to=PipelineStage.CLASSIFIED)
        context.classification = classify(
            inputs.store.geo_entities(),
            inputs.rules,
            missing_markers=context.options.missing_markers,
        )


class OverridePhase:
    name: str = "overrides"

    def run(self, inputs: ReconciliationInput, *, context: PipelineContext) -> None:
        context.advance(expected=PipelineStage.CLASSIFIED, to=PipelineStage.LAYERS_APPLIED)
        if context.lineage is None or context.classification is None:
            raise RuntimeError("Lineage and classification must run before override layers")

        species = _species_in_scope(inputs.store, context.matches)
        taxon_base = [_taxon_row(context.lineage.lineages[record.id]) for record in species]
        context.taxon_overrides = apply_layers(taxon_base, inputs.layers, kind=RecordKind.TAXON)
        context.geo_overrides = apply_layers(
            context.classification.entities, inputs.layers, kind=RecordKind.GEO
        )


class FinalizePhase:
    name: str = "finalize"

    def run(self, inputs: ReconciliationInput, *, context: PipelineContext) -> None:
        context.advance(expected=PipelineStage.LAYERS_APPLIED, to=PipelineStage.FINALIZED)
        lineage = context.lineage
        classification = context.classification
        taxa = context.taxon_overrides
        geo = context.geo_overrides
        if lineage is None or classification is None or taxa is None or geo is None:
            raise RuntimeError("Finalization requires every earlier phase to have run")

        exceptions: list[ExceptionRecord] = []
        taxon_out: list[ReconciledTaxon] = []
        for row in taxa.records:
            blocked, row_exceptions = _taxon_exceptions(row, lineage, taxa.provenance)
            exceptions.extend(row_exceptions)
            if blocked and context.options.block_on_conflicts:
                continue
            taxon_out.append(row)

        for entity in geo.records:
            fields = entity.needs_review
            if fields:
                exceptions.append(
                    ExceptionRecord(
                        record_kind=RecordKind.GEO,
                        record_id=entity.id,
                        reason=ExceptionReason.NO_CLASSIFICATION_MAPPING,
                        record=entity,
                        fields=fields,
                    )
                )

        matches = context.matches
        if matches is not None:
            exceptions.extend(
                ExceptionRecord(
                    record_kind=RecordKind.TAXON,
                    record_id=name,
                    reason=ExceptionReason.NO_TAXONOMIC_MATCH,
                    record=name,
                )
                for name in matches.unmatched
            )

        in_scope = {row.id for row in taxa.records}
        context.result = ReconciliationResult(
            taxon_out=tuple(taxon_out),
            geo_out=geo.records,
            exceptions=tuple(sorted(exceptions, key=lambda record: record.sort_key)),
            conflicts=tuple(c for c in lineage.conflicts if c.species_id in in_scope),
            layer_errors=(*taxa.errors, *geo.errors),
            gaps=tuple(gap for gap in lineage.gaps if gap.species_id in in_scope),
            review_list=classification.review_list,
            ambiguities=() if matches is None else matches.ambiguities,
            taxon_provenance=taxa.provenance,
            geo_provenance=geo.provenance,
            lineages={key: value for key, value in lineage.lineages.items() if key in in_scope},
            stages=tuple(context.history),
            layer_names=tuple(layer.name for layer in inputs.layers),
        )


def default_phases() -> tuple[ReconciliationPhase, ...]:
    return (LineagePhase(), ClassificationPhase(), OverridePhase(), FinalizePhase())


@dataclass(slots=True)
class ReconciliationPipeline:
    """Compose and execute the ordered reconciliation phases."""

    phases: Sequence[ReconciliationPhase] = field(default_factory=default_phases)
    options: PipelineOptions = field(default_factory=PipelineOptions)

    def run(
        self,
        taxon_base: Iterable[TaxonRecord],
        geo_base: Iterable[GeoEntity],
        rule_tables: Sequence[RuleTable],
        layers: Sequence[OverrideLayer],
        *,
        checklist: Iterable[str] | None = None,
    ) -> ReconciliationResult:
        """Load the raw tables and reconcile them.

        Malformed records raise ``SchemaViolationError`` and layers out of
        their declared order raise ``LayerOrderError``, both before any
        resolution begins.
        """

        store = RecordStore.from_records(taxon_base, geo_base)
        return self.run_store(store, rule_tables, layers, checklist=checklist)

    def run_store(
        self,
        store: RecordStore,
        rule_tables: Sequence[RuleTable],
        layers: Sequence[OverrideLayer],
        *,
        checklist: Iterable[str] | None = None,
    ) -> ReconciliationResult:
        validate_layer_order(layers)
        inputs = ReconciliationInput(
            store=store,
            rules=tuple(rule_tables),
            layers=tuple(layers),
            checklist=None if checklist is None else tuple(checklist),
        )
        context = PipelineContext(options=self.options)
        log.info(
            "Starting reconciliation: taxa=%s, geo_entities=%s, rule_tables=%s, layers=%s",
            store.taxon_count,
            len(store.geo_entities()),
            len(inputs.rules),
            len(inputs.layers),
        )
        for phase in self.phases:
            phase.run(inputs, context=context)
        if context.result is None:
            raise RuntimeError("Pipeline finished without a finalization phase")
        log.info("Finished reconciliation: %s", context.result.summary())
        return context.result


def _species_in_scope(store: RecordStore, matches: MatchResult | None) -> tuple[TaxonRecord, ...]:
    species = store.species()
    if matches is None:
        return species
    matched = matches.matched_ids
    return tuple(record for record in species if record.id in matched)


def _taxon_row(lineage: Lineage) -> ReconciledTaxon:
    return ReconciledTaxon(
        id=lineage.species_id,
        name=lineage.species_name,
        status=lineage.species_status,
        genus=lineage.genus,
        subtribe=lineage.subtribe,
        tribe=lineage.tribe,
        subfamily=lineage.subfamily,
        family=lineage.family,
    )


def _taxon_exceptions(
    row: ReconciledTaxon,
    lineage: LineageResolution,
    provenance: ProvenanceLog,
) -> tuple[bool, list[ExceptionRecord]]:
    """Return whether ``row`` is blocked by a conflict, and its open exceptions.

    A conflict or gap counts as settled once a layer has set the field of the
    affected rank.
    """

    def curated(rank: Rank) -> bool:
        return provenance.source_of(RecordKind.TAXON, row.id, rank.field_name) != AUTOMATED

    exceptions: list[ExceptionRecord] = []
    open_conflicts = tuple(
        sorted(
            {c.rank for c in lineage.conflicts_for(row.id) if not curated(c.rank)},
            key=lambda rank: rank.level,
        )
    )
    if open_conflicts:
        exceptions.append(
            ExceptionRecord(
                record_kind=RecordKind.TAXON,
                record_id=row.id,
                reason=ExceptionReason.LINEAGE_CONFLICT,
                record=row,
                fields=tuple(rank.field_name for rank in open_conflicts),
            )
        )

    open_gaps = tuple(gap for gap in lineage.gaps_for(row.id) if not curated(gap.rank))
    if open_gaps:
        exceptions.append(
            ExceptionRecord(
                record_kind=RecordKind.TAXON,
                record_id=row.id,
                reason=ExceptionReason.UNRESOLVED_LINEAGE,
                record=row,
                fields=tuple(gap.rank.field_name for gap in open_gaps),
                detail=", ".join(gap.reason.value for gap in open_gaps),
            )
        )
    return bool(open_conflicts), exceptions
