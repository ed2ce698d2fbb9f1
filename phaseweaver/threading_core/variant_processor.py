#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
PhaseWeaver v0.1.0

Variant Processor — classifies each sample's genotype at a variant and
drives the thread accumulator: ploidy-change and missing-call breaks,
reference catch-up, and splicing of called allele paths into phase threads.

Author: PhaseWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from __future__ import annotations
from typing import List, Optional
import logging
import re

from .data_structures import GenotypeCall, NodeVisit, phase_number
from .thread_accumulator import BatchContext, ThreadAccumulator
from .variation_graph import AlleleAtlas, NodeLengthCache, ReferencePathIndex, VariationGraph

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"[0-9]+")


class GenotypeFormatError(ValueError):
    """Raised when a genotype allele token cannot be read as an index."""
    pass


class ReferencePathError(Exception):
    """Raised when a reference allele path leaves the reference contig."""
    pass


def _parse_allele(token: str, genotype: str) -> Optional[int]:
    if token == '.':
        return None
    match = _LEADING_INT.match(token)
    if match is None:
        raise GenotypeFormatError(f"Cannot parse allele '{token}' in genotype '{genotype}'")
    # Polyploid phased calls keep only the leading allele of the tail
    return int(match.group(0))


def parse_genotype(genotype: Optional[str], was_diploid: bool = True) -> GenotypeCall:
    """
    Classify a genotype string.

    - '' or None: no active phase
    - 'a' (no separator): haploid, one active phase
    - 'a|b' with both sides present: diploid, two active phases
    - unphased 'a/b' or malformed 'a|' / '|b': no active phase

    Calls that activate nothing keep the previous ploidy classification.

    Args:
        genotype: GT string as found in the variant file
        was_diploid: Ploidy classification from the previous variant

    Returns:
        GenotypeCall with per-slot allele indices (None = missing)
    """
    alleles: List[Optional[int]] = [None, None]
    active = 0
    is_diploid = was_diploid

    if genotype:
        limit = genotype.find('|')
        if limit == -1:
            if '/' not in genotype:
                active = 1
                is_diploid = False
                limit = len(genotype)
        elif limit > 0 and limit + 1 < len(genotype):
            active = 2
            is_diploid = True

        if active > 0:
            alleles[0] = _parse_allele(genotype[:limit], genotype)
        if active > 1:
            alleles[1] = _parse_allele(genotype[limit + 1:], genotype)

    return GenotypeCall(alleles=(alleles[0], alleles[1]), active_phases=active, is_diploid=is_diploid)


class VariantProcessor:
    """
    Applies one variant record to every sample of the current batch.

    Phases are handled independently; the only coupling between the two
    phases of a sample is the cursor alignment on a ploidy change.
    """

    def __init__(
        self,
        accumulator: ThreadAccumulator,
        allele_atlas: AlleleAtlas,
        discard_overlaps: bool = False,
    ):
        """
        Args:
            accumulator: Thread accumulator for the current contig
            allele_atlas: Allele path lookup
            discard_overlaps: Call alts at overlapping sites as reference
                after the first one
        """
        self.accumulator = accumulator
        self.allele_atlas = allele_atlas
        self.discard_overlaps = discard_overlaps
        self.skipped_sites = 0
        self.discarded_overlaps = 0

    @property
    def graph(self) -> VariationGraph:
        return self.accumulator.graph

    @property
    def path_index(self) -> ReferencePathIndex:
        return self.accumulator.path_index

    @property
    def node_lengths(self) -> NodeLengthCache:
        return self.accumulator.node_lengths

    def handle_variant(self, ctx: BatchContext, variant):
        """Process every sample of the batch at this variant, in index order."""
        for sample_number in ctx.samples():
            genotype = variant.genotype(sample_number)
            self.handle_sample(ctx, variant, sample_number, genotype)

    def handle_sample(self, ctx: BatchContext, variant, sample_number: int, genotype: Optional[str]):
        sample_slot = ctx.sample_slot(sample_number)
        was_diploid = ctx.diploid_region[sample_slot]
        previously_active = ctx.active_phases[sample_slot]

        call = parse_genotype(genotype, was_diploid)

        # Ploidy changes and unphased stretches break the threads
        if call.is_diploid != was_diploid or (call.active_phases == 0 and previously_active > 0):
            self._break_sample(ctx, sample_number, previously_active, variant.position)
            if call.is_diploid != was_diploid:
                first = phase_number(sample_number, 0)
                aligned = max(ctx.cursor(first), ctx.cursor(first + 1))
                ctx.set_cursor(first, aligned)
                ctx.set_cursor(first + 1, aligned)

        ctx.active_phases[sample_slot] = call.active_phases
        ctx.diploid_region[sample_slot] = call.is_diploid

        for phase_offset in range(call.active_phases):
            allele = call.allele(phase_offset)
            if allele is None:
                # Missing call: treated as reference, the thread is not broken
                continue
            if allele != 0:
                self._thread_alt(ctx, variant, phase_number(sample_number, phase_offset), allele)

    def _break_sample(self, ctx: BatchContext, sample_number: int, active: int, position: int):
        """
        Close every open phase of a sample at a variant position.

        Each thread is carried along the reference up to the variant, then
        the cursor is walked back so the next thread repeats that reference
        stretch. That repetition is what lets a zero-length allele at the
        very start of the next block attach to the reference.
        """
        for phase_offset in range(active):
            phase = phase_number(sample_number, phase_offset)
            cursor = ctx.cursor(phase)
            self.accumulator.extend_reference(ctx, phase, position)
            self.accumulator.close(ctx, phase)
            ctx.set_cursor(phase, cursor)

    def first_ref_base(
        self,
        ref_visits: Optional[List[NodeVisit]],
        alt_visits: Optional[List[NodeVisit]],
    ) -> Optional[int]:
        """
        First reference offset covered by the site's reference allele.

        For pure insertions (no reference allele walk) this is the offset
        just past the latest reference node leading into the alt walk.
        Returns None when neither walk is available.
        """
        if ref_visits:
            first_node = ref_visits[0].node_id
            if first_node not in self.path_index:
                raise ReferencePathError(
                    f"Reference allele node {first_node} is not on the reference path"
                )
            return self.path_index.node_start(first_node)

        if alt_visits:
            first_alt = alt_visits[0]
            if first_alt.is_reverse:
                left_sides = self.graph.edges_on_end(first_alt.node_id)
            else:
                left_sides = self.graph.edges_on_start(first_alt.node_id)

            first_ref_base = 0
            for other in left_sides:
                if other.node_id == first_alt.node_id:
                    continue
                if other.node_id not in self.path_index:
                    continue
                start = self.path_index.node_start(other.node_id)
                first_ref_base = max(first_ref_base, start + self.node_lengths(other.node_id))
            return first_ref_base

        return None

    def _thread_alt(self, ctx: BatchContext, variant, phase: int, allele: int):
        """Route one phase through a non-reference allele of the variant."""
        ref_visits = self.allele_atlas.lookup(variant.variant_id, 0)
        alt_visits = self.allele_atlas.lookup(variant.variant_id, allele)

        first_ref_base = self.first_ref_base(ref_visits, alt_visits)
        if first_ref_base is None:
            logger.warning(
                f"Alt and ref paths for {variant.variant_id} at {variant.contig}:{variant.position} "
                f"missing/empty! Was variant skipped during construction?"
            )
            self.skipped_sites += 1
            return

        last_ref_base = first_ref_base
        for visit in ref_visits or ():
            last_ref_base += self.node_lengths(visit.node_id)

        if ctx.cursor(phase) <= first_ref_base or not self.discard_overlaps:
            self.accumulator.extend_reference(ctx, phase, first_ref_base)
            for visit in alt_visits or ():
                self.accumulator.append_checked(ctx, phase, visit)
            ctx.set_cursor(phase, last_ref_base)
        else:
            logger.debug(
                f"Phase {phase}: alt {allele} of {variant.variant_id} overlaps an earlier "
                f"alt, calling reference"
            )
            self.discarded_overlaps += 1


# PhaseWeaver v0.1.0
# Any usage is subject to this software's license.
