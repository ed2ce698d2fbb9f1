#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
PhaseWeaver v0.1.0

Batch Scheduler — splits the sample range into memory-bounded batches and
streams one contig's variants through the variant processor once per batch.

Rescanning the contig for every batch keeps peak memory at
2 x batch_size phase buffers regardless of cohort size.

Author: PhaseWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple
import logging

from .data_structures import phase_number
from .thread_accumulator import BatchContext, ThreadAccumulator
from .variant_processor import VariantProcessor

logger = logging.getLogger(__name__)


class InvalidBatchSizeError(ValueError):
    """Raised when the number of samples per batch is not positive."""
    pass


def validate_batch_size(batch_size: int) -> int:
    if batch_size is None or batch_size < 1:
        raise InvalidBatchSizeError(f"Batch size must be positive and nonzero, got {batch_size}")
    return batch_size


def iter_batches(sample_range: Tuple[int, int], batch_size: int) -> Iterator[Tuple[int, int]]:
    """Yield half-open [batch_start, batch_limit) sample windows."""
    validate_batch_size(batch_size)
    batch_start, range_end = sample_range
    while batch_start < range_end:
        batch_limit = min(batch_start + batch_size, range_end)
        yield batch_start, batch_limit
        batch_start = batch_limit


@dataclass
class ContigResult:
    """Outcome of threading one contig."""
    contig: str
    vcf_contig: str
    batches: int = 0
    variants_processed: int = 0
    variants_skipped: int = 0


class BatchScheduler:
    """
    Drives the per-batch rescans of one contig.

    Args:
        genotype_source: GenotypeSource yielding the contig's variants
        accumulator: ThreadAccumulator bound to the contig
        processor: VariantProcessor bound to the same accumulator
        batch_size: Samples per batch (> 0)
        sample_range: Half-open range of sample indices to process
        skip_non_dna: Ignore variants with non-ACGT alleles
    """

    def __init__(
        self,
        genotype_source,
        accumulator: ThreadAccumulator,
        processor: VariantProcessor,
        batch_size: int = 200,
        sample_range: Optional[Tuple[int, int]] = None,
        skip_non_dna: bool = True,
    ):
        self.batch_size = validate_batch_size(batch_size)
        self.genotype_source = genotype_source
        self.accumulator = accumulator
        self.processor = processor
        self.skip_non_dna = skip_non_dna

        num_samples = len(genotype_source.samples)
        start, end = sample_range if sample_range is not None else (0, num_samples)
        self.sample_range = (start, min(end, num_samples))

    def run_contig(self, vcf_contig: str, path_length: int) -> ContigResult:
        """Thread every batch of samples over one contig."""
        result = ContigResult(contig=self.accumulator.contig_name, vcf_contig=vcf_contig)
        for batch_start, batch_limit in iter_batches(self.sample_range, self.batch_size):
            ctx = BatchContext(batch_start, batch_limit)
            processed, skipped = self.run_batch(ctx, vcf_contig, path_length)
            result.batches += 1
            # Every batch sees the same variants
            result.variants_processed = processed
            result.variants_skipped = skipped
        return result

    def run_batch(self, ctx: BatchContext, vcf_contig: str, path_length: int) -> Tuple[int, int]:
        """
        Stream the contig through one batch and flush its threads.

        Returns:
            (variants processed, non-DNA variants skipped)
        """
        logger.info(f"contig {vcf_contig}, samples {ctx.batch_start} to {ctx.batch_limit - 1}")

        variants_processed = 0
        variants_skipped = 0
        for variant in self.genotype_source.variants(vcf_contig):
            if self.skip_non_dna and not variant.is_dna():
                variants_skipped += 1
                continue
            self.processor.handle_variant(ctx, variant)
            variants_processed += 1

        logger.debug(f"Processed {variants_processed} variants ({variants_skipped} non-DNA skipped)")

        # An all-reference haplotype carries nothing; emit only if variants were seen
        if variants_processed > 0:
            self.finish_batch(ctx, path_length)
        return variants_processed, variants_skipped

    def finish_batch(self, ctx: BatchContext, path_length: int):
        """Carry every phase of the current ploidy region to the contig end and close it."""
        for sample_number in ctx.samples():
            sample_slot = ctx.sample_slot(sample_number)
            phases = 2 if ctx.diploid_region[sample_slot] else 1
            ctx.active_phases[sample_slot] = phases
            for phase_offset in range(phases):
                phase = phase_number(sample_number, phase_offset)
                self.accumulator.extend_reference(ctx, phase, path_length)
                self.accumulator.close(ctx, phase)
            ctx.active_phases[sample_slot] = 0


# PhaseWeaver v0.1.0
# Any usage is subject to this software's license.
