"""
Threading Core module for PhaseWeaver.

This module turns phased genotype calls into haplotype threads through a
variation graph:
- Graph model, reference coordinate index and allele path atlas
- Per-phase thread accumulation with the edge connectivity rule
- Per-variant genotype classification and allele splicing
- Memory-bounded sample batching and run orchestration
"""

from .data_structures import (
    ENDMARKER,
    AllelePath,
    GenotypeCall,
    NodeSide,
    NodeVisit,
    PhaseThread,
    Ploidy,
    VariantRecord,
    phase_number,
    reverse_walk,
    thread_name,
)

from .variation_graph import (
    AlleleAtlas,
    NodeLengthCache,
    ReferencePathIndex,
    VariationGraph,
)

from .thread_accumulator import AccumulatorStats, BatchContext, ThreadAccumulator
from .variant_processor import (
    GenotypeFormatError,
    ReferencePathError,
    VariantProcessor,
    parse_genotype,
)
from .batch_scheduler import BatchScheduler, ContigResult, InvalidBatchSizeError, iter_batches
from .thread_extraction import ExtractionSummary, GenotypeSourceError, ThreadExtractor

__all__ = [
    # Data structures
    "ENDMARKER",
    "AllelePath",
    "GenotypeCall",
    "NodeSide",
    "NodeVisit",
    "PhaseThread",
    "Ploidy",
    "VariantRecord",
    "phase_number",
    "reverse_walk",
    "thread_name",
    # Graph lookups
    "AlleleAtlas",
    "NodeLengthCache",
    "ReferencePathIndex",
    "VariationGraph",
    # Engine
    "AccumulatorStats",
    "BatchContext",
    "ThreadAccumulator",
    "VariantProcessor",
    "parse_genotype",
    "BatchScheduler",
    "ContigResult",
    "iter_batches",
    "ThreadExtractor",
    "ExtractionSummary",
    # Errors
    "GenotypeFormatError",
    "GenotypeSourceError",
    "InvalidBatchSizeError",
    "ReferencePathError",
]
