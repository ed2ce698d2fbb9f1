"""
PhaseWeaver v0.1.0

I/O Module for PhaseWeaver.

Module structure:
1. gfa_graph.py - GFA v1 graph import and thread export as P-lines
2. genotype_source.py - Phased genotype streams (pysam VCF/BCF, in-memory)
3. thread_sinks.py - Haplotype index, binary stream and in-memory sinks
4. file_utils.py - Compressed file handling
"""

from .file_utils import ensure_parent_dir, is_gzipped, open_file

from .gfa_graph import (
    GraphFormatError,
    format_path_visits,
    load_graph_from_gfa,
    parse_path_visits,
    write_threads_gfa,
)

from .genotype_source import (
    GenotypeSource,
    InMemoryGenotypeSource,
    VcfGenotypeSource,
    format_genotype,
    make_variant_id,
)

from .thread_sinks import (
    BinaryThreadSink,
    HaplotypeIndexSink,
    ThreadIndexBuilder,
    ThreadListSink,
    ThreadSink,
    load_thread_index,
    read_binary_threads,
    split_encoded_stream,
)

__all__ = [
    # File handling
    "ensure_parent_dir",
    "is_gzipped",
    "open_file",
    # Graph I/O
    "GraphFormatError",
    "format_path_visits",
    "load_graph_from_gfa",
    "parse_path_visits",
    "write_threads_gfa",
    # Genotypes
    "GenotypeSource",
    "InMemoryGenotypeSource",
    "VcfGenotypeSource",
    "format_genotype",
    "make_variant_id",
    # Sinks
    "BinaryThreadSink",
    "HaplotypeIndexSink",
    "ThreadIndexBuilder",
    "ThreadListSink",
    "ThreadSink",
    "load_thread_index",
    "read_binary_threads",
    "split_encoded_stream",
]
