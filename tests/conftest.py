#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
PhaseWeaver v0.1.0

Pytest configuration and shared fixtures.

Author: PhaseWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import pytest
from pathlib import Path
import tempfile
import shutil

from phaseweaver.threading_core import (
    AlleleAtlas,
    NodeVisit,
    ReferencePathIndex,
    ThreadAccumulator,
    VariationGraph,
)
from phaseweaver.io_utils import ThreadListSink


def fwd(*node_ids):
    """Forward visits of the given nodes."""
    return [NodeVisit(node_id) for node_id in node_ids]


def build_graph(node_lengths, edges, paths):
    graph = VariationGraph()
    for node_id, length in node_lengths.items():
        graph.add_node(node_id, length)
    for from_id, to_id in edges:
        graph.add_edge(NodeVisit(from_id), NodeVisit(to_id))
    for name, node_ids in paths.items():
        graph.add_path(name, fwd(*node_ids))
    return graph


@pytest.fixture
def temp_output_dir():
    """Create temporary output directory for tests."""
    temp_dir = tempfile.mkdtemp(prefix="phaseweaver_test_")
    yield Path(temp_dir)
    # Cleanup after test
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def snp_graph():
    """
    10-base contig with one substitution site at offset 5:

        1(3) -> 2(2) -> 3(3) -> 4(2)        chr1 = [0, 10)
                    \\-> 5(3) -/

    Site 'v1': ref allele path 3+, alt allele path 5+.
    """
    return build_graph(
        {1: 3, 2: 2, 3: 3, 4: 2, 5: 3},
        [(1, 2), (2, 3), (3, 4), (2, 5), (5, 4)],
        {'chr1': [1, 2, 3, 4], '_alt_v1_0': [3], '_alt_v1_1': [5]},
    )


@pytest.fixture
def two_site_graph():
    """
    15-base contig with two substitution sites and one overlapping deletion:

        offsets  0    3    5    8    10   13
        chr1     1(3) 2(2) 3(3) 4(2) 5(3) 6(2)

    Site 'a' at 3:  ref 2+,    alt 7+ (1 -> 7 -> 3)
    Site 'b' at 10: ref 5+,    alt 8+ (4 -> 8 -> 6)
    Site 'c' at 3:  ref 2+ 3+, alt 9+ (1 -> 9 -> 4), overlaps 'a'
    """
    return build_graph(
        {1: 3, 2: 2, 3: 3, 4: 2, 5: 3, 6: 2, 7: 2, 8: 3, 9: 1},
        [(1, 2), (2, 3), (3, 4), (4, 5), (5, 6),
         (1, 7), (7, 3),
         (4, 8), (8, 6),
         (1, 9), (9, 4)],
        {
            'chr1': [1, 2, 3, 4, 5, 6],
            '_alt_a_0': [2], '_alt_a_1': [7],
            '_alt_b_0': [5], '_alt_b_1': [8],
            '_alt_c_0': [2, 3], '_alt_c_1': [9],
        },
    )


@pytest.fixture
def make_accumulator():
    """Factory for an accumulator over chr1 writing into a ThreadListSink."""
    def _make(graph, sample_names=('s0',), contig='chr1', name_prefix=''):
        sink = ThreadListSink()
        accumulator = ThreadAccumulator(
            graph=graph,
            path_index=ReferencePathIndex.from_graph(graph, contig),
            sink=sink,
            sample_names=list(sample_names),
            contig_name=contig,
            name_prefix=name_prefix,
        )
        return accumulator, sink
    return _make


@pytest.fixture
def atlas_for():
    def _atlas(graph):
        return AlleleAtlas.from_graph(graph)
    return _atlas


SNP_GFA = """H\tVN:Z:1.0
S\t1\tACG
S\t2\tTA
S\t3\tCCA
S\t4\tGT
S\t5\tGGA
L\t1\t+\t2\t+\t0M
L\t2\t+\t3\t+\t0M
L\t3\t+\t4\t+\t0M
L\t2\t+\t5\t+\t0M
L\t5\t+\t4\t+\t0M
P\tchr1\t1+,2+,3+,4+\t*
P\t_alt_v1_0\t3+\t*
P\t_alt_v1_1\t5+\t*
"""

SNP_VCF = """##fileformat=VCFv4.2
##contig=<ID=chr1,length=10>
##FORMAT=<ID=GT,Number=1,Type=String,Description="Genotype">
#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\tFORMAT\ts0\ts1
chr1\t6\tv1\tC\tG\t.\tPASS\t.\tGT\t0|1\t1|1
"""


@pytest.fixture
def snp_gfa_file(temp_output_dir):
    path = temp_output_dir / "graph.gfa"
    path.write_text(SNP_GFA)
    return path


@pytest.fixture
def snp_vcf_file(temp_output_dir):
    path = temp_output_dir / "calls.vcf"
    path.write_text(SNP_VCF)
    return path

# PhaseWeaver v0.1.0
# Any usage is subject to this software's license.
