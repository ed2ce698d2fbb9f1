#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
PhaseWeaver v0.1.0

Core data structures for haplotype thread extraction: oriented node visits,
samples, phases, genotype calls, allele paths and emitted phase threads.

Author: PhaseWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, NamedTuple, Optional, Tuple

# Encoded thread terminator in binary streams and index builders
ENDMARKER = 0


# ============================================================================
# Part 1: Graph traversal primitives
# ============================================================================

@dataclass(frozen=True)
class NodeVisit:
    """
    Oriented traversal of one graph node.

    The integer encoding (2 * node_id + is_reverse) matches what haplotype
    index builders expect; node ids are positive so 0 stays free for
    ENDMARKER.
    """
    node_id: int
    is_reverse: bool = False

    def encode(self) -> int:
        """Encode as a single integer."""
        return 2 * self.node_id + int(self.is_reverse)

    @classmethod
    def decode(cls, code: int) -> NodeVisit:
        """Inverse of encode()."""
        return cls(node_id=code // 2, is_reverse=bool(code & 1))

    def flip(self) -> NodeVisit:
        """Same node, opposite orientation."""
        return NodeVisit(self.node_id, not self.is_reverse)

    def __str__(self) -> str:
        return f"{self.node_id}{'-' if self.is_reverse else '+'}"


class NodeSide(NamedTuple):
    """One end of a node. is_end=False is the left (start) side."""
    node_id: int
    is_end: bool


def reverse_walk(visits: List[NodeVisit]) -> List[NodeVisit]:
    """Reverse complement of a walk: reversed order, flipped orientations."""
    return [visit.flip() for visit in reversed(visits)]


# ============================================================================
# Part 2: Samples, phases and genotype calls
# ============================================================================

class Ploidy(IntEnum):
    """Ploidy classification of a genotype call."""
    HAPLOID = 1
    DIPLOID = 2


def phase_number(sample_index: int, slot: int) -> int:
    """Global address of a phase (one haplotype copy of one sample)."""
    return 2 * sample_index + slot


@dataclass
class GenotypeCall:
    """
    Parsed genotype of one sample at one variant.

    alleles holds one entry per haplotype slot; None means the slot was
    called as missing ('.') or is not active. active_phases is 0 for an
    empty, unphased or malformed call, 1 for haploid and 2 for phased
    diploid calls. is_diploid carries the previous ploidy through calls
    that do not determine it.
    """
    alleles: Tuple[Optional[int], Optional[int]] = (None, None)
    active_phases: int = 0
    is_diploid: bool = True

    @property
    def ploidy(self) -> Ploidy:
        return Ploidy.DIPLOID if self.is_diploid else Ploidy.HAPLOID

    def allele(self, slot: int) -> Optional[int]:
        return self.alleles[slot]


# ============================================================================
# Part 3: Allele paths and emitted threads
# ============================================================================

@dataclass
class AllelePath:
    """Graph walk spelling one allele of one variant site."""
    variant_id: str
    allele_index: int
    visits: List[NodeVisit] = field(default_factory=list)

    @property
    def name(self) -> str:
        return allele_path_name(self.variant_id, self.allele_index)

    def __len__(self) -> int:
        return len(self.visits)


def allele_path_name(variant_id: str, allele_index: int) -> str:
    """Embedded path name used for allele paths, e.g. _alt_rs123_1."""
    return f"_alt_{variant_id}_{allele_index}"


@dataclass
class PhaseThread:
    """
    One connected haplotype segment for one phase over one contig.

    Created empty, grown by appends, handed to a sink on close.
    """
    name: str
    visits: List[NodeVisit] = field(default_factory=list)
    sample_name: str = ""
    contig: str = ""
    phase_slot: int = 0
    fragment_index: int = 0

    def encoded(self) -> List[int]:
        return [visit.encode() for visit in self.visits]

    def __len__(self) -> int:
        return len(self.visits)


_DNA_BASES = frozenset("ACGT")


@dataclass
class VariantRecord:
    """
    One variant site as seen by the threading engine.

    position is 0-based. genotypes holds one GT string per sample, in
    sample index order ('' when the sample has no call).
    """
    contig: str
    position: int
    variant_id: str
    ref: str
    alts: List[str] = field(default_factory=list)
    genotypes: List[str] = field(default_factory=list)

    def genotype(self, sample_index: int) -> str:
        if sample_index >= len(self.genotypes):
            return ""
        return self.genotypes[sample_index]

    def is_dna(self) -> bool:
        """True when the reference and every alt are spelled in A/C/G/T only."""
        return all(
            set(allele.upper()) <= _DNA_BASES
            for allele in [self.ref, *self.alts]
        )


def thread_name(
    sample_name: str,
    contig: str,
    phase_slot: int,
    fragment_index: int,
    prefix: str = "",
) -> str:
    """Hierarchical fragment name tying together threads of one phase."""
    return f"{prefix}{sample_name}_{contig}_{phase_slot}_{fragment_index}"


# PhaseWeaver v0.1.0
# Any usage is subject to this software's license.
