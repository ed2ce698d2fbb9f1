#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
PhaseWeaver v0.1.0

Variation graph model and the read-only lookups consulted while threading
haplotypes: the bidirected edge oracle, the reference path coordinate index,
a small node length cache and the allele path atlas.

Author: PhaseWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from __future__ import annotations
from bisect import bisect_right
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple
import logging
import re

from .data_structures import AllelePath, NodeSide, NodeVisit, allele_path_name

logger = logging.getLogger(__name__)

# Allele paths are matched against the whole path name
ALT_PATH_PATTERN = re.compile(r"_alt_(.+)_([0-9]+)")


# ============================================================================
# Part 1: Bidirected graph
# ============================================================================

def edge_key(from_visit: NodeVisit, to_visit: NodeVisit) -> Tuple[NodeSide, NodeSide]:
    """
    Canonical key of the edge traversed when walking from_visit -> to_visit.

    a+ -> b+ and b- -> a- name the same edge and map to the same key.
    """
    leaving = NodeSide(from_visit.node_id, not from_visit.is_reverse)
    entering = NodeSide(to_visit.node_id, to_visit.is_reverse)
    return (leaving, entering) if leaving <= entering else (entering, leaving)


@dataclass
class VariationGraph:
    """
    Sequence graph with oriented edges and embedded paths.

    Node lengths are stored rather than sequences; the threading engine only
    needs coordinates.
    """
    node_lengths: Dict[int, int] = field(default_factory=dict)
    edges: Set[Tuple[NodeSide, NodeSide]] = field(default_factory=set)
    adjacency: Dict[NodeSide, Set[NodeSide]] = field(default_factory=lambda: defaultdict(set))
    paths: Dict[str, List[NodeVisit]] = field(default_factory=dict)

    def add_node(self, node_id: int, length: int):
        """Add a node to the graph."""
        if node_id <= 0:
            raise ValueError(f"Node ids must be positive, got {node_id}")
        if length < 0:
            raise ValueError(f"Node {node_id}: negative length {length}")
        self.node_lengths[node_id] = length

    def add_edge(self, from_visit: NodeVisit, to_visit: NodeVisit):
        """Add the edge walked from from_visit into to_visit."""
        key = edge_key(from_visit, to_visit)
        self.edges.add(key)
        side_a, side_b = key
        self.adjacency[side_a].add(side_b)
        self.adjacency[side_b].add(side_a)

    def add_path(self, name: str, visits: List[NodeVisit]):
        """Embed a named walk."""
        self.paths[name] = list(visits)

    def has_edge(self, from_id: int, from_reverse: bool, to_id: int, to_reverse: bool) -> bool:
        """Edge oracle: can a walk step from (from_id, from_reverse) to (to_id, to_reverse)?"""
        return edge_key(NodeVisit(from_id, from_reverse), NodeVisit(to_id, to_reverse)) in self.edges

    def has_edge_between(self, from_visit: NodeVisit, to_visit: NodeVisit) -> bool:
        return edge_key(from_visit, to_visit) in self.edges

    def edges_on_start(self, node_id: int) -> List[NodeSide]:
        """Node sides attached to the left side of node_id."""
        return list(self.adjacency.get(NodeSide(node_id, False), ()))

    def edges_on_end(self, node_id: int) -> List[NodeSide]:
        """Node sides attached to the right side of node_id."""
        return list(self.adjacency.get(NodeSide(node_id, True), ()))

    def node_length(self, node_id: int) -> int:
        return self.node_lengths[node_id]

    def has_node(self, node_id: int) -> bool:
        return node_id in self.node_lengths

    def max_node_id(self) -> int:
        return max(self.node_lengths, default=0)

    def path_length(self, name: str) -> int:
        return sum(self.node_lengths[visit.node_id] for visit in self.paths[name])

    def reference_path_names(self) -> List[str]:
        """
        Embedded paths that may correspond to variant-file contigs.

        Names starting with '_' are allele paths or previously stored
        threads and are never treated as reference contigs.
        """
        return [name for name in self.paths if not name.startswith('_')]

    def node_id_width(self) -> int:
        """Bits needed to store any encoded node visit of this graph."""
        return NodeVisit(self.max_node_id(), True).encode().bit_length()


# ============================================================================
# Part 2: Reference path coordinate index
# ============================================================================

class ReferencePathIndex:
    """
    Coordinate index over one reference path.

    Maps reference offsets to the oriented node visit covering them and node
    ids to the offset of their first occurrence on the path.
    """

    def __init__(self, visits: List[NodeVisit], graph: VariationGraph):
        self.visits: List[NodeVisit] = list(visits)
        self.starts: List[int] = []
        self.lengths: List[int] = []
        self.by_id: Dict[int, Tuple[int, NodeVisit]] = {}

        offset = 0
        for visit in self.visits:
            length = graph.node_length(visit.node_id)
            self.starts.append(offset)
            self.lengths.append(length)
            # Nodes visited more than once keep their first position
            self.by_id.setdefault(visit.node_id, (offset, visit))
            offset += length
        self.length = offset

    @classmethod
    def from_graph(cls, graph: VariationGraph, path_name: str) -> ReferencePathIndex:
        return cls(graph.paths[path_name], graph)

    def find_position(self, coordinate: int) -> Iterator[Tuple[int, NodeVisit]]:
        """
        Iterate (start, visit) pairs from the visit covering coordinate.

        Yields nothing when coordinate is at or past the end of the path.
        """
        if coordinate < 0:
            raise ValueError(f"Negative reference coordinate {coordinate}")
        rank = bisect_right(self.starts, coordinate) - 1
        if rank < 0:
            return
        for i in range(rank, len(self.visits)):
            if self.starts[i] + self.lengths[i] <= coordinate:
                # Zero-length nodes sitting before the coordinate
                continue
            yield self.starts[i], self.visits[i]

    def node_start(self, node_id: int) -> int:
        """Reference offset where node_id first starts. KeyError if absent."""
        return self.by_id[node_id][0]

    def __contains__(self, node_id: int) -> bool:
        return node_id in self.by_id

    def __len__(self) -> int:
        return len(self.visits)


# ============================================================================
# Part 3: Node length cache
# ============================================================================

class NodeLengthCache:
    """
    Direct-mapped cache of recent node lengths.

    Each node id hashes to one slot; a miss overwrites the slot.
    """

    BUFFER_SIZE = 251

    def __init__(self, graph: VariationGraph, size: int = BUFFER_SIZE):
        if size < 1:
            raise ValueError(f"Cache size must be >= 1, got {size}")
        self.graph = graph
        self.size = size
        self.buffer: List[Tuple[int, int]] = [(-1, 0)] * size
        self.hits = 0
        self.misses = 0

    def __call__(self, node_id: int) -> int:
        slot = hash(node_id) % self.size
        cached_id, length = self.buffer[slot]
        if cached_id != node_id:
            length = self.graph.node_length(node_id)
            self.buffer[slot] = (node_id, length)
            self.misses += 1
        else:
            self.hits += 1
        return length


# ============================================================================
# Part 4: Allele path atlas
# ============================================================================

class AlleleAtlas:
    """Lookup of allele walks by (variant id, allele index)."""

    def __init__(self, allele_paths: Optional[Dict[str, List[NodeVisit]]] = None):
        self._paths: Dict[str, List[NodeVisit]] = dict(allele_paths or {})

    @classmethod
    def from_graph(cls, graph: VariationGraph) -> AlleleAtlas:
        """Collect every path named _alt_<variant>_<allele> from the graph."""
        atlas = cls({
            name: visits for name, visits in graph.paths.items()
            if ALT_PATH_PATTERN.fullmatch(name)
        })
        logger.debug(f"Allele atlas holds {len(atlas)} allele paths")
        return atlas

    def add(self, allele_path: AllelePath):
        self._paths[allele_path.name] = list(allele_path.visits)

    def lookup(self, variant_id: str, allele_index: int) -> Optional[List[NodeVisit]]:
        """Allele walk, or None if the site has no such path."""
        return self._paths.get(allele_path_name(variant_id, allele_index))

    def get(self, variant_id: str, allele_index: int) -> Optional[AllelePath]:
        visits = self.lookup(variant_id, allele_index)
        if visits is None:
            return None
        return AllelePath(variant_id=variant_id, allele_index=allele_index, visits=visits)

    def __len__(self) -> int:
        return len(self._paths)

    def __contains__(self, name: str) -> bool:
        return name in self._paths


# PhaseWeaver v0.1.0
# Any usage is subject to this software's license.
