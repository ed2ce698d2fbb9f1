#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
PhaseWeaver v0.1.0

GFA Graph I/O — loads a GFA v1 variation graph (segments, links and
embedded paths) and writes haplotype threads back out as GFA P-lines.

Author: PhaseWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from __future__ import annotations
import logging
import sys
from pathlib import Path
from typing import Iterable, List, TextIO

from .file_utils import open_file
from ..threading_core.data_structures import NodeVisit, PhaseThread
from ..threading_core.variation_graph import VariationGraph

logger = logging.getLogger(__name__)


class GraphFormatError(ValueError):
    """Raised on malformed GFA records."""
    pass


# ============================================================================
#                           GFA READER (Graph Import)
# ============================================================================

def _parse_node_id(name: str, line_no: int) -> int:
    try:
        node_id = int(name)
    except ValueError as e:
        raise GraphFormatError(
            f"GFA line {line_no}: segment name '{name}' is not a numeric node id"
        ) from e
    if node_id <= 0:
        raise GraphFormatError(f"GFA line {line_no}: node id must be positive, got {node_id}")
    return node_id


def _parse_orientation(orient: str, line_no: int) -> bool:
    if orient not in ('+', '-'):
        raise GraphFormatError(f"GFA line {line_no}: invalid orientation '{orient}'")
    return orient == '-'


def parse_path_visits(segment_names: str, line_no: int = 0) -> List[NodeVisit]:
    """
    Parse a P-line segment list such as '1+,2+,5-'.

    '*' or an empty field is an empty path.
    """
    if segment_names in ('', '*'):
        return []
    visits = []
    for step in segment_names.split(','):
        if len(step) < 2:
            raise GraphFormatError(f"GFA line {line_no}: malformed path step '{step}'")
        visits.append(NodeVisit(_parse_node_id(step[:-1], line_no), _parse_orientation(step[-1], line_no)))
    return visits


def format_path_visits(visits: Iterable[NodeVisit]) -> str:
    text = ','.join(str(visit) for visit in visits)
    return text or '*'


def load_graph_from_gfa(gfa_path: str | Path) -> VariationGraph:
    """
    Load a variation graph from a GFA v1 file.

    Segments must be named by positive integers (as written by vg and most
    VCF-to-graph constructors). Links and paths may reference segments
    declared later in the file.

    Args:
        gfa_path: Path to a GFA v1 file (optionally gzipped)

    Returns:
        VariationGraph with node lengths, edges and embedded paths

    Raises:
        FileNotFoundError: If gfa_path does not exist.
        GraphFormatError: On malformed GFA lines or dangling references.
    """
    gfa_path = Path(gfa_path)
    if not gfa_path.exists():
        raise FileNotFoundError(f"GFA file not found: {gfa_path}")

    graph = VariationGraph()
    links = []
    paths = []

    logger.info(f"Loading graph from GFA: {gfa_path}")

    with open_file(gfa_path, 'r') as f:
        for line_no, raw_line in enumerate(f, 1):
            line = raw_line.rstrip('\n').rstrip('\r')
            if not line or line.startswith('#'):
                continue

            parts = line.split('\t')
            record_type = parts[0]

            if record_type == 'S':
                # Segment: S <name> <sequence> [LN:i:<length>] ...
                if len(parts) < 3:
                    raise GraphFormatError(f"GFA line {line_no}: malformed S-line")
                node_id = _parse_node_id(parts[1], line_no)
                sequence = parts[2] if parts[2] != '*' else ''
                length = len(sequence)
                for tag in parts[3:]:
                    if tag.startswith('LN:i:'):
                        try:
                            length = int(tag.split(':')[2])
                        except ValueError:
                            raise GraphFormatError(f"GFA line {line_no}: bad LN tag '{tag}'")
                        if length < 0:
                            raise GraphFormatError(f"GFA line {line_no}: negative segment length {length}")
                        break
                graph.add_node(node_id, length)

            elif record_type == 'L':
                # Link: L <from> <from_orient> <to> <to_orient> <overlap>
                if len(parts) < 5:
                    raise GraphFormatError(f"GFA line {line_no}: malformed L-line")
                from_visit = NodeVisit(_parse_node_id(parts[1], line_no), _parse_orientation(parts[2], line_no))
                to_visit = NodeVisit(_parse_node_id(parts[3], line_no), _parse_orientation(parts[4], line_no))
                links.append((line_no, from_visit, to_visit))

            elif record_type == 'P':
                # Path: P <name> <segment list> [overlaps]
                if len(parts) < 3:
                    raise GraphFormatError(f"GFA line {line_no}: malformed P-line")
                paths.append((line_no, parts[1], parse_path_visits(parts[2], line_no)))

            # H, W, C and other record types are not needed for threading

    for line_no, from_visit, to_visit in links:
        for visit in (from_visit, to_visit):
            if not graph.has_node(visit.node_id):
                raise GraphFormatError(f"GFA line {line_no}: link to unknown segment {visit.node_id}")
        graph.add_edge(from_visit, to_visit)

    for line_no, name, visits in paths:
        for visit in visits:
            if not graph.has_node(visit.node_id):
                raise GraphFormatError(f"GFA line {line_no}: path {name} visits unknown segment {visit.node_id}")
        graph.add_path(name, visits)

    logger.info(
        f"Loaded graph: {len(graph.node_lengths)} nodes, {len(graph.edges)} edges, "
        f"{len(graph.paths)} paths"
    )
    return graph


# ============================================================================
#                           THREAD EXPORT
# ============================================================================

def write_threads_gfa(threads: Iterable[PhaseThread], output: str | Path | TextIO | None = None) -> int:
    """
    Write threads as GFA P-lines.

    Args:
        threads: Threads to write
        output: File path, open text handle, or None for stdout

    Returns:
        Number of threads written
    """
    if output is None:
        return _write_path_lines(threads, sys.stdout)
    if hasattr(output, 'write'):
        return _write_path_lines(threads, output)

    with open_file(output, 'w') as f:
        count = _write_path_lines(threads, f)
    logger.info(f"Wrote {count} threads to {output}")
    return count


def _write_path_lines(threads: Iterable[PhaseThread], handle: TextIO) -> int:
    count = 0
    for thread in threads:
        handle.write(f"P\t{thread.name}\t{format_path_visits(thread.visits)}\t*\n")
        count += 1
    return count


# PhaseWeaver v0.1.0
# Any usage is subject to this software's license.
