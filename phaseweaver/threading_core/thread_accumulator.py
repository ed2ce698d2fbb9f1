#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
PhaseWeaver v0.1.0

Thread Accumulator — per-phase buffers, reference cursors and the
connectivity rule that splits a haplotype into fragments whenever the graph
lacks an edge the haplotype implies.

Author: PhaseWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Sequence
import logging

from .data_structures import NodeVisit, PhaseThread, thread_name
from .variation_graph import NodeLengthCache, ReferencePathIndex, VariationGraph

logger = logging.getLogger(__name__)


class BatchContext:
    """
    Mutable threading state owned by one batch of samples.

    Per-phase state lives in flat lists addressed by
    phase_number - first_phase; per-sample state by
    sample_number - batch_start. A fresh context is built for every batch.
    """

    def __init__(self, batch_start: int, batch_limit: int):
        if batch_limit < batch_start:
            raise ValueError(f"Empty or inverted batch [{batch_start}, {batch_limit})")
        self.batch_start = batch_start
        self.batch_limit = batch_limit
        self.first_phase = 2 * batch_start

        samples = batch_limit - batch_start
        phases = 2 * samples
        self.buffers: List[List[NodeVisit]] = [[] for _ in range(phases)]
        self.nonvariant_cursors: List[int] = [0] * phases
        self.fragment_counts: List[int] = [0] * phases

        # Per sample: how many phases the last call activated, and ploidy
        self.active_phases: List[int] = [0] * samples
        self.diploid_region: List[bool] = [True] * samples

    @property
    def num_samples(self) -> int:
        return self.batch_limit - self.batch_start

    def phase_slot(self, phase_number: int) -> int:
        return phase_number - self.first_phase

    def sample_slot(self, sample_number: int) -> int:
        return sample_number - self.batch_start

    def buffer(self, phase_number: int) -> List[NodeVisit]:
        return self.buffers[self.phase_slot(phase_number)]

    def cursor(self, phase_number: int) -> int:
        return self.nonvariant_cursors[self.phase_slot(phase_number)]

    def set_cursor(self, phase_number: int, position: int):
        self.nonvariant_cursors[self.phase_slot(phase_number)] = position

    def samples(self) -> range:
        return range(self.batch_start, self.batch_limit)


@dataclass
class AccumulatorStats:
    """Counters reported at the end of a run."""
    fragments_emitted: int = 0
    split_events: int = 0
    visits_emitted: int = 0


class ThreadAccumulator:
    """
    Grows phase threads over one reference contig and emits them to a sink.

    The accumulator itself is stateless across batches: every operation
    receives the BatchContext holding the buffers it mutates.
    """

    def __init__(
        self,
        graph: VariationGraph,
        path_index: ReferencePathIndex,
        sink,
        sample_names: Sequence[str],
        contig_name: str,
        node_lengths: Optional[NodeLengthCache] = None,
        name_prefix: str = "",
        stats: Optional[AccumulatorStats] = None,
    ):
        """
        Args:
            graph: Edge oracle for the connectivity rule
            path_index: Coordinate index of the reference contig
            sink: ThreadSink receiving completed fragments
            sample_names: Names of all samples, indexed by sample number
            contig_name: Graph path name used in fragment names
            node_lengths: Shared node length cache
            name_prefix: Prefix prepended to every fragment name
            stats: Counters shared across contigs
        """
        self.graph = graph
        self.path_index = path_index
        self.sink = sink
        self.sample_names = sample_names
        self.contig_name = contig_name
        self.node_lengths = node_lengths or NodeLengthCache(graph)
        self.name_prefix = name_prefix
        self.stats = stats if stats is not None else AccumulatorStats()

    def fragment_name(self, ctx: BatchContext, phase_number: int) -> str:
        return thread_name(
            self.sample_names[phase_number // 2],
            self.contig_name,
            phase_number % 2,
            ctx.fragment_counts[ctx.phase_slot(phase_number)],
            prefix=self.name_prefix,
        )

    def close(self, ctx: BatchContext, phase_number: int):
        """
        Hand the phase's buffer to the sink and start an empty one.

        Empty buffers are never emitted and do not advance the counter.
        """
        slot = ctx.phase_slot(phase_number)
        visits = ctx.buffers[slot]
        if not visits:
            return

        thread = PhaseThread(
            name=self.fragment_name(ctx, phase_number),
            visits=visits,
            sample_name=self.sample_names[phase_number // 2],
            contig=self.contig_name,
            phase_slot=phase_number % 2,
            fragment_index=ctx.fragment_counts[slot],
        )
        self.sink.insert(thread)

        self.stats.fragments_emitted += 1
        self.stats.visits_emitted += len(visits)
        # Long threads are released right away rather than cleared in place
        ctx.buffers[slot] = []
        ctx.fragment_counts[slot] += 1

    def append_checked(self, ctx: BatchContext, phase_number: int, visit: NodeVisit):
        """Append a visit, splitting the thread if no edge leads to it."""
        buffer = ctx.buffer(phase_number)
        if buffer:
            previous = buffer[-1]
            if not self.graph.has_edge_between(previous, visit):
                logger.debug(
                    f"Phase {phase_number} wants edge {previous} -> {visit} "
                    f"which does not exist. Splitting!"
                )
                self.stats.split_events += 1
                self.close(ctx, phase_number)
                buffer = ctx.buffer(phase_number)
        buffer.append(visit)

    def append_unchecked(self, ctx: BatchContext, phase_number: int, visit: NodeVisit):
        """Append a reference visit whose incoming edge exists by construction."""
        ctx.buffer(phase_number).append(visit)

    def extend_reference(self, ctx: BatchContext, phase_number: int, end: int):
        """
        Append reference visits from the phase's cursor up to end.

        end may lie past the end of the contig. Only the first appended
        visit is edge-checked. The cursor moves to the past-the-end offset
        of the last visit appended.
        """
        ref_pos = ctx.cursor(phase_number)
        if ref_pos >= end:
            return

        first = True
        for start, visit in self.path_index.find_position(ref_pos):
            if ref_pos >= end:
                break
            if first:
                self.append_checked(ctx, phase_number, visit)
                first = False
            else:
                self.append_unchecked(ctx, phase_number, visit)
            ref_pos = start + self.node_lengths(visit.node_id)
        ctx.set_cursor(phase_number, ref_pos)


# PhaseWeaver v0.1.0
# Any usage is subject to this software's license.
