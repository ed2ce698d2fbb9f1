#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Tests for per-phase thread accumulation and the connectivity rule.
"""

import pytest

from phaseweaver.threading_core import BatchContext, NodeVisit, thread_name

from conftest import fwd


class TestBatchContext:
    """Per-batch state addressing."""

    def test_sizes(self):
        ctx = BatchContext(3, 5)
        assert ctx.num_samples == 2
        assert len(ctx.buffers) == 4
        assert ctx.first_phase == 6
        assert list(ctx.samples()) == [3, 4]

    def test_slots(self):
        ctx = BatchContext(3, 5)
        assert ctx.phase_slot(7) == 1
        assert ctx.sample_slot(4) == 1

    def test_cursor(self):
        ctx = BatchContext(0, 1)
        ctx.set_cursor(1, 8)
        assert ctx.cursor(1) == 8
        assert ctx.cursor(0) == 0

    def test_inverted_batch(self):
        with pytest.raises(ValueError):
            BatchContext(4, 2)


class TestExtendReference:
    """Reference catch-up from the cursor."""

    def test_whole_contig(self, snp_graph, make_accumulator):
        accumulator, _ = make_accumulator(snp_graph)
        ctx = BatchContext(0, 1)
        accumulator.extend_reference(ctx, 0, 10)
        assert ctx.buffer(0) == fwd(1, 2, 3, 4)
        assert ctx.cursor(0) == 10

    def test_stops_at_end(self, snp_graph, make_accumulator):
        accumulator, _ = make_accumulator(snp_graph)
        ctx = BatchContext(0, 1)
        accumulator.extend_reference(ctx, 0, 5)
        assert ctx.buffer(0) == fwd(1, 2)
        assert ctx.cursor(0) == 5

    def test_end_inside_node_takes_whole_node(self, snp_graph, make_accumulator):
        accumulator, _ = make_accumulator(snp_graph)
        ctx = BatchContext(0, 1)
        accumulator.extend_reference(ctx, 0, 4)
        assert ctx.buffer(0) == fwd(1, 2)
        assert ctx.cursor(0) == 5

    def test_cursor_inside_node_starts_at_that_node(self, snp_graph, make_accumulator):
        accumulator, _ = make_accumulator(snp_graph)
        ctx = BatchContext(0, 1)
        ctx.set_cursor(0, 6)
        accumulator.extend_reference(ctx, 0, 10)
        assert ctx.buffer(0) == fwd(3, 4)

    def test_noop_when_cursor_past_end(self, snp_graph, make_accumulator):
        accumulator, _ = make_accumulator(snp_graph)
        ctx = BatchContext(0, 1)
        ctx.set_cursor(0, 8)
        accumulator.extend_reference(ctx, 0, 5)
        assert ctx.buffer(0) == []
        assert ctx.cursor(0) == 8

    def test_end_past_contig(self, snp_graph, make_accumulator):
        accumulator, _ = make_accumulator(snp_graph)
        ctx = BatchContext(0, 1)
        accumulator.extend_reference(ctx, 0, 1000)
        assert ctx.buffer(0) == fwd(1, 2, 3, 4)
        assert ctx.cursor(0) == 10

    def test_first_visit_is_checked(self, snp_graph, make_accumulator):
        accumulator, sink = make_accumulator(snp_graph)
        ctx = BatchContext(0, 1)
        # 5 -> 3 is not an edge of the graph
        ctx.buffer(0).append(NodeVisit(5))
        ctx.set_cursor(0, 5)
        accumulator.extend_reference(ctx, 0, 10)
        assert [t.visits for t in sink.threads] == [fwd(5)]
        assert ctx.buffer(0) == fwd(3, 4)
        assert accumulator.stats.split_events == 1


class TestConnectivity:
    """Splitting on missing edges."""

    def test_append_checked_keeps_connected_visits(self, snp_graph, make_accumulator):
        accumulator, sink = make_accumulator(snp_graph)
        ctx = BatchContext(0, 1)
        for node_id in (1, 2, 5, 4):
            accumulator.append_checked(ctx, 0, NodeVisit(node_id))
        assert ctx.buffer(0) == fwd(1, 2, 5, 4)
        assert sink.threads == []

    def test_append_checked_splits(self, snp_graph, make_accumulator):
        accumulator, sink = make_accumulator(snp_graph)
        ctx = BatchContext(0, 1)
        accumulator.append_checked(ctx, 1, NodeVisit(1))
        accumulator.append_checked(ctx, 1, NodeVisit(3))
        assert len(sink.threads) == 1
        assert sink.threads[0].visits == fwd(1)
        assert sink.threads[0].name == "s0_chr1_1_0"
        assert ctx.buffer(1) == fwd(3)

    def test_append_unchecked_never_splits(self, snp_graph, make_accumulator):
        accumulator, sink = make_accumulator(snp_graph)
        ctx = BatchContext(0, 1)
        accumulator.append_unchecked(ctx, 0, NodeVisit(1))
        accumulator.append_unchecked(ctx, 0, NodeVisit(3))
        assert ctx.buffer(0) == fwd(1, 3)
        assert sink.threads == []


class TestClose:
    """Fragment emission and naming."""

    def test_close_emits_and_resets(self, snp_graph, make_accumulator):
        accumulator, sink = make_accumulator(snp_graph)
        ctx = BatchContext(0, 1)
        accumulator.extend_reference(ctx, 0, 10)
        accumulator.close(ctx, 0)
        assert len(sink.threads) == 1
        assert sink.threads[0].visits == fwd(1, 2, 3, 4)
        assert ctx.buffer(0) == []
        assert ctx.fragment_counts[0] == 1

    def test_empty_buffer_not_emitted(self, snp_graph, make_accumulator):
        accumulator, sink = make_accumulator(snp_graph)
        ctx = BatchContext(0, 1)
        accumulator.close(ctx, 0)
        assert sink.threads == []
        assert ctx.fragment_counts[0] == 0

    def test_fragment_counter_per_phase(self, snp_graph, make_accumulator):
        accumulator, sink = make_accumulator(snp_graph, sample_names=['s0', 's1'])
        ctx = BatchContext(1, 2)
        for _ in range(2):
            accumulator.append_unchecked(ctx, 3, NodeVisit(1))
            accumulator.close(ctx, 3)
        accumulator.append_unchecked(ctx, 2, NodeVisit(1))
        accumulator.close(ctx, 2)
        assert [t.name for t in sink.threads] == ["s1_chr1_1_0", "s1_chr1_1_1", "s1_chr1_0_0"]

    def test_thread_metadata(self, snp_graph, make_accumulator):
        accumulator, sink = make_accumulator(snp_graph, name_prefix="run1_")
        ctx = BatchContext(0, 1)
        accumulator.append_unchecked(ctx, 1, NodeVisit(2))
        accumulator.close(ctx, 1)
        thread = sink.threads[0]
        assert thread.name == "run1_s0_chr1_1_0"
        assert thread.sample_name == "s0"
        assert thread.contig == "chr1"
        assert thread.phase_slot == 1
        assert thread.fragment_index == 0
        assert accumulator.stats.fragments_emitted == 1
        assert accumulator.stats.visits_emitted == 1


class TestThreadName:

    def test_format(self):
        assert thread_name("NA12878", "chr20", 1, 3) == "NA12878_chr20_1_3"
        assert thread_name("NA12878", "chr20", 0, 0, prefix="_thread_") == "_thread_NA12878_chr20_0_0"
