#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
PhaseWeaver v0.1.0

Thread Sinks — destinations for completed haplotype threads: a haplotype
index builder, a flat binary node stream, or an in-memory list kept for
later bulk insertion.

Author: PhaseWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import numpy as np

from .file_utils import ensure_parent_dir
from ..threading_core.data_structures import ENDMARKER, NodeVisit, PhaseThread, reverse_walk

logger = logging.getLogger(__name__)


class ThreadSink(ABC):
    """
    Append-only, single-writer destination for phase threads.

    insert() is called once per completed thread, in emission order;
    finish() once at the end of the run with the haplotype count.
    """

    def __init__(self):
        self.thread_names: List[str] = []
        self.haplotype_count: Optional[int] = None
        self.finished = False

    @abstractmethod
    def _insert(self, thread: PhaseThread):
        ...

    def insert(self, thread: PhaseThread):
        if self.finished:
            raise RuntimeError("Cannot insert threads into a finished sink")
        self._insert(thread)
        self.thread_names.append(thread.name)

    def finish(self, haplotype_count: int):
        self.haplotype_count = haplotype_count
        self._finish()
        self.finished = True

    def _finish(self):
        pass

    def __len__(self) -> int:
        return len(self.thread_names)


# ============================================================================
#                       HAPLOTYPE INDEX BUILDER
# ============================================================================

class ThreadIndexBuilder:
    """
    Minimal stand-in for a haplotype index builder.

    Stores encoded threads as they arrive; both orientations are stored
    when requested, the way bidirectional haplotype indexes expect them.
    Any object with insert(encoded, both_orientations) and finish() can
    replace it.
    """

    def __init__(self):
        self.sequences: List[np.ndarray] = []
        self.finished = False

    def insert(self, encoded: Sequence[int], both_orientations: bool = False):
        forward = np.asarray(encoded, dtype=np.uint64)
        self.sequences.append(forward)
        if both_orientations:
            # Reverse walk: reversed order with the orientation bit flipped
            self.sequences.append(forward[::-1] ^ np.uint64(1))

    def finish(self):
        self.finished = True

    def concatenated(self) -> np.ndarray:
        """All sequences, each followed by ENDMARKER."""
        if not self.sequences:
            return np.zeros(0, dtype=np.uint64)
        marker = np.array([ENDMARKER], dtype=np.uint64)
        return np.concatenate([part for seq in self.sequences for part in (seq, marker)])

    def save(self, output_path: str | Path, thread_names: Sequence[str], haplotype_count: int):
        output_path = ensure_parent_dir(output_path)
        with open(output_path, 'wb') as f:
            np.savez_compressed(
                f,
                nodes=self.concatenated(),
                names=np.array(list(thread_names), dtype=str),
                haplotype_count=np.array(haplotype_count, dtype=np.int64),
            )


def load_thread_index(index_path: str | Path) -> Dict:
    """
    Read an index written by ThreadIndexBuilder.save().

    Returns:
        Dict with 'sequences' (list of encoded walks), 'names' and
        'haplotype_count'
    """
    with np.load(index_path) as data:
        nodes = data['nodes']
        names = [str(name) for name in data['names']]
        haplotype_count = int(data['haplotype_count'])
    return {
        'sequences': split_encoded_stream(nodes),
        'names': names,
        'haplotype_count': haplotype_count,
    }


class HaplotypeIndexSink(ThreadSink):
    """
    Feeds threads to a haplotype index builder in both orientations.

    On finish the builder is finalized and, if output_path is set, the
    index is saved together with thread names and haplotype count.
    """

    def __init__(self, builder=None, output_path: Optional[str | Path] = None):
        super().__init__()
        self.builder = builder if builder is not None else ThreadIndexBuilder()
        self.output_path = Path(output_path) if output_path else None

    def _insert(self, thread: PhaseThread):
        self.builder.insert(thread.encoded(), both_orientations=True)

    def _finish(self):
        self.builder.finish()
        if self.output_path is not None:
            logger.info(f"Saving haplotype index to {self.output_path}")
            self.builder.save(self.output_path, self.thread_names, self.haplotype_count)


# ============================================================================
#                       FLAT BINARY STREAM
# ============================================================================

class BinaryThreadSink(ThreadSink):
    """
    Writes encoded node visits as raw little-endian uint64, each thread
    terminated by ENDMARKER.
    """

    DTYPE = np.dtype('<u8')

    def __init__(self, output_path: str | Path, buffer_size: int = 1 << 20):
        super().__init__()
        self.output_path = ensure_parent_dir(output_path)
        self.buffer_size = buffer_size
        self._buffer: List[int] = []
        self._handle = open(self.output_path, 'wb')
        self.values_written = 0
        logger.info(f"Writing the haplotypes to {self.output_path}")

    def _insert(self, thread: PhaseThread):
        self._buffer.extend(thread.encoded())
        self._buffer.append(ENDMARKER)
        if len(self._buffer) >= self.buffer_size:
            self._flush()

    def _flush(self):
        if self._buffer:
            np.asarray(self._buffer, dtype=self.DTYPE).tofile(self._handle)
            self.values_written += len(self._buffer)
            self._buffer = []

    def _finish(self):
        self._flush()
        self._handle.close()

    def close(self):
        if not self._handle.closed:
            self._flush()
            self._handle.close()


def split_encoded_stream(values: np.ndarray) -> List[List[int]]:
    """Split an ENDMARKER-terminated stream into encoded walks."""
    walks: List[List[int]] = []
    current: List[int] = []
    for value in values.tolist():
        if value == ENDMARKER:
            walks.append(current)
            current = []
        else:
            current.append(value)
    if current:
        walks.append(current)
    return walks


def read_binary_threads(input_path: str | Path) -> List[List[NodeVisit]]:
    """Read a stream written by BinaryThreadSink back into node visits."""
    values = np.fromfile(input_path, dtype=BinaryThreadSink.DTYPE)
    return [[NodeVisit.decode(code) for code in walk] for walk in split_encoded_stream(values)]


# ============================================================================
#                       IN-MEMORY LIST
# ============================================================================

class ThreadListSink(ThreadSink):
    """Keeps every thread in memory for later bulk insertion into a graph."""

    def __init__(self, include_reverse: bool = False):
        super().__init__()
        self.include_reverse = include_reverse
        self.threads: List[PhaseThread] = []

    def _insert(self, thread: PhaseThread):
        self.threads.append(thread)

    def walks(self) -> List[List[NodeVisit]]:
        """Thread walks, with reverse walks interleaved if include_reverse."""
        walks = []
        for thread in self.threads:
            walks.append(list(thread.visits))
            if self.include_reverse:
                walks.append(reverse_walk(thread.visits))
        return walks

    def by_name(self) -> Dict[str, PhaseThread]:
        return {thread.name: thread for thread in self.threads}

    def clear(self):
        self.threads = []


# PhaseWeaver v0.1.0
# Any usage is subject to this software's license.
