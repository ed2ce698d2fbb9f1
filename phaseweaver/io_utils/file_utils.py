#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
PhaseWeaver v0.1.0

File helpers shared by the graph, genotype and thread writers.

Author: PhaseWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import gzip
from pathlib import Path
from typing import TextIO, Union


def is_gzipped(filepath: Union[str, Path]) -> bool:
    """True for .gz / .gzip paths."""
    return Path(filepath).suffix in ('.gz', '.gzip')


def open_file(filepath: Union[str, Path], mode: str = 'r') -> TextIO:
    """
    Open a text file, transparently handling gzip by extension.

    Args:
        filepath: Path to file
        mode: 'r' or 'w'

    Returns:
        Text file handle
    """
    filepath = Path(filepath)
    if is_gzipped(filepath):
        return gzip.open(filepath, 'rt' if 'r' in mode else 'wt')
    return open(filepath, mode)


def ensure_parent_dir(filepath: Union[str, Path]) -> Path:
    """Create the parent directory of an output file if needed."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    return filepath

# PhaseWeaver v0.1.0
# Any usage is subject to this software's license.
