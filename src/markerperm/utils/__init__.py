"""Utility modules: random-source handling and atomic file output."""

from markerperm.utils.fileio import atomic_write_json
from markerperm.utils.randomness import resolve_rng

__all__ = [
    'atomic_write_json',
    'resolve_rng',
]
