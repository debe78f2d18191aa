"""
Placement strategies.

Each strategy is a pure function over an immutable view of the block list. It
returns the index of the chosen free block, or ``None`` when no free block can
hold ``size`` bytes.
"""

from __future__ import annotations

from typing import Dict, Optional, Sequence

from ..types.dataclasses import Block
from ..types.enums import FitStrategy
from ..types.protocols import SearchFunction


def _fits(block: Block, size: int) -> bool:
    return block.is_free and block.size >= size


def first_fit(blocks: Sequence[Block], size: int, cursor: int = 0) -> Optional[int]:
    for i, block in enumerate(blocks):
        if _fits(block, size):
            return i
    return None


def best_fit(blocks: Sequence[Block], size: int, cursor: int = 0) -> Optional[int]:
    best_index = None
    best_size = 0

    for i, block in enumerate(blocks):
        if _fits(block, size):
            if best_index is None or block.size < best_size:
                best_index = i
                best_size = block.size

    return best_index


def worst_fit(blocks: Sequence[Block], size: int, cursor: int = 0) -> Optional[int]:
    worst_index = None
    worst_size = 0

    for i, block in enumerate(blocks):
        if _fits(block, size):
            if worst_index is None or block.size > worst_size:
                worst_index = i
                worst_size = block.size

    return worst_index


def next_fit(blocks: Sequence[Block], size: int, cursor: int = 0) -> Optional[int]:
    count = len(blocks)
    if count == 0:
        return None

    # merges can shrink the list below a stale cursor
    start = cursor % count
    for step in range(count):
        i = (start + step) % count
        if _fits(blocks[i], size):
            return i
    return None


SEARCH_FUNCTIONS: Dict[FitStrategy, SearchFunction] = {
    FitStrategy.FIRST_FIT: first_fit,
    FitStrategy.BEST_FIT: best_fit,
    FitStrategy.WORST_FIT: worst_fit,
    FitStrategy.NEXT_FIT: next_fit,
}


def search(strategy: FitStrategy, blocks: Sequence[Block], size: int, cursor: int = 0) -> Optional[int]:
    return SEARCH_FUNCTIONS[strategy](blocks, size, cursor)


__all__ = [
    'SEARCH_FUNCTIONS',
    'best_fit',
    'first_fit',
    'next_fit',
    'search',
    'worst_fit',
]
