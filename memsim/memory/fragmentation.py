from __future__ import annotations

from typing import List, Sequence

import numpy as np

from ..types.dataclasses import AllocationRecord, AllocatorStats, Block
from ..types.enums import BlockState


def fragmentation_pct(free_bytes: int, largest_free_block: int) -> float:
    # zero free space counts as unfragmented
    if free_bytes <= 0:
        return 0.0
    return (free_bytes - largest_free_block) / free_bytes * 100


def compute_stats(total_size: int, blocks: Sequence[Block],
                  allocations: Sequence[AllocationRecord]) -> AllocatorStats:
    count = len(blocks)
    sizes = np.fromiter((b.size for b in blocks), dtype=np.int64, count=count)
    allocated = np.fromiter((b.allocated for b in blocks), dtype=bool, count=count)

    free_sizes = sizes[~allocated]
    allocated_bytes = int(sizes[allocated].sum())
    free_bytes = int(free_sizes.sum())
    largest_free = int(free_sizes.max()) if free_sizes.size else 0

    return AllocatorStats(
        total_size=total_size,
        allocated_bytes=allocated_bytes,
        free_bytes=free_bytes,
        largest_free_block=largest_free,
        fragmentation_pct=fragmentation_pct(free_bytes, largest_free),
        active_allocation_count=sum(1 for record in allocations if not record.freed),
        free_block_count=int(free_sizes.size),
        allocated_block_count=int(allocated.sum()),
    )


def classify_blocks(blocks: Sequence[Block], request_size: int) -> List[BlockState]:
    """Label each block for display against a pending request size.

    Free blocks too small to satisfy ``request_size`` are reported as
    ``FRAGMENTED``; every other free block is ``FREE``.
    """
    states = []
    for block in blocks:
        if block.allocated:
            states.append(BlockState.ALLOCATED)
        elif block.size < request_size:
            states.append(BlockState.FRAGMENTED)
        else:
            states.append(BlockState.FREE)
    return states


__all__ = ['classify_blocks', 'compute_stats', 'fragmentation_pct']
