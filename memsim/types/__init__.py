from __future__ import annotations

from .aliases import AllocationID, ByteSize, Offset, Timestamp
from .dataclasses import AllocationRecord, AllocatorStats, Block
from .enums import BlockState, FitStrategy, TraceOp
from .protocols import SearchFunction, StatsSource

__all__ = [
    "AllocationID",
    "AllocationRecord",
    "AllocatorStats",
    "Block",
    "BlockState",
    "ByteSize",
    "FitStrategy",
    "Offset",
    "SearchFunction",
    "StatsSource",
    "Timestamp",
    "TraceOp",
]
