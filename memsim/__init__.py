"""
memsim - Simulated block-list memory allocator

Models the bookkeeping of a classical dynamic-memory allocator over an
abstract address space: an ordered list of contiguous blocks, first/best/
worst/next-fit placement, block splitting, coalescing of free neighbours and
compaction.
"""

from __future__ import annotations

__version__ = "1.0.0"
__license__ = "MIT"

from .config import SimulatorConfig, load_config
from .exceptions import (
    AllocationFailure,
    ConfigurationError,
    InvalidRequestError,
    InvariantViolationError,
    MemSimError,
    OutOfMemoryError,
    TraceError,
    UnknownAllocationError,
)
from .factory import (
    create_allocator,
    create_best_fit_allocator,
    create_first_fit_allocator,
    create_from_config,
    create_next_fit_allocator,
    create_worst_fit_allocator,
    get_default_allocator,
)
from .memory import BlockAllocator, classify_blocks, compute_stats
from .types import (
    AllocationID,
    AllocationRecord,
    AllocatorStats,
    Block,
    BlockState,
    FitStrategy,
)

__all__ = [
    "BlockAllocator",
    "SimulatorConfig",
    "load_config",
    "create_allocator",
    "create_best_fit_allocator",
    "create_first_fit_allocator",
    "create_from_config",
    "create_next_fit_allocator",
    "create_worst_fit_allocator",
    "get_default_allocator",
    "classify_blocks",
    "compute_stats",

    "AllocationID",
    "AllocationRecord",
    "AllocatorStats",
    "Block",
    "BlockState",
    "FitStrategy",

    "AllocationFailure",
    "ConfigurationError",
    "InvalidRequestError",
    "InvariantViolationError",
    "MemSimError",
    "OutOfMemoryError",
    "TraceError",
    "UnknownAllocationError",
]


def get_version() -> str:
    return __version__
