from .allocator import BlockAllocator
from .fragmentation import classify_blocks, compute_stats, fragmentation_pct
from .strategies import SEARCH_FUNCTIONS, best_fit, first_fit, next_fit, search, worst_fit

__all__ = [
    "BlockAllocator",
    "SEARCH_FUNCTIONS",
    "best_fit",
    "classify_blocks",
    "compute_stats",
    "first_fit",
    "fragmentation_pct",
    "next_fit",
    "search",
    "worst_fit",
]
