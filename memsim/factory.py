from __future__ import annotations

from functools import lru_cache

from .config import SimulatorConfig, load_config
from .memory.allocator import BlockAllocator
from .types.enums import FitStrategy


@lru_cache(maxsize=1)
def get_default_allocator() -> BlockAllocator:
    return create_from_config(load_config())


def create_allocator(**kwargs) -> BlockAllocator:
    return BlockAllocator(**kwargs)


def create_from_config(config: SimulatorConfig) -> BlockAllocator:
    return BlockAllocator(
        total_size=config.total_size,
        strategy=config.strategy,
        validate=config.validate,
        seed=config.seed,
    )


def create_first_fit_allocator(total_size: int = 1024) -> BlockAllocator:
    return BlockAllocator(total_size, FitStrategy.FIRST_FIT)


def create_best_fit_allocator(total_size: int = 1024) -> BlockAllocator:
    return BlockAllocator(total_size, FitStrategy.BEST_FIT)


def create_worst_fit_allocator(total_size: int = 1024) -> BlockAllocator:
    return BlockAllocator(total_size, FitStrategy.WORST_FIT)


def create_next_fit_allocator(total_size: int = 1024) -> BlockAllocator:
    return BlockAllocator(total_size, FitStrategy.NEXT_FIT)
