"""
Enumeration types for memsim.

Strategy names accept the hyphenated spelling used in traces and on the
command line (``"best-fit"``) as well as the member name (``"BEST_FIT"``).
"""

from __future__ import annotations

from enum import IntEnum


class FitStrategy(IntEnum):
    """Placement policies for choosing a free block."""
    FIRST_FIT = 0
    BEST_FIT = 1
    WORST_FIT = 2
    NEXT_FIT = 3

    @property
    def label(self) -> str:
        return self.name.lower().replace('_', '-')

    @classmethod
    def parse(cls, value: str | int | FitStrategy) -> FitStrategy:
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        if isinstance(value, str):
            key = value.strip().upper().replace('-', '_')
            try:
                return cls[key]
            except KeyError:
                pass
        raise ValueError(f"Unknown fit strategy: {value!r}")


class BlockState(IntEnum):
    """Display state of a block relative to a pending request size."""
    ALLOCATED = 0
    FREE = 1
    FRAGMENTED = 2


class TraceOp(IntEnum):
    """Operations understood by the trace replayer."""
    ALLOC = 0
    FREE = 1
    FREE_RANDOM = 2
    DEFRAG = 3
    STRATEGY = 4
    RESET = 5

    @classmethod
    def parse(cls, value: str) -> TraceOp:
        return cls[value.strip().upper()]
