from __future__ import annotations

from typing import Optional, Protocol, Sequence, runtime_checkable

from .dataclasses import AllocatorStats, Block


@runtime_checkable
class SearchFunction(Protocol):
    def __call__(self, blocks: Sequence[Block], size: int, cursor: int = 0) -> Optional[int]: ...


@runtime_checkable
class StatsSource(Protocol):
    def get_stats(self) -> AllocatorStats: ...
