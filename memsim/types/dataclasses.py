from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Optional

from .aliases import AllocationID, ByteSize, Offset, Timestamp


@dataclass(frozen=True, slots=True)
class Block:
    start: Offset
    size: ByteSize
    allocated: bool = False
    owner_id: Optional[AllocationID] = None

    @property
    def end(self) -> int:
        return self.start + self.size

    @property
    def is_free(self) -> bool:
        return not self.allocated

    def occupy(self, owner_id: AllocationID) -> Block:
        return replace(self, allocated=True, owner_id=owner_id)

    def release(self) -> Block:
        return replace(self, allocated=False, owner_id=None)

    def moved_to(self, start: int) -> Block:
        return replace(self, start=Offset(start))

    def resized(self, size: int) -> Block:
        return replace(self, size=ByteSize(size))


@dataclass(frozen=True, slots=True)
class AllocationRecord:
    id: AllocationID
    size: ByteSize
    created_at: Timestamp
    freed: bool = False
    freed_at: Optional[Timestamp] = None

    def mark_freed(self, when: Timestamp) -> AllocationRecord:
        return replace(self, freed=True, freed_at=when)


@dataclass(frozen=True, slots=True)
class AllocatorStats:
    total_size: int
    allocated_bytes: int
    free_bytes: int
    largest_free_block: int
    fragmentation_pct: float
    active_allocation_count: int
    free_block_count: int
    allocated_block_count: int

    @property
    def utilization_pct(self) -> float:
        return self.allocated_bytes / self.total_size * 100 if self.total_size > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['utilization_pct'] = self.utilization_pct
        return data
