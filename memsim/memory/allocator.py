from __future__ import annotations

import logging
import random
import time
from threading import RLock
from typing import List, Optional, Tuple, Union

from ..exceptions import (
    ConfigurationError,
    InvalidRequestError,
    InvariantViolationError,
    OutOfMemoryError,
    UnknownAllocationError,
)
from ..types.aliases import AllocationID, ByteSize, Offset
from ..types.dataclasses import AllocationRecord, AllocatorStats, Block
from ..types.enums import FitStrategy
from ..utils.counters import OperationCounters
from .fragmentation import compute_stats
from .strategies import search

logger = logging.getLogger(__name__)


def _check_positive_size(value: object, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidRequestError(f"{what} must be a positive integer, got {value!r}", value=value)
    return value


class BlockAllocator:
    """Block-list allocator over a simulated address space.

    The address space ``[0, total_size)`` is covered by an ordered list of
    contiguous blocks, each free or owned by one allocation id. Requests are
    placed by the active :class:`FitStrategy`, split off the front of the
    chosen free block, and freed blocks are coalesced with free neighbours.

    Every public method holds the instance lock for its whole duration, so
    readers never observe a half-split or half-merged block list.
    """
    __slots__ = ('_total_size', '_blocks', '_allocations', '_next_id', '_strategy',
                 '_cursor', '_lock', '_counters', '_validate', '_rng')

    def __init__(self, total_size: int = 1024,
                 strategy: Union[FitStrategy, str] = FitStrategy.FIRST_FIT,
                 validate: bool = False, seed: Optional[int] = None):
        self._total_size = _check_positive_size(total_size, "total_size")
        self._blocks: List[Block] = [Block(Offset(0), ByteSize(self._total_size))]
        self._allocations: List[AllocationRecord] = []
        self._next_id = 1
        self._strategy = self._parse_strategy(strategy)
        self._cursor = 0
        self._lock = RLock()
        self._counters = OperationCounters()
        self._validate = validate
        self._rng = random.Random(seed)

    @staticmethod
    def _parse_strategy(strategy: Union[FitStrategy, str]) -> FitStrategy:
        try:
            return FitStrategy.parse(strategy)
        except ValueError as e:
            raise ConfigurationError(str(e), strategy=strategy) from e

    @property
    def total_size(self) -> int:
        return self._total_size

    @property
    def strategy(self) -> FitStrategy:
        return self._strategy

    @property
    def next_id(self) -> int:
        return self._next_id

    @property
    def last_search_cursor(self) -> int:
        return self._cursor

    @property
    def counters(self) -> OperationCounters:
        return self._counters

    @property
    def blocks(self) -> Tuple[Block, ...]:
        with self._lock:
            return tuple(self._blocks)

    @property
    def allocations(self) -> Tuple[AllocationRecord, ...]:
        with self._lock:
            return tuple(self._allocations)

    def active_allocations(self) -> List[AllocationRecord]:
        with self._lock:
            return [record for record in self._allocations if not record.freed]

    def find_block(self, allocation_id: int) -> Optional[Block]:
        with self._lock:
            index = self._index_of_owner(allocation_id)
            return self._blocks[index] if index is not None else None

    def set_strategy(self, strategy: Union[FitStrategy, str]) -> None:
        with self._lock:
            self._strategy = self._parse_strategy(strategy)
            self._cursor = 0
            logger.debug("strategy set to %s", self._strategy.label)

    def allocate(self, size: int) -> Optional[AllocationID]:
        """Place ``size`` bytes with the active strategy.

        Returns the new allocation id, or ``None`` when no free block is large
        enough. A failed request leaves the allocator untouched.
        """
        size = _check_positive_size(size, "size")

        with self._lock:
            index = search(self._strategy, self._blocks, size, self._cursor)
            if index is None:
                self._counters.out_of_memory += 1
                logger.debug("out of memory: %d bytes requested under %s", size, self._strategy.label)
                return None

            block = self._blocks[index]
            allocation_id = AllocationID(self._next_id)
            self._next_id += 1

            if block.size == size:
                self._blocks[index] = block.occupy(allocation_id)
            else:
                self._blocks[index] = Block(block.start, ByteSize(size), True, allocation_id)
                self._blocks.insert(index + 1, Block(Offset(block.start + size), ByteSize(block.size - size)))
                logger.debug("split block at %d: %d allocated, %d remaining",
                             block.start, size, block.size - size)

            self._allocations.append(AllocationRecord(allocation_id, ByteSize(size), time.time()))
            self._cursor = index
            self._counters.allocations += 1
            self._after_mutation()
            return allocation_id

    def allocate_or_raise(self, size: int) -> AllocationID:
        with self._lock:
            allocation_id = self.allocate(size)
            if allocation_id is None:
                largest = max((b.size for b in self._blocks if b.is_free), default=0)
                raise OutOfMemoryError(
                    f"Cannot allocate {size} bytes with {self._strategy.label} "
                    f"(largest free block is {largest} bytes)",
                    requested_size=size,
                    largest_free_block=largest,
                )
            return allocation_id

    def free(self, allocation_id: int) -> bool:
        """Release a live allocation. Unknown or already freed ids return ``False``."""
        with self._lock:
            index = self._index_of_owner(allocation_id)
            if index is None:
                self._counters.rejected_frees += 1
                logger.debug("free of unknown allocation %r ignored", allocation_id)
                return False

            self._blocks[index] = self._blocks[index].release()
            # ids are handed out from 1 and history is append-only
            record_index = allocation_id - 1
            self._allocations[record_index] = self._allocations[record_index].mark_freed(time.time())

            self._merge()
            self._counters.frees += 1
            self._after_mutation()
            return True

    def free_or_raise(self, allocation_id: int) -> None:
        if not self.free(allocation_id):
            raise UnknownAllocationError(f"Allocation {allocation_id!r} is not live",
                                         allocation_id=allocation_id)

    def free_random(self, rng: Optional[random.Random] = None) -> Optional[AllocationID]:
        with self._lock:
            live = [record.id for record in self._allocations if not record.freed]
            if not live:
                return None
            victim = (rng or self._rng).choice(live)
            self.free(victim)
            return victim

    def merge_adjacent_free(self) -> int:
        with self._lock:
            merged = self._merge()
            self._after_mutation()
            return merged

    def _merge(self) -> int:
        coalesced: List[Block] = []
        merges = 0

        for block in self._blocks:
            if coalesced and block.is_free and coalesced[-1].is_free:
                coalesced[-1] = coalesced[-1].resized(coalesced[-1].size + block.size)
                merges += 1
            else:
                coalesced.append(block)

        if merges:
            logger.debug("coalesced %d free block(s)", merges)
        self._blocks = coalesced
        return merges

    def defragment(self) -> int:
        """Slide allocated blocks to the front and merge the free space behind them.

        Returns the number of allocated bytes whose offset changed.
        """
        with self._lock:
            ordered = [b for b in self._blocks if b.allocated] + [b for b in self._blocks if b.is_free]

            relocated = 0
            cursor = 0
            laid_out: List[Block] = []
            for block in ordered:
                if block.allocated and block.start != cursor:
                    relocated += block.size
                laid_out.append(block.moved_to(cursor))
                cursor += block.size

            self._blocks = laid_out
            self._merge()
            self._counters.defragmentations += 1
            self._counters.bytes_relocated += relocated
            logger.debug("defragmented: %d bytes relocated", relocated)
            self._after_mutation()
            return relocated

    def get_stats(self) -> AllocatorStats:
        with self._lock:
            return compute_stats(self._total_size, self._blocks, self._allocations)

    def reset(self, total_size: Optional[int] = None) -> None:
        with self._lock:
            if total_size is not None:
                self._total_size = _check_positive_size(total_size, "total_size")
            self._blocks = [Block(Offset(0), ByteSize(self._total_size))]
            self._allocations = []
            self._next_id = 1
            self._cursor = 0
            self._counters.clear()
            self._counters.resets += 1
            logger.debug("reset to %d bytes", self._total_size)

    def check_invariants(self) -> None:
        with self._lock:
            if not self._blocks:
                raise InvariantViolationError("Block list is empty")

            expected_start = 0
            previous_free = False
            owners = set()
            for i, block in enumerate(self._blocks):
                if block.start != expected_start:
                    raise InvariantViolationError(
                        f"Block {i} starts at {block.start}, expected {expected_start}", index=i)
                if block.size <= 0:
                    raise InvariantViolationError(f"Block {i} has non-positive size {block.size}", index=i)
                if block.allocated != (block.owner_id is not None):
                    raise InvariantViolationError(f"Block {i} owner does not match its state", index=i)
                if block.is_free and previous_free:
                    raise InvariantViolationError(f"Blocks {i - 1} and {i} are both free", index=i)
                if block.allocated:
                    if block.owner_id in owners:
                        raise InvariantViolationError(f"Allocation {block.owner_id} owns two blocks", index=i)
                    owners.add(block.owner_id)
                previous_free = block.is_free
                expected_start = block.end

            if expected_start != self._total_size:
                raise InvariantViolationError(
                    f"Blocks cover {expected_start} bytes, expected {self._total_size}")

            live = {record.id for record in self._allocations if not record.freed}
            if owners != live:
                raise InvariantViolationError(
                    f"Allocated block owners {sorted(owners)} do not match live allocations {sorted(live)}")

    def _index_of_owner(self, allocation_id: int) -> Optional[int]:
        if isinstance(allocation_id, bool) or not isinstance(allocation_id, int):
            return None
        for i, block in enumerate(self._blocks):
            if block.allocated and block.owner_id == allocation_id:
                return i
        return None

    def _after_mutation(self) -> None:
        if self._validate:
            self.check_invariants()

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(total_size={self._total_size}, "
                f"strategy={self._strategy.label}, blocks={len(self._blocks)})")
