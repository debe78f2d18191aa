import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from memsim import BlockAllocator, FitStrategy
from memsim.exceptions import (
    ConfigurationError,
    InvalidRequestError,
    InvariantViolationError,
    OutOfMemoryError,
    UnknownAllocationError,
)
from memsim.types import Block


def layout(allocator):
    return [(b.start, b.size, b.allocated, b.owner_id) for b in allocator.blocks]


class TestAllocatorInitialization:
    def test_single_free_block(self):
        allocator = BlockAllocator(256)

        assert allocator.total_size == 256
        assert allocator.blocks == (Block(0, 256),)
        assert allocator.allocations == ()
        assert allocator.next_id == 1
        assert allocator.strategy == FitStrategy.FIRST_FIT
        assert allocator.last_search_cursor == 0

    def test_strategy_by_name(self):
        allocator = BlockAllocator(64, "worst-fit")
        assert allocator.strategy == FitStrategy.WORST_FIT

    def test_invalid_total_size(self):
        with pytest.raises(InvalidRequestError, match="total_size must be a positive integer"):
            BlockAllocator(0)

        with pytest.raises(ValueError):
            BlockAllocator(-5)

    def test_unknown_strategy(self):
        with pytest.raises(ConfigurationError, match="Unknown fit strategy"):
            BlockAllocator(64, "random-fit")


class TestAllocate:
    def setup_method(self):
        self.allocator = BlockAllocator(100, validate=True)

    def test_split_from_front(self):
        allocation_id = self.allocator.allocate(10)

        assert allocation_id == 1
        assert layout(self.allocator) == [(0, 10, True, 1), (10, 90, False, None)]

    def test_split_of_thirty_byte_block(self):
        self.allocator.reset(30)
        self.allocator.allocate(10)

        assert self.allocator.blocks[0] == Block(0, 10, True, 1)
        assert self.allocator.blocks[1] == Block(10, 20, False, None)
        assert self.allocator.blocks[0].end == self.allocator.blocks[1].start
        assert self.allocator.blocks[1].end == 30

    def test_exact_fit_marks_block_in_place(self):
        first = self.allocator.allocate(40)
        self.allocator.allocate(60)
        self.allocator.free(first)

        reused = self.allocator.allocate(40)

        assert reused == 3
        assert layout(self.allocator) == [(0, 40, True, 3), (40, 60, True, 2)]

    def test_ids_are_monotonic_and_never_reused(self):
        ids = [self.allocator.allocate(10) for _ in range(3)]
        self.allocator.free(ids[1])
        ids.append(self.allocator.allocate(10))

        assert ids == [1, 2, 3, 4]

    def test_history_records_granted_size(self):
        self.allocator.allocate(15)

        record = self.allocator.allocations[0]
        assert record.id == 1
        assert record.size == 15
        assert record.freed is False
        assert record.freed_at is None
        assert record.created_at > 0

    def test_cursor_tracks_filled_slot(self):
        self.allocator.allocate(10)
        assert self.allocator.last_search_cursor == 0

        self.allocator.allocate(10)
        assert self.allocator.last_search_cursor == 1

    @pytest.mark.parametrize("size", [0, -1, 2.5, "10", True, None])
    def test_invalid_sizes(self, size):
        with pytest.raises(InvalidRequestError, match="size must be a positive integer"):
            self.allocator.allocate(size)

    @pytest.mark.parametrize("strategy", list(FitStrategy))
    def test_out_of_memory_leaves_state_unchanged(self, strategy):
        self.allocator.set_strategy(strategy)
        for size in (20, 30, 20):
            self.allocator.allocate(size)
        self.allocator.free(2)

        blocks_before = self.allocator.blocks
        history_before = self.allocator.allocations
        next_id_before = self.allocator.next_id
        cursor_before = self.allocator.last_search_cursor

        assert self.allocator.allocate(31) is None
        assert self.allocator.blocks == blocks_before
        assert self.allocator.allocations == history_before
        assert self.allocator.next_id == next_id_before
        assert self.allocator.last_search_cursor == cursor_before
        assert self.allocator.counters.out_of_memory == 1

    def test_allocate_or_raise(self):
        self.allocator.allocate(90)

        with pytest.raises(OutOfMemoryError, match="largest free block is 10 bytes") as exc_info:
            self.allocator.allocate_or_raise(11)

        assert exc_info.value.requested_size == 11
        assert exc_info.value.largest_free_block == 10
        assert self.allocator.allocate_or_raise(10) == 2


class TestFree:
    def setup_method(self):
        self.allocator = BlockAllocator(100, validate=True)

    def test_free_marks_history(self):
        allocation_id = self.allocator.allocate(10)

        assert self.allocator.free(allocation_id) is True

        record = self.allocator.allocations[0]
        assert record.freed is True
        assert record.freed_at is not None
        assert self.allocator.blocks == (Block(0, 100),)

    def test_double_free_is_noop(self):
        a = self.allocator.allocate(10)
        self.allocator.allocate(20)

        assert self.allocator.free(a) is True
        blocks_after_first = self.allocator.blocks
        history_after_first = self.allocator.allocations

        assert self.allocator.free(a) is False
        assert self.allocator.blocks == blocks_after_first
        assert self.allocator.allocations == history_after_first

    @pytest.mark.parametrize("allocation_id", [0, 99, -1, None, "1", 1.0])
    def test_unknown_ids(self, allocation_id):
        self.allocator.allocate(10)
        assert self.allocator.free(allocation_id) is False
        assert self.allocator.counters.rejected_frees == 1

    def test_coalesce_with_neighbours(self):
        a = self.allocator.allocate(10)
        b = self.allocator.allocate(20)
        self.allocator.allocate(70)

        self.allocator.free(a)
        self.allocator.free(b)

        assert layout(self.allocator) == [(0, 30, False, None), (30, 70, True, 3)]

    def test_coalesce_both_sides(self):
        a = self.allocator.allocate(10)
        b = self.allocator.allocate(10)
        c = self.allocator.allocate(10)
        self.allocator.free(a)
        self.allocator.free(c)
        self.allocator.free(b)

        assert self.allocator.blocks == (Block(0, 100),)

    def test_free_or_raise(self):
        a = self.allocator.allocate(10)
        self.allocator.free_or_raise(a)

        with pytest.raises(UnknownAllocationError, match="is not live") as exc_info:
            self.allocator.free_or_raise(a)
        assert exc_info.value.allocation_id == a

    def test_free_random_uses_seeded_rng(self):
        first = BlockAllocator(100, seed=7)
        second = BlockAllocator(100, seed=7)
        for allocator in (first, second):
            for _ in range(5):
                allocator.allocate(10)

        assert first.free_random() == second.free_random()
        assert first.get_stats().active_allocation_count == 4

    def test_free_random_with_nothing_live(self):
        assert self.allocator.free_random() is None

    def test_active_allocations(self):
        a = self.allocator.allocate(10)
        b = self.allocator.allocate(10)
        self.allocator.free(a)

        assert [record.id for record in self.allocator.active_allocations()] == [b]
        assert len(self.allocator.allocations) == 2

    def test_find_block(self):
        self.allocator.allocate(10)
        b = self.allocator.allocate(25)

        assert self.allocator.find_block(b) == Block(10, 25, True, b)
        self.allocator.free(b)
        assert self.allocator.find_block(b) is None


class TestMergeAdjacentFree:
    def test_merge_runs_of_free_blocks(self):
        allocator = BlockAllocator(60)
        allocator._blocks = [
            Block(0, 10), Block(10, 10), Block(20, 10, True, 1),
            Block(30, 10), Block(40, 10), Block(50, 10),
        ]

        merged = allocator.merge_adjacent_free()

        assert merged == 3
        assert allocator.blocks == (Block(0, 20), Block(20, 10, True, 1), Block(30, 30))


class TestDefragment:
    def setup_method(self):
        self.allocator = BlockAllocator(100, validate=True)
        self.ids = [self.allocator.allocate(size) for size in (10, 20, 15, 25)]
        self.allocator.free(self.ids[0])
        self.allocator.free(self.ids[2])

    def test_allocated_blocks_move_to_front(self):
        relocated = self.allocator.defragment()

        assert layout(self.allocator) == [
            (0, 20, True, self.ids[1]),
            (20, 25, True, self.ids[3]),
            (45, 55, False, None),
        ]
        assert relocated == 45

    def test_sizes_and_ids_preserved(self):
        before = {b.owner_id: b.size for b in self.allocator.blocks if b.allocated}
        self.allocator.defragment()
        after = {b.owner_id: b.size for b in self.allocator.blocks if b.allocated}

        assert before == after

    def test_free_space_collapses(self):
        self.allocator.defragment()
        stats = self.allocator.get_stats()

        assert stats.free_block_count == 1
        assert stats.fragmentation_pct == 0.0
        free_starts = [b.start for b in self.allocator.blocks if b.is_free]
        allocated_starts = [b.start for b in self.allocator.blocks if b.allocated]
        assert max(allocated_starts) < min(free_starts)

    def test_full_space_has_no_free_block(self):
        allocator = BlockAllocator(30)
        for _ in range(3):
            allocator.allocate(10)

        assert allocator.defragment() == 0
        assert all(b.allocated for b in allocator.blocks)

    def test_idempotent(self):
        self.allocator.defragment()
        blocks = self.allocator.blocks

        assert self.allocator.defragment() == 0
        assert self.allocator.blocks == blocks


class TestReset:
    def test_reset_keeps_size(self):
        allocator = BlockAllocator(128)
        allocator.allocate(64)
        allocator.set_strategy(FitStrategy.NEXT_FIT)
        allocator.allocate(10)

        allocator.reset()

        assert allocator.blocks == (Block(0, 128),)
        assert allocator.allocations == ()
        assert allocator.next_id == 1
        assert allocator.last_search_cursor == 0
        assert allocator.strategy == FitStrategy.NEXT_FIT

    def test_reset_with_new_size(self):
        allocator = BlockAllocator(128)
        allocator.allocate(100)

        allocator.reset(32)

        assert allocator.total_size == 32
        assert allocator.blocks == (Block(0, 32),)
        assert allocator.allocate(1) == 1

    def test_reset_rejects_bad_size(self):
        allocator = BlockAllocator(128)
        with pytest.raises(InvalidRequestError):
            allocator.reset(0)
        assert allocator.total_size == 128

    def test_reset_clears_counters(self):
        allocator = BlockAllocator(16)
        allocator.allocate(8)
        allocator.reset()

        counters = allocator.counters.snapshot()
        assert counters['allocations'] == 0
        assert counters['resets'] == 1


class TestInvariantChecks:
    def test_detects_gap(self):
        allocator = BlockAllocator(30)
        allocator._blocks = [Block(0, 10), Block(15, 15, True, 1)]

        with pytest.raises(InvariantViolationError, match="starts at 15, expected 10"):
            allocator.check_invariants()

    def test_detects_adjacent_free(self):
        allocator = BlockAllocator(20)
        allocator._blocks = [Block(0, 10), Block(10, 10)]

        with pytest.raises(InvariantViolationError, match="both free"):
            allocator.check_invariants()

    def test_detects_short_coverage(self):
        allocator = BlockAllocator(20)
        allocator._blocks = [Block(0, 10)]

        with pytest.raises(InvariantViolationError, match="cover 10 bytes"):
            allocator.check_invariants()

    def test_detects_orphan_owner(self):
        allocator = BlockAllocator(20)
        allocator._blocks = [Block(0, 10, True, 5), Block(10, 10)]

        with pytest.raises(InvariantViolationError, match="do not match live allocations"):
            allocator.check_invariants()


class TestConcurrentAccess:
    def test_lock_keeps_block_list_consistent(self):
        allocator = BlockAllocator(4096)
        barrier = threading.Barrier(4)

        def worker(seed):
            barrier.wait()
            for i in range(200):
                allocation_id = allocator.allocate((seed + i) % 16 + 1)
                if allocation_id is not None and i % 2 == 0:
                    allocator.free(allocation_id)
                stats = allocator.get_stats()
                assert stats.allocated_bytes + stats.free_bytes == 4096

        with ThreadPoolExecutor(max_workers=4) as pool:
            list(pool.map(worker, range(4)))

        allocator.check_invariants()
