"""
Operation traces for memsim.

A trace is a JSON-lines file with one operation per line::

    {"op": "alloc", "size": 64}
    {"op": "free", "id": 1}
    {"op": "free_random"}
    {"op": "defrag"}
    {"op": "strategy", "name": "best-fit"}
    {"op": "reset", "size": 2048}

Traces can be replayed against an allocator, and seeded random workloads can
be generated and run under every strategy for comparison.
"""

from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

from .exceptions import TraceError
from .memory.allocator import BlockAllocator
from .types.enums import FitStrategy, TraceOp
from .types.protocols import StatsSource
from .utils.counters import PerformanceCounter

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TraceEvent:
    op: TraceOp
    size: Optional[int] = None
    allocation_id: Optional[int] = None
    strategy: Optional[FitStrategy] = None
    line_number: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'op': self.op.name.lower()}
        if self.size is not None:
            data['size'] = self.size
        if self.allocation_id is not None:
            data['id'] = self.allocation_id
        if self.strategy is not None:
            data['name'] = self.strategy.label
        return data


@dataclass(slots=True)
class ReplayReport:
    strategy: FitStrategy
    results: List[Dict[str, Any]] = field(default_factory=list)
    failed_allocations: int = 0
    rejected_frees: int = 0
    elapsed_ns: int = 0
    mean_op_ns: float = 0.0
    stats: Dict[str, Any] = field(default_factory=dict)
    counters: Dict[str, int] = field(default_factory=dict)
    blocks: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'strategy': self.strategy.label,
            'failed_allocations': self.failed_allocations,
            'rejected_frees': self.rejected_frees,
            'elapsed_ns': self.elapsed_ns,
            'mean_op_ns': self.mean_op_ns,
            'stats': self.stats,
            'counters': self.counters,
            'blocks': self.blocks,
            'results': self.results,
        }


def _require_int(raw: Dict[str, Any], key: str, line_number: Optional[int], required: bool = True) -> Optional[int]:
    value = raw.get(key)
    if value is None and not required:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise TraceError(f"Line {line_number}: '{key}' must be an integer, got {value!r}",
                         line_number=line_number)
    return value


def parse_event(raw: Any, line_number: Optional[int] = None) -> TraceEvent:
    if not isinstance(raw, dict) or 'op' not in raw:
        raise TraceError(f"Line {line_number}: expected an object with an 'op' field", line_number=line_number)

    try:
        op = TraceOp.parse(str(raw['op']))
    except KeyError as e:
        raise TraceError(f"Line {line_number}: unknown op {raw['op']!r}", line_number=line_number) from e

    if op == TraceOp.ALLOC:
        return TraceEvent(op, size=_require_int(raw, 'size', line_number), line_number=line_number)
    if op == TraceOp.FREE:
        return TraceEvent(op, allocation_id=_require_int(raw, 'id', line_number), line_number=line_number)
    if op == TraceOp.RESET:
        return TraceEvent(op, size=_require_int(raw, 'size', line_number, required=False),
                          line_number=line_number)
    if op == TraceOp.STRATEGY:
        try:
            strategy = FitStrategy.parse(raw.get('name', ''))
        except ValueError as e:
            raise TraceError(f"Line {line_number}: {e}", line_number=line_number) from e
        return TraceEvent(op, strategy=strategy, line_number=line_number)
    return TraceEvent(op, line_number=line_number)


def iter_trace(lines: Iterable[str]) -> Iterator[TraceEvent]:
    for line_number, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            raw = json.loads(line)
        except json.JSONDecodeError as e:
            raise TraceError(f"Line {line_number}: invalid JSON ({e.msg})", line_number=line_number) from e
        yield parse_event(raw, line_number)


def load_trace(path: Union[str, Path]) -> List[TraceEvent]:
    with open(path, 'r', encoding='utf-8') as f:
        return list(iter_trace(f))


def dump_trace(events: Iterable[TraceEvent], path: Union[str, Path]) -> None:
    with open(path, 'w', encoding='utf-8') as f:
        for event in events:
            f.write(json.dumps(event.to_dict()) + "\n")


def apply_event(allocator: BlockAllocator, event: TraceEvent, strict: bool = False) -> Any:
    """Run one event and return its result (new id, freed flag, relocated bytes...)."""
    if event.op == TraceOp.ALLOC:
        if strict:
            return allocator.allocate_or_raise(event.size)
        return allocator.allocate(event.size)
    if event.op == TraceOp.FREE:
        if strict:
            allocator.free_or_raise(event.allocation_id)
            return True
        return allocator.free(event.allocation_id)
    if event.op == TraceOp.FREE_RANDOM:
        return allocator.free_random()
    if event.op == TraceOp.DEFRAG:
        return allocator.defragment()
    if event.op == TraceOp.STRATEGY:
        allocator.set_strategy(event.strategy)
        return event.strategy.label
    if event.op == TraceOp.RESET:
        allocator.reset(event.size)
        return allocator.total_size
    raise TraceError(f"Unsupported op {event.op!r}", line_number=event.line_number)


def summarize(source: StatsSource) -> Dict[str, Any]:
    return source.get_stats().to_dict()


def replay(allocator: BlockAllocator, events: Iterable[TraceEvent], strict: bool = False) -> ReplayReport:
    report = ReplayReport(strategy=allocator.strategy)

    with PerformanceCounter() as timer:
        for event in events:
            result = apply_event(allocator, event, strict=strict)
            timer.lap()

            if event.op == TraceOp.ALLOC and result is None:
                report.failed_allocations += 1
                logger.warning("line %s: allocation of %d bytes failed", event.line_number, event.size)
            elif event.op == TraceOp.FREE and result is False:
                report.rejected_frees += 1
                logger.warning("line %s: allocation %d is not live", event.line_number, event.allocation_id)

            report.results.append({**event.to_dict(), 'result': result})

    report.strategy = allocator.strategy
    report.elapsed_ns = timer.elapsed_ns
    report.mean_op_ns = timer.mean_lap_ns
    report.stats = summarize(allocator)
    report.counters = allocator.counters.snapshot()
    report.blocks = [
        {'start': b.start, 'size': b.size, 'allocated': b.allocated, 'owner_id': b.owner_id}
        for b in allocator.blocks
    ]
    logger.info("replayed %d operations in %.3f ms", len(report.results), report.elapsed_ns / 1e6)
    return report


def generate_workload(operations: int, max_request: int, seed: Optional[int] = None,
                      free_ratio: float = 0.4) -> List[TraceEvent]:
    """Build a random alloc/free trace.

    Free events name ids in the order they would be issued if every allocation
    succeeded. Once a strategy fails an allocation its ids drift from that
    numbering, and frees of ids it never issued are counted as rejected.
    """
    if max_request <= 0:
        raise ValueError("max_request must be positive")

    rng = random.Random(seed)
    events: List[TraceEvent] = []
    live: List[int] = []
    issued = 0

    for _ in range(operations):
        if live and rng.random() < free_ratio:
            victim = live.pop(rng.randrange(len(live)))
            events.append(TraceEvent(TraceOp.FREE, allocation_id=victim))
        else:
            issued += 1
            live.append(issued)
            events.append(TraceEvent(TraceOp.ALLOC, size=rng.randint(1, max_request)))

    return events


def compare_strategies(events: List[TraceEvent], total_size: int) -> Dict[str, Dict[str, Any]]:
    """Replay the same events under each strategy on a fresh allocator."""
    comparison = {}
    for strategy in FitStrategy:
        allocator = BlockAllocator(total_size, strategy)
        report = replay(allocator, events)
        comparison[strategy.label] = {
            'failed_allocations': report.failed_allocations,
            'rejected_frees': report.rejected_frees,
            'fragmentation_pct': report.stats['fragmentation_pct'],
            'largest_free_block': report.stats['largest_free_block'],
            'free_block_count': report.stats['free_block_count'],
            'elapsed_ns': report.elapsed_ns,
        }
    return comparison
