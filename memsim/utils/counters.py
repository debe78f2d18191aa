from __future__ import annotations

import sys
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, List

if sys.version_info >= (3, 11):
    from typing import Self
else:
    from typing_extensions import Self


@dataclass(slots=True)
class OperationCounters:
    allocations: int = 0
    out_of_memory: int = 0
    frees: int = 0
    rejected_frees: int = 0
    defragmentations: int = 0
    bytes_relocated: int = 0
    resets: int = 0

    def clear(self) -> None:
        for name in self.__slots__:
            setattr(self, name, 0)

    def snapshot(self) -> Dict[str, int]:
        return asdict(self)


class PerformanceCounter:
    """Wall-clock timer for a run of simulator operations.

    ``lap()`` records the time since the previous lap (or since ``start()``),
    so a replay loop can time each operation without nesting timers.
    """
    __slots__ = ('_start_ns', '_last_lap_ns', '_elapsed_ns', '_active', '_laps')

    def __init__(self):
        self._start_ns = 0
        self._last_lap_ns = 0
        self._elapsed_ns = 0
        self._active = False
        self._laps: List[int] = []

    def start(self) -> None:
        self._start_ns = time.perf_counter_ns()
        self._last_lap_ns = self._start_ns
        self._laps.clear()
        self._active = True

    def lap(self) -> int:
        if not self._active:
            return 0
        now = time.perf_counter_ns()
        duration = now - self._last_lap_ns
        self._last_lap_ns = now
        self._laps.append(duration)
        return duration

    def stop(self) -> int:
        if self._active:
            self._elapsed_ns = time.perf_counter_ns() - self._start_ns
            self._active = False
        return self._elapsed_ns

    @property
    def elapsed_ns(self) -> int:
        if self._active:
            return time.perf_counter_ns() - self._start_ns
        return self._elapsed_ns

    @property
    def laps(self) -> List[int]:
        return self._laps.copy()

    @property
    def mean_lap_ns(self) -> float:
        return sum(self._laps) / len(self._laps) if self._laps else 0.0

    def __enter__(self) -> Self:
        self.start()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.stop()
