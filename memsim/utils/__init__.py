from .counters import OperationCounters, PerformanceCounter

__all__ = [
    "OperationCounters",
    "PerformanceCounter",
]
