from __future__ import annotations

from typing import Optional

from .types.aliases import AllocationID


class MemSimError(Exception):
    def __init__(self, message: str, **kwargs):
        super().__init__(message)
        self.message = message
        self.context = kwargs


class AllocationFailure(MemSimError):
    def __init__(self, message: str, requested_size: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.requested_size = requested_size


class OutOfMemoryError(AllocationFailure):
    def __init__(self, message: str, requested_size: Optional[int] = None,
                 largest_free_block: int = 0, **kwargs):
        super().__init__(message, requested_size=requested_size, **kwargs)
        self.largest_free_block = largest_free_block


class UnknownAllocationError(MemSimError):
    def __init__(self, message: str, allocation_id: Optional[AllocationID] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.allocation_id = allocation_id


class InvariantViolationError(MemSimError):
    pass


class InvalidRequestError(MemSimError, ValueError):
    pass


class ConfigurationError(MemSimError, ValueError):
    pass


class TraceError(MemSimError):
    def __init__(self, message: str, line_number: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.line_number = line_number


__all__ = [
    'MemSimError',
    'AllocationFailure',
    'OutOfMemoryError',
    'UnknownAllocationError',
    'InvariantViolationError',
    'InvalidRequestError',
    'ConfigurationError',
    'TraceError',
]
