from typing import NewType, TypeAlias

AllocationID = NewType('AllocationID', int)
ByteSize = NewType('ByteSize', int)
Offset = NewType('Offset', int)

Timestamp: TypeAlias = float

__all__ = [
    'AllocationID',
    'ByteSize',
    'Offset',
    'Timestamp',
]
