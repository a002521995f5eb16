"""Services for the sequence kernel."""

from sequence_kernel.services.allocator import SegmentAllocator
from sequence_kernel.services.allocator_registry import AllocatorRegistry
from sequence_kernel.services.sequence_store import SequenceStore, SqlSequenceStore

__all__ = [
    "AllocatorRegistry",
    "SegmentAllocator",
    "SequenceStore",
    "SqlSequenceStore",
]
