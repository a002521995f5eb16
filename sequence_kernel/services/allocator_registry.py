"""
AllocatorRegistry -- one SegmentAllocator per key name.

Responsibility:
    Owns the mapping key name -> SegmentAllocator for a process.  Creates
    allocators lazily on first use (or eagerly via ``register``) and makes
    sure two callers asking for the same key name always share one
    allocator, and therefore one segment.

Architecture position:
    Kernel > Services.  Built by the composition root
    (``sequence_config.bridges.build_registry``) and injected into callers;
    there is no module-level registry.

Failure modes:
    - AllocatorAlreadyRegisteredError: ``register`` called twice for one key.
    - ValueError: ``register`` given an allocator built for another key.
    - AllocationFailedError: propagated from ``next_value``.
"""

from __future__ import annotations

import threading

from sequence_kernel.domain.dtos import RetryBudgetPolicy
from sequence_kernel.exceptions import AllocatorAlreadyRegisteredError
from sequence_kernel.logging_config import get_logger
from sequence_kernel.services.allocator import SegmentAllocator
from sequence_kernel.services.sequence_store import SequenceStore

logger = get_logger("services.allocator_registry")


class AllocatorRegistry:
    """Thread-safe registry of allocators sharing one store."""

    def __init__(
        self,
        store: SequenceStore,
        *,
        max_retries: int = SegmentAllocator.DEFAULT_MAX_RETRIES,
        retry_policy: RetryBudgetPolicy = RetryBudgetPolicy.RETRY_FOREVER,
    ):
        self._store = store
        self._max_retries = max_retries
        self._retry_policy = retry_policy
        self._allocators: dict[str, SegmentAllocator] = {}
        self._lock = threading.Lock()

    def register(
        self,
        key_name: str,
        allocator: SegmentAllocator | None = None,
    ) -> SegmentAllocator:
        """
        Register an allocator for ``key_name``.

        Without ``allocator`` a new one is built from the registry's store
        and retry settings.

        Raises:
            AllocatorAlreadyRegisteredError: If the key name is registered.
            ValueError: If ``allocator`` serves a different key name.
        """
        if allocator is not None and allocator.key_name != key_name:
            raise ValueError(
                f"allocator for {allocator.key_name!r} cannot be registered "
                f"under {key_name!r}"
            )
        with self._lock:
            if key_name in self._allocators:
                raise AllocatorAlreadyRegisteredError(key_name)
            allocator = allocator or self._build(key_name)
            self._allocators[key_name] = allocator
        logger.info("allocator_registered", extra={"key_name": key_name})
        return allocator

    def allocator_for(self, key_name: str) -> SegmentAllocator:
        """Return the allocator for ``key_name``, creating it on first use."""
        allocator = self._allocators.get(key_name)
        if allocator is not None:
            return allocator

        with self._lock:
            allocator = self._allocators.get(key_name)
            if allocator is None:
                allocator = self._build(key_name)
                self._allocators[key_name] = allocator
                logger.info("allocator_registered", extra={"key_name": key_name})
            return allocator

    def next_value(self, key_name: str) -> int:
        """Allocate the next primary key for ``key_name``."""
        return self.allocator_for(key_name).get()

    def key_names(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._allocators)

    def __contains__(self, key_name: object) -> bool:
        return key_name in self._allocators

    def __len__(self) -> int:
        return len(self._allocators)

    def _build(self, key_name: str) -> SegmentAllocator:
        return SegmentAllocator(
            key_name,
            self._store,
            max_retries=self._max_retries,
            retry_policy=self._retry_policy,
        )
