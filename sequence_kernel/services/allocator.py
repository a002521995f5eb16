"""
SegmentAllocator -- primary keys served from an in-memory segment.

Responsibility:
    Hands out unique, increasing primary keys for one key name.  Keys come
    from the current Segment without touching the database; when the
    segment runs out, exactly one caller claims the next range from the
    store while the others wait.

Architecture position:
    Kernel > Services -- imperative shell.
    Owned by AllocatorRegistry (one allocator per key name); talks to the
    database only through a SequenceStore.

Invariants enforced:
    - Uniqueness: the fast path is a single atomic fetch-and-add on the
      segment cursor, so no two callers receive the same key.
    - Single reload: at most one reload per allocator is in flight.
      Callers that see exhaustion queue on the reload lock and re-check
      the segment after acquiring it (double-check), so one exhaustion
      costs one read + one conditional update, not one per caller.
    - Contiguity: a reload that reads high-water mark ``v`` and step ``s``
      installs ``[v + 1, v + s]`` only after ``v -> v + s`` was committed.
    - No partial state: ``_current`` is replaced with a complete Segment
      or left alone.

Failure modes:
    - AllocationFailedError: the store raised (missing row, connectivity,
      invalid step) or, with RetryBudgetPolicy.FAIL, the reload lost the
      compare-and-set race more than ``max_retries`` times.  The previous,
      exhausted segment stays installed and the next get() reloads again.
    - A store call that hangs blocks every caller of this allocator; bound
      it with the store's statement timeout.

Audit relevance:
    Every reload is logged (``segment_reloaded``) with the claimed range,
    the number of attempts and the duration, which makes the gaps left by
    restarts traceable to a process.
"""

from __future__ import annotations

import threading
import time
from uuid import uuid4

from sequence_kernel.domain.dtos import RetryBudgetPolicy
from sequence_kernel.domain.segment import EXHAUSTED, Segment
from sequence_kernel.exceptions import (
    AllocationFailedError,
    InvalidSequenceRowError,
    RetryBudgetExhaustedError,
    SequenceKernelError,
    StoreContentionError,
)
from sequence_kernel.logging_config import LogContext, get_logger
from sequence_kernel.services.sequence_store import SequenceStore

logger = get_logger("services.allocator")


class SegmentAllocator:
    """
    Allocator for a single key name.

    Contract:
        ``get()`` returns a key never returned before by any allocator
        sharing the same store row, or raises AllocationFailedError.

    Guarantees:
        - Fast path: no lock other than the cursor's fetch-and-add, no I/O.
        - Slow path: serialized per allocator; Store I/O happens only while
          holding the reload lock.

    Non-goals:
        - Does NOT order keys across processes.
        - Does NOT return the unused tail of a segment on shutdown.
    """

    # Contended reload attempts tolerated before the retry policy applies
    DEFAULT_MAX_RETRIES = 10

    def __init__(
        self,
        key_name: str,
        store: SequenceStore,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_policy: RetryBudgetPolicy = RetryBudgetPolicy.RETRY_FOREVER,
    ):
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        self._key_name = key_name
        self._store = store
        self._max_retries = max_retries
        self._retry_policy = RetryBudgetPolicy(retry_policy)
        self._current = Segment.invalid()
        self._reload_lock = threading.Lock()
        self._reload_count = 0
        self._contention_count = 0
        self._allocator_id = uuid4().hex[:12]

    @property
    def key_name(self) -> str:
        return self._key_name

    @property
    def allocator_id(self) -> str:
        """Process-local id tagged on this allocator's reload log records."""
        return self._allocator_id

    @property
    def max_retries(self) -> int:
        return self._max_retries

    @property
    def retry_policy(self) -> RetryBudgetPolicy:
        return self._retry_policy

    @property
    def reload_count(self) -> int:
        """Number of successful reloads."""
        return self._reload_count

    @property
    def contention_count(self) -> int:
        """Number of conditional updates that matched zero rows."""
        return self._contention_count

    def peek_segment(self) -> Segment:
        """Return the installed segment without consuming a key."""
        return self._current

    def get(self) -> int:
        """
        Return the next primary key.

        Raises:
            AllocationFailedError: If the segment is exhausted and a new one
                cannot be claimed from the store.
        """
        value = self._current.next()
        if value is not EXHAUSTED:
            return value

        with self._reload_lock:
            while True:
                # Another caller may have installed a fresh segment while
                # this one waited for the lock.
                value = self._current.next()
                if value is not EXHAUSTED:
                    return value
                self._current = self._reload()

    def _reload(self) -> Segment:
        """
        Claim the next range from the store.  Caller holds the reload lock.

        Reads ``(value, step)``, then moves the high-water mark to
        ``value + step`` only if it is still ``value``.  A lost race re-reads
        and tries again.
        """
        started = time.monotonic()
        attempts = 0

        with LogContext.bind(key_name=self._key_name, allocator_id=self._allocator_id):
            logger.debug("segment_reload_started")
            try:
                while True:
                    attempts += 1
                    row = self._store.read_sequence(self._key_name)
                    if row.step <= 0:
                        raise InvalidSequenceRowError(self._key_name, row.value, row.step)

                    new_value = row.next_high_water_mark
                    rows_affected = self._store.compare_and_set_value(
                        self._key_name, row.value, new_value
                    )
                    if rows_affected != 0:
                        segment = Segment(row.value + 1, new_value)
                        self._reload_count += 1
                        logger.info(
                            "segment_reloaded",
                            extra={
                                "low": segment.low,
                                "high": segment.high,
                                "step": row.step,
                                "attempts": attempts,
                                "duration_ms": round((time.monotonic() - started) * 1000, 3),
                            },
                        )
                        return segment

                    self._contention_count += 1
                    contention = StoreContentionError(self._key_name, row.value, new_value)
                    logger.debug(
                        "sequence_cas_contention",
                        extra={
                            "attempt": attempts,
                            "expected_value": row.value,
                            "new_value": new_value,
                        },
                    )

                    if attempts > self._max_retries:
                        logger.warning(
                            "sequence_reload_retry_budget_exceeded",
                            extra={
                                "attempts": attempts,
                                "max_retries": self._max_retries,
                                "old_value": row.value,
                                "new_value": new_value,
                                "step": row.step,
                                "retry_policy": self._retry_policy.value,
                            },
                        )
                        if self._retry_policy is RetryBudgetPolicy.FAIL:
                            raise RetryBudgetExhaustedError(
                                self._key_name, attempts, self._max_retries
                            ) from contention
            except SequenceKernelError as exc:
                logger.error(
                    "segment_reload_failed",
                    exc_info=True,
                    extra={"attempts": attempts, "error_code": exc.code},
                )
                raise AllocationFailedError(self._key_name, exc) from exc
