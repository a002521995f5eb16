"""
Segment -- a claimed range of primary keys with an atomic cursor.

Responsibility:
    Dispenses the values of one claimed range ``[low, high]`` exactly once
    each, safely under any number of concurrent callers.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Used by SegmentAllocator as its
    fast path; never talks to the store.

Invariants enforced:
    - ``low <= cursor`` at all times.
    - Once the cursor has passed ``high`` the segment is permanently
      exhausted: every later ``next()`` returns ``EXHAUSTED``.
    - The range is fixed at construction; only the cursor moves.

Failure modes:
    None.  Exhaustion is a normal signal (``EXHAUSTED``), not an error.
"""

from __future__ import annotations

import threading
from typing import Final


class _Exhausted:
    """Sentinel type returned by Segment.next() once the range is used up."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "EXHAUSTED"

    def __bool__(self) -> bool:
        return False


EXHAUSTED: Final = _Exhausted()


class AtomicCounter:
    """
    Integer with an atomic fetch-and-add.

    Python exposes no user-level hardware atomics, so the primitive is a
    private lock held only for the read-modify-write of one integer.  It
    never wraps I/O and is never held while another lock is acquired.
    """

    __slots__ = ("_value", "_lock")

    def __init__(self, initial: int = 0):
        self._value = initial
        self._lock = threading.Lock()

    def fetch_and_add(self, delta: int = 1) -> int:
        """Add ``delta`` and return the value from before the addition."""
        with self._lock:
            previous = self._value
            self._value = previous + delta
            return previous

    def load(self) -> int:
        with self._lock:
            return self._value


class Segment:
    """
    Immutable range ``[low, high]`` plus a shared cursor.

    Contract:
        ``next()`` hands out ``low, low + 1, ..., high`` (each exactly once
        across all threads), then ``EXHAUSTED`` forever.

    Guarantees:
        - One fetch-and-add per call: two callers can never observe the same
          cursor value, so they can never receive the same key.
        - The cursor may overshoot ``high``; every overshoot reports
          ``EXHAUSTED``.
    """

    __slots__ = ("_low", "_high", "_cursor")

    def __init__(self, low: int, high: int):
        self._low = low
        self._high = high
        self._cursor = AtomicCounter(low)

    @classmethod
    def invalid(cls) -> Segment:
        """A segment whose very first next() is exhausted.

        Seeds an allocator before its first reload so get() needs no
        None check.
        """
        return cls(0, -1)

    @property
    def low(self) -> int:
        return self._low

    @property
    def high(self) -> int:
        return self._high

    @property
    def size(self) -> int:
        return max(self._high - self._low + 1, 0)

    @property
    def remaining(self) -> int:
        return max(self._high - self._cursor.load() + 1, 0)

    @property
    def is_exhausted(self) -> bool:
        return self._cursor.load() > self._high

    def next(self) -> int | _Exhausted:
        value = self._cursor.fetch_and_add(1)
        if value > self._high:
            return EXHAUSTED
        return value

    def __repr__(self) -> str:
        return f"Segment(low={self._low}, high={self._high}, remaining={self.remaining})"
