"""
Data transfer objects exchanged between the allocator and the store.

All DTOs are frozen dataclasses with no ORM or database dependency.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class SequenceRow:
    """
    Snapshot of one sequence row as read from the store.

    ``value`` is the high-water mark: the last key already claimed by some
    allocator.  ``step`` is how many keys one reload claims.
    """

    key_name: str
    value: int
    step: int

    @property
    def next_high_water_mark(self) -> int:
        return self.value + self.step


class RetryBudgetPolicy(str, Enum):
    """What a reload does once it has lost the compare-and-set race
    more than ``max_retries`` times."""

    RETRY_FOREVER = "retry_forever"
    FAIL = "fail"
