"""
Pure domain layer.

Segment arithmetic and DTOs with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O
"""

from sequence_kernel.domain.dtos import RetryBudgetPolicy, SequenceRow
from sequence_kernel.domain.segment import EXHAUSTED, AtomicCounter, Segment

__all__ = [
    "EXHAUSTED",
    "AtomicCounter",
    "RetryBudgetPolicy",
    "Segment",
    "SequenceRow",
]
