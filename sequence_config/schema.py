"""
SequenceKernelConfig schema.

The typed form of a sequence configuration file. YAML is parsed into these
types by the loader, checked by the validator, and turned into a store and
an allocator registry by the bridges.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sequence_kernel.db.schema import SequenceTableConfig
from sequence_kernel.domain.dtos import RetryBudgetPolicy

__all__ = [
    "AllocatorConfig",
    "DatabaseConfig",
    "SequenceKernelConfig",
    "SequenceKeyConfig",
    "SequenceTableConfig",
]


# ---------------------------------------------------------------------------
# Connection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings. Credentials are part of ``url``."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    statement_timeout_ms: int | None = None


# ---------------------------------------------------------------------------
# Allocation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AllocatorConfig:
    """Reload retry behaviour shared by every allocator in a registry."""

    max_retries: int = 10
    retry_policy: RetryBudgetPolicy = RetryBudgetPolicy.RETRY_FOREVER


@dataclass(frozen=True)
class SequenceKeyConfig:
    """A key name the registry knows about up front."""

    key_name: str
    step: int = 100
    initial_value: int = 0
    # Insert the row at startup when it is missing
    provision: bool = False


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SequenceKernelConfig:
    """Complete configuration for one process."""

    database: DatabaseConfig
    table: SequenceTableConfig = field(default_factory=SequenceTableConfig)
    allocator: AllocatorConfig = field(default_factory=AllocatorConfig)
    sequences: tuple[SequenceKeyConfig, ...] = ()

    def sequence(self, key_name: str) -> SequenceKeyConfig | None:
        for seq in self.sequences:
            if seq.key_name == key_name:
                return seq
        return None
