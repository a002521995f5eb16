"""
Configuration Loader (``sequence_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed
``sequence_config.schema`` dataclasses.  Runtime callers go through
``sequence_config.get_active_config()``.

Invariants enforced
-------------------
* Required keys are never defaulted silently: a missing ``database.url``
  raises ``KeyError``.
* Every parsed object is a frozen dataclass from ``schema.py``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Wrongly typed values  -> ``ValueError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from sequence_config.schema import (
    AllocatorConfig,
    DatabaseConfig,
    SequenceKernelConfig,
    SequenceKeyConfig,
    SequenceTableConfig,
)
from sequence_kernel.domain.dtos import RetryBudgetPolicy


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _parse_int(value: Any, name: str) -> int:
    # bool is an int subclass; "true" is never a valid count
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    return value


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    """Parse the ``database`` section."""
    timeout = data.get("statement_timeout_ms")
    return DatabaseConfig(
        url=data["url"],
        echo=bool(data.get("echo", False)),
        pool_size=_parse_int(data.get("pool_size", 20), "database.pool_size"),
        max_overflow=_parse_int(data.get("max_overflow", 10), "database.max_overflow"),
        pool_timeout=_parse_int(data.get("pool_timeout", 30), "database.pool_timeout"),
        pool_recycle=_parse_int(data.get("pool_recycle", 1800), "database.pool_recycle"),
        statement_timeout_ms=(
            _parse_int(timeout, "database.statement_timeout_ms")
            if timeout is not None
            else None
        ),
    )


def parse_table(data: dict[str, Any]) -> SequenceTableConfig:
    """Parse the optional ``table`` section."""
    defaults = SequenceTableConfig()
    return SequenceTableConfig(
        table_name=data.get("name", defaults.table_name),
        key_column=data.get("key_column", defaults.key_column),
        value_column=data.get("value_column", defaults.value_column),
        step_column=data.get("step_column", defaults.step_column),
        modified_column=data.get("modified_column", defaults.modified_column),
        key_length=_parse_int(data.get("key_length", defaults.key_length), "table.key_length"),
    )


def parse_allocator(data: dict[str, Any]) -> AllocatorConfig:
    """Parse the optional ``allocator`` section."""
    policy = data.get("retry_policy", RetryBudgetPolicy.RETRY_FOREVER.value)
    try:
        retry_policy = RetryBudgetPolicy(policy)
    except ValueError:
        allowed = ", ".join(p.value for p in RetryBudgetPolicy)
        raise ValueError(
            f"allocator.retry_policy must be one of {allowed}, got {policy!r}"
        ) from None
    return AllocatorConfig(
        max_retries=_parse_int(data.get("max_retries", 10), "allocator.max_retries"),
        retry_policy=retry_policy,
    )


def parse_sequence(data: dict[str, Any]) -> SequenceKeyConfig:
    """Parse one entry of the ``sequences`` list."""
    return SequenceKeyConfig(
        key_name=data["key"],
        step=_parse_int(data.get("step", 100), f"sequences[{data['key']}].step"),
        initial_value=_parse_int(
            data.get("initial_value", 0), f"sequences[{data['key']}].initial_value"
        ),
        provision=bool(data.get("provision", False)),
    )


def parse_config(data: dict[str, Any]) -> SequenceKernelConfig:
    """
    Parse a whole configuration document.

    Raises:
        KeyError: if ``database`` or ``database.url`` is missing.
        ValueError: if a value has the wrong type.
    """
    return SequenceKernelConfig(
        database=parse_database(data["database"]),
        table=parse_table(data.get("table") or {}),
        allocator=parse_allocator(data.get("allocator") or {}),
        sequences=tuple(parse_sequence(s) for s in data.get("sequences") or ()),
    )


def load_config(path: Path) -> SequenceKernelConfig:
    """Load and parse a YAML configuration file."""
    return parse_config(load_yaml_file(path))
