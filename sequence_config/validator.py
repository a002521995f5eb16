"""
Configuration Validator (``sequence_config.validator``).

Validates a parsed ``SequenceKernelConfig`` before anything is built from
it.  Errors block ``get_active_config()``; warnings are logged.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from sequence_config.schema import SequenceKernelConfig

# Table and column names are interpolated into DDL constraint names
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _is_postgres_url(url: str) -> bool:
    # postgresql://..., postgresql+psycopg2://...
    return url.split(":", 1)[0].split("+", 1)[0] in ("postgresql", "postgres")


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: SequenceKernelConfig) -> ConfigValidationResult:
    """Validate a configuration; never raises."""
    result = ConfigValidationResult()

    if not config.database.url:
        result.add_error("database.url must not be empty")
    if config.database.statement_timeout_ms is not None and config.database.statement_timeout_ms <= 0:
        result.add_error("database.statement_timeout_ms must be positive")
    if config.database.statement_timeout_ms is not None and not _is_postgres_url(config.database.url):
        result.add_warning(
            "database.statement_timeout_ms is only enforced on PostgreSQL; "
            f"it is ignored for {config.database.url!r}"
        )

    table = config.table
    names = {
        "table.name": table.table_name,
        "table.key_column": table.key_column,
        "table.value_column": table.value_column,
        "table.step_column": table.step_column,
    }
    if table.modified_column is not None:
        names["table.modified_column"] = table.modified_column
    for label, name in names.items():
        if not _IDENTIFIER.match(name or ""):
            result.add_error(f"{label} is not a valid identifier: {name!r}")
    column_names = [n for label, n in names.items() if label != "table.name"]
    if len(set(column_names)) != len(column_names):
        result.add_error(f"table columns must be distinct: {column_names}")

    if config.allocator.max_retries < 0:
        result.add_error("allocator.max_retries must be >= 0")

    seen: set[str] = set()
    for seq in config.sequences:
        if not seq.key_name:
            result.add_error("sequence key must not be empty")
        if len(seq.key_name) > table.key_length:
            result.add_error(
                f"sequence key {seq.key_name!r} longer than {table.key_length} characters"
            )
        if seq.key_name in seen:
            result.add_error(f"duplicate sequence key: {seq.key_name!r}")
        seen.add(seq.key_name)
        if seq.step <= 0:
            result.add_error(f"sequence {seq.key_name!r}: step must be positive")
        if seq.initial_value < 0:
            result.add_warning(f"sequence {seq.key_name!r}: negative initial_value")

    return result
