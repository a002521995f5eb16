"""
Module: sequence_kernel.db.schema
Responsibility: Describes the sequence table (one row per key name) and
    provides the provisioning helpers that create the table and seed rows.
Architecture position: Kernel > DB.  Imported by services/sequence_store.py
    and by sequence_config bridges.  MUST NOT import from services/.

The default layout matches the classic ``pk_sequence`` table:

    CREATE TABLE pk_sequence (
      id          INTEGER PRIMARY KEY AUTOINCREMENT,
      k           VARCHAR(64) NOT NULL UNIQUE,
      v           BIGINT NOT NULL,
      step        INTEGER NOT NULL CHECK (step >= 0),
      modify_time TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
    )

Table and column names are configurable through SequenceTableConfig so the
allocator can be pointed at an existing table.

Failure modes:
    - SequenceAlreadyExistsError when provisioning a key name twice.
    - StoreUnavailableError when the database cannot be reached.
    - ValueError for a non-positive step.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    func,
    insert,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from sequence_kernel.exceptions import (
    SequenceAlreadyExistsError,
    StoreUnavailableError,
)
from sequence_kernel.logging_config import get_logger

logger = get_logger("db.schema")


@dataclass(frozen=True)
class SequenceTableConfig:
    """Names of the sequence table and its columns."""

    table_name: str = "pk_sequence"
    key_column: str = "k"
    value_column: str = "v"
    step_column: str = "step"
    # None disables the last-modified column
    modified_column: str | None = "modify_time"
    key_length: int = 64


def build_sequence_table(
    metadata: MetaData,
    config: SequenceTableConfig | None = None,
) -> Table:
    """
    Build the SQLAlchemy Core ``Table`` for the sequence table.

    The returned table's columns keep the configured database names; the
    config is stored in ``table.info`` and recovered with ``table_config()``.
    """
    config = config or SequenceTableConfig()
    columns = [
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column(config.key_column, String(config.key_length), nullable=False, unique=True),
        Column(config.value_column, BigInteger, nullable=False, default=0),
        Column(config.step_column, Integer, nullable=False),
    ]
    if config.modified_column:
        columns.append(
            Column(
                config.modified_column,
                DateTime(timezone=True),
                nullable=False,
                server_default=func.now(),
                onupdate=func.now(),
            )
        )
    table = Table(
        config.table_name,
        metadata,
        *columns,
        CheckConstraint(
            f"{config.step_column} >= 0",
            name=f"ck_{config.table_name}_step_unsigned",
        ),
    )
    table.info["sequence_table_config"] = config
    return table


def table_config(table: Table) -> SequenceTableConfig:
    """Return the SequenceTableConfig a table was built from."""
    return table.info.get("sequence_table_config", SequenceTableConfig())


def create_sequence_table(engine: Engine, table: Table) -> None:
    """Create the sequence table if it does not exist."""
    table.create(engine, checkfirst=True)
    logger.info("sequence_table_created", extra={"table": table.name})


def drop_sequence_table(engine: Engine, table: Table) -> None:
    """Drop the sequence table. Use with caution - primarily for testing."""
    table.drop(engine, checkfirst=True)


def provision_sequence(
    engine: Engine,
    table: Table,
    key_name: str,
    *,
    step: int,
    initial_value: int = 0,
) -> None:
    """
    Insert the row for a new key name.

    Preconditions:
        - ``step`` is positive.
    Postconditions:
        - The row exists with ``value = initial_value``; the first allocator
          reload claims ``initial_value + 1 .. initial_value + step``.

    Raises:
        ValueError: If ``step`` is not positive.
        SequenceAlreadyExistsError: If the key name already has a row.
        StoreUnavailableError: If the database cannot be reached.
    """
    if step <= 0:
        raise ValueError(f"step must be positive, got {step}")

    config = table_config(table)
    stmt = insert(table).values(
        {
            config.key_column: key_name,
            config.value_column: initial_value,
            config.step_column: step,
        }
    )
    try:
        with engine.begin() as conn:
            conn.execute(stmt)
    except IntegrityError as exc:
        raise SequenceAlreadyExistsError(key_name) from exc
    except SQLAlchemyError as exc:
        raise StoreUnavailableError(key_name, "provision_sequence", str(exc)) from exc

    logger.info(
        "sequence_provisioned",
        extra={"key_name": key_name, "step": step, "initial_value": initial_value},
    )
