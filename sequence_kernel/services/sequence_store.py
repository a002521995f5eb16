"""
SequenceStore -- the backing-store contract used by segment reloads.

Responsibility:
    Reads a sequence row (high-water mark + step) and advances the
    high-water mark with a conditional UPDATE.  ``SqlSequenceStore`` is the
    SQLAlchemy implementation; tests use an in-memory double that honours
    the same contract.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called only by SegmentAllocator while it holds its reload lock.

Invariants enforced:
    - The UPDATE is conditional on the old value
      (``WHERE k = :key AND v = :expected``); it can never move a sequence
      backwards or skip over a value another process already committed.
    - A zero-row UPDATE is returned as ``0``, never raised: it is the
      contention signal the allocator retries on.
    - Each call runs in its own short transaction; no lock is held on the
      row between the read and the conditional update.

Failure modes:
    - SequenceNotFoundError: no row for the key name.
    - StoreUnavailableError: connection, pool or statement-timeout faults.
      The original SQLAlchemy exception is chained as ``__cause__``.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sqlalchemy import MetaData, Table, select, text, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from sequence_kernel.db.schema import (
    SequenceTableConfig,
    build_sequence_table,
    table_config,
)
from sequence_kernel.domain.dtos import SequenceRow
from sequence_kernel.exceptions import SequenceNotFoundError, StoreUnavailableError
from sequence_kernel.logging_config import get_logger

logger = get_logger("services.sequence_store")


@runtime_checkable
class SequenceStore(Protocol):
    """
    Protocol for the store holding one row per key name.

    Implementors must make ``compare_and_set_value`` atomic: equivalent to
    ``UPDATE ... SET value = new WHERE key = :key AND value = :expected``.
    """

    def read_sequence(self, key_name: str) -> SequenceRow: ...

    def compare_and_set_value(
        self, key_name: str, expected_old_value: int, new_value: int
    ) -> int: ...


class SqlSequenceStore:
    """
    SQLAlchemy Core implementation of SequenceStore.

    Contract:
        Works against any SQLAlchemy dialect with a plain sequence table.
        Table and column names come from the ``Table`` passed in (see
        ``build_sequence_table``).

    Guarantees:
        - read_sequence returns the committed row.
        - compare_and_set_value returns the driver rowcount (0 or 1).
        - With ``statement_timeout_ms`` set on PostgreSQL, no statement can
          block longer than that; the cancellation surfaces as
          StoreUnavailableError.  Other dialects ignore the setting and a
          ``statement_timeout_not_supported`` warning is logged at construction.

    Non-goals:
        - Does NOT create the table or rows (see db.schema).
        - Does NOT retry; retry policy belongs to the allocator.
    """

    def __init__(
        self,
        engine: Engine,
        table: Table | None = None,
        *,
        statement_timeout_ms: int | None = None,
    ):
        if table is None:
            table = build_sequence_table(MetaData(), SequenceTableConfig())
        self._engine = engine
        self._table = table
        self._config = table_config(table)
        self._statement_timeout_ms = statement_timeout_ms
        if statement_timeout_ms is not None and engine.dialect.name != "postgresql":
            logger.warning(
                "statement_timeout_not_supported",
                extra={
                    "dialect": engine.dialect.name,
                    "statement_timeout_ms": statement_timeout_ms,
                },
            )

    @property
    def table(self) -> Table:
        return self._table

    def read_sequence(self, key_name: str) -> SequenceRow:
        """
        Read the high-water mark and step for ``key_name``.

        Raises:
            SequenceNotFoundError: If no row exists for the key name.
            StoreUnavailableError: On connectivity or transport faults.
        """
        cfg = self._config
        value_col = self._table.c[cfg.value_column]
        step_col = self._table.c[cfg.step_column]
        stmt = select(value_col, step_col).where(
            self._table.c[cfg.key_column] == key_name
        )

        try:
            with self._engine.begin() as conn:
                self._apply_timeout(conn)
                row = conn.execute(stmt).first()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(key_name, "read_sequence", str(exc)) from exc

        if row is None:
            raise SequenceNotFoundError(key_name)

        return SequenceRow(key_name=key_name, value=int(row[0]), step=int(row[1]))

    def compare_and_set_value(
        self, key_name: str, expected_old_value: int, new_value: int
    ) -> int:
        """
        Advance the high-water mark if nobody else has moved it.

        Returns:
            Number of rows updated: 1 on success, 0 when another writer
            advanced the value first.

        Raises:
            StoreUnavailableError: On connectivity or transport faults.
        """
        cfg = self._config
        stmt = (
            update(self._table)
            .where(self._table.c[cfg.key_column] == key_name)
            .where(self._table.c[cfg.value_column] == expected_old_value)
            .values({cfg.value_column: new_value})
        )

        try:
            with self._engine.begin() as conn:
                self._apply_timeout(conn)
                result = conn.execute(stmt)
                rows_affected = result.rowcount
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(
                key_name, "compare_and_set_value", str(exc)
            ) from exc

        logger.debug(
            "sequence_cas_executed",
            extra={
                "key_name": key_name,
                "expected_value": expected_old_value,
                "new_value": new_value,
                "rows_affected": rows_affected,
            },
        )
        return rows_affected

    def _apply_timeout(self, conn: Connection) -> None:
        if self._statement_timeout_ms is None:
            return
        if conn.dialect.name == "postgresql":
            # SET does not take bind parameters
            conn.execute(
                text(f"SET LOCAL statement_timeout = {int(self._statement_timeout_ms)}")
            )
