"""Database layer - engine and sequence table schema."""

from sequence_kernel.db.engine import get_engine, init_engine_from_url, reset_engine
from sequence_kernel.db.schema import (
    SequenceTableConfig,
    build_sequence_table,
    create_sequence_table,
    drop_sequence_table,
    provision_sequence,
    table_config,
)

__all__ = [
    "get_engine",
    "init_engine_from_url",
    "reset_engine",
    "SequenceTableConfig",
    "build_sequence_table",
    "create_sequence_table",
    "drop_sequence_table",
    "provision_sequence",
    "table_config",
]
