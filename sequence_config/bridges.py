"""
Bridges from configuration to kernel objects.

Responsibility:
    Turns a validated ``SequenceKernelConfig`` into the kernel's runtime
    objects: an engine, a ``SqlSequenceStore`` and an ``AllocatorRegistry``.
    This is the composition root; the kernel never imports from
    ``sequence_config``.
"""

from __future__ import annotations

from sqlalchemy import MetaData
from sqlalchemy.engine import Engine

from sequence_config.schema import SequenceKernelConfig
from sequence_kernel.db.engine import get_engine, init_engine_from_url
from sequence_kernel.db.schema import (
    build_sequence_table,
    create_sequence_table,
    provision_sequence,
)
from sequence_kernel.exceptions import SequenceAlreadyExistsError
from sequence_kernel.logging_config import get_logger
from sequence_kernel.services.allocator_registry import AllocatorRegistry
from sequence_kernel.services.sequence_store import SqlSequenceStore

logger = get_logger("config.bridges")


def build_engine(config: SequenceKernelConfig) -> Engine:
    """Initialize the kernel engine from the ``database`` section."""
    db = config.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
    )


def build_store(
    config: SequenceKernelConfig,
    engine: Engine | None = None,
) -> SqlSequenceStore:
    """Build a SqlSequenceStore over the configured table layout."""
    engine = engine or get_engine()
    table = build_sequence_table(MetaData(), config.table)
    return SqlSequenceStore(
        engine,
        table,
        statement_timeout_ms=config.database.statement_timeout_ms,
    )


def build_registry(
    config: SequenceKernelConfig,
    engine: Engine | None = None,
    *,
    create_table: bool = False,
) -> AllocatorRegistry:
    """
    Build the allocator registry for a process.

    Every configured key name is registered eagerly.  Keys marked
    ``provision: true`` get their row inserted when missing; an existing row
    is left untouched.

    Args:
        config: Validated configuration.
        engine: Engine the store should use; defaults to the engine
            initialized by ``build_engine``.
        create_table: Create the sequence table first if it is missing.
    """
    engine = engine or get_engine()
    store = build_store(config, engine)
    if create_table:
        create_sequence_table(engine, store.table)

    for seq in config.sequences:
        if not seq.provision:
            continue
        try:
            provision_sequence(
                engine,
                store.table,
                seq.key_name,
                step=seq.step,
                initial_value=seq.initial_value,
            )
        except SequenceAlreadyExistsError:
            logger.debug("sequence_already_provisioned", extra={"key_name": seq.key_name})

    registry = AllocatorRegistry(
        store,
        max_retries=config.allocator.max_retries,
        retry_policy=config.allocator.retry_policy,
    )
    for seq in config.sequences:
        registry.register(seq.key_name)
    return registry
