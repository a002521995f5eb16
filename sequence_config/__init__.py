"""
sequence_config -- single public entrypoint for allocator configuration.

Responsibility:
    Provides the way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a validated, frozen
    ``SequenceKernelConfig``; ``bridges.build_registry`` turns it into an
    ``AllocatorRegistry``.

Architecture position:
    Configuration -- sits above ``sequence_kernel``.  The kernel MUST NEVER
    import from ``sequence_config``.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``KeyError`` -- a required key (``database.url``) is missing.
    - ``ValueError`` -- validation failed.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``SEQUENCE_CONFIG_TRACE`` log entry naming the file, the table and the
    configured key names.
"""

from __future__ import annotations

import logging
from pathlib import Path

from sequence_config.loader import load_config
from sequence_config.schema import SequenceKernelConfig
from sequence_config.validator import validate_configuration

_logger = logging.getLogger("sequence_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | None = None) -> SequenceKernelConfig:
    """Load, validate and return the active configuration.

    Args:
        config_path: YAML file to load. Defaults to
            ``sequence_config/sets/default.yaml``.

    Raises:
        FileNotFoundError: If the file does not exist.
        KeyError: If a required key is missing.
        ValueError: If validation fails.
    """
    path = config_path or _DEFAULT_CONFIG_PATH
    config = load_config(path)

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning("sequence_config_warning", extra={"warning": warning})

    _logger.info(
        "SEQUENCE_CONFIG_TRACE",
        extra={
            "trace_type": "SEQUENCE_CONFIG_TRACE",
            "config_path": str(path),
            "table": config.table.table_name,
            "max_retries": config.allocator.max_retries,
            "retry_policy": config.allocator.retry_policy.value,
            "sequence_keys": [s.key_name for s in config.sequences],
        },
    )
    return config


__all__ = ["SequenceKernelConfig", "get_active_config"]
