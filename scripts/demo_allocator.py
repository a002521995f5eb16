#!/usr/bin/env python3
"""
Allocate a handful of primary keys and print them.

Builds an allocator registry from the active configuration (or from
``--database-url``), makes sure the sequence row exists, and prints
``--count`` keys for ``--key``.

Usage:
    python3 scripts/demo_allocator.py
    python3 scripts/demo_allocator.py --key order_id --count 50 --step 10
    python3 scripts/demo_allocator.py --database-url postgresql://u:p@localhost/db
"""

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from sequence_config import get_active_config  # noqa: E402
from sequence_config.bridges import build_engine, build_registry  # noqa: E402
from sequence_config.schema import SequenceKeyConfig  # noqa: E402
from sequence_kernel.db.engine import reset_engine  # noqa: E402
from sequence_kernel.exceptions import AllocationFailedError, SequenceKernelError  # noqa: E402
from sequence_kernel.logging_config import configure_logging  # noqa: E402


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Allocate primary keys from a sequence table.")
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--database-url", default=None, help="Override database.url")
    parser.add_argument("--key", default="user_id", help="Sequence key name (default: user_id)")
    parser.add_argument("--count", type=int, default=20, help="Number of keys to allocate")
    parser.add_argument("--step", type=int, default=100, help="Step used when provisioning")
    parser.add_argument(
        "--no-provision",
        action="store_true",
        help="Do not insert the sequence row when it is missing",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log reloads to stderr")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(level=logging.DEBUG if args.verbose else logging.WARNING)

    config = get_active_config(args.config)
    if args.database_url:
        config = dataclasses.replace(
            config, database=dataclasses.replace(config.database, url=args.database_url)
        )
    if config.sequence(args.key) is None:
        config = dataclasses.replace(
            config,
            sequences=config.sequences
            + (SequenceKeyConfig(key_name=args.key, step=args.step, provision=not args.no_provision),),
        )

    try:
        build_engine(config)
        registry = build_registry(config, create_table=True)
        allocator = registry.allocator_for(args.key)
        for _ in range(args.count):
            print(allocator.get())
    except AllocationFailedError as exc:
        print(f"error: {exc} [{exc.cause_code}]", file=sys.stderr)
        return 1
    except SequenceKernelError as exc:
        print(f"error: {exc} [{exc.code}]", file=sys.stderr)
        return 1
    finally:
        reset_engine()
    return 0


if __name__ == "__main__":
    sys.exit(main())
