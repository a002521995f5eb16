"""
Typed Exception Hierarchy for the Sequence Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the allocator must be able to tell a missing sequence row apart
from a dropped database connection without parsing message strings.

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (key_name, attempts, ...)

Example - RIGHT way:
    try:
        pk = allocator.get()
    except AllocationFailedError as e:
        if isinstance(e.cause, SequenceNotFoundError):
            provision_sequence(engine, table, e.key_name, step=100)
        else:
            log.error(f"Allocation failed: {e.code}")

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from SequenceKernelError:

    SequenceKernelError (base)
    |
    +-- StoreError
    |   +-- SequenceNotFoundError
    |   +-- SequenceAlreadyExistsError
    |   +-- InvalidSequenceRowError
    |   +-- StoreUnavailableError
    |
    +-- ConcurrencyError
    |   +-- StoreContentionError
    |   +-- RetryBudgetExhaustedError
    |
    +-- AllocationFailedError
    |
    +-- RegistryError
        +-- AllocatorAlreadyRegisteredError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|---------------------------------------
Store           | SEQUENCE_NOT_FOUND            | No row for the key name
                | SEQUENCE_ALREADY_EXISTS       | Provisioning an existing key name
                | INVALID_SEQUENCE_ROW          | Row has a non-positive step
                | STORE_UNAVAILABLE             | Connectivity / transport fault
----------------|-------------------------------|---------------------------------------
Concurrency     | STORE_CONTENTION              | Conditional update matched zero rows
                | RETRY_BUDGET_EXHAUSTED        | Reload lost the race too many times
----------------|-------------------------------|---------------------------------------
Allocation      | ALLOCATION_FAILED             | get() could not reload a segment
----------------|-------------------------------|---------------------------------------
Registry        | ALLOCATOR_ALREADY_REGISTERED  | Second allocator for one key name

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Segment exhaustion is NOT an exception. It is the ``EXHAUSTED`` sentinel
   returned by ``Segment.next()`` and never escapes ``SegmentAllocator.get()``.

2. StoreContentionError is never raised out of a successful reload. A
   zero-row conditional update is retried locally; the error type exists so
   that the FAIL retry policy can report the last contended attempt as the
   cause of RetryBudgetExhaustedError.

3. AllocationFailedError always chains the underlying fault (``__cause__``)
   and also exposes it as ``.cause`` for structured logging.

===============================================================================
"""


class SequenceKernelError(Exception):
    """
    Base exception for all sequence kernel errors.

    All subclasses must have a `code` class attribute
    for machine-readable error identification.
    """

    code: str = "SEQUENCE_KERNEL_ERROR"


# Store-related exceptions


class StoreError(SequenceKernelError):
    """Base exception for faults reported by the backing store."""

    code: str = "STORE_ERROR"


class SequenceNotFoundError(StoreError):
    """No sequence row exists for the key name."""

    code: str = "SEQUENCE_NOT_FOUND"

    def __init__(self, key_name: str):
        self.key_name = key_name
        super().__init__(f"Sequence not found: {key_name}")


class SequenceAlreadyExistsError(StoreError):
    """A sequence row already exists for the key name."""

    code: str = "SEQUENCE_ALREADY_EXISTS"

    def __init__(self, key_name: str):
        self.key_name = key_name
        super().__init__(f"Sequence already exists: {key_name}")


class InvalidSequenceRowError(StoreError):
    """The stored row cannot produce a segment."""

    code: str = "INVALID_SEQUENCE_ROW"

    def __init__(self, key_name: str, value: int, step: int):
        self.key_name = key_name
        self.value = value
        self.step = step
        super().__init__(
            f"Invalid sequence row for {key_name}: value={value}, step={step} "
            "(step must be positive)"
        )


class StoreUnavailableError(StoreError):
    """
    The store could not be reached or the statement failed in transport.

    Raised for connection refusals, dropped connections, pool timeouts and
    statement timeouts.
    """

    code: str = "STORE_UNAVAILABLE"

    def __init__(self, key_name: str, operation: str, reason: str):
        self.key_name = key_name
        self.operation = operation
        self.reason = reason
        super().__init__(
            f"Store unavailable during {operation} for {key_name}: {reason}"
        )


# Concurrency-related exceptions


class ConcurrencyError(SequenceKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class StoreContentionError(ConcurrencyError):
    """Conditional update affected zero rows: another writer advanced the value."""

    code: str = "STORE_CONTENTION"

    def __init__(self, key_name: str, expected_value: int, new_value: int):
        self.key_name = key_name
        self.expected_value = expected_value
        self.new_value = new_value
        super().__init__(
            f"Sequence {key_name} was advanced by another writer "
            f"(expected {expected_value}, wanted {new_value})"
        )


class RetryBudgetExhaustedError(ConcurrencyError):
    """Reload lost the compare-and-set race more times than allowed."""

    code: str = "RETRY_BUDGET_EXHAUSTED"

    def __init__(self, key_name: str, attempts: int, max_retries: int):
        self.key_name = key_name
        self.attempts = attempts
        self.max_retries = max_retries
        super().__init__(
            f"Reload for {key_name} failed {attempts} times "
            f"(retry budget {max_retries})"
        )


# Allocation-related exceptions


class AllocationFailedError(SequenceKernelError):
    """
    A primary key could not be allocated.

    The allocator's previous segment is left in place; the next call to
    get() attempts the reload again.
    """

    code: str = "ALLOCATION_FAILED"

    def __init__(self, key_name: str, cause: SequenceKernelError):
        self.key_name = key_name
        self.cause = cause
        self.cause_code = cause.code
        super().__init__(f"Allocation failed for {key_name}: {cause}")


# Registry-related exceptions


class RegistryError(SequenceKernelError):
    """Base exception for allocator registry errors."""

    code: str = "REGISTRY_ERROR"


class AllocatorAlreadyRegisteredError(RegistryError):
    """An allocator is already registered for the key name."""

    code: str = "ALLOCATOR_ALREADY_REGISTERED"

    def __init__(self, key_name: str):
        self.key_name = key_name
        super().__init__(f"Allocator already registered for key: {key_name}")
