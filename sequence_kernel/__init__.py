"""
Sequence Kernel

Segment-based primary-key allocation backed by a relational sequence table:
- Fast path of one atomic fetch-and-add per key, no I/O
- Single coordinated reload per exhausted segment
- Optimistic compare-and-set against the shared high-water mark
- Structured logging and typed errors
"""

__version__ = "0.1.0"
