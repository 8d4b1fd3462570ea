"""
Store Models
============
Result types returned by key/value store primitives.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class CounterState:
    """Outcome of an atomic conditional increment."""
    incremented: bool
    count: int
    ttl_seconds: int  # Seconds until the counter resets
