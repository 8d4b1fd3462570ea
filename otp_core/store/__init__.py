"""
Key/Value Store Module
======================
Atomic store primitives with in-memory and Redis backends.
"""

from .models import CounterState
from .base import KeyValueStore
from .in_memory import InMemoryStore
from .redis_store import RedisStore, GET_AND_DELETE_SCRIPT, INCREMENT_SCRIPT

__all__ = [
    # Models
    "CounterState",
    # Stores
    "KeyValueStore",
    "InMemoryStore",
    "RedisStore",
    # Scripts
    "GET_AND_DELETE_SCRIPT",
    "INCREMENT_SCRIPT",
]
