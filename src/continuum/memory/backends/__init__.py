"""
Memory Store Backends

Implementations of the MemoryStore interface.
"""

from continuum.memory.backends.base import BaseMemoryStore
from continuum.memory.backends.in_memory import InMemoryMemoryStore

__all__ = ["BaseMemoryStore", "InMemoryMemoryStore"]
