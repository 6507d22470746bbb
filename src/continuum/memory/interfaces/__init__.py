"""
Memory Interfaces Package

The persistence contract the consolidation engine depends on.
"""

from continuum.memory.interfaces.memory_store import MemoryStore

__all__ = ["MemoryStore"]
