"""
Memory Tiers Package

Lifecycle rules for the tiered hierarchy.
"""

from continuum.memory.tiers.policy import TierPolicy

__all__ = ["TierPolicy"]
