"""
Continuum - tiered memory consolidation for a personal knowledge archive.

Memories land in a volatile tier and are promoted through five increasingly
durable tiers based on a surprise score, or expire when they fail to earn
promotion before their tier's time-to-live elapses.
"""

__version__ = "0.1.0"
