"""
Marker Matching

Case-insensitive substring detection over configurable word-lists. Matching is
intentionally naive: a marker also matches inside longer words ("new" in
"renewal"). This is a known precision limitation of the heuristic.
"""

from __future__ import annotations

from typing import Iterable, Tuple


class MarkerMatcher:
    """A normalised, immutable set of markers."""

    __slots__ = ("_markers",)

    def __init__(self, markers: Iterable[str]):
        normalized = []
        for marker in markers:
            lowered = marker.strip().lower()
            if lowered and lowered not in normalized:
                normalized.append(lowered)
        self._markers: Tuple[str, ...] = tuple(normalized)

    @property
    def markers(self) -> Tuple[str, ...]:
        return self._markers

    def __len__(self) -> int:
        return len(self._markers)

    def matches(self, text: str) -> Tuple[str, ...]:
        """Return the distinct markers found in ``text``."""
        if not text:
            return ()
        lowered = text.lower()
        return tuple(marker for marker in self._markers if marker in lowered)

    def contains_any(self, text: str) -> bool:
        if not text:
            return False
        lowered = text.lower()
        return any(marker in lowered for marker in self._markers)

    def count(self, text: str) -> int:
        """Count distinct markers present in ``text``."""
        return len(self.matches(text))

    def __repr__(self) -> str:
        return f"MarkerMatcher({len(self._markers)} markers)"
