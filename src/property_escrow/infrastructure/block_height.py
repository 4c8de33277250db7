"""BlockHeightCounter — manually advanced ordering source.

Stands in for a chain client's block-height query in tests and the
simulation script. Heights only ever move forward.
"""

from __future__ import annotations

import threading


class BlockHeightCounter:
    """Monotonic in-memory block height."""

    def __init__(self, start: int = 0) -> None:
        if start < 0:
            raise ValueError("Block height cannot be negative")
        self._height = start
        self._guard = threading.Lock()

    def current(self) -> int:
        with self._guard:
            return self._height

    def advance(self, blocks: int = 1) -> int:
        """Move forward ``blocks`` and return the new height."""
        if blocks < 0:
            raise ValueError("Block height cannot move backwards")
        with self._guard:
            self._height += blocks
            return self._height

    def set(self, height: int) -> int:
        with self._guard:
            if height < self._height:
                raise ValueError(
                    f"Block height cannot move backwards ({self._height} -> {height})"
                )
            self._height = height
            return self._height
