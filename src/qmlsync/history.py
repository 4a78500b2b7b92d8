"""
Undo/redo history of whole-document text snapshots.

Callers decide what is undo-worthy (a finished drag, not every mouse-move
frame) and restore snapshots through SyncArbitrator.restore().
"""

from __future__ import annotations

from .config import get_config


class History:
    """Linear snapshot history with a capacity bound."""

    def __init__(self, capacity: int | None = None):
        if capacity is None:
            capacity = get_config().history.capacity
        if capacity < 1:
            raise ValueError(f"History capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._entries: list[str] = []
        self._index = -1

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def index(self) -> int:
        """Position of the current snapshot, -1 when empty."""
        return self._index

    @property
    def current(self) -> str | None:
        if self._index < 0:
            return None
        return self._entries[self._index]

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._entries) - 1

    def record(self, text: str) -> None:
        """Append a snapshot, discarding any redo branch."""
        del self._entries[self._index + 1:]
        self._entries.append(text)
        self._index += 1
        overflow = len(self._entries) - self.capacity
        if overflow > 0:
            del self._entries[:overflow]
            self._index -= overflow

    def undo(self) -> str | None:
        """Step back. Returns the snapshot to restore, or None at the oldest entry."""
        if not self.can_undo:
            return None
        self._index -= 1
        return self._entries[self._index]

    def redo(self) -> str | None:
        """Step forward. Returns the snapshot to restore, or None at the newest entry."""
        if not self.can_redo:
            return None
        self._index += 1
        return self._entries[self._index]

    def clear(self) -> None:
        self._entries.clear()
        self._index = -1
