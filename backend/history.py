"""
Weekly Rhythm - Undo History
Bounded ring buffer of value snapshots, newest first.
"""

from collections import deque
from itertools import count
from typing import Any, Optional, List, Dict

from config import get_history_config
from models import UndoEntry


class ChangeHistory:
    """
    Keeps the prior values of the state collections a mutation replaced.

    Snapshots must be values (deep copies or immutable), never live references.
    Only the most recent ``max_entries`` operations can be undone; there is no redo.
    """

    def __init__(self, max_entries: Optional[int] = None):
        self.max_entries = max_entries or get_history_config().max_entries
        self._entries: deque = deque(maxlen=self.max_entries)
        self._ids = count(1)

    def record(self, message: str, snapshot: Dict[str, Any]) -> UndoEntry:
        entry = UndoEntry(id=next(self._ids), message=message, snapshot=snapshot)
        self._entries.appendleft(entry)
        return entry

    def pop(self, entry_id: Optional[int] = None) -> Optional[UndoEntry]:
        """Remove and return the newest entry, or the one with ``entry_id``."""
        if not self._entries:
            return None
        if entry_id is None:
            return self._entries.popleft()
        for entry in self._entries:
            if entry.id == entry_id:
                self._entries.remove(entry)
                return entry
        return None

    def entries(self) -> List[UndoEntry]:
        return list(self._entries)

    def clear(self):
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
