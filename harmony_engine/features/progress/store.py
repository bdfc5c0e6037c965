import threading
from typing import Dict, Iterable, List, Optional

from harmony_engine.models.progress import CompletionEvent


class CompletionStore:
    """
    Append-only completion events, partitioned by user.

    In-memory; the collaborator that owns persistence replays its rows
    through `append` on startup.
    """

    def __init__(self) -> None:
        self._events: Dict[str, List[CompletionEvent]] = {}
        self._idempotency_keys: Dict[str, set] = {}
        self._lock = threading.Lock()

    def append(self, event: CompletionEvent, idempotency_key: Optional[str] = None) -> bool:
        """
        Append event with idempotency guarantee.

        Returns:
            True if event was appended, False if the key was already seen
        """
        key = idempotency_key or event.key
        with self._lock:
            seen = self._idempotency_keys.setdefault(event.user_id, set())
            if key in seen:
                return False
            seen.add(key)
            self._events.setdefault(event.user_id, []).append(event)
            return True

    def extend(self, events: Iterable[CompletionEvent]) -> int:
        """Append many events; returns how many were new."""
        return sum(1 for event in events if self.append(event))

    def events_for(self, user_id: str) -> List[CompletionEvent]:
        """Copy of the user's events in arrival order."""
        with self._lock:
            return list(self._events.get(user_id, []))

    def count(self, user_id: Optional[str] = None) -> int:
        with self._lock:
            if user_id is not None:
                return len(self._events.get(user_id, []))
            return sum(len(rows) for rows in self._events.values())

    def clear_user(self, user_id: str) -> int:
        """Drop every event of one user (journey reset). Returns the count removed."""
        with self._lock:
            self._idempotency_keys.pop(user_id, None)
            return len(self._events.pop(user_id, []))

    def clear(self) -> None:
        """FOR TESTING ONLY."""
        with self._lock:
            self._events.clear()
            self._idempotency_keys.clear()
