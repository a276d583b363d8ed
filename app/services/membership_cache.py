import threading
import time
from typing import Callable, Dict, Optional, Tuple

Memberships = Dict[int, str]


class MembershipCache:
    """Per-user ``{org_id: role}`` lookups kept for ``ttl_seconds``.

    One instance lives on ``app.state`` and reaches endpoints through
    ``get_membership_cache``. Entries are dropped on logout and whenever a
    membership of that user changes.
    """

    def __init__(self, ttl_seconds: float = 600, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[int, Tuple[float, Memberships]] = {}
        self._lock = threading.Lock()

    def get(self, user_id: int) -> Optional[Memberships]:
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                return None
            stored_at, memberships = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[user_id]
                return None
            return dict(memberships)

    def set(self, user_id: int, memberships: Memberships) -> None:
        with self._lock:
            self._entries[user_id] = (self._clock(), dict(memberships))

    def invalidate(self, user_id: int) -> None:
        with self._lock:
            self._entries.pop(user_id, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
