"""In-process cache for balance read views, keyed by API path.

The cache lives in one process. Run with a single worker when it is enabled,
otherwise writes on one worker leave other workers serving their own copy
until the entry's TTL runs out.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from functools import lru_cache
from typing import Any, Callable, Optional

from ..core.config import get_settings

_DEFAULT_MAX_ENTRIES = 1024
_DEFAULT_TTL_SECONDS = 30.0


def team_key(team_id: int) -> str:
    return f"teams/{team_id}/sessions"


def player_key(team_id: int, player_id: int) -> str:
    return f"teams/{team_id}/sessions/{player_id}"


def _team_of(key: str) -> Optional[str]:
    parts = key.split("/")
    if len(parts) >= 3 and parts[0] == "teams" and parts[2] == "sessions":
        return parts[1]
    return None


class BalanceViewCache:
    """Thread-safe LRU map from view key to an already-serialized read model.

    Every invalidation bumps the generation of the key's team. Readers take
    :meth:`generation` before touching the database and hand it to
    :meth:`set`; a view read before a concurrent write is then discarded
    instead of being cached. Entries also expire after ``ttl_seconds``.
    """

    def __init__(
        self,
        *,
        max_entries: int = _DEFAULT_MAX_ENTRIES,
        ttl_seconds: float = _DEFAULT_TTL_SECONDS,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.enabled = enabled
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._generations: dict[str, int] = {}
        self._epoch = 0
        self._lock = threading.Lock()

    def _current(self, key: str) -> tuple[int, int]:
        return self._epoch, self._generations.get(_team_of(key) or key, 0)

    def generation(self, key: str) -> tuple[int, int]:
        """Return the current generation for the team that owns ``key``."""

        with self._lock:
            return self._current(key)

    def get(self, key: str) -> Optional[Any]:
        if not self.enabled:
            return None
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                return None
            expires_at, value = item
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: Any, *, generation: Optional[tuple[int, int]] = None) -> bool:
        """Store ``value`` unless the team was invalidated since ``generation``."""

        if not self.enabled or value is None:
            return False
        with self._lock:
            if generation is not None and self._current(key) != generation:
                return False
            self._entries[key] = (self._clock() + self.ttl_seconds, value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
            return True

    def _bump(self, scope: str) -> None:
        self._generations[scope] = self._generations.get(scope, 0) + 1

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._bump(_team_of(key) or key)

    def invalidate_player(self, team_id: int, player_id: int) -> None:
        """Drop the player's view and the team aggregate that includes it."""

        with self._lock:
            self._entries.pop(player_key(team_id, player_id), None)
            self._entries.pop(team_key(team_id), None)
            self._bump(str(team_id))

    def invalidate_team(self, team_id: int) -> None:
        prefix = team_key(team_id)
        with self._lock:
            for key in [k for k in self._entries if k == prefix or k.startswith(prefix + "/")]:
                del self._entries[key]
            self._bump(str(team_id))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._epoch += 1

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


@lru_cache(maxsize=1)
def get_balance_cache() -> BalanceViewCache:
    """Return the process-wide cache, honouring the cache settings."""

    settings = get_settings()
    return BalanceViewCache(
        ttl_seconds=settings.balance_cache_ttl_seconds,
        enabled=settings.balance_cache_enabled,
    )
