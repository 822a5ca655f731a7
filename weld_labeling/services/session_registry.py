from __future__ import annotations

import logging
import threading
import time
import uuid
from collections import OrderedDict
from typing import Callable, List, Optional, Tuple

from ..config import DEFAULT_MAX_SESSIONS, DEFAULT_SESSION_TTL_S
from ..core.labeling_session import LabelingSession


class SessionRegistry:
    """Thread-safe map of open labeling sessions.

    Least recently used sessions are evicted once `max_sessions` is exceeded,
    and sessions idle for longer than `idle_ttl_s` expire on the next access.
    A ttl of 0 disables expiry.
    """

    def __init__(self,
                 max_sessions: int = DEFAULT_MAX_SESSIONS,
                 idle_ttl_s: float = DEFAULT_SESSION_TTL_S,
                 clock: Callable[[], float] = time.monotonic):
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.max_sessions = int(max_sessions)
        self.idle_ttl_s = float(idle_ttl_s)
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: "OrderedDict[str, Tuple[LabelingSession, float]]" = OrderedDict()
        self._log = logging.getLogger("weld_labeling.service.SessionRegistry")

    def __len__(self) -> int:
        with self._lock:
            self._prune_expired_locked(self._clock())
            return len(self._sessions)

    def add(self, session: LabelingSession) -> str:
        key = uuid.uuid4().hex
        with self._lock:
            now = self._clock()
            self._prune_expired_locked(now)
            self._sessions[key] = (session, now)
            while len(self._sessions) > self.max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                self._log.info("evicted least recently used session key=%s", evicted)
        return key

    def get(self, key: str) -> Optional[LabelingSession]:
        with self._lock:
            now = self._clock()
            self._prune_expired_locked(now)
            entry = self._sessions.get(key)
            if entry is None:
                return None
            self._sessions[key] = (entry[0], now)
            self._sessions.move_to_end(key)
            return entry[0]

    def pop(self, key: str) -> Optional[LabelingSession]:
        with self._lock:
            entry = self._sessions.pop(key, None)
        return entry[0] if entry is not None else None

    def values(self) -> List[LabelingSession]:
        """Snapshot of the live sessions; safe to iterate while others are added."""
        with self._lock:
            self._prune_expired_locked(self._clock())
            return [s for s, _ in self._sessions.values()]

    def _prune_expired_locked(self, now: float) -> None:
        if self.idle_ttl_s <= 0:
            return
        # entries are kept in last-access order, so expired ones sit at the front
        while self._sessions:
            key, (_, last_seen) = next(iter(self._sessions.items()))
            if now - last_seen <= self.idle_ttl_s:
                break
            del self._sessions[key]
            self._log.info("expired idle session key=%s", key)
