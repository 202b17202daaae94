"""
Analysis session storage.

A session is written once at submission and read by the analysis page
and the chat endpoint. Session ids double as capability tokens, so they
come from `secrets`.
"""

import logging
import secrets
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from bazichart.bazi import Chart
from bazichart.errors import NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BirthInfo:
    gender: str
    birth_date: str  # raw client string
    birth_place: str
    nickname: Optional[str] = None

    def to_dict(self):
        return {
            "nickname": self.nickname,
            "gender": self.gender,
            "birthDate": self.birth_date,
            "birthPlace": self.birth_place,
        }


@dataclass(frozen=True)
class AnalysisSession:
    id: str
    birth_info: BirthInfo
    chart: Chart
    created_at: datetime


class SessionStore:
    """Create-once / read-many store. Implementations must make create and get atomic."""

    def create(self, birth_info: BirthInfo, chart: Chart) -> str:
        raise NotImplementedError

    def get(self, session_id: str) -> AnalysisSession:
        """Return the session or raise NotFoundError; never blocks on pending writes."""
        raise NotImplementedError


class InMemorySessionStore(SessionStore):
    """
    Process-local store bounded by age and size.

    Sessions older than ttl_seconds are treated as missing and purged on
    the next write; past max_entries the oldest insertion is evicted.
    """

    def __init__(self, ttl_seconds: Optional[float] = 24 * 3600,
                 max_entries: Optional[int] = 10_000,
                 clock: Callable[[], float] = time.monotonic):
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        # id → (inserted_at, session), in insertion order
        self._sessions: "OrderedDict[str, tuple[float, AnalysisSession]]" = OrderedDict()

    def create(self, birth_info: BirthInfo, chart: Chart) -> str:
        now = self._clock()
        with self._lock:
            session_id = secrets.token_urlsafe(16)
            while session_id in self._sessions:
                session_id = secrets.token_urlsafe(16)
            self._sessions[session_id] = (now, AnalysisSession(
                id=session_id,
                birth_info=birth_info,
                chart=chart,
                created_at=datetime.now(timezone.utc),
            ))
            self._evict(now)
        logger.info("Created analysis session %s…", session_id[:6])
        return session_id

    def get(self, session_id: str) -> AnalysisSession:
        with self._lock:
            entry = self._sessions.get(session_id)
        if entry is None or self._expired(entry[0], self._clock()):
            raise NotFoundError("Analysis not found")
        return entry[1]

    def __len__(self):
        now = self._clock()
        with self._lock:
            return sum(1 for inserted, _ in self._sessions.values()
                       if not self._expired(inserted, now))

    def _expired(self, inserted_at: float, now: float) -> bool:
        return self.ttl_seconds is not None and now - inserted_at >= self.ttl_seconds

    def _evict(self, now: float) -> None:
        # Caller holds the lock. Oldest entries sit at the front.
        while self._sessions:
            oldest_id, (inserted, _) = next(iter(self._sessions.items()))
            over_capacity = self.max_entries is not None and len(self._sessions) > self.max_entries
            if not (over_capacity or self._expired(inserted, now)):
                break
            del self._sessions[oldest_id]
            logger.debug("Evicted analysis session %s…", oldest_id[:6])
