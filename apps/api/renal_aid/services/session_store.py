"""In-memory decision-journey session storage with TTL eviction."""
from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

DEFAULT_TTL = timedelta(minutes=15)
DEFAULT_CLEANUP_INTERVAL = timedelta(minutes=5)
INITIAL_STEP = "welcome"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class SessionRecord:
    """Snapshot of one visitor's journey state."""

    id: str
    created_at: datetime
    last_accessed_at: datetime
    expires_at: datetime
    preferences: Dict[str, Any] = field(default_factory=dict)
    values: Dict[str, Any] = field(default_factory=dict)
    questionnaire_answers: List[Dict[str, Any]] = field(default_factory=list)
    chat_history: List[Dict[str, Any]] = field(default_factory=list)
    current_step: str = INITIAL_STEP


@dataclass(slots=True)
class SessionUpdate:
    """Partial update; ``None`` leaves the stored field untouched."""

    preferences: Optional[Dict[str, Any]] = None
    values: Optional[Dict[str, Any]] = None
    questionnaire_answers: Optional[List[Dict[str, Any]]] = None
    chat_history: Optional[List[Dict[str, Any]]] = None
    current_step: Optional[str] = None


class SessionStore:
    """Process-local session registry with lazy and periodic expiry.

    Every operation is synchronous and never awaits, so on a single event loop
    each one runs to completion before any other store call can start. The
    periodic sweep is an owned task; call :meth:`start` (or enter the store as
    an async context manager) to schedule it and :meth:`aclose` to cancel it.
    """

    def __init__(
        self,
        *,
        ttl: timedelta = DEFAULT_TTL,
        cleanup_interval: timedelta = DEFAULT_CLEANUP_INTERVAL,
        clock: Clock = utc_now,
        initial_step: str = INITIAL_STEP,
    ) -> None:
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")
        if cleanup_interval <= timedelta(0):
            raise ValueError("cleanup_interval must be positive")
        self._ttl = ttl
        self._cleanup_interval = cleanup_interval
        self._clock = clock
        self._initial_step = initial_step
        self._sessions: Dict[str, SessionRecord] = {}
        self._sweep_task: asyncio.Task[None] | None = None

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    @property
    def cleanup_interval(self) -> timedelta:
        return self._cleanup_interval

    @property
    def is_sweeping(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def create(self, session_id: str) -> SessionRecord:
        """Register a fresh record, replacing any existing one with the same id."""

        now = self._clock()
        record = SessionRecord(
            id=session_id,
            created_at=now,
            last_accessed_at=now,
            expires_at=now + self._ttl,
            current_step=self._initial_step,
        )
        self._sessions[session_id] = record
        return record

    def get(self, session_id: str) -> Optional[SessionRecord]:
        """Return the live record without renewing it."""

        return self._live(session_id, self._clock())

    def touch(self, session_id: str) -> bool:
        now = self._clock()
        record = self._live(session_id, now)
        if record is None:
            return False
        self._sessions[session_id] = replace(record, last_accessed_at=now, expires_at=now + self._ttl)
        return True

    def update(self, session_id: str, changes: SessionUpdate) -> Optional[SessionRecord]:
        """Merge ``changes`` into the live record and renew its expiry.

        ``preferences`` and ``values`` merge key by key. The list fields and
        ``current_step`` are replaced wholesale when supplied.
        """

        now = self._clock()
        record = self._live(session_id, now)
        if record is None:
            return None

        updated = replace(
            record,
            preferences={**record.preferences, **(changes.preferences or {})},
            values={**record.values, **(changes.values or {})},
            questionnaire_answers=(
                list(changes.questionnaire_answers)
                if changes.questionnaire_answers is not None
                else record.questionnaire_answers
            ),
            chat_history=(
                list(changes.chat_history) if changes.chat_history is not None else record.chat_history
            ),
            current_step=changes.current_step if changes.current_step is not None else record.current_step,
            last_accessed_at=now,
            expires_at=now + self._ttl,
        )
        self._sessions[session_id] = updated
        return updated

    def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def cleanup(self) -> int:
        """Drop every expired record and return how many were removed."""

        now = self._clock()
        expired = [key for key, record in self._sessions.items() if now >= record.expires_at]
        for key in expired:
            self._sessions.pop(key, None)
        return len(expired)

    def active_count(self) -> int:
        """Number of held records, including expired ones not yet swept."""

        return len(self._sessions)

    def clear(self) -> None:
        self._sessions.clear()

    def start(self) -> None:
        """Schedule the periodic sweep on the running event loop."""

        if self.is_sweeping:
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop(), name="session-store-sweep")

    async def aclose(self) -> None:
        """Cancel the sweep and wait for it to finish."""

        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def __aenter__(self) -> "SessionStore":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _live(self, session_id: str, now: datetime) -> Optional[SessionRecord]:
        record = self._sessions.get(session_id)
        if record is None:
            return None
        if now >= record.expires_at:
            self._sessions.pop(session_id, None)
            return None
        return record

    async def _sweep_loop(self) -> None:
        interval = self._cleanup_interval.total_seconds()
        while True:
            await asyncio.sleep(interval)
            try:
                removed = self.cleanup()
            except Exception:
                logger.exception("Session cleanup failed")
                continue
            if removed:
                logger.info("Session cleanup removed %d expired session(s)", removed)
