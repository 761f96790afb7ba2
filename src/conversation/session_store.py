"""
Conversation session storage with idle-based eviction.

The orchestrator depends on the ``SessionStore`` interface only, so the
in-memory implementation here can be swapped for a shared cache when the
service runs as more than one instance.

The sweep runs as a cancellable asyncio task owned by the store. Tests call
``sweep()`` directly with an injected clock instead of waiting on timers.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from src.config import settings
from src.schemas.conversation_schema import ConversationSession, DataCollectionStatus

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore(ABC):
    """Keyed storage of conversation sessions."""

    def now(self) -> datetime:
        """Current time as seen by this store's expiry logic."""
        return _utcnow()

    @abstractmethod
    def get(self, conversation_id: str) -> Optional[ConversationSession]:
        """Return the session, or None if absent or evicted."""

    @abstractmethod
    def save(self, session: ConversationSession) -> None:
        """Insert or replace a session."""

    @abstractmethod
    def delete(self, conversation_id: str) -> bool:
        """Remove a session. Returns True if one was removed."""

    @abstractmethod
    def sweep(self, now: Optional[datetime] = None) -> int:
        """Evict idle sessions. Returns the number removed."""

    @abstractmethod
    def all_sessions(self) -> list[ConversationSession]:
        """Snapshot of every stored session."""

    @abstractmethod
    def get_stats(self) -> dict[str, Any]:
        """Aggregate counts for operators."""


class InMemorySessionStore(SessionStore):
    """Dict-backed store with a periodic idle sweep."""

    def __init__(
        self,
        session_timeout_sec: Optional[float] = None,
        sweep_interval_sec: Optional[float] = None,
        clock: Clock = _utcnow,
    ) -> None:
        timeout = (
            session_timeout_sec
            if session_timeout_sec is not None
            else settings.session.session_timeout_sec
        )
        interval = (
            sweep_interval_sec
            if sweep_interval_sec is not None
            else settings.session.sweep_interval_sec
        )
        self.session_timeout = timedelta(seconds=timeout)
        self.sweep_interval = float(interval)
        self._clock = clock
        self._sessions: dict[str, ConversationSession] = {}
        self._sweep_task: Optional[asyncio.Task[None]] = None

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._sessions

    def now(self) -> datetime:
        return self._clock()

    def get(self, conversation_id: str) -> Optional[ConversationSession]:
        return self._sessions.get(conversation_id)

    def save(self, session: ConversationSession) -> None:
        self._sessions[session.conversation_id] = session

    def delete(self, conversation_id: str) -> bool:
        return self._sessions.pop(conversation_id, None) is not None

    def all_sessions(self) -> list[ConversationSession]:
        return list(self._sessions.values())

    def is_expired(self, session: ConversationSession, now: Optional[datetime] = None) -> bool:
        now = now or self.now()
        return now - session.last_activity > self.session_timeout

    def sweep(self, now: Optional[datetime] = None) -> int:
        now = now or self.now()
        expired = [
            cid for cid, session in self._sessions.items() if self.is_expired(session, now)
        ]
        for cid in expired:
            del self._sessions[cid]
        if expired:
            logger.info("Evicted %d idle session(s)", len(expired))
        return len(expired)

    # ------------------------------------------------------------------ #
    # Sweep task lifecycle
    # ------------------------------------------------------------------ #

    @property
    def running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def start(self) -> None:
        """Start the background sweep. Requires a running event loop."""
        if self.running:
            return
        self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop())
        logger.debug("Session sweep started (every %.0fs)", self.sweep_interval)

    async def stop(self) -> None:
        """Cancel the background sweep and wait for it to finish."""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Session sweep stopped")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("Session sweep failed")

    async def __aenter__(self) -> "InMemorySessionStore":
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    # ------------------------------------------------------------------ #
    # Stats
    # ------------------------------------------------------------------ #

    def get_stats(self) -> dict[str, Any]:
        """Get session statistics for operators."""
        sessions = self.all_sessions()
        now = self.now()
        by_status = {status.value: 0 for status in DataCollectionStatus}
        for session in sessions:
            by_status[session.status.value] += 1
        total_messages = sum(len(s.messages) for s in sessions)
        return {
            "total_conversations": len(sessions),
            "active_conversations": sum(1 for s in sessions if not self.is_expired(s, now)),
            "conversations_by_status": by_status,
            "avg_messages_per_conversation": (
                round(total_messages / len(sessions), 2) if sessions else 0
            ),
        }
