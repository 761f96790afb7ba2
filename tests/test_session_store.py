"""Tests for the in-memory session store and its sweep."""

import asyncio
from datetime import timedelta

import pytest

from src.conversation.session_store import InMemorySessionStore
from src.schemas.conversation_schema import ConversationSession, DataCollectionStatus, Role


def _session(store, conversation_id: str = "wa-1") -> ConversationSession:
    now = store.now()
    session = ConversationSession(
        conversation_id=conversation_id, user_id=conversation_id, created_at=now, last_activity=now
    )
    store.save(session)
    return session


class TestBasicOperations:
    def test_save_and_get(self, store):
        session = _session(store)
        assert store.get("wa-1") is session
        assert "wa-1" in store
        assert len(store) == 1

    def test_get_missing(self, store):
        assert store.get("wa-404") is None

    def test_delete(self, store):
        _session(store)
        assert store.delete("wa-1") is True
        assert store.delete("wa-1") is False
        assert store.get("wa-1") is None

    def test_all_sessions_is_a_snapshot(self, store):
        _session(store, "wa-1")
        _session(store, "wa-2")
        snapshot = store.all_sessions()
        store.delete("wa-1")
        assert {s.conversation_id for s in snapshot} == {"wa-1", "wa-2"}
        assert len(store.all_sessions()) == 1


class TestSweep:
    def test_idle_session_evicted(self, store, clock):
        _session(store)
        clock.advance(1801)
        assert store.sweep() == 1
        assert store.get("wa-1") is None

    def test_recent_activity_survives(self, store, clock):
        session = _session(store)
        clock.advance(1700)
        session.touch(store.now())
        clock.advance(1700)
        assert store.sweep() == 0
        assert store.get("wa-1") is session

    def test_exactly_at_timeout_survives(self, store, clock):
        _session(store)
        clock.advance(1800)
        assert store.sweep() == 0

    def test_only_idle_sessions_removed(self, store, clock):
        _session(store, "wa-old")
        clock.advance(1000)
        _session(store, "wa-new")
        clock.advance(1000)
        assert store.sweep() == 1
        assert store.get("wa-old") is None
        assert store.get("wa-new") is not None

    def test_explicit_now(self, store, clock):
        session = _session(store)
        assert store.sweep(now=session.last_activity + timedelta(hours=1)) == 1


class TestSweepTask:
    @pytest.mark.asyncio
    async def test_start_and_stop(self, clock):
        store = InMemorySessionStore(session_timeout_sec=60, sweep_interval_sec=300, clock=clock)
        store.start()
        assert store.running
        store.start()  # idempotent
        await store.stop()
        assert not store.running

    @pytest.mark.asyncio
    async def test_background_sweep_evicts(self, clock):
        store = InMemorySessionStore(session_timeout_sec=60, sweep_interval_sec=0.01, clock=clock)
        _session(store)
        clock.advance(61)
        async with store:
            for _ in range(50):
                if store.get("wa-1") is None:
                    break
                await asyncio.sleep(0.01)
        assert store.get("wa-1") is None
        assert not store.running

    @pytest.mark.asyncio
    async def test_stop_without_start(self, store):
        await store.stop()
        assert not store.running


class TestStats:
    def test_stats(self, store, clock):
        first = _session(store, "wa-1")
        first.append_message(Role.ASSISTANT, "Hola")
        first.append_message(Role.USER, "Necesito un filtro")
        first.status = DataCollectionStatus.COLLECTING_NAME
        second = _session(store, "wa-2")
        second.append_message(Role.ASSISTANT, "Hola")
        clock.advance(1801)
        store.get("wa-2").touch(store.now())

        stats = store.get_stats()
        assert stats["total_conversations"] == 2
        assert stats["active_conversations"] == 1
        assert stats["conversations_by_status"]["collecting_name"] == 1
        assert stats["conversations_by_status"]["greeting"] == 1
        assert stats["avg_messages_per_conversation"] == 1.5

    def test_empty_stats(self, store):
        assert store.get_stats()["avg_messages_per_conversation"] == 0
