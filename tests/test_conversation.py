"""Conversation façade end to end over the in-memory store and a fake provider."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from sqlalchemy.exc import IntegrityError

from leadlines_assistant.db.session import transaction
from leadlines_assistant.exceptions import (
    InvalidRequestError,
    NotFoundError,
    ProviderError,
    RunFailedError,
    RunTimeoutError,
)
from leadlines_assistant.provider.schemas import Message
from leadlines_assistant.repositories import CachedMessageRepository
from leadlines_assistant.services.conversation import assistant_reply


@pytest.mark.asyncio
class TestAssistant:
    async def test_provisioned_once(self, facade, provider, principal):
        first = await facade.get_or_create_assistant(principal)
        second = await facade.get_or_create_assistant(principal)

        assert first.assistant_id == second.assistant_id
        assert len(provider.called("create_assistant")) == 1
        assert first.metadata == {"model": "gpt-4o"}

    async def test_each_owner_gets_their_own(self, facade, principal, other_principal):
        alice = await facade.get_or_create_assistant(principal)
        bob = await facade.get_or_create_assistant(other_principal)
        assert alice.assistant_id != bob.assistant_id

    async def test_bind_repoints_existing(self, facade, provider, principal):
        await facade.get_or_create_assistant(principal)
        bound = await facade.bind_assistant(principal, "asst_external")
        assert bound.assistant_id == "asst_external"
        assert (await facade.get_or_create_assistant(principal)).assistant_id == "asst_external"

    async def test_provisioning_failure_leaves_no_binding(self, facade, provider, principal):
        provider.fail("create_assistant")
        with pytest.raises(ProviderError):
            await facade.get_or_create_assistant(principal)
        assert (await facade.get_or_create_assistant(principal)).assistant_id


@pytest.mark.asyncio
class TestSendMessage:
    async def test_completed_exchange(self, facade, provider, principal):
        thread = await facade.create_thread(principal)
        assert thread.last_message_at is None

        messages = await facade.send_message(principal, thread.thread_id, "Find me SaaS leads in Austin")

        assert [m.role for m in messages] == ["user", "assistant"]
        reply = assistant_reply(messages)
        assert reply is not None
        assert reply.content == provider.reply_text
        assert reply.run_id is not None

        [listed] = await facade.list_threads(principal)
        assert listed.last_message_at is not None

    async def test_exchange_is_cached(self, facade, session_factory, principal):
        thread = await facade.create_thread(principal)
        await facade.send_message(principal, thread.thread_id, "hello")
        owner = await facade.identity.resolve_owner(principal.subject_id)

        async with transaction(session_factory) as session:
            cached = await CachedMessageRepository(session).list_for_thread(owner, thread.thread_id)
        assert [m.role for m in cached] == ["user", "assistant"]

    async def test_cache_failure_keeps_completed_exchange(self, facade, principal, monkeypatch):
        thread = await facade.create_thread(principal)

        async def broken_replace(self, owner, thread_id, messages):
            raise IntegrityError("INSERT INTO cached_messages", {}, Exception("UNIQUE constraint failed"))

        monkeypatch.setattr(CachedMessageRepository, "replace_for_thread", broken_replace)

        messages = await facade.send_message(principal, thread.thread_id, "hello")

        assert [m.role for m in messages] == ["user", "assistant"]
        [listed] = await facade.list_threads(principal)
        assert listed.last_message_at is not None

    async def test_list_messages_survives_cache_failure(self, facade, principal, monkeypatch):
        thread = await facade.create_thread(principal)
        await facade.send_message(principal, thread.thread_id, "hello")

        async def broken_replace(self, owner, thread_id, messages):
            raise IntegrityError("INSERT INTO cached_messages", {}, Exception("UNIQUE constraint failed"))

        monkeypatch.setattr(CachedMessageRepository, "replace_for_thread", broken_replace)
        assert len(await facade.list_messages(principal, thread.thread_id)) == 2

    async def test_failed_run_leaves_thread_untouched(self, facade, provider, principal):
        thread = await facade.create_thread(principal)
        provider.run_script = ["queued", "failed"]

        with pytest.raises(RunFailedError):
            await facade.send_message(principal, thread.thread_id, "hello")

        [listed] = await facade.list_threads(principal)
        assert listed.last_message_at is None

    async def test_timeout_surfaces(self, facade, provider, principal):
        thread = await facade.create_thread(principal)
        provider.run_script = ["in_progress"]
        with pytest.raises(RunTimeoutError):
            await facade.send_message(principal, thread.thread_id, "hello")

    async def test_unknown_thread(self, facade, provider, principal):
        with pytest.raises(NotFoundError):
            await facade.send_message(principal, "thread_missing", "hello")
        assert provider.called("create_message") == []

    async def test_other_owners_thread_is_not_found(self, facade, provider, principal, other_principal):
        thread = await facade.create_thread(principal)
        with pytest.raises(NotFoundError):
            await facade.send_message(other_principal, thread.thread_id, "hello")

    async def test_blank_content_rejected(self, facade, provider, principal):
        thread = await facade.create_thread(principal)
        with pytest.raises(InvalidRequestError):
            await facade.send_message(principal, thread.thread_id, "   ")
        assert provider.called("create_message") == []

    async def test_list_messages(self, facade, principal):
        thread = await facade.create_thread(principal)
        await facade.send_message(principal, thread.thread_id, "first")
        await facade.send_message(principal, thread.thread_id, "second")

        messages = await facade.list_messages(principal, thread.thread_id)
        assert [m.content for m in messages if m.role == "user"] == ["first", "second"]
        assert messages == sorted(messages, key=lambda m: m.created_at)


class TestAssistantReply:
    def _msg(self, role: str, content: str, ts: int) -> Message:
        return Message(id=f"msg_{ts}", role=role, content=content, created_at=datetime.fromtimestamp(ts, tz=UTC))

    def test_reply_after_last_user_message(self):
        messages = [
            self._msg("user", "q1", 1),
            self._msg("assistant", "a1", 2),
            self._msg("user", "q2", 3),
            self._msg("assistant", "a2", 4),
        ]
        assert assistant_reply(messages).content == "a2"

    def test_newest_of_several_replies(self):
        messages = [
            self._msg("user", "q", 1),
            self._msg("assistant", "a-first", 2),
            self._msg("assistant", "a-last", 3),
        ]
        assert assistant_reply(messages).content == "a-last"

    def test_no_reply_yet(self):
        messages = [self._msg("user", "q1", 1), self._msg("assistant", "a1", 2), self._msg("user", "q2", 3)]
        assert assistant_reply(messages) is None

    def test_empty(self):
        assert assistant_reply([]) is None
