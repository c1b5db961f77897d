"""Test fixtures: async SQLite in-memory store, scripted provider, fake clock."""

from __future__ import annotations

import asyncio
import itertools
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from leadlines_assistant.config import Settings
from leadlines_assistant.db.models import Base
from leadlines_assistant.exceptions import ProviderError
from leadlines_assistant.identity.principal import Principal, StaticCredentials
from leadlines_assistant.provider.schemas import (
    ProviderAssistant,
    ProviderAssistantFile,
    ProviderDeletion,
    ProviderFile,
    ProviderMessage,
    ProviderRun,
    ProviderThread,
)
from leadlines_assistant.services.conversation import ConversationFacade
from leadlines_assistant.services.run_orchestrator import RunOrchestrator


class FakeClock:
    """Monotonic clock whose ``sleep`` advances time instead of waiting."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class FakeProvider:
    """In-memory stand-in for ``AssistantProviderClient``.

    Runs walk through ``run_script`` one status per ``get_run``; the last
    status repeats once the script is exhausted. ``fail(step)`` makes the
    next call of that step raise ``ProviderError``.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple]] = []
        self.tokens: list[str] = []
        self.run_script: list[str] = ["queued", "in_progress", "completed"]
        self.reply_text = "Here are three lead lists worth a look."
        self.threads: dict[str, list[ProviderMessage]] = {}
        self.files: dict[str, ProviderFile] = {}
        self.attached: dict[str, set[str]] = {}
        self.next_thread_ids: list[str] = []
        self._failures: dict[str, ProviderError] = {}
        self._runs: dict[str, dict[str, Any]] = {}
        self._ids = itertools.count(1)
        self._clock = itertools.count(1_700_000_000)

    def fail(self, step: str, status_code: int | None = 500, message: str = "provider exploded") -> None:
        self._failures[step] = ProviderError(status_code, message, step=step)

    def called(self, step: str) -> list[tuple]:
        return [args for name, args in self.calls if name == step]

    async def _enter(self, step: str, credentials, *args) -> None:
        self.tokens.append(await credentials.bearer_token())
        self.calls.append((step, args))
        if step in self._failures:
            raise self._failures.pop(step)

    def _new_id(self, prefix: str) -> str:
        return f"{prefix}_{next(self._ids)}"

    def _message(self, thread_id: str, role: str, content: str, run_id: str | None = None) -> ProviderMessage:
        message = ProviderMessage(
            id=self._new_id("msg"), role=role, content=content, created_at=next(self._clock), run_id=run_id
        )
        self.threads.setdefault(thread_id, []).append(message)
        return message

    async def aclose(self) -> None:
        pass

    # -- assistants --------------------------------------------------------

    async def create_assistant(self, credentials, *, model, name, instructions, tools=None):
        await self._enter("create_assistant", credentials, model, name)
        return ProviderAssistant(id=self._new_id("asst"), name=name, model=model)

    async def attach_file_to_assistant(self, credentials, assistant_id, file_id):
        await self._enter("attach_file", credentials, assistant_id, file_id)
        self.attached.setdefault(assistant_id, set()).add(file_id)
        return ProviderAssistantFile(id=file_id, assistant_id=assistant_id)

    async def detach_file_from_assistant(self, credentials, assistant_id, file_id):
        await self._enter("detach_file", credentials, assistant_id, file_id)
        self.attached.get(assistant_id, set()).discard(file_id)
        return ProviderDeletion(id=file_id, deleted=True)

    # -- threads -----------------------------------------------------------

    async def create_thread(self, credentials):
        await self._enter("create_thread", credentials)
        thread_id = self.next_thread_ids.pop(0) if self.next_thread_ids else self._new_id("thread")
        self.threads.setdefault(thread_id, [])
        return ProviderThread(id=thread_id, created_at=next(self._clock))

    async def delete_thread(self, credentials, thread_id):
        await self._enter("delete_thread", credentials, thread_id)
        self.threads.pop(thread_id, None)
        return ProviderDeletion(id=thread_id, deleted=True)

    # -- messages ----------------------------------------------------------

    async def create_message(self, credentials, thread_id, content, role="user"):
        await self._enter("create_message", credentials, thread_id, content)
        return self._message(thread_id, role, content)

    async def list_messages(self, credentials, thread_id):
        await self._enter("list_messages", credentials, thread_id)
        return list(self.threads.get(thread_id, []))

    # -- runs --------------------------------------------------------------

    async def create_run(self, credentials, thread_id, assistant_id):
        await self._enter("create_run", credentials, thread_id, assistant_id)
        run_id = self._new_id("run")
        self._runs[run_id] = {"thread_id": thread_id, "script": list(self.run_script), "replied": False}
        return ProviderRun(id=run_id, status="queued", thread_id=thread_id, assistant_id=assistant_id)

    async def get_run(self, credentials, thread_id, run_id):
        await self._enter("get_run", credentials, thread_id, run_id)
        run = self._runs[run_id]
        script = run["script"]
        status = script.pop(0) if len(script) > 1 else script[0]
        if status == "completed" and not run["replied"]:
            self._message(thread_id, "assistant", self.reply_text, run_id=run_id)
            run["replied"] = True
        last_error = {"code": "server_error", "message": "model crashed"} if status == "failed" else None
        return ProviderRun(id=run_id, status=status, thread_id=thread_id, last_error=last_error)

    async def cancel_run(self, credentials, thread_id, run_id):
        await self._enter("cancel_run", credentials, thread_id, run_id)
        return ProviderRun(id=run_id, status="cancelling", thread_id=thread_id)

    # -- files -------------------------------------------------------------

    async def upload_file(self, credentials, filename, content, content_type=None, purpose="assistants"):
        await self._enter("upload_file", credentials, filename, purpose)
        uploaded = ProviderFile.model_validate(
            {"id": self._new_id("file"), "filename": filename, "bytes": len(content), "purpose": purpose}
        )
        self.files[uploaded.id] = uploaded
        return uploaded

    async def get_file(self, credentials, file_id):
        await self._enter("get_file", credentials, file_id)
        if file_id not in self.files:
            raise ProviderError(404, f"No such File object: {file_id}", step="get_file")
        return self.files[file_id]

    async def delete_file(self, credentials, file_id):
        await self._enter("delete_file", credentials, file_id)
        self.files.pop(file_id, None)
        return ProviderDeletion(id=file_id, deleted=True)


@pytest_asyncio.fixture
async def engine():
    """Create an async in-memory SQLite engine for tests."""
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    """Provide an async session factory."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    """Provide a single async session for test use."""
    async with session_factory() as sess:
        async with sess.begin():
            yield sess


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        environment="test",
        database_url="sqlite+aiosqlite://",
        provider_api_key="sk-test",
        run_poll_interval_seconds=1.0,
        run_timeout_seconds=10.0,
        file_max_bytes=1024,
    )


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def orchestrator(provider, clock):
    return RunOrchestrator(provider, poll_interval=1.0, timeout=10.0, sleep=clock.sleep, clock=clock)


@pytest.fixture
def principal():
    return Principal(subject_id="auth0|alice", email="alice@example.com", credentials=StaticCredentials("tok-alice"))


@pytest.fixture
def other_principal():
    return Principal(subject_id="auth0|bob", email="bob@example.com", credentials=StaticCredentials("tok-bob"))


@pytest_asyncio.fixture
async def facade(session_factory, provider, settings, orchestrator):
    return ConversationFacade(session_factory, provider, settings, orchestrator=orchestrator)
