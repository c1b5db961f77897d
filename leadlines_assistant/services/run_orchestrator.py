"""RunOrchestrator: append a message, start a run and poll it to a terminal state.

Lifecycle of one invocation::

    create_message -> create_run -> get_run ... get_run -> list_messages
                                    queued / in_progress / requires_action
                                    -> completed | failed | cancelled | expired

Exactly one outcome per call: the thread's message list (``completed``),
``RunFailedError`` (``failed``/``cancelled``/``expired``) or
``RunTimeoutError`` (bound elapsed while non-terminal). The run itself never
leaves this module.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

from ..exceptions import ConflictError, ProviderError, RunFailedError, RunTimeoutError
from ..identity.principal import CredentialSource
from ..logging_utils import get_logger
from ..provider.client import AssistantProviderClient
from ..provider.schemas import FAILURE_STATUSES, ProviderMessage, ProviderRun, RunStatus

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]

DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_TIMEOUT = 540.0


class RunOrchestrator:
    def __init__(
        self,
        client: AssistantProviderClient,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
        cancel_on_timeout: bool = True,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
    ):
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self._client = client
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.cancel_on_timeout = cancel_on_timeout
        self._sleep = sleep
        self._clock = clock
        # threads with a run in flight on this instance
        self._active: set[str] = set()

    def is_active(self, thread_id: str) -> bool:
        return thread_id in self._active

    async def run(
        self,
        credentials: CredentialSource,
        thread_id: str,
        assistant_id: str,
        content: str,
        timeout: float | None = None,
    ) -> list[ProviderMessage]:
        """Send ``content`` to the thread and return every message once the run completes."""
        if thread_id in self._active:
            raise ConflictError("A run is already in progress for this conversation", thread_id=thread_id)
        self._active.add(thread_id)
        try:
            run = await self._enqueue(credentials, thread_id, assistant_id, content)
            await self._poll_until_terminal(
                credentials, thread_id, run, self.timeout if timeout is None else timeout
            )
            return await self._client.list_messages(credentials, thread_id)
        finally:
            self._active.discard(thread_id)

    async def _enqueue(
        self, credentials: CredentialSource, thread_id: str, assistant_id: str, content: str
    ) -> ProviderRun:
        await self._client.create_message(credentials, thread_id, content)
        try:
            run = await self._client.create_run(credentials, thread_id, assistant_id)
        except ProviderError:
            # The user message stays in the thread; nothing polls for it.
            logger.warning(
                "Run creation failed after message append",
                data={"thread_id": thread_id, "assistant_id": assistant_id},
            )
            raise
        logger.info("Run created", data={"thread_id": thread_id, "run_id": run.id, "status": run.status})
        return run

    async def _poll_until_terminal(
        self, credentials: CredentialSource, thread_id: str, run: ProviderRun, timeout: float
    ) -> ProviderRun:
        started = self._clock()
        polls = 0
        last_status = run.status
        try:
            while True:
                current = await self._client.get_run(credentials, thread_id, run.id)
                polls += 1
                state = current.state

                if current.status != last_status:
                    logger.info(
                        "Run status changed",
                        data={"run_id": run.id, "from": last_status, "to": current.status, "polls": polls},
                    )
                    last_status = current.status

                if state is RunStatus.COMPLETED:
                    return current
                if state in FAILURE_STATUSES:
                    logger.warning(
                        "Run ended unsuccessfully",
                        data={"run_id": run.id, "status": current.status, "last_error": current.last_error},
                    )
                    raise RunFailedError(current.status, current.last_error)
                if state is None:
                    logger.warning("Unrecognized run status", data={"run_id": run.id, "status": current.status})
                elif state is RunStatus.REQUIRES_ACTION:
                    logger.warning("Run requires tool outputs; waiting", data={"run_id": run.id})

                elapsed = self._clock() - started
                if elapsed >= timeout:
                    await self._cancel_after_timeout(credentials, thread_id, run.id)
                    logger.error(
                        "Run timed out",
                        data={"run_id": run.id, "status": current.status, "elapsed": elapsed, "polls": polls},
                    )
                    raise RunTimeoutError(timeout, elapsed, polls)

                await self._sleep(self.poll_interval)
        except asyncio.CancelledError:
            logger.info("Run polling cancelled by caller", data={"run_id": run.id, "polls": polls})
            raise

    async def _cancel_after_timeout(self, credentials: CredentialSource, thread_id: str, run_id: str) -> None:
        if not self.cancel_on_timeout:
            return
        try:
            await self._client.cancel_run(credentials, thread_id, run_id)
        except ProviderError as exc:
            logger.warning(
                "Cancel after timeout failed",
                data={"run_id": run_id, "status_code": exc.status_code, "message": exc.provider_message},
            )
