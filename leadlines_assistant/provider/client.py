"""HTTP client for the assistant provider (threads, messages, runs, files).

Pure request shaping and response decoding: no retries, no polling, no
interpretation of run state. Every call fetches a fresh bearer token from the
caller's credential source right before the request goes out.
"""

from __future__ import annotations

from typing import Any

import httpx

from ..exceptions import ProviderError
from ..identity.principal import CredentialSource
from ..logging_utils import get_logger
from .schemas import (
    ProviderAssistant,
    ProviderAssistantFile,
    ProviderDeletion,
    ProviderFile,
    ProviderMessage,
    ProviderMessagePage,
    ProviderRun,
    ProviderThread,
    decode,
)

logger = get_logger(__name__)

MESSAGE_PAGE_SIZE = 100


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    text = response.text.strip()
    return text[:200] if text else (response.reason_phrase or f"HTTP {response.status_code}")


class AssistantProviderClient:
    """Thin wrapper over the provider's REST resources."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        beta_header: str = "assistants=v1",
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.beta_header = beta_header
        self._client = http_client

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        credentials: CredentialSource,
        method: str,
        path: str,
        *,
        step: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> tuple[int, Any]:
        token = await credentials.bearer_token()
        if not token:
            raise ProviderError(None, "no bearer credential available", step=step)

        headers = {"Authorization": f"Bearer {token}"}
        if self.beta_header:
            headers["OpenAI-Beta"] = self.beta_header

        try:
            response = await self.client.request(
                method, path, headers=headers, json=json, params=params, files=files, data=data
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "Provider request failed",
                data={"step": step, "method": method, "path": path, "error": type(exc).__name__},
            )
            raise ProviderError(None, f"{type(exc).__name__}: {exc}", step=step) from exc

        if response.is_error:
            message = _error_message(response)
            logger.warning(
                "Provider returned an error",
                data={"step": step, "path": path, "status_code": response.status_code, "message": message},
            )
            raise ProviderError(response.status_code, message, step=step)

        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderError(response.status_code, "response body is not JSON", step=step) from exc

        logger.debug("Provider call", data={"step": step, "path": path, "status_code": response.status_code})
        return response.status_code, body

    # -- assistants --------------------------------------------------------

    async def create_assistant(
        self,
        credentials: CredentialSource,
        *,
        model: str,
        name: str,
        instructions: str,
        tools: list[dict[str, Any]] | None = None,
    ) -> ProviderAssistant:
        payload = {"model": model, "name": name, "instructions": instructions, "tools": tools or []}
        status, body = await self._request(credentials, "POST", "/assistants", step="create_assistant", json=payload)
        return decode(ProviderAssistant, body, step="create_assistant", status_code=status)

    async def attach_file_to_assistant(
        self, credentials: CredentialSource, assistant_id: str, file_id: str
    ) -> ProviderAssistantFile:
        status, body = await self._request(
            credentials,
            "POST",
            f"/assistants/{assistant_id}/files",
            step="attach_file",
            json={"file_id": file_id},
        )
        return decode(ProviderAssistantFile, body, step="attach_file", status_code=status)

    async def detach_file_from_assistant(
        self, credentials: CredentialSource, assistant_id: str, file_id: str
    ) -> ProviderDeletion:
        status, body = await self._request(
            credentials, "DELETE", f"/assistants/{assistant_id}/files/{file_id}", step="detach_file"
        )
        return decode(ProviderDeletion, body, step="detach_file", status_code=status)

    # -- threads -----------------------------------------------------------

    async def create_thread(self, credentials: CredentialSource) -> ProviderThread:
        status, body = await self._request(credentials, "POST", "/threads", step="create_thread", json={})
        return decode(ProviderThread, body, step="create_thread", status_code=status)

    async def delete_thread(self, credentials: CredentialSource, thread_id: str) -> ProviderDeletion:
        status, body = await self._request(credentials, "DELETE", f"/threads/{thread_id}", step="delete_thread")
        return decode(ProviderDeletion, body, step="delete_thread", status_code=status)

    # -- messages ----------------------------------------------------------

    async def create_message(
        self, credentials: CredentialSource, thread_id: str, content: str, role: str = "user"
    ) -> ProviderMessage:
        status, body = await self._request(
            credentials,
            "POST",
            f"/threads/{thread_id}/messages",
            step="create_message",
            json={"role": role, "content": content},
        )
        return decode(ProviderMessage, body, step="create_message", status_code=status)

    async def list_messages(self, credentials: CredentialSource, thread_id: str) -> list[ProviderMessage]:
        """All messages in the thread, oldest first."""
        messages: list[ProviderMessage] = []
        params: dict[str, Any] = {"order": "asc", "limit": MESSAGE_PAGE_SIZE}
        while True:
            status, body = await self._request(
                credentials, "GET", f"/threads/{thread_id}/messages", step="list_messages", params=params
            )
            page = decode(ProviderMessagePage, body, step="list_messages", status_code=status)
            messages.extend(page.data)
            if not page.has_more or not page.data:
                return messages
            params = {**params, "after": page.last_id or page.data[-1].id}

    # -- runs --------------------------------------------------------------

    async def create_run(self, credentials: CredentialSource, thread_id: str, assistant_id: str) -> ProviderRun:
        status, body = await self._request(
            credentials,
            "POST",
            f"/threads/{thread_id}/runs",
            step="create_run",
            json={"assistant_id": assistant_id},
        )
        return decode(ProviderRun, body, step="create_run", status_code=status)

    async def get_run(self, credentials: CredentialSource, thread_id: str, run_id: str) -> ProviderRun:
        status, body = await self._request(credentials, "GET", f"/threads/{thread_id}/runs/{run_id}", step="get_run")
        return decode(ProviderRun, body, step="get_run", status_code=status)

    async def cancel_run(self, credentials: CredentialSource, thread_id: str, run_id: str) -> ProviderRun:
        status, body = await self._request(
            credentials, "POST", f"/threads/{thread_id}/runs/{run_id}/cancel", step="cancel_run"
        )
        return decode(ProviderRun, body, step="cancel_run", status_code=status)

    # -- files -------------------------------------------------------------

    async def upload_file(
        self,
        credentials: CredentialSource,
        filename: str,
        content: bytes,
        content_type: str | None = None,
        purpose: str = "assistants",
    ) -> ProviderFile:
        status, body = await self._request(
            credentials,
            "POST",
            "/files",
            step="upload_file",
            files={"file": (filename, content, content_type or "application/octet-stream")},
            data={"purpose": purpose},
        )
        return decode(ProviderFile, body, step="upload_file", status_code=status)

    async def get_file(self, credentials: CredentialSource, file_id: str) -> ProviderFile:
        status, body = await self._request(credentials, "GET", f"/files/{file_id}", step="get_file")
        return decode(ProviderFile, body, step="get_file", status_code=status)

    async def delete_file(self, credentials: CredentialSource, file_id: str) -> ProviderDeletion:
        status, body = await self._request(credentials, "DELETE", f"/files/{file_id}", step="delete_file")
        return decode(ProviderDeletion, body, step="delete_file", status_code=status)
