"""Assistant provider client against a mocked transport."""

from __future__ import annotations

import json

import httpx
import pytest

from leadlines_assistant.exceptions import ProviderError
from leadlines_assistant.identity.principal import CallableCredentials, StaticCredentials
from leadlines_assistant.provider.client import AssistantProviderClient
from leadlines_assistant.provider.schemas import RunStatus

pytestmark = pytest.mark.asyncio

BASE_URL = "https://provider.test/v1"


def _client(handler) -> AssistantProviderClient:
    http = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return AssistantProviderClient(BASE_URL, http_client=http)


def _message(message_id: str, role: str = "user", text: str = "hi", created_at: int = 1_700_000_000) -> dict:
    return {
        "id": message_id,
        "object": "thread.message",
        "role": role,
        "created_at": created_at,
        "content": [{"type": "text", "text": {"value": text, "annotations": []}}],
        "run_id": None,
    }


class TestRequestShaping:
    async def test_headers_and_path(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "thread_1", "object": "thread", "created_at": 1})

        client = _client(handler)
        thread = await client.create_thread(StaticCredentials("tok-1"))
        await client.aclose()

        assert thread.id == "thread_1"
        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/v1/threads"
        assert request.headers["Authorization"] == "Bearer tok-1"
        assert request.headers["OpenAI-Beta"] == "assistants=v1"

    async def test_token_fetched_for_every_call(self):
        tokens = iter(["tok-1", "tok-2"])
        seen: list[str] = []

        async def fetch() -> str:
            return next(tokens)

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers["Authorization"])
            return httpx.Response(200, json={"id": "thread_1"})

        client = _client(handler)
        credentials = CallableCredentials(fetch)
        await client.create_thread(credentials)
        await client.create_thread(credentials)

        assert seen == ["Bearer tok-1", "Bearer tok-2"]

    async def test_missing_token_never_sends(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("request should not be sent")

        client = _client(handler)
        with pytest.raises(ProviderError) as exc_info:
            await client.create_thread(StaticCredentials(""))
        assert exc_info.value.status_code is None
        assert exc_info.value.step == "create_thread"

    async def test_run_creation_payload(self):
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"id": "run_1", "status": "queued", "thread_id": "thread_1"})

        run = await _client(handler).create_run(StaticCredentials("tok"), "thread_1", "asst_1")
        assert seen == [{"assistant_id": "asst_1"}]
        assert run.state is RunStatus.QUEUED

    async def test_attach_file_targets_assistant(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "file_1", "assistant_id": "asst_1"})

        await _client(handler).attach_file_to_assistant(StaticCredentials("tok"), "asst_1", "file_1")
        assert seen[0].url.path == "/v1/assistants/asst_1/files"
        assert json.loads(seen[0].content) == {"file_id": "file_1"}

    async def test_upload_is_multipart_with_purpose(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200, json={"id": "file_1", "filename": "leads.csv", "bytes": 18, "purpose": "assistants"}
            )

        uploaded = await _client(handler).upload_file(
            StaticCredentials("tok"), "leads.csv", b"name,email\nan,a@b\n", "text/csv"
        )
        body = seen[0].content
        assert seen[0].headers["content-type"].startswith("multipart/form-data")
        assert b'name="purpose"' in body
        assert b"assistants" in body
        assert b'filename="leads.csv"' in body
        assert uploaded.size == 18


class TestListMessages:
    async def test_follows_cursor_until_exhausted(self):
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            params = dict(request.url.params)
            seen.append(params)
            if "after" not in params:
                return httpx.Response(
                    200,
                    json={"data": [_message("msg_1"), _message("msg_2", "assistant")], "has_more": True,
                          "last_id": "msg_2"},
                )
            return httpx.Response(200, json={"data": [_message("msg_3")], "has_more": False, "last_id": "msg_3"})

        messages = await _client(handler).list_messages(StaticCredentials("tok"), "thread_1")

        assert [m.id for m in messages] == ["msg_1", "msg_2", "msg_3"]
        assert seen[0]["order"] == "asc"
        assert seen[1]["after"] == "msg_2"

    async def test_text_content_is_flattened(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": [_message("msg_1", text="hello there")], "has_more": False})

        messages = await _client(handler).list_messages(StaticCredentials("tok"), "thread_1")
        assert messages[0].text == "hello there"


class TestErrors:
    async def test_error_status_carries_provider_message(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"error": {"message": "No thread found with id 'thread_x'."}})

        with pytest.raises(ProviderError) as exc_info:
            await _client(handler).delete_thread(StaticCredentials("tok"), "thread_x")

        err = exc_info.value
        assert err.status_code == 404
        assert err.is_not_found
        assert err.step == "delete_thread"
        assert "thread_x" in err.provider_message

    async def test_non_json_error_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="upstream unavailable")

        with pytest.raises(ProviderError) as exc_info:
            await _client(handler).get_run(StaticCredentials("tok"), "thread_1", "run_1")
        assert exc_info.value.status_code == 503
        assert exc_info.value.provider_message == "upstream unavailable"

    async def test_transport_failure_has_no_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ProviderError) as exc_info:
            await _client(handler).create_thread(StaticCredentials("tok"))
        assert exc_info.value.status_code is None

    async def test_unrecognized_body_fails_decoding(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": "run_1"})

        with pytest.raises(ProviderError) as exc_info:
            await _client(handler).get_run(StaticCredentials("tok"), "thread_1", "run_1")
        assert exc_info.value.step == "get_run"
        assert exc_info.value.status_code == 200
        assert "status" in exc_info.value.provider_message

    async def test_non_json_success_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>ok</html>")

        with pytest.raises(ProviderError):
            await _client(handler).create_thread(StaticCredentials("tok"))
