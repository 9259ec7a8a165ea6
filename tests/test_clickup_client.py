import asyncio

import httpx
import pytest

from subtrack.config import settings
from subtrack.exceptions import ClickUpError, ClickUpNotConfiguredError
from subtrack.services.clickup import ClickUpClient


def _client(handler, api_key="pk_test"):
    return ClickUpClient(api_key=api_key, base_url="https://clickup.test/api/v2/",
                         transport=httpx.MockTransport(handler))


def test_requests_carry_token_and_markdown_flag():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"id": "t1"})

    assert asyncio.run(_client(handler).get_task(" t1 ")) == {"id": "t1"}
    assert seen[0].url.path == "/api/v2/task/t1"
    assert seen[0].url.params["include_markdown_description"] == "true"
    assert seen[0].headers["Authorization"] == "pk_test"


def test_get_comments():
    def handler(request):
        assert request.url.path.endswith("/task/t1/comment")
        return httpx.Response(200, json={"comments": [{"id": "c1", "comment_text": "hi"}]})

    comments = asyncio.run(_client(handler).get_comments("t1"))
    assert [c["comment_text"] for c in comments] == ["hi"]


def test_transport_errors_are_retried():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectError("down", request=request)
        return httpx.Response(200, json={"id": "t1"})

    assert asyncio.run(_client(handler).get_task("t1"))["id"] == "t1"
    assert len(calls) == 2


def test_gives_up_after_retries():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("down", request=request)

    with pytest.raises(ClickUpError) as exc:
        asyncio.run(_client(handler).get_task("t1"))
    assert exc.value.status_code is None
    assert len(calls) == settings.RETRIES + 1


def test_http_errors_keep_status():
    with pytest.raises(ClickUpError) as exc:
        asyncio.run(_client(lambda r: httpx.Response(401, json={"err": "Token invalid"})).get_task("t1"))
    assert exc.value.status_code == 401
    assert str(exc.value) == "ClickUp API error: Unauthorized"


def test_unconfigured_client_never_calls_out():
    def handler(request):
        raise AssertionError("no request expected")

    client = _client(handler, api_key="")
    assert client.configured is False
    with pytest.raises(ClickUpNotConfiguredError):
        asyncio.run(client.post_comment("t1", {"comment_text": "x"}))
