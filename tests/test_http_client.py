"""
Tests for the retrying HTTP client.

These tests verify that:
1. Successful responses are returned on the first attempt
2. 408/429/503/504 and transport errors are retried up to the attempt limit
3. Other error statuses fail immediately without retrying
4. Exhaustion propagates the last failure to the caller
"""

import json

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import unused_port

from modsync.exceptions import (
    APIError,
    APINotFoundError,
    APIRateLimitError,
    APIServerError,
)
from modsync.services import ResilientHttpClient, RetryEvent

pytest_plugins = ("pytest_asyncio",)


@pytest.mark.asyncio
async def test_get_text_success(stub, http):
    url = stub.add("/hello", "hello world")

    assert await http.get_text(url) == "hello world"
    assert stub.hits["/hello"] == 1


@pytest.mark.asyncio
async def test_retries_transient_status_then_succeeds(stub):
    events = []
    url = stub.add("/flaky", 503, 504, "ok")

    async with ResilientHttpClient(retry_delay=0.01, jitter=0, on_retry=events.append) as http:
        assert await http.get_text(url) == "ok"

    assert stub.hits["/flaky"] == 3
    assert [e.attempt for e in events] == [1, 2]
    assert [e.status for e in events] == [503, 504]
    assert all(isinstance(e, RetryEvent) for e in events)


@pytest.mark.asyncio
async def test_exhaustion_raises_last_failure(stub, http):
    url = stub.add("/down", 503)

    with pytest.raises(APIServerError) as exc_info:
        await http.get_text(url)

    assert exc_info.value.status == 503
    assert stub.hits["/down"] == 3


@pytest.mark.asyncio
async def test_single_attempt_raises_failure(stub):
    url = stub.add("/down", 503)

    async with ResilientHttpClient(max_attempts=0, retry_delay=0.01) as client:
        with pytest.raises(APIServerError):
            await client.get_text(url)

    assert stub.hits["/down"] == 1


@pytest.mark.asyncio
async def test_rate_limit_is_retried(stub, http):
    url = stub.add("/limited", 429, 429, 429)

    with pytest.raises(APIRateLimitError):
        await http.get_bytes(url)

    assert stub.hits["/limited"] == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [400, 403, 404, 500])
async def test_non_retryable_status_fails_immediately(stub, http, status):
    url = stub.add("/fail", status)

    with pytest.raises(APIError) as exc_info:
        await http.get_text(url)

    assert exc_info.value.status == status
    assert stub.hits["/fail"] == 1
    if status == 404:
        assert isinstance(exc_info.value, APINotFoundError)


@pytest.mark.asyncio
async def test_transport_error_is_retried():
    events = []
    url = f"http://127.0.0.1:{unused_port()}/nothing"

    async with ResilientHttpClient(retry_delay=0.01, jitter=0, on_retry=events.append) as http:
        with pytest.raises(aiohttp.ClientError):
            await http.get_text(url)

    assert len(events) == 2
    assert all(e.status is None and e.error is not None for e in events)


@pytest.mark.asyncio
async def test_get_json_and_post_json(stub, http):
    async def echo(request: web.Request) -> web.Response:
        body = await request.json()
        return web.Response(text=json.dumps({"received": body}))

    json_url = stub.add("/data", {"versions": [1, 2]})
    echo_url = stub.add("/echo", echo)

    assert await http.get_json(json_url) == {"versions": [1, 2]}
    reply = await http.post_json(echo_url, {"name": "Steve"})
    assert json.loads(reply) == {"received": {"name": "Steve"}}


@pytest.mark.asyncio
async def test_get_json_rejects_invalid_body(stub, http):
    url = stub.add("/broken", "not json")

    with pytest.raises(ValueError):
        await http.get_json(url)


@pytest.mark.asyncio
async def test_stream_yields_open_response(stub, http):
    url = stub.add("/blob", b"x" * 20000)

    async with http.stream(url) as response:
        data = await response.read()

    assert len(data) == 20000


def test_compute_delay_is_exponential():
    http = ResilientHttpClient(retry_delay=1.0, jitter=0)

    assert [http.compute_delay(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]


def test_compute_delay_jitter_is_bounded():
    http = ResilientHttpClient(retry_delay=1.0, jitter=0.5)

    for _ in range(20):
        assert 2.0 <= http.compute_delay(2) <= 3.0
