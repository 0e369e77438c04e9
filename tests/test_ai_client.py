"""
Tests for the Claude API client, driven through an httpx mock transport.
"""
import json

import httpx
import pytest

from services.workflow_builder.ai_client import AIClient, LLMResponse
from services.workflow_builder.errors import UpstreamCallError
from services.workflow_builder.rate_limiter import RateLimitConfig, TokenBucketRateLimiter


def message_body(*texts, stop_reason="end_turn"):
    return {
        "id": "msg_test",
        "type": "message",
        "model": "claude-test",
        "content": [{"type": "text", "text": text} for text in texts],
        "stop_reason": stop_reason,
        "usage": {"input_tokens": 12, "output_tokens": 34},
    }


class ScriptedTransport:
    """Replies with queued (status, body, headers) tuples and records requests."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        status, body, headers = reply
        if isinstance(body, str):
            return httpx.Response(status, text=body, headers=headers)
        return httpx.Response(status, json=body, headers=headers)


@pytest.fixture
def make_client(recorded_sleeps):
    def factory(*replies, api_key="test-key", max_attempts=3):
        script = ScriptedTransport(*replies)
        limiter = TokenBucketRateLimiter(RateLimitConfig(requests_per_minute=6000, burst_limit=100))
        client = AIClient(
            anthropic_api_key=api_key,
            model="claude-test",
            base_url="https://llm.test/v1/messages",
            max_attempts=max_attempts,
            rate_limiter=limiter,
            transport=httpx.MockTransport(script),
            sleep=recorded_sleeps,
        )
        return client, script
    return factory


class TestComplete:
    """Successful calls."""

    @pytest.mark.asyncio
    async def test_text_blocks_are_joined(self, make_client):
        client, script = make_client((200, message_body("Hello ", "world"), {}))

        response = await client.complete("system", "user", max_tokens=100, temperature=0.3, stage="architect")

        assert isinstance(response, LLMResponse)
        assert response.text == "Hello world"
        assert response.stop_reason == "end_turn"
        assert response.request_id == "msg_test"
        assert response.usage["output_tokens"] == 34
        assert response.hit_token_limit is False

    @pytest.mark.asyncio
    async def test_request_payload_and_headers(self, make_client):
        client, script = make_client((200, message_body("{}"), {}))

        await client.complete("be terse", "build it", max_tokens=4096, temperature=0.7)

        request = script.requests[0]
        payload = json.loads(request.content)
        assert request.headers["x-api-key"] == "test-key"
        assert "anthropic-version" in request.headers
        assert payload["model"] == "claude-test"
        assert payload["max_tokens"] == 4096
        assert payload["temperature"] == 0.7
        assert payload["system"] == "be terse"
        assert payload["messages"] == [{"role": "user", "content": "build it"}]

    @pytest.mark.asyncio
    async def test_max_tokens_stop_reason_is_reported(self, make_client):
        client, _ = make_client((200, message_body('{"nodes": [', stop_reason="max_tokens"), {}))

        response = await client.complete("s", "u", max_tokens=10, temperature=0.0)

        assert response.hit_token_limit is True

    @pytest.mark.asyncio
    async def test_each_call_takes_a_rate_limit_token(self, make_client):
        client, _ = make_client((200, message_body("a"), {}), (200, message_body("b"), {}))

        await client.complete("s", "u", max_tokens=10, temperature=0.0)
        await client.complete("s", "u", max_tokens=10, temperature=0.0)

        assert client.rate_limiter.total_requests == 2
        assert client.request_count == 2


class TestRetries:
    """Transient failures are retried inside the client."""

    @pytest.mark.asyncio
    async def test_429_honours_retry_after(self, make_client, recorded_sleeps):
        client, script = make_client(
            (429, {"error": {"type": "rate_limit_error"}}, {"Retry-After": "3"}),
            (200, message_body("ok"), {}),
        )

        response = await client.complete("s", "u", max_tokens=10, temperature=0.0)

        assert response.text == "ok"
        assert len(script.requests) == 2
        assert recorded_sleeps.delays == [3.0]
        assert client.rate_limiter.rate_limited_requests == 1

    @pytest.mark.asyncio
    async def test_server_errors_back_off_then_give_up(self, make_client, recorded_sleeps):
        client, script = make_client(
            (500, {"error": "boom"}, {}),
            (503, {"error": "busy"}, {}),
            (529, {"error": "overloaded"}, {}),
        )

        with pytest.raises(UpstreamCallError) as exc_info:
            await client.complete("s", "u", max_tokens=10, temperature=0.0)

        assert exc_info.value.status_code == 529
        assert exc_info.value.retryable is True
        assert len(script.requests) == 3
        assert recorded_sleeps.delays == pytest.approx([2.0, 4.0])

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self, make_client, recorded_sleeps):
        client, script = make_client((401, {"error": {"type": "authentication_error"}}, {}))

        with pytest.raises(UpstreamCallError, match="HTTP 401") as exc_info:
            await client.complete("s", "u", max_tokens=10, temperature=0.0)

        assert exc_info.value.status_code == 401
        assert exc_info.value.retryable is False
        assert len(script.requests) == 1
        assert recorded_sleeps.delays == []


class TestFailures:
    """Failures that never reach a response body."""

    @pytest.mark.asyncio
    async def test_missing_api_key(self, make_client):
        client, script = make_client()
        client.anthropic_api_key = None

        with pytest.raises(UpstreamCallError, match="API key"):
            await client.complete("s", "u", max_tokens=10, temperature=0.0)
        assert script.requests == []

    @pytest.mark.asyncio
    async def test_timeout(self, make_client):
        client, _ = make_client(httpx.ReadTimeout("slow"))

        with pytest.raises(UpstreamCallError, match="timed out"):
            await client.complete("s", "u", max_tokens=10, temperature=0.0)

    @pytest.mark.asyncio
    async def test_connection_error(self, make_client):
        client, _ = make_client(httpx.ConnectError("refused"))

        with pytest.raises(UpstreamCallError, match="Connection error"):
            await client.complete("s", "u", max_tokens=10, temperature=0.0)

    @pytest.mark.asyncio
    async def test_unexpected_body(self, make_client):
        client, _ = make_client((200, {"id": "msg", "unexpected": True}, {}))

        with pytest.raises(UpstreamCallError, match="response shape"):
            await client.complete("s", "u", max_tokens=10, temperature=0.0)

    @pytest.mark.asyncio
    async def test_non_json_body(self, make_client, recorded_sleeps):
        client, script = make_client((200, "<html>gateway</html>", {"Content-Type": "text/html"}))

        with pytest.raises(UpstreamCallError, match="non-JSON body") as exc_info:
            await client.complete("s", "u", max_tokens=10, temperature=0.0)

        assert exc_info.value.status_code == 200
        assert exc_info.value.retryable is False
        assert len(script.requests) == 1
        assert recorded_sleeps.delays == []

    @pytest.mark.asyncio
    async def test_body_that_is_not_an_object(self, make_client):
        client, _ = make_client((200, ["not", "a", "message"], {}))

        with pytest.raises(UpstreamCallError, match="expected an object, got list"):
            await client.complete("s", "u", max_tokens=10, temperature=0.0)


class TestClientInfo:
    def test_model_info(self, make_client):
        client, _ = make_client()
        info = client.get_model_info()

        assert info["model"] == "claude-test"
        assert info["configured"] is True
        assert info["max_attempts"] == 3
