"""Tests for the Anthropic Messages API client (httpx mocked)."""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from novelmap.infra.anthropic_client import AnthropicClient
from novelmap.infra.llm_client import LLMAuthError, LLMError, LLMParseError, LLMTimeoutError

_URL = "https://api.anthropic.test/v1/messages"


def _client():
    return AnthropicClient(
        base_url="https://api.anthropic.test/", api_key="sk-test", model="claude-haiku-4-5",
    )


def _response(status=200, text=None, body=None):
    request = httpx.Request("POST", _URL)
    if body is not None:
        return httpx.Response(status, json=body, request=request)
    return httpx.Response(status, text=text or "", request=request)


def _patched(response=None, error=None):
    """Patch httpx.AsyncClient; returns (patcher, mock_client)."""
    mock_client = AsyncMock()
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    if error is not None:
        mock_client.post = AsyncMock(side_effect=error)
    else:
        mock_client.post = AsyncMock(return_value=response)
    patcher = patch("novelmap.infra.anthropic_client.httpx.AsyncClient", return_value=mock_client)
    return patcher, mock_client


@pytest.mark.asyncio
async def test_generate_parses_json_and_usage():
    verdicts = [{"name": "Grendel", "type": "character", "isNoise": False, "confidence": 90}]
    body = {
        "content": [{"type": "text", "text": json.dumps(verdicts)}],
        "usage": {"input_tokens": 321, "output_tokens": 54},
        "stop_reason": "end_turn",
    }
    patcher, mock_client = _patched(_response(body=body))
    with patcher:
        content, usage = await _client().generate("sys", "prompt", format={"type": "array"})

    assert content == verdicts
    assert usage.prompt_tokens == 321
    assert usage.completion_tokens == 54
    assert usage.total_tokens == 375

    args, kwargs = mock_client.post.call_args
    assert args[0] == _URL
    assert kwargs["headers"]["x-api-key"] == "sk-test"
    assert kwargs["headers"]["anthropic-version"] == "2023-06-01"
    assert kwargs["json"]["system"] == "sys"
    assert kwargs["json"]["messages"] == [{"role": "user", "content": "prompt"}]


@pytest.mark.asyncio
async def test_generate_recovers_fenced_json():
    body = {
        "content": [{"type": "text", "text": 'Here you go:\n```json\n[{"name": "Heorot"}]\n```'}],
        "usage": {"input_tokens": 1, "output_tokens": 1},
    }
    patcher, _ = _patched(_response(body=body))
    with patcher:
        content, _ = await _client().generate("sys", "prompt", format={"type": "array"})
    assert content == [{"name": "Heorot"}]


@pytest.mark.asyncio
async def test_plain_text_without_format():
    body = {"content": [{"type": "text", "text": "hello"}], "usage": {}}
    patcher, _ = _patched(_response(body=body))
    with patcher:
        content, usage = await _client().generate("sys", "prompt")
    assert content == "hello"
    assert usage.total_tokens == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 403])
async def test_rejected_credentials_raise_auth_error(status):
    patcher, _ = _patched(_response(status, text="invalid x-api-key"))
    with patcher, pytest.raises(LLMAuthError):
        await _client().generate("sys", "prompt")


@pytest.mark.asyncio
async def test_server_error_raises_llm_error():
    patcher, _ = _patched(_response(529, text="overloaded"))
    with patcher, pytest.raises(LLMError, match="529"):
        await _client().generate("sys", "prompt")


@pytest.mark.asyncio
async def test_timeout_raises_timeout_error():
    patcher, _ = _patched(error=httpx.ReadTimeout("timed out"))
    with patcher, pytest.raises(LLMTimeoutError):
        await _client().generate("sys", "prompt", timeout=5)


@pytest.mark.asyncio
async def test_unreachable_host_raises_llm_error():
    patcher, _ = _patched(error=httpx.ConnectError("connection refused"))
    with patcher, pytest.raises(LLMError, match="unreachable"):
        await _client().generate("sys", "prompt")


@pytest.mark.asyncio
async def test_empty_content_is_an_error():
    patcher, _ = _patched(_response(body={"content": [], "usage": {}}))
    with patcher, pytest.raises(LLMError):
        await _client().generate("sys", "prompt")


@pytest.mark.asyncio
async def test_non_json_body_is_a_parse_error():
    patcher, _ = _patched(_response(200, text="<html>Bad gateway</html>"))
    with patcher, pytest.raises(LLMParseError, match="non-JSON"):
        await _client().generate("sys", "prompt", format={"type": "array"})


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    ["not", "an", "object"],
    {"content": "just a string"},
    {"content": [{"type": "tool_use", "id": "t1"}]},
])
async def test_unexpected_body_shape_is_a_parse_error(body):
    patcher, _ = _patched(_response(body=body))
    with patcher, pytest.raises(LLMParseError):
        await _client().generate("sys", "prompt")


@pytest.mark.asyncio
async def test_odd_usage_counts_as_zero():
    body = {"content": [{"type": "text", "text": "ok"}], "usage": {"input_tokens": "many"}}
    patcher, _ = _patched(_response(body=body))
    with patcher:
        _, usage = await _client().generate("sys", "prompt")
    assert usage.total_tokens == 0
