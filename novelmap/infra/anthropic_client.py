"""Remote classifier transport over the Anthropic Messages API.

One POST per call to ``{base_url}/v1/messages``. Failures surface as the
``LLMError`` family from ``novelmap.infra.llm_client``:

  timeout              -> LLMTimeoutError
  HTTP 401 / 403       -> LLMAuthError
  other HTTP / network -> LLMError
  unreadable body      -> LLMParseError
"""

from __future__ import annotations

import json
import logging

import httpx

from novelmap.infra.llm_client import (
    LLMAuthError,
    LLMError,
    LLMParseError,
    LLMTimeoutError,
    LlmUsage,
    _extract_json,
    _get_cloud_semaphore,
)

logger = logging.getLogger(__name__)

_API_VERSION = "2023-06-01"
_CONNECT_TIMEOUT = 10.0


def _token_count(usage: dict, key: str) -> int:
    value = usage.get(key, 0)
    return value if isinstance(value, int) and not isinstance(value, bool) else 0


def _read_message(resp: httpx.Response) -> tuple[str, LlmUsage, str | None]:
    """Pull (text, usage, stop_reason) out of a Messages API response body."""
    try:
        body = resp.json()
    except ValueError as exc:
        raise LLMParseError(
            f"Anthropic API returned a non-JSON body: {resp.text[:200]!r}"
        ) from exc
    if not isinstance(body, dict):
        raise LLMParseError("Anthropic API body is not a JSON object")

    blocks = body.get("content")
    if not isinstance(blocks, list) or not blocks:
        raise LLMParseError("Anthropic API response has no content blocks")
    texts = [
        b.get("text") for b in blocks
        if isinstance(b, dict) and isinstance(b.get("text"), str)
    ]
    text = "".join(texts)
    if not text:
        raise LLMParseError("Anthropic API response has no text content")

    raw_usage = body.get("usage")
    raw_usage = raw_usage if isinstance(raw_usage, dict) else {}
    prompt_tokens = _token_count(raw_usage, "input_tokens")
    completion_tokens = _token_count(raw_usage, "output_tokens")
    usage = LlmUsage(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=prompt_tokens + completion_tokens,
    )
    return text, usage, body.get("stop_reason")


class AnthropicClient:
    """Sends one system + user message and returns (content, usage)."""

    def __init__(self, base_url: str, api_key: str, model: str):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model

    async def _post(self, payload: dict, timeout: float) -> httpx.Response:
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": _API_VERSION,
            "content-type": "application/json",
        }
        # Explicit transport so system proxy variables are ignored
        client = httpx.AsyncClient(
            transport=httpx.AsyncHTTPTransport(),
            timeout=httpx.Timeout(timeout, connect=_CONNECT_TIMEOUT),
        )
        try:
            async with client:
                resp = await client.post(
                    f"{self.base_url}/v1/messages", json=payload, headers=headers,
                )
                resp.raise_for_status()
                return resp
        except httpx.TimeoutException as exc:
            raise LLMTimeoutError(f"Anthropic request exceeded {timeout}s") from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status in (401, 403):
                raise LLMAuthError(
                    f"Anthropic API rejected credentials (HTTP {status})"
                ) from exc
            raise LLMError(
                f"Anthropic API HTTP error {status}: {exc.response.text[:300]}"
            ) from exc
        except httpx.TransportError as exc:
            raise LLMError(f"Anthropic API unreachable: {exc}") from exc

    async def generate(
        self,
        system: str,
        prompt: str,
        format: dict | None = None,  # noqa: A002
        temperature: float = 0.1,
        max_tokens: int = 4096,
        timeout: float = 120,
    ) -> tuple[str | dict | list, LlmUsage]:
        """Return the model's answer and token usage.

        With ``format`` set the answer is decoded as JSON, tolerating
        markdown fences and surrounding chatter; otherwise it is raw text.
        """
        payload = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system,
            "messages": [{"role": "user", "content": prompt}],
        }
        async with _get_cloud_semaphore():
            resp = await self._post(payload, timeout)

        text, usage, stop_reason = _read_message(resp)
        if format is None:
            return text, usage

        if stop_reason == "max_tokens":
            logger.warning("Classifier answer truncated at %d chars", len(text))
        try:
            return json.loads(text), usage
        except json.JSONDecodeError:
            return _extract_json(text), usage
