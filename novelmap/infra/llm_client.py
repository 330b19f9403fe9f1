"""Shared LLM plumbing: error types, usage accounting, JSON recovery, client factory."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from novelmap.infra import config

if TYPE_CHECKING:
    from novelmap.infra.anthropic_client import AnthropicClient

logger = logging.getLogger(__name__)


@dataclass
class LlmUsage:
    """Token usage from an LLM call."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


# Global semaphore limiting concurrent cloud calls (rate-limit friendly).
_cloud_semaphore: asyncio.Semaphore | None = None


def _get_cloud_semaphore() -> asyncio.Semaphore:
    """Lazily create semaphore in the running event loop."""
    global _cloud_semaphore
    if _cloud_semaphore is None:
        _cloud_semaphore = asyncio.Semaphore(3)
    return _cloud_semaphore


class LLMError(Exception):
    """Base exception for LLM client errors."""


class LLMTimeoutError(LLMError):
    """Raised when LLM request times out."""


class LLMAuthError(LLMError):
    """Raised when the provider rejects the credentials (401/403) or none are configured."""


class LLMParseError(LLMError):
    """Raised when JSON parsing of LLM response fails."""


def _extract_json(text: str) -> dict | list:
    """Try to extract JSON from text that may contain markdown fences or extra text."""
    # Strip markdown code fences
    cleaned = re.sub(r"```(?:json)?\s*", "", text)
    cleaned = cleaned.strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    # Try the first JSON array, then the first JSON object
    for pattern in (r"\[[\s\S]*\]", r"\{[\s\S]*\}"):
        match = re.search(pattern, cleaned)
        if match:
            try:
                return json.loads(match.group())
            except json.JSONDecodeError:
                continue

    raise LLMParseError(f"Failed to extract JSON from LLM response: {text[:200]}...")


# Module-level singleton
_client: AnthropicClient | None = None


def get_llm_client() -> AnthropicClient:
    """Return module-level singleton client built from current config."""
    global _client
    if _client is None:
        if not config.ANTHROPIC_API_KEY:
            raise LLMAuthError("ANTHROPIC_API_KEY is not configured")
        from novelmap.infra.anthropic_client import AnthropicClient

        _client = AnthropicClient(
            base_url=config.LLM_BASE_URL,
            api_key=config.ANTHROPIC_API_KEY,
            model=config.LLM_MODEL,
        )
        logger.info("Remote classifier client created (model=%s)", config.LLM_MODEL)
    return _client
