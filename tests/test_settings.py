"""Tests for runtime remote-classifier settings."""

import pytest

from novelmap.api.routes import settings
from novelmap.infra import config, llm_client
from novelmap.infra.llm_client import LLMAuthError, get_llm_client


@pytest.fixture
def env_config(monkeypatch):
    """Pin config to known .env values; monkeypatch restores them afterwards."""
    monkeypatch.setattr(config, "ANTHROPIC_API_KEY", "")
    monkeypatch.setattr(config, "_ENV_ANTHROPIC_API_KEY", "")
    monkeypatch.setattr(config, "LLM_MODEL", "claude-haiku-4-5-20251001")
    monkeypatch.setattr(config, "_ENV_LLM_MODEL", "claude-haiku-4-5-20251001")
    monkeypatch.setattr(config, "LLM_BASE_URL", "https://api.anthropic.com")
    monkeypatch.setattr(llm_client, "_client", None)


@pytest.mark.asyncio
async def test_unconfigured_key(env_config):
    body = await settings.get_llm_config()
    assert body["has_api_key"] is False
    assert body["api_key_masked"] == ""
    with pytest.raises(LLMAuthError):
        get_llm_client()


@pytest.mark.asyncio
async def test_saving_config_rebuilds_client(env_config):
    body = await settings.save_llm_config(settings.LlmConfigRequest(
        api_key="sk-ant-1234567890", model="claude-sonnet-4-5",
    ))

    assert body["success"] is True
    assert body["api_key_masked"] == "sk-a****7890"
    assert body["model"] == "claude-sonnet-4-5"
    assert body["base_url"] == "https://api.anthropic.com"

    client = get_llm_client()
    assert client.model == "claude-sonnet-4-5"
    assert client.api_key == "sk-ant-1234567890"

    # A second save drops the cached client
    await settings.save_llm_config(settings.LlmConfigRequest(
        api_key="sk-ant-1234567890", base_url="https://proxy.test/",
    ))
    rebuilt = get_llm_client()
    assert rebuilt is not client
    assert rebuilt.model == "claude-haiku-4-5-20251001"
    assert rebuilt.base_url == "https://proxy.test"


@pytest.mark.asyncio
async def test_short_key_is_fully_masked(env_config):
    body = await settings.save_llm_config(settings.LlmConfigRequest(api_key="sk-1"))
    assert body["api_key_masked"] == "****"
