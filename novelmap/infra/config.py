import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DATA_DIR = Path(os.environ.get("NOVELMAP_DATA_DIR", Path.home() / ".novelmap"))
DB_PATH = DATA_DIR / "novelmap.db"

# Remote classification (Anthropic Messages API)
ANTHROPIC_API_KEY = os.environ.get("ANTHROPIC_API_KEY", "")
LLM_BASE_URL = os.environ.get("LLM_BASE_URL", "https://api.anthropic.com")
LLM_MODEL = os.environ.get("LLM_MODEL", "claude-haiku-4-5-20251001")
LLM_MAX_TOKENS = int(os.environ.get("LLM_MAX_TOKENS", "4096"))
LLM_BATCH_SIZE = int(os.environ.get("LLM_BATCH_SIZE", "25"))
LLM_TIMEOUT = float(os.environ.get("LLM_TIMEOUT", "120"))

# Entities below this confidence are queued for review / remote enhancement
REVIEW_CONFIDENCE_THRESHOLD = int(os.environ.get("REVIEW_CONFIDENCE_THRESHOLD", "50"))

# Preserve .env initial values as fallback when runtime values are cleared
_ENV_ANTHROPIC_API_KEY = ANTHROPIC_API_KEY
_ENV_LLM_MODEL = LLM_MODEL


def update_llm_config(
    api_key: str,
    model: str = "",
    base_url: str = "",
) -> None:
    """Hot-update remote classification settings at runtime (no restart needed).

    Falls back to .env initial values when the provided values are empty.
    """
    global ANTHROPIC_API_KEY, LLM_MODEL, LLM_BASE_URL  # noqa: PLW0603

    ANTHROPIC_API_KEY = api_key or _ENV_ANTHROPIC_API_KEY
    LLM_MODEL = model or _ENV_LLM_MODEL
    if base_url:
        LLM_BASE_URL = base_url

    _reset_llm_client()


def _reset_llm_client() -> None:
    """Drop the cached client so the next call picks up new settings."""
    from novelmap.infra import llm_client

    llm_client._client = None


def ensure_data_dir() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
