"""Runtime settings for the remote classifier."""

from fastapi import APIRouter
from pydantic import BaseModel

from novelmap.infra import config

router = APIRouter(prefix="/api/settings", tags=["settings"])


class LlmConfigRequest(BaseModel):
    api_key: str = ""
    model: str = ""
    base_url: str = ""


def _mask(api_key: str) -> str:
    if not api_key:
        return ""
    return api_key[:4] + "****" + api_key[-4:] if len(api_key) > 8 else "****"


@router.get("/llm")
async def get_llm_config():
    """Return current remote classifier configuration (API key masked)."""
    return {
        "base_url": config.LLM_BASE_URL,
        "model": config.LLM_MODEL,
        "has_api_key": bool(config.ANTHROPIC_API_KEY),
        "api_key_masked": _mask(config.ANTHROPIC_API_KEY),
    }


@router.post("/llm")
async def save_llm_config(req: LlmConfigRequest):
    """Hot-update the remote classifier; empty fields fall back to the .env values."""
    config.update_llm_config(api_key=req.api_key, model=req.model, base_url=req.base_url)
    return {"success": True, **(await get_llm_config())}
