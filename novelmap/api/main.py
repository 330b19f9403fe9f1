import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from novelmap.api.routes import analysis, detection, entities, extraction, projects, settings
from novelmap.api.websocket import extraction_ws
from novelmap.db.sqlite_db import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("Database ready")
    yield


app = FastAPI(title="NovelMap Engine", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# REST routes
app.include_router(projects.router)
app.include_router(entities.router)
app.include_router(detection.router)
app.include_router(extraction.router)
app.include_router(analysis.router)
app.include_router(settings.router)

# WebSocket routes
app.include_router(extraction_ws.router)


@app.get("/api/health")
async def health():
    from novelmap.infra import config
    return {
        "status": "ok",
        "llm_model": config.LLM_MODEL,
        "llm_configured": bool(config.ANTHROPIC_API_KEY),
    }
