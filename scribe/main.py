"""FastAPI application for chunked Gemini document processing."""

import logging
from contextlib import asynccontextmanager
from typing import Dict

import httpx
from fastapi import FastAPI, Request

from scribe.admin import admin_router
from scribe.config import load_config
from scribe.gemini import GeminiClient
from scribe.jobs_api import jobs_router
from scribe.key_pool import KeyPool
from scribe.service import DocumentService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle: startup and shutdown."""
    config = load_config()

    logging.basicConfig(level=getattr(logging, config.log_level))

    http_client = httpx.AsyncClient(
        base_url=config.gemini_base_url,
        timeout=httpx.Timeout(10.0, read=config.request_timeout_seconds, write=30.0),
        limits=httpx.Limits(max_keepalive_connections=20, max_connections=100),
    )

    app.state.config = config
    app.state.http_client = http_client
    app.state.key_pool = KeyPool(config.api_keys)
    service = DocumentService(config, GeminiClient(http_client))
    app.state.service = service

    logger.info("scribe started with %d default keys", len(config.api_keys))

    yield

    await service.shutdown()
    await http_client.aclose()
    logger.info("scribe stopped")


app = FastAPI(title="Scribe Document Processing", lifespan=lifespan)

app.include_router(admin_router)
app.include_router(jobs_router)


@app.get("/")
async def root(request: Request) -> Dict[str, object]:
    key_pool: KeyPool = request.app.state.key_pool
    return {
        "service": "Scribe Document Processing",
        "status": "running",
        "total_keys": len(key_pool),
    }


@app.get("/health")
async def health_check(request: Request) -> Dict[str, object]:
    """Health check endpoint with key pool and job counts."""
    key_pool: KeyPool = request.app.state.key_pool
    service = request.app.state.service
    return {
        "status": "healthy",
        "total_keys": len(key_pool),
        "jobs": len(service.jobs),
        "running": len(service.tasks),
    }
