"""Admin endpoints for the default key pool."""

from typing import Dict, List, cast

from fastapi import APIRouter, HTTPException, Request
from starlette.responses import JSONResponse

from scribe.config import parse_key_list
from scribe.key_pool import KeyPool

admin_router = APIRouter(prefix="/admin", tags=["admin"])


@admin_router.get("/keys")
async def get_pool_status(request: Request) -> Dict[str, object]:
    """Get the default key pool, keys masked."""
    key_pool: KeyPool = request.app.state.key_pool
    return key_pool.get_status()


@admin_router.post("/keys")
async def add_keys(request: Request) -> JSONResponse:
    """Append keys to the end of the default key pool.

    Body: {"api_keys": ["key-a", "key-b"]} or {"api_keys": "key-a\\nkey-b"}
    """
    key_pool: KeyPool = request.app.state.key_pool
    body = await request.json()
    raw = body.get("api_keys") if isinstance(body, dict) else None
    if isinstance(raw, str):
        keys = parse_key_list(raw)
    elif isinstance(raw, list):
        keys = [str(item) for item in cast(List[object], raw)]
    else:
        raise HTTPException(status_code=400, detail="api_keys is required")

    added = key_pool.append(keys)
    if added == 0:
        raise HTTPException(status_code=400, detail="api_keys is required")
    return JSONResponse(
        content={"added": added, "total_keys": len(key_pool)}, status_code=201
    )
