import httpx
import pytest

from scribe.config import Config
from scribe.gemini import GeminiClient
from scribe.key_pool import KeyPool
from scribe.main import app as main_app
from scribe.service import DocumentService

GENERATE_URL = (
    "https://generativelanguage.googleapis.com"
    "/v1beta/models/gemini-3-flash-preview:generateContent"
)


def make_config(api_keys) -> Config:
    return Config(
        api_keys=list(api_keys),
        ocr_delay_seconds=0,
        format_delay_seconds=0,
        translate_delay_seconds=0,
        format_max_chars=20,
        translate_max_chars=20,
    )


def gemini_text(text: str) -> httpx.Response:
    return httpx.Response(
        200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]}
    )


def gemini_error(code: int, message: str, status: str = "") -> httpx.Response:
    return httpx.Response(
        code, json={"error": {"code": code, "message": message, "status": status}}
    )


@pytest.fixture
def api_keys():
    return ["test_key_1", "test_key_2"]


@pytest.fixture
def app(api_keys):
    config = make_config(api_keys)
    http_client = httpx.AsyncClient(base_url=config.gemini_base_url)

    main_app.state.config = config
    main_app.state.http_client = http_client
    main_app.state.key_pool = KeyPool(config.api_keys)
    main_app.state.service = DocumentService(config, GeminiClient(http_client))

    yield main_app

    for name in ("config", "http_client", "key_pool", "service"):
        if hasattr(main_app.state, name):
            delattr(main_app.state, name)
