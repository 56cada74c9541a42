import base64
import logging
from typing import Dict, List, Sequence, cast

import httpx

from scribe.errors import (
    ContentRejected,
    TransientServiceError,
    UnexpectedResponse,
    classify_error,
)
from scribe.key_pool import key_prefix
from scribe.models import Part, TextPart

logger = logging.getLogger(__name__)

BLOCKING_FINISH_REASONS = frozenset(
    {"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII", "RECITATION"}
)


def _encode_part(part: Part) -> Dict[str, object]:
    if isinstance(part, TextPart):
        return {"text": part.text}
    return {
        "inlineData": {
            "mimeType": part.mime_type,
            "data": base64.b64encode(part.data).decode("ascii"),
        }
    }


def build_payload(parts: Sequence[Part]) -> Dict[str, object]:
    return {
        "contents": [{"parts": [_encode_part(part) for part in parts]}],
        "generationConfig": {"thinkingConfig": {"thinkingBudget": 0}},
    }


def extract_text(data: Dict[str, object]) -> str:
    """Return the concatenated text of the first candidate.

    Raises:
        ContentRejected: If the prompt or the candidate was blocked
    """
    feedback = data.get("promptFeedback")
    if isinstance(feedback, dict) and feedback.get("blockReason"):
        raise ContentRejected(f"Prompt blocked: {feedback['blockReason']}")

    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""

    candidate = cast(Dict[str, object], candidates[0])
    finish_reason = str(candidate.get("finishReason", ""))
    content = candidate.get("content")
    parts: List[object] = []
    if isinstance(content, dict):
        parts = cast(List[object], content.get("parts", []))

    texts = [
        str(part["text"])
        for part in parts
        if isinstance(part, dict) and "text" in part and not part.get("thought")
    ]
    if not texts and finish_reason in BLOCKING_FINISH_REASONS:
        raise ContentRejected(f"Response blocked: {finish_reason}")
    return "".join(texts)


class GeminiClient:
    """Thin async wrapper around the generateContent endpoint."""

    def __init__(self, http_client: httpx.AsyncClient):
        self.http_client = http_client

    async def generate(self, model: str, parts: Sequence[Part], credential: str) -> str:
        try:
            response = await self.http_client.post(
                f"/v1beta/models/{model}:generateContent",
                json=build_payload(parts),
                headers={"x-goog-api-key": credential},
            )
        except httpx.TimeoutException as exc:
            logger.error("Timeout calling Gemini (key=%s)", key_prefix(credential))
            raise TransientServiceError(f"Timeout: {exc}") from exc
        except httpx.RequestError as exc:
            logger.error("Request error: %s", exc)
            raise TransientServiceError(f"Request error: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = response.text

        if response.status_code != 200:
            raise classify_error(response.status_code, data)

        if not isinstance(data, dict):
            raise UnexpectedResponse(
                "Gemini returned a non-JSON body", status_code=response.status_code
            )
        return extract_text(cast(Dict[str, object], data))
