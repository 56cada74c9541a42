"""Error taxonomy and the Gemini error classifier."""

from typing import Dict, List, Optional, Tuple, cast

MAX_MESSAGE_LENGTH = 150

TRANSIENT_STATUS_CODES = frozenset({500, 502, 503, 504})
TRANSIENT_STATUSES = frozenset({"UNAVAILABLE", "INTERNAL", "DEADLINE_EXCEEDED"})
MALFORMED_STATUS_CODES = frozenset({400, 404, 413})


class ScribeError(Exception):
    """Base class for all scribe errors."""


class NoCredentialsConfigured(ScribeError):
    def __init__(self, message: str = "At least one API key is required"):
        super().__init__(message)


class InvalidInput(ScribeError):
    pass


class InvalidJobState(ScribeError):
    pass


class JobCancelled(ScribeError):
    pass


class RemoteCallError(ScribeError):
    """A failed generateContent call."""

    recoverable = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(truncate(message))
        self.message = truncate(message)
        self.status_code = status_code


class RecoverableError(RemoteCallError):
    """The credential, not the request, is at fault; another key may work."""

    recoverable = True


class RateLimited(RecoverableError):
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = 429,
        is_daily: bool = False,
    ):
        super().__init__(message, status_code)
        self.is_daily = is_daily


class TransientServiceError(RecoverableError):
    pass


class InvalidCredential(RemoteCallError):
    pass


class MalformedRequest(RemoteCallError):
    pass


class ContentRejected(RemoteCallError):
    pass


class UnexpectedResponse(RemoteCallError):
    pass


class AllCredentialsExhausted(ScribeError):
    """Every key in the pool was tried for the current unit and none worked."""

    def __init__(self, attempts: Optional[List[Tuple[str, str]]] = None):
        self.attempts: List[Tuple[str, str]] = attempts or []
        # set by the orchestrator to the paused ProcessingJob
        self.job: Optional[object] = None
        if self.attempts:
            detail = ", ".join(f"{key}: {reason}" for key, reason in self.attempts)
            message = f"All API keys exhausted ({detail})"
        else:
            message = "All API keys exhausted"
        super().__init__(truncate(message, 500))


def truncate(message: str, limit: int = MAX_MESSAGE_LENGTH) -> str:
    if len(message) <= limit:
        return message
    return message[:limit] + "..."


def _error_fields(body: object) -> Tuple[str, str, List[str]]:
    """Pull (message, status, reasons) out of a Gemini error body."""
    if not isinstance(body, dict):
        return (str(body) if body else "", "", [])
    error_obj = cast(Dict[str, object], body).get("error", {})
    if not isinstance(error_obj, dict):
        return (str(error_obj), "", [])
    error_dict = cast(Dict[str, object], error_obj)
    message = str(error_dict.get("message", ""))
    status = str(error_dict.get("status", ""))
    reasons: List[str] = []
    details = error_dict.get("details", [])
    if isinstance(details, list):
        for detail in details:
            if isinstance(detail, dict) and "reason" in detail:
                reasons.append(str(detail["reason"]))
    return (message, status, reasons)


def classify_error(status_code: int, body: object) -> RemoteCallError:
    """Map a failed Gemini response onto the error taxonomy.

    Anything not recognised is treated as non-recoverable so a broken request
    is never rotated through the whole pool.
    """
    message, status, reasons = _error_fields(body)
    lowered = message.lower()
    text = message or f"HTTP {status_code}"

    if status_code == 429 or status == "RESOURCE_EXHAUSTED":
        is_daily = "per day" in lowered or "daily" in lowered
        return RateLimited(text, status_code=status_code, is_daily=is_daily)

    if status_code in TRANSIENT_STATUS_CODES or status in TRANSIENT_STATUSES:
        return TransientServiceError(text, status_code=status_code)

    if (
        "API_KEY_INVALID" in reasons
        or "api key not valid" in lowered
        or "api_key_invalid" in lowered
        or status_code in (401, 403)
        or status in ("UNAUTHENTICATED", "PERMISSION_DENIED")
    ):
        return InvalidCredential(text, status_code=status_code)

    if status_code in MALFORMED_STATUS_CODES or status in (
        "INVALID_ARGUMENT",
        "FAILED_PRECONDITION",
        "NOT_FOUND",
    ):
        return MalformedRequest(text, status_code=status_code)

    return UnexpectedResponse(text, status_code=status_code)
