import logging
from typing import List, Optional, Protocol, Sequence, Tuple

from scribe.errors import (
    AllCredentialsExhausted,
    InvalidCredential,
    RemoteCallError,
)
from scribe.key_pool import KeyPool, key_prefix
from scribe.models import Part

logger = logging.getLogger(__name__)


class Generator(Protocol):
    async def generate(
        self, model: str, parts: Sequence[Part], credential: str
    ) -> str: ...


class RotatingCaller:
    """Sends one request, rotating through the key pool on recoverable errors."""

    def __init__(self, client: Generator, model: str):
        self.client = client
        self.model = model

    async def call(self, pool: KeyPool, parts: Sequence[Part]) -> str:
        """
        Try each key in pool order, once.

        Flow:
        1. Rate limits and transient server errors -> log, next key
        2. Invalid key -> log, next key
        3. Any other error -> raise immediately (another key will not help)
        4. Loop ends with at least one recoverable failure (or an empty pool)
           -> AllCredentialsExhausted
        5. Loop ends with only invalid keys -> raise the last InvalidCredential
        """
        attempts: List[Tuple[str, str]] = []
        saw_recoverable = False
        last_invalid: Optional[InvalidCredential] = None

        for position, credential in enumerate(pool.load(), start=1):
            try:
                return await self.client.generate(self.model, parts, credential)
            except InvalidCredential as exc:
                last_invalid = exc
                attempts.append((key_prefix(credential), "invalid key"))
                logger.warning(
                    "Invalid key rejected (key=%s, position=%s): %s",
                    key_prefix(credential),
                    position,
                    exc.message,
                )
            except RemoteCallError as exc:
                if not exc.recoverable:
                    raise
                saw_recoverable = True
                attempts.append((key_prefix(credential), type(exc).__name__))
                logger.warning(
                    "Recoverable error, rotating (key=%s, type=%s, position=%s)",
                    key_prefix(credential),
                    type(exc).__name__,
                    position,
                )

        if last_invalid is not None and not saw_recoverable:
            raise last_invalid
        raise AllCredentialsExhausted(attempts)
