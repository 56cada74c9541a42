from typing import Dict, List, Sequence, Union

import pytest

from scribe.caller import RotatingCaller
from scribe.errors import (
    AllCredentialsExhausted,
    ContentRejected,
    InvalidCredential,
    MalformedRequest,
    RateLimited,
    TransientServiceError,
)
from scribe.key_pool import KeyPool
from scribe.models import Part, TextPart

Outcome = Union[str, Exception]


class FakeClient:
    def __init__(self, outcomes: Dict[str, Outcome]):
        self.outcomes = outcomes
        self.calls: List[str] = []

    async def generate(self, model: str, parts: Sequence[Part], credential: str) -> str:
        self.calls.append(credential)
        outcome = self.outcomes[credential]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


PARTS = [TextPart("prompt")]


@pytest.mark.asyncio
async def test_rotates_in_order_until_success():
    client = FakeClient(
        {
            "A": RateLimited("quota"),
            "B": TransientServiceError("unavailable", status_code=503),
            "C": "result from C",
        }
    )
    caller = RotatingCaller(client, "test-model")

    text = await caller.call(KeyPool(["A", "B", "C"]), PARTS)

    assert text == "result from C"
    assert client.calls == ["A", "B", "C"]


@pytest.mark.asyncio
async def test_first_key_success_stops_rotation():
    client = FakeClient({"A": "ok", "B": "unused"})
    caller = RotatingCaller(client, "test-model")

    assert await caller.call(KeyPool(["A", "B"]), PARTS) == "ok"
    assert client.calls == ["A"]


@pytest.mark.asyncio
async def test_all_recoverable_failures_exhaust_pool():
    client = FakeClient(
        {"A": RateLimited("quota"), "B": RateLimited("quota", is_daily=True)}
    )
    caller = RotatingCaller(client, "test-model")

    with pytest.raises(AllCredentialsExhausted) as exc_info:
        await caller.call(KeyPool(["A", "B"]), PARTS)

    assert client.calls == ["A", "B"]
    assert [reason for _, reason in exc_info.value.attempts] == [
        "RateLimited",
        "RateLimited",
    ]


@pytest.mark.asyncio
async def test_empty_pool_is_exhausted():
    caller = RotatingCaller(FakeClient({}), "test-model")

    with pytest.raises(AllCredentialsExhausted):
        await caller.call(KeyPool(), PARTS)


@pytest.mark.asyncio
async def test_malformed_request_aborts_rotation():
    client = FakeClient({"A": MalformedRequest("bad"), "B": "unused"})
    caller = RotatingCaller(client, "test-model")

    with pytest.raises(MalformedRequest):
        await caller.call(KeyPool(["A", "B"]), PARTS)

    assert client.calls == ["A"]


@pytest.mark.asyncio
async def test_content_rejection_aborts_rotation():
    client = FakeClient({"A": RateLimited("quota"), "B": ContentRejected("blocked")})
    caller = RotatingCaller(client, "test-model")

    with pytest.raises(ContentRejected):
        await caller.call(KeyPool(["A", "B", "C"]), PARTS)

    assert client.calls == ["A", "B"]


@pytest.mark.asyncio
async def test_invalid_key_is_skipped():
    client = FakeClient({"A": InvalidCredential("API key not valid"), "B": "ok"})
    caller = RotatingCaller(client, "test-model")

    assert await caller.call(KeyPool(["A", "B"]), PARTS) == "ok"
    assert client.calls == ["A", "B"]


@pytest.mark.asyncio
async def test_only_invalid_keys_surface_invalid_credential():
    client = FakeClient(
        {"A": InvalidCredential("bad key A"), "B": InvalidCredential("bad key B")}
    )
    caller = RotatingCaller(client, "test-model")

    with pytest.raises(InvalidCredential, match="bad key B"):
        await caller.call(KeyPool(["A", "B"]), PARTS)


@pytest.mark.asyncio
async def test_invalid_and_rate_limited_keys_exhaust_pool():
    client = FakeClient({"A": InvalidCredential("bad key"), "B": RateLimited("quota")})
    caller = RotatingCaller(client, "test-model")

    with pytest.raises(AllCredentialsExhausted) as exc_info:
        await caller.call(KeyPool(["A", "B"]), PARTS)

    assert [reason for _, reason in exc_info.value.attempts] == [
        "invalid key",
        "RateLimited",
    ]


@pytest.mark.asyncio
async def test_duplicate_key_is_tried_per_position():
    client = FakeClient({"A": RateLimited("quota")})
    caller = RotatingCaller(client, "test-model")

    with pytest.raises(AllCredentialsExhausted):
        await caller.call(KeyPool(["A", "A"]), PARTS)

    assert client.calls == ["A", "A"]


@pytest.mark.asyncio
async def test_caller_does_not_mutate_pool():
    pool = KeyPool(["A", "B"])
    client = FakeClient({"A": RateLimited("quota"), "B": "ok"})

    await RotatingCaller(client, "test-model").call(pool, PARTS)

    assert pool.load() == ("A", "B")
