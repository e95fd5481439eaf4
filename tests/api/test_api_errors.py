import asyncio

import pytest

from ludotheque.api import error_handler
from ludotheque.api.error_handler import (
    APIError,
    ErrorCategory,
    FatalAPIError,
    RetryableAPIError,
    SkippableAPIError,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    "status, expected",
    [
        (403, FatalAPIError),
        (423, FatalAPIError),
        (426, FatalAPIError),
        (430, FatalAPIError),
        (401, RetryableAPIError),
        (429, RetryableAPIError),
        (502, RetryableAPIError),
        (400, SkippableAPIError),
        (404, SkippableAPIError),
        (431, SkippableAPIError),
        (418, APIError),
    ],
)
def test_handle_http_status_routes_errors(status, expected):
    with pytest.raises(expected):
        error_handler.handle_http_status(status, context="jeuInfos")


@pytest.mark.unit
def test_handle_http_status_accepts_success():
    error_handler.handle_http_status(200)


@pytest.mark.unit
def test_error_message_includes_context():
    with pytest.raises(FatalAPIError, match=r"Daily quota exceeded \(mario.nes\)"):
        error_handler.handle_http_status(430, context="mario.nes")

    assert error_handler.get_error_message(599) == "Unknown error (HTTP 599)"


@pytest.mark.unit
def test_categorize_error():
    assert error_handler.categorize_error(FatalAPIError("x"))[1] is ErrorCategory.FATAL
    assert error_handler.categorize_error(SkippableAPIError("Game not found"))[1] is ErrorCategory.NOT_FOUND
    assert error_handler.categorize_error(SkippableAPIError("Malformed"))[1] is ErrorCategory.NON_RETRYABLE
    assert error_handler.categorize_error(RetryableAPIError("busy"))[1] is ErrorCategory.RETRYABLE
    assert error_handler.categorize_error(OSError("connection reset"))[1] is ErrorCategory.RETRYABLE
    assert error_handler.categorize_error(ValueError("bad"))[1] is ErrorCategory.NON_RETRYABLE


@pytest.mark.unit
@pytest.mark.asyncio
async def test_retry_with_backoff_retries_then_succeeds(monkeypatch):
    attempts = {"count": 0}

    async def flaky():
        attempts["count"] += 1
        if attempts["count"] < 3:
            raise RetryableAPIError("temporary")
        return "ok"

    sleep_calls = []

    async def fake_sleep(duration):
        sleep_calls.append(duration)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)

    result = await error_handler.retry_with_backoff(
        flaky, max_attempts=4, initial_delay=0.1, backoff_factor=2.0, context="test"
    )

    assert result == "ok"
    assert attempts["count"] == 3
    assert sleep_calls == [0.1, 0.2]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_retry_with_backoff_gives_up(monkeypatch):
    async def fake_sleep(duration):
        pass

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)

    async def always_busy():
        raise RetryableAPIError("busy")

    with pytest.raises(RetryableAPIError):
        await error_handler.retry_with_backoff(always_busy, max_attempts=2)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_retry_with_backoff_stops_on_non_retryable():
    calls = []

    async def bad():
        calls.append(1)
        raise FatalAPIError("Invalid credentials")

    with pytest.raises(FatalAPIError):
        await error_handler.retry_with_backoff(bad, max_attempts=3)

    assert len(calls) == 1
