import pytest

from complaint_desk.utils.retry import execute_with_retry

async def test_returns_result_after_transient_failures():
    attempts = []

    async def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise ConnectionError("temporary")
        return "ok"

    assert await execute_with_retry(flaky, max_retries=3, base_delay=0) == "ok"
    assert len(attempts) == 3

async def test_reraises_last_error_when_all_attempts_fail():
    calls = []

    async def always_fails():
        calls.append(1)
        raise ValueError(f"failure {len(calls)}")

    with pytest.raises(ValueError, match="failure 2"):
        await execute_with_retry(always_fails, max_retries=2, base_delay=0)
    assert len(calls) == 2

async def test_backoff_doubles_each_attempt(monkeypatch):
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr("complaint_desk.utils.retry.asyncio.sleep", fake_sleep)

    async def always_fails():
        raise RuntimeError("down")

    with pytest.raises(RuntimeError):
        await execute_with_retry(always_fails, max_retries=3, base_delay=1.0)
    assert delays == [1.0, 2.0]
