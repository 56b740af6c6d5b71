import asyncio
import logging
import time

import pytest
from limits.aio.storage import MemoryStorage, RedisStorage
from starlette.requests import Request

from complaint_desk.core.rate_limiter import (
    RateLimiter, RateLimitPolicy, create_rate_limit_storage, get_client_ip,
)

class FakeClock:
    """取代 time.time，limits 的 MemoryStorage 用它計算視窗到期 (秒)"""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000

class FlakyStorage(MemoryStorage):
    """前 failures 次 incr 模擬連線中斷，之後恢復正常"""

    STORAGE_SCHEME = None

    def __init__(self, failures: int = 1):
        super().__init__(wrap_exceptions=True)
        self.failures = failures

    @property
    def base_exceptions(self):
        return ConnectionError

    async def incr(self, key, expiry, amount=1):
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("redis down")
        return await super().incr(key, expiry, amount)

POLICY = RateLimitPolicy(limit=5, window_ms=60_000)

@pytest.fixture
def clock(monkeypatch):
    fake = FakeClock()
    monkeypatch.setattr(time, "time", fake)
    return fake

def _limiter(policy: RateLimitPolicy = POLICY, name: str = "complaint", storage=None) -> RateLimiter:
    return RateLimiter(name, policy, storage or MemoryStorage(wrap_exceptions=True))

async def test_allows_exactly_limit_then_denies(clock):
    limiter = _limiter()
    results = [await limiter.check("1.2.3.4") for _ in range(7)]
    assert results == [True] * 5 + [False] * 2

async def test_denied_calls_do_not_grow_counter(clock):
    limiter = _limiter()
    for _ in range(20):
        await limiter.check("k")
    assert await limiter.storage.get(limiter.item.key_for("k")) == POLICY.limit

async def test_window_resets_only_after_it_elapses(clock):
    limiter = _limiter()
    for _ in range(6):
        await limiter.check("k")

    clock.advance_ms(POLICY.window_ms - 1)
    assert await limiter.check("k") is False

    clock.advance_ms(2)
    assert await limiter.check("k") is True
    assert await limiter.storage.get(limiter.item.key_for("k")) == 1

async def test_denied_calls_do_not_extend_window(clock):
    limiter = _limiter()
    for _ in range(5):
        await limiter.check("k")
    clock.advance_ms(30_000)
    assert await limiter.check("k") is False

    # 視窗從第一次計數起算，被擋下的請求不會延長它
    clock.advance_ms(30_001)
    assert await limiter.check("k") is True

async def test_keys_do_not_share_quota(clock):
    limiter = _limiter()
    for _ in range(5):
        assert await limiter.check("a")
    assert await limiter.check("a") is False
    assert await limiter.check("b") is True

async def test_limiters_with_different_names_are_independent(clock):
    storage = MemoryStorage(wrap_exceptions=True)
    complaint = _limiter(RateLimitPolicy(1, 60_000), "complaint", storage)
    upload = _limiter(RateLimitPolicy(1, 60_000), "upload", storage)
    assert await complaint.check("10.0.0.1")
    assert not await complaint.check("10.0.0.1")
    assert await upload.check("10.0.0.1")

async def test_expired_client_keys_are_evicted(clock):
    limiter = _limiter()
    for i in range(1_000):
        await limiter.check(f"10.0.{i // 256}.{i % 256}")

    clock.advance_ms(POLICY.window_ms + 1)
    await limiter.check("203.0.113.1")
    # 讓 MemoryStorage 的清理工作跑完
    for _ in range(3):
        await asyncio.sleep(0)

    assert len(limiter.storage.expirations) < 100
    assert await limiter.storage.get(limiter.item.key_for("203.0.113.1")) == 1

@pytest.mark.parametrize("limit,window_ms", [(0, 1000), (5, 0), (-1, 1000)])
def test_policy_rejects_non_positive_values(limit, window_ms):
    with pytest.raises(ValueError):
        RateLimitPolicy(limit=limit, window_ms=window_ms)

def test_sub_second_window_rounds_up_to_one_second():
    assert RateLimitPolicy(limit=3, window_ms=250).to_item("x").get_expiry() == 1
    assert RateLimitPolicy(limit=3, window_ms=3_600_000).to_item("x").get_expiry() == 3600

async def test_store_outage_fails_open_and_logs(clock, caplog):
    limiter = _limiter(storage=FlakyStorage(failures=10))
    with caplog.at_level(logging.WARNING):
        assert await limiter.check("ip") is True
    assert "Rate limit store unavailable" in caplog.text

async def test_counter_still_expires_after_a_failed_hit(clock):
    limiter = _limiter(RateLimitPolicy(limit=2, window_ms=1_000), storage=FlakyStorage(failures=1))

    assert await limiter.check("ip") is True
    assert [await limiter.check("ip") for _ in range(3)] == [True, True, False]

    clock.advance_ms(1_001)
    assert await limiter.check("ip") is True

def test_memory_url_uses_in_process_storage():
    assert isinstance(create_rate_limit_storage(None), MemoryStorage)
    assert isinstance(create_rate_limit_storage("memory://"), MemoryStorage)

def test_redis_url_uses_redis_storage():
    storage = create_rate_limit_storage("redis://localhost:6379/0")
    assert isinstance(storage, RedisStorage)
    assert storage.wrap_exceptions is True

def _request(headers: dict) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
    return Request({"type": "http", "method": "POST", "path": "/", "headers": raw})

def test_client_ip_prefers_first_forwarded_hop():
    request = _request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1", "X-Real-IP": "10.0.0.2"})
    assert get_client_ip(request) == "203.0.113.7"

def test_client_ip_falls_back_to_real_ip():
    assert get_client_ip(_request({"X-Real-IP": "198.51.100.4"})) == "198.51.100.4"

def test_unknown_clients_share_one_bucket():
    assert get_client_ip(_request({})) == "unknown"
