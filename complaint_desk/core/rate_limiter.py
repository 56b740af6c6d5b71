# complaint_desk/core/rate_limiter.py
"""
固定視窗限流 (per client key)，計數交給 limits。

- REDIS_URL 未設定或為 memory://：limits 的程序內 MemoryStorage，只適用單一實例部署，
  過期的 key 會在之後的 hit 觸發清理。
- 其他 REDIS_URL：limits 的 RedisStorage (redis-py)，INCRBY + EXPIRE 在同一段 Lua 內完成。

儲存層出錯時採 fail-open：放行請求並記錄 warning。
"""
import logging
import math
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from limits import RateLimitItemPerSecond
from limits.aio.storage import MemoryStorage, Storage
from limits.storage import storage_from_string
from limits.aio.strategies import FixedWindowRateLimiter
from limits.errors import StorageError

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"
KEY_PREFIX = "complaint_desk"

@dataclass(frozen=True)
class RateLimitPolicy:
    limit: int
    window_ms: int

    def __post_init__(self):
        if self.limit <= 0 or self.window_ms <= 0:
            raise ValueError("limit and window_ms must be positive integers")

    def to_item(self, namespace: str) -> RateLimitItemPerSecond:
        # limits 以秒為單位，不足一秒的視窗往上取整
        seconds = max(1, math.ceil(self.window_ms / 1000))
        return RateLimitItemPerSecond(self.limit, seconds, namespace=namespace)

class RateLimiter:
    """一個 limiter 對應一個 policy；name 用來區分不同端點的計數空間"""

    def __init__(self, name: str, policy: RateLimitPolicy, storage: Optional[Storage] = None):
        self.name = name
        self.policy = policy
        self.storage = storage or create_rate_limit_storage(None)
        self.item = policy.to_item(name.upper())
        self.strategy = FixedWindowRateLimiter(self.storage)

    async def check(self, client_key: str) -> bool:
        try:
            # 已超過上限就不再累加，計數停在 limit
            if not await self.strategy.test(self.item, client_key):
                allowed = False
            else:
                allowed = await self.strategy.hit(self.item, client_key)
        except StorageError as e:
            logger.warning(
                f"Rate limit store unavailable, allowing request: limiter={self.name} client={client_key}: {e.storage_error}"
            )
            return True

        if not allowed:
            logger.warning(f"Rate limit exceeded: limiter={self.name} client={client_key}")
        return allowed

def get_client_ip(request: Request) -> str:
    """X-Forwarded-For 第一個位址 > X-Real-IP > 'unknown' (所有無法辨識的來源共用同一個額度)"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return UNKNOWN_CLIENT

def create_rate_limit_storage(redis_url: Optional[str]) -> Storage:
    """有 REDIS_URL 就用 Redis，否則用程序內計數器"""
    if not redis_url or redis_url.strip().lower() == "memory://":
        logger.info("Rate limiter using in-process counters (single instance only)")
        return MemoryStorage(wrap_exceptions=True)

    logger.info("Rate limiter using Redis counters")
    return storage_from_string(
        f"async+{redis_url.strip()}",
        wrap_exceptions=True,
        implementation="redispy",
        key_prefix=KEY_PREFIX,
        socket_connect_timeout=2.0,
        socket_timeout=2.0,
        health_check_interval=30,
    )
