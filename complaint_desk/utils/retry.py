# complaint_desk/utils/retry.py
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
) -> T:
    """
    失敗時以指數退避重試 (base_delay * 2**attempt)，全部失敗則拋出最後一個例外。
    只給明確選用的查詢使用，上傳與限流流程不套用。
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")
    last_error = None
    for attempt in range(max_retries):
        try:
            return await operation()
        except Exception as e:
            last_error = e
            logger.warning(f"Operation failed (attempt {attempt + 1}/{max_retries}): {e}")
            if attempt < max_retries - 1:
                await asyncio.sleep(base_delay * (2 ** attempt))
    raise last_error
