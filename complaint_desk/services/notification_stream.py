# complaint_desk/services/notification_stream.py
# 即時通知串流 (text/event-stream)

import asyncio
import json
import logging
from typing import AsyncIterator, Awaitable, Callable

from complaint_desk.core.event_broker import NotificationBroker

logger = logging.getLogger(__name__)

KEEP_ALIVE = ": keep-alive\n\n"

def format_event(event: dict) -> str:
    return f"data: {json.dumps(event, ensure_ascii=False, default=str)}\n\n"

async def notification_event_stream(
    broker: NotificationBroker,
    is_disconnected: Callable[[], Awaitable[bool]],
    heartbeat_seconds: float = 20.0,
) -> AsyncIterator[str]:
    """
    每收到一則事件送出 `data: <json>`，閒置超過 heartbeat_seconds 送出心跳註解。
    連線中斷 (或產生器被關閉 / 取消) 時一定會取消訂閱。
    """
    queue = broker.subscribe()
    try:
        while True:
            if await is_disconnected():
                logger.info("Notification stream client disconnected")
                break
            try:
                event = await asyncio.wait_for(queue.get(), timeout=heartbeat_seconds)
            except asyncio.TimeoutError:
                yield KEEP_ALIVE
                continue
            yield format_event(event)
    finally:
        broker.unsubscribe(queue)
