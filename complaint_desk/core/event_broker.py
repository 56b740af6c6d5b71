# complaint_desk/core/event_broker.py

import asyncio
import logging
from typing import Any, Dict, Set

logger = logging.getLogger(__name__)

class NotificationBroker:
    """
    程序內的發布 / 訂閱：每條即時通知連線 (SSE) 各自一個 queue。
    只在單一實例內有效，多實例部署時各實例只會推送自己產生的事件。
    """

    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self.subscribers: Set[asyncio.Queue] = set()

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self.subscribers.add(queue)
        logger.info(f"Notification stream subscribed. Total subscribers: {len(self.subscribers)}")
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self.subscribers.discard(queue)
        logger.info(f"Notification stream unsubscribed. Remaining subscribers: {len(self.subscribers)}")

    def publish(self, event: Dict[str, Any]) -> int:
        """將事件推給所有訂閱者，回傳成功送達的數量"""
        delivered = 0
        for queue in list(self.subscribers):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                # 慢的連線直接丟掉這則事件，不阻塞發布端
                logger.warning("Notification subscriber queue full, dropping event")
        return delivered
