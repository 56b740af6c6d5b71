# complaint_desk/services/notification_service.py

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from complaint_desk.core.errors import AppError, ErrorKind
from complaint_desk.core.event_broker import NotificationBroker
from complaint_desk.models.complaint import (
    CATEGORY_LABELS, STATUS_LABELS, Complaint, ComplaintCategory, ComplaintPriority, ComplaintStatus,
)
from complaint_desk.models.notification import Notification
from complaint_desk.models.user import User
from complaint_desk.repositories.analytics_repo import AnalyticsRepository
from complaint_desk.repositories.notification_repo import NotificationRepository
from complaint_desk.repositories.user_repo import UserRepository
from complaint_desk.schemas.notification_schema import (
    NotificationListOut, NotificationMarkRead, NotificationMarkReadOut, NotificationOut,
    NotificationPagination, NotificationStats, RecentComplaintOut, SystemAlert,
)

logger = logging.getLogger(__name__)

STATUS_UPDATE = "status_update"
NEW_COMPLAINT = "new_complaint"

def status_update_content(complaint: Complaint, new_status: ComplaintStatus) -> Dict[str, Any]:
    label = STATUS_LABELS.get(ComplaintStatus(new_status), str(new_status))
    return {
        "title": "อัปเดตสถานะข้อร้องเรียน",
        "message": f'ข้อร้องเรียน "{complaint.title}" เปลี่ยนสถานะเป็น {label}',
        "type": STATUS_UPDATE,
        "complaint_id": complaint.complaint_id,
    }

def new_complaint_content(complaint: Complaint) -> Dict[str, Any]:
    label = CATEGORY_LABELS.get(ComplaintCategory(complaint.category), str(complaint.category))
    return {
        "title": "เรื่องร้องเรียนใหม่",
        "message": f'มีเรื่องร้องเรียนใหม่ "{complaint.title}" ในหมวด {label}',
        "type": NEW_COMPLAINT,
        "complaint_id": complaint.complaint_id,
    }

def to_event(content: Dict[str, Any]) -> Dict[str, Any]:
    """即時串流推送的事件內容 (不等資料庫寫入)"""
    return {
        **content,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }

class NotificationService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = NotificationRepository(db)
        self.user_repo = UserRepository(db)
        self.analytics_repo = AnalyticsRepository(db)

    async def notify_active_users(
        self,
        title: str,
        message: str,
        type: str = "info",
        complaint_id: Optional[str] = None,
    ) -> Notification:
        """
        (內部使用) 建立一則通知並分發給目前所有啟用中的使用者
        """
        user_ids = await self.user_repo.list_active_user_ids()
        notification = Notification(
            title=title,
            message=message,
            type=type,
            complaint_id=complaint_id,
        )
        created = await self.repo.create_with_recipients(notification, user_ids)
        logger.info(f"Notification {created.notification_id} ({type}) fanned out to {len(user_ids)} users")
        return created

    async def get_my_notifications(
        self, user: User, page: int = 1, limit: int = 20, unread_only: bool = False
    ) -> NotificationListOut:
        rows, total_count = await self.repo.list_for_user(user.user_id, page, limit, unread_only)
        unread_count = await self.repo.count_unread(user.user_id)

        notifications = [
            NotificationOut(
                notification_id=row.notification.notification_id,
                title=row.notification.title,
                message=row.notification.message,
                type=row.notification.type,
                complaint_id=row.notification.complaint_id,
                read=row.read,
                created_at=row.notification.created_at,
            )
            for row in rows
        ]

        since = (datetime.now(timezone.utc) - timedelta(hours=24)).replace(tzinfo=None)
        recent = await self.analytics_repo.recent_complaints(since, limit=10)

        total_pages = math.ceil(total_count / limit) if limit else 0
        return NotificationListOut(
            notifications=notifications,
            system_alerts=self.build_system_alerts(recent),
            recent_complaints=[RecentComplaintOut.model_validate(c) for c in recent],
            stats=NotificationStats(
                total_count=total_count,
                unread_count=unread_count,
                recent_count=len(recent),
            ),
            pagination=NotificationPagination(
                page=page,
                limit=limit,
                total_pages=total_pages,
                has_next=page < total_pages,
                has_prev=page > 1,
            ),
        )

    @staticmethod
    def build_system_alerts(recent: List[Complaint]) -> List[SystemAlert]:
        """由近 24 小時的投訴即時產生的提醒 (不寫入資料庫)"""
        now = datetime.now(timezone.utc)
        alerts = []

        high_priority = sum(
            1 for c in recent
            if ComplaintPriority(c.priority) in (ComplaintPriority.HIGH, ComplaintPriority.URGENT)
        )
        if high_priority:
            alerts.append(SystemAlert(
                id="high-priority-alert",
                title="ข้อร้องเรียนความสำคัญสูง",
                message=f"มีข้อร้องเรียนความสำคัญสูง {high_priority} เรื่องในวันนี้",
                type="high_priority",
                created_at=now,
            ))

        safety = sum(1 for c in recent if ComplaintCategory(c.category) == ComplaintCategory.SAFETY)
        if safety:
            alerts.append(SystemAlert(
                id="safety-alert",
                title="แจ้งเตือนด้านความปลอดภัย",
                message=f"มีข้อร้องเรียนด้านความปลอดภัย {safety} เรื่องใหม่",
                type="safety",
                created_at=now,
            ))
        return alerts

    async def mark_read(self, user: User, payload: NotificationMarkRead) -> NotificationMarkReadOut:
        """
        標記已讀：只影響自己的 UserNotification，重複標記不會讓未讀數變成負的
        """
        if payload.mark_all_as_read:
            updated = await self.repo.mark_all_as_read(user.user_id)
            logger.info(f"User {user.user_id} marked {updated} notifications as read")
            message = "อ่านการแจ้งเตือนทั้งหมดแล้ว"
        elif payload.notification_id:
            row = await self.repo.get_for_user(user.user_id, payload.notification_id)
            if row is None:
                raise AppError(ErrorKind.NOT_FOUND, "ไม่พบการแจ้งเตือนนี้")
            await self.repo.mark_as_read(row)
            message = "อ่านการแจ้งเตือนแล้ว"
        else:
            raise AppError(ErrorKind.VALIDATION, "ข้อมูลไม่ครบถ้วน")

        unread_count = await self.repo.count_unread(user.user_id)
        return NotificationMarkReadOut(message=message, unread_count=unread_count)

async def fan_out_notification(
    session_factory: async_sessionmaker,
    content: Dict[str, Any],
) -> None:
    """
    背景工作：自己開 session 寫入通知。
    失敗只記錄 log，不影響已經回給前端的結果。
    """
    try:
        async with session_factory() as db:
            await NotificationService(db).notify_active_users(**content)
    except Exception as e:
        logger.error(f"Notification fan-out failed for {content.get('type')}: {e}", exc_info=True)

def publish_and_schedule(
    broker: NotificationBroker,
    background_tasks,
    session_factory: async_sessionmaker,
    content: Dict[str, Any],
) -> None:
    """即時推送 + 排入背景寫入，兩者互不依賴"""
    delivered = broker.publish(to_event(content))
    logger.debug(f"Notification event delivered to {delivered} live subscribers")
    background_tasks.add_task(fan_out_notification, session_factory, content)
