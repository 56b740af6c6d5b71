# complaint_desk/repositories/notification_repo.py

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, insert, select, update
from typing import List, Optional, Tuple
import uuid, logging

from complaint_desk.models.notification import Notification, UserNotification

logger = logging.getLogger(__name__)

class NotificationRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_with_recipients(self, notification: Notification, user_ids: List[str]) -> Notification:
        """
        新增一筆通知，並用單一 INSERT 為每位收件者建立未讀的 UserNotification
        """
        try:
            self.db.add(notification)
            await self.db.flush()
            if user_ids:
                await self.db.execute(
                    insert(UserNotification),
                    [
                        {
                            "user_notification_id": str(uuid.uuid4()),
                            "user_id": user_id,
                            "notification_id": notification.notification_id,
                            "read": False,
                        }
                        for user_id in user_ids
                    ],
                )
            await self.db.commit()
            await self.db.refresh(notification)
            return notification
        except Exception as e:
            await self.db.rollback()
            logger.error(f"建立通知失敗: {e}", exc_info=True)
            raise

    async def list_for_user(
        self, user_id: str, page: int, limit: int, unread_only: bool = False
    ) -> Tuple[List[UserNotification], int]:
        """
        某位使用者的通知 (依時間降序)，回傳 (該頁資料, 總筆數)
        """
        conditions = [UserNotification.user_id == user_id]
        if unread_only:
            conditions.append(UserNotification.read.is_(False))

        stmt = (
            select(UserNotification)
            .where(*conditions)
            .order_by(UserNotification.created_at.desc(), UserNotification.user_notification_id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        rows = list(result.scalars().unique().all())

        count_stmt = select(func.count(UserNotification.user_notification_id)).where(*conditions)
        total = (await self.db.execute(count_stmt)).scalar_one()
        return rows, total

    async def count_unread(self, user_id: str) -> int:
        stmt = select(func.count(UserNotification.user_notification_id)).where(
            UserNotification.user_id == user_id,
            UserNotification.read.is_(False),
        )
        return (await self.db.execute(stmt)).scalar_one()

    async def count_all(self, user_id: str) -> int:
        stmt = select(func.count(UserNotification.user_notification_id)).where(
            UserNotification.user_id == user_id
        )
        return (await self.db.execute(stmt)).scalar_one()

    async def get_for_user(self, user_id: str, notification_id: str) -> Optional[UserNotification]:
        stmt = select(UserNotification).where(
            UserNotification.user_id == user_id,
            UserNotification.notification_id == notification_id,
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def mark_as_read(self, user_notification: UserNotification) -> UserNotification:
        """
        將單一通知設為已讀 (重複標記不會有副作用)
        """
        if user_notification.read:
            return user_notification
        user_notification.read = True
        await self.db.commit()
        return user_notification

    async def mark_all_as_read(self, user_id: str) -> int:
        stmt = (
            update(UserNotification)
            .where(UserNotification.user_id == user_id, UserNotification.read.is_(False))
            .values(read=True)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount
