# complaint_desk/routers/notification_router.py

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from complaint_desk.core.config import settings
from complaint_desk.core.database import get_db
from complaint_desk.core.dependencies import get_broker
from complaint_desk.core.event_broker import NotificationBroker
from complaint_desk.core.security import get_current_user_from_query_token, require_role, require_staff
from complaint_desk.models.user import User, UserRoleEnum
from complaint_desk.schemas.notification_schema import (
    NotificationListOut, NotificationMarkRead, NotificationMarkReadOut,
)
from complaint_desk.services.notification_service import NotificationService
from complaint_desk.services.notification_stream import notification_event_stream

router = APIRouter(
    prefix="/api/admin/notifications",
    tags=["Notifications"]
)

# EventSource 無法帶 Header，Token 也可以放在 ?token=
require_staff_stream = require_role(
    UserRoleEnum.admin, UserRoleEnum.viewer,
    user_dependency=get_current_user_from_query_token,
)

def get_notification_service(db: AsyncSession = Depends(get_db)) -> NotificationService:
    return NotificationService(db)

@router.get("", response_model=NotificationListOut, summary="獲取我的通知")
async def get_my_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False, alias="unreadOnly"),
    service: NotificationService = Depends(get_notification_service),
    current_user: User = Depends(require_staff),
):
    """
    通知列表 + 系統提醒 + 近 24 小時的投訴 + 統計
    """
    return await service.get_my_notifications(current_user, page, limit, unread_only)

@router.patch("", response_model=NotificationMarkReadOut, summary="標記通知為已讀")
async def mark_notifications_read(
    data: NotificationMarkRead,
    service: NotificationService = Depends(get_notification_service),
    current_user: User = Depends(require_staff),
):
    """
    傳 {"notificationId": ...} 標記單則，或 {"markAllAsRead": true} 全部標記
    """
    return await service.mark_read(current_user, data)

@router.get("/stream", summary="即時通知串流 (SSE)")
async def stream_notifications(
    request: Request,
    broker: NotificationBroker = Depends(get_broker),
    current_user: User = Depends(require_staff_stream),
):
    return StreamingResponse(
        notification_event_stream(broker, request.is_disconnected, settings.SSE_HEARTBEAT_SECONDS),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
