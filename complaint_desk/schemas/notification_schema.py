# complaint_desk/schemas/notification_schema.py

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import List, Optional

from complaint_desk.models.complaint import ComplaintCategory, ComplaintPriority, ComplaintStatus

class NotificationOut(BaseModel):
    """
    用於 API 回傳的通知格式 (合併 Notification 與該使用者的已讀狀態)
    """
    notification_id: str
    title: str
    message: Optional[str] = None
    type: str
    complaint_id: Optional[str] = None
    read: bool
    created_at: Optional[datetime] = None

class SystemAlert(BaseModel):
    id: str
    title: str
    message: str
    type: str
    read: bool = False
    created_at: datetime

class RecentComplaintOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    complaint_id: str
    tracking_code: str
    title: str
    category: ComplaintCategory
    priority: ComplaintPriority
    status: ComplaintStatus
    created_at: Optional[datetime] = None

class NotificationStats(BaseModel):
    total_count: int
    unread_count: int
    recent_count: int

class NotificationPagination(BaseModel):
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool

class NotificationListOut(BaseModel):
    notifications: List[NotificationOut]
    system_alerts: List[SystemAlert]
    recent_complaints: List[RecentComplaintOut]
    stats: NotificationStats
    pagination: NotificationPagination

class NotificationMarkRead(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    notification_id: Optional[str] = Field(None, alias="notificationId")
    mark_all_as_read: bool = Field(False, alias="markAllAsRead")

class NotificationMarkReadOut(BaseModel):
    success: bool = True
    message: str
    unread_count: int
