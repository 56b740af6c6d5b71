# complaint_desk/routers/admin_complaint_router.py

import logging
from typing import Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import async_sessionmaker

from complaint_desk.core.database import get_session_factory
from complaint_desk.core.dependencies import get_broker, get_complaint_service
from complaint_desk.core.event_broker import NotificationBroker
from complaint_desk.core.security import require_admin, require_staff
from complaint_desk.models.complaint import ComplaintCategory, ComplaintPriority, ComplaintStatus
from complaint_desk.models.user import User
from complaint_desk.schemas.complaint_schema import (
    ComplaintListOut, ComplaintListQuery, ComplaintOut, ComplaintStatsOut, ComplaintStatsRequest,
    ComplaintUpdate, ComplaintUpdateOut, SortField,
)
from complaint_desk.services.complaint_service import ComplaintService, to_complaint_out
from complaint_desk.services.notification_service import publish_and_schedule, status_update_content

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin/complaints",
    tags=["Admin Complaints"]
)

@router.get("", response_model=ComplaintListOut, summary="投訴列表 (篩選 / 搜尋 / 排序 / 分頁)")
async def list_complaints(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[ComplaintStatus] = Query(None),
    category: Optional[ComplaintCategory] = Query(None),
    priority: Optional[ComplaintPriority] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    sort_by: SortField = Query("createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    service: ComplaintService = Depends(get_complaint_service),
    current_user: User = Depends(require_staff),
):
    """
    (ADMIN / VIEWER) search 會比對標題、內容與追蹤碼
    """
    query = ComplaintListQuery(
        page=page,
        limit=limit,
        status=status,
        category=category,
        priority=priority,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return await service.list_complaints(query)

@router.post("", response_model=ComplaintStatsOut, summary="分組統計")
async def complaint_stats(
    data: ComplaintStatsRequest,
    service: ComplaintService = Depends(get_complaint_service),
    current_user: User = Depends(require_staff),
):
    """
    (ADMIN / VIEWER) 依 status / category / priority 分組計數，可加上篩選條件
    """
    return await service.get_stats(data)

@router.get("/{complaint_id}", response_model=ComplaintOut, summary="投訴詳情")
async def get_complaint(
    complaint_id: str,
    service: ComplaintService = Depends(get_complaint_service),
    current_user: User = Depends(require_staff),
):
    complaint = await service.get_complaint(complaint_id)
    return to_complaint_out(complaint)

@router.patch("/{complaint_id}", response_model=ComplaintUpdateOut, summary="更新投訴 (ADMIN)")
async def update_complaint(
    complaint_id: str,
    data: ComplaintUpdate,
    background_tasks: BackgroundTasks,
    service: ComplaintService = Depends(get_complaint_service),
    broker: NotificationBroker = Depends(get_broker),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    current_user: User = Depends(require_admin),
):
    """
    (ADMIN) 更新 status / priority / category。
    狀態有變更時推送即時通知，並在背景寫入每位使用者的通知。
    """
    complaint, new_status = await service.update_complaint(complaint_id, data)
    if new_status is not None:
        publish_and_schedule(
            broker, background_tasks, session_factory, status_update_content(complaint, new_status)
        )
    return ComplaintUpdateOut(
        complaint=to_complaint_out(complaint),
        message="อัปเดตข้อร้องเรียนเรียบร้อยแล้ว",
    )

@router.delete("/{complaint_id}", summary="刪除投訴 (ADMIN)")
async def delete_complaint(
    complaint_id: str,
    service: ComplaintService = Depends(get_complaint_service),
    current_user: User = Depends(require_admin),
):
    """
    (ADMIN) 刪除投訴，附件紀錄與檔案一併刪除
    """
    await service.delete_complaint(complaint_id)
    logger.info(f"Complaint {complaint_id} deleted by {current_user.user_id}")
    return {"success": True, "message": "ลบข้อร้องเรียนเรียบร้อยแล้ว"}
