# complaint_desk/routers/complaint_router.py
# 公開端點：匿名投訴、追蹤查詢、補件上傳、附件下載

from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, Response, UploadFile, status
from sqlalchemy.ext.asyncio import async_sessionmaker

from complaint_desk.core.config import settings
from complaint_desk.core.database import get_session_factory
from complaint_desk.core.dependencies import (
    COMPLAINT_LIMITER, UPLOAD_LIMITER, get_broker, get_complaint_service, rate_limit,
)
from complaint_desk.core.event_broker import NotificationBroker
from complaint_desk.core.security import get_optional_user, has_role
from complaint_desk.models.complaint import ComplaintCategory, ComplaintPriority
from complaint_desk.models.user import User, UserRoleEnum
from complaint_desk.schemas.complaint_schema import (
    ComplaintCreate, ComplaintOut, ComplaintSubmitOut, UploadResultOut,
)
from complaint_desk.services.complaint_service import ComplaintService, read_upload_files
from complaint_desk.services.notification_service import new_complaint_content, publish_and_schedule

router = APIRouter(prefix="/api", tags=["Complaints"])

@router.post(
    "/complaints",
    response_model=ComplaintSubmitOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit(COMPLAINT_LIMITER))],
    summary="送出匿名投訴",
)
async def submit_complaint(
    background_tasks: BackgroundTasks,
    title: str = Form(..., min_length=5, max_length=200),
    description: str = Form(..., min_length=10, max_length=2000),
    category: ComplaintCategory = Form(...),
    priority: ComplaintPriority = Form(...),
    files: List[UploadFile] = File(default=[]),
    service: ComplaintService = Depends(get_complaint_service),
    broker: NotificationBroker = Depends(get_broker),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    """
    multipart/form-data；附件最多 5 個，任何一個驗證失敗整筆退回
    """
    data = ComplaintCreate(title=title, description=description, category=category, priority=priority)
    uploaded = await read_upload_files(files, settings.MAX_FILE_SIZE, settings.MAX_FILES)
    complaint = await service.submit_complaint(data, uploaded)

    publish_and_schedule(broker, background_tasks, session_factory, new_complaint_content(complaint))

    return ComplaintSubmitOut(
        tracking_code=complaint.tracking_code,
        message="ส่งเรื่องร้องเรียนเรียบร้อยแล้ว",
        attachment_count=len(complaint.attachments),
    )

@router.get("/complaints", response_model=ComplaintOut, summary="以追蹤碼查詢投訴")
async def get_complaint_by_query(
    tracking_id: Optional[str] = Query(None, alias="trackingId"),
    service: ComplaintService = Depends(get_complaint_service),
):
    return await service.get_by_tracking_code(tracking_id)

@router.get("/complaints/tracking/{tracking_code}", response_model=ComplaintOut, summary="追蹤頁")
async def get_complaint_by_tracking_code(
    tracking_code: str,
    service: ComplaintService = Depends(get_complaint_service),
):
    """
    附件的 url 會帶上追蹤碼，投訴者可直接下載自己上傳的檔案
    """
    return await service.get_by_tracking_code(tracking_code)

@router.post(
    "/upload",
    response_model=UploadResultOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit(UPLOAD_LIMITER))],
    summary="對既有投訴補件",
)
async def upload_attachments(
    complaint_id: str = Form(..., alias="complaintId"),
    files: List[UploadFile] = File(default=[]),
    service: ComplaintService = Depends(get_complaint_service),
):
    uploaded = await read_upload_files(files, settings.MAX_FILE_SIZE, settings.MAX_FILES)
    attachments = await service.add_attachments(complaint_id, uploaded)
    return UploadResultOut(attachments=attachments)

@router.get("/files/{attachment_id}", summary="下載附件")
async def download_attachment(
    attachment_id: str,
    tracking_id: Optional[str] = Query(None, alias="trackingId"),
    user: Optional[User] = Depends(get_optional_user),
    service: ComplaintService = Depends(get_complaint_service),
):
    """
    後台人員 (ADMIN / VIEWER) 或帶著相符追蹤碼的投訴者才能下載，其他一律 403
    """
    is_staff = has_role(user, UserRoleEnum.admin, UserRoleEnum.viewer)
    attachment, data = await service.get_attachment_file(attachment_id, tracking_id, is_staff)
    return Response(
        content=data,
        media_type=attachment.file_type,
        headers={"Content-Disposition": f'attachment; filename="{attachment.filename}"'},
    )
