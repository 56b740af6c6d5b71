# complaint_desk/services/complaint_service.py

import logging
import math
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from complaint_desk.core.errors import AppError, ErrorKind
from complaint_desk.core.file_store import FileStorageError, FileStore
from complaint_desk.models.complaint import Attachment, Complaint, ComplaintStatus
from complaint_desk.repositories.complaint_repo import ComplaintRepository
from complaint_desk.schemas.complaint_schema import (
    AttachmentOut, ComplaintCreate, ComplaintListOut, ComplaintListQuery, ComplaintOut,
    ComplaintStatsOut, ComplaintStatsRequest, ComplaintUpdate, Pagination,
)
from complaint_desk.utils.file_validator import FileValidator, UploadedFile
from complaint_desk.utils.retry import execute_with_retry
from complaint_desk.utils.sanitize import sanitize_filename, sanitize_input, sanitize_search_query
from complaint_desk.utils.tracking import generate_tracking_code, is_valid_tracking_code

logger = logging.getLogger(__name__)

UPLOAD_FAILED = "อัปโหลดไฟล์ไม่สำเร็จ"

def attachment_download_url(attachment_id: str, tracking_code: Optional[str] = None) -> str:
    """附件一律經由存取控管的下載端點提供"""
    url = f"/api/files/{attachment_id}"
    if tracking_code:
        url += f"?trackingId={tracking_code}"
    return url

def to_complaint_out(complaint: Complaint, tracking_code: Optional[str] = None) -> ComplaintOut:
    """ORM -> 回應格式；附件的 url 換成下載端點，不暴露儲存位置"""
    out = ComplaintOut.model_validate(complaint)
    out.attachments = [
        AttachmentOut(
            attachment_id=a.attachment_id,
            filename=a.filename,
            file_type=a.file_type,
            file_size=a.file_size,
            url=attachment_download_url(a.attachment_id, tracking_code),
            created_at=a.created_at,
        )
        for a in complaint.attachments
    ]
    return out

async def read_upload_files(uploads: List[UploadFile], max_file_size: int, max_files: int) -> List[UploadedFile]:
    """
    讀取 multipart 檔案。空的欄位 (0 byte) 直接略過；
    每個檔案最多讀 max_file_size + 1 bytes，超過的部分交給驗證器判定過大。
    數量上限在讀進記憶體之前就檢查。
    """
    parts = [u for u in uploads or [] if u.filename and u.size != 0]
    if len(parts) > max_files:
        raise AppError(ErrorKind.VALIDATION, f"อัปโหลดได้สูงสุด {max_files} ไฟล์")

    files = []
    for upload in parts:
        data = await upload.read(max_file_size + 1)
        if not data:
            continue
        size = upload.size if upload.size is not None else len(data)
        files.append(UploadedFile(
            filename=upload.filename,
            content_type=upload.content_type or "application/octet-stream",
            data=data,
            size=max(size, len(data)),
        ))
    return files

class ComplaintService:
    def __init__(
        self,
        db: AsyncSession,
        validator: Optional[FileValidator] = None,
        file_store: Optional[FileStore] = None,
    ):
        self.db = db
        self.repo = ComplaintRepository(db)
        self.validator = validator
        self.file_store = file_store

    # --- 上傳流程 ---

    async def validate_files(self, files: List[UploadedFile]) -> None:
        """
        全部檔案先驗證完才開始寫入；任何一個失敗就整批退回
        """
        for file in files:
            result = await self.validator.validate(file)
            if not result.is_valid:
                logger.info(f"Upload rejected ({result.code}): {file.filename!r}")
                raise AppError(
                    ErrorKind.VALIDATION,
                    result.error,
                    details={"file": file.filename, "code": result.code},
                )

    async def _store_files(self, files: List[UploadedFile], complaint_id: str) -> List[Attachment]:
        """先寫檔，再回傳待寫入的附件紀錄；中途失敗會清掉已寫入的檔案"""
        attachments: List[Attachment] = []
        try:
            for file in files:
                reference = await self.file_store.save(file.data, file.filename, complaint_id)
                attachments.append(Attachment(
                    attachment_id=str(uuid.uuid4()),
                    complaint_id=complaint_id,
                    filename=sanitize_filename(file.filename),
                    url=reference,
                    file_size=file.size,
                    file_type=file.content_type,
                ))
        except FileStorageError as e:
            await self._discard_files(attachments)
            raise AppError(ErrorKind.INTERNAL, UPLOAD_FAILED) from e
        return attachments

    async def _discard_files(self, attachments: List[Attachment]) -> None:
        for attachment in attachments:
            try:
                await self.file_store.delete(attachment.url)
            except OSError as e:
                logger.warning(f"Failed to clean up stored file {attachment.url}: {e}")

    async def submit_complaint(self, data: ComplaintCreate, files: List[UploadedFile]) -> Complaint:
        """
        公開表單送出：驗證檔案 -> 清理文字 -> 寫檔 -> 建立投訴與附件紀錄
        """
        await self.validate_files(files)

        title = sanitize_input(data.title)
        description = sanitize_input(data.description)
        if not title or not description:
            raise AppError(ErrorKind.VALIDATION, "กรุณากรอกข้อมูลให้ครบถ้วน")

        complaint = Complaint(
            complaint_id=str(uuid.uuid4()),
            tracking_code=generate_tracking_code(),
            title=title,
            description=description,
            category=data.category,
            priority=data.priority,
            status=ComplaintStatus.NEW,
        )

        attachments = await self._store_files(files, complaint.complaint_id)
        try:
            created = await self.repo.create_complaint(complaint, attachments)
        except Exception:
            await self._discard_files(attachments)
            raise

        logger.info(f"Complaint {created.tracking_code} submitted with {len(attachments)} attachments")
        return created

    async def add_attachments(self, complaint_id: str, files: List[UploadedFile]) -> List[AttachmentOut]:
        """
        對既有投訴補件
        """
        if not files:
            raise AppError(ErrorKind.VALIDATION, "ข้อมูลไม่ถูกต้อง")
        complaint = await self.repo.get_complaint_by_id(complaint_id)
        if complaint is None:
            raise AppError(ErrorKind.NOT_FOUND, "ไม่พบข้อร้องเรียน")

        await self.validate_files(files)
        attachments = await self._store_files(files, complaint.complaint_id)
        try:
            saved = await self.repo.add_attachments(attachments)
        except Exception:
            await self._discard_files(attachments)
            raise

        logger.info(f"Added {len(saved)} attachments to complaint {complaint.complaint_id}")
        return [
            AttachmentOut(
                attachment_id=a.attachment_id,
                filename=a.filename,
                file_type=a.file_type,
                file_size=a.file_size,
                url=attachment_download_url(a.attachment_id),
                created_at=a.created_at,
            )
            for a in saved
        ]

    # --- 公開查詢 ---

    async def get_by_tracking_code(self, tracking_code: Optional[str]) -> ComplaintOut:
        if not tracking_code:
            raise AppError(ErrorKind.VALIDATION, "กรุณาระบุหมายเลขติดตาม")
        code = tracking_code.strip().upper()
        complaint = None
        if is_valid_tracking_code(code):
            complaint = await self.repo.get_complaint_by_tracking_code(code)
        if complaint is None:
            raise AppError(ErrorKind.NOT_FOUND, "ไม่พบข้อร้องเรียนที่มีหมายเลขติดตามนี้")
        return to_complaint_out(complaint, tracking_code=complaint.tracking_code)

    async def get_attachment_file(
        self, attachment_id: str, tracking_code: Optional[str], is_staff: bool
    ) -> Tuple[Attachment, bytes]:
        """
        下載附件：後台人員，或帶著相符追蹤碼的投訴者
        """
        attachment = await self.repo.get_attachment_with_complaint(attachment_id)
        if attachment is None:
            raise AppError(ErrorKind.NOT_FOUND, "ไม่พบไฟล์")

        if not is_staff and (not tracking_code or tracking_code != attachment.complaint.tracking_code):
            logger.warning(f"Denied file access to attachment {attachment_id}")
            raise AppError(ErrorKind.FORBIDDEN, "ไม่ได้รับอนุญาต")

        data = await self.file_store.read(attachment.url)
        if data is None:
            logger.error(f"Attachment {attachment_id} has no stored file at {attachment.url!r}")
            raise AppError(ErrorKind.NOT_FOUND, "ไม่พบไฟล์")
        return attachment, data

    # --- 後台 ---

    async def list_complaints(self, query: ComplaintListQuery) -> ComplaintListOut:
        if query.search:
            query = query.model_copy(update={"search": sanitize_search_query(query.search) or None})

        complaints, total_count = await execute_with_retry(lambda: self.repo.list_complaints(query))
        total_pages = math.ceil(total_count / query.limit)

        filters = {
            key: value
            for key, value in query.model_dump(include={"status", "category", "priority", "search"}).items()
            if value is not None
        }
        return ComplaintListOut(
            complaints=[to_complaint_out(c) for c in complaints],
            pagination=Pagination(
                page=query.page,
                limit=query.limit,
                total_count=total_count,
                total_pages=total_pages,
                has_next=query.page < total_pages,
                has_prev=query.page > 1,
            ),
            filters=filters,
            timestamp=datetime.now(timezone.utc),
        )

    async def get_stats(self, request: ComplaintStatsRequest) -> ComplaintStatsOut:
        filters = request.filters.model_dump(exclude_none=True) if request.filters else {}
        rows = await execute_with_retry(lambda: self.repo.group_counts(request.group_by, filters))
        return ComplaintStatsOut(
            stats=[{request.group_by: getattr(value, "value", value), "count": count} for value, count in rows],
            group_by=request.group_by,
            filters=request.filters,
        )

    async def get_complaint(self, complaint_id: str) -> Complaint:
        complaint = await self.repo.get_complaint_by_id(complaint_id)
        if complaint is None:
            raise AppError(ErrorKind.NOT_FOUND, "ไม่พบข้อร้องเรียนนี้")
        return complaint

    async def update_complaint(
        self, complaint_id: str, data: ComplaintUpdate
    ) -> Tuple[Complaint, Optional[ComplaintStatus]]:
        """
        更新 status / priority / category。
        回傳 (更新後的投訴, 新狀態)；狀態沒有改變時新狀態為 None
        """
        complaint = await self.get_complaint(complaint_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise AppError(ErrorKind.VALIDATION, "ไม่มีข้อมูลที่ต้องการอัปเดต")

        previous_status = ComplaintStatus(complaint.status)
        for field, value in changes.items():
            setattr(complaint, field, value)

        updated = await self.repo.update_complaint(complaint)
        status_changed = "status" in changes and ComplaintStatus(changes["status"]) != previous_status
        logger.info(f"Complaint {complaint_id} updated: {changes}")
        return updated, (ComplaintStatus(changes["status"]) if status_changed else None)

    async def delete_complaint(self, complaint_id: str) -> None:
        complaint = await self.get_complaint(complaint_id)
        references = [a.url for a in complaint.attachments]
        await self.repo.delete_complaint(complaint)
        for reference in references:
            try:
                await self.file_store.delete(reference)
            except OSError as e:
                logger.warning(f"Failed to remove stored file {reference}: {e}")
        logger.info(f"Complaint {complaint_id} deleted with {len(references)} attachments")
