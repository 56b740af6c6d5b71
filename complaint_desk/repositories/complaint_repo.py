# complaint_desk/repositories/complaint_repo.py

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from complaint_desk.models.complaint import Attachment, Complaint, ComplaintPriority, ComplaintStatus
from complaint_desk.schemas.complaint_schema import ComplaintListQuery

logger = logging.getLogger(__name__)

# priority / status 依照 enum 宣告順序排序，而不是字母順序
_PRIORITY_ORDER = case(
    {p.value: i for i, p in enumerate(ComplaintPriority)},
    value=Complaint.priority,
)
_STATUS_ORDER = case(
    {s.value: i for i, s in enumerate(ComplaintStatus)},
    value=Complaint.status,
)

SORT_COLUMNS = {
    "createdAt": Complaint.created_at,
    "updatedAt": Complaint.updated_at,
    "priority": _PRIORITY_ORDER,
    "status": _STATUS_ORDER,
    "title": Complaint.title,
}

class ComplaintRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_complaint(self, complaint: Complaint, attachments: List[Attachment]) -> Complaint:
        """
        建立投訴與附件紀錄 (附件檔案必須已經寫入磁碟)
        """
        try:
            self.db.add(complaint)
            await self.db.flush()
            for attachment in attachments:
                attachment.complaint_id = complaint.complaint_id
            self.db.add_all(attachments)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"建立投訴失敗: {e}", exc_info=True)
            raise
        return await self.get_complaint_by_id(complaint.complaint_id, refresh=True)

    async def get_complaint_by_id(self, complaint_id: str, refresh: bool = False) -> Optional[Complaint]:
        stmt = select(Complaint).where(Complaint.complaint_id == complaint_id)
        if refresh:
            # commit 後重新讀取 DB 產生的欄位 (created_at / updated_at)
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get_complaint_by_tracking_code(self, tracking_code: str) -> Optional[Complaint]:
        stmt = select(Complaint).where(Complaint.tracking_code == tracking_code)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def list_complaints(self, query: ComplaintListQuery) -> Tuple[List[Complaint], int]:
        """
        依條件篩選 + 排序 + 分頁，回傳 (該頁資料, 總筆數)
        """
        conditions = []
        if query.status:
            conditions.append(Complaint.status == query.status)
        if query.category:
            conditions.append(Complaint.category == query.category)
        if query.priority:
            conditions.append(Complaint.priority == query.priority)
        if query.search:
            pattern = f"%{query.search}%"
            conditions.append(or_(
                Complaint.title.ilike(pattern),
                Complaint.description.ilike(pattern),
                Complaint.tracking_code.ilike(pattern),
            ))

        sort_column = SORT_COLUMNS[query.sort_by]
        order = sort_column.asc() if query.sort_order == "asc" else sort_column.desc()

        stmt = (
            select(Complaint)
            .where(*conditions)
            .order_by(order, Complaint.complaint_id)
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
        )
        count_stmt = select(func.count(Complaint.complaint_id)).where(*conditions)

        result = await self.db.execute(stmt)
        complaints = list(result.scalars().all())
        total = (await self.db.execute(count_stmt)).scalar_one()
        return complaints, total

    async def update_complaint(self, complaint: Complaint) -> Complaint:
        """
        (U) 儲存對現有 Complaint 物件的變更
        """
        await self.db.commit()
        return await self.get_complaint_by_id(complaint.complaint_id, refresh=True)

    async def delete_complaint(self, complaint: Complaint) -> None:
        # 附件紀錄由 cascade 一併刪除
        await self.db.delete(complaint)
        await self.db.commit()

    # --- 附件 ---

    async def add_attachments(self, attachments: List[Attachment]) -> List[Attachment]:
        self.db.add_all(attachments)
        await self.db.commit()
        for attachment in attachments:
            await self.db.refresh(attachment)
        return attachments

    async def get_attachment_with_complaint(self, attachment_id: str) -> Optional[Attachment]:
        stmt = (
            select(Attachment)
            .where(Attachment.attachment_id == attachment_id)
            .options(joinedload(Attachment.complaint))
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    # --- 統計 ---

    async def group_counts(self, group_by: str, filters: Optional[Dict[str, Any]] = None) -> List[Tuple[Any, int]]:
        """
        依 status / category / priority 分組計數 (件數多的在前)
        """
        column = getattr(Complaint, group_by)
        conditions = [getattr(Complaint, field) == value for field, value in (filters or {}).items()]
        count = func.count(Complaint.complaint_id)
        stmt = (
            select(column, count)
            .where(*conditions)
            .group_by(column)
            .order_by(count.desc())
        )
        result = await self.db.execute(stmt)
        return [(value, total) for value, total in result.all()]
