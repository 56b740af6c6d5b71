# complaint_desk/repositories/analytics_repo.py
# 儀表板與分類分析用的唯讀查詢

from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from complaint_desk.models.complaint import Complaint, ComplaintStatus

class AnalyticsRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def count_total(self) -> int:
        stmt = select(func.count(Complaint.complaint_id))
        return (await self.db.execute(stmt)).scalar_one()

    async def count_by_status(self) -> Dict[ComplaintStatus, int]:
        stmt = select(Complaint.status, func.count(Complaint.complaint_id)).group_by(Complaint.status)
        result = await self.db.execute(stmt)
        return {status: total for status, total in result.all()}

    async def count_created_between(self, start: datetime, end: datetime) -> int:
        stmt = select(func.count(Complaint.complaint_id)).where(
            Complaint.created_at >= start,
            Complaint.created_at < end,
        )
        return (await self.db.execute(stmt)).scalar_one()

    async def group_counts(self, column, since: Optional[datetime] = None) -> List[Tuple[str, int]]:
        """依指定欄位分組計數，件數多的在前"""
        count = func.count(Complaint.complaint_id)
        stmt = select(column, count).group_by(column).order_by(count.desc(), column)
        if since is not None:
            stmt = stmt.where(Complaint.created_at >= since)
        result = await self.db.execute(stmt)
        return [(value, total) for value, total in result.all()]

    async def category_status_counts(self, since: datetime) -> List[Tuple[str, str, int]]:
        stmt = (
            select(Complaint.category, Complaint.status, func.count(Complaint.complaint_id))
            .where(Complaint.created_at >= since)
            .group_by(Complaint.category, Complaint.status)
        )
        result = await self.db.execute(stmt)
        return [tuple(row) for row in result.all()]

    async def created_dates(self, since: datetime) -> List[Tuple[str, datetime]]:
        """(category, created_at)，給月份趨勢在 Python 端彙總"""
        stmt = select(Complaint.category, Complaint.created_at).where(Complaint.created_at >= since)
        result = await self.db.execute(stmt)
        return [tuple(row) for row in result.all()]

    async def resolved_timestamps(
        self, since: Optional[datetime] = None, limit: Optional[int] = None
    ) -> List[Tuple[str, datetime, datetime]]:
        """
        已解決案件的 (category, created_at, updated_at)。
        處理時間以最後更新時間近似。
        """
        stmt = select(Complaint.category, Complaint.created_at, Complaint.updated_at).where(
            Complaint.status == ComplaintStatus.RESOLVED
        )
        if since is not None:
            stmt = stmt.where(Complaint.created_at >= since)
        if limit is not None:
            stmt = stmt.order_by(Complaint.updated_at.desc()).limit(limit)
        result = await self.db.execute(stmt)
        return [tuple(row) for row in result.all()]

    async def recent_complaints(self, since: datetime, limit: int = 10) -> List[Complaint]:
        stmt = (
            select(Complaint)
            .where(Complaint.created_at >= since)
            .order_by(Complaint.created_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
