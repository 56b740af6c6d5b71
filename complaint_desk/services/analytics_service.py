# complaint_desk/services/analytics_service.py

import calendar
import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from complaint_desk.models.complaint import Complaint, ComplaintStatus
from complaint_desk.repositories.analytics_repo import AnalyticsRepository
from complaint_desk.schemas.analytics_schema import (
    CategoryAnalyticsOut, CategoryCount, CategoryStat, DashboardStats, OverallStats, PriorityCount, TimeRange,
)
from complaint_desk.utils.report_export import (
    PDF_MEDIA_TYPE, XLSX_MEDIA_TYPE, build_category_pdf, build_category_workbook,
)

logger = logging.getLogger(__name__)

TIME_RANGE_MONTHS = {"1month": 1, "3months": 3, "6months": 6, "1year": 12}

# 平均處理時間只取最近的樣本
RESPONSE_TIME_SAMPLE = 100

def utcnow() -> datetime:
    # 資料庫欄位是 naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)

def months_ago(now: datetime, months: int) -> datetime:
    month_index = now.month - 1 - months
    year = now.year + month_index // 12
    month = month_index % 12 + 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)

def range_start(time_range: str, now: Optional[datetime] = None) -> datetime:
    now = now or utcnow()
    return months_ago(now, TIME_RANGE_MONTHS.get(time_range, 6))

def hours_between(start: datetime, end: Optional[datetime]) -> float:
    if start is None or end is None:
        return 0.0
    return (end - start).total_seconds() / 3600

def average_hours(rows: List[Tuple[str, datetime, datetime]]) -> float:
    if not rows:
        return 0.0
    total = sum(hours_between(created, updated) for _, created, updated in rows)
    return round(total / len(rows), 2)

def monthly_counts(dates: List[datetime]) -> Dict[str, int]:
    """YYYY-MM -> 件數"""
    counts: Dict[str, int] = defaultdict(int)
    for created in dates:
        if created is not None:
            counts[created.strftime("%Y-%m")] += 1
    return dict(sorted(counts.items()))

def _value(enum_or_str) -> str:
    return getattr(enum_or_str, "value", enum_or_str)

class AnalyticsService:
    def __init__(self, db: AsyncSession):
        self.repo = AnalyticsRepository(db)

    async def get_dashboard_stats(self) -> DashboardStats:
        now = utcnow()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)

        total = await self.repo.count_total()
        by_status = {_value(k): v for k, v in (await self.repo.count_by_status()).items()}
        today = await self.repo.count_created_between(start_of_day, start_of_day + timedelta(days=1))
        categories = await self.repo.group_counts(Complaint.category)
        priorities = await self.repo.group_counts(Complaint.priority)
        created = await self.repo.created_dates(months_ago(now, 6))
        resolved = await self.repo.resolved_timestamps(limit=RESPONSE_TIME_SAMPLE)

        return DashboardStats(
            total_complaints=total,
            new_complaints=by_status.get(ComplaintStatus.NEW.value, 0),
            in_progress_complaints=by_status.get(ComplaintStatus.IN_PROGRESS.value, 0),
            resolved_complaints=by_status.get(ComplaintStatus.RESOLVED.value, 0),
            closed_complaints=by_status.get(ComplaintStatus.CLOSED.value, 0),
            archived_complaints=by_status.get(ComplaintStatus.ARCHIVED.value, 0),
            avg_response_time=average_hours(resolved),
            today_complaints=today,
            category_breakdown=[CategoryCount(category=_value(c), count=n) for c, n in categories],
            priority_breakdown=[PriorityCount(priority=_value(p), count=n) for p, n in priorities],
            monthly_trends=monthly_counts([c for _, c in created]),
        )

    async def get_category_analytics(self, time_range: TimeRange = "6months") -> CategoryAnalyticsOut:
        since = range_start(time_range)

        categories = await self.repo.group_counts(Complaint.category, since=since)
        status_rows = await self.repo.category_status_counts(since)
        created_rows = await self.repo.created_dates(since)
        resolved_rows = await self.repo.resolved_timestamps(since=since)

        status_counts: Dict[str, Dict[str, int]] = defaultdict(dict)
        for category, status, count in status_rows:
            status_counts[_value(category)][_value(status)] = count

        created_by_category: Dict[str, List[datetime]] = defaultdict(list)
        for category, created in created_rows:
            created_by_category[_value(category)].append(created)

        resolved_by_category: Dict[str, list] = defaultdict(list)
        for row in resolved_rows:
            resolved_by_category[_value(row[0])].append(row)

        stats = []
        for category, total_count in categories:
            key = _value(category)
            counts = status_counts.get(key, {})
            resolved_count = counts.get(ComplaintStatus.RESOLVED.value, 0)
            stats.append(CategoryStat(
                category=key,
                total_count=total_count,
                new_count=counts.get(ComplaintStatus.NEW.value, 0),
                in_progress_count=counts.get(ComplaintStatus.IN_PROGRESS.value, 0),
                resolved_count=resolved_count,
                closed_count=counts.get(ComplaintStatus.CLOSED.value, 0),
                archived_count=counts.get(ComplaintStatus.ARCHIVED.value, 0),
                avg_resolution_time=average_hours(resolved_by_category.get(key, [])),
                monthly_trends=monthly_counts(created_by_category.get(key, [])),
                resolution_rate=round(resolved_count / total_count * 100) if total_count else 0,
            ))

        overall = OverallStats(
            total_complaints=sum(n for _, n in categories),
            total_categories=len(categories),
            most_common_category=_value(categories[0][0]) if categories else None,
            least_common_category=_value(categories[-1][0]) if categories else None,
        )
        return CategoryAnalyticsOut(time_range=time_range, overall_stats=overall, category_stats=stats)

    async def export_category_report(self, export_format: str, time_range: TimeRange = "6months") -> Tuple[bytes, str, str]:
        """
        回傳 (檔案內容, media type, 檔名)
        """
        analytics = await self.get_category_analytics(time_range)
        if export_format == "excel":
            content = build_category_workbook(analytics.category_stats, time_range)
            media_type, filename = XLSX_MEDIA_TYPE, "analytics.xlsx"
        else:
            content = build_category_pdf(analytics.category_stats, time_range)
            media_type, filename = PDF_MEDIA_TYPE, "analytics.pdf"
        logger.info(f"Exported category analytics as {filename} ({len(content)} bytes, {time_range})")
        return content, media_type, filename
