# complaint_desk/routers/analytics_router.py

from typing import Literal

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from complaint_desk.core.database import get_db
from complaint_desk.core.security import require_staff
from complaint_desk.models.user import User
from complaint_desk.schemas.analytics_schema import CategoryAnalyticsOut, DashboardStats, TimeRange
from complaint_desk.services.analytics_service import AnalyticsService

router = APIRouter(prefix="/api", tags=["Analytics"])

def get_analytics_service(db: AsyncSession = Depends(get_db)) -> AnalyticsService:
    return AnalyticsService(db)

@router.get("/dashboard/stats", response_model=DashboardStats, summary="儀表板統計")
async def dashboard_stats(
    service: AnalyticsService = Depends(get_analytics_service),
    current_user: User = Depends(require_staff),
):
    return await service.get_dashboard_stats()

@router.get("/admin/analytics/categories", response_model=CategoryAnalyticsOut, summary="分類分析")
async def category_analytics(
    time_range: TimeRange = Query("6months", alias="timeRange"),
    service: AnalyticsService = Depends(get_analytics_service),
    current_user: User = Depends(require_staff),
):
    return await service.get_category_analytics(time_range)

@router.get("/admin/analytics/export", summary="匯出分類分析 (Excel / PDF)")
async def export_analytics(
    export_format: Literal["excel", "pdf"] = Query("pdf", alias="format"),
    time_range: TimeRange = Query("6months", alias="timeRange"),
    service: AnalyticsService = Depends(get_analytics_service),
    current_user: User = Depends(require_staff),
):
    content, media_type, filename = await service.export_category_report(export_format, time_range)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
