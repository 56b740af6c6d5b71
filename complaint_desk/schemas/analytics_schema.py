# complaint_desk/schemas/analytics_schema.py
from pydantic import BaseModel
from typing import Dict, List, Literal, Optional

TimeRange = Literal["1month", "3months", "6months", "1year"]

class CategoryCount(BaseModel):
    category: str
    count: int

class PriorityCount(BaseModel):
    priority: str
    count: int

class DashboardStats(BaseModel):
    total_complaints: int
    new_complaints: int
    in_progress_complaints: int
    resolved_complaints: int
    closed_complaints: int
    archived_complaints: int
    # 已解決案件的平均處理時數
    avg_response_time: float
    today_complaints: int
    category_breakdown: List[CategoryCount]
    priority_breakdown: List[PriorityCount]
    # YYYY-MM -> 件數
    monthly_trends: Dict[str, int]

class CategoryStat(BaseModel):
    category: str
    total_count: int
    new_count: int
    in_progress_count: int
    resolved_count: int
    closed_count: int
    archived_count: int
    avg_resolution_time: float
    monthly_trends: Dict[str, int]
    resolution_rate: int

class OverallStats(BaseModel):
    total_complaints: int
    total_categories: int
    most_common_category: Optional[str] = None
    least_common_category: Optional[str] = None

class CategoryAnalyticsOut(BaseModel):
    time_range: TimeRange
    overall_stats: OverallStats
    category_stats: List[CategoryStat]
