# complaint_desk/schemas/complaint_schema.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime

from complaint_desk.models.complaint import ComplaintCategory, ComplaintPriority, ComplaintStatus

# 1. 附件 (公開追蹤頁與後台共用)
class AttachmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    attachment_id: str
    filename: str
    file_type: str
    file_size: int
    # 下載連結 (一律經過 /api/files/{id}，不直接暴露儲存路徑)
    url: Optional[str] = None
    created_at: Optional[datetime] = None

# 2. 公開表單送出的投訴內容
class ComplaintCreate(BaseModel):
    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=10, max_length=2000)
    category: ComplaintCategory
    priority: ComplaintPriority

class ComplaintSubmitOut(BaseModel):
    success: bool = True
    tracking_code: str
    message: str
    attachment_count: int = 0

# 3. 投訴完整資料
class ComplaintOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    complaint_id: str
    tracking_code: str
    title: str
    description: str
    category: ComplaintCategory
    priority: ComplaintPriority
    status: ComplaintStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    attachments: List[AttachmentOut] = []

# 4. 後台更新 (所有欄位皆可選)
class ComplaintUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Optional[ComplaintStatus] = None
    priority: Optional[ComplaintPriority] = None
    category: Optional[ComplaintCategory] = None

class ComplaintUpdateOut(BaseModel):
    success: bool = True
    complaint: ComplaintOut
    message: str

# 5. 後台列表的查詢條件
SortField = Literal["createdAt", "updatedAt", "priority", "status", "title"]

class ComplaintListQuery(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    status: Optional[ComplaintStatus] = None
    category: Optional[ComplaintCategory] = None
    priority: Optional[ComplaintPriority] = None
    search: Optional[str] = Field(None, max_length=100)
    sort_by: SortField = "createdAt"
    sort_order: Literal["asc", "desc"] = "desc"

class Pagination(BaseModel):
    page: int
    limit: int
    total_count: int
    total_pages: int
    has_next: bool
    has_prev: bool

class ComplaintListOut(BaseModel):
    complaints: List[ComplaintOut]
    pagination: Pagination
    filters: Dict[str, Any]
    timestamp: datetime

# 6. 分組統計
class ComplaintFilters(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Optional[ComplaintStatus] = None
    category: Optional[ComplaintCategory] = None
    priority: Optional[ComplaintPriority] = None

class ComplaintStatsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    group_by: Literal["status", "category", "priority"] = Field(..., alias="groupBy")
    filters: Optional[ComplaintFilters] = None

class ComplaintStatsOut(BaseModel):
    stats: List[Dict[str, Any]]
    group_by: str
    filters: Optional[ComplaintFilters] = None

# 7. 後續補件上傳
class UploadResultOut(BaseModel):
    success: bool = True
    attachments: List[AttachmentOut]
