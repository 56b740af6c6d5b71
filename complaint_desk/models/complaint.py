# complaint_desk/models/complaint.py
import enum
import uuid
from sqlalchemy import Column, String, TEXT, INT, CHAR, Enum, ForeignKey, TIMESTAMP, func
from sqlalchemy.orm import relationship
from complaint_desk.core.database import Base

class ComplaintCategory(str, enum.Enum):
    TECHNICAL = "TECHNICAL"
    PERSONNEL = "PERSONNEL"
    ENVIRONMENT = "ENVIRONMENT"
    EQUIPMENT = "EQUIPMENT"
    SAFETY = "SAFETY"
    FINANCIAL = "FINANCIAL"
    STRUCTURE_SYSTEM = "STRUCTURE_SYSTEM"
    WELFARE_SERVICES = "WELFARE_SERVICES"
    PROJECT_IDEA = "PROJECT_IDEA"
    OTHER = "OTHER"

class ComplaintPriority(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"

class ComplaintStatus(str, enum.Enum):
    NEW = "NEW"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"
    ARCHIVED = "ARCHIVED"

# 前端顯示用的泰文標籤 (通知訊息也會用到)
CATEGORY_LABELS = {
    ComplaintCategory.TECHNICAL: "เทคนิค",
    ComplaintCategory.PERSONNEL: "บุคคล",
    ComplaintCategory.ENVIRONMENT: "สภาพแวดล้อม",
    ComplaintCategory.EQUIPMENT: "อุปกรณ์",
    ComplaintCategory.SAFETY: "ความปลอดภัย",
    ComplaintCategory.FINANCIAL: "การเงิน",
    ComplaintCategory.STRUCTURE_SYSTEM: "โครงสร้างและระบบการทำงาน",
    ComplaintCategory.WELFARE_SERVICES: "สวัสดิการและบริการ",
    ComplaintCategory.PROJECT_IDEA: "เสนอโปรเจค-ไอเดีย",
    ComplaintCategory.OTHER: "อื่นๆ",
}

STATUS_LABELS = {
    ComplaintStatus.NEW: "ใหม่",
    ComplaintStatus.IN_PROGRESS: "กำลังดำเนินการ",
    ComplaintStatus.RESOLVED: "แก้ไขแล้ว",
    ComplaintStatus.CLOSED: "ปิดเรื่อง",
    ComplaintStatus.ARCHIVED: "เก็บถาวร",
}

def _enum_column(enum_cls, **kwargs):
    return Column(
        Enum(enum_cls, values_callable=lambda obj: [e.value for e in obj], native_enum=False, length=32),
        **kwargs
    )

class Complaint(Base):
    __tablename__ = "complaints"

    complaint_id = Column(CHAR(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # 給匿名投訴者的追蹤碼 (TRK-xxxx-xxxx)，唯一且不可修改
    tracking_code = Column(String(64), unique=True, index=True, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(TEXT, nullable=False)
    category = _enum_column(ComplaintCategory, nullable=False, index=True)
    priority = _enum_column(ComplaintPriority, nullable=False, default=ComplaintPriority.MEDIUM, index=True)
    status = _enum_column(ComplaintStatus, nullable=False, default=ComplaintStatus.NEW, index=True)
    created_at = Column(TIMESTAMP, server_default=func.now(), index=True)
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    # 刪除投訴時一併刪除附件紀錄
    attachments = relationship(
        "Attachment",
        back_populates="complaint",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="Attachment.created_at",
    )

class Attachment(Base):
    __tablename__ = "attachments"

    attachment_id = Column(CHAR(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    complaint_id = Column(CHAR(36), ForeignKey("complaints.complaint_id", ondelete="CASCADE"), nullable=False, index=True)
    # 顯示用檔名 (已清理)，不會拿來當路徑
    filename = Column(String(255), nullable=False)
    # 儲存位置 (相對於上傳根目錄)，只能透過 /api/files/{id} 讀取
    url = Column(String(500), nullable=False)
    file_size = Column(INT, nullable=False)
    file_type = Column(String(255), nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now())

    complaint = relationship("Complaint", back_populates="attachments")
