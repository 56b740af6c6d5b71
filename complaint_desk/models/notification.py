# complaint_desk/models/notification.py

import uuid
from sqlalchemy import Column, String, TEXT, BOOLEAN, CHAR, ForeignKey, TIMESTAMP, UniqueConstraint, func
from sqlalchemy.orm import relationship
from complaint_desk.core.database import Base

class Notification(Base):
    """一則通知內容，透過 UserNotification 分發給每位使用者"""
    __tablename__ = "notifications"

    notification_id = Column(CHAR(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    message = Column(TEXT)
    # 通知類型 (status_update / new_complaint / info ...)
    type = Column(String(50), nullable=False, default="info")
    # 關聯的投訴 (可為空)
    complaint_id = Column(CHAR(36), ForeignKey("complaints.complaint_id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(TIMESTAMP, server_default=func.now())

    recipients = relationship(
        "UserNotification",
        back_populates="notification",
        cascade="all, delete-orphan",
    )

class UserNotification(Base):
    __tablename__ = "user_notifications"
    __table_args__ = (
        UniqueConstraint("user_id", "notification_id", name="uq_user_notification"),
    )

    user_notification_id = Column(CHAR(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(CHAR(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    notification_id = Column(CHAR(36), ForeignKey("notifications.notification_id", ondelete="CASCADE"), nullable=False, index=True)
    read = Column(BOOLEAN, default=False, nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now())

    user = relationship("User", back_populates="notifications")
    notification = relationship("Notification", back_populates="recipients", lazy="joined")
