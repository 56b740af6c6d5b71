# complaint_desk/models/user.py
import enum
import uuid
from sqlalchemy import Column, String, Boolean, Enum, CHAR, TIMESTAMP, func
from sqlalchemy.orm import relationship
from complaint_desk.core.database import Base

class UserRoleEnum(str, enum.Enum):
    admin = "ADMIN"
    viewer = "VIEWER"

class User(Base):
    __tablename__ = "users"

    # 基本欄位
    user_id = Column(CHAR(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum(UserRoleEnum, values_callable=lambda obj: [e.value for e in obj]), nullable=False, default=UserRoleEnum.viewer)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(TIMESTAMP, nullable=True)
    created_at = Column(TIMESTAMP, server_default=func.now())

    # 使用者收到的通知 (UserNotification 關聯表)
    notifications = relationship(
        "UserNotification",
        back_populates="user",
        cascade="all, delete-orphan",
    )
