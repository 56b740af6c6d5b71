import os
import sys
import tempfile

# 測試環境變數必須在匯入 complaint_desk 之前設定 (settings 在匯入時就建立)
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

_TMP_DIR = tempfile.mkdtemp(prefix="complaint-desk-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["REDIS_URL"] = "memory://"
os.environ.pop("CLAMAV_HOST", None)

import httpx
import pytest

from complaint_desk.core.config import settings
from complaint_desk.core.database import AsyncSessionLocal, Base, engine, init_models
from complaint_desk.core.security import create_access_token, get_password_hash
from complaint_desk.main import app
from complaint_desk.models.complaint import Complaint, ComplaintCategory, ComplaintPriority, ComplaintStatus
from complaint_desk.models.user import User, UserRoleEnum
from complaint_desk.utils.tracking import generate_tracking_code

PNG_HEADER = b"\x89PNG\r\n\x1a\n"

def png_bytes(size: int = 1024) -> bytes:
    return PNG_HEADER + b"\0" * (size - len(PNG_HEADER))

async def _reset_database():
    from complaint_desk.models import user, complaint, notification  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await init_models()

@pytest.fixture
async def db():
    """乾淨的資料表 + 一個 session"""
    await _reset_database()
    async with AsyncSessionLocal() as session:
        yield session
    await engine.dispose()

@pytest.fixture
async def client(db):
    """跑完整 lifespan (限流器、broker、檔案儲存都會重新建立) 的 API client"""
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
            yield c

@pytest.fixture
def make_user(db):
    async def _make_user(email: str, role: UserRoleEnum, password: str = "password123", is_active: bool = True) -> User:
        user = User(
            email=email,
            password_hash=get_password_hash(password),
            role=role,
            is_active=is_active,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user
    return _make_user

@pytest.fixture
def make_complaint(db):
    async def _make_complaint(
        title: str = "เครื่องพิมพ์เสีย",
        category: ComplaintCategory = ComplaintCategory.EQUIPMENT,
        priority: ComplaintPriority = ComplaintPriority.MEDIUM,
        status: ComplaintStatus = ComplaintStatus.NEW,
        **kwargs,
    ) -> Complaint:
        complaint = Complaint(
            tracking_code=generate_tracking_code(),
            title=title,
            description=kwargs.pop("description", "รายละเอียดของปัญหาที่เกิดขึ้นในสำนักงาน"),
            category=category,
            priority=priority,
            status=status,
            **kwargs,
        )
        db.add(complaint)
        await db.commit()
        await db.refresh(complaint)
        return complaint
    return _make_complaint

def auth_headers(user: User) -> dict:
    token = create_access_token({"user_id": user.user_id, "role": UserRoleEnum(user.role).value})
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
async def admin(make_user):
    return await make_user("admin@example.com", UserRoleEnum.admin)

@pytest.fixture
async def viewer(make_user):
    return await make_user("viewer@example.com", UserRoleEnum.viewer)

@pytest.fixture
def upload_dir():
    return settings.UPLOAD_DIR
