# complaint_desk/core/security.py
# 負責密碼雜湊、JWT 權杖的產生與驗證、以及角色權限檢查
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Query
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from complaint_desk.core.config import settings
from complaint_desk.core.database import get_db
from complaint_desk.core.errors import AppError, ErrorKind
from complaint_desk.models.user import User, UserRoleEnum
from complaint_desk.repositories.user_repo import UserRepository
from complaint_desk.schemas.user_schema import TokenData

# 1. 密碼雜湊設定 (Bcrypt)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# 2. Token 從 Authorization Header 來；auto_error=False 讓公開端點也能選擇性讀取
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """驗證明文密碼是否與雜湊值相符"""
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    """產生密碼的雜湊值"""
    return pwd_context.hash(password)

def create_access_token(data: dict, expires_minutes: Optional[int] = None) -> str:
    """
    根據傳入的 data (user_id / role) 產生 JWT access token
    """
    to_encode = data.copy() # 避免修改原始資料
    minutes = expires_minutes if expires_minutes is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    to_encode.update({"exp": expire})

    return jwt.encode(
        to_encode,
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM
    )

def verify_access_token(token: str) -> TokenData | None:
    """
    驗證 JWT，回傳 TokenData 或 None
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
        user_id = payload.get("user_id")
        role = payload.get("role")
        if user_id is None or role is None:
            return None
        return TokenData(user_id=user_id, role=role)
    except (JWTError, ValueError):
        return None

async def _load_active_user(token: Optional[str], db: AsyncSession) -> User | None:
    if not token:
        return None
    token_data = verify_access_token(token)
    if token_data is None:
        return None
    user = await UserRepository(db).get_user_by_id(user_id=token_data.user_id)
    if user is None or not user.is_active:
        return None
    return user

async def get_optional_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> User | None:
    """
    FastAPI 依賴項：有有效 Token 就回傳 User，否則回傳 None (用於公開 + 後台共用的端點)
    """
    return await _load_active_user(token, db)

async def get_current_user(
    user: User | None = Depends(get_optional_user)
) -> User:
    """
    FastAPI 依賴項：驗證 Token 並回傳 User Model (用於 REST API)
    """
    if user is None:
        raise AppError(ErrorKind.UNAUTHORIZED)
    return user

async def get_current_user_from_query_token(
    token: Optional[str] = Depends(oauth2_scheme),
    query_token: Optional[str] = Query(None, alias="token"),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    SSE 專用：瀏覽器的 EventSource 無法帶 Header，允許從 ?token=... 讀取
    """
    user = await _load_active_user(token or query_token, db)
    if user is None:
        raise AppError(ErrorKind.UNAUTHORIZED)
    return user

def has_role(user: User | None, *roles: UserRoleEnum) -> bool:
    return user is not None and UserRoleEnum(user.role) in roles

def require_role(*roles: UserRoleEnum, user_dependency=get_current_user):
    """
    角色權限檢查 (唯一入口)：
    - 未登入 / Token 無效 -> 401
    - 角色不在允許清單 -> 403
    """
    async def checker(user: User = Depends(user_dependency)) -> User:
        if not has_role(user, *roles):
            raise AppError(ErrorKind.FORBIDDEN, "ไม่ได้รับอนุญาต - เฉพาะผู้ดูแลระบบเท่านั้น")
        return user
    return checker

# 常用組合
require_staff = require_role(UserRoleEnum.admin, UserRoleEnum.viewer)
require_admin = require_role(UserRoleEnum.admin)
