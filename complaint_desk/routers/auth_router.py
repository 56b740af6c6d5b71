import logging
from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession
from complaint_desk.core.config import settings
from complaint_desk.core.database import get_db
from complaint_desk.core.errors import AppError, ErrorKind
from complaint_desk.services.auth_service import AuthService
from complaint_desk.models.user import UserRoleEnum
from complaint_desk.schemas.user_schema import Token

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth", # 路由前綴
    tags=["Auth"]    # API 文件分類標籤
)

@router.post("/token", response_model=Token)
async def login_for_access_token(
    # OAuth2PasswordRequestForm 只接受 form-data：username=...&password=...
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db)
):
    """
    後台登入：username 欄位傳 email
    """
    auth_service = AuthService(db)

    user = await auth_service.authenticate_user(
        email=form_data.username,
        password=form_data.password
    )

    if not user:
        logger.info(f"Failed login attempt for {form_data.username}")
        raise AppError(ErrorKind.UNAUTHORIZED, "อีเมลหรือรหัสผ่านไม่ถูกต้อง")

    logger.info(f"User logged in: {user.user_id}")
    access_token = auth_service.create_login_token(user)

    return Token(
        access_token=access_token,
        role=UserRoleEnum(user.role),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
