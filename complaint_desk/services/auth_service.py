from sqlalchemy.ext.asyncio import AsyncSession
from complaint_desk.repositories.user_repo import UserRepository
from complaint_desk.core.security import verify_password, create_access_token, get_password_hash
from complaint_desk.models.user import User, UserRoleEnum
from complaint_desk.schemas.user_schema import UserCreate
import logging

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, db: AsyncSession):
        self.user_repo = UserRepository(db)

    async def authenticate_user(self, email: str, password: str) -> User | None:
        """
        驗證使用者帳號密碼。
        成功回傳 User 物件 (並更新最後登入時間)，失敗回傳 None。
        """
        user = await self.user_repo.get_user_by_email(email)

        # 1. 檢查使用者是否存在
        if not user:
            return None

        # 2. 檢查是否被停用
        if not user.is_active:
            return None

        # 3. 檢查密碼是否正確
        if not verify_password(plain_password=password, hashed_password=user.password_hash):
            return None

        return await self.user_repo.touch_last_login(user)

    async def create_user(self, user_in: UserCreate) -> User:
        """
        建立後台帳號 (只給 seed 指令使用，沒有公開的註冊端點)
        """
        existing_user = await self.user_repo.get_user_by_email(user_in.email)
        if existing_user:
            logger.info(f"User {user_in.email} already exists, skipping")
            return existing_user

        new_user = User(
            email=user_in.email,
            password_hash=get_password_hash(user_in.password),
            role=user_in.role,
        )
        return await self.user_repo.create_user(new_user)

    def create_login_token(self, user: User) -> str:
        """
        為指定使用者建立 access token (角色寫入 token)
        """
        return create_access_token(
            data={
                "sub": user.email,
                "user_id": str(user.user_id),
                "role": UserRoleEnum(user.role).value # 確保存入的是字串
            }
        )
