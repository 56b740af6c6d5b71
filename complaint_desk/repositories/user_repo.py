# complaint_desk/repositories/user_repo.py
# 後台帳號 (ADMIN / VIEWER) 的資料存取；投訴者是匿名的，不會出現在這張表
from datetime import datetime, timezone
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from complaint_desk.models.user import User

class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _first(self, *conditions) -> User | None:
        result = await self.db.execute(select(User).where(*conditions))
        return result.scalars().first()

    async def get_user_by_email(self, email: str) -> User | None:
        """登入時以 email 找帳號"""
        return await self._first(User.email == email)

    async def get_user_by_id(self, user_id: str) -> User | None:
        """驗證 Token 時以 user_id 找帳號"""
        return await self._first(User.user_id == user_id)

    async def create_user(self, user: User) -> User:
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def list_active_user_ids(self) -> List[str]:
        """通知發送對象：目前啟用中的帳號"""
        result = await self.db.execute(select(User.user_id).where(User.is_active.is_(True)))
        return list(result.scalars().all())

    async def touch_last_login(self, user: User) -> User:
        user.last_login = datetime.now(timezone.utc).replace(tzinfo=None)
        await self.db.commit()
        await self.db.refresh(user)
        return user
