# complaint_desk/schemas/user_schema.py
from pydantic import BaseModel, EmailStr, Field
from complaint_desk.models.user import UserRoleEnum

# 後台帳號只由 seed 指令建立
class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: UserRoleEnum = UserRoleEnum.viewer

# 登入回應：前端依 role 決定要不要顯示編輯 / 刪除按鈕
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: UserRoleEnum
    expires_in: int # 秒

# Token 內的資料
class TokenData(BaseModel):
    user_id: str
    role: UserRoleEnum
