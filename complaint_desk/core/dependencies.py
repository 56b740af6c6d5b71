# complaint_desk/core/dependencies.py
# 啟動時建立的共用元件 (限流器、通知 broker、驗證器、檔案儲存) 都放在 app.state，
# 這裡把它們包成 FastAPI 依賴項

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from complaint_desk.core.database import get_db
from complaint_desk.core.errors import AppError, ErrorKind
from complaint_desk.core.event_broker import NotificationBroker
from complaint_desk.core.file_store import FileStore
from complaint_desk.core.rate_limiter import RateLimiter, get_client_ip
from complaint_desk.services.complaint_service import ComplaintService
from complaint_desk.utils.file_validator import FileValidator

COMPLAINT_LIMITER = "complaint"
UPLOAD_LIMITER = "upload"

def get_broker(request: Request) -> NotificationBroker:
    return request.app.state.notification_broker

def get_file_validator(request: Request) -> FileValidator:
    return request.app.state.file_validator

def get_file_store(request: Request) -> FileStore:
    return request.app.state.file_store

def get_complaint_service(
    db: AsyncSession = Depends(get_db),
    validator: FileValidator = Depends(get_file_validator),
    file_store: FileStore = Depends(get_file_store),
) -> ComplaintService:
    return ComplaintService(db, validator=validator, file_store=file_store)

def rate_limit(limiter_name: str):
    """
    依賴項工廠：超過額度時丟出 RATE_LIMITED (429)
    """
    async def dependency(request: Request) -> None:
        limiter: RateLimiter = request.app.state.rate_limiters[limiter_name]
        if not await limiter.check(get_client_ip(request)):
            raise AppError(ErrorKind.RATE_LIMITED)
    return dependency
