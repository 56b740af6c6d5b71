# complaint_desk/core/errors.py
# 統一的錯誤型別：所有 handler 只丟 AppError，由這裡集中轉成 HTTP 狀態碼與訊息
import enum
import logging
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    INTERNAL = "internal"

# kind -> (HTTP 狀態碼, 預設訊息)
ERROR_MAP = {
    ErrorKind.VALIDATION: (status.HTTP_400_BAD_REQUEST, "ข้อมูลไม่ถูกต้อง"),
    ErrorKind.UNAUTHORIZED: (status.HTTP_401_UNAUTHORIZED, "ไม่ได้รับอนุญาต"),
    ErrorKind.FORBIDDEN: (status.HTTP_403_FORBIDDEN, "ไม่มีสิทธิ์ดำเนินการนี้"),
    ErrorKind.NOT_FOUND: (status.HTTP_404_NOT_FOUND, "ไม่พบข้อมูล"),
    ErrorKind.RATE_LIMITED: (status.HTTP_429_TOO_MANY_REQUESTS, "มีการร้องขอมากเกินไป กรุณาลองใหม่ภายหลัง"),
    ErrorKind.INTERNAL: (status.HTTP_500_INTERNAL_SERVER_ERROR, "เกิดข้อผิดพลาดภายในระบบ"),
}

class AppError(Exception):
    """
    應用程式錯誤。

    - kind: 錯誤類別 (決定狀態碼)
    - message: 回給前端的在地化訊息，不傳則用 ERROR_MAP 的預設值
    - details: 額外資訊 (例如欄位驗證錯誤)
    """

    def __init__(self, kind: ErrorKind, message: Optional[str] = None, details: Any = None):
        self.kind = kind
        self.message = message or ERROR_MAP[kind][1]
        self.details = details
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return ERROR_MAP[self.kind][0]

def error_response(kind: ErrorKind, message: str, details: Any = None) -> JSONResponse:
    content = {"success": False, "error": message}
    if details is not None:
        content["details"] = details
    headers = {"WWW-Authenticate": "Bearer"} if kind == ErrorKind.UNAUTHORIZED else None
    return JSONResponse(status_code=ERROR_MAP[kind][0], content=content, headers=headers)

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.kind == ErrorKind.INTERNAL:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc.__cause__)
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.kind.value}: {exc.message}")
    return error_response(exc.kind, exc.message, exc.details)

async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ())[1:]), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return error_response(ErrorKind.VALIDATION, ERROR_MAP[ErrorKind.VALIDATION][1], details)

async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # 內部細節只寫進 log，不回傳給前端
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return error_response(ErrorKind.INTERNAL, ERROR_MAP[ErrorKind.INTERNAL][1])

def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
