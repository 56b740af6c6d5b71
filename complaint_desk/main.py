import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from complaint_desk.core.config import settings
from complaint_desk.core.database import init_models
from complaint_desk.core.dependencies import COMPLAINT_LIMITER, UPLOAD_LIMITER
from complaint_desk.core.errors import register_error_handlers
from complaint_desk.core.event_broker import NotificationBroker
from complaint_desk.core.file_store import FileStore
from complaint_desk.core.malware_scanner import create_scanner
from complaint_desk.core.rate_limiter import RateLimitPolicy, RateLimiter, create_rate_limit_storage
from complaint_desk.routers import (
    admin_complaint_router, analytics_router, auth_router, complaint_router, notification_router,
)
from complaint_desk.utils.file_validator import FileValidator

# 設定基礎日誌
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__) # 建立一個 logger 實例

@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()

    # 兩個限流器共用同一個計數來源，以名稱區分
    storage = create_rate_limit_storage(settings.REDIS_URL)
    app.state.rate_limiters = {
        COMPLAINT_LIMITER: RateLimiter(
            COMPLAINT_LIMITER,
            RateLimitPolicy(settings.COMPLAINT_RATE_LIMIT, settings.COMPLAINT_RATE_WINDOW_MS),
            storage,
        ),
        UPLOAD_LIMITER: RateLimiter(
            UPLOAD_LIMITER,
            RateLimitPolicy(settings.UPLOAD_RATE_LIMIT, settings.UPLOAD_RATE_WINDOW_MS),
            storage,
        ),
    }
    app.state.notification_broker = NotificationBroker()
    app.state.file_validator = FileValidator(
        max_file_size=settings.MAX_FILE_SIZE,
        scanner=create_scanner(settings.CLAMAV_HOST, settings.CLAMAV_PORT, settings.CLAMAV_TIMEOUT_SECONDS),
    )
    app.state.file_store = FileStore(settings.UPLOAD_DIR)
    logger.info("Complaint desk started")

    yield


app = FastAPI(title="Complaint Desk", lifespan=lifespan)

# --- 設定 CORS (跨來源資源共用) ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"], # 允許所有 HTTP 方法
    allow_headers=["*"], # 允許所有 HTTP 標頭
)

register_error_handlers(app)

# --- 根路徑 ---
@app.get("/")
def read_root():
    return {"status": "success", "message": "Backend is running!"}

# --- 載入 API 路由 ---
app.include_router(auth_router.router)
app.include_router(complaint_router.router)
app.include_router(admin_complaint_router.router)
app.include_router(notification_router.router)
app.include_router(analytics_router.router)
