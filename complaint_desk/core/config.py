# complaint_desk/core/config.py
# 應用程式設定 (資料庫連線字串、JWT 秘鑰、上傳與限流參數等)
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # 資料庫設定 (例如 postgresql+asyncpg://... 或 sqlite+aiosqlite:///./complaints.db)
    DATABASE_URL: str
    SQL_ECHO: bool = False

    # JWT 設定
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    # Session 過期時間（分鐘），角色會寫入 token
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # 檔案上傳設定
    UPLOAD_DIR: str = "uploads"
    MAX_FILE_SIZE: int = 5 * 1024 * 1024
    MAX_FILES: int = 5

    # 限流設定 (REDIS_URL 未設定或為 memory:// 時使用程序內計數器)
    REDIS_URL: Optional[str] = None
    COMPLAINT_RATE_LIMIT: int = 5
    COMPLAINT_RATE_WINDOW_MS: int = 60_000
    UPLOAD_RATE_LIMIT: int = 10
    UPLOAD_RATE_WINDOW_MS: int = 60 * 60 * 1000

    # 掃毒服務 (clamd)，未設定 CLAMAV_HOST 則略過掃描
    CLAMAV_HOST: Optional[str] = None
    CLAMAV_PORT: int = 3310
    CLAMAV_TIMEOUT_SECONDS: float = 30.0

    # 即時通知串流的心跳間隔 (秒)
    SSE_HEARTBEAT_SECONDS: float = 20.0

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    # 環境變數檔案
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

# 建立設定實例
settings = Settings()
