# complaint_desk/core/database.py
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from complaint_desk.core.config import settings

# 建立非同步引擎
engine = create_async_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True, # 每次從連線池取連線前，先 PING 一次，確保連線有效
    echo=settings.SQL_ECHO,
)

# SQLite 預設不檢查外鍵，開啟後 ON DELETE CASCADE / SET NULL 才會生效
if engine.dialect.name == "sqlite":
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

# 建立非同步 Session
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# 建立 ORM Model 基底類別
Base = declarative_base()

async def get_db() -> AsyncSession:
    """FastAPI Dependency: 取得非同步資料庫 session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()

def get_session_factory() -> async_sessionmaker:
    """
    FastAPI Dependency: 背景工作 (例如通知發送) 需要自己開 session，
    因為請求結束後 get_db 的 session 已經關閉。
    """
    return AsyncSessionLocal

async def init_models() -> None:
    """啟動時建立資料表 (開發 / 測試環境使用)"""
    # 匯入所有 Model，確保都已註冊到 Base.metadata
    from complaint_desk.models import user, complaint, notification  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
