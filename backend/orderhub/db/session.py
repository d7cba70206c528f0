import os
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from orderhub.core.config import settings


def build_async_uri(uri: str) -> str:
    """sqlite:/// 转换为 aiosqlite 驱动地址"""
    if uri.startswith("sqlite:///"):
        return uri.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return uri


def enable_sqlite_savepoints(async_engine: AsyncEngine) -> AsyncEngine:
    """
    由 SQLAlchemy 自己发出 BEGIN，驱动不再隐式开启事务，
    这样 begin_nested() 的 SAVEPOINT 才能正确回滚
    """
    if async_engine.dialect.name != "sqlite":
        return async_engine

    @event.listens_for(async_engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(async_engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return async_engine


def make_engine(uri: str, **kwargs) -> AsyncEngine:
    return enable_sqlite_savepoints(create_async_engine(build_async_uri(uri), future=True, **kwargs))


# 创建异步引擎
# 仅在开发环境打印SQL（通过环境变量控制）
engine = make_engine(
    settings.SQLITE_DATABASE_URI,
    echo=settings.SQL_DEBUG or os.getenv("SQL_DEBUG", "false").lower() == "true",
)

# 创建异步会话
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
