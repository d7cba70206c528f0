import asyncio
from sqlalchemy.ext.asyncio import AsyncEngine

from orderhub.db.session import engine
from orderhub.db.base import Base

# 导入所有模型，确保表能被创建
from orderhub import models  # noqa: F401


async def init_db(bind: AsyncEngine = engine) -> None:
    """
    初始化数据库 - 创建所有表
    """
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ensure_tables_exist() -> None:
    """
    确保数据库表存在（应用启动时调用）
    """
    await init_db(engine)


if __name__ == "__main__":
    asyncio.run(init_db())
