"""
初始化数据库并写入演示账号

    python init_db.py
"""
import asyncio
import logging
from sqlalchemy import select

from orderhub.core.enums import UserRole
from orderhub.db.session import SessionLocal
from orderhub.db.init_db import init_db as create_tables
from orderhub.models.client import Client, Manufacturer
from orderhub.models.user import User

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEMO_USERS = [
    ("owner@example.com", "Owner", UserRole.SUPER_ADMIN),
    ("admin@example.com", "Admin", UserRole.ADMIN),
]


async def init_db() -> None:
    """
    初始化数据库
    """
    try:
        logger.info("创建数据库表...")
        await create_tables()
        logger.info("数据库表创建成功")

        async with SessionLocal() as db:
            existing = (await db.execute(select(User).limit(1))).scalars().first()
            if existing:
                logger.info("已有用户，跳过演示数据")
                return

            client = Client(name="Acme Apparel", email="buyer@acme.example.com")
            manufacturer = Manufacturer(name="Sunrise Factory", email="factory@sunrise.example.com")
            db.add_all([client, manufacturer])
            await db.flush()

            for email, name, role in DEMO_USERS:
                db.add(User(email=email, name=name, role=role.value))
            db.add(User(email=client.email, name="Acme Buyer", role=UserRole.CLIENT.value, client_id=client.id))
            db.add(User(
                email=manufacturer.email, name="Sunrise Sales",
                role=UserRole.MANUFACTURER.value, manufacturer_id=manufacturer.id,
            ))
            await db.commit()
            logger.info("演示账号创建成功")

        logger.info("数据库初始化完成")
    except Exception as e:
        logger.error(f"数据库初始化失败: {e}")
        raise

if __name__ == "__main__":
    asyncio.run(init_db())
