import asyncio
import os
import tempfile

# 必须在导入 orderhub 之前设置，Settings 在导入时读取环境变量
_TMP_DIR = tempfile.mkdtemp(prefix="orderhub-test-")
os.environ["SQLITE_DATABASE_URI"] = f"sqlite:///{_TMP_DIR}/app.db"
os.environ["DRAFT_CLEANUP_ENABLED"] = "false"
os.environ["LOG_DIR"] = f"{_TMP_DIR}/logs"
os.environ.pop("RESEND_API_KEY", None)
os.environ.pop("CLEANUP_API_KEY", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from orderhub import models  # noqa: F401
from orderhub.db.base import Base
from orderhub.db.session import make_engine

from factories import FakeEmailClient, seed_world


@pytest.fixture
def engine(tmp_path):
    test_engine = make_engine(f"sqlite:///{tmp_path}/test.db", poolclass=NullPool)

    async def create_tables():
        async with test_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_tables())
    yield test_engine
    asyncio.run(test_engine.dispose())


@pytest.fixture
def session_factory(engine):
    return sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture
def run(session_factory):
    """在新会话中执行一个异步场景: run(lambda db: ...)"""
    def _run(scenario):
        async def wrapper():
            async with session_factory() as db:
                return await scenario(db)
        return asyncio.run(wrapper())
    return _run


@pytest.fixture
def world(run):
    return run(seed_world)


@pytest.fixture
def email_client():
    return FakeEmailClient()


@pytest.fixture
def api(session_factory, email_client):
    from orderhub.core.deps import get_db
    from orderhub.main import app
    from orderhub.services.email import get_email_client

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_client] = lambda: email_client
    # 不进入 lifespan，避免启动调度器和操作默认数据库
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
