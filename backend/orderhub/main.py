import logging
from datetime import datetime
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from orderhub.api.api_v1.api import api_router as api_v1_router
from orderhub.core.config import settings
from orderhub.core.errors import OrderHubError
from orderhub.core.logging_config import setup_logging
from orderhub.services.scheduler import init_scheduler, shutdown_scheduler
from orderhub.db.session import SessionLocal
from orderhub.db.migrations import run_migrations
from orderhub.db.init_db import ensure_tables_exist

# 初始化日志系统
setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时
    logger.info("🚀 应用启动中...")

    # 确保数据库表存在
    try:
        await ensure_tables_exist()
        logger.info("📊 数据库表已就绪")
    except Exception as e:
        logger.warning(f"数据库表初始化警告: {e}")

    # 运行数据库迁移和基础数据检查
    try:
        async with SessionLocal() as db:
            result = await run_migrations(db)

            # 报告列更新
            if result.get("columns_added"):
                logger.info(f"📦 数据库结构更新: 添加了 {len(result['columns_added'])} 个字段")
                for col in result["columns_added"]:
                    logger.info(f"   ✅ {col}")

            if result.get("sample_margin", {}).get("action") == "created":
                logger.info(f"🔧 写入默认样品利润率: {settings.DEFAULT_SAMPLE_MARGIN}%")

            # 版本更新
            if result.get("old_version") != result.get("new_version"):
                logger.info(f"📊 数据库版本: {result.get('old_version') or '初始'} → {result.get('new_version')}")

    except Exception as e:
        logger.warning(f"数据库迁移跳过: {e}")

    init_scheduler()
    yield
    # 关闭时
    logger.info("🛑 应用关闭中...")
    shutdown_scheduler()

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    description="订单路由、样品流转与开票",
    lifespan=lifespan
)


@app.exception_handler(OrderHubError)
async def orderhub_error_handler(request: Request, exc: OrderHubError):
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.middleware("http")
async def auth_gate(request: Request, call_next):
    """未登录访问受保护页面时重定向到首页"""
    if request.url.path.startswith(settings.PROTECTED_PATH_PREFIX):
        has_user = request.headers.get("x-user-id") or request.cookies.get(settings.SESSION_COOKIE_NAME)
        if not has_user:
            return RedirectResponse("/", status_code=307)
    return await call_next(request)


# CORS配置
if settings.BACKEND_CORS_ORIGINS:
    logger.info(f"配置CORS，允许的源: {settings.BACKEND_CORS_ORIGINS}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

logger.info(f"注册API v1路由，前缀: {settings.API_V1_STR}")
app.include_router(api_v1_router, prefix=settings.API_V1_STR)


@app.get("/")
async def root():
    return {"message": settings.PROJECT_NAME}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get(f"{settings.API_V1_STR}/health")
async def api_health():
    return {"status": "ok", "timestamp": datetime.utcnow().isoformat()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000, log_level="info")
