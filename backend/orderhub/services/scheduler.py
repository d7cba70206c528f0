"""
定时任务调度器服务
使用 APScheduler 定时清理过期草稿订单
"""

import logging
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from orderhub.core.config import settings
from orderhub.db.session import SessionLocal
from orderhub.services.cleanup import cleanup_old_drafts

logger = logging.getLogger(__name__)

# 全局调度器实例
scheduler: Optional[AsyncIOScheduler] = None


async def draft_cleanup_job():
    """执行草稿清理任务"""
    try:
        async with SessionLocal() as db:
            result = await cleanup_old_drafts(db, settings.DRAFT_CLEANUP_DAYS)
        if result["errors"]:
            logger.warning(f"⚠️ 定时草稿清理部分失败: {result['errors']}")
        else:
            logger.info(f"✅ 定时草稿清理完成: 删除 {result['deleted']} 个")
    except Exception as e:
        logger.error(f"❌ 定时草稿清理失败: {str(e)}")


def init_scheduler():
    """初始化并启动调度器"""
    global scheduler

    if not settings.DRAFT_CLEANUP_ENABLED:
        logger.info("🧹 草稿自动清理已禁用")
        return

    scheduler = AsyncIOScheduler()

    # 默认每天凌晨 3 点执行
    scheduler.add_job(
        draft_cleanup_job,
        trigger=CronTrigger(
            hour=settings.DRAFT_CLEANUP_HOUR,
            minute=settings.DRAFT_CLEANUP_MINUTE
        ),
        id="draft_cleanup",
        name="过期草稿订单清理",
        replace_existing=True
    )

    scheduler.start()
    logger.info(
        f"⏰ 定时任务调度器已启动 - 草稿清理时间: 每天 "
        f"{settings.DRAFT_CLEANUP_HOUR:02d}:{settings.DRAFT_CLEANUP_MINUTE:02d}"
    )


def shutdown_scheduler():
    """关闭调度器"""
    global scheduler
    if scheduler:
        scheduler.shutdown()
        scheduler = None
        logger.info("⏰ 定时任务调度器已关闭")


def get_scheduler_status() -> dict:
    """获取调度器状态"""
    if not scheduler:
        return {
            "enabled": settings.DRAFT_CLEANUP_ENABLED,
            "running": False,
            "jobs": []
        }

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None
        })

    return {
        "enabled": settings.DRAFT_CLEANUP_ENABLED,
        "running": scheduler.running,
        "jobs": jobs
    }
