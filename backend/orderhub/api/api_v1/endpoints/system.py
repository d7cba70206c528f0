"""系统配置API - 样品利润率、调度器状态"""

from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.core.config import settings
from orderhub.core.context import SessionContext
from orderhub.core.deps import get_db, require_admin
from orderhub.db.migrations import DEFAULT_SAMPLE_MARGIN_KEY
from orderhub.schemas.system import SampleMarginResponse, SampleMarginUpdate
from orderhub.services.audit import create_audit_log
from orderhub.services.sample_pricing import get_system_sample_margin, pick_margin, set_system_sample_margin
from orderhub.services.scheduler import get_scheduler_status

router = APIRouter()


@router.get("/sample-margin", response_model=SampleMarginResponse)
async def get_sample_margin(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_admin)) -> Any:
    """系统默认样品利润率"""
    stored = await get_system_sample_margin(db)
    return SampleMarginResponse(
        key=DEFAULT_SAMPLE_MARGIN_KEY,
        margin_percentage=pick_margin(None, stored),
        source="system" if stored is not None else "default",
    )


@router.put("/sample-margin", response_model=SampleMarginResponse)
async def update_sample_margin(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_admin),
    margin_in: SampleMarginUpdate) -> Any:
    """修改系统默认样品利润率"""
    old = await get_system_sample_margin(db)
    value = await set_system_sample_margin(db, margin_in.margin_percentage)
    create_audit_log(
        db, ctx,
        action_type="sample_margin_updated",
        target_type="system_config",
        old_value=str(old) if old is not None else None,
        new_value=str(value),
    )
    await db.commit()
    return SampleMarginResponse(key=DEFAULT_SAMPLE_MARGIN_KEY, margin_percentage=value, source="system")


@router.get("/scheduler")
async def scheduler_status(*, ctx: SessionContext = Depends(require_admin)) -> Any:
    """定时任务状态"""
    status = get_scheduler_status()
    status["draft_cleanup_days"] = settings.DRAFT_CLEANUP_DAYS
    return status
