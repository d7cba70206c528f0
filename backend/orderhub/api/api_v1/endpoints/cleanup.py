"""
草稿清理API
可由定时任务（Bearer CLEANUP_API_KEY）或超级管理员手动调用
"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.core.config import settings
from orderhub.core.context import SessionContext
from orderhub.core.deps import get_db, get_optional_session_context
from orderhub.schemas.system import CleanupResponse
from orderhub.services.cleanup import cleanup_old_drafts, count_old_drafts, cutoff_for

router = APIRouter()


def authorize_cleanup(
    authorization: Optional[str] = Header(None),
    ctx: Optional[SessionContext] = Depends(get_optional_session_context),
) -> None:
    if settings.CLEANUP_API_KEY and authorization == f"Bearer {settings.CLEANUP_API_KEY}":
        return
    if ctx is not None and ctx.is_super_admin:
        return
    raise HTTPException(status_code=401, detail="Unauthorized")


@router.post("/old-drafts", response_model=CleanupResponse, dependencies=[Depends(authorize_cleanup)])
async def cleanup_drafts(*, db: AsyncSession = Depends(get_db)) -> Any:
    """删除过期草稿订单"""
    return await cleanup_old_drafts(db, settings.DRAFT_CLEANUP_DAYS)


@router.get("/old-drafts", dependencies=[Depends(authorize_cleanup)])
async def count_drafts(*, db: AsyncSession = Depends(get_db)) -> Any:
    """统计待清理的草稿数量"""
    count = await count_old_drafts(db, settings.DRAFT_CLEANUP_DAYS)
    return {
        "oldDraftCount": count,
        "cutoffDate": cutoff_for(settings.DRAFT_CLEANUP_DAYS).isoformat(),
        "message": f"Found {count} draft orders older than {settings.DRAFT_CLEANUP_DAYS} days",
    }
