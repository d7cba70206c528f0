"""站内通知API"""

from typing import Any
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.core.context import SessionContext
from orderhub.core.deps import get_db, get_session_context
from orderhub.core.errors import NotFoundError
from orderhub.models.notification import Notification
from orderhub.schemas.notification import NotificationListResponse, NotificationResponse

router = APIRouter()


@router.get("/", response_model=NotificationListResponse)
async def list_notifications(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200)) -> Any:
    """当前用户的通知"""
    query = select(Notification).where(Notification.user_id == ctx.user_id)
    if unread_only:
        query = query.where(Notification.is_read.is_(False))
    query = query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
    notifications = (await db.execute(query)).scalars().all()

    unread = (await db.execute(
        select(func.count(Notification.id))
        .where(Notification.user_id == ctx.user_id)
        .where(Notification.is_read.is_(False))
    )).scalar() or 0

    return NotificationListResponse(
        data=[NotificationResponse.model_validate(n) for n in notifications],
        unread=unread,
    )


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    notification_id: int) -> Any:
    """标记为已读"""
    notification = await db.get(Notification, notification_id)
    if not notification or notification.user_id != ctx.user_id:
        raise NotFoundError("Notification not found")
    notification.is_read = True
    await db.commit()
    return notification
