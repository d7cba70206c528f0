"""
操作日志与站内通知的写入工具

只负责 db.add，不提交；由调用方决定事务边界
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.core.context import SessionContext
from orderhub.models.audit_log import AuditLog
from orderhub.models.notification import Notification


def create_audit_log(
    db: AsyncSession,
    ctx: Optional[SessionContext],
    action_type: str,
    target_type: str,
    target_id: Optional[int] = None,
    old_value: Optional[str] = None,
    new_value: Optional[str] = None) -> AuditLog:
    """创建审计日志（ctx 为空表示系统任务）"""
    log = AuditLog(
        user_id=ctx.user_id if ctx else None,
        user_name=ctx.user_name if ctx else "System",
        action_type=action_type,
        target_type=target_type,
        target_id=target_id,
        old_value=old_value,
        new_value=new_value,
    )
    db.add(log)
    return log


def create_notification(
    db: AsyncSession,
    user_id: int,
    type: str,
    message: str,
    order_id: Optional[int] = None,
    link: Optional[str] = None) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=type,
        message=message,
        order_id=order_id,
        link=link,
        is_read=False,
    )
    db.add(notification)
    return notification
