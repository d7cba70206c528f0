"""
草稿订单清理

删除创建超过 N 天仍为草稿的订单，连同产品、明细、附件、发票、通知和审计记录。
单个草稿删除失败只记录错误，不影响其他草稿。
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import delete, func, or_, and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.core.config import settings
from orderhub.core.enums import OrderStatus
from orderhub.models.audit_log import AuditLog
from orderhub.models.invoice import Invoice, InvoiceItem
from orderhub.models.notification import Notification
from orderhub.models.order import Order
from orderhub.models.order_item import OrderItem
from orderhub.models.order_media import OrderMedia
from orderhub.models.order_product import OrderProduct

logger = logging.getLogger(__name__)


def cutoff_for(days: Optional[int] = None, now: Optional[datetime] = None) -> datetime:
    days = settings.DRAFT_CLEANUP_DAYS if days is None else days
    return (now or datetime.utcnow()) - timedelta(days=days)


async def count_old_drafts(db: AsyncSession, days: Optional[int] = None) -> int:
    result = await db.execute(
        select(func.count(Order.id))
        .where(Order.status == OrderStatus.DRAFT.value)
        .where(Order.created_at < cutoff_for(days))
    )
    return result.scalar() or 0


async def _delete_draft(db: AsyncSession, order_id: int) -> None:
    product_ids = list((await db.execute(
        select(OrderProduct.id).where(OrderProduct.order_id == order_id)
    )).scalars().all())
    invoice_ids = list((await db.execute(
        select(Invoice.id).where(Invoice.order_id == order_id)
    )).scalars().all())

    if invoice_ids:
        await db.execute(delete(InvoiceItem).where(InvoiceItem.invoice_id.in_(invoice_ids)))
        await db.execute(delete(Invoice).where(Invoice.id.in_(invoice_ids)))

    await db.execute(delete(OrderMedia).where(OrderMedia.order_id == order_id))
    if product_ids:
        await db.execute(delete(OrderItem).where(OrderItem.order_product_id.in_(product_ids)))
    await db.execute(delete(OrderProduct).where(OrderProduct.order_id == order_id))
    await db.execute(delete(Notification).where(Notification.order_id == order_id))

    audit_targets = [and_(AuditLog.target_type == "order", AuditLog.target_id == order_id)]
    if product_ids:
        audit_targets.append(and_(AuditLog.target_type == "order_product", AuditLog.target_id.in_(product_ids)))
    await db.execute(delete(AuditLog).where(or_(*audit_targets)))

    await db.execute(delete(Order).where(Order.id == order_id))


async def cleanup_old_drafts(db: AsyncSession, days: Optional[int] = None) -> Dict:
    """删除过期草稿订单，返回删除结果"""
    cutoff = cutoff_for(days)
    logger.info(f"🧹 开始清理 {cutoff.isoformat()} 之前的草稿订单")

    drafts = (await db.execute(
        select(Order.id, Order.order_number)
        .where(Order.status == OrderStatus.DRAFT.value)
        .where(Order.created_at < cutoff)
        .order_by(Order.id)
    )).all()

    deleted: List[str] = []
    errors: List[str] = []
    for order_id, order_number in drafts:
        try:
            async with db.begin_nested():
                await _delete_draft(db, order_id)
            deleted.append(order_number)
            logger.info(f"已删除草稿: {order_number}")
        except Exception as e:
            errors.append(f"{order_number}: {e}")
            logger.error(f"❌ 删除草稿 {order_number} 失败: {e}")

    await db.commit()
    # 批量删除绕过了 ORM，清掉会话里残留的对象
    db.expunge_all()
    logger.info(f"🧹 草稿清理完成: 删除 {len(deleted)} 个，失败 {len(errors)} 个")
    return {
        "success": True,
        "deleted": len(deleted),
        "deleted_order_numbers": deleted,
        "errors": errors,
        "cutoff": cutoff.isoformat(),
    }
