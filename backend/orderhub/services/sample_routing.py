"""
样品路由

样品是订单级的，有独立的 sample_routed_to，与产品路由互不影响。
允许的方向只有：管理员 ↔ 工厂、管理员 ↔ 客户，工厂与客户之间不能直接流转。
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.core.context import SessionContext
from orderhub.core.enums import RoutedTo, SampleWorkflowStatus, UserRole
from orderhub.core.errors import RoutingNotAllowedError
from orderhub.models.order import Order
from orderhub.models.user import User
from orderhub.services.audit import create_audit_log, create_notification
from orderhub.services.sample_pricing import append_note

logger = logging.getLogger(__name__)


def _role(role: Union[UserRole, str]) -> UserRole:
    return UserRole(role)


def can_route_to_manufacturer(role: Union[UserRole, str], routed_to: Optional[str]) -> bool:
    return _role(role).is_admin and routed_to == RoutedTo.ADMIN.value


def can_route_to_client(role: Union[UserRole, str], routed_to: Optional[str]) -> bool:
    return _role(role).is_admin and routed_to == RoutedTo.ADMIN.value


def can_route_to_admin(role: Union[UserRole, str], routed_to: Optional[str]) -> bool:
    user_role = _role(role)
    return (
        (user_role == UserRole.MANUFACTURER and routed_to == RoutedTo.MANUFACTURER.value)
        or (user_role == UserRole.CLIENT and routed_to == RoutedTo.CLIENT.value)
    )


def can_route(role: Union[UserRole, str], routed_to: Optional[str], destination: RoutedTo) -> bool:
    checks = {
        RoutedTo.ADMIN: can_route_to_admin,
        RoutedTo.MANUFACTURER: can_route_to_manufacturer,
        RoutedTo.CLIENT: can_route_to_client,
    }
    return checks[RoutedTo(destination)](role, routed_to)


def workflow_status_for(origin: Optional[str], destination: RoutedTo) -> SampleWorkflowStatus:
    """流转后的样品流程状态"""
    destination = RoutedTo(destination)
    if destination == RoutedTo.MANUFACTURER:
        return SampleWorkflowStatus.SENT_TO_MANUFACTURER
    if destination == RoutedTo.CLIENT:
        return SampleWorkflowStatus.SENT_TO_CLIENT
    if origin == RoutedTo.MANUFACTURER.value:
        return SampleWorkflowStatus.PRICED_BY_MANUFACTURER
    if origin == RoutedTo.CLIENT.value:
        return SampleWorkflowStatus.CLIENT_REVIEWED
    return SampleWorkflowStatus.PENDING_ADMIN


@dataclass
class SampleRoutingState:
    routed_to: str
    workflow_status: Optional[str]
    routed_at: Optional[datetime]
    routed_by: Optional[int]
    notes: Optional[str]
    can_route_to_manufacturer: bool
    can_route_to_admin: bool
    can_route_to_client: bool


def routing_state(order: Order, role: Union[UserRole, str]) -> SampleRoutingState:
    routed_to = order.sample_routed_to or RoutedTo.ADMIN.value
    return SampleRoutingState(
        routed_to=routed_to,
        workflow_status=order.sample_workflow_status,
        routed_at=order.sample_routed_at,
        routed_by=order.sample_routed_by,
        notes=order.sample_notes,
        can_route_to_manufacturer=can_route_to_manufacturer(role, routed_to),
        can_route_to_admin=can_route_to_admin(role, routed_to),
        can_route_to_client=can_route_to_client(role, routed_to),
    )


class SampleRouter:
    """执行样品流转：更新订单、写审计、通知接收方（不提交事务）"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def route_to_admin(self, order: Order, ctx: SessionContext, notes: Optional[str] = None) -> Order:
        return await self.route(order, RoutedTo.ADMIN, ctx, notes)

    async def route_to_manufacturer(self, order: Order, ctx: SessionContext, notes: Optional[str] = None) -> Order:
        return await self.route(order, RoutedTo.MANUFACTURER, ctx, notes)

    async def route_to_client(self, order: Order, ctx: SessionContext, notes: Optional[str] = None) -> Order:
        return await self.route(order, RoutedTo.CLIENT, ctx, notes)

    async def route(
        self,
        order: Order,
        destination: Union[RoutedTo, str],
        ctx: SessionContext,
        notes: Optional[str] = None,
    ) -> Order:
        destination = RoutedTo(destination)
        origin = order.sample_routed_to or RoutedTo.ADMIN.value

        if not can_route(ctx.role, origin, destination):
            raise RoutingNotAllowedError(f"Cannot route to {destination.value} from current state")

        new_status = workflow_status_for(origin, destination)
        now = datetime.utcnow()

        order.sample_routed_to = destination.value
        order.sample_routed_at = now
        order.sample_routed_by = ctx.user_id
        order.sample_workflow_status = new_status.value
        order.sample_notes = append_note(order.sample_notes, notes, ctx.role)

        create_audit_log(
            self.db, ctx,
            action_type="sample_routed",
            target_type="order",
            target_id=order.id,
            old_value=f"routed_to: {origin}",
            new_value=f"routed_to: {destination.value}, status: {new_status.value}",
        )
        await self.db.flush()
        logger.info(f"🧪 样品流转: 订单 {order.order_number} {origin} → {destination.value} ({new_status.value})")

        await self._notify_recipient(order, destination)
        return order

    async def _notify_recipient(self, order: Order, destination: RoutedTo) -> None:
        """通知接收方；查找失败只记录日志"""
        try:
            async with self.db.begin_nested():
                recipient_id, message = await self._find_recipient(order, destination)
                if recipient_id is None:
                    logger.warning(f"样品流转通知: 订单 {order.order_number} 未找到 {destination.value} 接收人")
                    return
                create_notification(
                    self.db,
                    user_id=recipient_id,
                    type="sample_routed",
                    message=message,
                    order_id=order.id,
                )
        except Exception as e:
            logger.warning(f"样品流转通知失败（已忽略）: {e}")

    async def _find_recipient(self, order: Order, destination: RoutedTo):
        if destination == RoutedTo.ADMIN:
            return order.created_by, f"Sample request returned to admin for order {order.order_number}"

        if destination == RoutedTo.MANUFACTURER:
            if order.manufacturer_id is None:
                return None, ""
            query = select(User.id).where(User.manufacturer_id == order.manufacturer_id)
            message = f"Sample request sent to you for order {order.order_number}"
        else:
            query = select(User.id).where(User.client_id == order.client_id)
            message = f"Sample ready for your review on order {order.order_number}"

        result = await self.db.execute(query.where(User.is_active.is_(True)).order_by(User.id).limit(1))
        return result.scalar_one_or_none(), message
