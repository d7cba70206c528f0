"""
批量保存并路由

一次请求内按顺序执行：
1. 保存样品数据（无数据时强制 no_sample）
2. 应用各产品待保存的编辑（尽力而为，失败跳过）
3. 逐个产品写入路由结果，每个产品一个 SAVEPOINT（产品更新与审计记录同进同退）
4. 满足条件时样品跟随流转
5. 提交

单个产品失败不会中断循环，最后一次失败的信息作为 error 返回。
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from orderhub.core.context import SessionContext
from orderhub.core.enums import RouteAction, SampleWorkflowStatus, UserRole
from orderhub.core.errors import NotFoundError, OrderHubError, ValidationError
from orderhub.models.order import Order
from orderhub.models.order_item import OrderItem
from orderhub.models.order_media import OrderMedia
from orderhub.models.order_product import OrderProduct
from orderhub.services import routing_policy
from orderhub.services.audit import create_audit_log
from orderhub.services.sample_pricing import (
    append_note, compute_client_sample_fee, has_sample_data, resolve_sample_margin, to_decimal,
)
from orderhub.services.sample_routing import SampleRouter

logger = logging.getLogger(__name__)


# 各角色可在批量保存时修改的产品字段
MANUFACTURER_EDITABLE = {
    "product_price", "shipping_air_price", "shipping_boat_price",
    "sample_fee", "production_days", "manufacturer_notes",
}
ADMIN_EDITABLE = MANUFACTURER_EDITABLE | {
    "description", "client_product_price", "client_shipping_air_price",
    "client_shipping_boat_price", "selected_shipping_method",
    "internal_notes", "client_notes", "sample_required",
}
CLIENT_EDITABLE = {"client_notes", "selected_shipping_method"}

EDITABLE_FIELDS = {
    UserRole.MANUFACTURER: MANUFACTURER_EDITABLE,
    UserRole.ADMIN: ADMIN_EDITABLE,
    UserRole.SUPER_ADMIN: ADMIN_EDITABLE,
    UserRole.CLIENT: CLIENT_EDITABLE,
}

DECIMAL_FIELDS = {
    "product_price", "shipping_air_price", "shipping_boat_price", "sample_fee",
    "client_product_price", "client_shipping_air_price", "client_shipping_boat_price",
}


def public_error(e: Exception) -> str:
    """返回给调用方的失败原因，不带 SQL 语句和参数"""
    if isinstance(e, OrderHubError):
        return e.message
    return type(e).__name__


@dataclass
class ProductEdit:
    """卡片上尚未保存的修改"""
    product_id: int
    fields: Dict[str, Any] = field(default_factory=dict)
    # order_item_id → 数量
    item_quantities: Dict[int, int] = field(default_factory=dict)


@dataclass
class SampleInput:
    fee: Optional[Decimal] = None
    eta: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    file_urls: List[str] = field(default_factory=list)

    @property
    def has_data(self) -> bool:
        return has_sample_data(self.fee, self.eta, self.notes, self.file_urls)


@dataclass
class BulkRouteCommand:
    order_id: int
    route_option: RouteAction
    notes: Optional[str] = None
    # 为空时处理订单下全部未删除产品
    product_ids: Optional[List[int]] = None
    product_edits: List[ProductEdit] = field(default_factory=list)
    # 为空时沿用订单上已保存的样品数据
    sample: Optional[SampleInput] = None


@dataclass
class BulkRouteResult:
    success: bool
    redirect: bool
    steps: List[str] = field(default_factory=list)
    updated_product_ids: List[int] = field(default_factory=list)
    failed_product_ids: List[int] = field(default_factory=list)
    error: Optional[str] = None


class BulkRouter:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def load_order(self, order_id: int) -> Order:
        result = await self.db.execute(
            select(Order)
            .options(selectinload(Order.products).selectinload(OrderProduct.items))
            .where(Order.id == order_id)
        )
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundError(f"订单 {order_id} 不存在")
        return order

    async def apply(self, command: BulkRouteCommand, ctx: SessionContext) -> BulkRouteResult:
        # 角色与动作不匹配直接拒绝，不做任何写入
        routing_policy.get_rule(ctx.role, command.route_option)
        action = RouteAction(command.route_option)

        order = await self.load_order(command.order_id)
        sample = command.sample or SampleInput(
            fee=order.sample_fee, eta=order.sample_eta, status=order.sample_status,
        )
        notes = command.notes.strip() if command.notes and command.notes.strip() else None

        result = BulkRouteResult(
            success=True,
            redirect=routing_policy.should_redirect(ctx.role, action),
        )
        logger.info(f"🚚 批量路由开始: 订单 {order.order_number} 动作={action.value} 操作人={ctx.user_name}")

        # STEP 1: 样品数据
        result.steps.append("Checking sample data...")
        await self._save_sample_data(order, sample, notes, ctx)

        # STEP 2: 待保存的编辑
        products = self._select_products(order, command.product_ids, result)
        if command.product_edits:
            result.steps.append(f"Saving {len(command.product_edits)} product edit(s)...")
            await self._apply_edits(order, command.product_edits, ctx)

        # STEP 3: 逐个产品路由
        result.steps.append("Applying routing...")
        for product in products:
            await self._route_product(product, action, notes, ctx, result)

        # STEP 4: 样品跟随流转
        destination = routing_policy.sample_transition_for(ctx.role, action, order.sample_routed_to)
        if sample.has_data and destination is not None:
            result.steps.append("Routing sample request...")
            try:
                await SampleRouter(self.db).route(order, destination, ctx, notes)
            except Exception as e:
                logger.exception(f"❌ 样品流转失败: 订单 {order.order_number}: {e}")
                result.success = False
                result.error = f"样品流转失败: {public_error(e)}"

        # STEP 5: 提交
        result.steps.append("Finalizing...")
        await self.db.commit()

        if result.success:
            logger.info(f"✅ 批量路由完成: 订单 {order.order_number}，{len(result.updated_product_ids)} 个产品")
        else:
            logger.warning(
                f"⚠️ 批量路由部分失败: 订单 {order.order_number} "
                f"成功 {len(result.updated_product_ids)} 失败 {len(result.failed_product_ids)}，最后错误: {result.error}"
            )
        return result

    def _select_products(
        self, order: Order, product_ids: Optional[List[int]], result: BulkRouteResult
    ) -> List[OrderProduct]:
        active = order.active_products
        if product_ids is None:
            return active

        by_id = {p.id: p for p in active}
        selected = []
        for product_id in product_ids:
            product = by_id.get(product_id)
            if product is None:
                message = f"产品 {product_id} 不存在或已删除"
                logger.error(f"❌ {message}")
                result.success = False
                result.failed_product_ids.append(product_id)
                result.error = message
                continue
            selected.append(product)
        return selected

    async def _save_sample_data(
        self,
        order: Order,
        sample: SampleInput,
        route_notes: Optional[str],
        ctx: SessionContext,
    ) -> None:
        if not sample.has_data:
            order.sample_status = SampleWorkflowStatus.NO_SAMPLE.value
            order.sample_workflow_status = SampleWorkflowStatus.NO_SAMPLE.value
            await self.db.flush()
            logger.info(f"订单 {order.order_number} 无样品数据，样品状态置为 no_sample")
            return

        role_name = ctx.role.display_name
        changes: List[str] = []

        new_fee = to_decimal(sample.fee)
        old_fee = to_decimal(order.sample_fee)
        if new_fee and new_fee != old_fee:
            changes.append(f"Fee: ${old_fee} → ${new_fee}" if old_fee else f"Fee set to ${new_fee}")

        new_eta = (sample.eta or "").strip()
        old_eta = order.sample_eta or ""
        if new_eta and new_eta != old_eta:
            changes.append(f"ETA: {old_eta} → {new_eta}" if old_eta else f"ETA set to {new_eta}")

        sample_notes = sample.notes.strip() if sample.notes and sample.notes.strip() else None
        if sample_notes:
            changes.append(f'Note from {role_name}: "{sample_notes}"')
        if route_notes:
            changes.append(f'Route note: "{route_notes}"')

        client_fee = None
        if new_fee and new_fee > 0:
            margin = await resolve_sample_margin(self.db, order.client_id)
            client_fee = compute_client_sample_fee(new_fee, margin)
            changes.append(f"Client fee: ${client_fee} ({margin}% margin)")
            logger.info(f"样品费: 工厂 ${new_fee} × (1 + {margin}/100) = 客户 ${client_fee}")

        status = sample.status or SampleWorkflowStatus.PENDING.value
        if status == SampleWorkflowStatus.NO_SAMPLE.value:
            status = SampleWorkflowStatus.PENDING.value

        order.sample_required = True
        order.sample_fee = new_fee
        order.client_sample_fee = client_fee
        order.sample_eta = new_eta or None
        order.sample_status = status
        order.sample_workflow_status = status
        if sample_notes:
            order.sample_notes = append_note(order.sample_notes, sample_notes, ctx.role)

        if sample.file_urls:
            changes.append(f"{len(sample.file_urls)} file(s) uploaded")
            for url in sample.file_urls:
                filename = url.rsplit("/", 1)[-1]
                self.db.add(OrderMedia(
                    order_id=order.id,
                    order_product_id=None,
                    file_url=url,
                    file_type="order_sample",
                    uploaded_by=ctx.user_id,
                    original_filename=filename,
                    display_name=filename,
                    is_sample=True,
                ))

        if changes:
            create_audit_log(
                self.db, ctx,
                action_type="order_sample_updated",
                target_type="order",
                target_id=order.id,
                new_value=" | ".join(changes),
            )
        await self.db.flush()

    async def _apply_edits(self, order: Order, edits: List[ProductEdit], ctx: SessionContext) -> None:
        by_id = {p.id: p for p in order.active_products}
        allowed = EDITABLE_FIELDS[ctx.role]

        for edit in edits:
            product = by_id.get(edit.product_id)
            if product is None:
                logger.warning(f"产品 {edit.product_id} 不存在或已删除，跳过编辑")
                continue
            try:
                async with self.db.begin_nested():
                    self._apply_edit(product, edit, allowed)
                    await self.db.flush()
            except Exception as e:
                logger.warning(f"产品 {edit.product_id} 的编辑保存失败，继续处理: {e}")
                # 回滚后的对象已过期，重新加载后再参与路由
                await self.db.refresh(product)
                await self.db.refresh(product, ["items"])

    @staticmethod
    def _apply_edit(product: OrderProduct, edit: ProductEdit, allowed: set) -> None:
        for name, value in edit.fields.items():
            if name not in allowed:
                raise ValidationError(f"不允许修改字段 {name}")
            if name in DECIMAL_FIELDS:
                value = to_decimal(value)
            setattr(product, name, value)

        items: Dict[int, OrderItem] = {item.id: item for item in product.items}
        for item_id, quantity in edit.item_quantities.items():
            item = items.get(int(item_id))
            if item is None:
                raise NotFoundError(f"明细 {item_id} 不属于产品 {product.id}")
            if int(quantity) < 0:
                raise ValidationError("数量不能为负数")
            item.quantity = int(quantity)

    async def _route_product(
        self,
        product: OrderProduct,
        action: RouteAction,
        notes: Optional[str],
        ctx: SessionContext,
        result: BulkRouteResult,
    ) -> None:
        product_id = product.id
        label = product.product_order_number or product_id
        try:
            async with self.db.begin_nested():
                update = routing_policy.product_update_for(ctx.role, action, ctx.user_id, datetime.utcnow())
                for name, value in update.items():
                    setattr(product, name, value)
                if notes:
                    create_audit_log(
                        self.db, ctx,
                        action_type=f"product_routed_{action.value}",
                        target_type="order_product",
                        target_id=product_id,
                        new_value=f"Route note: {notes}",
                    )
                await self.db.flush()
            result.updated_product_ids.append(product_id)
            logger.info(f"产品 {label} → {update['product_status']} / {update['routed_to']}")
        except Exception as e:
            logger.exception(f"❌ 产品 {label} 路由失败: {e}")
            message = f"产品 {label} 路由失败: {public_error(e)}"
            result.success = False
            result.failed_product_ids.append(product_id)
            result.error = message
