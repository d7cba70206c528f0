"""
订单服务
- 订单号生成、创建、列表、详情
- 按角色裁剪的产品视图（客户看不到工厂价格，工厂看不到客户价格）
- 单个产品路由、软删除、生产天数、预计发货日期
"""

import json
import logging
from datetime import date, datetime
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from orderhub.core.context import SessionContext
from orderhub.core.enums import ProductStatus, RouteAction, RoutedTo, UserRole
from orderhub.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from orderhub.models.client import Client
from orderhub.models.order import Order
from orderhub.models.order_item import OrderItem
from orderhub.models.order_product import OrderProduct
from orderhub.schemas.order import (
    AdminProductView, ClientProductView, ManufacturerProductView, OrderCreate,
    OrderDetail, OrderItemResponse, OrderSummary, SampleInfo,
)
from orderhub.services import routing_policy
from orderhub.services.audit import create_audit_log, create_notification

logger = logging.getLogger(__name__)


def order_detail_options():
    return (
        selectinload(Order.products).selectinload(OrderProduct.items),
        selectinload(Order.products).selectinload(OrderProduct.product),
        selectinload(Order.client),
        selectinload(Order.manufacturer),
    )


async def generate_order_number(db: AsyncSession) -> str:
    """生成订单号 ORD-{年月日}-{3位序号}"""
    date_str = datetime.now().strftime("%Y%m%d")
    prefix = f"ORD-{date_str}-"

    result = await db.execute(
        select(func.max(Order.order_number)).where(Order.order_number.like(f"{prefix}%"))
    )
    max_no = result.scalar()

    if max_no:
        try:
            seq = int(max_no[-3:]) + 1
        except ValueError:
            seq = 1
    else:
        seq = 1

    return f"{prefix}{seq:03d}"


async def get_order_detail(db: AsyncSession, order_id: int) -> Order:
    result = await db.execute(
        select(Order)
        .options(*order_detail_options())
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if not order:
        raise NotFoundError("Order not found")
    return order


def ensure_order_access(order: Order, ctx: SessionContext) -> None:
    """客户只能访问自己的订单，工厂只能访问分配给自己的订单"""
    if ctx.is_admin:
        return
    # 未关联客户/工厂的账号看不到任何订单
    if ctx.is_client and ctx.client_id is not None and order.client_id == ctx.client_id:
        return
    if ctx.is_manufacturer and ctx.manufacturer_id is not None and order.manufacturer_id == ctx.manufacturer_id:
        return
    raise PermissionDeniedError("无权访问该订单")


async def get_order_for(db: AsyncSession, ctx: SessionContext, order_id: int) -> Order:
    order = await get_order_detail(db, order_id)
    ensure_order_access(order, ctx)
    return order


async def get_product(db: AsyncSession, product_id: int, include_deleted: bool = False) -> OrderProduct:
    result = await db.execute(
        select(OrderProduct)
        .options(selectinload(OrderProduct.items), selectinload(OrderProduct.product), selectinload(OrderProduct.order))
        .where(OrderProduct.id == product_id)
    )
    product = result.scalar_one_or_none()
    if not product or (product.deleted_at is not None and not include_deleted):
        raise NotFoundError("Product not found")
    return product


# ========== 创建 / 查询 ==========

async def create_order(db: AsyncSession, ctx: SessionContext, payload: OrderCreate) -> Order:
    """
    管理员或客户创建订单

    客户创建的产品直接进入 pending_admin 等待管理员处理；管理员创建的为 pending。
    """
    if ctx.is_manufacturer:
        raise PermissionDeniedError("工厂不能创建订单")

    client_id = ctx.client_id if ctx.is_client else payload.client_id
    if client_id is None:
        raise ValidationError("client_id 不能为空")
    client = await db.get(Client, client_id)
    if not client:
        raise NotFoundError("Client not found")

    order = Order(
        order_number=await generate_order_number(db),
        order_name=payload.order_name,
        client_id=client_id,
        manufacturer_id=payload.manufacturer_id,
        status=payload.status,
        created_by=ctx.user_id,
    )
    db.add(order)
    await db.flush()

    initial_status = ProductStatus.PENDING_ADMIN if ctx.is_client else ProductStatus.PENDING
    for index, item in enumerate(payload.products, start=1):
        product = OrderProduct(
            order_id=order.id,
            product_id=item.product_id,
            product_order_number=f"{order.order_number}-{index:02d}",
            description=item.description,
            sample_required=item.sample_required,
            selected_shipping_method=item.selected_shipping_method.value if item.selected_shipping_method else None,
            client_notes=item.client_notes,
            product_status=initial_status.value,
            routed_to=RoutedTo.ADMIN.value,
        )
        product.items = [
            OrderItem(variant_combo=i.variant_combo, quantity=i.quantity, notes=i.notes)
            for i in item.items
        ]
        db.add(product)

    create_audit_log(
        db, ctx,
        action_type="create_order",
        target_type="order",
        target_id=order.id,
        new_value=f"{order.order_number} ({len(payload.products)} products)",
    )
    await db.commit()
    logger.info(f"📦 创建订单: {order.order_number} 客户={client.name} 操作人={ctx.user_name}")
    return await get_order_detail(db, order.id)


async def list_orders(
    db: AsyncSession,
    ctx: SessionContext,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[Order], int]:
    conditions = []
    if ctx.is_client:
        if ctx.client_id is None:
            return [], 0
        conditions.append(Order.client_id == ctx.client_id)
    elif ctx.is_manufacturer:
        if ctx.manufacturer_id is None:
            return [], 0
        conditions.append(Order.manufacturer_id == ctx.manufacturer_id)
    if status:
        conditions.append(Order.status == status)

    count_query = select(func.count(Order.id))
    query = select(Order).options(*order_detail_options())
    if conditions:
        count_query = count_query.where(*conditions)
        query = query.where(*conditions)

    total = (await db.execute(count_query)).scalar() or 0
    query = query.order_by(Order.created_at.desc(), Order.id.desc()).offset((page - 1) * limit).limit(limit)
    orders = (await db.execute(query)).scalars().all()
    return list(orders), total


# ========== 响应构建 ==========

def _base_product_fields(product: OrderProduct) -> dict:
    return dict(
        id=product.id,
        order_id=product.order_id,
        product_order_number=product.product_order_number,
        title=product.title,
        description=product.description,
        product_status=product.product_status,
        routed_to=product.routed_to,
        routed_at=product.routed_at,
        is_locked=bool(product.is_locked),
        sample_required=bool(product.sample_required),
        selected_shipping_method=product.selected_shipping_method,
        production_days=product.production_days,
        estimated_ship_date=product.estimated_ship_date,
        shipped_date=product.shipped_date,
        total_quantity=product.total_quantity,
        items=[OrderItemResponse.model_validate(item) for item in product.items],
    )


def build_product_view(product: OrderProduct, role: UserRole):
    """按角色构建产品视图"""
    base = _base_product_fields(product)
    if role == UserRole.CLIENT:
        return ClientProductView(
            **base,
            client_product_price=product.client_product_price,
            client_shipping_air_price=product.client_shipping_air_price,
            client_shipping_boat_price=product.client_shipping_boat_price,
            sample_fee=product.sample_fee,
            client_approved=bool(product.client_approved),
            client_notes=product.client_notes,
            total=product.client_total(),
        )
    if role == UserRole.MANUFACTURER:
        return ManufacturerProductView(
            **base,
            product_price=product.product_price,
            shipping_air_price=product.shipping_air_price,
            shipping_boat_price=product.shipping_boat_price,
            sample_fee=product.sample_fee,
            manufacturer_notes=product.manufacturer_notes,
            total=product.manufacturer_total(),
        )
    return AdminProductView(
        **base,
        product_price=product.product_price,
        shipping_air_price=product.shipping_air_price,
        shipping_boat_price=product.shipping_boat_price,
        client_product_price=product.client_product_price,
        client_shipping_air_price=product.client_shipping_air_price,
        client_shipping_boat_price=product.client_shipping_boat_price,
        sample_fee=product.sample_fee,
        requires_client_approval=bool(product.requires_client_approval),
        client_approved=bool(product.client_approved),
        invoiced=bool(product.invoiced),
        invoice_id=product.invoice_id,
        manufacturer_notes=product.manufacturer_notes,
        internal_notes=product.internal_notes,
        client_notes=product.client_notes,
        client_total=product.client_total(),
        manufacturer_total=product.manufacturer_total(),
    )


def build_order_summary(order: Order) -> OrderSummary:
    return OrderSummary(
        id=order.id,
        order_number=order.order_number,
        order_name=order.order_name,
        status=order.status,
        status_display=order.status_display,
        client_id=order.client_id,
        client_name=order.client.name if order.client else "",
        manufacturer_id=order.manufacturer_id,
        manufacturer_name=order.manufacturer.name if order.manufacturer else "",
        product_count=len(order.active_products),
        total_quantity=order.total_quantity,
        sample_status=order.sample_status,
        sample_routed_to=order.sample_routed_to,
        created_at=order.created_at,
    )


def build_order_detail(order: Order, role: UserRole) -> OrderDetail:
    summary = build_order_summary(order)
    # 客户看到的样品费是加价后的价格，工厂看到的是自己报的价格
    sample = SampleInfo(
        sample_required=bool(order.sample_required),
        sample_fee=None if role == UserRole.CLIENT else order.sample_fee,
        client_sample_fee=None if role == UserRole.MANUFACTURER else order.client_sample_fee,
        sample_eta=order.sample_eta,
        sample_status=order.sample_status,
        sample_workflow_status=order.sample_workflow_status,
        sample_routed_to=order.sample_routed_to,
        sample_notes=order.sample_notes,
    )
    return OrderDetail(
        **summary.model_dump(),
        sample=sample,
        products=[build_product_view(p, role).model_dump() for p in order.active_products],
    )


# ========== 产品操作 ==========

async def route_product(
    db: AsyncSession,
    ctx: SessionContext,
    product_id: int,
    action: RouteAction,
    notes: Optional[str] = None,
) -> OrderProduct:
    """单个产品路由，规则与批量路由相同"""
    product = await get_product(db, product_id)
    ensure_order_access(product.order, ctx)

    update = routing_policy.product_update_for(ctx.role, action, ctx.user_id)
    old_state = f"{product.product_status} → {product.routed_to}"
    for name, value in update.items():
        setattr(product, name, value)

    new_value = f"{update['product_status']} → {update['routed_to']}"
    if notes and notes.strip():
        new_value = f"{new_value} | Route note: {notes.strip()}"
    create_audit_log(
        db, ctx,
        action_type=f"product_routed_{RouteAction(action).value}",
        target_type="order_product",
        target_id=product.id,
        old_value=old_state,
        new_value=new_value,
    )
    await db.commit()
    logger.info(f"产品 {product.product_order_number} 路由: {old_state} ⇒ {new_value}")
    return product


def _product_snapshot(product: OrderProduct) -> str:
    snapshot = {
        "product_order_number": product.product_order_number,
        "description": product.description,
        "product_status": product.product_status,
        "routed_to": product.routed_to,
        "product_price": str(product.product_price) if product.product_price is not None else None,
        "client_product_price": str(product.client_product_price) if product.client_product_price is not None else None,
        "sample_fee": str(product.sample_fee) if product.sample_fee is not None else None,
        "total_quantity": product.total_quantity,
        "invoiced": bool(product.invoiced),
        "invoice_id": product.invoice_id,
    }
    return json.dumps(snapshot, ensure_ascii=False)


async def delete_product(db: AsyncSession, ctx: SessionContext, product_id: int, reason: str) -> OrderProduct:
    """
    软删除订单产品

    - 必须填写原因
    - 已开票产品只有超级管理员可以删除，删除后通知订单创建人
    """
    if not ctx.is_admin:
        raise PermissionDeniedError("只有管理员可以删除产品")
    if not reason or not reason.strip():
        raise ValidationError("删除原因不能为空")

    product = await get_product(db, product_id)
    if product.invoiced and not ctx.is_super_admin:
        raise PermissionDeniedError("已开票产品只能由超级管理员删除")

    snapshot = _product_snapshot(product)
    product.deleted_at = datetime.utcnow()
    product.deleted_by = ctx.user_id
    product.deleted_by_name = ctx.user_name
    product.deletion_reason = reason.strip()

    create_audit_log(
        db, ctx,
        action_type="product_deleted",
        target_type="order_product",
        target_id=product.id,
        old_value=snapshot,
        new_value=f"Deleted: {reason.strip()}",
    )

    if product.invoiced and product.order is not None:
        create_notification(
            db,
            user_id=product.order.created_by,
            type="warning",
            message=(
                f"Invoiced product {product.product_order_number} was deleted from order "
                f"{product.order.order_number} by {ctx.user_name}: {reason.strip()}"
            ),
            order_id=product.order_id,
        )

    await db.commit()
    logger.warning(f"🗑️ 产品已删除: {product.product_order_number} 操作人={ctx.user_name} 原因={reason.strip()}")
    return product


async def set_production_days(
    db: AsyncSession,
    ctx: SessionContext,
    order_id: int,
    production_days: Optional[int],
    product_ids: Optional[List[int]] = None,
) -> List[int]:
    """批量设置生产天数（管理员 / 工厂）"""
    if ctx.is_client:
        raise PermissionDeniedError("客户不能设置生产天数")
    order = await get_order_for(db, ctx, order_id)

    targets = order.active_products
    if product_ids is not None:
        wanted = set(product_ids)
        targets = [p for p in targets if p.id in wanted]

    updated = []
    for product in targets:
        old = product.production_days
        if old == production_days:
            continue
        product.production_days = production_days
        create_audit_log(
            db, ctx,
            action_type="production_days_set",
            target_type="order_product",
            target_id=product.id,
            old_value=str(old) if old is not None else None,
            new_value=str(production_days) if production_days is not None else None,
        )
        updated.append(product.id)

    await db.commit()
    logger.info(f"订单 {order.order_number} 设置生产天数 {production_days}: {len(updated)} 个产品")
    return updated


async def set_ship_date(
    db: AsyncSession,
    ctx: SessionContext,
    product_id: int,
    ship_date: Optional[date],
) -> OrderProduct:
    """设置或清除预计发货日期"""
    if ctx.is_client:
        raise PermissionDeniedError("客户不能修改发货日期")
    product = await get_product(db, product_id)
    ensure_order_access(product.order, ctx)

    old = product.estimated_ship_date
    product.estimated_ship_date = ship_date
    create_audit_log(
        db, ctx,
        action_type="ship_date_set" if ship_date else "ship_date_cleared",
        target_type="order_product",
        target_id=product.id,
        old_value=old.isoformat() if old else None,
        new_value=ship_date.isoformat() if ship_date else None,
    )
    await db.commit()
    return product

