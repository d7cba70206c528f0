"""
订单API
- 列表、创建、详情（按角色裁剪价格字段）
- 批量保存并路由
- 样品路由
- 可开票产品、生产天数
"""

from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.core.context import SessionContext
from orderhub.core.deps import get_db, get_session_context, require_admin
from orderhub.schemas.invoice import InvoiceableProduct
from orderhub.schemas.order import OrderCreate, OrderDetail, OrderListResponse, ProductionDaysRequest
from orderhub.schemas.routing import (
    BulkRouteRequest, BulkRouteResponse, RouteOptionResponse, RouteOptionsResponse,
    SampleRouteRequest, SampleRoutingResponse,
)
from orderhub.services import orders as order_service
from orderhub.services import routing_policy
from orderhub.services.bulk_routing import BulkRouteCommand, BulkRouter, ProductEdit, SampleInput
from orderhub.services.invoices import invoiceable_products
from orderhub.services.sample_routing import SampleRouter, routing_state

router = APIRouter()


@router.get("/", response_model=OrderListResponse)
async def list_orders(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100)) -> Any:
    """获取订单列表（客户只看自己的，工厂只看分配给自己的）"""
    orders, total = await order_service.list_orders(db, ctx, status=status, page=page, limit=limit)
    return OrderListResponse(
        data=[order_service.build_order_summary(o) for o in orders],
        total=total,
        page=page,
        limit=limit,
    )


@router.post("/", response_model=OrderDetail)
async def create_order(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    order_in: OrderCreate) -> Any:
    """创建订单"""
    order = await order_service.create_order(db, ctx, order_in)
    return order_service.build_order_detail(order, ctx.role)


@router.get("/{order_id}", response_model=OrderDetail)
async def get_order(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    order_id: int) -> Any:
    """获取订单详情"""
    order = await order_service.get_order_for(db, ctx, order_id)
    return order_service.build_order_detail(order, ctx.role)


@router.get("/{order_id}/route-options", response_model=RouteOptionsResponse)
async def get_route_options(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    order_id: int) -> Any:
    """当前角色可用的批量路由动作"""
    await order_service.get_order_for(db, ctx, order_id)
    options = routing_policy.route_options(ctx.role)
    return RouteOptionsResponse(
        role=ctx.role.value,
        options=[RouteOptionResponse(value=o.value, label=o.label, description=o.description) for o in options],
    )


@router.post("/{order_id}/route", response_model=BulkRouteResponse)
async def bulk_route(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    order_id: int,
    route_in: BulkRouteRequest) -> Any:
    """批量保存并路由订单下的产品"""
    await order_service.get_order_for(db, ctx, order_id)

    sample = None
    if route_in.sample is not None:
        sample = SampleInput(
            fee=route_in.sample.fee,
            eta=route_in.sample.eta,
            status=route_in.sample.status,
            notes=route_in.sample.notes,
            file_urls=list(route_in.sample.file_urls),
        )
    command = BulkRouteCommand(
        order_id=order_id,
        route_option=route_in.route_option,
        notes=route_in.notes,
        product_ids=route_in.product_ids,
        product_edits=[
            ProductEdit(product_id=e.product_id, fields=dict(e.fields), item_quantities=dict(e.item_quantities))
            for e in route_in.product_edits
        ],
        sample=sample,
    )
    result = await BulkRouter(db).apply(command, ctx)
    return BulkRouteResponse(
        success=result.success,
        redirect=result.redirect,
        steps=result.steps,
        updated_product_ids=result.updated_product_ids,
        failed_product_ids=result.failed_product_ids,
        error=result.error,
    )


@router.get("/{order_id}/sample-routing", response_model=SampleRoutingResponse)
async def get_sample_routing(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    order_id: int) -> Any:
    """样品当前处理方及可流转方向"""
    order = await order_service.get_order_for(db, ctx, order_id)
    return SampleRoutingResponse.model_validate(routing_state(order, ctx.role))


@router.post("/{order_id}/sample-routing", response_model=SampleRoutingResponse)
async def route_sample(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    order_id: int,
    route_in: SampleRouteRequest) -> Any:
    """流转样品"""
    order = await order_service.get_order_for(db, ctx, order_id)
    await SampleRouter(db).route(order, route_in.destination, ctx, route_in.notes)
    await db.commit()
    return SampleRoutingResponse.model_validate(routing_state(order, ctx.role))


@router.get("/{order_id}/invoiceable-products", response_model=List[InvoiceableProduct])
async def get_invoiceable_products(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_admin),
    order_id: int,
    uninvoiced_only: bool = Query(False)) -> Any:
    """可开票产品"""
    order = await order_service.get_order_detail(db, order_id)
    return [
        InvoiceableProduct(
            id=p.id,
            product_order_number=p.product_order_number,
            title=p.title,
            product_status=p.product_status,
            routed_to=p.routed_to,
            invoiced=bool(p.invoiced),
            total_quantity=p.total_quantity,
            sample_fee=p.sample_fee,
            client_product_price=p.client_product_price,
            selected_shipping_method=p.selected_shipping_method,
            client_total=p.client_total(),
        )
        for p in invoiceable_products(order, uninvoiced_only=uninvoiced_only)
    ]


@router.post("/{order_id}/production-days")
async def set_production_days(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    order_id: int,
    days_in: ProductionDaysRequest) -> Any:
    """批量设置生产天数"""
    updated = await order_service.set_production_days(
        db, ctx, order_id, days_in.production_days, days_in.product_ids
    )
    return {"success": True, "updated_product_ids": updated}
