"""订单产品API - 单个产品路由、发货日期、软删除"""

from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.core.context import SessionContext
from orderhub.core.deps import get_db, get_session_context
from orderhub.schemas.order import ProductDeleteRequest, ShipDateRequest
from orderhub.schemas.routing import ProductRouteRequest
from orderhub.services import orders as order_service

router = APIRouter()


@router.post("/{product_id}/route")
async def route_product(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    product_id: int,
    route_in: ProductRouteRequest) -> Any:
    """路由单个产品"""
    await order_service.route_product(db, ctx, product_id, route_in.route_option, route_in.notes)
    product = await order_service.get_product(db, product_id)
    return order_service.build_product_view(product, ctx.role).model_dump()


@router.put("/{product_id}/ship-date")
async def set_ship_date(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    product_id: int,
    date_in: ShipDateRequest) -> Any:
    """设置或清除预计发货日期"""
    product = await order_service.set_ship_date(db, ctx, product_id, date_in.estimated_ship_date)
    return {"success": True, "product_id": product.id, "estimated_ship_date": product.estimated_ship_date}


@router.delete("/{product_id}")
async def delete_product(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    product_id: int,
    delete_in: ProductDeleteRequest) -> Any:
    """软删除产品（需填写原因）"""
    product = await order_service.delete_product(db, ctx, product_id, delete_in.reason)
    return {"success": True, "product_id": product.id, "deleted_at": product.deleted_at}
