"""路由 Schema"""
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal

from orderhub.core.enums import RouteAction, RoutedTo


class RouteOptionResponse(BaseModel):
    value: RouteAction
    label: str
    description: str


class RouteOptionsResponse(BaseModel):
    role: str
    options: List[RouteOptionResponse]


class ProductEditInput(BaseModel):
    """批量路由前需要保存的产品修改"""
    product_id: int
    fields: Dict[str, Any] = Field(default_factory=dict)
    item_quantities: Dict[int, int] = Field(default_factory=dict, description="明细ID → 数量")


class SampleDataInput(BaseModel):
    fee: Optional[Decimal] = Field(None, ge=0, description="工厂样品费")
    eta: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    file_urls: List[str] = Field(default_factory=list, description="已上传的样品附件地址")


class BulkRouteRequest(BaseModel):
    route_option: RouteAction
    notes: Optional[str] = None
    product_ids: Optional[List[int]] = None
    product_edits: List[ProductEditInput] = Field(default_factory=list)
    sample: Optional[SampleDataInput] = Field(None, description="为空时沿用订单已保存的样品数据")


class BulkRouteResponse(BaseModel):
    success: bool
    redirect: bool
    steps: List[str]
    updated_product_ids: List[int]
    failed_product_ids: List[int]
    error: Optional[str] = None


class ProductRouteRequest(BaseModel):
    route_option: RouteAction
    notes: Optional[str] = None


class SampleRouteRequest(BaseModel):
    destination: RoutedTo
    notes: Optional[str] = None


class SampleRoutingResponse(BaseModel):
    routed_to: str
    workflow_status: Optional[str] = None
    routed_at: Optional[datetime] = None
    routed_by: Optional[int] = None
    notes: Optional[str] = None
    can_route_to_manufacturer: bool
    can_route_to_admin: bool
    can_route_to_client: bool

    class Config:
        from_attributes = True
