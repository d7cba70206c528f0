"""订单 Schema"""
from typing import Optional, List
from pydantic import BaseModel, Field, validator
from datetime import date, datetime
from decimal import Decimal

from orderhub.core.enums import ShippingMethod


# ===== 明细 =====
class OrderItemCreate(BaseModel):
    variant_combo: Optional[str] = Field(None, max_length=200, description="变体组合，如 M / Red")
    quantity: int = Field(0, ge=0, description="数量")
    notes: Optional[str] = None


class OrderItemResponse(BaseModel):
    id: int
    variant_combo: Optional[str] = None
    quantity: int
    notes: Optional[str] = None

    class Config:
        from_attributes = True


# ===== 订单产品 =====
class OrderProductCreate(BaseModel):
    product_id: Optional[int] = Field(None, description="目录商品ID")
    description: Optional[str] = Field(None, description="产品描述")
    sample_required: bool = False
    selected_shipping_method: Optional[ShippingMethod] = None
    client_notes: Optional[str] = None
    items: List[OrderItemCreate] = Field(default_factory=list)


class ProductViewBase(BaseModel):
    """各角色共有的产品字段"""
    id: int
    order_id: int
    product_order_number: Optional[str] = None
    title: str
    description: Optional[str] = None
    product_status: str
    routed_to: str
    routed_at: Optional[datetime] = None
    is_locked: bool = False
    sample_required: bool = False
    selected_shipping_method: Optional[str] = None
    production_days: Optional[int] = None
    estimated_ship_date: Optional[date] = None
    shipped_date: Optional[datetime] = None
    total_quantity: int = 0
    items: List[OrderItemResponse] = Field(default_factory=list)


class ClientProductView(ProductViewBase):
    """客户视图：只有客户价格"""
    client_product_price: Optional[Decimal] = None
    client_shipping_air_price: Optional[Decimal] = None
    client_shipping_boat_price: Optional[Decimal] = None
    sample_fee: Optional[Decimal] = None
    client_approved: bool = False
    client_notes: Optional[str] = None
    total: Decimal = Decimal("0")


class ManufacturerProductView(ProductViewBase):
    """工厂视图：只有工厂价格"""
    product_price: Optional[Decimal] = None
    shipping_air_price: Optional[Decimal] = None
    shipping_boat_price: Optional[Decimal] = None
    sample_fee: Optional[Decimal] = None
    manufacturer_notes: Optional[str] = None
    total: Decimal = Decimal("0")


class AdminProductView(ProductViewBase):
    """管理员视图：两套价格都有"""
    product_price: Optional[Decimal] = None
    shipping_air_price: Optional[Decimal] = None
    shipping_boat_price: Optional[Decimal] = None
    client_product_price: Optional[Decimal] = None
    client_shipping_air_price: Optional[Decimal] = None
    client_shipping_boat_price: Optional[Decimal] = None
    sample_fee: Optional[Decimal] = None
    requires_client_approval: bool = False
    client_approved: bool = False
    invoiced: bool = False
    invoice_id: Optional[int] = None
    manufacturer_notes: Optional[str] = None
    internal_notes: Optional[str] = None
    client_notes: Optional[str] = None
    client_total: Decimal = Decimal("0")
    manufacturer_total: Decimal = Decimal("0")


# ===== 订单 =====
class OrderCreate(BaseModel):
    order_name: Optional[str] = Field(None, max_length=200)
    client_id: Optional[int] = Field(None, description="客户ID（客户下单时取当前账号所属客户）")
    manufacturer_id: Optional[int] = None
    status: str = Field("draft", description="draft / submitted")
    products: List[OrderProductCreate] = Field(default_factory=list)

    @validator("status")
    def validate_status(cls, v: str) -> str:
        if v not in ("draft", "submitted"):
            raise ValueError("新建订单状态只能是 draft 或 submitted")
        return v


class OrderSummary(BaseModel):
    id: int
    order_number: str
    order_name: Optional[str] = None
    status: str
    status_display: str
    client_id: int
    client_name: str = ""
    manufacturer_id: Optional[int] = None
    manufacturer_name: str = ""
    product_count: int = 0
    total_quantity: int = 0
    sample_status: Optional[str] = None
    sample_routed_to: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class OrderListResponse(BaseModel):
    data: List[OrderSummary]
    total: int
    page: int
    limit: int


class SampleInfo(BaseModel):
    sample_required: bool = False
    sample_fee: Optional[Decimal] = None
    client_sample_fee: Optional[Decimal] = None
    sample_eta: Optional[str] = None
    sample_status: Optional[str] = None
    sample_workflow_status: Optional[str] = None
    sample_routed_to: Optional[str] = None
    sample_notes: Optional[str] = None


class OrderDetail(OrderSummary):
    sample: SampleInfo
    products: List[dict] = Field(default_factory=list)


# ===== 产品操作 =====
class ProductDeleteRequest(BaseModel):
    reason: str = Field(..., description="删除原因")

    @validator("reason")
    def reason_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("删除原因不能为空")
        return v.strip()


class ProductionDaysRequest(BaseModel):
    production_days: Optional[int] = Field(None, ge=0, description="生产天数，为空表示清除")
    product_ids: Optional[List[int]] = Field(None, description="为空时应用到订单全部产品")


class ShipDateRequest(BaseModel):
    estimated_ship_date: Optional[date] = Field(None, description="为空表示清除")
