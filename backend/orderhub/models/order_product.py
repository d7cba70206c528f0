"""
订单产品模型 - 路由的基本单位

routed_to 表示当前由谁处理（工作归属），不控制可见性：
管理员和工厂无论路由到哪一方都可以查看和编辑。

工厂价格与客户价格分开存放，面向客户的输出只能使用 client_* 字段。
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, DECIMAL, Boolean, Date
from sqlalchemy.orm import relationship
from orderhub.db.base import Base


class OrderProduct(Base):
    __tablename__ = "order_products"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True, index=True)
    product_order_number = Column(String(60), comment="产品单号")
    description = Column(Text, comment="产品描述")

    # === 工厂价格（成本） ===
    product_price = Column(DECIMAL(12, 2), comment="工厂单价")
    shipping_air_price = Column(DECIMAL(12, 2), comment="工厂空运价")
    shipping_boat_price = Column(DECIMAL(12, 2), comment="工厂海运价")

    # === 客户价格 ===
    client_product_price = Column(DECIMAL(12, 2), comment="客户单价")
    client_shipping_air_price = Column(DECIMAL(12, 2), comment="客户空运价")
    client_shipping_boat_price = Column(DECIMAL(12, 2), comment="客户海运价")

    # air / boat
    selected_shipping_method = Column(String(10), comment="运输方式")
    sample_fee = Column(DECIMAL(12, 2), comment="产品样品费")
    sample_required = Column(Boolean, default=False)

    # === 路由 ===
    product_status = Column(String(40), nullable=False, default="pending", index=True, comment="产品状态")
    routed_to = Column(String(20), nullable=False, default="admin", index=True, comment="当前处理方")
    routed_at = Column(DateTime, comment="路由时间")
    routed_by = Column(Integer, ForeignKey("users.id"), comment="路由操作人")
    is_locked = Column(Boolean, default=False, comment="生产中锁定")
    requires_client_approval = Column(Boolean, default=False)
    client_approved = Column(Boolean, default=False)
    client_approved_at = Column(DateTime)
    shipped_date = Column(DateTime, comment="发货时间")

    # === 开票 ===
    invoiced = Column(Boolean, default=False, index=True, comment="是否已开票")
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=True)

    # === 生产时间线 ===
    production_days = Column(Integer, comment="生产天数")
    estimated_ship_date = Column(Date, comment="预计发货日期")

    manufacturer_notes = Column(Text)
    internal_notes = Column(Text)
    client_notes = Column(Text)

    # === 软删除 ===
    deleted_at = Column(DateTime, nullable=True, index=True)
    deleted_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    deleted_by_name = Column(String(100))
    deletion_reason = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # 关系
    order = relationship("Order", back_populates="products")
    product = relationship("Product")
    items = relationship(
        "OrderItem", back_populates="order_product",
        cascade="all, delete-orphan", order_by="OrderItem.id"
    )
    media = relationship("OrderMedia", back_populates="order_product")
    invoice = relationship("Invoice", foreign_keys=[invoice_id])

    def __repr__(self):
        return f"<OrderProduct {self.product_order_number} ({self.product_status} → {self.routed_to})>"

    @property
    def title(self) -> str:
        if self.description:
            return self.description
        if self.product is not None:
            return self.product.title
        return "Product"

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity or 0 for item in self.items)

    def client_shipping_price(self) -> Decimal:
        if self.selected_shipping_method == "air":
            return self.client_shipping_air_price or Decimal("0")
        if self.selected_shipping_method == "boat":
            return self.client_shipping_boat_price or Decimal("0")
        return Decimal("0")

    def manufacturer_shipping_price(self) -> Decimal:
        if self.selected_shipping_method == "air":
            return self.shipping_air_price or Decimal("0")
        if self.selected_shipping_method == "boat":
            return self.shipping_boat_price or Decimal("0")
        return Decimal("0")

    def client_total(self) -> Decimal:
        """样品费 + 客户单价 × 数量 + 所选运费"""
        price = self.client_product_price or Decimal("0")
        return (self.sample_fee or Decimal("0")) + price * self.total_quantity + self.client_shipping_price()

    def manufacturer_total(self) -> Decimal:
        price = self.product_price or Decimal("0")
        return (self.sample_fee or Decimal("0")) + price * self.total_quantity + self.manufacturer_shipping_price()
