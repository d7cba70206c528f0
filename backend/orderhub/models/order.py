"""
订单模型

订单下挂多个订单产品（OrderProduct），每个产品独立路由；
样品申请是订单级的，有自己的一套路由字段（sample_*），与产品路由互不影响。
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, DECIMAL, Boolean
from sqlalchemy.orm import relationship
from orderhub.db.base import Base


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)

    # 订单号（自动生成）格式：ORD-{年月日}-{序号}
    order_number = Column(String(50), unique=True, nullable=False, index=True, comment="订单号")
    order_name = Column(String(200), comment="订单名称")

    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    manufacturer_id = Column(Integer, ForeignKey("manufacturers.id"), nullable=True, index=True)

    # draft / submitted / in_progress / completed / rejected
    status = Column(String(20), nullable=False, default="draft", index=True, comment="状态")
    is_paid = Column(Boolean, default=False, comment="是否已付款")

    # === 样品申请（订单级） ===
    sample_required = Column(Boolean, default=False, comment="是否需要样品")
    sample_fee = Column(DECIMAL(12, 2), comment="工厂样品费")
    # 客户样品费 = 工厂样品费 × (1 + 利润率/100)
    client_sample_fee = Column(DECIMAL(12, 2), comment="客户样品费")
    sample_eta = Column(String(50), comment="样品预计完成日期")
    sample_status = Column(String(30), default="no_sample", comment="样品状态")
    sample_workflow_status = Column(String(30), default="no_sample", comment="样品流程状态")
    sample_routed_to = Column(String(20), default="admin", comment="样品当前处理方")
    sample_routed_at = Column(DateTime, comment="样品路由时间")
    sample_routed_by = Column(Integer, ForeignKey("users.id"), comment="样品路由操作人")
    # 追加式文本，每段形如 [日期 - 角色] 内容
    sample_notes = Column(Text, comment="样品备注")

    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # 关系
    client = relationship("Client", back_populates="orders")
    manufacturer = relationship("Manufacturer", back_populates="orders")
    creator = relationship("User", foreign_keys=[created_by])
    products = relationship(
        "OrderProduct", back_populates="order",
        cascade="all, delete-orphan", order_by="OrderProduct.id"
    )
    media = relationship("OrderMedia", back_populates="order", cascade="all, delete-orphan")
    invoices = relationship("Invoice", back_populates="order")

    def __repr__(self):
        return f"<Order {self.order_number} ({self.status})>"

    @property
    def active_products(self):
        """未被软删除的产品"""
        return [p for p in self.products if p.deleted_at is None]

    @property
    def total_quantity(self) -> int:
        return sum(p.total_quantity for p in self.active_products)

    @property
    def status_display(self) -> str:
        status_map = {
            "draft": "草稿",
            "submitted": "已提交",
            "in_progress": "进行中",
            "completed": "已完成",
            "rejected": "已拒绝",
        }
        return status_map.get(self.status, self.status)

    def client_total(self) -> Decimal:
        """按客户价格汇总（不含工厂成本）"""
        return sum((p.client_total() for p in self.active_products), Decimal("0"))

    def manufacturer_total(self) -> Decimal:
        """按工厂价格汇总"""
        return sum((p.manufacturer_total() for p in self.active_products), Decimal("0"))
