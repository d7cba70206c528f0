"""
发票模型

发票由所选订单产品的快照 + 自定义行生成；
发票号按客户独立编号：{客户前缀}-{5位序号}
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, DECIMAL, Date
from sqlalchemy.orm import relationship
from orderhub.db.base import Base


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String(50), unique=True, nullable=False, index=True, comment="发票号")
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)

    amount = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="总金额（含税）")
    paid_amount = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="已付金额")
    tax_rate = Column(DECIMAL(6, 2), default=Decimal("0.00"), comment="税率%")
    tax_amount = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="税额")

    # draft / sent / paid / voided
    status = Column(String(20), nullable=False, default="draft", index=True)
    due_date = Column(Date, comment="到期日")
    notes = Column(Text)
    payment_terms = Column(String(200))

    pay_link = Column(String(500), comment="付款链接")
    pdf_url = Column(String(500), comment="PDF 地址")
    sent_at = Column(DateTime)
    sent_to = Column(String(255))

    voided_at = Column(DateTime)
    voided_by = Column(Integer, ForeignKey("users.id"))
    void_reason = Column(Text)

    created_by = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    order = relationship("Order", back_populates="invoices")
    client = relationship("Client")
    items = relationship(
        "InvoiceItem", back_populates="invoice",
        cascade="all, delete-orphan", order_by="InvoiceItem.id"
    )

    def __repr__(self):
        return f"<Invoice {self.invoice_number} ({self.status})>"

    @property
    def subtotal(self) -> Decimal:
        return sum((item.amount or Decimal("0") for item in self.items), Decimal("0"))


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    # 自定义行为空
    order_product_id = Column(Integer, ForeignKey("order_products.id"), nullable=True)
    description = Column(String(500), nullable=False)
    amount = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))

    invoice = relationship("Invoice", back_populates="items")


class InvoiceSequence(Base):
    """客户发票序号"""
    __tablename__ = "invoice_sequences"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), unique=True, nullable=False)
    prefix = Column(String(10), nullable=False)
    last_number = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<InvoiceSequence {self.prefix}:{self.last_number}>"
