from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from orderhub.db.base import Base


class OrderItem(Base):
    """产品下的变体数量行，如 尺码/颜色 组合"""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_product_id = Column(Integer, ForeignKey("order_products.id"), nullable=False, index=True)
    variant_combo = Column(String(200), comment="变体组合描述")
    quantity = Column(Integer, nullable=False, default=0, comment="数量")
    notes = Column(Text, comment="备注")
    created_at = Column(DateTime, default=datetime.utcnow)

    order_product = relationship("OrderProduct", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.variant_combo} x{self.quantity}>"
