from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from orderhub.db.base import Base


class OrderMedia(Base):
    """订单 / 产品附件（文件本身存放在外部存储，这里只记录地址）"""
    __tablename__ = "order_media"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    # 订单级样品附件为空
    order_product_id = Column(Integer, ForeignKey("order_products.id"), nullable=True, index=True)
    file_url = Column(String(500), nullable=False)
    file_type = Column(String(50), comment="order_sample / product_image 等")
    uploaded_by = Column(Integer, ForeignKey("users.id"))
    original_filename = Column(String(255))
    display_name = Column(String(255))
    is_sample = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    order = relationship("Order", back_populates="media")
    order_product = relationship("OrderProduct", back_populates="media")
