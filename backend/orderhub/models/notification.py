from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean
from orderhub.db.base import Base


class Notification(Base):
    """站内通知"""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # sample_routed / warning 等
    type = Column(String(50), nullable=False)
    message = Column(String(500), nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True)
    link = Column(String(255))
    is_read = Column(Boolean, default=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
