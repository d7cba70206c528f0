from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime
from orderhub.db.base import Base


class Product(Base):
    """产品目录"""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False, comment="产品名称")
    description = Column(Text, comment="描述")
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Product {self.title}>"
