"""
客户与工厂
客户可单独设置样品利润率，优先级高于系统默认值
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, DECIMAL
from sqlalchemy.orm import relationship
from orderhub.db.base import Base


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, comment="客户名称")
    email = Column(String(255), comment="联系邮箱")
    phone = Column(String(50), comment="电话")
    address = Column(Text, comment="地址")

    # 客户专属样品利润率（百分比），为空时使用系统默认值
    custom_sample_margin_percentage = Column(DECIMAL(6, 2), nullable=True, comment="样品利润率")
    custom_margin_percentage = Column(DECIMAL(6, 2), nullable=True, comment="产品利润率")

    created_at = Column(DateTime, default=datetime.utcnow)

    orders = relationship("Order", back_populates="client")

    def __repr__(self):
        return f"<Client {self.name}>"


class Manufacturer(Base):
    __tablename__ = "manufacturers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, comment="工厂名称")
    email = Column(String(255), comment="联系邮箱")
    created_at = Column(DateTime, default=datetime.utcnow)

    orders = relationship("Order", back_populates="manufacturer")

    def __repr__(self):
        return f"<Manufacturer {self.name}>"
