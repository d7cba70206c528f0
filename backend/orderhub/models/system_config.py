from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime
from orderhub.db.base import Base


class SystemConfig(Base):
    """系统配置键值表（也用于记录数据库版本）"""
    __tablename__ = "system_config"

    key = Column(String(100), primary_key=True)
    value = Column(Text)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
