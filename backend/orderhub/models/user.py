from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from orderhub.core.enums import UserRole
from orderhub.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    # super_admin / admin / manufacturer / client
    role = Column(String(20), nullable=False, default=UserRole.ADMIN.value, index=True)
    # 客户账号、工厂账号分别关联所属客户 / 工厂
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True, index=True)
    manufacturer_id = Column(Integer, ForeignKey("manufacturers.id"), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    client = relationship("Client", foreign_keys=[client_id])
    manufacturer = relationship("Manufacturer", foreign_keys=[manufacturer_id])

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"

    @property
    def user_role(self) -> UserRole:
        return UserRole(self.role)
