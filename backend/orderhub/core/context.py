"""
会话上下文

每个请求解析一次，显式传入各个服务函数，服务层不读取任何全局用户状态。
"""

from dataclasses import dataclass
from typing import Optional

from orderhub.core.enums import UserRole


@dataclass(frozen=True)
class SessionContext:
    user_id: int
    user_name: str
    role: UserRole
    client_id: Optional[int] = None
    manufacturer_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role.is_admin

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN

    @property
    def is_manufacturer(self) -> bool:
        return self.role == UserRole.MANUFACTURER

    @property
    def is_client(self) -> bool:
        return self.role == UserRole.CLIENT

    @classmethod
    def from_user(cls, user) -> "SessionContext":
        return cls(
            user_id=user.id,
            user_name=user.name or user.email or "Unknown User",
            role=UserRole(user.role),
            client_id=user.client_id,
            manufacturer_id=user.manufacturer_id,
        )
