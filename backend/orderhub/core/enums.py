"""
领域枚举
角色、产品状态、路由动作等都是封闭集合，数据库中按字符串存储
"""

from enum import Enum


class UserRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    MANUFACTURER = "manufacturer"
    CLIENT = "client"

    @property
    def is_admin(self) -> bool:
        return self in (UserRole.ADMIN, UserRole.SUPER_ADMIN)

    @property
    def display_name(self) -> str:
        """备注、审计中使用的角色名（超级管理员显示为 Admin）"""
        if self.is_admin:
            return "Admin"
        return self.value.capitalize()


class RoutedTo(str, Enum):
    """当前负责处理的一方（不代表可见性）"""
    ADMIN = "admin"
    MANUFACTURER = "manufacturer"
    CLIENT = "client"


class ProductStatus(str, Enum):
    PENDING = "pending"
    PENDING_MANUFACTURER = "pending_manufacturer"
    PENDING_ADMIN = "pending_admin"
    SENT_TO_MANUFACTURER = "sent_to_manufacturer"
    SAMPLE_REQUESTED = "sample_requested"
    APPROVED_FOR_PRODUCTION = "approved_for_production"
    IN_PRODUCTION = "in_production"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    PENDING_CLIENT_APPROVAL = "pending_client_approval"
    CLIENT_APPROVED = "client_approved"
    REVISION_REQUESTED = "revision_requested"


class RouteAction(str, Enum):
    # 工厂
    SEND_TO_ADMIN = "send_to_admin"
    IN_PRODUCTION = "in_production"
    SHIPPED = "shipped"
    # 管理员
    SEND_TO_MANUFACTURER = "send_to_manufacturer"
    APPROVE_FOR_PRODUCTION = "approve_for_production"
    REQUEST_SAMPLE = "request_sample"
    SEND_FOR_APPROVAL = "send_for_approval"
    # 客户
    APPROVE = "approve"
    REQUEST_CHANGES = "request_changes"


class SampleWorkflowStatus(str, Enum):
    NO_SAMPLE = "no_sample"
    PENDING = "pending"
    PENDING_ADMIN = "pending_admin"
    SENT_TO_MANUFACTURER = "sent_to_manufacturer"
    PRICED_BY_MANUFACTURER = "priced_by_manufacturer"
    SENT_TO_CLIENT = "sent_to_client"
    CLIENT_REVIEWED = "client_reviewed"


class OrderStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REJECTED = "rejected"


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    VOIDED = "voided"


class ShippingMethod(str, Enum):
    AIR = "air"
    BOAT = "boat"
