"""
角色路由策略

(角色, 动作) → 产品字段更新，纯函数，不访问数据库。
单个产品路由和批量路由使用同一张表。

状态流转只是约定：任何状态都可以被直接写成任何其他状态，这里不做终态校验。
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from orderhub.core.enums import ProductStatus, RouteAction, RoutedTo, UserRole
from orderhub.core.errors import RoutingNotAllowedError


@dataclass(frozen=True)
class RouteOption:
    value: RouteAction
    label: str
    description: str


@dataclass(frozen=True)
class RouteRule:
    """一条路由规则：目标状态、目标处理方，以及附带字段"""
    product_status: ProductStatus
    routed_to: RoutedTo
    label: str
    description: str
    # 附带的布尔标记，如 is_locked
    flags: Dict[str, bool]
    # 需要写入当前时间的字段，如 shipped_date
    stamp_fields: tuple = ()


MANUFACTURER_RULES: Dict[RouteAction, RouteRule] = {
    RouteAction.SEND_TO_ADMIN: RouteRule(
        ProductStatus.PENDING_ADMIN, RoutedTo.ADMIN,
        "Send to Admin", "Send all products back to admin for review", {}),
    RouteAction.IN_PRODUCTION: RouteRule(
        ProductStatus.IN_PRODUCTION, RoutedTo.MANUFACTURER,
        "Start Production", "Mark all products as in production", {"is_locked": True}),
    RouteAction.SHIPPED: RouteRule(
        ProductStatus.SHIPPED, RoutedTo.ADMIN,
        "Mark as Shipped", "Mark all products as shipped", {}, ("shipped_date",)),
}

ADMIN_RULES: Dict[RouteAction, RouteRule] = {
    RouteAction.SEND_TO_MANUFACTURER: RouteRule(
        ProductStatus.SENT_TO_MANUFACTURER, RoutedTo.MANUFACTURER,
        "Send to Manufacturer", "Send all products to manufacturer for pricing/production", {}),
    RouteAction.APPROVE_FOR_PRODUCTION: RouteRule(
        ProductStatus.APPROVED_FOR_PRODUCTION, RoutedTo.MANUFACTURER,
        "Approve for Production", "Approve all products and send to manufacturer for production",
        {"is_locked": False}),
    RouteAction.SEND_FOR_APPROVAL: RouteRule(
        ProductStatus.PENDING_CLIENT_APPROVAL, RoutedTo.CLIENT,
        "Send to Client", "Send all products to client for approval",
        {"requires_client_approval": True}),
    RouteAction.REQUEST_SAMPLE: RouteRule(
        ProductStatus.SAMPLE_REQUESTED, RoutedTo.MANUFACTURER,
        "Request Sample", "Ask the manufacturer for a sample before production",
        {"sample_required": True}),
}

CLIENT_RULES: Dict[RouteAction, RouteRule] = {
    RouteAction.APPROVE: RouteRule(
        ProductStatus.CLIENT_APPROVED, RoutedTo.ADMIN,
        "Approve All", "Approve all products in this order",
        {"client_approved": True}, ("client_approved_at",)),
    RouteAction.REQUEST_CHANGES: RouteRule(
        ProductStatus.REVISION_REQUESTED, RoutedTo.ADMIN,
        "Request Changes", "Send back to admin with change requests", {}),
}

ROLE_RULES: Dict[UserRole, Dict[RouteAction, RouteRule]] = {
    UserRole.MANUFACTURER: MANUFACTURER_RULES,
    UserRole.ADMIN: ADMIN_RULES,
    UserRole.SUPER_ADMIN: ADMIN_RULES,
    UserRole.CLIENT: CLIENT_RULES,
}

# 批量操作后返回列表页的动作，其余动作刷新当前页
REDIRECT_ACTIONS: Dict[UserRole, frozenset] = {
    UserRole.MANUFACTURER: frozenset({RouteAction.SEND_TO_ADMIN, RouteAction.SHIPPED}),
    UserRole.ADMIN: frozenset({
        RouteAction.SEND_TO_MANUFACTURER,
        RouteAction.APPROVE_FOR_PRODUCTION,
        RouteAction.SEND_FOR_APPROVAL,
    }),
    UserRole.CLIENT: frozenset(),
}
REDIRECT_ACTIONS[UserRole.SUPER_ADMIN] = REDIRECT_ACTIONS[UserRole.ADMIN]


def _coerce_role(role: Union[UserRole, str]) -> UserRole:
    try:
        return UserRole(role)
    except ValueError:
        raise RoutingNotAllowedError(f"未知角色: {role}")


def _coerce_action(action: Union[RouteAction, str]) -> RouteAction:
    try:
        return RouteAction(action)
    except ValueError:
        raise RoutingNotAllowedError(f"未知路由动作: {action}")


def route_options(role: Union[UserRole, str]) -> List[RouteOption]:
    """角色可用的路由动作"""
    rules = ROLE_RULES[_coerce_role(role)]
    return [RouteOption(action, rule.label, rule.description) for action, rule in rules.items()]


def get_rule(role: Union[UserRole, str], action: Union[RouteAction, str]) -> RouteRule:
    user_role = _coerce_role(role)
    route_action = _coerce_action(action)
    rule = ROLE_RULES[user_role].get(route_action)
    if rule is None:
        raise RoutingNotAllowedError(f"角色 {user_role.value} 不能执行 {route_action.value}")
    return rule


def product_update_for(
    role: Union[UserRole, str],
    action: Union[RouteAction, str],
    actor_id: Optional[int],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    计算产品需要写入的字段

    Raises:
        RoutingNotAllowedError: 角色与动作不匹配
    """
    rule = get_rule(role, action)
    now = now or datetime.utcnow()

    update: Dict[str, Any] = {
        "product_status": rule.product_status.value,
        "routed_to": rule.routed_to.value,
        "routed_at": now,
        "routed_by": actor_id,
    }
    update.update(rule.flags)
    for field in rule.stamp_fields:
        update[field] = now
    return update


def should_redirect(role: Union[UserRole, str], action: Union[RouteAction, str]) -> bool:
    return _coerce_action(action) in REDIRECT_ACTIONS[_coerce_role(role)]


def sample_transition_for(
    role: Union[UserRole, str],
    action: Union[RouteAction, str],
    sample_routed_to: Optional[str],
) -> Optional[RoutedTo]:
    """
    批量路由时样品是否跟随流转，返回目标方；不跟随返回 None

    - 工厂 send_to_admin，样品在工厂 → 管理员
    - 管理员 send_to_manufacturer，样品在管理员 → 工厂
    - 管理员 send_for_approval，样品在管理员 → 客户
    """
    user_role = _coerce_role(role)
    route_action = _coerce_action(action)

    if user_role == UserRole.MANUFACTURER:
        if route_action == RouteAction.SEND_TO_ADMIN and sample_routed_to == RoutedTo.MANUFACTURER.value:
            return RoutedTo.ADMIN
        return None

    if user_role.is_admin and sample_routed_to == RoutedTo.ADMIN.value:
        if route_action == RouteAction.SEND_TO_MANUFACTURER:
            return RoutedTo.MANUFACTURER
        if route_action == RouteAction.SEND_FOR_APPROVAL:
            return RoutedTo.CLIENT
    return None
