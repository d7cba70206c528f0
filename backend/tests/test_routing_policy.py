from datetime import datetime

import pytest

from orderhub.core.enums import RouteAction, RoutedTo, UserRole
from orderhub.core.errors import RoutingNotAllowedError
from orderhub.services import routing_policy
from orderhub.services.routing_policy import (
    ROLE_RULES, product_update_for, route_options, sample_transition_for, should_redirect,
)


def test_every_defined_pair_produces_status_and_owner():
    for role, rules in ROLE_RULES.items():
        for action in rules:
            update = product_update_for(role, action, actor_id=1)
            assert update["product_status"]
            assert update["routed_to"] in {r.value for r in RoutedTo}
            assert update["routed_by"] == 1
            assert update["routed_at"] is not None


def test_manufacturer_start_production_locks_product():
    update = product_update_for(UserRole.MANUFACTURER, RouteAction.IN_PRODUCTION, actor_id=3)
    assert update["product_status"] == "in_production"
    assert update["routed_to"] == "manufacturer"
    assert update["is_locked"] is True


def test_shipped_stamps_shipped_date():
    now = datetime(2026, 3, 5, 9, 30)
    update = product_update_for(UserRole.MANUFACTURER, "shipped", actor_id=3, now=now)
    assert update["product_status"] == "shipped"
    assert update["routed_to"] == "admin"
    assert update["shipped_date"] == now


def test_client_approval_sets_flag_and_time():
    now = datetime(2026, 3, 5, 9, 30)
    update = product_update_for(UserRole.CLIENT, RouteAction.APPROVE, actor_id=4, now=now)
    assert update["product_status"] == "client_approved"
    assert update["client_approved"] is True
    assert update["client_approved_at"] == now


def test_super_admin_shares_admin_options():
    admin = [o.value for o in route_options(UserRole.ADMIN)]
    assert [o.value for o in route_options(UserRole.SUPER_ADMIN)] == admin
    assert admin == [
        RouteAction.SEND_TO_MANUFACTURER,
        RouteAction.APPROVE_FOR_PRODUCTION,
        RouteAction.SEND_FOR_APPROVAL,
        RouteAction.REQUEST_SAMPLE,
    ]


@pytest.mark.parametrize("role,action", [
    (UserRole.MANUFACTURER, RouteAction.APPROVE),
    (UserRole.CLIENT, RouteAction.SHIPPED),
    (UserRole.ADMIN, RouteAction.SEND_TO_ADMIN),
    ("manufacturer", "launch_rocket"),
    ("guest", "approve"),
])
def test_unknown_pairs_are_rejected(role, action):
    with pytest.raises(RoutingNotAllowedError):
        product_update_for(role, action, actor_id=1)


def test_redirect_depends_on_role_and_action():
    assert should_redirect(UserRole.MANUFACTURER, RouteAction.SHIPPED)
    assert not should_redirect(UserRole.MANUFACTURER, RouteAction.IN_PRODUCTION)
    assert should_redirect(UserRole.SUPER_ADMIN, RouteAction.SEND_FOR_APPROVAL)
    assert not should_redirect(UserRole.ADMIN, RouteAction.REQUEST_SAMPLE)
    assert not should_redirect(UserRole.CLIENT, RouteAction.APPROVE)


def test_sample_follows_only_defined_transitions():
    assert sample_transition_for("manufacturer", "send_to_admin", "manufacturer") == RoutedTo.ADMIN
    assert sample_transition_for("manufacturer", "send_to_admin", "admin") is None
    assert sample_transition_for("admin", "send_to_manufacturer", "admin") == RoutedTo.MANUFACTURER
    assert sample_transition_for("super_admin", "send_for_approval", "admin") == RoutedTo.CLIENT
    assert sample_transition_for("admin", "send_for_approval", "manufacturer") is None
    assert sample_transition_for("admin", "approve_for_production", "admin") is None
    assert sample_transition_for("client", "approve", "client") is None


def test_policy_module_is_pure():
    # 相同输入得到相同输出，不依赖任何会话状态
    now = datetime(2026, 1, 1)
    first = routing_policy.product_update_for("admin", "request_sample", 2, now)
    second = routing_policy.product_update_for("admin", "request_sample", 2, now)
    assert first == second
    assert first["sample_required"] is True
