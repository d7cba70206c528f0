import pytest
from sqlalchemy import select

from orderhub.core.enums import RoutedTo, UserRole
from orderhub.core.errors import RoutingNotAllowedError
from orderhub.models.audit_log import AuditLog
from orderhub.models.notification import Notification
from orderhub.services.orders import get_order_detail
from orderhub.services.sample_routing import (
    SampleRouter, can_route_to_admin, can_route_to_client, can_route_to_manufacturer,
    routing_state, workflow_status_for,
)

from factories import make_order

ROLES = list(UserRole)
OWNERS = ["admin", "manufacturer", "client", None]


def test_manufacturer_and_client_never_route_to_each_other():
    for role in ROLES:
        for routed_to in OWNERS:
            to_client = can_route_to_client(role, routed_to)
            to_manufacturer = can_route_to_manufacturer(role, routed_to)
            assert to_client == (role.is_admin and routed_to == "admin")
            assert to_manufacturer == (role.is_admin and routed_to == "admin")


def test_only_current_holder_returns_sample_to_admin():
    assert can_route_to_admin("manufacturer", "manufacturer")
    assert can_route_to_admin("client", "client")
    assert not can_route_to_admin("manufacturer", "client")
    assert not can_route_to_admin("admin", "manufacturer")


def test_workflow_status_after_routing():
    assert workflow_status_for("admin", RoutedTo.MANUFACTURER).value == "sent_to_manufacturer"
    assert workflow_status_for("admin", RoutedTo.CLIENT).value == "sent_to_client"
    assert workflow_status_for("manufacturer", RoutedTo.ADMIN).value == "priced_by_manufacturer"
    assert workflow_status_for("client", RoutedTo.ADMIN).value == "client_reviewed"


def test_admin_sends_sample_to_manufacturer(run, world):
    async def scenario(db):
        order_id = await make_order(db, world, sample_fee=40, sample_status="pending")
        order = await get_order_detail(db, order_id)
        await SampleRouter(db).route_to_manufacturer(order, world.admin, "please quote")
        await db.commit()

        order = await get_order_detail(db, order_id)
        assert order.sample_routed_to == "manufacturer"
        assert order.sample_workflow_status == "sent_to_manufacturer"
        assert order.sample_routed_by == world.admin.user_id
        assert order.sample_notes.endswith("- Admin] please quote")

        log = (await db.execute(
            select(AuditLog).where(AuditLog.action_type == "sample_routed")
        )).scalar_one()
        assert log.target_id == order_id
        assert log.new_value.startswith("routed_to: manufacturer")

        notification = (await db.execute(select(Notification))).scalar_one()
        assert notification.user_id == world.manufacturer.user_id
        assert notification.order_id == order_id

        state = routing_state(order, UserRole.MANUFACTURER)
        assert state.can_route_to_admin
        assert not state.can_route_to_client

    run(scenario)


def test_manufacturer_cannot_send_sample_to_client(run, world):
    async def scenario(db):
        order_id = await make_order(db, world, sample_routed_to="manufacturer")
        order = await get_order_detail(db, order_id)
        with pytest.raises(RoutingNotAllowedError, match="Cannot route to client from current state"):
            await SampleRouter(db).route(order, RoutedTo.CLIENT, world.manufacturer)

    run(scenario)


def test_missing_recipient_does_not_block_routing(run, world):
    async def scenario(db):
        order_id = await make_order(db, world, manufacturer_id=None)
        order = await get_order_detail(db, order_id)
        await SampleRouter(db).route(order, "manufacturer", world.admin)
        await db.commit()

        order = await get_order_detail(db, order_id)
        assert order.sample_routed_to == "manufacturer"
        assert (await db.execute(select(Notification))).first() is None

    run(scenario)
