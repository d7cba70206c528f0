import json
import re
from datetime import date

import pytest
from sqlalchemy import select

from orderhub.core.context import SessionContext
from orderhub.core.enums import RouteAction, UserRole
from orderhub.core.errors import PermissionDeniedError, ValidationError
from orderhub.models.audit_log import AuditLog
from orderhub.models.notification import Notification
from orderhub.models.user import User
from orderhub.schemas.order import OrderCreate
from orderhub.services import orders as order_service

from factories import make_order


def _payload(**kwargs):
    data = {
        "order_name": "Fall Caps",
        "products": [
            {"description": "Dad Cap", "items": [{"variant_combo": "Khaki", "quantity": 50}]},
            {"description": "Beanie", "items": [{"variant_combo": "Navy", "quantity": 30}]},
        ],
    }
    data.update(kwargs)
    return OrderCreate(**data)


def test_client_order_goes_to_admin(run, world):
    async def scenario(db):
        order = await order_service.create_order(db, world.client, _payload(client_id=world.other_client_id))
        assert re.match(r"^ORD-\d{8}-001$", order.order_number)
        # 客户下单时忽略传入的 client_id
        assert order.client_id == world.client_id
        assert [p.product_order_number for p in order.products] == [
            f"{order.order_number}-01", f"{order.order_number}-02",
        ]
        assert {p.product_status for p in order.products} == {"pending_admin"}
        assert {p.routed_to for p in order.products} == {"admin"}
        assert order.total_quantity == 80

        second = await order_service.create_order(db, world.admin, _payload(client_id=world.client_id))
        assert second.order_number.endswith("-002")
        assert {p.product_status for p in second.products} == {"pending"}

    run(scenario)


def test_manufacturer_cannot_create_orders(run, world):
    async def scenario(db):
        with pytest.raises(PermissionDeniedError):
            await order_service.create_order(db, world.manufacturer, _payload(client_id=world.client_id))

    run(scenario)


def test_new_order_status_is_validated():
    with pytest.raises(ValueError):
        _payload(status="completed")


def test_views_never_mix_price_sets(run, world):
    async def scenario(db):
        order_id = await make_order(db, world, products=1, quantity=10)
        order = await order_service.get_order_detail(db, order_id)
        product = order.products[0]

        client_view = order_service.build_product_view(product, UserRole.CLIENT).model_dump()
        assert client_view["client_product_price"] == product.client_product_price
        assert "product_price" not in client_view
        assert "internal_notes" not in client_view
        assert str(client_view["total"]) == "125.00"

        factory_view = order_service.build_product_view(product, UserRole.MANUFACTURER).model_dump()
        assert "client_product_price" not in factory_view
        assert str(factory_view["total"]) == "70.00"

        admin_view = order_service.build_product_view(product, UserRole.SUPER_ADMIN).model_dump()
        assert admin_view["product_price"] and admin_view["client_product_price"]

        detail = order_service.build_order_detail(order, UserRole.CLIENT)
        assert detail.sample.sample_fee is None
        detail = order_service.build_order_detail(order, UserRole.MANUFACTURER)
        assert detail.sample.client_sample_fee is None

    run(scenario)


def test_listing_is_scoped_by_role(run, world):
    async def scenario(db):
        mine = await make_order(db, world)
        await make_order(db, world, client_id=world.other_client_id, manufacturer_id=None)

        orders, total = await order_service.list_orders(db, world.admin)
        assert total == 2
        orders, total = await order_service.list_orders(db, world.client)
        assert total == 1 and orders[0].id == mine
        orders, total = await order_service.list_orders(db, world.manufacturer)
        assert total == 1 and orders[0].id == mine

        order = orders[0]
        order.manufacturer_id = None
        await db.commit()
        with pytest.raises(PermissionDeniedError):
            await order_service.get_order_for(db, world.manufacturer, mine)

    run(scenario)


def test_unlinked_accounts_see_no_orders(run, world):
    async def scenario(db):
        unassigned = await make_order(db, world, manufacturer_id=None)
        factory = User(email="temp@sunrise.test", name="Temp Sales", role="manufacturer")
        buyer = User(email="temp@acme.test", name="Temp Buyer", role="client")
        db.add_all([factory, buyer])
        await db.commit()

        for user in (factory, buyer):
            ctx = SessionContext.from_user(user)
            assert await order_service.list_orders(db, ctx) == ([], 0)
            with pytest.raises(PermissionDeniedError):
                await order_service.get_order_for(db, ctx, unassigned)

    run(scenario)


def test_single_product_route_writes_audit(run, world):
    async def scenario(db):
        order_id = await make_order(db, world, products=1)
        order = await order_service.get_order_detail(db, order_id)
        product_id = order.products[0].id

        product = await order_service.route_product(
            db, world.admin, product_id, RouteAction.SEND_FOR_APPROVAL, "see colors",
        )
        assert product.product_status == "pending_client_approval"
        assert product.routed_to == "client"
        assert product.requires_client_approval

        log = (await db.execute(select(AuditLog))).scalar_one()
        assert log.action_type == "product_routed_send_for_approval"
        assert log.old_value == "pending → admin"
        assert log.new_value.endswith("Route note: see colors")

    run(scenario)


def test_deleting_products(run, world):
    async def scenario(db):
        order_id = await make_order(db, world, products=2, created_by=world.super_admin.user_id)
        order = await order_service.get_order_detail(db, order_id)
        plain, invoiced = order.products
        invoiced.invoiced = True
        await db.commit()

        with pytest.raises(ValidationError):
            await order_service.delete_product(db, world.admin, plain.id, "   ")
        with pytest.raises(PermissionDeniedError):
            await order_service.delete_product(db, world.client, plain.id, "dupe")
        with pytest.raises(PermissionDeniedError):
            await order_service.delete_product(db, world.admin, invoiced.id, "wrong size")

        deleted = await order_service.delete_product(db, world.admin, plain.id, " duplicate line ")
        assert deleted.deletion_reason == "duplicate line"
        assert deleted.deleted_by_name == "Adam Admin"
        assert (await db.execute(select(Notification))).first() is None

        await order_service.delete_product(db, world.super_admin, invoiced.id, "client cancelled")
        notification = (await db.execute(select(Notification))).scalar_one()
        assert notification.type == "warning"
        assert notification.user_id == world.super_admin.user_id

        logs = (await db.execute(
            select(AuditLog).where(AuditLog.action_type == "product_deleted").order_by(AuditLog.id)
        )).scalars().all()
        snapshot = json.loads(logs[1].old_value)
        assert snapshot["invoiced"] is True
        assert snapshot["total_quantity"] == 10

        order = await order_service.get_order_detail(db, order_id)
        assert order.active_products == []

    run(scenario)


def test_production_days_and_ship_date(run, world):
    async def scenario(db):
        order_id = await make_order(db, world, products=2)

        updated = await order_service.set_production_days(db, world.manufacturer, order_id, 30)
        assert len(updated) == 2
        # 值未变化的产品不会重复记录
        assert await order_service.set_production_days(db, world.admin, order_id, 30) == []
        with pytest.raises(PermissionDeniedError):
            await order_service.set_production_days(db, world.client, order_id, 10)

        product_id = updated[0]
        product = await order_service.set_ship_date(db, world.admin, product_id, date(2026, 5, 1))
        assert product.estimated_ship_date == date(2026, 5, 1)
        await order_service.set_ship_date(db, world.admin, product_id, None)

        actions = (await db.execute(select(AuditLog.action_type).order_by(AuditLog.id))).scalars().all()
        assert actions == ["production_days_set", "production_days_set", "ship_date_set", "ship_date_cleared"]

    run(scenario)
