"""测试数据构造"""
import itertools
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from orderhub.core.context import SessionContext
from orderhub.core.enums import UserRole
from orderhub.models.client import Client, Manufacturer
from orderhub.models.order import Order
from orderhub.models.order_item import OrderItem
from orderhub.models.order_product import OrderProduct
from orderhub.models.user import User
from orderhub.services.email import EmailClient

_order_seq = itertools.count(1)


@dataclass
class World:
    client_id: int
    other_client_id: int
    manufacturer_id: int
    super_admin: SessionContext
    admin: SessionContext
    manufacturer: SessionContext
    client: SessionContext

    def headers(self, ctx: SessionContext) -> Dict[str, str]:
        return {"X-User-Id": str(ctx.user_id)}


async def seed_world(db, client_margin: Optional[Decimal] = None) -> World:
    client = Client(name="Acme Apparel", email="buyer@acme.test", custom_sample_margin_percentage=client_margin)
    other = Client(name="Blue Harbor", email="ops@blueharbor.test")
    manufacturer = Manufacturer(name="Sunrise Factory", email="factory@sunrise.test")
    db.add_all([client, other, manufacturer])
    await db.flush()

    users = [
        User(email="owner@orderhub.test", name="Olivia Owner", role=UserRole.SUPER_ADMIN.value),
        User(email="admin@orderhub.test", name="Adam Admin", role=UserRole.ADMIN.value),
        User(email="sales@sunrise.test", name="Sunrise Sales", role=UserRole.MANUFACTURER.value,
             manufacturer_id=manufacturer.id),
        User(email="buyer@acme.test", name="Acme Buyer", role=UserRole.CLIENT.value, client_id=client.id),
    ]
    db.add_all(users)
    await db.commit()

    contexts = [SessionContext.from_user(u) for u in users]
    return World(
        client_id=client.id,
        other_client_id=other.id,
        manufacturer_id=manufacturer.id,
        super_admin=contexts[0],
        admin=contexts[1],
        manufacturer=contexts[2],
        client=contexts[3],
    )


async def make_order(
    db,
    world: World,
    products: int = 2,
    quantity: int = 10,
    product_fields: Optional[Dict[str, Any]] = None,
    **order_fields,
) -> int:
    """创建一个订单，返回订单ID"""
    number = f"ORD-TEST-{next(_order_seq):03d}"
    order = Order(
        order_number=number,
        order_name=order_fields.pop("order_name", "Spring Hoodies"),
        client_id=order_fields.pop("client_id", world.client_id),
        manufacturer_id=order_fields.pop("manufacturer_id", world.manufacturer_id),
        status=order_fields.pop("status", "submitted"),
        created_by=order_fields.pop("created_by", world.admin.user_id),
        **order_fields,
    )
    db.add(order)
    await db.flush()

    for index in range(1, products + 1):
        fields = dict(
            description=f"Hoodie {index}",
            product_price=Decimal("7.00"),
            client_product_price=Decimal("12.50"),
            product_status="pending",
            routed_to="admin",
        )
        fields.update(product_fields or {})
        product = OrderProduct(
            order_id=order.id,
            product_order_number=f"{number}-{index:02d}",
            **fields,
        )
        product.items = [OrderItem(variant_combo="M / Black", quantity=quantity)]
        db.add(product)

    await db.commit()
    return order.id


class FakeEmailClient(EmailClient):
    """记录发送内容，不访问网络"""

    def __init__(self, configured: bool = True):
        super().__init__(
            api_key="re_test_key" if configured else "",
            from_email="orders@orderhub.test",
            from_name="OrderHub Test",
        )
        self.sent: List[Dict[str, Any]] = []

    def send(self, to, subject, html, cc=None):
        self.ensure_configured()
        self.sent.append({"to": to, "subject": subject, "html": html, "cc": cc})
        return {"id": f"email-{len(self.sent)}"}
