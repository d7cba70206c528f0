from datetime import datetime, timedelta

from sqlalchemy import func, select

from orderhub.models.audit_log import AuditLog
from orderhub.models.order import Order
from orderhub.models.order_item import OrderItem
from orderhub.models.order_product import OrderProduct
from orderhub.services.audit import create_audit_log
from orderhub.services.cleanup import cleanup_old_drafts, count_old_drafts, cutoff_for

from factories import make_order


def test_cutoff():
    now = datetime(2026, 3, 20, 3, 0)
    assert cutoff_for(15, now) == datetime(2026, 3, 5, 3, 0)


def test_only_stale_drafts_are_removed(run, world):
    old = datetime.utcnow() - timedelta(days=20)

    async def scenario(db):
        stale = await make_order(db, world, status="draft", created_at=old)
        fresh = await make_order(db, world, status="draft")
        submitted = await make_order(db, world, status="submitted", created_at=old)
        create_audit_log(db, world.admin, "create_order", "order", stale)
        create_audit_log(db, world.admin, "create_order", "order", fresh)
        await db.commit()

        assert await count_old_drafts(db, 15) == 1
        result = await cleanup_old_drafts(db, 15)
        assert result["success"]
        assert result["deleted"] == 1
        assert result["errors"] == []

        remaining = (await db.execute(select(Order.id).order_by(Order.id))).scalars().all()
        assert remaining == [fresh, submitted]
        assert (await db.execute(select(func.count(OrderProduct.id)))).scalar() == 4
        assert (await db.execute(select(func.count(OrderItem.id)))).scalar() == 4
        logs = (await db.execute(select(AuditLog.target_id))).scalars().all()
        assert logs == [fresh]

        assert await count_old_drafts(db, 15) == 0

    run(scenario)
