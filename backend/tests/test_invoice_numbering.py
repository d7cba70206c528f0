import pytest
from sqlalchemy import select, update as sa_update

from orderhub.core.errors import ConflictError
from orderhub.models.client import Client
from orderhub.models.invoice import InvoiceSequence
from orderhub.services import invoice_numbering
from orderhub.services.invoice_numbering import client_prefix, format_invoice_number, next_invoice_number

def test_format_is_zero_padded():
    assert format_invoice_number("ACM", 7) == "ACM-00007"
    assert format_invoice_number("ACM", 123456) == "ACM-123456"

def test_prefix_from_client_name():
    assert client_prefix("Acme Apparel") == "ACM"
    assert client_prefix("  zo ") == "ZO"
    assert client_prefix("") == "INV"
    assert client_prefix(None) == "INV"

def test_numbers_increase_per_client(run, world):
    async def scenario(db):
        acme = await db.get(Client, world.client_id)
        harbor = await db.get(Client, world.other_client_id)

        assert await next_invoice_number(db, acme) == "ACM-00001"
        assert await next_invoice_number(db, acme) == "ACM-00002"
        assert await next_invoice_number(db, harbor) == "BLU-00001"
        await db.commit()

        sequence = (await db.execute(
            select(InvoiceSequence).where(InvoiceSequence.client_id == acme.id)
        )).scalar_one()
        assert sequence.last_number == 2
        assert await next_invoice_number(db, acme) == "ACM-00003"

    run(scenario)


def test_gives_up_after_repeated_conflicts(run, world, monkeypatch):
    async def scenario(db):
        acme = await db.get(Client, world.client_id)
        await next_invoice_number(db, acme)

        # 模拟每次条件更新都被其他请求抢先
        monkeypatch.setattr(
            invoice_numbering, "update",
            lambda table: sa_update(table).where(InvoiceSequence.id == -1),
        )
        with pytest.raises(ConflictError):
            await next_invoice_number(db, acme, max_retries=3)

    run(scenario)
