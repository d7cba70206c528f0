"""
发票号生成

每个客户一条序号记录，发票号格式 {前缀}-{5位序号}，如 ACM-00007。
递增使用条件更新（WHERE last_number = 读到的值），并发争用时重试；
invoices.invoice_number 上的唯一约束兜底。
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.core.config import settings
from orderhub.core.errors import ConflictError
from orderhub.models.client import Client
from orderhub.models.invoice import InvoiceSequence

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "INV"


def format_invoice_number(prefix: str, number: int) -> str:
    return f"{prefix}-{number:05d}"


def client_prefix(name: Optional[str]) -> str:
    """客户名前三个字符大写"""
    prefix = (name or "").strip()[:3].upper()
    return prefix or DEFAULT_PREFIX


async def _get_or_create_sequence(db: AsyncSession, client: Client) -> InvoiceSequence:
    result = await db.execute(select(InvoiceSequence).where(InvoiceSequence.client_id == client.id))
    sequence = result.scalar_one_or_none()
    if sequence is not None:
        return sequence

    try:
        async with db.begin_nested():
            sequence = InvoiceSequence(client_id=client.id, prefix=client_prefix(client.name), last_number=0)
            db.add(sequence)
        logger.info(f"创建发票序号: 客户 {client.name} 前缀 {sequence.prefix}")
        return sequence
    except IntegrityError:
        # 另一个请求已创建
        result = await db.execute(select(InvoiceSequence).where(InvoiceSequence.client_id == client.id))
        return result.scalar_one()


async def next_invoice_number(db: AsyncSession, client: Client, max_retries: Optional[int] = None) -> str:
    """
    为客户分配下一个发票号

    Raises:
        ConflictError: 重试次数用尽仍未抢到序号
    """
    retries = max_retries or settings.INVOICE_NUMBER_MAX_RETRIES
    sequence = await _get_or_create_sequence(db, client)

    for attempt in range(1, retries + 1):
        row = (await db.execute(
            select(InvoiceSequence.prefix, InvoiceSequence.last_number)
            .where(InvoiceSequence.client_id == client.id)
        )).one()
        current = row.last_number or 0
        next_number = current + 1

        result = await db.execute(
            update(InvoiceSequence)
            .where(InvoiceSequence.client_id == client.id)
            .where(InvoiceSequence.last_number == current)
            .values(last_number=next_number, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            await db.refresh(sequence)
            return format_invoice_number(row.prefix, next_number)

        logger.warning(f"发票序号争用，重试 {attempt}/{retries}: 客户 {client.id}")

    raise ConflictError("发票号生成冲突，请稍后重试")
