"""
发票服务

发票明细由所选订单产品按客户价格生成（样品费、生产费、所选运输方式运费），
另可附加自定义行。草稿发票占用所选产品（invoice_id），
发送后产品才标记为已开票；作废发票时两者都恢复。
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from orderhub.core.config import settings
from orderhub.core.context import SessionContext
from orderhub.core.enums import InvoiceStatus, ProductStatus, RoutedTo, ShippingMethod
from orderhub.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from orderhub.models.invoice import Invoice, InvoiceItem
from orderhub.models.order import Order
from orderhub.models.order_product import OrderProduct
from orderhub.schemas.invoice import CustomInvoiceItem, InvoiceCreate
from orderhub.services.audit import create_audit_log
from orderhub.services.email import EmailClient
from orderhub.services.email_templates import render_invoice_html
from orderhub.services.invoice_numbering import next_invoice_number
from orderhub.services.orders import get_order_detail

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# 这些状态的产品即使不在管理员手中也可以开票
INVOICEABLE_STATUSES = {
    ProductStatus.APPROVED_FOR_PRODUCTION.value,
    ProductStatus.IN_PRODUCTION.value,
    ProductStatus.COMPLETED.value,
}


@dataclass
class InvoiceLine:
    order_product_id: Optional[int]
    description: str
    amount: Decimal


def _positive(value: Optional[Decimal]) -> bool:
    return value is not None and Decimal(value) > 0


def is_invoiceable(product: OrderProduct) -> bool:
    if product.deleted_at is not None:
        return False
    has_fees = _positive(product.client_product_price) or _positive(product.sample_fee)
    if product.routed_to == RoutedTo.ADMIN.value and has_fees:
        return True
    return product.product_status in INVOICEABLE_STATUSES


def is_reserved(product: OrderProduct) -> bool:
    """已开票，或已挂在一张未作废的发票上（草稿也算）"""
    return bool(product.invoiced) or product.invoice_id is not None


def invoiceable_products(order: Order, uninvoiced_only: bool = False) -> List[OrderProduct]:
    products = [p for p in order.active_products if is_invoiceable(p)]
    if uninvoiced_only:
        products = [p for p in products if not is_reserved(p)]
    return products


def build_invoice_lines(
    products: Iterable[OrderProduct],
    custom_items: Iterable[CustomInvoiceItem] = (),
) -> List[InvoiceLine]:
    """按客户价格生成发票明细"""
    lines: List[InvoiceLine] = []
    for product in products:
        title = product.title
        if _positive(product.sample_fee):
            lines.append(InvoiceLine(product.id, f"{title} - Sample Fee", Decimal(product.sample_fee)))

        quantity = product.total_quantity
        if _positive(product.client_product_price) and quantity > 0:
            lines.append(InvoiceLine(
                product.id,
                f"{title} - Production (Qty: {quantity})",
                (Decimal(product.client_product_price) * quantity).quantize(CENT),
            ))

        method = product.selected_shipping_method
        if method == ShippingMethod.AIR.value and _positive(product.client_shipping_air_price):
            lines.append(InvoiceLine(product.id, f"{title} - Air Shipping", Decimal(product.client_shipping_air_price)))
        elif method == ShippingMethod.BOAT.value and _positive(product.client_shipping_boat_price):
            lines.append(InvoiceLine(product.id, f"{title} - Boat Shipping", Decimal(product.client_shipping_boat_price)))

    for item in custom_items:
        if item.description and item.price > 0:
            lines.append(InvoiceLine(
                None,
                f"{item.description} (Qty: {item.quantity})",
                (Decimal(item.price) * item.quantity).quantize(CENT),
            ))
    return lines


def compute_totals(lines: List[InvoiceLine], apply_tax: bool, tax_rate: Decimal) -> Tuple[Decimal, Decimal, Decimal]:
    """返回 (小计, 税额, 总额)"""
    subtotal = sum((line.amount for line in lines), Decimal("0")).quantize(CENT)
    tax_amount = Decimal("0.00")
    if apply_tax and tax_rate:
        tax_amount = (subtotal * Decimal(tax_rate) / Decimal("100")).quantize(CENT)
    return subtotal, tax_amount, subtotal + tax_amount


def _invoice_options():
    return (
        selectinload(Invoice.items),
        selectinload(Invoice.order),
        selectinload(Invoice.client),
    )


async def get_invoice(db: AsyncSession, invoice_id: int) -> Invoice:
    result = await db.execute(
        select(Invoice)
        .options(*_invoice_options())
        .where(Invoice.id == invoice_id)
        .execution_options(populate_existing=True)
    )
    invoice = result.scalar_one_or_none()
    if not invoice:
        raise NotFoundError("Invoice not found")
    return invoice


async def get_invoice_for(db: AsyncSession, ctx: SessionContext, invoice_id: int) -> Invoice:
    invoice = await get_invoice(db, invoice_id)
    if ctx.is_admin:
        return invoice
    if ctx.is_client and ctx.client_id is not None and invoice.client_id == ctx.client_id:
        return invoice
    raise PermissionDeniedError("无权访问该发票")


async def list_invoices(
    db: AsyncSession,
    ctx: SessionContext,
    order_id: Optional[int] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[Invoice], int]:
    if ctx.is_manufacturer:
        raise PermissionDeniedError("工厂不能查看发票")

    conditions = []
    if ctx.is_client:
        if ctx.client_id is None:
            return [], 0
        conditions.append(Invoice.client_id == ctx.client_id)
    if order_id:
        conditions.append(Invoice.order_id == order_id)
    if status:
        conditions.append(Invoice.status == status)

    count_query = select(func.count(Invoice.id))
    query = select(Invoice).options(*_invoice_options())
    if conditions:
        count_query = count_query.where(*conditions)
        query = query.where(*conditions)

    total = (await db.execute(count_query)).scalar() or 0
    query = query.order_by(Invoice.created_at.desc(), Invoice.id.desc()).offset((page - 1) * limit).limit(limit)
    return list((await db.execute(query)).scalars().all()), total


async def create_invoice(db: AsyncSession, ctx: SessionContext, payload: InvoiceCreate) -> Invoice:
    """
    创建发票（管理员）

    Raises:
        ValidationError: 没有选择任何产品或自定义行，或所选产品不可开票
    """
    if not ctx.is_admin:
        raise PermissionDeniedError("只有管理员可以创建发票")

    order = await get_order_detail(db, payload.order_id)
    candidates = {p.id: p for p in invoiceable_products(order)}

    selected: List[OrderProduct] = []
    for product_id in payload.product_ids:
        product = candidates.get(product_id)
        if product is None:
            raise ValidationError(f"产品 {product_id} 不可开票")
        if is_reserved(product):
            raise ValidationError(
                f"产品 {product.product_order_number or product_id} 已在发票 {product.invoice_id} 中，请先作废原发票"
            )
        selected.append(product)

    lines = build_invoice_lines(selected, payload.custom_items)
    if not lines:
        raise ValidationError("Please select at least one product or add a custom item")

    subtotal, tax_amount, total = compute_totals(lines, payload.apply_tax, payload.tax_rate)
    invoice_number = await next_invoice_number(db, order.client)

    invoice = Invoice(
        invoice_number=invoice_number,
        order_id=order.id,
        client_id=order.client_id,
        amount=total,
        paid_amount=Decimal("0.00"),
        tax_rate=payload.tax_rate if payload.apply_tax else Decimal("0.00"),
        tax_amount=tax_amount,
        status=InvoiceStatus.DRAFT.value,
        due_date=payload.due_date or (date.today() + timedelta(days=settings.INVOICE_DUE_DAYS)),
        notes=payload.notes,
        payment_terms=payload.payment_terms,
        pay_link=payload.pay_link,
        created_by=ctx.user_id,
    )
    invoice.items = [
        InvoiceItem(order_product_id=line.order_product_id, description=line.description, amount=line.amount)
        for line in lines
    ]
    db.add(invoice)
    await db.flush()

    # 草稿只占用产品，发送后才标记为已开票
    for product in selected:
        product.invoice_id = invoice.id

    create_audit_log(
        db, ctx,
        action_type="invoice_created",
        target_type="invoice",
        target_id=invoice.id,
        new_value=f"{invoice_number}: ${total} ({len(lines)} lines, subtotal ${subtotal}, tax ${tax_amount})",
    )
    await db.commit()
    logger.info(f"🧾 创建发票 {invoice_number}: 订单 {order.order_number} 金额 ${total}")
    return await get_invoice(db, invoice.id)


async def void_invoice(db: AsyncSession, ctx: SessionContext, invoice_id: int, reason: Optional[str] = None) -> Invoice:
    """作废发票，并恢复其产品为未开票"""
    if not ctx.is_admin:
        raise PermissionDeniedError("只有管理员可以作废发票")
    invoice = await get_invoice(db, invoice_id)
    if invoice.status == InvoiceStatus.VOIDED.value:
        raise ValidationError("发票已作废")

    old_status = invoice.status
    invoice.status = InvoiceStatus.VOIDED.value
    invoice.voided_at = datetime.utcnow()
    invoice.voided_by = ctx.user_id
    invoice.void_reason = reason

    products = (await db.execute(
        select(OrderProduct).where(OrderProduct.invoice_id == invoice.id)
    )).scalars().all()
    for product in products:
        product.invoiced = False
        product.invoice_id = None

    create_audit_log(
        db, ctx,
        action_type="invoice_voided",
        target_type="invoice",
        target_id=invoice.id,
        old_value=old_status,
        new_value=f"voided: {reason}" if reason else "voided",
    )
    await db.commit()
    logger.warning(f"发票 {invoice.invoice_number} 已作废，恢复 {len(products)} 个产品为未开票")
    return await get_invoice(db, invoice.id)


async def record_pdf(db: AsyncSession, ctx: SessionContext, invoice_id: int, pdf_url: str) -> Invoice:
    """保存外部生成的 PDF 地址"""
    if not ctx.is_admin:
        raise PermissionDeniedError("只有管理员可以更新发票 PDF")
    invoice = await get_invoice(db, invoice_id)
    invoice.pdf_url = pdf_url
    await db.commit()
    return invoice


async def send_invoice(
    db: AsyncSession,
    ctx: SessionContext,
    email_client: EmailClient,
    invoice_id: int,
    recipient: str,
    cc: Optional[List[str]] = None,
    pdf_url: Optional[str] = None,
) -> dict:
    """发送发票邮件，成功后记录发送时间和收件人"""
    if not ctx.is_admin:
        raise PermissionDeniedError("只有管理员可以发送发票")
    email_client.ensure_configured()
    invoice = await get_invoice(db, invoice_id)
    if invoice.status == InvoiceStatus.VOIDED.value:
        raise ValidationError("已作废的发票不能发送")

    if pdf_url:
        invoice.pdf_url = pdf_url
    html = render_invoice_html(invoice, invoice.items, email_client.from_name)
    order_label = (invoice.order.order_name or invoice.order.order_number) if invoice.order else ""
    data = await email_client.send_async(
        [recipient], f"Invoice {invoice.invoice_number} - {order_label}", html, cc or None,
    )

    invoice.sent_at = datetime.utcnow()
    invoice.sent_to = recipient
    if invoice.status != InvoiceStatus.PAID.value:
        invoice.status = InvoiceStatus.SENT.value
    products = (await db.execute(
        select(OrderProduct).where(OrderProduct.invoice_id == invoice.id)
    )).scalars().all()
    for product in products:
        product.invoiced = True
    create_audit_log(
        db, ctx,
        action_type="invoice_sent",
        target_type="invoice",
        target_id=invoice.id,
        new_value=f"sent to {recipient}" + (f" (cc: {', '.join(cc)})" if cc else ""),
    )
    await db.commit()
    return {"success": True, "emailId": data.get("id"), "message": "Invoice sent successfully"}
