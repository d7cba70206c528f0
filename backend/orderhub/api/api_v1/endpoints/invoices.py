"""发票API"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.core.context import SessionContext
from orderhub.core.deps import get_db, get_session_context, require_admin
from orderhub.schemas.invoice import (
    InvoiceCreate, InvoiceListResponse, InvoicePdfRequest, InvoiceResponse,
    InvoiceSendRequest, InvoiceVoidRequest,
)
from orderhub.services import invoices as invoice_service
from orderhub.services.email import EmailClient, get_email_client
from orderhub.services.email_templates import render_invoice_html

router = APIRouter()


@router.post("/", response_model=InvoiceResponse)
async def create_invoice(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_admin),
    invoice_in: InvoiceCreate) -> Any:
    """创建发票"""
    return await invoice_service.create_invoice(db, ctx, invoice_in)


@router.get("/", response_model=InvoiceListResponse)
async def list_invoices(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    order_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100)) -> Any:
    """获取发票列表"""
    invoices, total = await invoice_service.list_invoices(
        db, ctx, order_id=order_id, status=status, page=page, limit=limit
    )
    return InvoiceListResponse(
        data=[InvoiceResponse.model_validate(i) for i in invoices],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    invoice_id: int) -> Any:
    return await invoice_service.get_invoice_for(db, ctx, invoice_id)


@router.post("/{invoice_id}/send")
async def send_invoice(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_admin),
    email_client: EmailClient = Depends(get_email_client),
    invoice_id: int,
    send_in: InvoiceSendRequest) -> Any:
    """邮件发送发票"""
    return await invoice_service.send_invoice(
        db, ctx, email_client, invoice_id,
        recipient=send_in.recipient_email,
        cc=send_in.cc_emails,
        pdf_url=send_in.pdf_url,
    )


@router.get("/{invoice_id}/download")
async def download_invoice(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    invoice_id: int) -> Any:
    """已有 PDF 时跳转，否则返回可打印的 HTML"""
    invoice = await invoice_service.get_invoice_for(db, ctx, invoice_id)
    if invoice.pdf_url:
        return RedirectResponse(invoice.pdf_url)
    return HTMLResponse(render_invoice_html(invoice, invoice.items, get_email_client().from_name))


@router.post("/{invoice_id}/pdf", response_model=InvoiceResponse)
async def record_invoice_pdf(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_admin),
    invoice_id: int,
    pdf_in: InvoicePdfRequest) -> Any:
    """保存发票 PDF 地址"""
    return await invoice_service.record_pdf(db, ctx, invoice_id, pdf_in.pdf_url)


@router.post("/{invoice_id}/void", response_model=InvoiceResponse)
async def void_invoice(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_admin),
    invoice_id: int,
    void_in: InvoiceVoidRequest) -> Any:
    """作废发票"""
    return await invoice_service.void_invoice(db, ctx, invoice_id, void_in.reason)
