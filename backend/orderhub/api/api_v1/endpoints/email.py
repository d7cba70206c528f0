"""邮件API - 给客户 / 工厂发送订单邮件"""

from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.core.context import SessionContext
from orderhub.core.deps import get_db, require_admin
from orderhub.schemas.email import EmailSendResponse, OrderEmailRequest
from orderhub.services.email import (
    EmailClient, get_email_client, send_order_email_to_client, send_order_email_to_manufacturer,
)

router = APIRouter()


@router.post("/send-to-client", response_model=EmailSendResponse)
async def send_to_client(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_admin),
    email_client: EmailClient = Depends(get_email_client),
    email_in: OrderEmailRequest) -> Any:
    return await send_order_email_to_client(
        db, email_client, email_in.order_id,
        custom_message=email_in.custom_message,
        show_pricing=email_in.show_pricing,
        subject=email_in.subject,
    )


@router.post("/send-to-manufacturer", response_model=EmailSendResponse)
async def send_to_manufacturer(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_admin),
    email_client: EmailClient = Depends(get_email_client),
    email_in: OrderEmailRequest) -> Any:
    return await send_order_email_to_manufacturer(
        db, email_client, email_in.order_id,
        custom_message=email_in.custom_message,
        show_pricing=email_in.show_pricing,
        subject=email_in.subject,
    )
