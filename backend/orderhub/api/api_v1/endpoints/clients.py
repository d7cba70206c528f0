"""客户API - 客户专属样品利润率"""

from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.core.context import SessionContext
from orderhub.core.deps import get_db, require_admin
from orderhub.core.errors import NotFoundError
from orderhub.models.client import Client
from orderhub.schemas.system import ClientSampleMarginResponse, ClientSampleMarginUpdate
from orderhub.services.audit import create_audit_log
from orderhub.services.sample_pricing import resolve_sample_margin

router = APIRouter()


@router.put("/{client_id}/sample-margin", response_model=ClientSampleMarginResponse)
async def update_client_sample_margin(
    *,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_admin),
    client_id: int,
    margin_in: ClientSampleMarginUpdate) -> Any:
    """设置或清除客户专属样品利润率"""
    client = await db.get(Client, client_id)
    if not client:
        raise NotFoundError("Client not found")

    old = client.custom_sample_margin_percentage
    client.custom_sample_margin_percentage = margin_in.margin_percentage
    create_audit_log(
        db, ctx,
        action_type="client_sample_margin_updated",
        target_type="client",
        target_id=client.id,
        old_value=str(old) if old is not None else None,
        new_value=str(margin_in.margin_percentage) if margin_in.margin_percentage is not None else None,
    )
    await db.commit()

    return ClientSampleMarginResponse(
        client_id=client.id,
        custom_sample_margin_percentage=client.custom_sample_margin_percentage,
        effective_margin_percentage=await resolve_sample_margin(db, client.id),
    )
