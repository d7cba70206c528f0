"""邮件 Schema"""
from typing import Optional
from pydantic import BaseModel, Field


class OrderEmailRequest(BaseModel):
    order_id: int = Field(..., alias="orderId")
    custom_message: Optional[str] = Field(None, alias="customMessage")
    show_pricing: bool = Field(False, alias="showPricing")
    subject: Optional[str] = None

    class Config:
        populate_by_name = True


class EmailSendResponse(BaseModel):
    success: bool
    messageId: Optional[str] = None
    recipient: str
