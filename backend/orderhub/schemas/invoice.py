"""发票 Schema"""
from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal


class CustomInvoiceItem(BaseModel):
    description: str
    quantity: int = Field(1, ge=1)
    price: Decimal = Field(Decimal("0"), ge=0)


class InvoiceCreate(BaseModel):
    order_id: int
    product_ids: List[int] = Field(default_factory=list, description="要开票的订单产品")
    custom_items: List[CustomInvoiceItem] = Field(default_factory=list)
    apply_tax: bool = False
    tax_rate: Decimal = Field(Decimal("0"), ge=0, le=100)
    due_date: Optional[date] = Field(None, description="为空时按默认天数计算")
    notes: Optional[str] = None
    payment_terms: Optional[str] = None
    pay_link: Optional[str] = None


class InvoiceItemResponse(BaseModel):
    id: int
    order_product_id: Optional[int] = None
    description: str
    amount: Decimal

    class Config:
        from_attributes = True


class InvoiceResponse(BaseModel):
    id: int
    invoice_number: str
    order_id: int
    client_id: int
    amount: Decimal
    paid_amount: Optional[Decimal] = None
    tax_rate: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    status: str
    due_date: Optional[date] = None
    notes: Optional[str] = None
    payment_terms: Optional[str] = None
    pay_link: Optional[str] = None
    pdf_url: Optional[str] = None
    sent_at: Optional[datetime] = None
    sent_to: Optional[str] = None
    voided_at: Optional[datetime] = None
    void_reason: Optional[str] = None
    created_at: datetime
    items: List[InvoiceItemResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class InvoiceListResponse(BaseModel):
    data: List[InvoiceResponse]
    total: int
    page: int
    limit: int


class InvoiceSendRequest(BaseModel):
    recipient_email: str = Field(..., alias="recipientEmail")
    cc_emails: List[str] = Field(default_factory=list, alias="ccEmails")
    pdf_url: Optional[str] = Field(None, alias="pdfUrl")

    class Config:
        populate_by_name = True


class InvoicePdfRequest(BaseModel):
    pdf_url: str = Field(..., alias="pdfUrl")

    class Config:
        populate_by_name = True


class InvoiceVoidRequest(BaseModel):
    reason: Optional[str] = None


class InvoiceableProduct(BaseModel):
    id: int
    product_order_number: Optional[str] = None
    title: str
    product_status: str
    routed_to: str
    invoiced: bool
    total_quantity: int
    sample_fee: Optional[Decimal] = None
    client_product_price: Optional[Decimal] = None
    selected_shipping_method: Optional[str] = None
    client_total: Decimal
