"""
邮件 / 打印用 HTML 模板

所有动态内容都经过 html.escape。
客户模板只使用 client_* 价格；工厂模板只使用工厂价格，任何情况下都不出现客户价格。
"""

from datetime import date, datetime
from decimal import Decimal
from html import escape
from typing import Iterable, Optional, Union

from orderhub.models.invoice import Invoice, InvoiceItem
from orderhub.models.order import Order


def money(value: Optional[Decimal]) -> str:
    return f"${Decimal(value or 0):,.2f}"


def us_date(value: Optional[Union[date, datetime]]) -> str:
    if value is None:
        return ""
    return f"{value.month}/{value.day}/{value.year}"


def _message_block(custom_message: Optional[str]) -> str:
    if not custom_message:
        return ""
    body = escape(custom_message).replace("\n", "<br>")
    return f'<div style="background: #f0f7ff; padding: 15px; border-radius: 5px; margin: 20px 0;">{body}</div>'


def _page(title: str, body: str, footer: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <style>
    body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
    .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
    .header {{ background: #667eea; color: white; padding: 30px; border-radius: 10px 10px 0 0; text-align: center; }}
    .content {{ background: white; padding: 30px; border: 1px solid #e0e0e0; border-radius: 0 0 10px 10px; }}
    td, th {{ padding: 10px; border-bottom: 1px solid #e0e0e0; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="header"><h1 style="margin: 0;">{escape(title)}</h1></div>
    <div class="content">
{body}
      <hr style="border: none; border-top: 1px solid #e0e0e0; margin: 30px 0;">
      <p style="color: #999; font-size: 12px; text-align: center;">{escape(footer)}</p>
    </div>
  </div>
</body>
</html>"""


def render_client_order_email(
    order: Order,
    company_name: str,
    custom_message: Optional[str] = None,
    show_pricing: bool = False,
) -> str:
    """客户订单更新邮件"""
    rows = []
    for product in order.active_products:
        price_cell = f"<td style=\"text-align: right;\">{money(product.client_total())}</td>" if show_pricing else ""
        rows.append(
            f"<tr><td>{escape(product.title)}</td>"
            f"<td style=\"text-align: center;\">{product.total_quantity}</td>{price_cell}</tr>"
        )

    price_head = '<th style="text-align: right;">Price</th>' if show_pricing else ""
    total_row = ""
    client_total = order.client_total()
    if show_pricing and client_total > 0:
        total_row = (
            f'<tr style="font-weight: bold;"><td>Estimated Total:</td><td></td>'
            f'<td style="text-align: right;">{money(client_total)}</td></tr>'
        )
    colspan_cell = "<td></td>" if show_pricing else ""

    client_name = order.client.name if order.client else ""
    body = f"""      <p>Dear {escape(client_name)},</p>
      {_message_block(custom_message)}
      <h2 style="color: #667eea;">Order Summary</h2>
      <p><strong>Order Number:</strong> {escape(order.order_number)}</p>
      <p><strong>Status:</strong> {escape((order.status or "").upper())}</p>
      <p><strong>Date:</strong> {us_date(order.created_at)}</p>
      <h3>Products</h3>
      <table style="width: 100%; border-collapse: collapse;">
        <thead><tr><th style="text-align: left;">Product</th><th>Quantity</th>{price_head}</tr></thead>
        <tbody>{"".join(rows)}</tbody>
        <tfoot>
          <tr style="font-weight: bold;"><td>Total Items:</td><td style="text-align: center;">{order.total_quantity}</td>{colspan_cell}</tr>
          {total_row}
        </tfoot>
      </table>
      <p style="margin-top: 30px; color: #666;">We'll keep you updated on the progress of your order.</p>"""
    return _page("Order Update", body, f"This is an automated message from {company_name}. Please do not reply to this email.")


def render_manufacturer_order_email(
    order: Order,
    company_name: str,
    custom_message: Optional[str] = None,
    show_pricing: bool = False,
) -> str:
    """工厂生产单邮件（只含工厂价格）"""
    sections = []
    for product in order.active_products:
        item_rows = "".join(
            f"<tr><td>{escape(item.variant_combo or '')}</td>"
            f"<td style=\"text-align: center;\">{item.quantity}</td>"
            f"<td>{escape(item.notes or '')}</td></tr>"
            for item in product.items
        )
        pricing = ""
        if show_pricing:
            pricing = (
                f"<p><strong>Unit Price:</strong> {money(product.product_price)} &nbsp; "
                f"<strong>Total:</strong> {money(product.manufacturer_total())}</p>"
            )
        notes = ""
        if product.manufacturer_notes:
            notes = f"<p><strong>Notes:</strong> {escape(product.manufacturer_notes)}</p>"
        sections.append(f"""      <div style="margin: 20px 0; padding: 15px; background-color: #f5f5f5; border-radius: 5px;">
        <h3 style="margin-top: 0;">{escape(product.title)} <span style="color: #666; font-size: 14px;">({escape(product.product_order_number or '')})</span></h3>
        <table style="width: 100%; border-collapse: collapse;">
          <thead><tr><th style="text-align: left;">Variant</th><th>Quantity</th><th style="text-align: left;">Notes</th></tr></thead>
          <tbody>{item_rows}</tbody>
        </table>
        <p><strong>Status:</strong> {escape(product.product_status or '')} &nbsp; <strong>Total Quantity:</strong> {product.total_quantity}</p>
        {pricing}{notes}
      </div>""")

    manufacturer_name = order.manufacturer.name if order.manufacturer else "Manufacturer"
    total_pricing = ""
    if show_pricing:
        total_pricing = f"<p><strong>Order Total:</strong> {money(order.manufacturer_total())}</p>"

    body = f"""      <p>Dear {escape(manufacturer_name)},</p>
      {_message_block(custom_message)}
      <p><strong>Order Number:</strong> {escape(order.order_number)}<br>
         <strong>Date:</strong> {us_date(order.created_at)}<br>
         <strong>Total Items:</strong> {order.total_quantity}</p>
{"".join(sections)}
      {total_pricing}"""
    return _page("Production Order", body, f"Sent by {company_name}.")


def render_invoice_html(invoice: Invoice, items: Iterable[InvoiceItem], company_name: str) -> str:
    """发票打印 / 邮件正文"""
    item_list = list(items)
    rows = "".join(
        f"<tr><td>{escape(item.description)}</td><td style=\"text-align: right;\">{money(item.amount)}</td></tr>"
        for item in item_list
    )
    subtotal = sum((item.amount or Decimal("0") for item in item_list), Decimal("0"))
    tax_row = ""
    if invoice.tax_amount and invoice.tax_amount > 0:
        tax_row = (
            f"<tr><td>Tax ({invoice.tax_rate}%):</td>"
            f"<td style=\"text-align: right;\">{money(invoice.tax_amount)}</td></tr>"
        )

    order = invoice.order
    client = invoice.client
    pay_link = ""
    if invoice.pay_link:
        pay_link = f'<p style="text-align: center;"><a href="{escape(invoice.pay_link, quote=True)}">Pay Invoice</a></p>'
    notes = f"<p><strong>Notes:</strong> {escape(invoice.notes)}</p>" if invoice.notes else ""
    terms = f"<p><strong>Terms:</strong> {escape(invoice.payment_terms)}</p>" if invoice.payment_terms else ""
    due = us_date(invoice.due_date) or "Upon receipt"

    body = f"""      <p><strong>Invoice #:</strong> {escape(invoice.invoice_number)}<br>
         <strong>Date:</strong> {us_date(invoice.created_at)}<br>
         <strong>Due Date:</strong> {due}</p>
      <p><strong>Bill To:</strong> {escape(client.name if client else '')}<br>
         {escape(client.email or '') if client else ''}</p>
      <p><strong>Order:</strong> {escape(order.order_name or order.order_number) if order else ''}</p>
      <table style="width: 100%; border-collapse: collapse;">
        <thead><tr><th style="text-align: left;">Description</th><th style="text-align: right;">Amount</th></tr></thead>
        <tbody>{rows}</tbody>
        <tfoot>
          <tr><td>Subtotal:</td><td style="text-align: right;">{money(subtotal)}</td></tr>
          {tax_row}
          <tr style="font-weight: bold;"><td>Total:</td><td style="text-align: right;">{money(invoice.amount)}</td></tr>
        </tfoot>
      </table>
      {notes}{terms}{pay_link}"""
    return _page("INVOICE", body, f"{company_name}. Thank you for your business.")
