# models包初始化文件

from orderhub.models.user import User
from orderhub.models.client import Client, Manufacturer
from orderhub.models.product import Product
from orderhub.models.order import Order
from orderhub.models.order_product import OrderProduct
from orderhub.models.order_item import OrderItem
from orderhub.models.order_media import OrderMedia
from orderhub.models.invoice import Invoice, InvoiceItem, InvoiceSequence
from orderhub.models.audit_log import AuditLog
from orderhub.models.notification import Notification
from orderhub.models.system_config import SystemConfig

__all__ = [
    "User",
    "Client",
    "Manufacturer",
    "Product",
    "Order",
    "OrderProduct",
    "OrderItem",
    "OrderMedia",
    "Invoice",
    "InvoiceItem",
    "InvoiceSequence",
    "AuditLog",
    "Notification",
    "SystemConfig",
]
