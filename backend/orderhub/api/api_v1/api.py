"""V1 API 路由聚合"""
from fastapi import APIRouter

from orderhub.api.api_v1.endpoints import (
    orders, products, invoices, email, audit_logs, notifications, cleanup, system, clients
)

api_router = APIRouter()

# 订单与路由
api_router.include_router(orders.router, prefix="/orders", tags=["订单管理"])
api_router.include_router(products.router, prefix="/products", tags=["订单产品"])

# 开票与邮件
api_router.include_router(invoices.router, prefix="/invoices", tags=["发票管理"])
api_router.include_router(email.router, prefix="/email", tags=["邮件"])

# 系统
api_router.include_router(audit_logs.router, prefix="/audit-logs", tags=["操作日志"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["站内通知"])
api_router.include_router(cleanup.router, prefix="/cleanup", tags=["草稿清理"])
api_router.include_router(system.router, prefix="/system", tags=["系统管理"])
api_router.include_router(clients.router, prefix="/clients", tags=["客户管理"])
