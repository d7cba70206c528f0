"""
邮件发送服务（Resend REST API）

requests 是同步库，异步接口中通过 run_in_threadpool 调用，避免阻塞事件循环。
未配置 RESEND_API_KEY 时抛出 NotConfiguredError，而不是静默跳过。
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.core.config import settings
from orderhub.core.errors import EmailDeliveryError, NotConfiguredError, ValidationError
from orderhub.services.email_templates import render_client_order_email, render_manufacturer_order_email
from orderhub.services.orders import get_order_detail

logger = logging.getLogger(__name__)


class EmailClient:
    """Resend 客户端"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[int] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.from_email = from_email or settings.RESEND_FROM_EMAIL
        self.from_name = from_name or settings.RESEND_FROM_NAME
        self.api_url = api_url or settings.RESEND_API_URL
        self.timeout = timeout or settings.EMAIL_TIMEOUT_SECONDS

    def new_session(self) -> requests.Session:
        """每次发送新建会话，send 会在线程池的多个线程中并发执行"""
        session = requests.Session()
        session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        })
        return session

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def ensure_configured(self) -> None:
        if not self.configured:
            raise NotConfiguredError(
                "Email service not configured: set RESEND_API_KEY (and RESEND_FROM_EMAIL) in the environment"
            )

    def send(
        self,
        to: List[str],
        subject: str,
        html: str,
        cc: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """
        发送一封邮件

        Returns:
            Resend 返回的 JSON（包含 id）
        """
        self.ensure_configured()
        payload: Dict[str, Any] = {
            "from": f"{self.from_name} <{self.from_email}>",
            "to": to,
            "subject": subject,
            "html": html,
        }
        if cc:
            payload["cc"] = cc

        try:
            with self.new_session() as session:
                response = session.post(self.api_url, json=payload, timeout=self.timeout)
                response.raise_for_status()
                data = response.json() if response.content else {}
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"❌ 邮件发送失败: to={to} subject={subject!r}: {e}")
            raise EmailDeliveryError(f"Failed to send email: {e}")

        logger.info(f"📧 邮件已发送: to={to} id={data.get('id')}")
        return data

    async def send_async(
        self,
        to: List[str],
        subject: str,
        html: str,
        cc: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        return await run_in_threadpool(self.send, to, subject, html, cc)


_client: Optional[EmailClient] = None


def get_email_client() -> EmailClient:
    """FastAPI 依赖：共享的邮件客户端"""
    global _client
    if _client is None:
        _client = EmailClient()
    return _client


async def send_order_email_to_client(
    db: AsyncSession,
    email_client: EmailClient,
    order_id: int,
    custom_message: Optional[str] = None,
    show_pricing: bool = False,
    subject: Optional[str] = None,
) -> Dict[str, Any]:
    """给客户发送订单更新邮件（只含客户价格）"""
    email_client.ensure_configured()
    order = await get_order_detail(db, order_id)

    recipient = order.client.email if order.client else None
    if not recipient:
        raise ValidationError("Client has no email address")

    html = render_client_order_email(order, email_client.from_name, custom_message, show_pricing)
    data = await email_client.send_async(
        [recipient], subject or f"Update on Order #{order.order_number}", html,
    )
    return {"success": True, "messageId": data.get("id"), "recipient": recipient}


async def send_order_email_to_manufacturer(
    db: AsyncSession,
    email_client: EmailClient,
    order_id: int,
    custom_message: Optional[str] = None,
    show_pricing: bool = False,
    subject: Optional[str] = None,
) -> Dict[str, Any]:
    """给工厂发送生产单邮件（只含工厂价格）"""
    email_client.ensure_configured()
    order = await get_order_detail(db, order_id)

    recipient = order.manufacturer.email if order.manufacturer else None
    if not recipient:
        raise ValidationError("Manufacturer has no email address")

    html = render_manufacturer_order_email(order, email_client.from_name, custom_message, show_pricing)
    data = await email_client.send_async(
        [recipient], subject or f"New Order: {order.order_number}", html,
    )
    return {"success": True, "messageId": data.get("id"), "recipient": recipient}
