"""
样品定价

客户样品费 = 工厂样品费 × (1 + 利润率/100)
利润率优先级：客户专属 → 系统配置 default_sample_margin_percentage → 配置兜底值
"""

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Sequence, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.core.config import settings
from orderhub.core.enums import UserRole
from orderhub.db.migrations import DEFAULT_SAMPLE_MARGIN_KEY
from orderhub.models.client import Client
from orderhub.models.system_config import SystemConfig

logger = logging.getLogger(__name__)

Number = Union[Decimal, float, int, str]


def to_decimal(value: Optional[Number]) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def pick_margin(
    client_margin: Optional[Number],
    system_margin: Optional[Number],
    fallback: Number = settings.DEFAULT_SAMPLE_MARGIN,
) -> Decimal:
    """按优先级取第一个非空的利润率（0 也是有效值）"""
    for candidate in (client_margin, system_margin):
        margin = to_decimal(candidate)
        if margin is not None:
            return margin
    return Decimal(str(fallback))


async def get_system_sample_margin(db: AsyncSession) -> Optional[Decimal]:
    result = await db.execute(
        select(SystemConfig.value).where(SystemConfig.key == DEFAULT_SAMPLE_MARGIN_KEY)
    )
    return to_decimal(result.scalar_one_or_none())


async def set_system_sample_margin(db: AsyncSession, margin: Number) -> Decimal:
    """写入系统默认样品利润率（不提交）"""
    value = Decimal(str(margin))
    config = await db.get(SystemConfig, DEFAULT_SAMPLE_MARGIN_KEY)
    if config is None:
        config = SystemConfig(key=DEFAULT_SAMPLE_MARGIN_KEY)
        db.add(config)
    config.value = str(value)
    return value


async def resolve_sample_margin(db: AsyncSession, client_id: Optional[int]) -> Decimal:
    """解析订单所属客户的样品利润率"""
    client_margin = None
    if client_id is not None:
        client = await db.get(Client, client_id)
        if client is not None:
            client_margin = client.custom_sample_margin_percentage

    system_margin = None
    if client_margin is None:
        system_margin = await get_system_sample_margin(db)

    margin = pick_margin(client_margin, system_margin)
    logger.debug(f"样品利润率: 客户={client_margin} 系统={system_margin} → {margin}%")
    return margin


def compute_client_sample_fee(fee: Number, margin: Number) -> Decimal:
    """
    客户样品费 = 工厂样品费 × (1 + 利润率/100)

    结果四舍五入到分（列类型为 DECIMAL(12,2)），因此只在两位小数精度上与公式相等。
    """
    fee_dec = Decimal(str(fee))
    margin_dec = Decimal(str(margin))
    return (fee_dec * (Decimal("1") + margin_dec / Decimal("100"))).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def has_sample_data(
    fee: Optional[Number] = None,
    eta: Optional[str] = None,
    notes: Optional[str] = None,
    file_urls: Optional[Sequence[str]] = None,
) -> bool:
    """有费用(>0)、预计日期、备注或附件之一即视为有样品数据"""
    fee_dec = to_decimal(fee)
    if fee_dec is not None and fee_dec > 0:
        return True
    if eta and eta.strip():
        return True
    if notes and notes.strip():
        return True
    return bool(file_urls)


def format_note(note: str, role: Union[UserRole, str], when: Optional[datetime] = None) -> str:
    when = when or datetime.now()
    date_str = f"{when.month}/{when.day}/{when.year}"
    return f"[{date_str} - {UserRole(role).display_name}] {note.strip()}"


def append_note(
    existing: Optional[str],
    note: Optional[str],
    role: Union[UserRole, str],
    when: Optional[datetime] = None,
) -> Optional[str]:
    """在已有备注后追加一段，空备注不追加"""
    if not note or not note.strip():
        return existing
    block = format_note(note, role, when)
    if existing:
        return f"{existing}\n\n{block}"
    return block
