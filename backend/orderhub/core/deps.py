"""依赖注入 - 数据库会话与当前用户"""
from typing import AsyncGenerator, Optional
from fastapi import Cookie, Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.core.config import settings
from orderhub.core.context import SessionContext
from orderhub.db.session import SessionLocal
from orderhub.models.user import User


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    获取数据库会话依赖
    """
    async with SessionLocal() as session:
        yield session


def _parse_user_id(raw: Optional[str]) -> Optional[int]:
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        return None


async def get_session_context(
    db: AsyncSession = Depends(get_db),
    x_user_id: Optional[str] = Header(None),
    session_cookie: Optional[str] = Cookie(None, alias=settings.SESSION_COOKIE_NAME),
) -> SessionContext:
    """
    根据 X-User-Id 请求头（或会话 Cookie）解析当前用户

    角色以数据库为准，不信任客户端传入的角色
    """
    user_id = _parse_user_id(x_user_id) or _parse_user_id(session_cookie)
    if user_id is None:
        raise HTTPException(status_code=401, detail="未登录")

    user = await db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="用户不存在或已停用")

    return SessionContext.from_user(user)


async def require_admin(
    ctx: SessionContext = Depends(get_session_context),
) -> SessionContext:
    """仅管理员 / 超级管理员"""
    if not ctx.is_admin:
        raise HTTPException(status_code=403, detail="需要管理员权限")
    return ctx


async def get_optional_session_context(
    db: AsyncSession = Depends(get_db),
    x_user_id: Optional[str] = Header(None),
    session_cookie: Optional[str] = Cookie(None, alias=settings.SESSION_COOKIE_NAME),
) -> Optional[SessionContext]:
    """与 get_session_context 相同，但未登录时返回 None"""
    user_id = _parse_user_id(x_user_id) or _parse_user_id(session_cookie)
    if user_id is None:
        return None
    user = await db.get(User, user_id)
    if not user or not user.is_active:
        return None
    return SessionContext.from_user(user)
