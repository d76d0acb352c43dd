"""
认证 / 授权依赖（Auth Gate）

两种传输方式：
- API：令牌来自 Cookie 或 `Authorization: Bearer <token>`，失败返回 401/403 结构化错误
- Web（浏览器页面）：令牌只来自 Cookie，解析失败不报错、清除无效 Cookie，
  权限不足时重定向到登录页

解析出的用户挂在 request.state.user 上，角色判断统一使用 Role.has_at_least。
"""

import logging
from typing import Annotated, Optional
from urllib.parse import quote

from fastapi import Depends, Path, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import Forbidden, InvalidToken, Unauthorized, WebRedirect
from app.core.security import token_service
from app.database.connection import get_db
from app.models.base import MAX_RECORD_ID
from app.models.user import Role, User

logger = logging.getLogger(__name__)

# 路径中的记录 ID，超出 INTEGER 范围的直接按参数错误处理
RecordId = Annotated[int, Path(ge=1, le=MAX_RECORD_ID)]


# ==================== 令牌解析 ====================

def extract_token(request: Request, allow_header: bool = True) -> Optional[str]:
    """从 Cookie（以及可选的 Authorization 头）中读取令牌"""
    token = request.cookies.get(settings.TOKEN_COOKIE_NAME)
    if not token and allow_header:
        authorization = request.headers.get("Authorization", "")
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            token = credentials.strip()
    return token or None


async def resolve_user(db: AsyncSession, token: str) -> Optional[User]:
    """
    校验令牌并加载用户
    令牌无效时抛出 InvalidToken；用户不存在或已停用时返回 None
    """
    user_id = token_service.verify(token)
    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user


def set_token_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.TOKEN_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.JWT_EXPIRE_DAYS * 24 * 60 * 60,
    )


def clear_token_cookie(response: Response) -> None:
    response.delete_cookie(settings.TOKEN_COOKIE_NAME)


# ==================== API 方式 ====================

async def authenticate(request: Request, db: AsyncSession = Depends(get_db)) -> User:
    """必须登录：令牌缺失、无效或用户已停用时返回 401"""
    token = extract_token(request)
    if not token:
        raise Unauthorized("未提供访问令牌")

    try:
        user = await resolve_user(db, token)
    except InvalidToken as e:
        logger.warning(f"令牌校验失败: {e}")
        raise Unauthorized("令牌无效") from e

    if user is None:
        raise Unauthorized("令牌无效或用户不存在")

    request.state.user = user
    return user


async def optional_auth(
    request: Request, db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """可选登录：有有效令牌就挂上用户，否则匿名继续，永不失败"""
    request.state.user = None
    token = extract_token(request)
    if not token:
        return None

    try:
        user = await resolve_user(db, token)
    except InvalidToken:
        return None

    request.state.user = user
    return user


def current_identity(request: Request) -> User:
    """读取已挂载的用户，没有则 401"""
    user = getattr(request.state, "user", None)
    if user is None:
        raise Unauthorized("需要登录")
    return user


def require_role(role: Role):
    """
    角色门禁依赖工厂
    需先经过 authenticate 挂载用户；角色不低于 role 才放行
    """

    async def dependency(request: Request) -> User:
        user = current_identity(request)
        if not user.has_role(role):
            logger.warning(f"权限不足: user_id={user.id}, role={user.role}, required={role.value}")
            raise Forbidden(f"需要 {role.value} 权限")
        return user

    return dependency


require_admin = require_role(Role.ADMIN)
require_editor = require_role(Role.EDITOR)


def ensure_ownership_or_admin(user: Optional[User], owner_id: Optional[int]) -> None:
    """
    资源归属校验：管理员无条件放行，其余用户只能操作自己的资源

    Raises:
        Unauthorized: 未登录
        Forbidden: 不是资源所有者
    """
    if user is None:
        raise Unauthorized("需要登录")
    if user.has_role(Role.ADMIN):
        return
    if owner_id is not None and owner_id == user.id:
        return
    raise Forbidden("只能操作自己的资源")


# ==================== Web 方式 ====================

async def authenticate_web(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """
    浏览器页面认证：只读 Cookie，从不失败
    令牌无效时清除 Cookie，用户保持未登录
    """
    request.state.user = None
    token = extract_token(request, allow_header=False)
    if not token:
        return None

    try:
        user = await resolve_user(db, token)
    except InvalidToken:
        request.state.clear_token_cookie = True
        clear_token_cookie(response)
        return None

    request.state.user = user
    return user


def _redirect_url(path: str, error: str) -> str:
    return f"{path}?error={quote(error)}"


async def require_auth_web(user: Optional[User] = Depends(authenticate_web)) -> User:
    """页面需要登录，未登录重定向到 /login"""
    if user is None:
        raise WebRedirect(_redirect_url("/login", "Please login to access this page"))
    return user


async def require_admin_web(user: Optional[User] = Depends(authenticate_web)) -> User:
    """页面需要管理员，未登录重定向到后台登录页，非管理员重定向到首页"""
    if user is None:
        raise WebRedirect(_redirect_url("/admin/login", "Please login to access admin panel"))
    if not user.has_role(Role.ADMIN):
        raise WebRedirect(_redirect_url("/", "Access denied. Admin privileges required."))
    return user
