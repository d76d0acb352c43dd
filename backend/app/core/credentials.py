"""
凭据操作
注册、登录、修改密码、找回密码、重置密码

所有函数接收调用方的 AsyncSession，只 flush 不 commit，事务由调用方提交。
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    DuplicateEmail,
    InvalidCredentials,
    InvalidOrExpiredToken,
)
from app.core.security import (
    generate_reset_token,
    hash_password,
    token_service,
    verify_password,
)
from app.models.base import utcnow
from app.models.log import SystemLog
from app.models.user import Role, User

logger = logging.getLogger(__name__)

# 找回密码的统一提示，不暴露邮箱是否存在
RESET_REQUESTED_MESSAGE = "如果该邮箱已注册，重置密码链接已发送"

# 账号不存在时仍做一次哈希校验，使两条失败路径耗时接近
_dummy_hash: Optional[str] = None


@dataclass
class AuthResult:
    """认证结果：用户 + 会话令牌"""
    user: User
    token: str


async def _get_dummy_hash() -> str:
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = await hash_password("dummy-password")
    return _dummy_hash


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
    role: Role = Role.USER,
    is_active: bool = True,
    email_verified: bool = False,
) -> User:
    """
    创建用户（密码先哈希再入库）

    Raises:
        DuplicateEmail: 邮箱已存在（大小写不敏感）
    """
    email = normalize_email(email)
    if await get_user_by_email(db, email) is not None:
        raise DuplicateEmail()

    user = User(
        name=name.strip(),
        email=email,
        password_hash=await hash_password(password),
        role=Role(role).value,
        is_active=is_active,
        email_verified=email_verified,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as e:
        # 并发注册同一邮箱时由唯一约束兜底
        raise DuplicateEmail() from e
    return user


async def create_admin(db: AsyncSession, name: str, email: str, password: str) -> User:
    """创建管理员账号（用于初始化数据）"""
    return await create_user(
        db, name, email, password, role=Role.ADMIN, email_verified=True
    )


async def register(db: AsyncSession, name: str, email: str, password: str) -> AuthResult:
    """注册新用户并签发令牌"""
    user = await create_user(db, name, email, password)
    logger.info(f"新用户注册: id={user.id}")
    return AuthResult(user=user, token=token_service.issue(user.id))


async def login(db: AsyncSession, email: str, password: str) -> AuthResult:
    """
    邮箱密码登录

    账号不存在、已停用、密码错误都返回同一个 InvalidCredentials，避免账号枚举
    """
    user = await get_user_by_email(db, email)
    if user is None:
        await verify_password(password, await _get_dummy_hash())
        logger.warning("登录失败: 账号不存在")
        raise InvalidCredentials()

    password_ok = await verify_password(password, user.password_hash)
    if not password_ok or not user.is_active:
        logger.warning(f"登录失败: user_id={user.id}")
        raise InvalidCredentials()

    user.last_login = utcnow()
    await db.flush()
    logger.info(f"用户登录: id={user.id}")
    return AuthResult(user=user, token=token_service.issue(user.id))


async def change_password(
    db: AsyncSession, user: User, current_password: str, new_password: str
) -> None:
    """
    修改密码

    Raises:
        InvalidCredentials: 当前密码不正确（对外按 400 返回）
    """
    if not await verify_password(current_password, user.password_hash):
        raise InvalidCredentials("当前密码不正确", status_code=400)

    user.password_hash = await hash_password(new_password)
    await db.flush()
    logger.info(f"用户修改密码: id={user.id}")


async def request_password_reset(db: AsyncSession, email: str) -> str:
    """
    申请重置密码
    无论邮箱是否存在都返回同一提示；存在时生成 10 分钟有效的一次性令牌
    （邮件发送由外部服务负责，这里只持久化令牌）
    """
    user = await get_user_by_email(db, email)
    if user is None:
        return RESET_REQUESTED_MESSAGE

    user.password_reset_token = generate_reset_token()
    user.password_reset_expires = utcnow() + timedelta(
        minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES
    )
    await db.flush()
    logger.info(f"生成密码重置令牌: user_id={user.id}")
    return RESET_REQUESTED_MESSAGE


async def reset_password(db: AsyncSession, token: str, new_password: str) -> User:
    """
    使用重置令牌设置新密码，成功后清空令牌

    Raises:
        InvalidOrExpiredToken: 令牌不存在或已过期
    """
    result = await db.execute(
        select(User).where(
            User.password_reset_token == token,
            User.password_reset_expires > utcnow(),
        )
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise InvalidOrExpiredToken()

    user.password_hash = await hash_password(new_password)
    user.password_reset_token = None
    user.password_reset_expires = None
    db.add(SystemLog.record("password_reset", f"用户重置密码: {user.id}", actor_id=user.id))
    await db.flush()
    logger.info(f"用户重置密码: id={user.id}")
    return user


async def get_user_stats(db: AsyncSession) -> dict:
    """按角色统计用户数"""
    result = await db.execute(select(User.role, func.count(User.id)).group_by(User.role))
    stats = {"total": 0, "users": 0, "editors": 0, "admins": 0}
    keys = {Role.USER.value: "users", Role.EDITOR.value: "editors", Role.ADMIN.value: "admins"}
    for role, count in result.all():
        stats["total"] += count
        if role in keys:
            stats[keys[role]] = count
    return stats
