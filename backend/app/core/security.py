"""
安全工具
- 密码哈希：bcrypt（加盐、可配置计算成本），在线程池中执行避免阻塞事件循环
- 会话令牌：JWT（HS256），只携带用户 ID（sub）和过期时间（exp）
- 密码重置令牌：随机十六进制串
"""

import asyncio
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from app.config import settings
from app.core.exceptions import InvalidToken

logger = logging.getLogger(__name__)


# ==================== 密码哈希 ====================

def _hash_password_sync(password: str, rounds: int) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def _verify_password_sync(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # 存储的哈希格式损坏，按不匹配处理
        logger.warning("密码哈希格式无效")
        return False


async def hash_password(password: str) -> str:
    """对明文密码做 bcrypt 哈希"""
    return await asyncio.to_thread(_hash_password_sync, password, settings.BCRYPT_ROUNDS)


async def verify_password(password: str, password_hash: str) -> bool:
    """校验明文密码是否与哈希匹配"""
    return await asyncio.to_thread(_verify_password_sync, password, password_hash)


def generate_reset_token() -> str:
    """生成一次性密码重置令牌（32 字节随机数）"""
    return secrets.token_hex(32)


# ==================== 会话令牌 ====================

class TokenService:
    """
    会话令牌服务
    签发和校验带过期时间的 JWT；没有吊销列表，令牌在过期前一直有效
    """

    def __init__(self, secret: str, algorithm: str = "HS256", expire_days: int = 7):
        self.secret = secret
        self.algorithm = algorithm
        self.expire_delta = timedelta(days=expire_days)

    def issue(self, subject_id: int, expires_delta: Optional[timedelta] = None) -> str:
        """
        签发令牌

        Args:
            subject_id: 用户 ID
            expires_delta: 自定义有效期，默认使用配置值

        Returns:
            str: 编码后的 JWT
        """
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta if expires_delta is not None else self.expire_delta)
        payload = {"sub": str(subject_id), "iat": now, "exp": expire}
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> int:
        """
        校验令牌并返回用户 ID

        Raises:
            InvalidToken: 签名无效、格式错误或已过期
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise InvalidToken("令牌已过期") from e
        except JWTError as e:
            raise InvalidToken("令牌无效") from e

        subject = payload.get("sub")
        try:
            return int(subject)
        except (TypeError, ValueError) as e:
            raise InvalidToken("令牌缺少有效的用户标识") from e


# 全局令牌服务单例
token_service = TokenService(
    secret=settings.JWT_SECRET,
    algorithm=settings.JWT_ALGORITHM,
    expire_days=settings.JWT_EXPIRE_DAYS,
)
