"""
SQLAlchemy ORM 基类
所有模型都继承自此 Base
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import DeclarativeBase

# SQLite INTEGER 主键上限（有符号 64 位）
MAX_RECORD_ID = 2**63 - 1


def utcnow() -> datetime:
    """返回当前 UTC 时间（兼容 Python 3.12+ 弃用 datetime.utcnow）"""
    return datetime.now(timezone.utc)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    统一成不带时区的 UTC 时间
    数据库 DateTime 列不保存时区，带偏移的时间必须先换算到 UTC，
    不带时区的时间视为已经是 UTC
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """声明式基类"""
    pass
