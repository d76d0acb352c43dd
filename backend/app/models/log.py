"""
审计日志模型
记录关键操作（文章增删、用户删除、密码重置），和应用日志一起用于追查问题
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import DateTime, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, utcnow


class SystemLog(Base):
    """审计日志表"""
    __tablename__ = "system_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # article_create / article_delete / user_delete / password_reset
    event_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    level: Mapped[str] = mapped_column(String(20), nullable=False, default="info")
    message: Mapped[str] = mapped_column(Text, nullable=False)
    # 操作者用户 ID，不设外键，用户删除后记录仍保留
    actor_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=None)
    details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True, default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    @classmethod
    def record(
        cls,
        event_type: str,
        message: str,
        actor_id: Optional[int] = None,
        level: str = "info",
        **details: Any,
    ) -> "SystemLog":
        """构造一条审计记录（调用方负责 db.add）"""
        return cls(
            event_type=event_type,
            level=level,
            message=message,
            actor_id=actor_id,
            details=details or None,
        )
