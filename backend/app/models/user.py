"""
用户模型
存储账号凭据、角色、个人资料与收藏文章
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, utcnow


class Role(str, enum.Enum):
    """
    用户角色，按权限从低到高排列：user < editor < admin
    所有角色判断统一走 has_at_least，不在各处比较字符串
    """

    USER = "user"
    EDITOR = "editor"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    def has_at_least(self, required: "Role") -> bool:
        """当前角色是否不低于 required"""
        return self.rank >= Role(required).rank


_ROLE_RANK = {Role.USER: 0, Role.EDITOR: 1, Role.ADMIN: 2}


def default_preferences() -> dict:
    """默认通知偏好"""
    return {
        "newsletter": True,
        "notifications": {
            "comments": True,
            "replies": True,
            "newsletter": True,
        },
    }


class User(Base):
    """用户表"""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # 显示名称
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # 邮箱（统一小写存储，保证大小写不敏感的唯一性）
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    # bcrypt 哈希后的密码，任何输出中都不包含
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    # 角色：user / editor / admin
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=Role.USER.value, index=True)
    avatar: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)
    # 是否启用（软停用）
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # 密码重置令牌及过期时间（一次性，成功重置后清空）
    password_reset_token: Mapped[Optional[str]] = mapped_column(
        String(128), nullable=True, default=None, index=True
    )
    password_reset_expires: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True, default=None
    )
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, default=None)
    # 通知偏好 JSON
    preferences: Mapped[dict] = mapped_column(JSON, nullable=False, default=default_preferences)
    # 社交链接 JSON，如 {"twitter": "..."}
    social_links: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    @property
    def role_enum(self) -> Role:
        return Role(self.role)

    def has_role(self, required: Role) -> bool:
        return self.role_enum.has_at_least(required)

    def can_edit_article(self) -> bool:
        return self.has_role(Role.EDITOR)

    def can_delete_article(self) -> bool:
        return self.has_role(Role.ADMIN)


class SavedArticle(Base):
    """用户收藏文章（集合语义，同一篇只收藏一次）"""
    __tablename__ = "saved_articles"
    __table_args__ = (UniqueConstraint("user_id", "article_id", name="uq_saved_article"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    article_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
