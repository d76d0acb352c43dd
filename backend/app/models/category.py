"""
分类模型
文章通过 slug 引用分类（非硬外键，悬空的分类 slug 允许存在）
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, utcnow


class Category(Base):
    """分类表"""
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # 分类名（唯一）
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    # URL 别名（唯一，由名称生成）
    slug: Mapped[str] = mapped_column(String(60), nullable=False, unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, default=None)
    # 十六进制颜色
    color: Mapped[str] = mapped_column(String(7), nullable=False, default="#3B82F6")
    icon: Mapped[str] = mapped_column(String(50), nullable=False, default="fas fa-newspaper")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    # 排序权重
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # 父分类（自引用，用于嵌套）
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, default=None
    )
    # 已发布文章数缓存，由维护任务重算，与文章写入不同步
    article_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )
