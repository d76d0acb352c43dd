"""
文章模型
存储新闻文章及其发布状态、浏览计数
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, utcnow


class ArticleStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Article(Base):
    """文章表"""
    __tablename__ = "articles"
    __table_args__ = (
        Index("ix_articles_category_status_date", "category", "status", "publish_date"),
        Index("ix_articles_featured_status", "featured", "status"),
        Index("ix_articles_breaking_status", "breaking_news", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # 文章标题
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    # 简短描述
    short_description: Mapped[str] = mapped_column(String(500), nullable=False)
    # 正文（富文本 HTML）
    content: Mapped[str] = mapped_column(Text, nullable=False)
    # 作者（作者被删除后置空）
    author_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    # 分类 slug，取值见 settings.ARTICLE_CATEGORIES
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    # 标签列表 JSON（小写），如 ["politics", "economy"]
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    image_url: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    image_caption: Mapped[Optional[str]] = mapped_column(String(300), nullable=True, default=None)
    # 状态：draft / published / archived
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ArticleStatus.DRAFT.value, index=True
    )
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    breaking_news: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    allow_comments: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # 浏览次数，只通过原子自增修改
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # 阅读时长（分钟），首次保存时计算
    reading_time: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    publish_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, index=True)
    meta_description: Mapped[Optional[str]] = mapped_column(String(160), nullable=True, default=None)
    # URL 别名，一经生成不再修改
    slug: Mapped[str] = mapped_column(String(300), nullable=False, unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    # 关系（用于联查作者名）
    author = relationship("User", lazy="selectin")

    @property
    def author_name(self) -> Optional[str]:
        return self.author.name if self.author is not None else None

    @property
    def url(self) -> str:
        return f"/article/{self.id}"
