"""
文章相关的 Pydantic 请求/响应模型
"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.config import settings
from app.models.article import ArticleStatus
from app.models.base import to_naive_utc
from app.schemas.comment import CommentThread
from app.schemas.common import Pagination

_SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def _normalize_category(v: str) -> str:
    v = v.strip().lower()
    if v not in settings.ARTICLE_CATEGORIES:
        raise ValueError(f"分类必须是以下之一: {', '.join(settings.ARTICLE_CATEGORIES)}")
    return v


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("不能为空")
    return v


def _normalize_tags(tags: list[str]) -> list[str]:
    """标签去空白、转小写、去重（保持顺序）"""
    result: list[str] = []
    for tag in tags:
        tag = tag.strip().lower()
        if tag and tag not in result:
            result.append(tag)
    return result


# ==================== 请求模型 ====================

class ArticleCreateRequest(BaseModel):
    """创建文章请求"""
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=200, description="文章标题")
    short_description: str = Field(..., min_length=1, max_length=500, description="简短描述")
    content: str = Field(..., min_length=1, description="文章正文")
    category: str = Field(..., description="分类 slug")
    tags: list[str] = Field(default_factory=list, description="标签")
    image_url: str = Field(default="", max_length=500)
    image_caption: Optional[str] = Field(default=None, max_length=300)
    status: ArticleStatus = ArticleStatus.DRAFT
    featured: bool = False
    breaking_news: bool = False
    allow_comments: bool = True
    publish_date: Optional[datetime] = None
    meta_description: Optional[str] = Field(default=None, max_length=160)
    reading_time: Optional[int] = Field(default=None, ge=1, description="阅读时长，留空自动计算")
    slug: Optional[str] = Field(default=None, max_length=300, description="URL 别名，留空自动生成")

    @field_validator("title", "short_description")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("category")
    @classmethod
    def check_category(cls, v: str) -> str:
        return _normalize_category(v)

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str]) -> list[str]:
        return _normalize_tags(v)

    @field_validator("publish_date")
    @classmethod
    def normalize_publish_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)

    @field_validator("slug")
    @classmethod
    def check_slug(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().lower()
        if not _SLUG_RE.match(v):
            raise ValueError("slug 只能包含小写字母、数字和连字符")
        return v


class ArticleUpdateRequest(BaseModel):
    """
    更新文章请求
    白名单字段；slug 生成后不可修改，因此不在此列
    """
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    short_description: Optional[str] = Field(None, min_length=1, max_length=500)
    content: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    tags: Optional[list[str]] = None
    image_url: Optional[str] = Field(None, max_length=500)
    image_caption: Optional[str] = Field(None, max_length=300)
    status: Optional[ArticleStatus] = None
    featured: Optional[bool] = None
    breaking_news: Optional[bool] = None
    allow_comments: Optional[bool] = None
    publish_date: Optional[datetime] = None
    meta_description: Optional[str] = Field(None, max_length=160)
    reading_time: Optional[int] = Field(None, ge=1)

    @field_validator("title", "short_description")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return _strip_required(v) if v is not None else v

    @field_validator("category")
    @classmethod
    def check_category(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_category(v) if v is not None else v

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return _normalize_tags(v) if v is not None else v

    @field_validator("publish_date")
    @classmethod
    def normalize_publish_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)


# ==================== 响应模型 ====================

class ArticleSummary(BaseModel):
    """文章列表项"""
    id: int
    title: str
    slug: str
    short_description: str
    category: str
    tags: list[str] = []
    image_url: str = ""
    status: str
    featured: bool
    breaking_news: bool
    views: int
    reading_time: int
    publish_date: datetime
    author_id: Optional[int] = None
    author_name: Optional[str] = None

    model_config = {"from_attributes": True}


class ArticleResponse(ArticleSummary):
    """文章详情"""
    content: str
    image_caption: Optional[str] = None
    allow_comments: bool
    meta_description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ArticleListResponse(BaseModel):
    """文章列表响应"""
    articles: list[ArticleSummary]
    pagination: Pagination


class ArticleDetail(BaseModel):
    """文章详情页：文章 + 相关文章 + 公开评论"""
    article: ArticleResponse
    related: list[ArticleSummary] = []
    comments: list[CommentThread] = []
