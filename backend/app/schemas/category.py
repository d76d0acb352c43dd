"""
分类相关的 Pydantic 请求/响应模型
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.base import MAX_RECORD_ID

_HEX_COLOR = r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$"


class CategoryCreateRequest(BaseModel):
    """创建分类请求"""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=50)
    slug: Optional[str] = Field(None, max_length=60, description="留空则由名称生成")
    description: Optional[str] = Field(None, max_length=200)
    color: str = Field("#3B82F6", pattern=_HEX_COLOR)
    icon: str = Field("fas fa-newspaper", max_length=50)
    is_active: bool = True
    order: int = 0
    parent_id: Optional[int] = Field(None, ge=1, le=MAX_RECORD_ID)


class CategoryUpdateRequest(BaseModel):
    """更新分类请求（slug 不可修改）"""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    color: Optional[str] = Field(None, pattern=_HEX_COLOR)
    icon: Optional[str] = Field(None, max_length=50)
    is_active: Optional[bool] = None
    order: Optional[int] = None
    parent_id: Optional[int] = Field(None, ge=1, le=MAX_RECORD_ID)


class CategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    color: str
    icon: str
    is_active: bool
    order: int
    parent_id: Optional[int] = None
    article_count: int
    created_at: datetime

    model_config = {"from_attributes": True}


class RecountResult(BaseModel):
    """分类文章数重算结果"""
    categories: int
    updated: int


class CategoryListItem(CategoryResponse):
    """公开分类列表项：article_count 为缓存值，published_count 为实时值"""
    published_count: int = 0
