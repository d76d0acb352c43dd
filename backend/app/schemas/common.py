"""
通用响应模型
所有 JSON 接口统一使用 {"success": true, "message"?: ..., "data": ...} 信封
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """成功响应信封"""
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class MessageResponse(BaseModel):
    """仅包含提示信息的响应"""
    success: bool = True
    message: str


class Pagination(BaseModel):
    """分页信息"""
    current_page: int
    total_pages: int
    total: int
    limit: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = (total + limit - 1) // limit if limit > 0 else 0
        return cls(current_page=page, total_pages=total_pages, total=total, limit=limit)


class Page(BaseModel, Generic[T]):
    """分页列表"""
    items: list[T]
    pagination: Pagination
