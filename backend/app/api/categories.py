"""
分类相关 API 路由（公开读取）
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.categories import list_active_categories, published_counts
from app.database.connection import get_db
from app.schemas.category import CategoryListItem, CategoryResponse
from app.schemas.common import Envelope

router = APIRouter(prefix="/categories", tags=["分类"])


@router.get("", response_model=Envelope[list[CategoryListItem]], summary="分类列表")
async def list_categories(db: AsyncSession = Depends(get_db)):
    """启用的分类（按 order、name 排序），附带实时已发布文章数"""
    categories = await list_active_categories(db)
    counts = await published_counts(db)
    return Envelope(
        data=[
            CategoryListItem(
                **CategoryResponse.model_validate(c).model_dump(),
                published_count=counts.get(c.slug, 0),
            )
            for c in categories
        ]
    )
