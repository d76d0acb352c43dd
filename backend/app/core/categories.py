"""
分类服务
分类 CRUD 辅助与文章数缓存重算

article_count 是已发布文章数的非规范化缓存，只由 recount_categories
（定时维护任务或管理员手动触发）刷新，不随文章写入同步更新。
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.content import slugify
from app.core.exceptions import Conflict, NotFound, ValidationError
from app.models.article import Article, ArticleStatus
from app.models.category import Category
from app.schemas.category import CategoryCreateRequest, CategoryUpdateRequest

logger = logging.getLogger(__name__)


async def get_category_or_404(db: AsyncSession, category_id: int) -> Category:
    category = await db.get(Category, category_id)
    if category is None:
        raise NotFound("分类不存在")
    return category


async def _check_parent(db: AsyncSession, category_id: int | None, parent_id: int | None) -> None:
    if parent_id is None:
        return
    if category_id is not None and parent_id == category_id:
        raise ValidationError(
            "分类不能以自身为父分类",
            details=[{"field": "parent_id", "message": "不能等于自身 ID"}],
        )
    if await db.get(Category, parent_id) is None:
        raise ValidationError(
            "父分类不存在",
            details=[{"field": "parent_id", "message": "父分类不存在"}],
        )


async def create_category(db: AsyncSession, request: CategoryCreateRequest) -> Category:
    """创建分类，slug 留空时由名称生成"""
    await _check_parent(db, None, request.parent_id)

    slug = slugify(request.slug or request.name)
    if not slug:
        raise ValidationError(
            "无法从名称生成 slug",
            details=[{"field": "slug", "message": "请显式提供 slug"}],
        )

    category = Category(**request.model_dump(exclude={"slug", "name"}), name=request.name.strip(), slug=slug)
    db.add(category)
    try:
        await db.flush()
    except IntegrityError as e:
        raise Conflict("分类名称或 slug 已存在") from e

    logger.info(f"创建分类: id={category.id}, slug={category.slug}")
    return category


async def update_category(
    db: AsyncSession, category: Category, request: CategoryUpdateRequest
) -> Category:
    """按白名单字段更新分类（slug 不变）"""
    update_data = request.model_dump(exclude_unset=True)
    if "parent_id" in update_data:
        await _check_parent(db, category.id, update_data["parent_id"])

    for field, value in update_data.items():
        if value is None and field not in ("description", "parent_id"):
            continue
        setattr(category, field, value)

    try:
        await db.flush()
    except IntegrityError as e:
        raise Conflict("分类名称已存在") from e

    logger.info(f"更新分类: id={category.id}")
    return category


async def list_active_categories(db: AsyncSession) -> list[Category]:
    """启用的分类，按 order、name 排序"""
    result = await db.execute(
        select(Category)
        .where(Category.is_active == True)  # noqa: E712
        .order_by(Category.order.asc(), Category.name.asc())
    )
    return list(result.scalars().all())


async def published_counts(db: AsyncSession) -> dict[str, int]:
    """按分类 slug 统计已发布文章数（实时值）"""
    result = await db.execute(
        select(Article.category, func.count(Article.id))
        .where(Article.status == ArticleStatus.PUBLISHED.value)
        .group_by(Article.category)
    )
    return {slug: count for slug, count in result.all()}


async def recount_categories(db: AsyncSession) -> dict:
    """
    重算所有分类的 article_count 缓存

    Returns:
        {"categories": 分类总数, "updated": 实际发生变化的分类数}
    """
    counts = await published_counts(db)
    result = await db.execute(select(Category))
    categories = result.scalars().all()

    updated = 0
    for category in categories:
        count = counts.get(category.slug, 0)
        if category.article_count != count:
            category.article_count = count
            updated += 1

    await db.flush()
    logger.info(f"分类文章数重算完成: 共 {len(categories)} 个分类，更新 {updated} 个")
    return {"categories": len(categories), "updated": updated}
