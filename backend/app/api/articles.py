"""
文章相关 API 路由（公开读取）
列表 / 推荐 / 突发 / 热门 / 分类 / 标签 / 检索 / 详情 / 评论
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.comments import serialize_threads
from app.api.deps import RecordId, optional_auth
from app.config import settings
from app.core.comments import article_threads
from app.core.content import increment_views, load_article, load_article_by_key
from app.core.exceptions import NotFound
from app.core.listing import (
    ArticleFilter,
    PageResult,
    SortOrder,
    list_articles,
    related_articles,
    resolve_statuses,
)
from app.database.connection import get_db
from app.models.article import Article, ArticleStatus
from app.models.user import Role, User
from app.schemas.article import (
    ArticleDetail,
    ArticleListResponse,
    ArticleResponse,
    ArticleSummary,
)
from app.schemas.comment import CommentThread
from app.schemas.common import Envelope, Pagination

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/articles", tags=["文章"])


def listing_payload(result: PageResult) -> ArticleListResponse:
    return ArticleListResponse(
        articles=[ArticleSummary.model_validate(a) for a in result.items],
        pagination=Pagination.build(result.page, result.limit, result.total),
    )


def _page_params(
    page: int = Query(1, ge=1, description="页码"),
    limit: int = Query(
        settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="每页数量"
    ),
) -> tuple[int, int]:
    return page, limit


def can_view(article: Article, viewer: Optional[User]) -> bool:
    """已发布文章所有人可见，其余状态只对编辑及以上可见"""
    if article.status == ArticleStatus.PUBLISHED.value:
        return True
    return viewer is not None and viewer.has_role(Role.EDITOR)


@router.get("", response_model=Envelope[ArticleListResponse], summary="文章列表")
async def list_all(
    category: Optional[str] = Query(None, description="分类 slug"),
    tag: Optional[str] = Query(None, description="标签"),
    q: Optional[str] = Query(None, max_length=200, description="检索关键词"),
    featured: Optional[bool] = Query(None, description="是否推荐"),
    breaking: Optional[bool] = Query(None, description="是否突发新闻"),
    trending: bool = Query(False, description="只看热门窗口内的文章"),
    status: Optional[ArticleStatus] = Query(None, description="状态（编辑及以上可用）"),
    date_from: Optional[datetime] = Query(None, description="发布时间起"),
    date_to: Optional[datetime] = Query(None, description="发布时间止"),
    sort: Optional[SortOrder] = Query(None, description="排序方式"),
    paging: tuple[int, int] = Depends(_page_params),
    viewer: Optional[User] = Depends(optional_auth),
    db: AsyncSession = Depends(get_db),
):
    """
    组合过滤的文章列表，所有条件 AND
    匿名用户只能看到已发布文章
    """
    page, limit = paging
    filters = ArticleFilter(
        statuses=resolve_statuses(viewer, status.value if status else None),
        category=category,
        tag=tag,
        search=q,
        featured=featured,
        breaking_news=breaking,
        trending_days=settings.TRENDING_DAYS if trending else None,
        date_from=date_from,
        date_to=date_to,
    )
    result = await list_articles(db, filters, page=page, limit=limit, sort=sort)
    return Envelope(data=listing_payload(result))


@router.get("/latest", response_model=Envelope[ArticleListResponse], summary="最新文章")
async def latest(
    paging: tuple[int, int] = Depends(_page_params),
    db: AsyncSession = Depends(get_db),
):
    page, limit = paging
    result = await list_articles(db, ArticleFilter(), page=page, limit=limit, sort=SortOrder.LATEST)
    return Envelope(data=listing_payload(result))


@router.get("/featured", response_model=Envelope[ArticleListResponse], summary="推荐文章")
async def featured(
    paging: tuple[int, int] = Depends(_page_params),
    db: AsyncSession = Depends(get_db),
):
    page, limit = paging
    result = await list_articles(db, ArticleFilter(featured=True), page=page, limit=limit)
    return Envelope(data=listing_payload(result))


@router.get("/breaking", response_model=Envelope[ArticleListResponse], summary="突发新闻")
async def breaking(
    paging: tuple[int, int] = Depends(_page_params),
    db: AsyncSession = Depends(get_db),
):
    page, limit = paging
    result = await list_articles(db, ArticleFilter(breaking_news=True), page=page, limit=limit)
    return Envelope(data=listing_payload(result))


@router.get("/trending", response_model=Envelope[ArticleListResponse], summary="热门文章")
async def trending(
    days: int = Query(settings.TRENDING_DAYS, ge=1, le=365, description="热门窗口（天）"),
    paging: tuple[int, int] = Depends(_page_params),
    db: AsyncSession = Depends(get_db),
):
    """窗口期内发布的文章，按浏览量降序"""
    page, limit = paging
    result = await list_articles(db, ArticleFilter(trending_days=days), page=page, limit=limit)
    return Envelope(data=listing_payload(result))


@router.get("/search", response_model=Envelope[ArticleListResponse], summary="检索文章")
async def search(
    q: str = Query(..., min_length=1, max_length=200, description="检索关键词"),
    paging: tuple[int, int] = Depends(_page_params),
    db: AsyncSession = Depends(get_db),
):
    """按相关度（标题 > 标签 > 摘要 > 正文）排序，得分相同按发布时间"""
    page, limit = paging
    result = await list_articles(db, ArticleFilter(search=q), page=page, limit=limit)
    return Envelope(data=listing_payload(result))


@router.get(
    "/category/{category}",
    response_model=Envelope[ArticleListResponse],
    summary="分类文章",
)
async def by_category(
    category: str,
    paging: tuple[int, int] = Depends(_page_params),
    db: AsyncSession = Depends(get_db),
):
    page, limit = paging
    category = category.lower()
    if category not in settings.ARTICLE_CATEGORIES:
        raise NotFound("分类不存在")
    result = await list_articles(db, ArticleFilter(category=category), page=page, limit=limit)
    return Envelope(data=listing_payload(result))


@router.get("/tag/{tag}", response_model=Envelope[ArticleListResponse], summary="标签文章")
async def by_tag(
    tag: str,
    paging: tuple[int, int] = Depends(_page_params),
    db: AsyncSession = Depends(get_db),
):
    page, limit = paging
    result = await list_articles(db, ArticleFilter(tag=tag), page=page, limit=limit)
    return Envelope(data=listing_payload(result))


async def read_article(
    db: AsyncSession, key: str, viewer: Optional[User]
) -> tuple[Article, list[Article], list[CommentThread]]:
    """
    读取文章详情：浏览数 +1，附带相关文章和公开评论
    非已发布文章对无权限的调用方按不存在处理
    """
    article = await load_article_by_key(db, key)
    if article is None or not can_view(article, viewer):
        raise NotFound("文章不存在")

    await increment_views(db, article.id)
    await db.commit()

    article = await load_article(db, article.id)
    related = await related_articles(db, article)
    threads = serialize_threads(await article_threads(db, article.id))
    return article, related, threads


@router.get("/{key}", response_model=Envelope[ArticleDetail], summary="文章详情")
async def get_article(
    key: str,
    viewer: Optional[User] = Depends(optional_auth),
    db: AsyncSession = Depends(get_db),
):
    """按 ID 或 slug 获取文章详情"""
    article, related, threads = await read_article(db, key, viewer)
    return Envelope(
        data=ArticleDetail(
            article=ArticleResponse.model_validate(article),
            related=[ArticleSummary.model_validate(a) for a in related],
            comments=threads,
        )
    )


@router.get(
    "/{article_id}/comments",
    response_model=Envelope[list[CommentThread]],
    summary="文章评论",
)
async def get_comments(
    article_id: RecordId,
    viewer: Optional[User] = Depends(optional_auth),
    db: AsyncSession = Depends(get_db),
):
    article = await load_article(db, article_id)
    if article is None or not can_view(article, viewer):
        raise NotFound("文章不存在")
    threads = await article_threads(db, article_id)
    return Envelope(data=serialize_threads(threads))
