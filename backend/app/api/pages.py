"""
浏览器页面路由
只读 Cookie 认证，返回前端渲染所需的页面上下文（JSON）；
需要登录或管理员权限的页面在权限不足时重定向。
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.admin import dashboard_stats
from app.api.articles import listing_payload, read_article
from app.api.deps import authenticate_web, require_admin_web, require_auth_web
from app.config import settings
from app.core.categories import list_active_categories
from app.core.exceptions import NotFound, WebRedirect
from app.core.listing import ArticleFilter, SortOrder, list_articles
from app.core.rss import build_rss
from app.database.connection import get_db
from app.models.comment import Comment
from app.models.user import Role, SavedArticle, User
from app.schemas.article import ArticleResponse, ArticleSummary
from app.schemas.category import CategoryResponse
from app.schemas.user import UserResponse

logger = logging.getLogger(__name__)
router = APIRouter(tags=["页面"])

# 首页各区块的条数
HOME_SECTION_SIZE = 5


def _viewer(user: Optional[User]) -> Optional[dict]:
    return UserResponse.model_validate(user).model_dump(mode="json") if user else None


async def _categories(db: AsyncSession) -> list[CategoryResponse]:
    return [CategoryResponse.model_validate(c) for c in await list_active_categories(db)]


@router.get("/", summary="首页")
async def home(
    page: int = Query(1, ge=1),
    error: Optional[str] = Query(None),
    user: Optional[User] = Depends(authenticate_web),
    db: AsyncSession = Depends(get_db),
):
    latest = await list_articles(
        db, ArticleFilter(), page=page, limit=settings.DEFAULT_PAGE_SIZE, sort=SortOrder.LATEST
    )
    featured = await list_articles(db, ArticleFilter(featured=True), limit=HOME_SECTION_SIZE)
    breaking = await list_articles(db, ArticleFilter(breaking_news=True), limit=HOME_SECTION_SIZE)
    trending = await list_articles(
        db, ArticleFilter(trending_days=settings.TRENDING_DAYS), limit=HOME_SECTION_SIZE
    )
    return {
        "page": "home",
        "title": settings.APP_NAME,
        "user": _viewer(user),
        "error": error,
        "latest": listing_payload(latest),
        "featured": [ArticleSummary.model_validate(a) for a in featured.items],
        "breaking": [ArticleSummary.model_validate(a) for a in breaking.items],
        "trending": [ArticleSummary.model_validate(a) for a in trending.items],
        "categories": await _categories(db),
    }


@router.get("/article/{key}", summary="文章页")
async def article_page(
    key: str,
    user: Optional[User] = Depends(authenticate_web),
    db: AsyncSession = Depends(get_db),
):
    article, related, threads = await read_article(db, key, user)
    return {
        "page": "article",
        "title": article.title,
        "meta_description": article.meta_description or article.short_description,
        "user": _viewer(user),
        "article": ArticleResponse.model_validate(article),
        "related": [ArticleSummary.model_validate(a) for a in related],
        "comments": threads,
    }


@router.get("/category/{category}", summary="分类页")
async def category_page(
    category: str,
    page: int = Query(1, ge=1),
    user: Optional[User] = Depends(authenticate_web),
    db: AsyncSession = Depends(get_db),
):
    category = category.lower()
    if category not in settings.ARTICLE_CATEGORIES:
        raise NotFound("分类不存在")
    result = await list_articles(
        db, ArticleFilter(category=category), page=page, limit=settings.DEFAULT_PAGE_SIZE
    )
    return {
        "page": "category",
        "title": category.capitalize(),
        "category": category,
        "user": _viewer(user),
        "articles": listing_payload(result),
    }


@router.get("/tag/{tag}", summary="标签页")
async def tag_page(
    tag: str,
    page: int = Query(1, ge=1),
    user: Optional[User] = Depends(authenticate_web),
    db: AsyncSession = Depends(get_db),
):
    result = await list_articles(
        db, ArticleFilter(tag=tag), page=page, limit=settings.DEFAULT_PAGE_SIZE
    )
    return {
        "page": "tag",
        "title": f"#{tag.lower()}",
        "tag": tag.lower(),
        "user": _viewer(user),
        "articles": listing_payload(result),
    }


@router.get("/search", summary="检索页")
async def search_page(
    q: str = Query("", max_length=200),
    page: int = Query(1, ge=1),
    user: Optional[User] = Depends(authenticate_web),
    db: AsyncSession = Depends(get_db),
):
    context = {"page": "search", "title": "Search", "query": q, "user": _viewer(user), "articles": None}
    if q.strip():
        result = await list_articles(
            db, ArticleFilter(search=q), page=page, limit=settings.DEFAULT_PAGE_SIZE
        )
        context["articles"] = listing_payload(result)
    return context


# ==================== 登录 / 注册 ====================

@router.get("/login", summary="登录页")
async def login_page(
    error: Optional[str] = Query(None),
    user: Optional[User] = Depends(authenticate_web),
):
    if user is not None:
        raise WebRedirect("/")
    return {"page": "login", "title": "Login", "error": error}


@router.get("/register", summary="注册页")
async def register_page(
    error: Optional[str] = Query(None),
    user: Optional[User] = Depends(authenticate_web),
):
    if user is not None:
        raise WebRedirect("/")
    return {"page": "register", "title": "Register", "error": error}


@router.get("/admin/login", summary="后台登录页")
async def admin_login_page(
    error: Optional[str] = Query(None),
    user: Optional[User] = Depends(authenticate_web),
):
    if user is not None and user.has_role(Role.ADMIN):
        raise WebRedirect("/admin/dashboard")
    return {"page": "admin_login", "title": "Admin Login", "error": error}


# ==================== 需要登录 ====================

@router.get("/profile", summary="个人中心")
async def profile_page(
    user: User = Depends(require_auth_web),
    db: AsyncSession = Depends(get_db),
):
    saved_count = (
        await db.execute(select(func.count(SavedArticle.id)).where(SavedArticle.user_id == user.id))
    ).scalar() or 0
    comment_count = (
        await db.execute(select(func.count(Comment.id)).where(Comment.user_id == user.id))
    ).scalar() or 0
    return {
        "page": "profile",
        "title": "Profile",
        "user": _viewer(user),
        "stats": {"saved_articles": saved_count, "comments": comment_count},
    }


@router.get("/admin/dashboard", summary="后台首页")
async def admin_dashboard(
    user: User = Depends(require_admin_web),
    db: AsyncSession = Depends(get_db),
):
    recent = await list_articles(
        db, ArticleFilter(statuses=None), limit=HOME_SECTION_SIZE, sort=SortOrder.CREATED
    )
    return {
        "page": "admin_dashboard",
        "title": "Dashboard",
        "user": _viewer(user),
        "stats": await dashboard_stats(db),
        "recent_articles": [ArticleSummary.model_validate(a) for a in recent.items],
    }


# ==================== RSS ====================

@router.get("/articles/rss", summary="RSS 订阅")
async def rss_feed(db: AsyncSession = Depends(get_db)):
    result = await list_articles(
        db, ArticleFilter(), limit=settings.RSS_ITEM_LIMIT, sort=SortOrder.LATEST
    )
    xml = build_rss(
        result.items,
        title=settings.RSS_TITLE,
        description=settings.RSS_DESCRIPTION,
        base_url=settings.BASE_URL,
    )
    return Response(content=xml, media_type="application/rss+xml")
