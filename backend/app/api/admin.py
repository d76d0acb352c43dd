"""
后台管理 API 路由（/admin/api）
所有接口先经过 authenticate，再按路由要求 editor 或 admin 角色
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.articles import listing_payload
from app.api.deps import RecordId, authenticate, require_admin, require_editor
from app.config import settings
from app.core import comments as comment_service
from app.core import content
from app.core.categories import (
    create_category,
    get_category_or_404,
    recount_categories,
    update_category,
)
from app.core.credentials import create_user, get_user_stats
from app.core.exceptions import NotFound, ValidationError
from app.core.listing import ArticleFilter, SortOrder, list_articles
from app.database.connection import get_db
from app.models.article import Article, ArticleStatus
from app.models.base import MAX_RECORD_ID
from app.models.category import Category
from app.models.comment import Comment, CommentStatus
from app.models.log import SystemLog
from app.models.user import User
from app.schemas.article import (
    ArticleCreateRequest,
    ArticleListResponse,
    ArticleResponse,
    ArticleUpdateRequest,
)
from app.schemas.category import (
    CategoryCreateRequest,
    CategoryResponse,
    CategoryUpdateRequest,
    RecountResult,
)
from app.schemas.comment import CommentResponse, CommentStats, CommentStatusUpdateRequest
from app.schemas.common import Envelope, MessageResponse, Page, Pagination
from app.schemas.stats import DashboardStats
from app.schemas.user import (
    AdminUserCreateRequest,
    AdminUserUpdateRequest,
    UserResponse,
    UserStats,
)

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/admin/api",
    tags=["后台管理"],
    dependencies=[Depends(authenticate)],
)


# ==================== 分类 ====================

@router.get("/categories", response_model=Envelope[list[CategoryResponse]], summary="分类列表")
async def list_categories(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Category).order_by(Category.order.asc(), Category.name.asc()))
    categories = result.scalars().all()
    return Envelope(data=[CategoryResponse.model_validate(c) for c in categories])


@router.post(
    "/categories",
    response_model=Envelope[CategoryResponse],
    status_code=status.HTTP_201_CREATED,
    summary="创建分类",
)
async def add_category(
    request: CategoryCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    category = await create_category(db, request)
    await db.commit()
    return Envelope(message="分类已创建", data=CategoryResponse.model_validate(category))


@router.put("/categories/{category_id}", response_model=Envelope[CategoryResponse], summary="更新分类")
async def edit_category(
    category_id: RecordId,
    request: CategoryUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    category = await get_category_or_404(db, category_id)
    category = await update_category(db, category, request)
    await db.commit()
    await db.refresh(category)
    return Envelope(message="分类已更新", data=CategoryResponse.model_validate(category))


@router.delete("/categories/{category_id}", response_model=MessageResponse, summary="删除分类")
async def remove_category(
    category_id: RecordId,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """删除分类；子分类的 parent_id 置空，文章不受影响"""
    category = await get_category_or_404(db, category_id)
    await db.delete(category)
    await db.commit()
    logger.info(f"删除分类: id={category_id}")
    return MessageResponse(message="分类已删除")


@router.post("/categories/recount", response_model=Envelope[RecountResult], summary="重算分类文章数")
async def recount(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await recount_categories(db)
    await db.commit()
    return Envelope(message="分类文章数已重算", data=RecountResult(**result))


# ==================== 用户 ====================

@router.get("/users", response_model=Envelope[Page[UserResponse]], summary="用户列表")
async def list_users(
    role: Optional[str] = Query(None, description="按角色过滤"),
    include_inactive: bool = Query(False, description="是否包含已停用用户"),
    page: int = Query(1, ge=1, description="页码"),
    limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE, description="每页数量"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    conditions = []
    if not include_inactive:
        conditions.append(User.is_active == True)  # noqa: E712
    if role:
        conditions.append(User.role == role)

    total = (await db.execute(select(func.count(User.id)).where(*conditions))).scalar() or 0
    stmt = (
        select(User)
        .where(*conditions)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    users = (await db.execute(stmt)).scalars().all()

    return Envelope(
        data=Page(
            items=[UserResponse.model_validate(u) for u in users],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.post(
    "/users",
    response_model=Envelope[UserResponse],
    status_code=status.HTTP_201_CREATED,
    summary="创建用户",
)
async def add_user(
    request: AdminUserCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await create_user(
        db,
        request.name,
        request.email,
        request.password,
        role=request.role,
        is_active=request.is_active,
        email_verified=request.email_verified,
    )
    await db.commit()
    logger.info(f"管理员创建用户: id={user.id}, role={user.role}, by={admin.id}")
    return Envelope(message="用户已创建", data=UserResponse.model_validate(user))


@router.put("/users/{user_id}", response_model=Envelope[UserResponse], summary="更新用户")
async def edit_user(
    user_id: RecordId,
    request: AdminUserUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """白名单字段更新，不能在这里修改密码"""
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("用户不存在")

    update_data = request.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if value is None and field != "bio":
            continue
        if field == "role":
            value = value.value
        setattr(user, field, value)

    await db.commit()
    logger.info(f"管理员更新用户: id={user.id}, 字段={list(update_data)}")
    return Envelope(message="用户已更新", data=UserResponse.model_validate(user))


@router.delete("/users/{user_id}", response_model=MessageResponse, summary="删除用户")
async def remove_user(
    user_id: RecordId,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """删除用户：其评论随之删除，其文章保留但作者置空"""
    if user_id == admin.id:
        raise ValidationError("不能删除当前登录的管理员账号")

    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("用户不存在")

    db.add(
        SystemLog.record(
            "user_delete", f"删除用户: {user.email}", actor_id=admin.id, user_id=user.id
        )
    )
    await db.delete(user)
    await db.commit()
    logger.info(f"删除用户: id={user_id}, by={admin.id}")
    return MessageResponse(message="用户已删除")


# ==================== 评论 ====================

@router.get("/comments", response_model=Envelope[Page[CommentResponse]], summary="评论列表")
async def list_comments(
    comment_status: Optional[CommentStatus] = Query(None, alias="status", description="按状态过滤"),
    article_id: Optional[int] = Query(None, ge=1, le=MAX_RECORD_ID, description="按文章过滤"),
    page: int = Query(1, ge=1, description="页码"),
    limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE, description="每页数量"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    conditions = []
    if comment_status is not None:
        conditions.append(Comment.status == comment_status.value)
    if article_id is not None:
        conditions.append(Comment.article_id == article_id)

    total = (await db.execute(select(func.count(Comment.id)).where(*conditions))).scalar() or 0
    stmt = (
        select(Comment)
        .where(*conditions)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    comments = (await db.execute(stmt)).scalars().all()

    return Envelope(
        data=Page(
            items=[CommentResponse.model_validate(c) for c in comments],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.get("/comments/pending", response_model=Envelope[list[CommentResponse]], summary="待审核评论")
async def pending_comments(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    comments = await comment_service.pending_comments(db)
    return Envelope(data=[CommentResponse.model_validate(c) for c in comments])


@router.get("/comments/stats", response_model=Envelope[CommentStats], summary="评论统计")
async def comment_stats(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return Envelope(data=CommentStats(**await comment_service.comment_stats(db)))


@router.put(
    "/comments/{comment_id}/status",
    response_model=Envelope[CommentResponse],
    summary="审核评论",
)
async def moderate_comment(
    comment_id: RecordId,
    request: CommentStatusUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.get_comment_or_404(db, comment_id)
    comment.status = request.status.value
    await db.commit()
    logger.info(f"评论审核: id={comment_id}, status={comment.status}, by={admin.id}")
    return Envelope(message="评论状态已更新", data=CommentResponse.model_validate(comment))


@router.delete("/comments/{comment_id}", response_model=MessageResponse, summary="删除评论")
async def remove_comment(
    comment_id: RecordId,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.get_comment_or_404(db, comment_id)
    await db.delete(comment)
    await db.commit()
    logger.info(f"管理员删除评论: id={comment_id}, by={admin.id}")
    return MessageResponse(message="评论已删除")


# ==================== 文章 ====================

@router.get("/articles", response_model=Envelope[ArticleListResponse], summary="文章列表（后台）")
async def list_all_articles(
    article_status: Optional[ArticleStatus] = Query(None, alias="status", description="按状态过滤"),
    category: Optional[str] = Query(None, description="分类 slug"),
    q: Optional[str] = Query(None, max_length=200, description="检索关键词"),
    page: int = Query(1, ge=1, description="页码"),
    limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE, description="每页数量"),
    editor: User = Depends(require_editor),
    db: AsyncSession = Depends(get_db),
):
    """所有状态的文章，按创建时间倒序"""
    filters = ArticleFilter(
        statuses=[article_status.value] if article_status else None,
        category=category,
        search=q,
    )
    result = await list_articles(db, filters, page=page, limit=limit, sort=SortOrder.CREATED)
    return Envelope(data=listing_payload(result))


@router.get("/articles/{article_id}", response_model=Envelope[ArticleResponse], summary="文章详情（后台）")
async def get_any_article(
    article_id: RecordId,
    editor: User = Depends(require_editor),
    db: AsyncSession = Depends(get_db),
):
    """后台读取不计入浏览数"""
    article = await content.get_article_or_404(db, article_id)
    return Envelope(data=ArticleResponse.model_validate(article))


@router.post(
    "/articles",
    response_model=Envelope[ArticleResponse],
    status_code=status.HTTP_201_CREATED,
    summary="创建文章",
)
async def add_article(
    request: ArticleCreateRequest,
    editor: User = Depends(require_editor),
    db: AsyncSession = Depends(get_db),
):
    article = await content.create_article(db, request, editor)
    await db.commit()

    article = await content.get_article_or_404(db, article.id)
    return Envelope(message="文章已创建", data=ArticleResponse.model_validate(article))


@router.put("/articles/{article_id}", response_model=Envelope[ArticleResponse], summary="更新文章")
async def edit_article(
    article_id: RecordId,
    request: ArticleUpdateRequest,
    editor: User = Depends(require_editor),
    db: AsyncSession = Depends(get_db),
):
    article = await content.get_article_or_404(db, article_id)
    await content.update_article(db, article, request)
    await db.commit()

    article = await content.get_article_or_404(db, article_id)
    return Envelope(message="文章已更新", data=ArticleResponse.model_validate(article))


@router.delete("/articles/{article_id}", response_model=MessageResponse, summary="删除文章")
async def remove_article(
    article_id: RecordId,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    article = await content.get_article_or_404(db, article_id)
    await content.delete_article(db, article, admin)
    await db.commit()
    return MessageResponse(message="文章已删除")


# ==================== 统计 ====================

async def dashboard_stats(db: AsyncSession) -> DashboardStats:
    """仪表盘统计：文章数、已发布/草稿数、总浏览量、活跃用户数、已通过评论数"""
    article_result = await db.execute(
        select(Article.status, func.count(Article.id), func.coalesce(func.sum(Article.views), 0))
        .group_by(Article.status)
    )
    total_articles = published = drafts = total_views = 0
    for article_status, count, views in article_result.all():
        total_articles += count
        total_views += views
        if article_status == ArticleStatus.PUBLISHED.value:
            published = count
        elif article_status == ArticleStatus.DRAFT.value:
            drafts = count

    active_users = (
        await db.execute(select(func.count(User.id)).where(User.is_active == True))  # noqa: E712
    ).scalar() or 0
    comments = await comment_service.comment_stats(db)

    return DashboardStats(
        total_articles=total_articles,
        published_articles=published,
        draft_articles=drafts,
        total_views=total_views,
        total_users=active_users,
        total_comments=comments[CommentStatus.APPROVED.value],
        users=UserStats(**await get_user_stats(db)),
        comments=CommentStats(**comments),
    )


@router.get("/stats", response_model=Envelope[DashboardStats], summary="仪表盘统计")
async def stats(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return Envelope(data=await dashboard_stats(db))
