"""
认证相关 API 路由
注册、登录、登出、个人资料、修改密码、找回密码、收藏文章
"""

import logging

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import RecordId, authenticate, clear_token_cookie, set_token_cookie
from app.config import settings
from app.core import credentials
from app.core.content import get_article_or_404
from app.database.connection import get_db
from app.models.article import Article
from app.models.user import SavedArticle, User
from app.schemas.article import ArticleListResponse, ArticleSummary
from app.schemas.common import Envelope, MessageResponse, Pagination
from app.schemas.user import (
    AuthResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["认证"])


def _auth_payload(result: credentials.AuthResult) -> AuthResponse:
    return AuthResponse(user=UserResponse.model_validate(result.user), token=result.token)


@router.post(
    "/register",
    response_model=Envelope[AuthResponse],
    status_code=status.HTTP_201_CREATED,
    summary="注册",
)
async def register(
    request: RegisterRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """注册新用户（默认 user 角色），成功后同时写入登录 Cookie"""
    result = await credentials.register(db, request.name, request.email, request.password)
    await db.commit()

    set_token_cookie(response, result.token)
    return Envelope(message="注册成功", data=_auth_payload(result))


@router.post("/login", response_model=Envelope[AuthResponse], summary="登录")
async def login(
    request: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    result = await credentials.login(db, request.email, request.password)
    await db.commit()

    set_token_cookie(response, result.token)
    return Envelope(message="登录成功", data=_auth_payload(result))


@router.post("/logout", response_model=MessageResponse, summary="登出")
async def logout(response: Response):
    """只清除客户端 Cookie，令牌本身无状态，到期前仍然有效"""
    clear_token_cookie(response)
    return MessageResponse(message="已退出登录")


@router.get("/me", response_model=Envelope[UserResponse], summary="当前用户")
async def me(user: User = Depends(authenticate)):
    return Envelope(data=UserResponse.model_validate(user))


@router.put("/profile", response_model=Envelope[UserResponse], summary="更新个人资料")
async def update_profile(
    request: ProfileUpdateRequest,
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
):
    """只允许更新 name / bio / avatar / social_links / preferences"""
    update_data = request.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if value is None and field != "bio":
            continue
        if field == "name":
            value = value.strip()
        setattr(user, field, value)

    await db.commit()
    logger.info(f"更新个人资料: user_id={user.id}, 字段={list(update_data)}")
    return Envelope(message="资料已更新", data=UserResponse.model_validate(user))


@router.put("/password", response_model=MessageResponse, summary="修改密码")
async def change_password(
    request: ChangePasswordRequest,
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
):
    await credentials.change_password(db, user, request.current_password, request.new_password)
    await db.commit()
    return MessageResponse(message="密码已修改")


@router.post("/forgot-password", response_model=MessageResponse, summary="找回密码")
async def forgot_password(
    request: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    """无论邮箱是否注册都返回相同提示"""
    message = await credentials.request_password_reset(db, request.email)
    await db.commit()
    return MessageResponse(message=message)


@router.post("/reset-password", response_model=MessageResponse, summary="重置密码")
async def reset_password(
    request: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    await credentials.reset_password(db, request.token, request.password)
    await db.commit()
    return MessageResponse(message="密码已重置，请重新登录")


# ==================== 收藏文章 ====================

@router.get("/saved", response_model=Envelope[ArticleListResponse], summary="收藏的文章")
async def list_saved_articles(
    page: int = Query(1, ge=1, description="页码"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="每页数量"),
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
):
    """按收藏时间倒序"""
    count_stmt = select(func.count(SavedArticle.id)).where(SavedArticle.user_id == user.id)
    total = (await db.execute(count_stmt)).scalar() or 0

    stmt = (
        select(Article)
        .join(SavedArticle, SavedArticle.article_id == Article.id)
        .where(SavedArticle.user_id == user.id)
        .order_by(SavedArticle.created_at.desc(), SavedArticle.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    articles = (await db.execute(stmt)).scalars().all()

    return Envelope(
        data=ArticleListResponse(
            articles=[ArticleSummary.model_validate(a) for a in articles],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.post("/saved/{article_id}", response_model=MessageResponse, summary="收藏文章")
async def save_article(
    article_id: RecordId,
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
):
    """重复收藏不报错"""
    await get_article_or_404(db, article_id)

    existing = await db.execute(
        select(SavedArticle.id).where(
            SavedArticle.user_id == user.id, SavedArticle.article_id == article_id
        )
    )
    if existing.scalar() is None:
        db.add(SavedArticle(user_id=user.id, article_id=article_id))
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()

    return MessageResponse(message="已收藏")


@router.delete("/saved/{article_id}", response_model=MessageResponse, summary="取消收藏")
async def unsave_article(
    article_id: RecordId,
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
):
    await db.execute(
        delete(SavedArticle).where(
            SavedArticle.user_id == user.id, SavedArticle.article_id == article_id
        )
    )
    await db.commit()
    return MessageResponse(message="已取消收藏")
