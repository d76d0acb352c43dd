"""
评论相关 API 路由
发表 / 回复 / 点赞 / 取消点赞 / 举报 / 编辑 / 删除
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import RecordId, authenticate, ensure_ownership_or_admin
from app.core import comments as comment_service
from app.core.content import get_article_or_404
from app.database.connection import get_db
from app.models.comment import Comment
from app.models.user import User
from app.schemas.comment import (
    CommentCreateRequest,
    CommentEditRequest,
    CommentReportRequest,
    CommentResponse,
    CommentThread,
)
from app.schemas.common import Envelope, MessageResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/comments", tags=["评论"])


def serialize_threads(threads: list[tuple[Comment, list[Comment]]]) -> list[CommentThread]:
    """(顶层评论, 回复列表) -> CommentThread"""
    return [
        CommentThread(
            **CommentResponse.model_validate(parent).model_dump(),
            replies=[CommentResponse.model_validate(r) for r in replies],
        )
        for parent, replies in threads
    ]


@router.post(
    "/article/{article_id}",
    response_model=Envelope[CommentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="发表评论",
)
async def create_comment(
    article_id: RecordId,
    request: CommentCreateRequest,
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
):
    article = await get_article_or_404(db, article_id)
    comment = await comment_service.create_comment(
        db, article, user, request.content, request.parent_id
    )
    await db.commit()

    comment = await comment_service.get_comment_or_404(db, comment.id)
    return Envelope(message="评论已发表", data=CommentResponse.model_validate(comment))


@router.post(
    "/{comment_id}/reply",
    response_model=Envelope[CommentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="回复评论",
)
async def reply(
    comment_id: RecordId,
    request: CommentEditRequest,
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
):
    parent = await comment_service.get_comment_or_404(db, comment_id)
    article = await get_article_or_404(db, parent.article_id)
    comment = await comment_service.create_comment(
        db, article, user, request.content, parent_id=parent.id
    )
    await db.commit()

    comment = await comment_service.get_comment_or_404(db, comment.id)
    return Envelope(message="回复已发表", data=CommentResponse.model_validate(comment))


@router.post("/{comment_id}/like", response_model=Envelope[CommentResponse], summary="点赞")
async def like(
    comment_id: RecordId,
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.get_comment_or_404(db, comment_id)
    comment = await comment_service.add_like(db, comment, user)
    await db.commit()
    return Envelope(data=CommentResponse.model_validate(comment))


@router.delete("/{comment_id}/like", response_model=Envelope[CommentResponse], summary="取消点赞")
async def unlike(
    comment_id: RecordId,
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.get_comment_or_404(db, comment_id)
    comment = await comment_service.remove_like(db, comment, user)
    await db.commit()
    return Envelope(data=CommentResponse.model_validate(comment))


@router.post("/{comment_id}/report", response_model=Envelope[CommentResponse], summary="举报评论")
async def report(
    comment_id: RecordId,
    request: CommentReportRequest,
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.get_comment_or_404(db, comment_id)
    comment = await comment_service.report(db, comment, user, request.reason)
    await db.commit()
    return Envelope(message="举报已提交", data=CommentResponse.model_validate(comment))


@router.put("/{comment_id}", response_model=Envelope[CommentResponse], summary="编辑评论")
async def edit(
    comment_id: RecordId,
    request: CommentEditRequest,
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
):
    """评论作者或管理员可编辑"""
    comment = await comment_service.get_comment_or_404(db, comment_id)
    ensure_ownership_or_admin(user, comment.user_id)

    await comment_service.edit_comment(db, comment, request.content)
    await db.commit()

    comment = await comment_service.get_comment_or_404(db, comment_id)
    return Envelope(message="评论已更新", data=CommentResponse.model_validate(comment))


@router.delete("/{comment_id}", response_model=MessageResponse, summary="删除评论")
async def delete(
    comment_id: RecordId,
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
):
    """评论作者或管理员可删除，回复随顶层评论一起删除"""
    comment = await comment_service.get_comment_or_404(db, comment_id)
    ensure_ownership_or_admin(user, comment.user_id)

    await db.delete(comment)
    await db.commit()
    logger.info(f"删除评论: id={comment_id}, user_id={user.id}")
    return MessageResponse(message="评论已删除")
