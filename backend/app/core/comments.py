"""
评论服务
发表 / 回复 / 点赞 / 举报 / 编辑，公开列表只展示 approved 评论
"""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import Forbidden, NotFound, ValidationError
from app.models.article import Article, ArticleStatus
from app.models.base import utcnow
from app.models.comment import Comment, CommentLike, CommentReport, CommentStatus
from app.models.user import User

logger = logging.getLogger(__name__)


async def load_comment(db: AsyncSession, comment_id: int) -> Optional[Comment]:
    result = await db.execute(
        select(Comment)
        .where(Comment.id == comment_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_comment_or_404(db: AsyncSession, comment_id: int) -> Comment:
    comment = await load_comment(db, comment_id)
    if comment is None:
        raise NotFound("评论不存在")
    return comment


async def create_comment(
    db: AsyncSession,
    article: Article,
    user: User,
    content: str,
    parent_id: Optional[int] = None,
) -> Comment:
    """
    发表评论或回复
    回复只保留一层：回复一条回复时，挂到它的顶层评论下
    """
    if article.status != ArticleStatus.PUBLISHED.value:
        raise NotFound("文章不存在")
    if not article.allow_comments:
        raise Forbidden("该文章已关闭评论")

    if parent_id is not None:
        parent = await db.get(Comment, parent_id)
        if parent is None or parent.article_id != article.id:
            raise ValidationError(
                "回复的评论不存在",
                details=[{"field": "parent_id", "message": "评论不存在或不属于该文章"}],
            )
        if parent.parent_id is not None:
            parent_id = parent.parent_id

    comment = Comment(
        content=content.strip(),
        article_id=article.id,
        user_id=user.id,
        parent_id=parent_id,
    )
    db.add(comment)
    await db.flush()
    logger.info(f"发表评论: id={comment.id}, article_id={article.id}, user_id={user.id}")
    return comment


async def article_threads(db: AsyncSession, article_id: int) -> list[tuple[Comment, list[Comment]]]:
    """
    文章的公开评论：approved 顶层评论（新的在前），各自附带 approved 回复（按时间正序）
    """
    result = await db.execute(
        select(Comment)
        .where(
            Comment.article_id == article_id,
            Comment.status == CommentStatus.APPROVED.value,
        )
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    )
    comments = result.scalars().all()

    replies: dict[int, list[Comment]] = {}
    top_level: list[Comment] = []
    for comment in comments:
        if comment.parent_id is None:
            top_level.append(comment)
        else:
            replies.setdefault(comment.parent_id, []).append(comment)

    return [(c, list(reversed(replies.get(c.id, [])))) for c in top_level]


async def add_like(db: AsyncSession, comment: Comment, user: User) -> Comment:
    """点赞（幂等）"""
    if comment.is_liked_by(user.id):
        return comment
    comment_id = comment.id
    try:
        # SAVEPOINT 内写入，冲突只回滚这一步，不影响同一请求的其他修改
        async with db.begin_nested():
            comment.likes.append(CommentLike(user_id=user.id))
            await db.flush()
    except IntegrityError:
        # 并发重复点赞由唯一约束拦截，结果等同于已点赞
        return await get_comment_or_404(db, comment_id)
    return comment


async def remove_like(db: AsyncSession, comment: Comment, user: User) -> Comment:
    """取消点赞（幂等）"""
    comment.likes = [like for like in comment.likes if like.user_id != user.id]
    await db.flush()
    return comment


async def report(
    db: AsyncSession, comment: Comment, user: User, reason: Optional[str] = None
) -> Comment:
    """举报评论（每个用户只记录一次）"""
    if comment.is_reported_by(user.id):
        return comment
    comment_id = comment.id
    try:
        async with db.begin_nested():
            comment.reports.append(CommentReport(user_id=user.id, reason=reason))
            await db.flush()
    except IntegrityError:
        return await get_comment_or_404(db, comment_id)
    logger.info(f"评论被举报: id={comment.id}, user_id={user.id}")
    return comment


async def edit_comment(db: AsyncSession, comment: Comment, content: str) -> Comment:
    comment.content = content.strip()
    comment.is_edited = True
    comment.edited_at = utcnow()
    await db.flush()
    return comment


async def pending_comments(db: AsyncSession) -> list[Comment]:
    result = await db.execute(
        select(Comment)
        .where(Comment.status == CommentStatus.PENDING.value)
        .order_by(Comment.created_at.desc())
    )
    return list(result.scalars().all())


async def comment_stats(db: AsyncSession) -> dict:
    """按状态统计评论数"""
    result = await db.execute(
        select(Comment.status, func.count(Comment.id)).group_by(Comment.status)
    )
    stats = {"total": 0, **{s.value: 0 for s in CommentStatus}}
    for status, count in result.all():
        stats["total"] += count
        stats[status] = count
    return stats
