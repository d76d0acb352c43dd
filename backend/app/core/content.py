"""
文章内容服务
负责 slug 生成、阅读时长计算、文章创建/更新、浏览计数原子自增
"""

import logging
import math
import re
import time
import unicodedata
import uuid
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import Conflict, NotFound
from app.models.article import Article
from app.models.base import MAX_RECORD_ID, utcnow
from app.models.log import SystemLog
from app.models.user import User
from app.schemas.article import ArticleCreateRequest, ArticleUpdateRequest

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200
_TAG_RE = re.compile(r"<[^>]*>")


def slugify(text: str) -> str:
    """
    转成小写连字符形式，非 ASCII 字符先做音译/去音标
    例如 "Breaking: Major Policy" -> "breaking-major-policy"
    """
    text = unicodedata.normalize("NFKD", text)
    text = text.encode("ascii", "ignore").decode("ascii")
    text = text.lower()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    return text.strip("-")


def make_article_slug(title: str) -> str:
    """标题 slug + 时间戳 + 短 UUID 后缀，保证唯一"""
    base = slugify(title)[:200].rstrip("-") or "article"
    return f"{base}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


def compute_reading_time(content: str) -> int:
    """按每分钟 200 词估算阅读时长（去掉 HTML 标签，至少 1 分钟）"""
    words = _TAG_RE.sub(" ", content).split()
    return max(1, math.ceil(len(words) / WORDS_PER_MINUTE))


async def load_article(db: AsyncSession, article_id: int) -> Optional[Article]:
    """按 ID 加载文章（刷新身份映射中的旧对象，确保作者关系已加载）"""
    result = await db.execute(
        select(Article)
        .where(Article.id == article_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def load_article_by_key(db: AsyncSession, key: str) -> Optional[Article]:
    """按 ID 或 slug 加载文章"""
    if key.isascii() and key.isdigit():
        article_id = int(key)
        if article_id > MAX_RECORD_ID:
            return None
        return await load_article(db, article_id)
    result = await db.execute(select(Article).where(Article.slug == key.lower()))
    return result.scalar_one_or_none()


async def get_article_or_404(db: AsyncSession, article_id: int) -> Article:
    article = await load_article(db, article_id)
    if article is None:
        raise NotFound("文章不存在")
    return article


async def create_article(
    db: AsyncSession, request: ArticleCreateRequest, author: User
) -> Article:
    """
    创建文章
    slug 与阅读时长只在首次保存时计算（请求中显式给出时直接使用）
    """
    data = request.model_dump(exclude={"slug", "reading_time", "publish_date", "status"})
    article = Article(
        **data,
        status=request.status.value,
        author=author,
        slug=request.slug or make_article_slug(request.title),
        reading_time=request.reading_time or compute_reading_time(request.content),
        publish_date=request.publish_date or utcnow(),
    )
    db.add(article)
    try:
        await db.flush()
    except IntegrityError as e:
        raise Conflict("文章 slug 已存在") from e

    db.add(
        SystemLog.record(
            "article_create",
            f"创建文章: {article.title}",
            actor_id=author.id,
            article_id=article.id,
            slug=article.slug,
        )
    )
    logger.info(f"创建文章: id={article.id}, slug={article.slug}")
    return article


async def update_article(
    db: AsyncSession, article: Article, request: ArticleUpdateRequest
) -> Article:
    """按白名单字段更新文章，slug 保持不变"""
    update_data = request.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if value is None and field not in ("image_caption", "meta_description"):
            continue
        if field == "status":
            value = value.value if hasattr(value, "value") else value
        setattr(article, field, value)

    await db.flush()
    logger.info(f"更新文章: id={article.id}")
    return article


async def delete_article(db: AsyncSession, article: Article, actor: User) -> None:
    db.add(
        SystemLog.record(
            "article_delete", f"删除文章: {article.title}", actor_id=actor.id, article_id=article.id
        )
    )
    await db.delete(article)
    await db.flush()
    logger.info(f"删除文章: id={article.id}")


async def increment_views(db: AsyncSession, article_id: int) -> None:
    """
    浏览计数 +1
    使用 UPDATE ... SET views = views + 1，由数据库保证并发自增不丢失
    """
    await db.execute(
        update(Article)
        .where(Article.id == article_id)
        .values(views=Article.views + 1)
        .execution_options(synchronize_session=False)
    )
