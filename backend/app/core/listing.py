"""
文章查询 / 列表服务

按分类、标签、全文检索、热门窗口、推荐、突发新闻、日期范围等条件任意组合（AND），
返回分页结果和总数。

全文检索使用加权匹配打分：标题 10、标签 5、摘要 3、正文 1，每个检索词分别计分后求和，
结果按得分降序、发布时间降序排列。
"""

import enum
import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import String, case, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.article import Article, ArticleStatus
from app.models.base import to_naive_utc, utcnow
from app.models.user import Role, User

# 各字段命中的权重
SEARCH_WEIGHTS = {
    "title": 10,
    "tags": 5,
    "short_description": 3,
    "content": 1,
}
# 单次检索最多使用的词数
MAX_SEARCH_TERMS = 10

_TERM_RE = re.compile(r"\w+", re.UNICODE)


class SortOrder(str, enum.Enum):
    LATEST = "latest"  # 发布时间降序
    CREATED = "created"  # 创建时间降序
    POPULAR = "popular"  # 浏览量降序
    RELEVANCE = "relevance"  # 检索得分降序


@dataclass
class ArticleFilter:
    """
    文章过滤条件（所有条件 AND 组合）
    statuses 为 None 表示不限状态，只用于后台列表
    """
    statuses: Optional[list[str]] = field(default_factory=lambda: [ArticleStatus.PUBLISHED.value])
    category: Optional[str] = None
    tag: Optional[str] = None
    search: Optional[str] = None
    trending_days: Optional[int] = None
    featured: Optional[bool] = None
    breaking_news: Optional[bool] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    author_id: Optional[int] = None
    exclude_id: Optional[int] = None

    def __post_init__(self):
        # 查询参数可能带时区偏移，和库中的 UTC 时间比较前先换算
        self.date_from = to_naive_utc(self.date_from)
        self.date_to = to_naive_utc(self.date_to)


@dataclass
class PageResult:
    items: list[Article]
    total: int
    page: int
    limit: int


def resolve_statuses(viewer: Optional[User], requested: Optional[str]) -> list[str]:
    """
    公开调用只能看到已发布文章；编辑及以上可以显式按任意状态过滤
    """
    if requested and viewer is not None and viewer.has_role(Role.EDITOR):
        return [ArticleStatus(requested).value]
    return [ArticleStatus.PUBLISHED.value]


def search_terms(query: str) -> list[str]:
    """拆分检索词（小写、去重、保持顺序）"""
    terms: list[str] = []
    for term in _TERM_RE.findall(query.lower()):
        if term not in terms:
            terms.append(term)
    return terms[:MAX_SEARCH_TERMS]


def _tags_text():
    return func.lower(cast(Article.tags, String))


def _search_columns():
    return {
        "title": func.lower(Article.title),
        "tags": _tags_text(),
        "short_description": func.lower(Article.short_description),
        "content": func.lower(Article.content),
    }


def _search_condition(terms: list[str]):
    columns = _search_columns()
    return or_(
        *[
            columns[name].contains(term, autoescape=True)
            for term in terms
            for name in SEARCH_WEIGHTS
        ]
    )


def _search_score(terms: list[str]):
    columns = _search_columns()
    score = None
    for term in terms:
        for name, weight in SEARCH_WEIGHTS.items():
            part = case((columns[name].contains(term, autoescape=True), weight), else_=0)
            score = part if score is None else score + part
    return score.label("score")


def build_conditions(filters: ArticleFilter) -> list:
    """把过滤条件转换成 SQLAlchemy where 子句列表"""
    conditions = []

    if filters.statuses is not None:
        conditions.append(Article.status.in_(filters.statuses))
    if filters.category:
        conditions.append(Article.category == filters.category.lower())
    if filters.tag:
        # 标签以 JSON 数组存储，按带引号的完整元素匹配，保证精确匹配
        conditions.append(
            cast(Article.tags, String).contains(
                json.dumps(filters.tag.strip().lower()), autoescape=True
            )
        )
    if filters.featured is not None:
        conditions.append(Article.featured == filters.featured)
    if filters.breaking_news is not None:
        conditions.append(Article.breaking_news == filters.breaking_news)
    if filters.trending_days:
        since = utcnow() - timedelta(days=filters.trending_days)
        conditions.append(Article.publish_date >= since)
    if filters.date_from is not None:
        conditions.append(Article.publish_date >= filters.date_from)
    if filters.date_to is not None:
        conditions.append(Article.publish_date <= filters.date_to)
    if filters.author_id is not None:
        conditions.append(Article.author_id == filters.author_id)
    if filters.exclude_id is not None:
        conditions.append(Article.id != filters.exclude_id)
    if filters.search:
        terms = search_terms(filters.search)
        if terms:
            conditions.append(_search_condition(terms))

    return conditions


def default_sort(filters: ArticleFilter) -> SortOrder:
    if filters.search and search_terms(filters.search):
        return SortOrder.RELEVANCE
    if filters.trending_days:
        return SortOrder.POPULAR
    return SortOrder.LATEST


async def list_articles(
    db: AsyncSession,
    filters: ArticleFilter,
    page: int = 1,
    limit: int = 12,
    sort: Optional[SortOrder] = None,
) -> PageResult:
    """
    分页查询文章

    Args:
        db: 异步数据库会话
        filters: 过滤条件
        page: 页码（从 1 开始）
        limit: 每页数量
        sort: 排序方式，默认按条件推断（检索→相关度，热门→浏览量，其余→发布时间）

    Returns:
        PageResult: 当前页文章 + 总数
    """
    conditions = build_conditions(filters)
    sort = sort or default_sort(filters)

    # 总数
    count_stmt = select(func.count(Article.id)).where(*conditions)
    total = (await db.execute(count_stmt)).scalar() or 0

    stmt = select(Article).where(*conditions)
    terms = search_terms(filters.search) if filters.search else []
    if sort == SortOrder.RELEVANCE and terms:
        score = _search_score(terms)
        stmt = stmt.add_columns(score).order_by(
            score.desc(), Article.publish_date.desc(), Article.id.desc()
        )
    elif sort == SortOrder.POPULAR:
        stmt = stmt.order_by(Article.views.desc(), Article.publish_date.desc(), Article.id.desc())
    elif sort == SortOrder.CREATED:
        stmt = stmt.order_by(Article.created_at.desc(), Article.id.desc())
    else:
        stmt = stmt.order_by(Article.publish_date.desc(), Article.id.desc())

    # 分页
    offset = (page - 1) * limit
    stmt = stmt.offset(offset).limit(limit)
    result = await db.execute(stmt)
    items = [row[0] for row in result.all()]

    return PageResult(items=items, total=total, page=page, limit=limit)


async def related_articles(db: AsyncSession, article: Article, limit: int = 4) -> list[Article]:
    """同分类的其他已发布文章"""
    page = await list_articles(
        db,
        ArticleFilter(category=article.category, exclude_id=article.id),
        page=1,
        limit=limit,
    )
    return page.items
