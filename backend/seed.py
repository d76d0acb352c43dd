"""
初始化数据脚本
创建默认分类、管理员账号和几篇示例文章（已存在的数据跳过）

用法：
    python seed.py --admin-email admin@example.com --admin-password secret123
"""

import argparse
import asyncio
import logging
import os

from sqlalchemy import func, select

from app.config import settings
from app.core.categories import create_category, recount_categories
from app.core.content import create_article
from app.core.credentials import create_admin, get_user_by_email
from app.database.connection import Database
from app.models.article import Article, ArticleStatus
from app.models.category import Category
from app.schemas.article import ArticleCreateRequest
from app.schemas.category import CategoryCreateRequest

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("seed")

CATEGORY_COLORS = {
    "india": "#F97316",
    "world": "#3B82F6",
    "business": "#10B981",
    "sports": "#EF4444",
    "entertainment": "#A855F7",
    "technology": "#6366F1",
    "health": "#14B8A6",
}

SAMPLE_ARTICLES = [
    {
        "title": "Breaking: Major Policy Announcement by Government",
        "short_description": "The government has announced a new policy framework for urban development.",
        "content": "<p>The government today announced a comprehensive policy framework "
        "aimed at improving urban infrastructure across the region.</p>",
        "category": "india",
        "tags": ["policy", "government"],
        "breaking_news": True,
        "featured": True,
    },
    {
        "title": "Local Team Wins State Cricket Championship",
        "short_description": "Bahadurgarh's cricket team lifted the trophy after a thrilling final.",
        "content": "<p>In a nail-biting final, the local team clinched the state championship "
        "by two wickets.</p>",
        "category": "sports",
        "tags": ["cricket", "championship"],
    },
    {
        "title": "New Technology Park to Create Thousands of Jobs",
        "short_description": "A technology park planned on the city outskirts promises new employment.",
        "content": "<p>Officials confirmed that construction of the new technology park "
        "will begin next quarter.</p>",
        "category": "technology",
        "tags": ["jobs", "technology"],
        "featured": True,
    },
]


async def seed(admin_name: str, admin_email: str, admin_password: str) -> None:
    os.makedirs(os.path.dirname(settings.DATABASE_PATH), exist_ok=True)
    database = Database(settings.DATABASE_URL)
    await database.connect()
    try:
        async with database.session() as db:
            # 分类
            existing = set((await db.execute(select(Category.slug))).scalars().all())
            for order, slug in enumerate(settings.ARTICLE_CATEGORIES):
                if slug in existing:
                    continue
                await create_category(
                    db,
                    CategoryCreateRequest(
                        name=slug.capitalize(),
                        slug=slug,
                        color=CATEGORY_COLORS.get(slug, "#3B82F6"),
                        order=order,
                    ),
                )

            # 管理员
            admin = await get_user_by_email(db, admin_email)
            if admin is None:
                admin = await create_admin(db, admin_name, admin_email, admin_password)
                logger.info(f"管理员已创建: {admin.email}")
            else:
                logger.info(f"管理员已存在，跳过: {admin.email}")

            # 示例文章（库里没有文章时才创建）
            article_count = (await db.execute(select(func.count(Article.id)))).scalar() or 0
            if article_count == 0:
                for data in SAMPLE_ARTICLES:
                    await create_article(
                        db,
                        ArticleCreateRequest(**data, status=ArticleStatus.PUBLISHED),
                        admin,
                    )

            await recount_categories(db)
            await db.commit()
        logger.info("初始化数据完成")
    finally:
        await database.close()


def main():
    parser = argparse.ArgumentParser(description="初始化分类、管理员和示例文章")
    parser.add_argument("--admin-name", default="Administrator")
    parser.add_argument("--admin-email", required=True)
    parser.add_argument("--admin-password", required=True)
    args = parser.parse_args()

    asyncio.run(seed(args.admin_name, args.admin_email, args.admin_password))


if __name__ == "__main__":
    main()
