"""
统计相关的 Pydantic 响应模型
"""

from pydantic import BaseModel

from app.schemas.comment import CommentStats
from app.schemas.user import UserStats


class DashboardStats(BaseModel):
    """仪表盘统计数据"""
    # 文章统计
    total_articles: int = 0
    published_articles: int = 0
    draft_articles: int = 0
    total_views: int = 0

    # 用户与评论
    total_users: int = 0
    total_comments: int = 0

    users: UserStats = UserStats()
    comments: CommentStats = CommentStats()
