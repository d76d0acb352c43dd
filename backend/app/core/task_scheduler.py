"""
维护任务调度器
使用 APScheduler 周期性执行后台维护任务（目前为分类文章数重算）
"""

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.config import settings
from app.core.categories import recount_categories
from app.database.connection import Database

logger = logging.getLogger(__name__)


class MaintenanceScheduler:
    """
    后台维护调度器
    - 定时重算分类 article_count 缓存
    """

    def __init__(self):
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.database: Optional[Database] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self, database: Database):
        """启动调度器"""
        if self._running:
            return

        self.database = database
        self.scheduler.add_job(
            self._recount_categories,
            IntervalTrigger(minutes=settings.CATEGORY_RECOUNT_MINUTES),
            id="recount_categories",
            name="重算分类文章数",
            replace_existing=True,
        )

        self.scheduler.start()
        self._running = True
        logger.info(
            f"维护调度器已启动（分类重算间隔 {settings.CATEGORY_RECOUNT_MINUTES} 分钟）"
        )

    def shutdown(self):
        """关闭调度器"""
        if self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            logger.info("维护调度器已关闭")

    async def _recount_categories(self):
        """定时任务：重算分类文章数，失败只记录日志，等待下一轮"""
        if self.database is None:
            return
        try:
            async with self.database.session() as session:
                await recount_categories(session)
                await session.commit()
        except Exception as e:
            logger.error(f"分类文章数重算失败: {e}", exc_info=True)


# 全局单例
maintenance_scheduler = MaintenanceScheduler()
