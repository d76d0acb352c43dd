"""
数据库连接管理
使用 aiosqlite + SQLAlchemy async 引擎

连接对象由应用生命周期显式创建和关闭，挂载在 app.state.database 上，
请求处理通过 get_db 依赖获取会话。
"""

from typing import AsyncIterator, Optional

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """数据库连接对象：持有引擎和会话工厂"""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    async def connect(self) -> None:
        """
        创建引擎并初始化所有表
        在应用启动时调用
        """
        from app.models import Base  # noqa: F811

        # SQLite 特有参数：允许跨线程使用连接，写锁等待 30 秒
        self.engine = create_async_engine(
            self.url,
            echo=self.echo,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        # SQLite 默认不执行外键约束，需在每个连接上打开
        event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """
        关闭数据库连接
        在应用关闭时调用
        """
        if self.engine is not None:
            await self.engine.dispose()
        self.engine = None
        self.session_factory = None

    def session(self) -> AsyncSession:
        """新建一个会话（调用方负责 async with 关闭）"""
        if self.session_factory is None:
            raise RuntimeError("数据库尚未连接")
        return self.session_factory()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """
    FastAPI 依赖注入：获取数据库会话
    使用 async with 确保会话正确关闭
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
