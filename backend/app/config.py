"""
应用配置管理
使用 pydantic-settings 从环境变量和 .env 文件加载配置
"""

import os
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """全局配置"""

    # ========== 基础配置 ==========
    APP_NAME: str = "Bahadurgarh News"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    # 站点对外地址（RSS 链接使用）
    BASE_URL: str = "http://localhost:3000"

    # ========== 数据库配置 ==========
    # SQLite 数据库文件路径
    DATABASE_PATH: str = os.path.join(
        os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
        "data",
        "news.db",
    )

    @property
    def DATABASE_URL(self) -> str:
        """异步 SQLite 连接字符串"""
        return f"sqlite+aiosqlite:///{self.DATABASE_PATH}"

    # ========== 认证配置 ==========
    JWT_SECRET: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_DAYS: int = 7  # 会话令牌有效期（天）
    TOKEN_COOKIE_NAME: str = "token"
    COOKIE_SECURE: bool = False  # 生产环境应开启
    BCRYPT_ROUNDS: int = 12  # bcrypt 计算成本
    PASSWORD_RESET_EXPIRE_MINUTES: int = 10  # 重置令牌有效期（分钟）

    # ========== 内容配置 ==========
    # 文章分类（固定枚举）
    ARTICLE_CATEGORIES: list[str] = [
        "india",
        "world",
        "business",
        "sports",
        "entertainment",
        "technology",
        "health",
    ]
    TRENDING_DAYS: int = 7  # 热门窗口（天）
    DEFAULT_PAGE_SIZE: int = 12
    MAX_PAGE_SIZE: int = 100

    # ========== RSS 配置 ==========
    RSS_TITLE: str = "Bahadurgarh News"
    RSS_DESCRIPTION: str = "Latest news from Bahadurgarh and around the world"
    RSS_ITEM_LIMIT: int = 20

    # ========== 维护任务 ==========
    CATEGORY_RECOUNT_MINUTES: int = 30  # 分类文章数重算间隔（分钟）

    # ========== CORS 配置 ==========
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    model_config = {
        "env_file": os.path.join(
            os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
            ".env",
        ),
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# 全局配置单例
settings = Settings()
