"""
测试公共夹具
每个测试使用独立的临时 SQLite 数据库，通过 httpx ASGITransport 直接调用应用
"""

import os

# 必须在导入 app 之前设置，Settings 单例在导入时读取环境变量
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DEBUG", "false")

import uuid  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402

from app.core.content import create_article  # noqa: E402
from app.core.credentials import create_user  # noqa: E402
from app.core.security import token_service  # noqa: E402
from app.database.connection import Database  # noqa: E402
from app.main import create_app  # noqa: E402
from app.models.article import ArticleStatus  # noqa: E402
from app.models.user import Role  # noqa: E402
from app.schemas.article import ArticleCreateRequest  # noqa: E402

PASSWORD = "password123"


@pytest.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await db.connect()
    yield db
    await db.close()


@pytest.fixture
async def session(database):
    async with database.session() as s:
        yield s


@pytest.fixture
async def client(database):
    app = create_app(database)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def make_user(database):
    """创建用户（直接写库，返回已提交的 User）"""

    async def _make(role: Role = Role.USER, email: str | None = None, password: str = PASSWORD,
                    name: str = "Test User", is_active: bool = True):
        email = email or f"{role.value}-{uuid.uuid4().hex[:8]}@example.com"
        async with database.session() as s:
            user = await create_user(s, name, email, password, role=role, is_active=is_active)
            await s.commit()
            return user

    return _make


@pytest.fixture
async def user(make_user):
    return await make_user(Role.USER)


@pytest.fixture
async def editor(make_user):
    return await make_user(Role.EDITOR)


@pytest.fixture
async def admin(make_user):
    return await make_user(Role.ADMIN)


@pytest.fixture
def auth():
    """为用户生成 Bearer 请求头"""

    def _headers(user) -> dict:
        return {"Authorization": f"Bearer {token_service.issue(user.id)}"}

    return _headers


@pytest.fixture
def make_article(database):
    """
    创建文章，默认已发布
    published_ago 用于控制发布时间（越大越早）
    """

    async def _make(author, title: str = "Sample article", category: str = "world",
                    status: ArticleStatus = ArticleStatus.PUBLISHED,
                    published_ago: timedelta = timedelta(0), **fields):
        data = {
            "short_description": f"Summary of {title}",
            "content": f"<p>Body of {title}</p>",
            **fields,
        }
        request = ArticleCreateRequest(
            title=title,
            category=category,
            status=status,
            publish_date=datetime.now(timezone.utc) - published_ago,
            **data,
        )
        async with database.session() as s:
            article = await create_article(s, request, author)
            await s.commit()
            return article

    return _make
