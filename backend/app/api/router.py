"""
API 路由聚合
- api_router：JSON API，统一 /api 前缀
- admin_router：后台管理 API（/admin/api）
- pages_router：浏览器页面与 RSS（根路径）
"""

from fastapi import APIRouter

from app.api.admin import router as admin_router
from app.api.articles import router as articles_router
from app.api.auth import router as auth_router
from app.api.categories import router as categories_router
from app.api.comments import router as comments_router
from app.api.pages import router as pages_router

# 主路由器，统一 /api 前缀
api_router = APIRouter(prefix="/api")

# 挂载各子路由（子路由自身已带 prefix，此处不再重复）
api_router.include_router(auth_router)
api_router.include_router(articles_router)
api_router.include_router(categories_router)
api_router.include_router(comments_router)

__all__ = ["api_router", "admin_router", "pages_router"]
