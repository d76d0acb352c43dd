"""
FastAPI 应用主入口
负责应用初始化、CORS 配置、异常处理、启动/关闭生命周期管理
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from app.api.deps import clear_token_cookie
from app.api.router import admin_router, api_router, pages_router
from app.config import settings
from app.core.exceptions import AppError, WebRedirect
from app.core.task_scheduler import maintenance_scheduler
from app.database.connection import Database

# ========== 日志配置 ==========
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# 静默高频噪音日志
logging.getLogger("aiosqlite").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("apscheduler.scheduler").setLevel(logging.WARNING)
logging.getLogger("apscheduler.executors.default").setLevel(logging.WARNING)


# ========== 生命周期管理 ==========
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期管理
    启动时：连接数据库 -> 启动维护调度器（容错降级）
    关闭时：关闭调度器 -> 关闭数据库连接（每步独立 try/except）
    """
    # ---- 启动 ----
    logger.info(f"正在启动 {settings.APP_NAME} v{settings.APP_VERSION}...")

    database = getattr(app.state, "database", None)
    if database is None:
        # 确保数据目录存在
        os.makedirs(os.path.dirname(settings.DATABASE_PATH), exist_ok=True)
        database = Database(settings.DATABASE_URL)
        app.state.database = database

    # 1. 连接数据库（必须成功）
    await database.connect()
    logger.info("数据库初始化完成")

    # 2. 启动维护调度器（失败不影响应用启动）
    try:
        maintenance_scheduler.start(database)
    except Exception as e:
        logger.error(f"维护调度器启动失败（分类文章数不会自动重算）: {e}")

    logger.info(f"应用启动完成，监听 http://{settings.HOST}:{settings.PORT}")

    yield

    # ---- 关闭（每步独立容错） ----
    logger.info("正在关闭应用...")

    try:
        maintenance_scheduler.shutdown()
    except Exception as e:
        logger.error(f"关闭维护调度器失败: {e}")

    try:
        await database.close()
        logger.info("数据库连接已关闭")
    except Exception as e:
        logger.error(f"关闭数据库连接失败: {e}")

    logger.info("应用已关闭")


# ========== 异常处理 ==========
def _error_body(message: str, details=None) -> dict:
    body = {"success": False, "error": message}
    if details:
        body["details"] = details
    return body


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} 失败: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, exc.details),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """请求体/参数校验失败：400 + 字段级详情"""
    details = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({"field": ".".join(loc), "message": error.get("msg", "")})
    return JSONResponse(status_code=400, content=_error_body("数据校验失败", details))


async def web_redirect_handler(request: Request, exc: WebRedirect):
    response = RedirectResponse(url=exc.url, status_code=303)
    if getattr(request.state, "clear_token_cookie", False):
        clear_token_cookie(response)
    return response


async def unhandled_error_handler(request: Request, exc: Exception):
    """未预期的异常：记录完整堆栈，调试模式下才返回异常信息"""
    logger.error(f"{request.method} {request.url.path} 未处理异常: {exc}", exc_info=exc)
    body = _error_body("服务器内部错误")
    if settings.DEBUG:
        body["details"] = [{"field": "", "message": str(exc)}]
    return JSONResponse(status_code=500, content=body)


# ========== 创建 FastAPI 应用 ==========
def create_app(database: Database | None = None) -> FastAPI:
    """
    创建应用实例
    传入 database 时直接使用（测试用），否则在启动时按配置创建
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="新闻发布后端 - 账号与角色、文章/分类/评论、检索与列表",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    if database is not None:
        app.state.database = database

    # CORS 中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(WebRedirect, web_redirect_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # 注册路由
    app.include_router(api_router)
    app.include_router(admin_router)
    app.include_router(pages_router)

    @app.get("/health", tags=["系统"])
    async def health_check():
        """健康检查"""
        return {"status": "ok", "name": settings.APP_NAME, "version": settings.APP_VERSION}

    return app


app = create_app()
