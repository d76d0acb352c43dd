"""
业务异常定义
所有业务失败都抛出 AppError 子类，由 main.py 注册的异常处理器统一转换为
{"success": false, "error": ...} 响应；浏览器流程使用 WebRedirect 转为重定向。
"""

from typing import Any, Optional


class AppError(Exception):
    """业务异常基类"""

    status_code: int = 500
    message: str = "服务器内部错误"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        details: Optional[list[dict[str, Any]]] = None,
    ):
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ValidationError(AppError):
    """请求数据不合法（带字段级详情）"""
    status_code = 400
    message = "数据校验失败"


class Unauthorized(AppError):
    """未登录或凭据无效"""
    status_code = 401
    message = "未登录或登录已失效"


class Forbidden(AppError):
    """已登录但权限不足"""
    status_code = 403
    message = "权限不足"


class NotFound(AppError):
    status_code = 404
    message = "资源不存在"


class Conflict(AppError):
    """唯一字段冲突"""
    status_code = 409
    message = "数据已存在"


class InternalError(AppError):
    status_code = 500
    message = "服务器内部错误"


class DuplicateEmail(Conflict):
    """注册邮箱已存在（对外按 400 返回）"""
    status_code = 400
    message = "该邮箱已被注册"


class InvalidCredentials(Unauthorized):
    """邮箱或密码错误（不区分账号不存在与密码错误）"""
    message = "邮箱或密码错误"


class InvalidOrExpiredToken(AppError):
    """密码重置令牌无效或已过期"""
    status_code = 400
    message = "重置令牌无效或已过期"


class InvalidToken(Exception):
    """会话令牌签名无效、格式错误或已过期（由令牌服务抛出）"""


class WebRedirect(Exception):
    """浏览器流程中的重定向（不是错误响应）"""

    def __init__(self, url: str):
        self.url = url
        super().__init__(url)
