"""
用户与认证相关的 Pydantic 请求/响应模型
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.models.user import Role


# ==================== 请求模型 ====================

class RegisterRequest(BaseModel):
    """注册请求"""
    name: str = Field(..., min_length=2, max_length=100, description="显示名称")
    email: EmailStr = Field(..., description="邮箱")
    password: str = Field(..., min_length=6, max_length=128, description="密码")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("名称至少 2 个字符")
        return v


class LoginRequest(BaseModel):
    """登录请求"""
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class ChangePasswordRequest(BaseModel):
    """修改密码请求"""
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(..., min_length=1, alias="currentPassword")
    new_password: str = Field(..., min_length=6, max_length=128, alias="newPassword")


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6, max_length=128)


class SocialLinks(BaseModel):
    model_config = ConfigDict(extra="forbid")

    facebook: Optional[str] = None
    twitter: Optional[str] = None
    linkedin: Optional[str] = None
    instagram: Optional[str] = None


class NotificationPreferences(BaseModel):
    model_config = ConfigDict(extra="forbid")

    comments: bool = True
    replies: bool = True
    newsletter: bool = True


class Preferences(BaseModel):
    model_config = ConfigDict(extra="forbid")

    newsletter: bool = True
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)


class ProfileUpdateRequest(BaseModel):
    """个人资料更新（白名单字段，未知字段直接拒绝）"""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    avatar: Optional[str] = Field(None, max_length=500)
    social_links: Optional[SocialLinks] = None
    preferences: Optional[Preferences] = None


class AdminUserCreateRequest(BaseModel):
    """管理员创建用户"""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    role: Role = Role.USER
    is_active: bool = True
    email_verified: bool = False


class AdminUserUpdateRequest(BaseModel):
    """管理员更新用户（不包含密码）"""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    role: Optional[Role] = None
    is_active: Optional[bool] = None
    email_verified: Optional[bool] = None
    bio: Optional[str] = Field(None, max_length=500)
    avatar: Optional[str] = Field(None, max_length=500)


# ==================== 响应模型 ====================

class UserResponse(BaseModel):
    """用户公开资料（不含密码和重置令牌）"""
    id: int
    name: str
    email: str
    role: str
    avatar: str = ""
    bio: Optional[str] = None
    is_active: bool = True
    email_verified: bool = False
    social_links: dict = {}
    preferences: dict = {}
    last_login: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """注册 / 登录响应"""
    user: UserResponse
    token: str


class UserStats(BaseModel):
    total: int = 0
    users: int = 0
    editors: int = 0
    admins: int = 0
