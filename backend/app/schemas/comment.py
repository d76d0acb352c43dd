"""
评论相关的 Pydantic 请求/响应模型
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.base import MAX_RECORD_ID
from app.models.comment import CommentStatus


class CommentCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    content: str = Field(..., min_length=1, max_length=1000)
    parent_id: Optional[int] = Field(None, ge=1, le=MAX_RECORD_ID, description="回复的评论 ID")


class CommentEditRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    content: str = Field(..., min_length=1, max_length=1000)


class CommentReportRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reason: Optional[str] = Field(None, max_length=500)


class CommentStatusUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: CommentStatus


class CommentAuthor(BaseModel):
    id: int
    name: str
    avatar: str = ""

    model_config = {"from_attributes": True}


class CommentResponse(BaseModel):
    id: int
    content: str
    article_id: int
    user_id: int
    parent_id: Optional[int] = None
    status: str
    is_edited: bool
    edited_at: Optional[datetime] = None
    like_count: int = 0
    report_count: int = 0
    created_at: datetime
    user: Optional[CommentAuthor] = None

    model_config = {"from_attributes": True}


class CommentThread(CommentResponse):
    """顶层评论及其已通过的回复"""
    replies: list[CommentResponse] = []


class CommentStats(BaseModel):
    total: int = 0
    approved: int = 0
    pending: int = 0
    rejected: int = 0
    spam: int = 0
