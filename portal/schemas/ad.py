"""
公告广告相关 Schema
"""
from typing import Optional, List
from datetime import datetime
from pydantic import Field, StrictBool, model_validator

from portal.models.ad import AdApprovalStatus, AdType, AdCategory, AdPriority
from .base import BaseSchema, TimestampSchema


class AdCreate(BaseSchema):
    """创建公告请求"""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=1000)
    content: Optional[str] = None
    type: AdType = AdType.ANNOUNCEMENT
    category: AdCategory = AdCategory.GENERAL
    priority: AdPriority = AdPriority.NORMAL
    target_audience: List[str] = Field(default_factory=lambda: ["All"])
    url: Optional[str] = Field(None, max_length=500)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: bool = True
    is_featured: bool = False
    is_pinned: bool = False

    @model_validator(mode="after")
    def end_after_start(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("结束时间不能早于开始时间")
        return self


class AdUpdate(BaseSchema):
    """更新公告请求"""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    content: Optional[str] = None
    type: Optional[AdType] = None
    category: Optional[AdCategory] = None
    priority: Optional[AdPriority] = None
    target_audience: Optional[List[str]] = None
    url: Optional[str] = Field(None, max_length=500)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None
    is_pinned: Optional[bool] = None


class AdResponse(TimestampSchema):
    """公告响应"""

    title: str
    description: str
    content: Optional[str]
    type: AdType
    category: AdCategory
    priority: AdPriority
    target_audience: List[str]
    url: Optional[str]
    start_date: datetime
    end_date: Optional[datetime]
    is_active: bool
    is_featured: bool
    is_pinned: bool
    is_running: bool
    view_count: int
    click_count: int
    click_through_rate: int
    approval_status: AdApprovalStatus
    approved_by: Optional[int]
    approval_notes: Optional[str]
    rejection_reason: Optional[str]
    created_by: int
    last_modified_by: Optional[int]


class AdApprove(BaseSchema):
    """审核通过请求"""

    notes: str = Field("", max_length=500)


class AdReject(BaseSchema):
    """驳回请求"""

    reason: str = Field("", max_length=500)


class AdFeature(BaseSchema):
    """推荐开关"""

    is_featured: StrictBool


class AdPin(BaseSchema):
    """置顶开关"""

    is_pinned: StrictBool
