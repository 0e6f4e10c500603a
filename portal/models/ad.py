"""
公告广告模型模块
"""
from datetime import datetime
from enum import Enum
from typing import Optional
from sqlalchemy import Boolean, DateTime, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, as_utc, utcnow


class AdType(str, Enum):
    """公告类型"""
    ANNOUNCEMENT = "Announcement"
    NEWS = "News"
    EVENT = "Event"
    PROMOTION = "Promotion"
    POLICY = "Policy"
    UPDATE = "Update"


class AdCategory(str, Enum):
    """公告分类"""
    GENERAL = "General"
    JOB = "Job"
    SCHOLARSHIP = "Scholarship"
    SYSTEM = "System"
    MAINTENANCE = "Maintenance"
    OTHER = "Other"


class AdPriority(str, Enum):
    """优先级"""
    LOW = "Low"
    NORMAL = "Normal"
    HIGH = "High"
    URGENT = "Urgent"


class AdApprovalStatus(str, Enum):
    """审核状态"""
    DRAFT = "Draft"
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class Ad(BaseModel):
    """公告广告模型"""
    __tablename__ = "ads"
    __sequence_name__ = "ad_id"
    resource_kind = "ad"

    title: Mapped[str] = mapped_column(String(200), nullable=False, comment="标题")
    description: Mapped[str] = mapped_column(Text, nullable=False, comment="摘要")
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="正文")
    type: Mapped[str] = mapped_column(String(20), default=AdType.ANNOUNCEMENT.value, nullable=False, comment="类型")
    category: Mapped[str] = mapped_column(String(20), default=AdCategory.GENERAL.value, nullable=False, comment="分类")
    priority: Mapped[str] = mapped_column(String(10), default=AdPriority.NORMAL.value, nullable=False, comment="优先级")
    target_audience: Mapped[list] = mapped_column(JSON, default=lambda: ["All"], nullable=False, comment="目标人群")
    url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, comment="链接")
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, comment="开始时间")
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, comment="结束时间")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True, comment="是否启用")
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, comment="是否推荐")
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, comment="是否置顶")
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False, comment="浏览次数")
    click_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False, comment="点击次数")
    created_by: Mapped[int] = mapped_column(Integer, nullable=False, comment="创建人ID")
    last_modified_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="最后修改人ID")

    # ========== 审核 ==========
    approval_status: Mapped[str] = mapped_column(
        String(10), default=AdApprovalStatus.DRAFT.value, nullable=False, index=True, comment="审核状态"
    )
    approved_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="审核人ID")
    approval_notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, comment="审核备注")
    rejection_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, comment="驳回原因")

    @property
    def owner_id(self) -> int:
        return self.created_by

    @property
    def is_approved(self) -> bool:
        return self.approval_status == AdApprovalStatus.APPROVED.value

    @property
    def is_running(self) -> bool:
        """已审核通过、已启用且处于展示期内"""
        now = utcnow()
        if not (self.is_active and self.is_approved) or as_utc(self.start_date) > now:
            return False
        return self.end_date is None or as_utc(self.end_date) >= now

    @property
    def click_through_rate(self) -> int:
        """点击率（百分比，取整）"""
        if not self.view_count:
            return 0
        return round(100 * (self.click_count or 0) / self.view_count)

    def approve(self, approver_id: int, notes: str = "") -> None:
        self.approval_status = AdApprovalStatus.APPROVED.value
        self.approved_by = approver_id
        self.approval_notes = notes
        self.rejection_reason = None

    def reject(self, approver_id: int, reason: str = "") -> None:
        self.approval_status = AdApprovalStatus.REJECTED.value
        self.approved_by = approver_id
        self.rejection_reason = reason
        self.approval_notes = None

    def publish(self, approver_id: int) -> None:
        """直接上线：视为审核通过，从当前时间开始展示"""
        self.approval_status = AdApprovalStatus.APPROVED.value
        self.approved_by = approver_id
        self.is_active = True
        self.start_date = utcnow()

    def unpublish(self) -> None:
        self.is_active = False

    def __repr__(self) -> str:
        return f"<Ad(id={self.id}, title={self.title})>"
