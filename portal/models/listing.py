"""
招聘 / 奖学金岗位模型模块

Job 与 Scholarship 共享 ListingMixin 中的截止日期、状态与申请计数。
"""
import math
from datetime import datetime
from enum import Enum
from typing import Optional, Union
from sqlalchemy import Boolean, DateTime, Float, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.orm.attributes import flag_modified

from .base import BaseModel, as_utc, utcnow


class ListingStatus(str, Enum):
    """岗位状态枚举"""
    DRAFT = "Draft"
    UPCOMING = "Upcoming"
    ACTIVE = "Active"
    CLOSED = "Closed"


class ScholarshipProgram(str, Enum):
    """奖学金项目层次"""
    UG = "UG"
    MSC = "MSC"
    PHD = "PhD"
    HOD = "HOD"


class ListingMixin:
    """岗位公共字段"""

    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True, comment="名称")
    description: Mapped[str] = mapped_column(Text, nullable=False, comment="描述")
    requirements: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="申请要求")
    benefits: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="福利")
    country: Mapped[str] = mapped_column(String(50), nullable=False, index=True, comment="国家")
    application_fee: Mapped[float] = mapped_column(Float, default=0, nullable=False, comment="申请费")
    status: Mapped[str] = mapped_column(
        String(20),
        default=ListingStatus.DRAFT.value,
        nullable=False,
        index=True,
        comment="状态"
    )
    deadline: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True, comment="截止时间"
    )
    tags: Mapped[list] = mapped_column(JSON, default=list, nullable=False, comment="标签")
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, comment="是否推荐")
    application_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False, comment="申请数量")
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False, comment="浏览次数")
    created_by: Mapped[int] = mapped_column(Integer, nullable=False, index=True, comment="创建人ID")
    last_modified_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="最后修改人ID")

    @property
    def owner_id(self) -> int:
        return self.created_by

    @property
    def is_deadline_passed(self) -> bool:
        """截止时间是否已过"""
        return utcnow() > as_utc(self.deadline)

    @property
    def days_until_deadline(self) -> int:
        """距截止的天数（向上取整）"""
        delta = as_utc(self.deadline) - utcnow()
        return math.ceil(delta.total_seconds() / 86400)

    @property
    def is_accepting_applications(self) -> bool:
        return is_accepting_applications(self)


class Job(ListingMixin, BaseModel):
    """
    招聘岗位模型

    positions JSON 格式示例:
    [
        {
            "seq": 1,
            "title": "Nurse",
            "level": "Mid",
            "employment_type": "Full-time",
            "salary_range": {"min": 1000, "max": 2000, "currency": "USD"},
            "vacancies": 3
        }
    ]
    """
    __tablename__ = "jobs"
    __sequence_name__ = "job_id"
    resource_kind = "job"

    city: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, comment="城市")
    responsibilities: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="岗位职责")
    company: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False, comment="公司信息")
    positions: Mapped[list] = mapped_column(JSON, default=list, nullable=False, comment="职位列表")
    start_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, comment="入职日期")
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, comment="结束日期")

    @property
    def total_vacancies(self) -> int:
        """总空缺数"""
        return sum(p.get("vacancies", 1) for p in (self.positions or []))

    def set_positions(self, positions: list) -> None:
        """整体替换职位列表，为每项分配 seq"""
        self.positions = [{**p, "seq": i} for i, p in enumerate(positions, start=1)]
        flag_modified(self, "positions")

    def validate_dates(self) -> Optional[str]:
        """校验日期关系，返回错误信息或 None"""
        start, end, deadline = as_utc(self.start_date), as_utc(self.end_date), as_utc(self.deadline)
        if start and end and end < start:
            return "结束日期不能早于开始日期"
        if deadline and start and deadline > start:
            return "申请截止时间不能晚于入职日期"
        return None

    def __repr__(self) -> str:
        return f"<Job(id={self.id}, status={self.status})>"


class Scholarship(ListingMixin, BaseModel):
    """奖学金项目模型"""
    __tablename__ = "scholarships"
    __sequence_name__ = "scholarship_id"
    resource_kind = "scholarship"

    university_name: Mapped[str] = mapped_column(String(150), nullable=False, index=True, comment="大学名称")
    university_website: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, comment="大学网站")
    program: Mapped[list] = mapped_column(JSON, default=list, nullable=False, comment="项目层次")
    major: Mapped[str] = mapped_column(String(100), nullable=False, comment="专业")
    intake_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, comment="入学时间")
    coverage: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False, comment="资助范围")
    financial_support: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False, comment="资助金额")

    def validate_dates(self) -> Optional[str]:
        """校验日期关系，返回错误信息或 None"""
        if self.deadline and self.intake_date and as_utc(self.deadline) >= as_utc(self.intake_date):
            return "申请截止时间必须早于入学时间"
        return None

    def __repr__(self) -> str:
        return f"<Scholarship(id={self.id}, status={self.status})>"


Listing = Union[Job, Scholarship]


def refresh_listing_status(listing: Listing, now: Optional[datetime] = None) -> bool:
    """
    惰性状态修正：Active 且已过截止时间 -> Closed

    读取和保存时调用，不依赖后台定时任务。返回状态是否发生变化。
    """
    now = now or utcnow()
    if listing.status == ListingStatus.ACTIVE.value and now > as_utc(listing.deadline):
        listing.status = ListingStatus.CLOSED.value
        return True
    return False


def is_accepting_applications(listing: Listing, now: Optional[datetime] = None) -> bool:
    """
    是否接受申请：status == Active 且 now <= deadline

    即使惰性修正尚未改写 status，过期岗位也会被拒绝。
    """
    now = now or utcnow()
    return listing.status == ListingStatus.ACTIVE.value and now <= as_utc(listing.deadline)
