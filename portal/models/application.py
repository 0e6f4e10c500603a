"""
申请模型模块

Application 是整个系统的核心表：一个申请人针对一个招聘岗位或奖学金项目的申请，
负责状态流转、进度计算以及评审备注 / 面试 / 缴费等子记录。
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional, Union
from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.orm.attributes import flag_modified

from .base import BaseModel, as_utc, utcnow

if TYPE_CHECKING:
    from .applicant import Applicant


class ApplicationStatus(str, Enum):
    """申请状态枚举"""
    DRAFT = "Draft"                  # 草稿
    IN_PROGRESS = "In Progress"      # 填写中
    SUBMITTED = "Submitted"          # 已提交
    UNDER_REVIEW = "Under Review"    # 审核中
    APPROVED = "Approved"            # 已通过
    REJECTED = "Rejected"            # 已拒绝
    WITHDRAWN = "Withdrawn"          # 已撤回


# 终态：不再有任何出边
TERMINAL_STATUSES = frozenset({
    ApplicationStatus.APPROVED,
    ApplicationStatus.REJECTED,
    ApplicationStatus.WITHDRAWN,
})

# 申请人可以提交的状态
SUBMITTABLE_STATUSES = frozenset({
    ApplicationStatus.DRAFT,
    ApplicationStatus.IN_PROGRESS,
})

# 申请人不能重新开始的状态
NON_RESTARTABLE_STATUSES = frozenset({
    ApplicationStatus.SUBMITTED,
    ApplicationStatus.APPROVED,
})


class ApplicationType(str, Enum):
    """申请目标类型"""
    JOB = "Job"
    SCHOLARSHIP = "Scholarship"


class NoteSeverity(str, Enum):
    """评审备注级别"""
    INFO = "Info"
    WARNING = "Warning"
    ERROR = "Error"
    SUCCESS = "Success"


class InterviewType(str, Enum):
    """面试方式"""
    IN_PERSON = "In-person"
    VIDEO_CALL = "Video Call"
    PHONE_CALL = "Phone Call"


class InterviewResult(str, Enum):
    """面试结果"""
    PASSED = "Passed"
    FAILED = "Failed"
    PENDING = "Pending"


class PaymentMethod(str, Enum):
    """缴费方式"""
    CREDIT_CARD = "Credit Card"
    BANK_TRANSFER = "Bank Transfer"
    PAYPAL = "PayPal"
    CASH = "Cash"


class PaymentStatus(str, Enum):
    """缴费状态"""
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"
    REFUNDED = "Refunded"


# application_data 的固定分节
APPLICATION_SECTIONS = (
    "personal_info",
    "academic_info",
    "work_experience",
    "documents",
    "additional_info",
)


def empty_application_data() -> dict:
    return {section: {} for section in APPLICATION_SECTIONS}


def compute_progress(application_data: Optional[dict]) -> int:
    """
    计算申请进度

    progress = round(100 * 已填写分节数 / len(APPLICATION_SECTIONS))，分节为非空字典即视为已填写。
    只统计固定分节：缺失的分节算未填写，多出的键不计入。
    """
    if not application_data:
        return 0
    completed = sum(
        1 for section in APPLICATION_SECTIONS
        if isinstance(application_data.get(section), dict) and application_data[section]
    )
    return round(100 * completed / len(APPLICATION_SECTIONS))


# ==================== 申请目标（标签联合） ====================

@dataclass(frozen=True)
class JobRef:
    """指向招聘岗位"""
    id: int
    type: ApplicationType = ApplicationType.JOB


@dataclass(frozen=True)
class ScholarshipRef:
    """指向奖学金项目"""
    id: int
    type: ApplicationType = ApplicationType.SCHOLARSHIP


ListingRef = Union[JobRef, ScholarshipRef]


def make_listing_ref(
    type_: ApplicationType,
    job_id: Optional[int],
    scholarship_id: Optional[int],
) -> ListingRef:
    """
    由 (type, job_id, scholarship_id) 构造目标引用

    恰好一个 ID 非空且与 type 一致，否则抛出 ValueError。
    """
    type_ = ApplicationType(type_)
    if type_ is ApplicationType.JOB:
        if job_id is None:
            raise ValueError("招聘申请必须提供 job_id")
        if scholarship_id is not None:
            raise ValueError("招聘申请不能同时提供 scholarship_id")
        return JobRef(id=job_id)
    if scholarship_id is None:
        raise ValueError("奖学金申请必须提供 scholarship_id")
    if job_id is not None:
        raise ValueError("奖学金申请不能同时提供 job_id")
    return ScholarshipRef(id=scholarship_id)


class Application(BaseModel):
    """
    申请模型（核心表）

    关联关系:
    - N:1 -> Applicant
    - N:1 -> Job 或 Scholarship（二选一，由 type 决定）
    - 1:N -> Document（documents.application_id）

    review_notes JSON 格式示例:
    [
        {
            "seq": 1,
            "reviewer_id": 3,
            "note": "missing transcript",
            "severity": "Warning",
            "created_at": "2024-01-01T10:00:00+00:00"
        }
    ]
    """
    __tablename__ = "applications"
    __sequence_name__ = "application_id"
    __table_args__ = (
        UniqueConstraint("applicant_id", "job_id", name="uq_application_applicant_job"),
        UniqueConstraint("applicant_id", "scholarship_id", name="uq_application_applicant_scholarship"),
        CheckConstraint(
            "(type = 'Job' AND job_id IS NOT NULL AND scholarship_id IS NULL) OR "
            "(type = 'Scholarship' AND scholarship_id IS NOT NULL AND job_id IS NULL)",
            name="ck_application_single_target",
        ),
    )
    resource_kind = "application"

    # ========== 外键关联 ==========
    applicant_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("applicants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="申请人ID"
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True, comment="申请类型")
    job_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("jobs.id"),
        nullable=True,
        index=True,
        comment="招聘岗位ID"
    )
    scholarship_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("scholarships.id"),
        nullable=True,
        index=True,
        comment="奖学金项目ID"
    )

    # ========== 状态管理 ==========
    status: Mapped[str] = mapped_column(
        String(20),
        default=ApplicationStatus.DRAFT.value,
        nullable=False,
        index=True,
        comment="申请状态"
    )
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False, comment="填写进度")
    current_step: Mapped[int] = mapped_column(Integer, default=0, nullable=False, comment="当前步骤")
    submission_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True, comment="提交时间"
    )
    last_modified_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="最后修改人ID")

    # ========== 申请内容 ==========
    passport_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, comment="护照号")
    job_interest: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, comment="意向职位")
    application_data: Mapped[dict] = mapped_column(
        JSON, default=empty_application_data, nullable=False, comment="申请内容分节"
    )

    # ========== 子记录 ==========
    review_notes: Mapped[list] = mapped_column(JSON, default=list, nullable=False, comment="评审备注")
    interview_details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True, comment="面试安排")
    payment_info: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True, comment="缴费信息")

    # ========== 关联关系 ==========
    applicant: Mapped["Applicant"] = relationship("Applicant", lazy="selectin")

    # ========== 派生属性 ==========

    @property
    def owner_id(self) -> Optional[int]:
        """所属 Principal ID（经由 Applicant 传递）"""
        return self.applicant.user_id if self.applicant else None

    @property
    def target(self) -> ListingRef:
        return make_listing_ref(self.type, self.job_id, self.scholarship_id)

    @property
    def status_enum(self) -> ApplicationStatus:
        return ApplicationStatus(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.status_enum in TERMINAL_STATUSES

    @property
    def is_submitted(self) -> bool:
        return self.status != ApplicationStatus.DRAFT.value and self.submission_date is not None

    @property
    def days_since_submission(self) -> Optional[int]:
        if not self.submission_date:
            return None
        return (utcnow() - as_utc(self.submission_date)).days

    # ========== 状态与内容 ==========

    def recalculate_progress(self) -> int:
        """重新计算并写回进度"""
        self.progress = compute_progress(self.application_data)
        return self.progress

    def merge_content(self, sections: dict) -> None:
        """把各分节的内容合并进 application_data，并重新计算进度"""
        data = {key: dict(value or {}) for key, value in (self.application_data or {}).items()}
        for section, values in sections.items():
            if values is None:
                continue
            data.setdefault(section, {}).update(values)
        self.application_data = data
        flag_modified(self, "application_data")
        self.recalculate_progress()

    def update_status(self, new_status: ApplicationStatus, user_id: Optional[int] = None) -> None:
        """直接设置状态；首次进入 Submitted 时记录提交时间"""
        self.status = ApplicationStatus(new_status).value
        if user_id is not None:
            self.last_modified_by = user_id
        if self.status == ApplicationStatus.SUBMITTED.value and self.submission_date is None:
            self.submission_date = utcnow()

    def restart(self, user_id: Optional[int] = None) -> None:
        """重置为草稿：进度 / 步骤清零，清除提交时间"""
        self.status = ApplicationStatus.DRAFT.value
        self.progress = 0
        self.current_step = 0
        self.submission_date = None
        if user_id is not None:
            self.last_modified_by = user_id

    # ========== 子记录 ==========

    def add_review_note(
        self,
        reviewer_id: int,
        note: str,
        severity: NoteSeverity = NoteSeverity.INFO,
    ) -> dict:
        """追加评审备注（只追加，不修改已有条目）"""
        notes = list(self.review_notes or [])
        entry = {
            "seq": len(notes) + 1,
            "reviewer_id": reviewer_id,
            "note": note,
            "severity": NoteSeverity(severity).value,
            "created_at": utcnow().isoformat(),
        }
        notes.append(entry)
        self.review_notes = notes
        flag_modified(self, "review_notes")
        return entry

    def schedule_interview(self, details: dict) -> dict:
        """合并面试安排"""
        merged = {
            "interview_type": InterviewType.VIDEO_CALL.value,
            "result": InterviewResult.PENDING.value,
            **(self.interview_details or {}),
            **details,
        }
        self.interview_details = merged
        flag_modified(self, "interview_details")
        return merged

    def update_payment(self, payment: dict) -> dict:
        """合并缴费信息"""
        merged = {
            "currency": "USD",
            "payment_method": PaymentMethod.CREDIT_CARD.value,
            "payment_status": PaymentStatus.PENDING.value,
            **(self.payment_info or {}),
            **payment,
        }
        self.payment_info = merged
        flag_modified(self, "payment_info")
        return merged

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, status={self.status})>"
