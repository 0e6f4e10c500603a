"""
申请相关 Schema
"""
from typing import Optional, List, Dict, Any
from datetime import datetime
from pydantic import Field, model_validator

from portal.models.application import (
    ApplicationStatus,
    ApplicationType,
    NoteSeverity,
    InterviewType,
    InterviewResult,
    PaymentMethod,
    PaymentStatus,
    ListingRef,
    make_listing_ref,
)
from .base import BaseSchema, TimestampSchema


class ApplicationCreate(BaseSchema):
    """
    创建申请请求

    type 与 job_id / scholarship_id 必须恰好匹配一个目标，
    校验通过后通过 target 取得标签联合形式的目标引用。
    """

    type: ApplicationType = Field(..., description="申请类型")
    job_id: Optional[int] = Field(None, ge=1, description="招聘岗位ID")
    scholarship_id: Optional[int] = Field(None, ge=1, description="奖学金项目ID")

    @model_validator(mode="after")
    def exactly_one_target(self):
        make_listing_ref(self.type, self.job_id, self.scholarship_id)
        return self

    @property
    def target(self) -> ListingRef:
        return make_listing_ref(self.type, self.job_id, self.scholarship_id)


class ApplicationContentUpdate(BaseSchema):
    """更新申请内容请求：各分节按键合并"""

    personal_info: Optional[Dict[str, Any]] = None
    academic_info: Optional[Dict[str, Any]] = None
    work_experience: Optional[Dict[str, Any]] = None
    documents: Optional[Dict[str, Any]] = None
    additional_info: Optional[Dict[str, Any]] = None
    current_step: Optional[int] = Field(None, ge=0, le=10, description="当前步骤")
    passport_number: Optional[str] = Field(None, max_length=50)
    job_interest: Optional[str] = Field(None, max_length=255)

    def sections(self) -> Dict[str, Dict[str, Any]]:
        """只返回请求中出现的分节"""
        data = self.model_dump(exclude_unset=True)
        return {
            key: value for key, value in data.items()
            if key not in ("current_step", "passport_number", "job_interest")
        }


class ApplicationStatusUpdate(BaseSchema):
    status: ApplicationStatus


class ReviewNoteCreate(BaseSchema):
    note: str = Field(..., min_length=1, max_length=2000)
    severity: NoteSeverity = NoteSeverity.INFO


class InterviewSchedule(BaseSchema):
    """面试安排（合并写入）"""

    scheduled_date: Optional[datetime] = None
    interview_type: Optional[InterviewType] = None
    interviewer_id: Optional[int] = None
    meeting_link: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=2000)
    result: Optional[InterviewResult] = None


class PaymentUpdate(BaseSchema):
    """缴费信息（合并写入）"""

    amount: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    payment_method: Optional[PaymentMethod] = None
    payment_status: Optional[PaymentStatus] = None
    payment_date: Optional[datetime] = None
    transaction_id: Optional[str] = Field(None, max_length=100)


class ListingRefResponse(BaseSchema):
    type: ApplicationType
    id: int


class ReviewNoteResponse(BaseSchema):
    seq: int
    reviewer_id: int
    note: str
    severity: NoteSeverity
    created_at: datetime


class ApplicationResponse(TimestampSchema):
    """申请响应"""

    applicant_id: int
    type: ApplicationType
    job_id: Optional[int]
    scholarship_id: Optional[int]
    target: ListingRefResponse
    status: ApplicationStatus
    progress: int
    current_step: int
    submission_date: Optional[datetime]
    last_modified_by: Optional[int]
    passport_number: Optional[str]
    job_interest: Optional[str]
    application_data: Dict[str, Dict[str, Any]]
    review_notes: List[ReviewNoteResponse]
    interview_details: Optional[Dict[str, Any]]
    payment_info: Optional[Dict[str, Any]]

    # 派生字段
    is_submitted: bool
    is_terminal: bool
    days_since_submission: Optional[int]

    # 关联信息（简化）
    listing_name: Optional[str] = None


class ApplicationListResponse(TimestampSchema):
    """申请列表项响应"""

    applicant_id: int
    type: ApplicationType
    job_id: Optional[int]
    scholarship_id: Optional[int]
    status: ApplicationStatus
    progress: int
    submission_date: Optional[datetime]
    is_submitted: bool
    listing_name: Optional[str] = None
