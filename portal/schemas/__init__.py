"""
Pydantic Schema 模块

定义 API 请求和响应的数据结构
"""
from .base import BaseSchema, TimestampSchema
from .user import (
    RegisterRequest,
    UserCreate,
    UserUpdate,
    LoginRequest,
    RefreshRequest,
    PasswordChangeRequest,
    PermissionsUpdate,
    StaffProfileCreate,
    StaffProfileResponse,
    UserResponse,
    TokenPair,
    AuthResponse,
)
from .applicant import (
    ApplicantUpdate,
    SkillRequest,
    LanguageRequest,
    WorkExperienceCreate,
    WorkExperienceUpdate,
    EducationCreate,
    EducationResponse,
    ApplicantResponse,
    ApplicantListResponse,
)
from .listing import (
    JobCreate,
    JobUpdate,
    JobResponse,
    ScholarshipCreate,
    ScholarshipUpdate,
    ScholarshipResponse,
)
from .ad import AdCreate, AdUpdate, AdResponse, AdApprove, AdReject, AdFeature, AdPin
from .application import (
    ApplicationCreate,
    ApplicationContentUpdate,
    ApplicationStatusUpdate,
    ReviewNoteCreate,
    InterviewSchedule,
    PaymentUpdate,
    ApplicationResponse,
    ApplicationListResponse,
)
from .document import DocumentMeta, DocumentUpdate, DocumentVerify, DocumentResponse
from .message import (
    MessageAttachment,
    MessageSend,
    ChatMessageResponse,
    ParticipantInfo,
    ConversationSummary,
)

__all__ = [
    "BaseSchema",
    "TimestampSchema",
    # User
    "RegisterRequest",
    "UserCreate",
    "UserUpdate",
    "LoginRequest",
    "RefreshRequest",
    "PasswordChangeRequest",
    "PermissionsUpdate",
    "StaffProfileCreate",
    "StaffProfileResponse",
    "UserResponse",
    "TokenPair",
    "AuthResponse",
    # Applicant
    "ApplicantUpdate",
    "SkillRequest",
    "LanguageRequest",
    "WorkExperienceCreate",
    "WorkExperienceUpdate",
    "EducationCreate",
    "EducationResponse",
    "ApplicantResponse",
    "ApplicantListResponse",
    # Listing
    "JobCreate",
    "JobUpdate",
    "JobResponse",
    "ScholarshipCreate",
    "ScholarshipUpdate",
    "ScholarshipResponse",
    # Ad
    "AdCreate",
    "AdUpdate",
    "AdResponse",
    "AdApprove",
    "AdReject",
    "AdFeature",
    "AdPin",
    # Application
    "ApplicationCreate",
    "ApplicationContentUpdate",
    "ApplicationStatusUpdate",
    "ReviewNoteCreate",
    "InterviewSchedule",
    "PaymentUpdate",
    "ApplicationResponse",
    "ApplicationListResponse",
    # Document
    "DocumentMeta",
    "DocumentUpdate",
    "DocumentVerify",
    "DocumentResponse",
    # Message
    "MessageAttachment",
    "MessageSend",
    "ChatMessageResponse",
    "ParticipantInfo",
    "ConversationSummary",
]
