"""
ORM 模型模块
"""
from .base import BaseModel, TimestampMixin
from .counter import IdCounter
from .user import User, StaffProfile, UserRole, StaffStatus, DEFAULT_STAFF_PERMISSIONS
from .applicant import Applicant, Education, Gender, Proficiency
from .listing import (
    Job, Scholarship, Listing, ListingStatus, ScholarshipProgram,
    refresh_listing_status, is_accepting_applications,
)
from .ad import Ad, AdType, AdCategory, AdPriority, AdApprovalStatus
from .application import (
    Application, ApplicationStatus, ApplicationType, NoteSeverity,
    InterviewType, InterviewResult, PaymentMethod, PaymentStatus,
    APPLICATION_SECTIONS, TERMINAL_STATUSES, JobRef, ScholarshipRef, ListingRef,
    compute_progress, make_listing_ref,
)
from .document import Document, DocumentType
from .message import Message, MessageType, MessagePriority, MAX_MESSAGE_LENGTH

__all__ = [
    # Base
    "BaseModel",
    "TimestampMixin",
    "IdCounter",
    # User
    "User",
    "StaffProfile",
    "UserRole",
    "StaffStatus",
    "DEFAULT_STAFF_PERMISSIONS",
    # Applicant
    "Applicant",
    "Education",
    "Gender",
    "Proficiency",
    # Listing
    "Job",
    "Scholarship",
    "Listing",
    "ListingStatus",
    "ScholarshipProgram",
    "refresh_listing_status",
    "is_accepting_applications",
    # Ad
    "Ad",
    "AdType",
    "AdCategory",
    "AdPriority",
    "AdApprovalStatus",
    # Application
    "Application",
    "ApplicationStatus",
    "ApplicationType",
    "NoteSeverity",
    "InterviewType",
    "InterviewResult",
    "PaymentMethod",
    "PaymentStatus",
    "APPLICATION_SECTIONS",
    "TERMINAL_STATUSES",
    "JobRef",
    "ScholarshipRef",
    "ListingRef",
    "compute_progress",
    "make_listing_ref",
    # Document
    "Document",
    "DocumentType",
    # Message
    "Message",
    "MessageType",
    "MessagePriority",
    "MAX_MESSAGE_LENGTH",
]
