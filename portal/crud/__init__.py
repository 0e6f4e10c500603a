"""
CRUD 操作模块
"""
from .user import user_crud, staff_profile_crud
from .applicant import applicant_crud, education_crud
from .listing import job_crud, scholarship_crud
from .ad import ad_crud
from .application import application_crud
from .document import document_crud
from .message import message_crud

__all__ = [
    "user_crud",
    "staff_profile_crud",
    "applicant_crud",
    "education_crud",
    "job_crud",
    "scholarship_crud",
    "ad_crud",
    "application_crud",
    "document_crud",
    "message_crud",
]
