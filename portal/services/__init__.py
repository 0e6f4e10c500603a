"""
服务层模块
"""
from .policy import (
    Action,
    Principal,
    ResourceRef,
    can_access,
    ensure_access,
    ensure_role,
)
from .profile import ProfileService, compute_profile_completion, get_profile_service
from .lifecycle import ApplicationLifecycleService, get_lifecycle_service
from .listings import ListingService, AdService, job_service, scholarship_service, ad_service
from .documents import DocumentService, get_document_service, read_upload, validate_upload
from .auth import AuthService, UserService, get_auth_service, get_user_service, principal_for
from .chat import ChatService, get_chat_service

__all__ = [
    # 授权策略
    "Action",
    "Principal",
    "ResourceRef",
    "can_access",
    "ensure_access",
    "ensure_role",
    # 申请人档案
    "ProfileService",
    "compute_profile_completion",
    "get_profile_service",
    # 申请生命周期
    "ApplicationLifecycleService",
    "get_lifecycle_service",
    # 岗位与公告
    "ListingService",
    "AdService",
    "job_service",
    "scholarship_service",
    "ad_service",
    # 文档
    "DocumentService",
    "get_document_service",
    "read_upload",
    "validate_upload",
    # 认证与用户
    "AuthService",
    "UserService",
    "get_auth_service",
    "get_user_service",
    "principal_for",
    # 站内消息
    "ChatService",
    "get_chat_service",
]
