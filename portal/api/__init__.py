"""
API 路由模块
"""
from fastapi import APIRouter

from .v1 import auth, users, applicants, listings, ads, applications, documents, chat

# 创建主路由
api_router = APIRouter()

# 注册各模块路由
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["认证"]
)
api_router.include_router(
    users.router,
    prefix="/users",
    tags=["用户管理"]
)
api_router.include_router(
    applicants.router,
    prefix="/applicants",
    tags=["申请人档案"]
)
api_router.include_router(
    listings.job_router,
    prefix="/jobs",
    tags=["招聘岗位"]
)
api_router.include_router(
    listings.scholarship_router,
    prefix="/scholarships",
    tags=["奖学金项目"]
)
api_router.include_router(
    ads.router,
    prefix="/ads",
    tags=["公告"]
)
api_router.include_router(
    applications.router,
    prefix="/applications",
    tags=["申请"]
)
api_router.include_router(
    documents.router,
    prefix="/documents",
    tags=["文档"]
)
api_router.include_router(
    chat.router,
    prefix="/chat",
    tags=["站内消息"]
)
