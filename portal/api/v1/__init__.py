"""
API v1 路由模块
"""
from . import auth, users, applicants, listings, ads, applications, documents

__all__ = [
    "auth",
    "users",
    "applicants",
    "listings",
    "ads",
    "applications",
    "documents",
]
