"""
用户与认证相关 Schema
"""
from typing import Optional, Dict
from datetime import datetime
from pydantic import Field, EmailStr, field_validator, model_validator

from portal.models.user import UserRole, StaffStatus, DEFAULT_STAFF_PERMISSIONS
from .base import BaseSchema, TimestampSchema


def _check_permission_names(v: Dict[str, bool]) -> Dict[str, bool]:
    unknown = set(v) - set(DEFAULT_STAFF_PERMISSIONS)
    if unknown:
        raise ValueError(f"未知权限: {', '.join(sorted(unknown))}")
    return v


class UserBase(BaseSchema):
    """用户基础字段"""

    first_name: str = Field(..., min_length=1, max_length=50, description="名")
    father_name: str = Field(..., min_length=1, max_length=50, description="父名")
    grandfather_name: str = Field(..., min_length=1, max_length=50, description="祖父名")
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.]+$", description="用户名")
    email: EmailStr = Field(..., description="邮箱")
    phone: Optional[str] = Field(None, max_length=20, description="电话")

    @field_validator("username", "email", mode="after")
    @classmethod
    def lowercase(cls, v: str) -> str:
        return v.lower()


class RegisterRequest(UserBase):
    """注册请求（只能注册为申请人）"""

    password: str = Field(..., min_length=6, max_length=128, description="密码")


class StaffProfileCreate(BaseSchema):
    """员工档案创建字段"""

    department: str = Field("General", max_length=50, description="部门")
    position: str = Field("Staff Member", max_length=100, description="职位")
    employee_id: Optional[str] = Field(None, max_length=20, description="工号")
    permissions: Dict[str, bool] = Field(default_factory=dict, description="权限覆盖")

    @field_validator("permissions")
    @classmethod
    def known_permissions(cls, v: Dict[str, bool]) -> Dict[str, bool]:
        return _check_permission_names(v)


class UserCreate(RegisterRequest):
    """管理员创建用户请求"""

    role: UserRole = Field(UserRole.APPLICANT, description="角色")
    is_verified: bool = Field(False, description="是否已验证")
    staff_profile: Optional[StaffProfileCreate] = Field(None, description="员工档案（仅 staff）")

    @model_validator(mode="after")
    def staff_profile_matches_role(self):
        if self.staff_profile is not None and self.role != UserRole.STAFF:
            raise ValueError("只有 staff 角色可以附带员工档案")
        return self


class UserUpdate(BaseSchema):
    """更新用户请求（角色不可变更）"""

    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    father_name: Optional[str] = Field(None, min_length=1, max_length=50)
    grandfather_name: Optional[str] = Field(None, min_length=1, max_length=50)
    phone: Optional[str] = Field(None, max_length=20)


class LoginRequest(BaseSchema):
    """登录请求：identifier 可以是邮箱或用户名"""

    identifier: str = Field(..., min_length=1, description="邮箱或用户名")
    password: str = Field(..., min_length=1, description="密码")


class RefreshRequest(BaseSchema):
    """刷新令牌请求"""

    refresh_token: str = Field(..., min_length=1)


class PasswordChangeRequest(BaseSchema):
    """修改密码请求"""

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


class PermissionsUpdate(BaseSchema):
    """员工权限更新请求（只修改传入的键）"""

    permissions: Dict[str, bool]

    @field_validator("permissions")
    @classmethod
    def known_permissions(cls, v: Dict[str, bool]) -> Dict[str, bool]:
        return _check_permission_names(v)


class StaffProfileResponse(TimestampSchema):
    """员工档案响应"""

    user_id: int
    employee_id: Optional[str]
    department: str
    position: str
    status: StaffStatus
    permissions: Dict[str, bool]


class UserResponse(TimestampSchema):
    """用户响应（不含密码哈希）"""

    role: UserRole
    first_name: str
    father_name: str
    grandfather_name: str
    full_name: str
    username: str
    email: str
    phone: Optional[str]
    is_active: bool
    is_verified: bool
    last_login: Optional[datetime]
    staff_profile: Optional[StaffProfileResponse] = None


class TokenPair(BaseSchema):
    """令牌对"""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class AuthResponse(BaseSchema):
    """登录 / 注册响应"""

    user: UserResponse
    tokens: TokenPair
