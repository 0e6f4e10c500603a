"""
用户与员工档案模型模块
"""
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional
from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BaseModel

if TYPE_CHECKING:
    from .applicant import Applicant


class UserRole(str, Enum):
    """用户角色枚举"""
    ADMIN = "admin"
    STAFF = "staff"
    APPLICANT = "applicant"


class StaffStatus(str, Enum):
    """员工状态枚举"""
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    ON_LEAVE = "On Leave"
    TERMINATED = "Terminated"


# 员工权限及默认值
DEFAULT_STAFF_PERMISSIONS = {
    "can_view_applications": True,
    "can_edit_applications": False,
    "can_delete_applications": False,
    "can_view_users": True,
    "can_edit_users": False,
    "can_delete_users": False,
    "can_manage_jobs": False,
    "can_manage_scholarships": False,
    "can_manage_documents": True,
    "can_send_messages": True,
    "can_view_reports": False,
    "can_manage_ads": False,
}


class User(BaseModel):
    """
    用户模型（Principal）

    角色创建后不再变更；停用通过 is_active 实现，从不物理删除。
    """
    __tablename__ = "users"
    __sequence_name__ = "user_id"
    resource_kind = "user"

    role: Mapped[str] = mapped_column(
        String(20),
        default=UserRole.APPLICANT.value,
        nullable=False,
        index=True,
        comment="角色"
    )
    first_name: Mapped[str] = mapped_column(String(50), nullable=False, comment="名")
    father_name: Mapped[str] = mapped_column(String(50), nullable=False, comment="父名")
    grandfather_name: Mapped[str] = mapped_column(String(50), nullable=False, comment="祖父名")
    username: Mapped[str] = mapped_column(
        String(50), unique=True, index=True, nullable=False, comment="用户名"
    )
    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False, comment="邮箱"
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False, comment="密码哈希")
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, comment="电话")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, comment="是否启用")
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, comment="是否已验证")
    last_login: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, comment="最后登录时间"
    )

    # ========== 关联关系 ==========
    staff_profile: Mapped[Optional["StaffProfile"]] = relationship(
        "StaffProfile",
        back_populates="user",
        uselist=False,
        lazy="selectin",
    )
    applicant_profile: Mapped[Optional["Applicant"]] = relationship(
        "Applicant",
        back_populates="user",
        uselist=False,
        lazy="selectin",
    )

    @property
    def owner_id(self) -> int:
        return self.id

    @property
    def full_name(self) -> str:
        """全名"""
        return f"{self.first_name} {self.father_name} {self.grandfather_name}".strip()

    def __repr__(self) -> str:
        return f"<User(id={self.id}, role={self.role})>"


class StaffProfile(BaseModel):
    """
    员工档案模型

    permissions 为命名布尔权限集合，缺省值见 DEFAULT_STAFF_PERMISSIONS
    """
    __tablename__ = "staff_profiles"
    __sequence_name__ = "staff_id"

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        comment="用户ID"
    )
    employee_id: Mapped[Optional[str]] = mapped_column(String(20), unique=True, nullable=True, comment="工号")
    department: Mapped[str] = mapped_column(String(50), nullable=False, comment="部门")
    position: Mapped[str] = mapped_column(String(100), nullable=False, comment="职位")
    status: Mapped[str] = mapped_column(
        String(20), default=StaffStatus.ACTIVE.value, nullable=False, comment="员工状态"
    )
    permissions: Mapped[dict] = mapped_column(
        JSON,
        default=lambda: dict(DEFAULT_STAFF_PERMISSIONS),
        nullable=False,
        comment="权限集合"
    )

    user: Mapped["User"] = relationship("User", back_populates="staff_profile")

    def has_permission(self, name: str) -> bool:
        """检查是否拥有指定权限"""
        return (self.permissions or {}).get(name) is True

    def granted_permissions(self) -> frozenset:
        """已授予的权限名称集合"""
        return frozenset(k for k, v in (self.permissions or {}).items() if v is True)

    def __repr__(self) -> str:
        return f"<StaffProfile(id={self.id}, user_id={self.user_id})>"
