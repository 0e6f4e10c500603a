"""
用户与员工档案 CRUD 操作
"""
from typing import Optional, List
from sqlalchemy import select, or_, func
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.security import hash_password
from portal.models.user import User, StaffProfile, UserRole, DEFAULT_STAFF_PERMISSIONS
from .base import CRUDBase


class CRUDUser(CRUDBase[User]):
    """用户 CRUD 操作类"""

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(self.model).where(self.model.email == email.lower()))
        return result.scalar_one_or_none()

    async def get_by_username(self, db: AsyncSession, username: str) -> Optional[User]:
        result = await db.execute(select(self.model).where(self.model.username == username.lower()))
        return result.scalar_one_or_none()

    async def get_by_identifier(self, db: AsyncSession, identifier: str) -> Optional[User]:
        """按邮箱或用户名查找"""
        identifier = identifier.strip().lower()
        result = await db.execute(
            select(self.model).where(
                or_(self.model.email == identifier, self.model.username == identifier)
            )
        )
        return result.scalar_one_or_none()

    async def exists(self, db: AsyncSession, email: str, username: str) -> bool:
        """邮箱或用户名是否已被占用"""
        result = await db.execute(
            select(func.count()).select_from(self.model).where(
                or_(self.model.email == email.lower(), self.model.username == username.lower())
            )
        )
        return (result.scalar() or 0) > 0

    async def search(
        self,
        db: AsyncSession,
        *,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        keyword: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> tuple[List[User], int]:
        """多条件筛选用户，返回 (列表, 总数)"""
        filters = []
        if role:
            filters.append(self.model.role == role)
        if is_active is not None:
            filters.append(self.model.is_active == is_active)
        if keyword:
            pattern = f"%{keyword.lower()}%"
            filters.append(or_(
                self.model.username.like(pattern),
                self.model.email.like(pattern),
                func.lower(self.model.first_name).like(pattern),
            ))
        items = await self.get_multi(db, skip=skip, limit=limit, filters=filters)
        total = await self.count(db, filters=filters)
        return items, total

    async def create_user(
        self,
        db: AsyncSession,
        *,
        data: dict,
        password: str,
        role: UserRole = UserRole.APPLICANT
    ) -> User:
        """创建用户（密码在此处哈希，不落明文）"""
        return await self.create(db, obj_in={
            **data,
            "role": UserRole(role).value,
            "password_hash": hash_password(password),
        })


class CRUDStaffProfile(CRUDBase[StaffProfile]):
    """员工档案 CRUD 操作类"""

    async def get_by_user_id(self, db: AsyncSession, user_id: int) -> Optional[StaffProfile]:
        result = await db.execute(select(self.model).where(self.model.user_id == user_id))
        return result.scalar_one_or_none()

    async def create_for_user(
        self,
        db: AsyncSession,
        *,
        user_id: int,
        department: str = "General",
        position: str = "Staff Member",
        employee_id: Optional[str] = None,
        permissions: Optional[dict] = None
    ) -> StaffProfile:
        """创建员工档案，权限在默认值基础上覆盖"""
        return await self.create(db, obj_in={
            "user_id": user_id,
            "department": department,
            "position": position,
            "employee_id": employee_id,
            "permissions": {**DEFAULT_STAFF_PERMISSIONS, **(permissions or {})},
        })


user_crud = CRUDUser(User)
staff_profile_crud = CRUDStaffProfile(StaffProfile)
