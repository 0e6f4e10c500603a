"""
认证与用户管理服务

注册只能产生申请人；员工与管理员由管理员创建。用户从不物理删除，停用即可。
"""
from typing import Optional, List, Tuple

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.config import settings
from portal.core.exceptions import (
    ConflictException,
    NotFoundException,
    UnauthorizedException,
    ValidationFailedException,
)
from portal.core.security import (
    REFRESH_TOKEN_TYPE,
    decode_token,
    hash_password,
    issue_tokens,
    verify_password,
)
from portal.crud import staff_profile_crud, user_crud
from portal.models.base import utcnow
from portal.models.user import User, UserRole
from portal.schemas.user import (
    PasswordChangeRequest,
    PermissionsUpdate,
    RegisterRequest,
    UserCreate,
    UserUpdate,
)
from .policy import Action, Principal, ResourceRef, ensure_access, ensure_role
from .profile import get_profile_service

_PROFILE_FIELDS = {"password", "role", "is_verified", "staff_profile"}


def principal_for(user: User) -> Principal:
    """由用户记录构造 Principal"""
    permissions = frozenset()
    if user.role == UserRole.STAFF.value and user.staff_profile is not None:
        permissions = user.staff_profile.granted_permissions()
    return Principal(id=user.id, role=UserRole(user.role), permissions=permissions)


async def _ensure_unique(db: AsyncSession, email: str, username: str) -> None:
    if await user_crud.exists(db, email, username):
        raise ConflictException("邮箱或用户名已被使用")


class AuthService:
    """注册、登录、令牌刷新"""

    async def register(self, db: AsyncSession, data: RegisterRequest) -> Tuple[User, dict]:
        """注册申请人账号，同时创建空的申请人档案"""
        await _ensure_unique(db, data.email, data.username)

        user = await user_crud.create_user(
            db,
            data=data.model_dump(exclude=_PROFILE_FIELDS),
            password=data.password,
            role=UserRole.APPLICANT,
        )
        await get_profile_service().create_for_user(db, user.id)
        await db.refresh(user)

        logger.info(f"新用户注册: user={user.id} username={user.username}")
        return user, issue_tokens(user.id, user.role)

    async def authenticate(self, db: AsyncSession, identifier: str, password: str) -> User:
        """校验凭据；任何失败都返回同一个模糊错误"""
        user = await user_crud.get_by_identifier(db, identifier)
        if user is None or not verify_password(password, user.password_hash):
            logger.warning(f"登录失败: identifier={identifier}")
            raise UnauthorizedException("用户名或密码错误")
        if not user.is_active:
            raise UnauthorizedException("账号已停用")
        if settings.require_email_verification and not user.is_verified:
            raise UnauthorizedException("邮箱尚未验证")
        return user

    async def login(self, db: AsyncSession, identifier: str, password: str) -> Tuple[User, dict]:
        user = await self.authenticate(db, identifier, password)
        user.last_login = utcnow()
        await user_crud.save(db, user)
        logger.info(f"用户登录: user={user.id}")
        return user, issue_tokens(user.id, user.role)

    async def refresh(self, db: AsyncSession, refresh_token: str) -> dict:
        """用 refresh 令牌换取新的令牌对"""
        user_id = decode_token(refresh_token, expected_type=REFRESH_TOKEN_TYPE)
        user = await user_crud.get(db, user_id)
        if user is None or not user.is_active:
            raise UnauthorizedException("用户不存在或已停用")
        return issue_tokens(user.id, user.role)

    async def change_password(
        self,
        db: AsyncSession,
        principal: Principal,
        data: PasswordChangeRequest,
    ) -> None:
        user = await user_crud.get(db, principal.id)
        if user is None:
            raise NotFoundException("用户不存在")
        if not verify_password(data.current_password, user.password_hash):
            raise ValidationFailedException("当前密码错误")
        user.password_hash = hash_password(data.new_password)
        await user_crud.save(db, user)
        logger.info(f"用户修改密码: user={user.id}")


class UserService:
    """用户管理（员工 / 管理员）"""

    async def get(self, db: AsyncSession, principal: Principal, user_id: int) -> User:
        user = await user_crud.get(db, user_id)
        if user is None:
            raise NotFoundException(f"用户不存在: {user_id}")
        ensure_access(principal, user, Action.READ)
        return user

    async def search(
        self,
        db: AsyncSession,
        principal: Principal,
        **filters,
    ) -> Tuple[List[User], int]:
        ensure_role(principal, UserRole.STAFF, UserRole.ADMIN)
        return await user_crud.search(db, **filters)

    async def create(self, db: AsyncSession, principal: Principal, data: UserCreate) -> User:
        """管理员创建任意角色的用户；申请人自动获得空档案"""
        ensure_role(principal, UserRole.ADMIN)
        await _ensure_unique(db, data.email, data.username)

        role = UserRole(data.role)
        user = await user_crud.create_user(
            db,
            data={**data.model_dump(exclude=_PROFILE_FIELDS), "is_verified": data.is_verified},
            password=data.password,
            role=role,
        )
        if role == UserRole.STAFF:
            profile = data.staff_profile.model_dump() if data.staff_profile else {}
            await staff_profile_crud.create_for_user(db, user_id=user.id, **profile)
        elif role == UserRole.APPLICANT:
            await get_profile_service().create_for_user(db, user.id)
        await db.refresh(user)

        logger.info(f"管理员创建用户: user={user.id} role={role.value} by={principal.id}")
        return user

    async def update(
        self,
        db: AsyncSession,
        principal: Principal,
        user_id: int,
        data: UserUpdate,
    ) -> User:
        user = await user_crud.get(db, user_id)
        if user is None:
            raise NotFoundException(f"用户不存在: {user_id}")
        ensure_access(principal, user, Action.WRITE)
        return await user_crud.update(db, db_obj=user, obj_in=data)

    async def set_active(self, db: AsyncSession, principal: Principal, user_id: int, active: bool) -> User:
        """启用 / 停用账号"""
        user = await user_crud.get(db, user_id)
        if user is None:
            raise NotFoundException(f"用户不存在: {user_id}")
        ensure_access(principal, ResourceRef("user"), Action.DELETE if not active else Action.WRITE)
        if user.id == principal.id and not active:
            raise ConflictException("不能停用自己的账号")

        user.is_active = active
        await user_crud.save(db, user)
        logger.info(f"用户状态变更: user={user.id} active={active} by={principal.id}")
        return user

    async def verify(self, db: AsyncSession, principal: Principal, user_id: int) -> User:
        user = await user_crud.get(db, user_id)
        if user is None:
            raise NotFoundException(f"用户不存在: {user_id}")
        ensure_access(principal, ResourceRef("user"), Action.WRITE)
        user.is_verified = True
        await user_crud.save(db, user)
        return user

    async def update_permissions(
        self,
        db: AsyncSession,
        principal: Principal,
        user_id: int,
        data: PermissionsUpdate,
    ) -> User:
        """修改员工权限（仅管理员）"""
        ensure_role(principal, UserRole.ADMIN)
        user = await user_crud.get(db, user_id)
        if user is None:
            raise NotFoundException(f"用户不存在: {user_id}")
        if user.role != UserRole.STAFF.value or user.staff_profile is None:
            raise ConflictException("只有员工账号拥有权限设置")

        profile = user.staff_profile
        profile.permissions = {**profile.permissions, **data.permissions}
        await staff_profile_crud.save(db, profile)
        await db.refresh(user)

        logger.info(f"员工权限已更新: user={user.id} changes={data.permissions} by={principal.id}")
        return user


_auth_service: Optional[AuthService] = None
_user_service: Optional[UserService] = None


def get_auth_service() -> AuthService:
    """获取 AuthService 单例实例"""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service


def get_user_service() -> UserService:
    """获取 UserService 单例实例"""
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service
