"""
归属与授权策略模块

can_access 是纯谓词，按顺序判断（命中即返回）:
1. admin -> 允许
2. staff -> 读取一律允许；写入 / 删除由员工档案中的命名权限控制
3. applicant -> 仅当 resource.owner_id == principal.id
4. 其他 -> 拒绝

Principal 在请求入口构造一次，显式传入每个业务操作。
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional, Protocol

from portal.core.exceptions import ForbiddenException
from portal.models.user import UserRole


class Action(str, Enum):
    """操作类型"""
    READ = "read"
    WRITE = "write"
    DELETE = "delete"


@dataclass(frozen=True)
class Principal:
    """已认证的调用方"""
    id: int
    role: UserRole
    permissions: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_staff_or_admin(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.STAFF)

    def has_permission(self, name: str) -> bool:
        return name in self.permissions


class Resource(Protocol):
    """策略判断所需的资源视图"""
    resource_kind: str

    @property
    def owner_id(self) -> Optional[int]: ...


@dataclass(frozen=True)
class ResourceRef:
    """尚未持久化或只需类型判断时使用的资源引用"""
    resource_kind: str
    owner_id: Optional[int] = None


# staff 写入 / 删除需要的权限；None 表示无需额外权限
STAFF_PERMISSION_MAP: Dict[str, Dict[Action, Optional[str]]] = {
    "application": {
        Action.WRITE: "can_edit_applications",
        Action.DELETE: "can_delete_applications",
    },
    "document": {
        Action.WRITE: "can_manage_documents",
        Action.DELETE: "can_manage_documents",
    },
    "job": {
        Action.WRITE: "can_manage_jobs",
        Action.DELETE: "can_manage_jobs",
    },
    "scholarship": {
        Action.WRITE: "can_manage_scholarships",
        Action.DELETE: "can_manage_scholarships",
    },
    "ad": {
        Action.WRITE: "can_manage_ads",
        Action.DELETE: "can_manage_ads",
    },
    "user": {
        Action.WRITE: "can_edit_users",
        Action.DELETE: "can_delete_users",
    },
    "applicant": {
        Action.WRITE: None,
        Action.DELETE: "can_delete_users",
    },
}


def _staff_allowed(principal: Principal, kind: str, action: Action) -> bool:
    if action == Action.READ:
        return True
    rules = STAFF_PERMISSION_MAP.get(kind)
    if rules is None:
        return False
    required = rules.get(action)
    return required is None or principal.has_permission(required)


def can_access(principal: Optional[Principal], resource: Resource, action: Action | str) -> bool:
    """判断 principal 能否对 resource 执行 action（不抛异常）"""
    if principal is None:
        return False
    action = Action(action)
    role = UserRole(principal.role)

    if role == UserRole.ADMIN:
        return True
    if role == UserRole.STAFF:
        return _staff_allowed(principal, resource.resource_kind, action)
    if role == UserRole.APPLICANT:
        owner_id = resource.owner_id
        return owner_id is not None and owner_id == principal.id
    return False


def ensure_access(principal: Optional[Principal], resource: Resource, action: Action | str) -> None:
    """can_access 为 False 时抛出 ForbiddenException"""
    if not can_access(principal, resource, action):
        raise ForbiddenException(f"无权对该{resource.resource_kind}执行{Action(action).value}操作")


def ensure_role(principal: Principal, *roles: UserRole) -> None:
    """要求调用方属于指定角色之一"""
    if UserRole(principal.role) not in roles:
        raise ForbiddenException("当前角色无权执行此操作")
