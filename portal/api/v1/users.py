"""
用户管理 API 路由（员工 / 管理员）
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.deps import get_current_principal, page_window
from portal.core.database import get_db
from portal.core.response import success_response, paged_response, ResponseModel, PagedResponseModel
from portal.models.user import UserRole
from portal.schemas.user import PermissionsUpdate, UserCreate, UserResponse, UserUpdate
from portal.services.auth import get_user_service
from portal.services.policy import Principal

router = APIRouter()


def _dump(user) -> dict:
    return UserResponse.model_validate(user).model_dump()


@router.get("", summary="获取用户列表", response_model=PagedResponseModel[UserResponse])
async def list_users(
    page: int = Query(1, ge=1, description="页码"),
    page_size: int = Query(20, ge=1, le=100, description="每页数量"),
    role: Optional[UserRole] = Query(None, description="角色筛选"),
    is_active: Optional[bool] = Query(None, description="是否启用"),
    keyword: Optional[str] = Query(None, description="关键词（用户名 / 邮箱 / 名）"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    users, total = await get_user_service().search(
        db,
        principal,
        role=role.value if role else None,
        is_active=is_active,
        keyword=keyword,
        skip=page_window(page, page_size),
        limit=page_size,
    )
    return paged_response([_dump(u) for u in users], total, page, page_size)


@router.post("", summary="创建用户", response_model=ResponseModel[UserResponse], status_code=201)
async def create_user(
    data: UserCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """管理员创建任意角色的用户，staff 可附带员工档案与权限"""
    user = await get_user_service().create(db, principal, data)
    return success_response(data=_dump(user), message="用户创建成功", code=201)


@router.get("/{user_id}", summary="获取用户详情", response_model=ResponseModel[UserResponse])
async def get_user(
    user_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    user = await get_user_service().get(db, principal, user_id)
    return success_response(data=_dump(user))


@router.patch("/{user_id}", summary="更新用户", response_model=ResponseModel[UserResponse])
async def update_user(
    user_id: int,
    data: UserUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    user = await get_user_service().update(db, principal, user_id, data)
    return success_response(data=_dump(user), message="更新成功")


@router.post("/{user_id}/activate", summary="启用用户", response_model=ResponseModel[UserResponse])
async def activate_user(
    user_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    user = await get_user_service().set_active(db, principal, user_id, True)
    return success_response(data=_dump(user), message="用户已启用")


@router.post("/{user_id}/deactivate", summary="停用用户", response_model=ResponseModel[UserResponse])
async def deactivate_user(
    user_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    user = await get_user_service().set_active(db, principal, user_id, False)
    return success_response(data=_dump(user), message="用户已停用")


@router.post("/{user_id}/verify", summary="标记用户已验证", response_model=ResponseModel[UserResponse])
async def verify_user(
    user_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    user = await get_user_service().verify(db, principal, user_id)
    return success_response(data=_dump(user), message="用户已验证")


@router.put("/{user_id}/permissions", summary="修改员工权限", response_model=ResponseModel[UserResponse])
async def update_permissions(
    user_id: int,
    data: PermissionsUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    user = await get_user_service().update_permissions(db, principal, user_id, data)
    return success_response(data=_dump(user), message="权限已更新")
