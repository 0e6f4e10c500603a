"""
认证 API 路由
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.deps import get_current_principal, get_current_user
from portal.core.database import get_db
from portal.core.response import success_response, ResponseModel, MessageResponse
from portal.models.user import User
from portal.schemas.user import (
    AuthResponse,
    LoginRequest,
    PasswordChangeRequest,
    RefreshRequest,
    RegisterRequest,
    TokenPair,
    UserResponse,
    UserUpdate,
)
from portal.services.auth import get_auth_service, get_user_service
from portal.services.policy import Principal

router = APIRouter()


def _auth_payload(user: User, tokens: dict) -> dict:
    return AuthResponse(
        user=UserResponse.model_validate(user),
        tokens=TokenPair(**tokens),
    ).model_dump()


@router.post("/register", summary="注册申请人账号", response_model=ResponseModel[AuthResponse], status_code=201)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    user, tokens = await get_auth_service().register(db, data)
    return success_response(data=_auth_payload(user, tokens), message="注册成功", code=201)


@router.post("/login", summary="登录", response_model=ResponseModel[AuthResponse])
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """identifier 可以是邮箱或用户名"""
    user, tokens = await get_auth_service().login(db, data.identifier, data.password)
    return success_response(data=_auth_payload(user, tokens), message="登录成功")


@router.post("/refresh", summary="刷新令牌", response_model=ResponseModel[TokenPair])
async def refresh(
    data: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    tokens = await get_auth_service().refresh(db, data.refresh_token)
    return success_response(data=TokenPair(**tokens).model_dump(), message="令牌已刷新")


@router.get("/me", summary="当前用户信息", response_model=ResponseModel[UserResponse])
async def me(user: User = Depends(get_current_user)):
    return success_response(data=UserResponse.model_validate(user).model_dump())


@router.patch("/me", summary="更新当前用户信息", response_model=ResponseModel[UserResponse])
async def update_me(
    data: UserUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    user = await get_user_service().update(db, principal, principal.id, data)
    return success_response(data=UserResponse.model_validate(user).model_dump(), message="更新成功")


@router.post("/change-password", summary="修改密码", response_model=MessageResponse)
async def change_password(
    data: PasswordChangeRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await get_auth_service().change_password(db, principal, data)
    return success_response(message="密码已修改")
