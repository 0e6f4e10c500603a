"""
API 公共依赖

Principal 在这里由 Bearer 令牌构造一次，再显式传给服务层。
"""
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.database import get_db
from portal.core.exceptions import UnauthorizedException
from portal.core.security import decode_token
from portal.crud import user_crud
from portal.models.user import User
from portal.services.auth import principal_for
from portal.services.policy import Principal

bearer_scheme = HTTPBearer(auto_error=False)


async def _load_user(db: AsyncSession, token: str) -> User:
    user = await user_crud.get(db, decode_token(token))
    if user is None or not user.is_active:
        raise UnauthorizedException("用户不存在或已停用")
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """当前登录用户，未登录时 401"""
    if credentials is None:
        raise UnauthorizedException()
    return await _load_user(db, credentials.credentials)


async def get_current_principal(user: User = Depends(get_current_user)) -> Principal:
    return principal_for(user)


async def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[Principal]:
    """公开接口使用：未携带令牌时为 None，携带了无效令牌仍然 401"""
    if credentials is None:
        return None
    return principal_for(await _load_user(db, credentials.credentials))


def page_window(page: int, page_size: int) -> int:
    """页码换算为 offset"""
    return (page - 1) * page_size
