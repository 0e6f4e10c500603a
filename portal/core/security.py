"""
认证凭据模块

密码哈希使用 bcrypt，令牌使用 python-jose 签发的 JWT。
access / refresh 两种令牌通过 type 声明区分，分别使用不同的密钥。
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import JWTError, jwt

from .config import settings
from .exceptions import UnauthorizedException

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# bcrypt 只使用前 72 字节
_BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    """生成密码哈希"""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8")[:_BCRYPT_MAX_BYTES], salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """校验密码，哈希格式非法时视为不匹配"""
    try:
        return bcrypt.checkpw(
            password.encode("utf-8")[:_BCRYPT_MAX_BYTES],
            password_hash.encode("utf-8"),
        )
    except ValueError:
        return False


def _secret_for(token_type: str) -> str:
    return settings.refresh_secret_key if token_type == REFRESH_TOKEN_TYPE else settings.secret_key


def _encode(principal_id: int, token_type: str, expires_delta: timedelta, extra: Optional[dict]) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        **(extra or {}),
        "sub": str(principal_id),
        "type": token_type,
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(claims, _secret_for(token_type), algorithm=settings.jwt_algorithm)


def create_access_token(
    principal_id: int,
    extra: Optional[dict] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """签发访问令牌"""
    return _encode(
        principal_id,
        ACCESS_TOKEN_TYPE,
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes),
        extra,
    )


def create_refresh_token(principal_id: int) -> str:
    """签发刷新令牌"""
    return _encode(
        principal_id,
        REFRESH_TOKEN_TYPE,
        timedelta(days=settings.refresh_token_expire_days),
        None,
    )


def issue_tokens(principal_id: int, role: str) -> dict:
    """一次签发 access + refresh 令牌对"""
    return {
        "access_token": create_access_token(principal_id, extra={"role": role}),
        "refresh_token": create_refresh_token(principal_id),
        "token_type": "bearer",
        "expires_in": settings.access_token_expire_minutes * 60,
    }


def decode_token(token: str, expected_type: str = ACCESS_TOKEN_TYPE) -> int:
    """
    校验令牌并返回 Principal ID

    签名错误、过期、类型不符或缺少 sub 时抛出 UnauthorizedException。
    """
    try:
        payload = jwt.decode(token, _secret_for(expected_type), algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise UnauthorizedException("令牌无效或已过期") from exc

    if payload.get("type") != expected_type:
        raise UnauthorizedException("令牌类型错误")

    subject = payload.get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError) as exc:
        raise UnauthorizedException("令牌缺少用户标识") from exc
