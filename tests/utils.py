"""
测试辅助函数
"""
from datetime import datetime, timedelta, timezone

DEFAULT_PASSWORD = "secret123"


def future(days: int = 30) -> str:
    """若干天后的 ISO 时间字符串"""
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
