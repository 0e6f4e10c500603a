"""
模型基类模块

定义通用字段和混入类
"""
import uuid
from datetime import datetime, timezone
from typing import ClassVar, Optional
from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from portal.core.database import Base


def utcnow() -> datetime:
    """当前 UTC 时间（带时区）"""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """统一换算为 UTC；SQLite 读出的时间不带时区，按 UTC 处理"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TimestampMixin:
    """时间戳混入类"""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        comment="创建时间"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
        comment="更新时间"
    )


class BaseModel(Base, TimestampMixin):
    """
    模型基类

    包含:
    - uid: 存储层主键（UUID，不作为外键使用）
    - id: 序列号生成器分配的整数 ID，所有跨实体引用都使用它
    - 创建时间 / 更新时间

    子类通过 __sequence_name__ 声明使用哪个计数器。
    """
    __abstract__ = True
    __sequence_name__: ClassVar[Optional[str]] = None

    uid: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        comment="存储主键"
    )
    id: Mapped[int] = mapped_column(
        Integer,
        unique=True,
        index=True,
        nullable=False,
        comment="业务整数ID"
    )
