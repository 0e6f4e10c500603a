"""
序列计数器模型模块
"""
from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from portal.core.database import Base


class IdCounter(Base):
    """
    序列计数器表

    每种实体一行，name 形如 user_id / application_id，
    sequence_value 为最近一次发出的值。
    """
    __tablename__ = "id_counters"

    name: Mapped[str] = mapped_column(
        String(50),
        primary_key=True,
        comment="计数器名称"
    )
    sequence_value: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="当前值"
    )

    def __repr__(self) -> str:
        return f"<IdCounter(name={self.name}, value={self.sequence_value})>"
