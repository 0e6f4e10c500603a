"""
站内消息模型模块
"""
from datetime import datetime
from enum import Enum
from typing import Optional
from sqlalchemy import Boolean, DateTime, Index, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, utcnow


class MessageType(str, Enum):
    """消息类型"""
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    SYSTEM = "system"


class MessagePriority(str, Enum):
    """消息优先级"""
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


MAX_MESSAGE_LENGTH = 2000


class Message(BaseModel):
    """
    两个用户之间的一条消息

    删除为软删除：保留记录，对双方都不再可见。
    实时推送由事件中继的订阅者负责，这里只做持久化。
    """
    __tablename__ = "messages"
    __sequence_name__ = "message_id"
    __table_args__ = (
        Index("ix_messages_pair", "sender_id", "receiver_id", "created_at"),
        Index("ix_messages_unread", "receiver_id", "read_status"),
    )
    resource_kind = "message"

    sender_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True, comment="发送人ID")
    receiver_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True, comment="接收人ID")
    message: Mapped[str] = mapped_column(Text, nullable=False, default="", comment="消息内容")
    message_type: Mapped[str] = mapped_column(String(10), default=MessageType.TEXT.value, nullable=False, comment="消息类型")
    attachment: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True, comment="附件元数据")
    reply_to: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="回复的消息ID")
    priority: Mapped[str] = mapped_column(String(10), default=MessagePriority.NORMAL.value, nullable=False, comment="优先级")
    tags: Mapped[list] = mapped_column(JSON, default=list, nullable=False, comment="标签")

    read_status: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, comment="是否已读")
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, comment="阅读时间")

    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True, comment="是否已删除")
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, comment="删除时间")
    deleted_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="删除人ID")

    @property
    def has_attachment(self) -> bool:
        return bool(self.attachment and self.attachment.get("filename"))

    def involves(self, user_id: int) -> bool:
        return user_id in (self.sender_id, self.receiver_id)

    def other_party(self, user_id: int) -> int:
        """对话中的另一方"""
        return self.receiver_id if self.sender_id == user_id else self.sender_id

    def mark_as_read(self) -> None:
        if not self.read_status:
            self.read_status = True
            self.read_at = utcnow()

    def soft_delete(self, user_id: int) -> None:
        self.is_deleted = True
        self.deleted_at = utcnow()
        self.deleted_by = user_id

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, {self.sender_id}->{self.receiver_id})>"
