"""
站内消息相关 Schema
"""
from typing import List, Optional
from datetime import datetime
from pydantic import Field, model_validator

from portal.models.message import MAX_MESSAGE_LENGTH, MessagePriority, MessageType
from portal.models.user import UserRole
from .base import BaseSchema, TimestampSchema


class MessageAttachment(BaseSchema):
    """附件元数据（文件本体通过文档上传接口保存）"""

    filename: str = Field(..., min_length=1, max_length=255)
    filepath: Optional[str] = Field(None, max_length=500)
    file_size: int = Field(0, ge=0)
    mime_type: Optional[str] = Field(None, max_length=100)


class MessageSend(BaseSchema):
    """发送消息请求"""

    receiver_id: int = Field(..., ge=1)
    message: str = Field("", max_length=MAX_MESSAGE_LENGTH)
    message_type: MessageType = MessageType.TEXT
    attachment: Optional[MessageAttachment] = None
    reply_to: Optional[int] = Field(None, ge=1)
    priority: MessagePriority = MessagePriority.NORMAL
    tags: List[str] = Field(default_factory=list, max_length=10)

    @model_validator(mode="after")
    def check_content(self):
        if self.message_type == MessageType.TEXT.value and not self.message:
            raise ValueError("文本消息内容不能为空")
        if self.message_type in (MessageType.IMAGE.value, MessageType.FILE.value) and self.attachment is None:
            raise ValueError("图片 / 文件消息必须附带附件")
        self.tags = sorted({tag.strip().lower() for tag in self.tags if tag.strip()})
        return self


class ChatMessageResponse(TimestampSchema):
    """消息响应"""

    sender_id: int
    receiver_id: int
    message: str
    message_type: MessageType
    attachment: Optional[dict]
    has_attachment: bool
    reply_to: Optional[int]
    priority: MessagePriority
    tags: List[str]
    read_status: bool
    read_at: Optional[datetime]


class ParticipantInfo(BaseSchema):
    """对话另一方的公开信息"""

    id: int
    first_name: str
    father_name: str
    email: str
    role: UserRole


class ConversationSummary(BaseSchema):
    """会话列表中的一行"""

    user_id: int
    user_info: Optional[ParticipantInfo]
    last_message: ChatMessageResponse
    unread_count: int
