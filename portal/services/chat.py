"""
站内消息服务

只负责消息持久化与已读 / 删除状态；实时送达交给事件中继的订阅者。
消息只对收发双方可见，员工和管理员也不例外。
"""
from typing import List, Optional, Tuple

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.config import settings
from portal.core.events import EventRelay, event_relay, user_room
from portal.core.exceptions import (
    ForbiddenException,
    NotFoundException,
    PreconditionFailedException,
    ValidationFailedException,
)
from portal.crud import message_crud, user_crud
from portal.models.message import Message
from portal.models.user import User, UserRole
from portal.schemas.message import MessageSend
from .policy import Principal, ensure_role

MIN_SEARCH_LENGTH = 2


def participant_info(user: Optional[User]) -> Optional[dict]:
    if user is None:
        return None
    return {
        "id": user.id,
        "first_name": user.first_name,
        "father_name": user.father_name,
        "email": user.email,
        "role": user.role,
    }


class ChatService:
    """消息操作"""

    def __init__(self, relay: EventRelay = event_relay):
        self.relay = relay

    async def _load_user(self, db: AsyncSession, user_id: int) -> User:
        user = await user_crud.get(db, user_id)
        if user is None:
            raise NotFoundException(f"用户不存在: {user_id}")
        return user

    async def _load_message(self, db: AsyncSession, message_id: int) -> Message:
        message = await message_crud.get_visible(db, message_id)
        if message is None:
            raise NotFoundException(f"消息不存在: {message_id}")
        return message

    async def send(self, db: AsyncSession, principal: Principal, data: MessageSend) -> Message:
        """发送消息；接收方必须存在且未停用"""
        if data.receiver_id == principal.id:
            raise ValidationFailedException("不能给自己发送消息")
        receiver = await self._load_user(db, data.receiver_id)
        if not receiver.is_active:
            raise PreconditionFailedException("接收方已停用，无法发送消息", data={"receiver_id": receiver.id})

        if data.attachment is not None and data.attachment.file_size > settings.max_file_size:
            raise ValidationFailedException(
                f"附件大小超过限制 ({settings.max_file_size} 字节)",
                data={"max_size": settings.max_file_size},
            )
        if data.reply_to is not None:
            original = await message_crud.get_visible(db, data.reply_to)
            if original is None or not (original.involves(principal.id) and original.involves(receiver.id)):
                raise ValidationFailedException("只能回复同一对话中的消息", data={"reply_to": data.reply_to})

        payload = data.model_dump()
        payload["message"] = payload["message"].strip()
        message = await message_crud.create(db, obj_in={**payload, "sender_id": principal.id})
        logger.info(f"消息已发送: message={message.id} {principal.id}->{receiver.id}")

        event = {"message_id": message.id, "sender_id": principal.id, "receiver_id": receiver.id}
        self.relay.emit("new_message", user_room(receiver.id), event)
        self.relay.emit("message_sent", user_room(principal.id), event)
        return message

    async def conversation(
        self,
        db: AsyncSession,
        principal: Principal,
        other_user_id: int,
        *,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[Message], int, User]:
        """
        与某个用户的对话，按时间正序返回当前页

        打开对话即把对方发来的未读消息标记为已读。
        """
        other = await self._load_user(db, other_user_id)
        marked = await message_crud.mark_conversation_read(db, sender_id=other.id, receiver_id=principal.id)
        if marked:
            self.relay.emit(
                "conversation_read",
                user_room(other.id),
                {"reader_id": principal.id, "count": marked},
            )
        messages, total = await message_crud.get_conversation(
            db, principal.id, other.id, skip=skip, limit=limit
        )
        return list(reversed(messages)), total, other

    async def conversations(self, db: AsyncSession, principal: Principal) -> List[dict]:
        """会话列表，附带对方的公开信息"""
        rows = await message_crud.get_conversations(db, principal.id)
        if not rows:
            return []
        user_ids = [row["user_id"] for row in rows]
        users = await user_crud.get_multi(db, limit=len(user_ids), filters=[user_crud.model.id.in_(user_ids)])
        by_id = {user.id: user for user in users}
        return [{**row, "user_info": participant_info(by_id.get(row["user_id"]))} for row in rows]

    async def mark_read(self, db: AsyncSession, principal: Principal, message_id: int) -> Message:
        """只有接收方可以标记已读"""
        message = await self._load_message(db, message_id)
        if message.receiver_id != principal.id:
            raise ForbiddenException("只有接收方可以标记已读")
        message.mark_as_read()
        await message_crud.save(db, message)
        self.relay.emit(
            "message_read",
            user_room(message.sender_id),
            {"message_id": message.id, "reader_id": principal.id},
        )
        return message

    async def delete(self, db: AsyncSession, principal: Principal, message_id: int) -> None:
        """收发双方都可以删除；删除后对双方都不可见"""
        message = await self._load_message(db, message_id)
        if not message.involves(principal.id):
            raise ForbiddenException("无权删除该消息")
        message.soft_delete(principal.id)
        await message_crud.save(db, message)
        logger.info(f"消息已删除: message={message.id} by={principal.id}")
        self.relay.emit(
            "message_deleted",
            user_room(message.other_party(principal.id)),
            {"message_id": message.id, "deleted_by": principal.id},
        )

    async def unread_count(self, db: AsyncSession, principal: Principal) -> int:
        return await message_crud.count_unread(db, principal.id)

    async def search(self, db: AsyncSession, principal: Principal, term: str, *, limit: int = 20) -> List[Message]:
        term = term.strip()
        if len(term) < MIN_SEARCH_LENGTH:
            raise ValidationFailedException(f"搜索词至少 {MIN_SEARCH_LENGTH} 个字符")
        return await message_crud.search_text(db, principal.id, term, limit=limit)

    async def stats(self, db: AsyncSession, principal: Principal) -> dict:
        ensure_role(principal, UserRole.STAFF, UserRole.ADMIN)
        return await message_crud.get_stats(db)


_chat_service: Optional[ChatService] = None


def get_chat_service() -> ChatService:
    """获取 ChatService 单例实例"""
    global _chat_service
    if _chat_service is None:
        _chat_service = ChatService()
    return _chat_service
