"""
站内消息 CRUD 操作
"""
from datetime import timedelta
from typing import Any, List

from sqlalchemy import and_, case, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from portal.models.base import utcnow
from portal.models.message import Message
from .base import CRUDBase


class CRUDMessage(CRUDBase[Message]):
    """消息 CRUD 操作类"""

    def _visible(self) -> Any:
        return self.model.is_deleted.is_(False)

    def _between(self, user_a: int, user_b: int) -> Any:
        return or_(
            and_(self.model.sender_id == user_a, self.model.receiver_id == user_b),
            and_(self.model.sender_id == user_b, self.model.receiver_id == user_a),
        )

    def _involving(self, user_id: int) -> Any:
        return or_(self.model.sender_id == user_id, self.model.receiver_id == user_id)

    async def get_visible(self, db: AsyncSession, id: int) -> Message | None:
        """未删除的消息"""
        result = await db.execute(
            select(self.model).where(self.model.id == id, self._visible())
        )
        return result.scalar_one_or_none()

    async def get_conversation(
        self,
        db: AsyncSession,
        user_a: int,
        user_b: int,
        *,
        skip: int = 0,
        limit: int = 50
    ) -> tuple[List[Message], int]:
        """两人之间的消息，最新的在前"""
        filters = [self._between(user_a, user_b), self._visible()]
        items = await self.get_multi(
            db, skip=skip, limit=limit, filters=filters, order_by=self.model.id.desc()
        )
        total = await self.count(db, filters=filters)
        return items, total

    async def mark_conversation_read(self, db: AsyncSession, sender_id: int, receiver_id: int) -> int:
        """把 sender 发给 receiver 的未读消息全部标记为已读，返回条数"""
        result = await db.execute(
            update(self.model)
            .where(
                self.model.sender_id == sender_id,
                self.model.receiver_id == receiver_id,
                self.model.read_status.is_(False),
                self._visible(),
            )
            .values(read_status=True, read_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def count_unread(self, db: AsyncSession, user_id: int) -> int:
        return await self.count(db, filters=[
            self.model.receiver_id == user_id,
            self.model.read_status.is_(False),
            self._visible(),
        ])

    async def get_conversations(self, db: AsyncSession, user_id: int) -> List[dict]:
        """
        当前用户的会话列表

        每个对方一行：最后一条消息与发给当前用户的未读数，按最后消息倒序。
        """
        counterpart = case(
            (self.model.sender_id == user_id, self.model.receiver_id),
            else_=self.model.sender_id,
        ).label("user_id")
        unread = func.sum(
            case(
                (and_(self.model.receiver_id == user_id, self.model.read_status.is_(False)), 1),
                else_=0,
            )
        ).label("unread_count")
        summary = await db.execute(
            select(counterpart, func.max(self.model.id).label("last_id"), unread)
            .where(self._involving(user_id), self._visible())
            .group_by(counterpart)
        )
        rows = summary.all()
        if not rows:
            return []

        last_ids = [row.last_id for row in rows]
        result = await db.execute(select(self.model).where(self.model.id.in_(last_ids)))
        last_messages = {message.id: message for message in result.scalars().all()}

        conversations = [
            {
                "user_id": row.user_id,
                "last_message": last_messages[row.last_id],
                "unread_count": int(row.unread_count or 0),
            }
            for row in rows
        ]
        # id 单调递增，最大 id 即最新消息
        conversations.sort(key=lambda item: item["last_message"].id, reverse=True)
        return conversations

    async def search_text(self, db: AsyncSession, user_id: int, term: str, *, limit: int = 20) -> List[Message]:
        """在当前用户参与的消息中按内容搜索（不区分大小写）"""
        return await self.get_multi(
            db,
            limit=limit,
            filters=[
                self._involving(user_id),
                self._visible(),
                func.lower(self.model.message).like(f"%{term.lower()}%"),
            ],
            order_by=self.model.id.desc(),
        )

    async def get_stats(self, db: AsyncSession) -> dict:
        """按类型统计消息数、未读数与今日消息数"""
        result = await db.execute(
            select(self.model.message_type, func.count()).group_by(self.model.message_type)
        )
        by_type = {message_type: count for message_type, count in result.all()}
        unread = await self.count(db, filters=[self.model.read_status.is_(False), self._visible()])
        today_start = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
        today = await self.count(db, filters=[self.model.created_at >= today_start])
        last_week = await self.count(db, filters=[self.model.created_at >= utcnow() - timedelta(days=7)])
        return {
            "total": sum(by_type.values()),
            "unread": unread,
            "today": today,
            "last_7_days": last_week,
            "by_type": by_type,
        }


message_crud = CRUDMessage(Message)
