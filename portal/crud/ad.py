"""
公告广告 CRUD 操作
"""
from typing import Any, List, Optional
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from portal.models.ad import Ad, AdApprovalStatus
from portal.models.base import utcnow
from .base import CRUDBase


class CRUDAd(CRUDBase[Ad]):
    """公告 CRUD 操作类"""

    def _running_filters(self) -> list:
        now = utcnow()
        return [
            self.model.is_active.is_(True),
            self.model.approval_status == AdApprovalStatus.APPROVED.value,
            self.model.start_date <= now,
            or_(self.model.end_date.is_(None), self.model.end_date >= now),
        ]

    async def search(
        self,
        db: AsyncSession,
        *,
        running_only: bool = True,
        category: Optional[str] = None,
        approval_status: Optional[str] = None,
        is_featured: Optional[bool] = None,
        is_pinned: Optional[bool] = None,
        skip: int = 0,
        limit: int = 100
    ) -> tuple[List[Ad], int]:
        """多条件筛选公告，置顶优先"""
        filters: List[Any] = self._running_filters() if running_only else []
        if category:
            filters.append(self.model.category == category)
        if approval_status:
            filters.append(self.model.approval_status == approval_status)
        if is_featured is not None:
            filters.append(self.model.is_featured == is_featured)
        if is_pinned is not None:
            filters.append(self.model.is_pinned == is_pinned)
        items = await self.get_multi(
            db,
            skip=skip,
            limit=limit,
            filters=filters,
            order_by=self.model.is_pinned.desc(),
        )
        total = await self.count(db, filters=filters)
        return items, total

    async def increment_counter(self, db: AsyncSession, id: int, column: str) -> None:
        """浏览 / 点击计数 +1（单条 UPDATE）"""
        field = getattr(self.model, column)
        await db.execute(
            update(self.model).where(self.model.id == id).values({column: field + 1})
        )

    async def get_stats(self, db: AsyncSession) -> dict:
        """按审核状态统计数量与互动数据"""
        result = await db.execute(
            select(self.model.approval_status, func.count()).group_by(self.model.approval_status)
        )
        by_status = {status: count for status, count in result.all()}
        totals = await db.execute(
            select(
                func.coalesce(func.sum(self.model.view_count), 0),
                func.coalesce(func.sum(self.model.click_count), 0),
            )
        )
        views, clicks = totals.one()
        return {
            "total": sum(by_status.values()),
            "by_approval_status": by_status,
            "total_views": views,
            "total_clicks": clicks,
        }


ad_crud = CRUDAd(Ad)
