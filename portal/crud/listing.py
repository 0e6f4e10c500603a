"""
招聘岗位 / 奖学金项目 CRUD 操作

每次加载和保存都先执行惰性状态修正（Active 且过期 -> Closed），
被修正的对象随当前工作单元一起提交。
"""
from typing import Optional, List, Any, Sequence, Type
from sqlalchemy import select, func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from portal.models.base import utcnow
from portal.models.listing import (
    Job,
    Scholarship,
    ListingStatus,
    refresh_listing_status,
)
from .base import CRUDBase, ModelType


class CRUDListing(CRUDBase[ModelType]):
    """岗位 CRUD 基类"""

    def __init__(self, model: Type[ModelType], search_fields: Sequence[str] = ("name", "description")):
        super().__init__(model)
        self.search_fields = search_fields

    def _refresh(self, listings: List[ModelType]) -> List[ModelType]:
        now = utcnow()
        for listing in listings:
            if refresh_listing_status(listing, now):
                logger.info(f"{self.model.resource_kind} {listing.id} 已过截止时间，状态修正为 Closed")
        return listings

    async def get(self, db: AsyncSession, id: int) -> Optional[ModelType]:
        listing = await super().get(db, id)
        if listing is not None:
            self._refresh([listing])
        return listing

    async def get_multi(self, db: AsyncSession, **kwargs) -> List[ModelType]:
        return self._refresh(await super().get_multi(db, **kwargs))

    async def save(self, db: AsyncSession, db_obj: ModelType) -> ModelType:
        self._refresh([db_obj])
        return await super().save(db, db_obj)

    async def search(
        self,
        db: AsyncSession,
        *,
        status: Optional[str] = None,
        country: Optional[str] = None,
        keyword: Optional[str] = None,
        featured: Optional[bool] = None,
        accepting_only: bool = False,
        skip: int = 0,
        limit: int = 100
    ) -> tuple[List[ModelType], int]:
        """
        多条件筛选，返回 (列表, 总数)

        accepting_only 直接按 status == Active 且未过截止时间过滤，
        与惰性修正是否已经执行无关。
        """
        filters: List[Any] = []
        if accepting_only:
            filters.append(self.model.status == ListingStatus.ACTIVE.value)
            filters.append(self.model.deadline >= utcnow())
        elif status:
            filters.append(self.model.status == status)
        if country:
            filters.append(self.model.country == country)
        if featured is not None:
            filters.append(self.model.is_featured == featured)
        if keyword:
            pattern = f"%{keyword.lower()}%"
            filters.append(or_(*[
                func.lower(getattr(self.model, field)).like(pattern)
                for field in self.search_fields
            ]))
        items = await self.get_multi(
            db,
            skip=skip,
            limit=limit,
            filters=filters,
            order_by=self.model.deadline.asc(),
        )
        total = await self.count(db, filters=filters)
        return items, total

    async def countries(self, db: AsyncSession) -> List[str]:
        """当前有岗位的国家列表"""
        result = await db.execute(
            select(self.model.country).distinct().order_by(self.model.country)
        )
        return [row for row in result.scalars().all()]

    async def increment_application_count(self, db: AsyncSession, id: int) -> None:
        """申请数 +1（单条 UPDATE，避免读改写）"""
        await db.execute(
            update(self.model)
            .where(self.model.id == id)
            .values(application_count=self.model.application_count + 1)
        )

    async def increment_view_count(self, db: AsyncSession, db_obj: ModelType) -> None:
        db_obj.view_count = (db_obj.view_count or 0) + 1
        await db.flush()


job_crud = CRUDListing(Job, search_fields=("name", "description", "city"))
scholarship_crud = CRUDListing(Scholarship, search_fields=("name", "description", "university_name", "major"))
