"""
申请 CRUD 操作
"""
from datetime import timedelta
from typing import Optional, List, Any
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from portal.models.application import (
    Application,
    ApplicationStatus,
    JobRef,
    ListingRef,
)
from portal.models.base import utcnow
from .base import CRUDBase

PENDING_STATUSES = (ApplicationStatus.SUBMITTED.value, ApplicationStatus.UNDER_REVIEW.value)


class CRUDApplication(CRUDBase[Application]):
    """申请 CRUD 操作类"""

    async def get_for_target(
        self,
        db: AsyncSession,
        applicant_id: int,
        target: ListingRef
    ) -> Optional[Application]:
        """查找申请人针对某个目标的申请"""
        column = self.model.job_id if isinstance(target, JobRef) else self.model.scholarship_id
        result = await db.execute(
            select(self.model).where(self.model.applicant_id == applicant_id, column == target.id)
        )
        return result.scalar_one_or_none()

    async def get_by_applicant(
        self,
        db: AsyncSession,
        applicant_id: int,
        *,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> tuple[List[Application], int]:
        """某申请人的申请列表"""
        filters: List[Any] = [self.model.applicant_id == applicant_id]
        if status:
            filters.append(self.model.status == status)
        items = await self.get_multi(db, skip=skip, limit=limit, filters=filters)
        total = await self.count(db, filters=filters)
        return items, total

    async def search(
        self,
        db: AsyncSession,
        *,
        status: Optional[str] = None,
        type: Optional[str] = None,
        job_id: Optional[int] = None,
        scholarship_id: Optional[int] = None,
        applicant_id: Optional[int] = None,
        min_progress: Optional[int] = None,
        skip: int = 0,
        limit: int = 100
    ) -> tuple[List[Application], int]:
        """管理端多条件筛选"""
        filters: List[Any] = []
        if status:
            filters.append(self.model.status == status)
        if type:
            filters.append(self.model.type == type)
        if job_id is not None:
            filters.append(self.model.job_id == job_id)
        if scholarship_id is not None:
            filters.append(self.model.scholarship_id == scholarship_id)
        if applicant_id is not None:
            filters.append(self.model.applicant_id == applicant_id)
        if min_progress is not None:
            filters.append(self.model.progress >= min_progress)
        items = await self.get_multi(db, skip=skip, limit=limit, filters=filters)
        total = await self.count(db, filters=filters)
        return items, total

    async def get_pending(self, db: AsyncSession, *, limit: int = 20) -> List[Application]:
        """待处理申请（已提交 / 审核中），按提交时间倒序"""
        return await self.get_multi(
            db,
            limit=limit,
            filters=[self.model.status.in_(PENDING_STATUSES)],
            order_by=self.model.submission_date.desc(),
        )

    async def get_stats(self, db: AsyncSession) -> dict:
        """按状态、类型统计申请数量"""
        by_status = {status.value: 0 for status in ApplicationStatus}
        result = await db.execute(
            select(self.model.status, func.count()).group_by(self.model.status)
        )
        for status, count in result.all():
            by_status[status] = count

        by_type = {}
        result = await db.execute(
            select(self.model.type, func.count()).group_by(self.model.type)
        )
        for type_, count in result.all():
            by_type[type_] = count

        recent = await self.count(
            db, filters=[self.model.created_at >= utcnow() - timedelta(days=30)]
        )
        average = await db.execute(select(func.avg(self.model.progress)))

        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "by_type": by_type,
            "recent_30_days": recent,
            "average_progress": round(average.scalar() or 0, 1),
        }


application_crud = CRUDApplication(Application)
