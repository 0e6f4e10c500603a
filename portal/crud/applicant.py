"""
申请人档案 CRUD 操作
"""
from typing import Optional, List
from sqlalchemy import Text, cast, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.models.applicant import Applicant, Education
from portal.models.document import Document
from .base import CRUDBase


class CRUDApplicant(CRUDBase[Applicant]):
    """申请人档案 CRUD 操作类"""

    async def get_by_user_id(self, db: AsyncSession, user_id: int) -> Optional[Applicant]:
        """获取某用户的档案"""
        result = await db.execute(select(self.model).where(self.model.user_id == user_id))
        return result.scalar_one_or_none()

    async def count_documents(self, db: AsyncSession, applicant_id: int) -> int:
        """档案下的文档数量"""
        result = await db.execute(
            select(func.count()).select_from(Document).where(Document.applicant_id == applicant_id)
        )
        return result.scalar() or 0

    async def search(
        self,
        db: AsyncSession,
        *,
        nationality: Optional[str] = None,
        min_completion: Optional[int] = None,
        skill: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> tuple[List[Applicant], int]:
        """多条件筛选档案，返回 (列表, 总数)"""
        filters = []
        if nationality:
            filters.append(self.model.nationality == nationality)
        if min_completion is not None:
            filters.append(self.model.profile_completion >= min_completion)
        if skill:
            # JSON 列按文本匹配，兼容 SQLite 与 PostgreSQL
            filters.append(func.lower(cast(self.model.skills, Text)).like(f'%"{skill.lower()}"%'))
        items = await self.get_multi(db, skip=skip, limit=limit, filters=filters)
        total = await self.count(db, filters=filters)
        return items, total


class CRUDEducation(CRUDBase[Education]):
    """教育经历 CRUD 操作类"""

    async def get_for_applicant(
        self,
        db: AsyncSession,
        applicant_id: int,
        education_id: int
    ) -> Optional[Education]:
        result = await db.execute(
            select(self.model).where(
                self.model.id == education_id,
                self.model.applicant_id == applicant_id,
            )
        )
        return result.scalar_one_or_none()


applicant_crud = CRUDApplicant(Applicant)
education_crud = CRUDEducation(Education)
