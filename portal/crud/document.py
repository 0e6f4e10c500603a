"""
文档 CRUD 操作
"""
from typing import Optional, List, Any
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from portal.models.document import Document
from .base import CRUDBase


class CRUDDocument(CRUDBase[Document]):
    """文档 CRUD 操作类"""

    async def search(
        self,
        db: AsyncSession,
        *,
        applicant_id: Optional[int] = None,
        application_id: Optional[int] = None,
        type: Optional[str] = None,
        is_verified: Optional[bool] = None,
        skip: int = 0,
        limit: int = 100
    ) -> tuple[List[Document], int]:
        """多条件筛选文档"""
        filters: List[Any] = []
        if applicant_id is not None:
            filters.append(self.model.applicant_id == applicant_id)
        if application_id is not None:
            filters.append(self.model.application_id == application_id)
        if type:
            filters.append(self.model.type == type)
        if is_verified is not None:
            filters.append(self.model.is_verified == is_verified)
        items = await self.get_multi(db, skip=skip, limit=limit, filters=filters)
        total = await self.count(db, filters=filters)
        return items, total

    async def get_stats(self, db: AsyncSession) -> dict:
        """按类型统计文档数量与已审核数量"""
        result = await db.execute(
            select(self.model.type, func.count()).group_by(self.model.type)
        )
        by_type = {type_: count for type_, count in result.all()}
        verified = await self.count(db, filters=[self.model.is_verified.is_(True)])
        size = await db.execute(select(func.coalesce(func.sum(self.model.file_size), 0)))
        return {
            "total": sum(by_type.values()),
            "verified": verified,
            "by_type": by_type,
            "total_size": size.scalar() or 0,
        }


document_crud = CRUDDocument(Document)
