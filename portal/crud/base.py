"""
CRUD 基类模块

所有查询都以序列号生成器分配的整数 id 为准；uid 只是存储主键。
"""
from typing import Generic, TypeVar, Type, Optional, List, Any, Dict, Sequence
from pydantic import BaseModel as PydanticModel
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.sequence import sequence_generator
from portal.models.base import BaseModel

ModelType = TypeVar("ModelType", bound=BaseModel)


class CRUDBase(Generic[ModelType]):
    """
    CRUD 基类

    create 负责身份分配：模型声明了 __sequence_name__ 时，
    在写入前调用一次序列号生成器。序列号独立提交，
    实体写入失败回滚后该值作废，不会被后续创建复用。
    """

    def __init__(self, model: Type[ModelType]):
        self.model = model

    async def get(self, db: AsyncSession, id: int) -> Optional[ModelType]:
        """根据整数 ID 获取单条记录"""
        result = await db.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    async def get_by_uid(self, db: AsyncSession, uid: str) -> Optional[ModelType]:
        """根据存储主键获取单条记录"""
        return await db.get(self.model, uid)

    async def get_multi(
        self,
        db: AsyncSession,
        *,
        skip: int = 0,
        limit: int = 100,
        filters: Sequence[Any] = (),
        order_by: Any = None
    ) -> List[ModelType]:
        """获取多条记录（分页）"""
        query = select(self.model).where(*filters)
        if order_by is not None:
            query = query.order_by(order_by)
        else:
            query = query.order_by(self.model.created_at.desc(), self.model.id.desc())
        query = query.offset(skip).limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def count(self, db: AsyncSession, *, filters: Sequence[Any] = ()) -> int:
        """获取记录数"""
        result = await db.execute(
            select(func.count()).select_from(self.model).where(*filters)
        )
        return result.scalar() or 0

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: PydanticModel | Dict[str, Any]
    ) -> ModelType:
        """
        创建记录

        支持传入 Schema 或 dict
        """
        if isinstance(obj_in, dict):
            data = dict(obj_in)
        else:
            data = obj_in.model_dump()

        db_obj = self.model(**data)
        if self.model.__sequence_name__:
            db_obj.id = await sequence_generator.next(self.model.__sequence_name__)

        db.add(db_obj)
        await db.flush()
        await db.refresh(db_obj)
        return db_obj

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: ModelType,
        obj_in: PydanticModel | Dict[str, Any]
    ) -> ModelType:
        """
        更新记录

        只写入请求中出现的字段
        """
        if isinstance(obj_in, dict):
            update_data = obj_in
        else:
            update_data = obj_in.model_dump(exclude_unset=True)

        for field, value in update_data.items():
            setattr(db_obj, field, value)

        await db.flush()
        await db.refresh(db_obj)
        return db_obj

    async def save(self, db: AsyncSession, db_obj: ModelType) -> ModelType:
        """刷新已修改的对象"""
        await db.flush()
        await db.refresh(db_obj)
        return db_obj

    async def delete(self, db: AsyncSession, *, id: int) -> bool:
        """删除记录"""
        obj = await self.get(db, id)
        if obj:
            await db.delete(obj)
            await db.flush()
            return True
        return False
