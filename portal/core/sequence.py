"""
序列号生成器模块

为每种实体发放单调递增的整数 ID，与存储层主键无关。

递增必须是单条原子语句（upsert + RETURNING），不允许先读后写：
并发调用方永远拿不到相同的值。

递增在计数器库的独立连接上执行并立即提交，不参与调用方的事务：
实体创建失败回滚时，已发放的值同样作废，不会再次发出。
"""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
from loguru import logger

from portal.core.database import sequence_engine
from portal.core.exceptions import InfrastructureException
from portal.models.counter import IdCounter


# 已知的计数器名称
COUNTER_NAMES = (
    "user_id",
    "staff_id",
    "applicant_id",
    "education_id",
    "job_id",
    "scholarship_id",
    "ad_id",
    "application_id",
    "document_id",
    "message_id",
)

_DIALECT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class SequenceGenerator:
    """原子序列号生成器"""

    def __init__(self, engine: Optional[AsyncEngine] = None, model=IdCounter):
        self.engine = engine or sequence_engine
        self.model = model

    def _increment_statement(self, dialect_name: str, name: str):
        """构造 "不存在则创建，存在则 +1" 的单条语句"""
        insert = _DIALECT_INSERTS.get(dialect_name)
        if insert is None:
            raise InfrastructureException(f"不支持的数据库方言: {dialect_name}")

        table = self.model.__table__
        stmt = insert(table).values(name=name, sequence_value=1)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.name],
            set_={"sequence_value": table.c.sequence_value + 1},
        )
        return stmt.returning(table.c.sequence_value)

    async def next(self, name: str) -> int:
        """
        获取下一个序列值

        失败时抛出 InfrastructureException，调用方的创建操作随之整体失败，
        绝不会出现没有整数 ID 的实体。
        """
        try:
            async with self.engine.begin() as conn:
                stmt = self._increment_statement(conn.dialect.name, name)
                value = (await conn.execute(stmt)).scalar_one()
        except SQLAlchemyError as exc:
            logger.error(f"序列号生成失败: {name} | {exc}")
            raise InfrastructureException(f"无法生成序列号: {name}") from exc

        logger.debug(f"序列号 {name} -> {value}")
        return value

    async def peek(self, name: str) -> int:
        """查看计数器当前值（不递增），不存在时为 0"""
        async with self.engine.connect() as conn:
            result = await conn.execute(
                select(self.model.sequence_value).where(self.model.name == name)
            )
            return result.scalar_one_or_none() or 0


sequence_generator = SequenceGenerator()
