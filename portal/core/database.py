"""
数据库配置模块

使用 SQLAlchemy 2.0 异步模式
"""
from pathlib import Path
from typing import AsyncGenerator, Optional
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool
from sqlalchemy.orm import DeclarativeBase

from .config import settings


# 创建异步引擎
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,  # 开发环境打印 SQL
    future=True,
)

# 创建异步会话工厂
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


def resolve_sequence_url(database_url: str, override: Optional[str] = None) -> str:
    """
    序列计数器库地址

    计数器在独立连接上递增并立即提交。SQLite 同一时刻只允许一个写事务，
    与业务事务共用同一文件会互相等待，所以默认拆到同目录下的独立文件；
    其他数据库直接与主库共用。
    """
    if override:
        return override
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or url.database in (None, "", ":memory:"):
        return database_url
    path = Path(url.database)
    sequence_path = path.with_name(f"{path.stem}_sequences{path.suffix}")
    return url.set(database=str(sequence_path)).render_as_string(hide_password=False)


def create_sequence_engine(url: str) -> AsyncEngine:
    """
    创建序列计数器专用引擎

    SQLite 下用 BEGIN IMMEDIATE 在事务开始时拿写锁，
    并发调用方在忙等待中排队，而不是在锁升级时直接失败。
    """
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return create_async_engine(url, future=True)

    options = {"connect_args": {"timeout": 30}}
    if parsed.database not in (None, "", ":memory:"):
        options["poolclass"] = NullPool
    seq_engine = create_async_engine(url, future=True, **options)

    @event.listens_for(seq_engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(seq_engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return seq_engine


sequence_engine = create_sequence_engine(
    resolve_sequence_url(settings.database_url, settings.sequence_database_url)
)


class Base(DeclarativeBase):
    """SQLAlchemy 模型基类"""
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    数据库会话依赖注入

    每个请求一个工作单元：正常结束时提交，任何异常都回滚，
    因此一次操作要么完整落库，要么不留下任何业务数据（已发放的序列号不回收）。

    使用方式:
        @router.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def _ensure_sqlite_dir(url: str) -> None:
    """SQLite 文件库需要先创建所在目录"""
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite" and parsed.database not in (None, "", ":memory:"):
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)


async def init_db():
    """初始化数据库（创建所有表）"""
    # 导入模型以注册到 metadata
    from portal import models

    _ensure_sqlite_dir(settings.database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    _ensure_sqlite_dir(sequence_engine.url.render_as_string(hide_password=False))
    async with sequence_engine.begin() as conn:
        await conn.run_sync(lambda sync_conn: models.IdCounter.__table__.create(sync_conn, checkfirst=True))


async def close_db():
    """关闭数据库连接"""
    await engine.dispose()
    await sequence_engine.dispose()
