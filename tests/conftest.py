"""
测试配置文件

提供测试用的 fixtures：内存数据库、测试客户端、测试数据工厂等
"""
from typing import AsyncGenerator, Optional
from dataclasses import dataclass, field

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from portal import models  # noqa: F401
from portal.core.config import settings
from portal.core.database import Base, create_sequence_engine, get_db
from portal.core.events import event_relay
from portal.core.security import create_access_token
from portal.core.sequence import sequence_generator
from portal.crud import staff_profile_crud, user_crud
from portal.main import create_app
from portal.models.counter import IdCounter
from portal.models.user import UserRole
from tests.utils import DEFAULT_PASSWORD, auth, future

# 测试中不需要高强度哈希
settings.bcrypt_rounds = 4


# ========== 测试数据工厂 ==========

@dataclass
class DataFactory:
    """
    测试数据工厂类

    集中管理测试数据创建，避免各测试文件重复代码
    字段变更时只需修改此处
    """
    client: AsyncClient
    session_factory: async_sessionmaker
    _counter: int = field(default=0, repr=False)

    def _next_id(self) -> str:
        """生成唯一后缀，避免数据冲突"""
        self._counter += 1
        return str(self._counter)

    def _user_fields(self, suffix: str, **overrides) -> dict:
        return {
            "first_name": f"Test{suffix}",
            "father_name": "Father",
            "grandfather_name": "Grand",
            "username": f"user{suffix}",
            "email": f"user{suffix}@example.com",
            **overrides,
        }

    async def register_applicant(self, **overrides) -> dict:
        """通过注册接口创建申请人，返回 {"user", "tokens", "headers"}"""
        data = {**self._user_fields(self._next_id()), "password": DEFAULT_PASSWORD, **overrides}
        resp = await self.client.post("/api/v1/auth/register", json=data)
        assert resp.status_code == 201, f"注册失败: {resp.text}"
        payload = resp.json()["data"]
        payload["headers"] = auth(payload["tokens"]["access_token"])
        return payload

    async def create_user(self, role: UserRole, permissions: Optional[dict] = None) -> dict:
        """直接在数据库中创建员工 / 管理员，返回 {"id", "headers"}"""
        suffix = self._next_id()
        async with self.session_factory() as session:
            user = await user_crud.create_user(
                session,
                data={**self._user_fields(suffix), "is_verified": True},
                password=DEFAULT_PASSWORD,
                role=role,
            )
            if role == UserRole.STAFF:
                await staff_profile_crud.create_for_user(
                    session, user_id=user.id, permissions=permissions or {}
                )
            await session.commit()
            user_id = user.id
        return {"id": user_id, "headers": auth(create_access_token(user_id))}

    async def admin(self) -> dict:
        return await self.create_user(UserRole.ADMIN)

    async def staff(self, **permissions) -> dict:
        return await self.create_user(UserRole.STAFF, permissions=permissions)

    async def create_job(self, headers: dict, **overrides) -> dict:
        """创建招聘岗位（默认 Active，30 天后截止）"""
        suffix = self._next_id()
        data = {
            "name": f"测试岗位{suffix}",
            "description": "测试用岗位描述",
            "country": "Germany",
            "city": "Berlin",
            "status": "Active",
            "deadline": future(30),
            "positions": [{"title": "Nurse", "vacancies": 2}],
            **overrides,
        }
        resp = await self.client.post("/api/v1/jobs", json=data, headers=headers)
        assert resp.status_code == 201, f"创建岗位失败: {resp.text}"
        return resp.json()["data"]

    async def create_scholarship(self, headers: dict, **overrides) -> dict:
        """创建奖学金项目（默认 Active）"""
        suffix = self._next_id()
        data = {
            "name": f"测试奖学金{suffix}",
            "description": "测试用奖学金描述",
            "country": "Japan",
            "status": "Active",
            "deadline": future(30),
            "university_name": "Test University",
            "major": "Computer Science",
            "program": ["MSC"],
            "intake_date": future(120),
            **overrides,
        }
        resp = await self.client.post("/api/v1/scholarships", json=data, headers=headers)
        assert resp.status_code == 201, f"创建奖学金失败: {resp.text}"
        return resp.json()["data"]

    async def create_application(self, headers: dict, job_id: int) -> dict:
        resp = await self.client.post(
            "/api/v1/applications",
            json={"type": "Job", "job_id": job_id},
            headers=headers,
        )
        assert resp.status_code == 201, f"创建申请失败: {resp.text}"
        return resp.json()["data"]

    async def fill_sections(self, headers: dict, application_id: int, *sections: str) -> dict:
        """填写指定分节，返回更新后的申请"""
        body = {section: {"filled": True} for section in sections}
        resp = await self.client.patch(
            f"/api/v1/applications/{application_id}", json=body, headers=headers
        )
        assert resp.status_code == 200, f"更新申请失败: {resp.text}"
        return resp.json()["data"]


# 使用内存 SQLite 作为测试数据库；StaticPool 让所有会话共享同一个连接
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """每个测试使用独立的上传目录，并清空事件订阅者"""
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path / "uploads"))
    event_relay.clear()
    yield
    event_relay.clear()


@pytest_asyncio.fixture(scope="function")
async def sequence_db(tmp_path, monkeypatch):
    """
    计数器库使用临时目录下的 SQLite 文件

    与生产环境一样在独立连接上提交，业务会话回滚不影响已发放的值
    """
    engine = create_sequence_engine(f"sqlite+aiosqlite:///{tmp_path / 'sequences.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(IdCounter.__table__.create)
    monkeypatch.setattr(sequence_generator, "engine", engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def setup_db(sequence_db) -> AsyncGenerator[async_sessionmaker, None]:
    """
    每个测试前创建表，测试后删除表，确保测试隔离
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield TestSessionLocal

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def db_session(setup_db: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """直接操作数据库的会话（服务层测试使用）"""
    async with setup_db() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(setup_db: async_sessionmaker) -> AsyncGenerator[AsyncClient, None]:
    """
    提供测试用的 HTTP 客户端

    覆盖 get_db 依赖：每个请求一个会话，与生产环境一致
    """
    app = create_app()

    async def override_get_db():
        async with setup_db() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def factory(client: AsyncClient, setup_db: async_sessionmaker) -> DataFactory:
    """提供测试数据工厂实例"""
    return DataFactory(client=client, session_factory=setup_db)
