"""
招聘岗位 / 奖学金 / 公告 API 测试
"""
import pytest
from httpx import AsyncClient

from tests.utils import future


@pytest.mark.asyncio
async def test_job_crud_flow(client: AsyncClient, factory):
    """测试招聘岗位完整 CRUD 流程"""
    admin = await factory.admin()

    # 1. Create
    job = await factory.create_job(
        admin["headers"],
        positions=[{"title": "Nurse", "vacancies": 2}, {"title": "Doctor", "vacancies": 1}],
    )
    assert job["total_vacancies"] == 3
    assert [p["seq"] for p in job["positions"]] == [1, 2]
    assert job["created_by"] == admin["id"]
    assert job["is_accepting_applications"] is True

    # 2. Read（浏览次数 +1）
    resp = await client.get(f"/api/v1/jobs/{job['id']}")
    assert resp.status_code == 200
    assert resp.json()["data"]["view_count"] == 1

    # 3. Update
    resp = await client.patch(
        f"/api/v1/jobs/{job['id']}", json={"name": "更新后的岗位"}, headers=admin["headers"]
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["name"] == "更新后的岗位"

    # 4. Delete
    resp = await client.delete(f"/api/v1/jobs/{job['id']}", headers=admin["headers"])
    assert resp.status_code == 200
    resp = await client.get(f"/api/v1/jobs/{job['id']}")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_job_ids_are_sequential(client: AsyncClient, factory):
    admin = await factory.admin()
    first = await factory.create_job(admin["headers"])
    second = await factory.create_job(admin["headers"])
    assert second["id"] == first["id"] + 1


@pytest.mark.asyncio
async def test_job_date_validation(client: AsyncClient, factory):
    admin = await factory.admin()
    resp = await client.post("/api/v1/jobs", json={
        "name": "日期错误",
        "description": "截止时间晚于入职日期",
        "country": "Germany",
        "deadline": future(30),
        "start_date": future(10),
    }, headers=admin["headers"])
    assert resp.status_code == 422
    assert resp.json()["kind"] == "validation_failed"

    # 校验失败的创建已消耗序号 1，回滚后不再复用
    job = await factory.create_job(admin["headers"])
    assert job["id"] == 2
    resp = await client.get("/api/v1/jobs/1", headers=admin["headers"])
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_public_listing_hides_closed(client: AsyncClient, factory):
    admin = await factory.admin()
    active = await factory.create_job(admin["headers"], country="France")
    await factory.create_job(admin["headers"], status="Draft", country="France")

    # 匿名用户只能看到正在接受申请的岗位
    resp = await client.get("/api/v1/jobs", params={"country": "France"})
    data = resp.json()["data"]
    assert data["total"] == 1
    assert data["items"][0]["id"] == active["id"]

    # 员工可以看到全部
    resp = await client.get("/api/v1/jobs", params={"country": "France"}, headers=admin["headers"])
    assert resp.json()["data"]["total"] == 2

    resp = await client.get("/api/v1/jobs", params={"status": "Draft"}, headers=admin["headers"])
    assert resp.json()["data"]["total"] == 1

    resp = await client.get("/api/v1/jobs/countries")
    assert resp.json()["data"] == ["France"]


@pytest.mark.asyncio
async def test_listing_write_permissions(client: AsyncClient, factory):
    applicant = await factory.register_applicant()
    resp = await client.post("/api/v1/jobs", json={
        "name": "x", "description": "x", "country": "x", "deadline": future(5),
    }, headers=applicant["headers"])
    assert resp.status_code == 403

    staff = await factory.staff()
    resp = await client.post("/api/v1/jobs", json={
        "name": "x", "description": "x", "country": "x", "deadline": future(5),
    }, headers=staff["headers"])
    assert resp.status_code == 403

    manager = await factory.staff(can_manage_jobs=True)
    job = await factory.create_job(manager["headers"])
    assert job["created_by"] == manager["id"]

    # 没有奖学金权限
    resp = await client.post("/api/v1/scholarships", json={
        "name": "x", "description": "x", "country": "x", "deadline": future(5),
        "university_name": "U", "major": "M", "intake_date": future(50),
    }, headers=manager["headers"])
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_delete_job_with_applications_conflict(client: AsyncClient, factory):
    admin = await factory.admin()
    job = await factory.create_job(admin["headers"])
    applicant = await factory.register_applicant()
    await factory.create_application(applicant["headers"], job["id"])

    resp = await client.delete(f"/api/v1/jobs/{job['id']}", headers=admin["headers"])
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_scholarship_flow(client: AsyncClient, factory):
    admin = await factory.admin()
    scholarship = await factory.create_scholarship(admin["headers"], program=["MSC", "PhD"])
    assert scholarship["program"] == ["MSC", "PhD"]

    # 截止时间必须早于入学时间
    resp = await client.patch(
        f"/api/v1/scholarships/{scholarship['id']}",
        json={"intake_date": future(10)},
        headers=admin["headers"],
    )
    assert resp.status_code == 422

    resp = await client.get("/api/v1/scholarships", params={"keyword": "computer"})
    assert resp.json()["data"]["total"] == 1


@pytest.mark.asyncio
async def test_ads(client: AsyncClient, factory):
    admin = await factory.admin()
    resp = await client.post("/api/v1/ads", json={
        "title": "开放申请",
        "description": "2025 年奖学金开放申请",
        "category": "Scholarship",
        "is_pinned": True,
    }, headers=admin["headers"])
    assert resp.status_code == 201
    ad = resp.json()["data"]
    assert ad["is_running"] is True

    resp = await client.post("/api/v1/ads", json={
        "title": "已下线",
        "description": "未启用",
        "is_active": False,
    }, headers=admin["headers"])
    assert resp.status_code == 201

    resp = await client.get("/api/v1/ads")
    data = resp.json()["data"]
    assert data["total"] == 1
    assert data["items"][0]["id"] == ad["id"]

    resp = await client.post("/api/v1/ads", json={
        "title": "x",
        "description": "x",
        "start_date": future(10),
        "end_date": future(5),
    }, headers=admin["headers"])
    assert resp.status_code == 422

    resp = await client.delete(f"/api/v1/ads/{ad['id']}", headers=admin["headers"])
    assert resp.status_code == 200
