"""
申请生命周期 API 测试

覆盖创建、内容合并、提交阈值、重新开始、撤回与员工操作
"""
from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import update

from portal.core.config import settings
from portal.core.events import ADMIN_ROOM, event_relay, user_room
from portal.models.base import utcnow
from portal.models.listing import Job


ALL_SECTIONS = ("personal_info", "academic_info", "work_experience", "documents", "additional_info")


@pytest.mark.asyncio
async def test_application_full_flow(client: AsyncClient, factory):
    """申请人从创建到提交，员工审核到通过"""
    admin = await factory.admin()
    job = await factory.create_job(admin["headers"])
    applicant = await factory.register_applicant()
    headers = applicant["headers"]

    events = []
    event_relay.subscribe("*", events.append)

    # 1. 创建
    app = await factory.create_application(headers, job["id"])
    assert app["status"] == "Draft"
    assert app["progress"] == 0
    assert app["target"] == {"type": "Job", "id": job["id"]}
    assert app["listing_name"] == job["name"]
    assert set(app["application_data"]) == set(ALL_SECTIONS)

    # 岗位申请数 +1
    resp = await client.get(f"/api/v1/jobs/{job['id']}")
    assert resp.json()["data"]["application_count"] == 1

    # 2. 合并内容
    app = await factory.fill_sections(headers, app["id"], "personal_info", "academic_info")
    assert app["progress"] == 40
    assert app["status"] == "Draft"

    resp = await client.patch(
        f"/api/v1/applications/{app['id']}",
        json={"personal_info": {"phone": "123"}, "current_step": 2},
        headers=headers,
    )
    data = resp.json()["data"]
    assert data["application_data"]["personal_info"] == {"filled": True, "phone": "123"}
    assert data["current_step"] == 2
    assert data["progress"] == 40

    # 3. 提交
    await factory.fill_sections(headers, app["id"], "work_experience", "documents")
    resp = await client.post(f"/api/v1/applications/{app['id']}/submit", headers=headers)
    assert resp.status_code == 200
    submitted = resp.json()["data"]
    assert submitted["status"] == "Submitted"
    assert submitted["submission_date"] is not None
    assert submitted["is_submitted"] is True

    # 4. 员工审核
    staff = await factory.staff(can_edit_applications=True)
    resp = await client.patch(
        f"/api/v1/applications/{app['id']}/status",
        json={"status": "Under Review"},
        headers=staff["headers"],
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "Under Review"

    resp = await client.post(
        f"/api/v1/applications/{app['id']}/notes",
        json={"note": "missing transcript", "severity": "Warning"},
        headers=staff["headers"],
    )
    notes = resp.json()["data"]["review_notes"]
    assert len(notes) == 1
    assert notes[0]["seq"] == 1
    assert notes[0]["reviewer_id"] == staff["id"]

    resp = await client.patch(
        f"/api/v1/applications/{app['id']}/status",
        json={"status": "Approved"},
        headers=admin["headers"],
    )
    approved = resp.json()["data"]
    assert approved["status"] == "Approved"
    assert approved["is_terminal"] is True
    # 再次变更状态不会改写首次提交时间
    assert approved["submission_date"] == submitted["submission_date"]

    names = [(e.name, e.room) for e in events]
    owner_room = user_room(applicant["user"]["id"])
    assert ("application_created", ADMIN_ROOM) in names
    assert ("application_submitted", ADMIN_ROOM) in names
    assert ("application_submitted", owner_room) in names
    assert ("application_review_note", owner_room) in names
    assert ("application_status_changed", owner_room) in names


@pytest.mark.asyncio
async def test_submit_requires_progress_threshold(client: AsyncClient, factory, monkeypatch):
    admin = await factory.admin()
    job = await factory.create_job(admin["headers"])
    applicant = await factory.register_applicant()
    headers = applicant["headers"]
    app = await factory.create_application(headers, job["id"])

    await factory.fill_sections(headers, app["id"], "personal_info", "academic_info", "documents")
    resp = await client.post(f"/api/v1/applications/{app['id']}/submit", headers=headers)
    assert resp.status_code == 412
    body = resp.json()
    assert body["success"] is False
    assert body["kind"] == "precondition_failed"
    assert body["data"] == {"progress": 60, "required": 80}

    # 阈值可配置：81 时 80% 也不能提交
    app = await factory.fill_sections(headers, app["id"], "work_experience")
    assert app["progress"] == 80
    monkeypatch.setattr(settings, "submit_progress_threshold", 81)
    resp = await client.post(f"/api/v1/applications/{app['id']}/submit", headers=headers)
    assert resp.status_code == 412

    monkeypatch.setattr(settings, "submit_progress_threshold", 80)
    resp = await client.post(f"/api/v1/applications/{app['id']}/submit", headers=headers)
    assert resp.status_code == 200

    # 已提交的申请不能重复提交
    resp = await client.post(f"/api/v1/applications/{app['id']}/submit", headers=headers)
    assert resp.status_code == 409
    assert resp.json()["kind"] == "conflict"


@pytest.mark.asyncio
async def test_duplicate_application_conflict(client: AsyncClient, factory):
    admin = await factory.admin()
    job = await factory.create_job(admin["headers"])
    other_job = await factory.create_job(admin["headers"])
    applicant = await factory.register_applicant()
    headers = applicant["headers"]

    await factory.create_application(headers, job["id"])
    resp = await client.post(
        "/api/v1/applications", json={"type": "Job", "job_id": job["id"]}, headers=headers
    )
    assert resp.status_code == 409

    # 失败的创建不会增加申请数
    resp = await client.get(f"/api/v1/jobs/{job['id']}")
    assert resp.json()["data"]["application_count"] == 1

    # 不同岗位可以申请
    await factory.create_application(headers, other_job["id"])

    # 另一个申请人申请同一岗位
    second = await factory.register_applicant()
    await factory.create_application(second["headers"], job["id"])


@pytest.mark.asyncio
async def test_scholarship_application(client: AsyncClient, factory):
    admin = await factory.admin()
    scholarship = await factory.create_scholarship(admin["headers"])
    applicant = await factory.register_applicant()

    resp = await client.post(
        "/api/v1/applications",
        json={"type": "Scholarship", "scholarship_id": scholarship["id"]},
        headers=applicant["headers"],
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["target"] == {"type": "Scholarship", "id": scholarship["id"]}
    assert data["job_id"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"type": "Job"},
    {"type": "Job", "job_id": 1, "scholarship_id": 1},
    {"type": "Scholarship", "job_id": 1},
])
async def test_create_requires_exactly_one_target(client: AsyncClient, factory, body):
    applicant = await factory.register_applicant()
    resp = await client.post("/api/v1/applications", json=body, headers=applicant["headers"])
    assert resp.status_code == 422
    assert resp.json()["kind"] == "validation_failed"


@pytest.mark.asyncio
async def test_create_missing_listing_not_found(client: AsyncClient, factory):
    applicant = await factory.register_applicant()
    resp = await client.post(
        "/api/v1/applications", json={"type": "Job", "job_id": 9999}, headers=applicant["headers"]
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_listing_not_accepting_applications(client: AsyncClient, factory, setup_db):
    admin = await factory.admin()
    draft = await factory.create_job(admin["headers"], status="Draft")
    expired = await factory.create_job(admin["headers"])
    applicant = await factory.register_applicant()
    headers = applicant["headers"]

    resp = await client.post(
        "/api/v1/applications", json={"type": "Job", "job_id": draft["id"]}, headers=headers
    )
    assert resp.status_code == 412

    # 存储状态仍为 Active，但截止时间已过
    async with setup_db() as session:
        await session.execute(
            update(Job).where(Job.id == expired["id"]).values(deadline=utcnow() - timedelta(days=1))
        )
        await session.commit()

    resp = await client.post(
        "/api/v1/applications", json={"type": "Job", "job_id": expired["id"]}, headers=headers
    )
    assert resp.status_code == 412
    assert resp.json()["kind"] == "precondition_failed"

    # 读取时惰性修正为 Closed
    resp = await client.get(f"/api/v1/jobs/{expired['id']}")
    data = resp.json()["data"]
    assert data["status"] == "Closed"
    assert data["is_accepting_applications"] is False


@pytest.mark.asyncio
async def test_restart_rules(client: AsyncClient, factory):
    admin = await factory.admin()
    applicant = await factory.register_applicant()
    headers = applicant["headers"]

    job = await factory.create_job(admin["headers"])
    app = await factory.create_application(headers, job["id"])
    await factory.fill_sections(headers, app["id"], *ALL_SECTIONS)
    await client.post(f"/api/v1/applications/{app['id']}/submit", headers=headers)

    # Submitted 不能重新开始
    resp = await client.post(f"/api/v1/applications/{app['id']}/restart", headers=headers)
    assert resp.status_code == 409

    # Under Review 可以：状态、进度、步骤与提交时间被重置
    await client.patch(
        f"/api/v1/applications/{app['id']}/status", json={"status": "Under Review"}, headers=admin["headers"]
    )
    await client.post(
        f"/api/v1/applications/{app['id']}/notes", json={"note": "check"}, headers=admin["headers"]
    )
    resp = await client.post(f"/api/v1/applications/{app['id']}/restart", headers=headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["status"] == "Draft"
    assert data["progress"] == 0
    assert data["current_step"] == 0
    assert data["submission_date"] is None
    # 评审备注只追加，不随重新开始清除
    assert len(data["review_notes"]) == 1

    # Approved 不能重新开始
    other = await factory.create_job(admin["headers"])
    app2 = await factory.create_application(headers, other["id"])
    await client.patch(
        f"/api/v1/applications/{app2['id']}/status", json={"status": "Approved"}, headers=admin["headers"]
    )
    resp = await client.post(f"/api/v1/applications/{app2['id']}/restart", headers=headers)
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_withdraw(client: AsyncClient, factory):
    admin = await factory.admin()
    job = await factory.create_job(admin["headers"])
    applicant = await factory.register_applicant()
    headers = applicant["headers"]
    app = await factory.create_application(headers, job["id"])

    resp = await client.post(f"/api/v1/applications/{app['id']}/withdraw", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "Withdrawn"

    # 终态不能再撤回或修改内容
    resp = await client.post(f"/api/v1/applications/{app['id']}/withdraw", headers=headers)
    assert resp.status_code == 409
    resp = await client.patch(
        f"/api/v1/applications/{app['id']}", json={"personal_info": {"a": 1}}, headers=headers
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_ownership_and_staff_permissions(client: AsyncClient, factory):
    admin = await factory.admin()
    job = await factory.create_job(admin["headers"])
    owner = await factory.register_applicant()
    intruder = await factory.register_applicant()
    app = await factory.create_application(owner["headers"], job["id"])

    # 其他申请人不能读取或修改
    resp = await client.get(f"/api/v1/applications/{app['id']}", headers=intruder["headers"])
    assert resp.status_code == 403
    assert resp.json()["kind"] == "forbidden"
    resp = await client.patch(
        f"/api/v1/applications/{app['id']}", json={"personal_info": {"a": 1}}, headers=intruder["headers"]
    )
    assert resp.status_code == 403

    # 申请人不能设置状态
    resp = await client.patch(
        f"/api/v1/applications/{app['id']}/status", json={"status": "Approved"}, headers=owner["headers"]
    )
    assert resp.status_code == 403

    # 员工可以读取，但没有 can_edit_applications 时不能写
    viewer = await factory.staff()
    resp = await client.get(f"/api/v1/applications/{app['id']}", headers=viewer["headers"])
    assert resp.status_code == 200
    resp = await client.patch(
        f"/api/v1/applications/{app['id']}/status", json={"status": "Under Review"}, headers=viewer["headers"]
    )
    assert resp.status_code == 403

    # 未登录
    resp = await client.get(f"/api/v1/applications/{app['id']}")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_interview_and_payment_merge(client: AsyncClient, factory):
    admin = await factory.admin()
    job = await factory.create_job(admin["headers"])
    applicant = await factory.register_applicant()
    app = await factory.create_application(applicant["headers"], job["id"])

    resp = await client.put(
        f"/api/v1/applications/{app['id']}/interview",
        json={"interview_type": "Video Call", "meeting_link": "https://meet.example.com/a"},
        headers=admin["headers"],
    )
    assert resp.status_code == 200
    resp = await client.put(
        f"/api/v1/applications/{app['id']}/interview",
        json={"notes": "bring passport"},
        headers=admin["headers"],
    )
    interview = resp.json()["data"]["interview_details"]
    assert interview["interview_type"] == "Video Call"
    assert interview["notes"] == "bring passport"

    resp = await client.put(
        f"/api/v1/applications/{app['id']}/payment",
        json={"amount": 50, "currency": "USD", "payment_status": "Paid"},
        headers=admin["headers"],
    )
    data = resp.json()["data"]
    assert data["payment_info"]["payment_status"] == "Paid"
    assert data["status"] == "Draft"


@pytest.mark.asyncio
async def test_listing_and_stats(client: AsyncClient, factory):
    admin = await factory.admin()
    job = await factory.create_job(admin["headers"])
    applicant = await factory.register_applicant()
    headers = applicant["headers"]
    app = await factory.create_application(headers, job["id"])
    await factory.fill_sections(headers, app["id"], *ALL_SECTIONS)
    await client.post(f"/api/v1/applications/{app['id']}/submit", headers=headers)

    resp = await client.get("/api/v1/applications/my/list", headers=headers)
    assert resp.json()["data"]["total"] == 1

    resp = await client.get("/api/v1/applications", params={"status": "Submitted"}, headers=admin["headers"])
    assert resp.json()["data"]["total"] == 1

    resp = await client.get("/api/v1/applications/pending/list", headers=admin["headers"])
    assert [item["id"] for item in resp.json()["data"]] == [app["id"]]

    resp = await client.get("/api/v1/applications/stats/overview", headers=admin["headers"])
    stats = resp.json()["data"]
    assert stats["total"] == 1
    assert stats["by_status"]["Submitted"] == 1

    # 申请人不能访问管理端列表
    resp = await client.get("/api/v1/applications", headers=headers)
    assert resp.status_code == 403
