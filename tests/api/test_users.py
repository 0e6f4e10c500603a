"""
用户管理 API 测试
"""
import pytest
from httpx import AsyncClient

from tests.utils import DEFAULT_PASSWORD, auth


def user_payload(suffix: str, **overrides) -> dict:
    return {
        "first_name": f"Staff{suffix}",
        "father_name": "Father",
        "grandfather_name": "Grand",
        "username": f"staff{suffix}",
        "email": f"staff{suffix}@example.com",
        "password": DEFAULT_PASSWORD,
        **overrides,
    }


@pytest.mark.asyncio
async def test_admin_creates_staff(client: AsyncClient, factory):
    admin = await factory.admin()

    resp = await client.post("/api/v1/users", json=user_payload(
        "a",
        role="staff",
        staff_profile={"department": "Recruitment", "permissions": {"can_manage_jobs": True}},
    ), headers=admin["headers"])
    assert resp.status_code == 201
    user = resp.json()["data"]
    assert user["role"] == "staff"
    assert user["staff_profile"]["department"] == "Recruitment"
    # 未指定的权限使用默认值
    assert user["staff_profile"]["permissions"]["can_manage_jobs"] is True
    assert user["staff_profile"]["permissions"]["can_view_applications"] is True
    assert user["staff_profile"]["permissions"]["can_edit_users"] is False

    # 新员工可以直接登录并创建岗位
    resp = await client.post("/api/v1/auth/login", json={"identifier": "staffa", "password": DEFAULT_PASSWORD})
    assert resp.status_code == 200
    staff_headers = auth(resp.json()["data"]["tokens"]["access_token"])
    job = await factory.create_job(staff_headers)
    assert job["created_by"] == user["id"]


@pytest.mark.asyncio
async def test_create_user_validation(client: AsyncClient, factory):
    admin = await factory.admin()

    # 只有 staff 角色可以附带员工档案
    resp = await client.post("/api/v1/users", json=user_payload(
        "b", role="applicant", staff_profile={"department": "x"},
    ), headers=admin["headers"])
    assert resp.status_code == 422

    resp = await client.post("/api/v1/users", json=user_payload(
        "c", role="staff", staff_profile={"permissions": {"can_fly": True}},
    ), headers=admin["headers"])
    assert resp.status_code == 422

    # 管理员创建的申请人自动拥有档案
    resp = await client.post("/api/v1/users", json=user_payload("d"), headers=admin["headers"])
    assert resp.status_code == 201
    resp = await client.post("/api/v1/auth/login", json={"identifier": "staffd", "password": DEFAULT_PASSWORD})
    headers = auth(resp.json()["data"]["tokens"]["access_token"])
    resp = await client.get("/api/v1/applicants/me", headers=headers)
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_only_admin_creates_users(client: AsyncClient, factory):
    staff = await factory.staff(can_edit_users=True)
    resp = await client.post("/api/v1/users", json=user_payload("e"), headers=staff["headers"])
    assert resp.status_code == 403

    applicant = await factory.register_applicant()
    resp = await client.post("/api/v1/users", json=user_payload("f"), headers=applicant["headers"])
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_update_permissions(client: AsyncClient, factory):
    admin = await factory.admin()
    staff = await factory.staff()
    applicant = await factory.register_applicant()

    resp = await client.put(
        f"/api/v1/users/{staff['id']}/permissions",
        json={"permissions": {"can_manage_scholarships": True}},
        headers=admin["headers"],
    )
    assert resp.status_code == 200
    permissions = resp.json()["data"]["staff_profile"]["permissions"]
    assert permissions["can_manage_scholarships"] is True
    assert permissions["can_view_applications"] is True

    # 新权限对已签发的令牌立即生效
    scholarship = await factory.create_scholarship(staff["headers"])
    assert scholarship["created_by"] == staff["id"]

    resp = await client.put(
        f"/api/v1/users/{applicant['user']['id']}/permissions",
        json={"permissions": {"can_manage_jobs": True}},
        headers=admin["headers"],
    )
    assert resp.status_code == 409

    resp = await client.put(
        f"/api/v1/users/{staff['id']}/permissions",
        json={"permissions": {"can_manage_jobs": True}},
        headers=staff["headers"],
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_user_read_and_update(client: AsyncClient, factory):
    applicant = await factory.register_applicant()
    other = await factory.register_applicant()
    user_id = applicant["user"]["id"]

    resp = await client.get(f"/api/v1/users/{user_id}", headers=applicant["headers"])
    assert resp.status_code == 200
    resp = await client.get(f"/api/v1/users/{user_id}", headers=other["headers"])
    assert resp.status_code == 403

    resp = await client.patch(f"/api/v1/users/{user_id}", json={"phone": "+251900000000"}, headers=applicant["headers"])
    assert resp.status_code == 200
    assert resp.json()["data"]["phone"] == "+251900000000"

    # 员工写用户需要 can_edit_users
    viewer = await factory.staff()
    resp = await client.patch(f"/api/v1/users/{user_id}", json={"phone": "1"}, headers=viewer["headers"])
    assert resp.status_code == 403
    editor = await factory.staff(can_edit_users=True)
    resp = await client.patch(f"/api/v1/users/{user_id}", json={"phone": "2"}, headers=editor["headers"])
    assert resp.status_code == 200

    # 停用需要 can_delete_users
    resp = await client.post(f"/api/v1/users/{user_id}/deactivate", headers=editor["headers"])
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_list_users(client: AsyncClient, factory):
    admin = await factory.admin()
    await factory.staff()
    await factory.register_applicant(username="searchme", email="searchme@example.com")

    resp = await client.get("/api/v1/users", params={"role": "staff"}, headers=admin["headers"])
    assert resp.json()["data"]["total"] == 1

    resp = await client.get("/api/v1/users", params={"keyword": "SEARCH"}, headers=admin["headers"])
    data = resp.json()["data"]
    assert data["total"] == 1
    assert data["items"][0]["username"] == "searchme"

    applicant = await factory.register_applicant()
    resp = await client.get("/api/v1/users", headers=applicant["headers"])
    assert resp.status_code == 403
