"""
申请人档案 API 测试
"""
import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_profile_completion(client: AsyncClient, factory):
    """测试档案完整度随档案内容变化"""
    applicant = await factory.register_applicant()
    headers = applicant["headers"]

    resp = await client.patch(
        "/api/v1/applicants/me",
        json={"dob": "1995-05-20", "nationality": "Ethiopia"},
        headers=headers,
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["profile_completion"] == 50
    assert data["age"] >= 30

    resp = await client.patch(
        "/api/v1/applicants/me",
        json={"gender": "Female", "bio": "护理专业毕业"},
        headers=headers,
    )
    assert resp.json()["data"]["profile_completion"] == 100

    # 上限 100
    resp = await client.post("/api/v1/applicants/me/skills", json={"skill": "Nursing"}, headers=headers)
    assert resp.json()["data"]["profile_completion"] == 100

    # 清空简介后回落
    resp = await client.patch("/api/v1/applicants/me", json={"bio": ""}, headers=headers)
    assert resp.json()["data"]["profile_completion"] == 80


@pytest.mark.asyncio
async def test_dob_must_be_in_past(client: AsyncClient, factory):
    applicant = await factory.register_applicant()
    resp = await client.patch(
        "/api/v1/applicants/me", json={"dob": "2999-01-01"}, headers=applicant["headers"]
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_skills_and_languages(client: AsyncClient, factory):
    applicant = await factory.register_applicant()
    headers = applicant["headers"]

    await client.post("/api/v1/applicants/me/skills", json={"skill": "Python"}, headers=headers)
    resp = await client.post("/api/v1/applicants/me/skills", json={"skill": "Python"}, headers=headers)
    data = resp.json()["data"]
    assert data["skills"] == ["Python"]
    assert data["profile_completion"] == 5

    resp = await client.put(
        "/api/v1/applicants/me/languages",
        json={"language": "English", "proficiency": "Beginner"},
        headers=headers,
    )
    assert resp.json()["data"]["profile_completion"] == 10

    # 同一语言再次提交只更新熟练度
    resp = await client.put(
        "/api/v1/applicants/me/languages",
        json={"language": "English", "proficiency": "Native"},
        headers=headers,
    )
    assert resp.json()["data"]["languages"] == [{"language": "English", "proficiency": "Native"}]

    resp = await client.delete("/api/v1/applicants/me/skills/Python", headers=headers)
    assert resp.json()["data"]["skills"] == []
    resp = await client.delete("/api/v1/applicants/me/skills/Python", headers=headers)
    assert resp.status_code == 404

    resp = await client.delete("/api/v1/applicants/me/languages/English", headers=headers)
    assert resp.json()["data"]["profile_completion"] == 0
    resp = await client.delete("/api/v1/applicants/me/languages/English", headers=headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_work_experience(client: AsyncClient, factory):
    applicant = await factory.register_applicant()
    headers = applicant["headers"]

    first = (await client.post("/api/v1/applicants/me/work-experience", json={
        "company": "City Hospital",
        "position": "Nurse",
        "start_date": "2018-01-01",
        "end_date": "2020-12-31",
    }, headers=headers)).json()["data"]
    second = (await client.post("/api/v1/applicants/me/work-experience", json={
        "company": "Clinic",
        "position": "Head Nurse",
        "current": True,
    }, headers=headers)).json()["data"]
    assert (first["seq"], second["seq"]) == (1, 2)

    resp = await client.patch(
        "/api/v1/applicants/me/work-experience/1", json={"position": "Senior Nurse"}, headers=headers
    )
    assert resp.json()["data"]["position"] == "Senior Nurse"
    assert resp.json()["data"]["company"] == "City Hospital"

    resp = await client.delete("/api/v1/applicants/me/work-experience/1", headers=headers)
    assert resp.status_code == 200

    # 删除后新条目不复用旧 seq
    third = (await client.post("/api/v1/applicants/me/work-experience", json={
        "company": "Lab", "position": "Assistant",
    }, headers=headers)).json()["data"]
    assert third["seq"] == 3

    resp = await client.patch(
        "/api/v1/applicants/me/work-experience/1", json={"position": "x"}, headers=headers
    )
    assert resp.status_code == 404

    resp = await client.post("/api/v1/applicants/me/work-experience", json={
        "company": "Bad", "position": "Dates", "start_date": "2020-01-01", "end_date": "2019-01-01",
    }, headers=headers)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_education(client: AsyncClient, factory):
    applicant = await factory.register_applicant()
    headers = applicant["headers"]

    resp = await client.post("/api/v1/applicants/me/education", json={
        "institution": "Addis Ababa University",
        "degree": "BSc",
        "field_of_study": "Nursing",
        "gpa": 3.6,
    }, headers=headers)
    assert resp.status_code == 201
    education = resp.json()["data"]

    resp = await client.get("/api/v1/applicants/me", headers=headers)
    data = resp.json()["data"]
    assert data["profile_completion"] == 10
    assert [e["id"] for e in data["education"]] == [education["id"]]

    resp = await client.delete(f"/api/v1/applicants/me/education/{education['id']}", headers=headers)
    assert resp.status_code == 200
    resp = await client.get("/api/v1/applicants/me", headers=headers)
    assert resp.json()["data"]["profile_completion"] == 0

    resp = await client.delete(f"/api/v1/applicants/me/education/{education['id']}", headers=headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_profile_access(client: AsyncClient, factory):
    owner = await factory.register_applicant()
    other = await factory.register_applicant()
    profile = (await client.get("/api/v1/applicants/me", headers=owner["headers"])).json()["data"]

    resp = await client.get(f"/api/v1/applicants/{profile['id']}", headers=other["headers"])
    assert resp.status_code == 403
    resp = await client.get(f"/api/v1/applicants/{profile['id']}", headers=owner["headers"])
    assert resp.status_code == 200

    # 员工可以查看和修改档案
    staff = await factory.staff()
    resp = await client.patch(
        f"/api/v1/applicants/{profile['id']}", json={"nationality": "Kenya"}, headers=staff["headers"]
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["profile_completion"] == 25

    resp = await client.get("/api/v1/applicants", headers=other["headers"])
    assert resp.status_code == 403
    resp = await client.get(
        "/api/v1/applicants", params={"nationality": "Kenya"}, headers=staff["headers"]
    )
    data = resp.json()["data"]
    assert data["total"] == 1
    assert data["items"][0]["id"] == profile["id"]


@pytest.mark.asyncio
async def test_search_by_skill(client: AsyncClient, factory):
    first = await factory.register_applicant()
    second = await factory.register_applicant()
    await client.post("/api/v1/applicants/me/skills", json={"skill": "Python"}, headers=first["headers"])
    await client.post("/api/v1/applicants/me/skills", json={"skill": "Java"}, headers=second["headers"])

    admin = await factory.admin()
    resp = await client.get("/api/v1/applicants", params={"skill": "python"}, headers=admin["headers"])
    assert resp.json()["data"]["total"] == 1

    resp = await client.get("/api/v1/applicants", params={"min_completion": 5}, headers=admin["headers"])
    assert resp.json()["data"]["total"] == 2
