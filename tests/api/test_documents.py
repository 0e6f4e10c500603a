"""
文档 API 测试
"""
from pathlib import Path

import pytest
from httpx import AsyncClient

from portal.core.config import settings

PDF_BYTES = b"%PDF-1.4 test document"


async def upload(client: AsyncClient, headers: dict, filename: str = "cv.pdf", content: bytes = PDF_BYTES, **form):
    return await client.post(
        "/api/v1/documents/upload",
        files={"file": (filename, content, "application/pdf")},
        data={"type": "CV", **form},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_upload_and_download(client: AsyncClient, factory):
    applicant = await factory.register_applicant()
    headers = applicant["headers"]

    resp = await upload(client, headers, filename="My CV.PDF")
    assert resp.status_code == 201
    document = resp.json()["data"]
    assert document["file_extension"] == "pdf"
    assert document["file_size"] == len(PDF_BYTES)
    assert document["original_filename"] == "My CV.PDF"
    assert document["is_verified"] is False
    assert (Path(settings.upload_dir) / document["filename"]).is_file()

    # 上传文档后档案完整度 +10
    resp = await client.get("/api/v1/applicants/me", headers=headers)
    assert resp.json()["data"]["profile_completion"] == 10

    resp = await client.get(document["download_url"], headers=headers)
    assert resp.status_code == 200
    assert resp.content == PDF_BYTES
    assert "filename*=UTF-8''" in resp.headers["content-disposition"]

    resp = await client.get(f"/api/v1/documents/{document['id']}", headers=headers)
    assert resp.json()["data"]["download_count"] == 1

    resp = await client.get("/api/v1/documents/my/list", headers=headers)
    assert resp.json()["data"]["total"] == 1


@pytest.mark.asyncio
async def test_upload_validation(client: AsyncClient, factory, monkeypatch):
    applicant = await factory.register_applicant()
    headers = applicant["headers"]

    resp = await upload(client, headers, filename="virus.exe")
    assert resp.status_code == 422
    assert resp.json()["kind"] == "validation_failed"

    resp = await upload(client, headers, content=b"")
    assert resp.status_code == 422

    monkeypatch.setattr(settings, "max_file_size", 10)
    resp = await upload(client, headers)
    assert resp.status_code == 422
    assert resp.json()["data"]["max_size"] == 10

    # 校验失败时不落盘
    upload_dir = Path(settings.upload_dir)
    assert not upload_dir.exists() or not any(upload_dir.iterdir())


@pytest.mark.asyncio
async def test_upload_requires_applicant(client: AsyncClient, factory):
    admin = await factory.admin()
    resp = await upload(client, admin["headers"])
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_upload_attached_to_application(client: AsyncClient, factory):
    admin = await factory.admin()
    job = await factory.create_job(admin["headers"])
    owner = await factory.register_applicant()
    other = await factory.register_applicant()
    application = await factory.create_application(owner["headers"], job["id"])

    resp = await upload(client, owner["headers"], application_id=str(application["id"]))
    assert resp.status_code == 201
    assert resp.json()["data"]["application_id"] == application["id"]

    # 不能关联到他人的申请
    resp = await upload(client, other["headers"], application_id=str(application["id"]))
    assert resp.status_code == 403

    resp = await upload(client, owner["headers"], application_id="9999")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_document_access_control(client: AsyncClient, factory):
    owner = await factory.register_applicant()
    other = await factory.register_applicant()
    document = (await upload(client, owner["headers"])).json()["data"]

    resp = await client.get(f"/api/v1/documents/{document['id']}", headers=other["headers"])
    assert resp.status_code == 403
    resp = await client.get(document["download_url"], headers=other["headers"])
    assert resp.status_code == 403

    # 员工可以读取，但审核需要权限
    staff = await factory.staff(can_manage_documents=False)
    resp = await client.get(f"/api/v1/documents/{document['id']}", headers=staff["headers"])
    assert resp.status_code == 200
    resp = await client.post(
        f"/api/v1/documents/{document['id']}/verify", json={"notes": "ok"}, headers=staff["headers"]
    )
    assert resp.status_code == 403

    # 申请人不能审核自己的文档
    resp = await client.post(
        f"/api/v1/documents/{document['id']}/verify", json={}, headers=owner["headers"]
    )
    assert resp.status_code == 403

    reviewer = await factory.staff(can_manage_documents=True)
    resp = await client.post(
        f"/api/v1/documents/{document['id']}/verify", json={"notes": "ok"}, headers=reviewer["headers"]
    )
    assert resp.status_code == 200
    verified = resp.json()["data"]
    assert verified["is_verified"] is True
    assert verified["verified_by"] == reviewer["id"]

    resp = await client.post(f"/api/v1/documents/{document['id']}/unverify", headers=reviewer["headers"])
    assert resp.json()["data"]["is_verified"] is False
    assert resp.json()["data"]["verified_by"] is None

    resp = await client.get("/api/v1/documents", headers=owner["headers"])
    assert resp.status_code == 403
    resp = await client.get("/api/v1/documents", headers=staff["headers"])
    assert resp.json()["data"]["total"] == 1


@pytest.mark.asyncio
async def test_update_and_delete_document(client: AsyncClient, factory):
    applicant = await factory.register_applicant()
    headers = applicant["headers"]
    document = (await upload(client, headers)).json()["data"]

    resp = await client.patch(
        f"/api/v1/documents/{document['id']}",
        json={"type": "Transcript", "description": "本科成绩单"},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["type"] == "Transcript"

    resp = await client.delete(f"/api/v1/documents/{document['id']}", headers=headers)
    assert resp.status_code == 200
    assert not (Path(settings.upload_dir) / document["filename"]).exists()

    resp = await client.get(f"/api/v1/documents/{document['id']}", headers=headers)
    assert resp.status_code == 404

    # 删除最后一份文档后完整度回落
    resp = await client.get("/api/v1/applicants/me", headers=headers)
    assert resp.json()["data"]["profile_completion"] == 0


@pytest.mark.asyncio
async def test_document_stats(client: AsyncClient, factory):
    applicant = await factory.register_applicant()
    await upload(client, applicant["headers"])
    await upload(client, applicant["headers"], filename="passport.png", type="Passport")

    admin = await factory.admin()
    resp = await client.get("/api/v1/documents/stats/overview", headers=admin["headers"])
    assert resp.status_code == 200
    assert resp.json()["data"]["total"] == 2
