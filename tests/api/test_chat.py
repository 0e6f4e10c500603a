"""
站内消息 API 测试
"""
import pytest
from httpx import AsyncClient

from portal.core.events import event_relay, user_room


async def _send(client: AsyncClient, headers: dict, receiver_id: int, text: str, **extra):
    resp = await client.post(
        "/api/v1/chat/send",
        json={"receiver_id": receiver_id, "message": text, **extra},
        headers=headers,
    )
    assert resp.status_code == 201, f"发送失败: {resp.text}"
    return resp.json()["data"]


@pytest.mark.asyncio
async def test_send_and_read_conversation(client: AsyncClient, factory):
    applicant = await factory.register_applicant()
    staff = await factory.staff()
    events = []
    event_relay.subscribe("*", events.append)

    first = await _send(client, applicant["headers"], staff["id"], "  您好，请问材料齐了吗？  ")
    assert first["message"] == "您好，请问材料齐了吗？"
    assert first["sender_id"] == applicant["user"]["id"]
    assert first["read_status"] is False
    assert [(e.name, e.room) for e in events] == [
        ("new_message", user_room(staff["id"])),
        ("message_sent", user_room(applicant["user"]["id"])),
    ]

    await _send(client, staff["headers"], applicant["user"]["id"], "已收到", reply_to=first["id"])
    await _send(client, applicant["headers"], staff["id"], "谢谢")

    resp = await client.get("/api/v1/chat/unread-count", headers=staff["headers"])
    assert resp.json()["data"]["unread_count"] == 2

    # 打开对话把对方发来的消息标记为已读，消息按时间正序
    resp = await client.get(
        f"/api/v1/chat/conversation/{applicant['user']['id']}", headers=staff["headers"]
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert [m["message"] for m in data["messages"]] == ["您好，请问材料齐了吗？", "已收到", "谢谢"]
    assert data["messages"][1]["reply_to"] == first["id"]
    assert data["total"] == 3
    assert data["pages"] == 1
    assert data["other_user"]["id"] == applicant["user"]["id"]
    assert events[-1].name == "conversation_read"
    assert events[-1].payload["count"] == 2

    resp = await client.get("/api/v1/chat/unread-count", headers=staff["headers"])
    assert resp.json()["data"]["unread_count"] == 0


@pytest.mark.asyncio
async def test_conversation_list(client: AsyncClient, factory):
    applicant = await factory.register_applicant()
    staff = await factory.staff()
    admin = await factory.admin()

    await _send(client, staff["headers"], applicant["user"]["id"], "第一条")
    await _send(client, admin["headers"], applicant["user"]["id"], "管理员通知")
    await _send(client, staff["headers"], applicant["user"]["id"], "最新一条")

    resp = await client.get("/api/v1/chat/conversations", headers=applicant["headers"])
    assert resp.status_code == 200
    rows = resp.json()["data"]
    assert [row["user_id"] for row in rows] == [staff["id"], admin["id"]]
    assert rows[0]["last_message"]["message"] == "最新一条"
    assert rows[0]["unread_count"] == 2
    assert rows[1]["unread_count"] == 1
    assert rows[0]["user_info"]["id"] == staff["id"]

    # 发送方没有未读
    resp = await client.get("/api/v1/chat/conversations", headers=staff["headers"])
    rows = resp.json()["data"]
    assert len(rows) == 1
    assert rows[0]["unread_count"] == 0


@pytest.mark.asyncio
async def test_mark_read_only_by_receiver(client: AsyncClient, factory):
    applicant = await factory.register_applicant()
    other = await factory.register_applicant()
    staff = await factory.staff()
    message = await _send(client, applicant["headers"], staff["id"], "请帮我看一下")

    resp = await client.put(f"/api/v1/chat/{message['id']}/read", headers=applicant["headers"])
    assert resp.status_code == 403

    resp = await client.put(f"/api/v1/chat/{message['id']}/read", headers=other["headers"])
    assert resp.status_code == 403

    resp = await client.put(f"/api/v1/chat/{message['id']}/read", headers=staff["headers"])
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["read_status"] is True
    assert data["read_at"] is not None


@pytest.mark.asyncio
async def test_delete_is_soft_and_participant_only(client: AsyncClient, factory):
    applicant = await factory.register_applicant()
    outsider = await factory.register_applicant()
    staff = await factory.staff()
    message = await _send(client, applicant["headers"], staff["id"], "这条要撤回")

    resp = await client.delete(f"/api/v1/chat/{message['id']}", headers=outsider["headers"])
    assert resp.status_code == 403

    resp = await client.delete(f"/api/v1/chat/{message['id']}", headers=applicant["headers"])
    assert resp.status_code == 200

    # 删除后对双方都不可见
    resp = await client.put(f"/api/v1/chat/{message['id']}/read", headers=staff["headers"])
    assert resp.status_code == 404
    resp = await client.get(
        f"/api/v1/chat/conversation/{applicant['user']['id']}", headers=staff["headers"]
    )
    assert resp.json()["data"]["total"] == 0
    resp = await client.get("/api/v1/chat/unread-count", headers=staff["headers"])
    assert resp.json()["data"]["unread_count"] == 0


@pytest.mark.asyncio
async def test_send_validation(client: AsyncClient, factory):
    applicant = await factory.register_applicant()
    staff = await factory.staff()
    headers = applicant["headers"]

    resp = await client.post(
        "/api/v1/chat/send",
        json={"receiver_id": applicant["user"]["id"], "message": "自言自语"},
        headers=headers,
    )
    assert resp.status_code == 422

    resp = await client.post("/api/v1/chat/send", json={"receiver_id": 999, "message": "hi"}, headers=headers)
    assert resp.status_code == 404

    resp = await client.post("/api/v1/chat/send", json={"receiver_id": staff["id"], "message": "   "}, headers=headers)
    assert resp.status_code == 422

    resp = await client.post(
        "/api/v1/chat/send",
        json={"receiver_id": staff["id"], "message_type": "file"},
        headers=headers,
    )
    assert resp.status_code == 422

    resp = await client.post(
        "/api/v1/chat/send",
        json={
            "receiver_id": staff["id"],
            "message_type": "file",
            "attachment": {"filename": "cv.pdf", "file_size": 2048, "mime_type": "application/pdf"},
        },
        headers=headers,
    )
    assert resp.status_code == 201
    assert resp.json()["data"]["has_attachment"] is True

    # 回复的消息必须属于同一对话
    other = await factory.register_applicant()
    foreign = await _send(client, other["headers"], staff["id"], "别人的消息")
    resp = await client.post(
        "/api/v1/chat/send",
        json={"receiver_id": staff["id"], "message": "回复", "reply_to": foreign["id"]},
        headers=headers,
    )
    assert resp.status_code == 422

    resp = await client.post("/api/v1/chat/send", json={"receiver_id": staff["id"], "message": "hi"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_send_to_inactive_user(client: AsyncClient, factory):
    admin = await factory.admin()
    applicant = await factory.register_applicant()
    resp = await client.post(
        f"/api/v1/users/{applicant['user']['id']}/deactivate", headers=admin["headers"]
    )
    assert resp.status_code == 200

    resp = await client.post(
        "/api/v1/chat/send",
        json={"receiver_id": applicant["user"]["id"], "message": "还在吗"},
        headers=admin["headers"],
    )
    assert resp.status_code == 412
    assert resp.json()["kind"] == "precondition_failed"


@pytest.mark.asyncio
async def test_search_and_stats(client: AsyncClient, factory):
    applicant = await factory.register_applicant()
    staff = await factory.staff()
    outsider = await factory.register_applicant()
    await _send(client, applicant["headers"], staff["id"], "Passport scan uploaded")
    await _send(client, staff["headers"], applicant["user"]["id"], "Please upload the PASSPORT again")
    await _send(client, outsider["headers"], staff["id"], "passport question")

    resp = await client.get("/api/v1/chat/search", params={"q": "passport"}, headers=applicant["headers"])
    assert resp.status_code == 200
    assert len(resp.json()["data"]) == 2

    resp = await client.get("/api/v1/chat/search", params={"q": "p"}, headers=applicant["headers"])
    assert resp.status_code == 422

    resp = await client.get("/api/v1/chat/stats/overview", headers=applicant["headers"])
    assert resp.status_code == 403

    resp = await client.get("/api/v1/chat/stats/overview", headers=staff["headers"])
    assert resp.status_code == 200
    stats = resp.json()["data"]
    assert stats["total"] == 3
    assert stats["unread"] == 3
    assert stats["by_type"] == {"text": 3}
