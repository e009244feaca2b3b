import httpx
import pytest

from studyhub.main import app
from studyhub.websocket import LiveViewManager
from tests.conftest import LEADER, OTHER, STUDENT, auth_headers

BASE = "/api/v1/groups"


@pytest.fixture
async def client(store, blob_store):
    app.state.store = store
    app.state.blob_store = blob_store
    app.state.live_manager = LiveViewManager()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def create_group(client, **fields) -> dict:
    payload = {"name": "Algorithms", "subject": "Computer Science", **fields}
    response = await client.post(BASE, json=payload, headers=auth_headers(LEADER))
    assert response.status_code == 201
    return response.json()["data"]


async def join_and_approve(client, group_id: str, user_id: str) -> dict:
    joined = await client.post(f"{BASE}/{group_id}/join", headers=auth_headers(user_id))
    membership_id = joined.json()["data"]["id"]
    approved = await client.post(
        f"{BASE}/{group_id}/members/{membership_id}/approve", headers=auth_headers(LEADER)
    )
    assert approved.status_code == 200
    return approved.json()["data"]


async def test_health(client):
    response = await client.get("/health")

    assert response.json() == {"status": "healthy"}


async def test_create_requires_token(client):
    response = await client.post(BASE, json={"name": "Algorithms"})

    assert response.status_code == 401


async def test_invalid_token_rejected(client):
    response = await client.get(f"{BASE}/my", headers={"Authorization": "Bearer nope"})

    assert response.status_code == 401


async def test_create_and_view_group(client):
    group = await create_group(client, max_members=4)

    response = await client.get(f"{BASE}/{group['id']}", headers=auth_headers(LEADER))

    body = response.json()
    assert body["success"] is True
    assert body["data"]["group"]["subject"] == "computer_science"
    assert body["data"]["active_member_count"] == 1
    assert body["data"]["membership"]["role"] == "leader"


async def test_validation_error(client):
    response = await client.post(BASE, json={"name": ""}, headers=auth_headers(LEADER))

    assert response.status_code == 422


async def test_unknown_group_is_404(client):
    response = await client.get(f"{BASE}/00000000-0000-0000-0000-000000000000")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


async def test_duplicate_join_is_409_not_403(client):
    group = await create_group(client)
    url = f"{BASE}/{group['id']}/join"

    first = await client.post(url, headers=auth_headers(STUDENT))
    second = await client.post(url, headers=auth_headers(STUDENT))

    assert first.status_code == 201
    assert first.json()["data"]["status"] == "pending"
    assert second.status_code == 409
    assert second.json()["error"]["code"] == "ALREADY_REQUESTED"


async def test_non_leader_cannot_approve(client):
    group = await create_group(client)
    await join_and_approve(client, group["id"], STUDENT)
    joined = await client.post(f"{BASE}/{group['id']}/join", headers=auth_headers(OTHER))

    response = await client.post(
        f"{BASE}/{group['id']}/members/{joined.json()['data']['id']}/approve",
        headers=auth_headers(STUDENT),
    )

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "NOT_AUTHORIZED"


async def test_membership_from_another_group_is_404(client):
    group = await create_group(client)
    other = await create_group(client, name="Databases")
    joined = await client.post(f"{BASE}/{other['id']}/join", headers=auth_headers(STUDENT))

    response = await client.post(
        f"{BASE}/{group['id']}/members/{joined.json()['data']['id']}/approve",
        headers=auth_headers(LEADER),
    )

    assert response.status_code == 404


async def test_decline_and_roster(client):
    group = await create_group(client)
    await join_and_approve(client, group["id"], STUDENT)
    joined = await client.post(f"{BASE}/{group['id']}/join", headers=auth_headers(OTHER))

    roster = (await client.get(f"{BASE}/{group['id']}/members", headers=auth_headers(LEADER))).json()["data"]
    assert roster["active_count"] == 2
    assert [m["user_id"] for m in roster["pending"]] == [OTHER]

    response = await client.delete(
        f"{BASE}/{group['id']}/members/{joined.json()['data']['id']}", headers=auth_headers(LEADER)
    )
    assert response.status_code == 200

    roster = (await client.get(f"{BASE}/{group['id']}/members", headers=auth_headers(LEADER))).json()["data"]
    assert roster["pending"] == []


async def test_leader_leave_needs_confirmation(client, store):
    group = await create_group(client)
    url = f"{BASE}/{group['id']}/leave"

    response = await client.post(url, headers=auth_headers(LEADER))

    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "CONFIRMATION_REQUIRED"
    assert error["message"] == "Leaving will delete this group for everyone."
    choices = error["context"]["confirmation"]["choices"]
    assert [c["confirm"] for c in choices] == [False, True]
    assert (await client.get(f"{BASE}/{group['id']}")).status_code == 200

    confirmed = await client.post(url, params={"confirm": "true"}, headers=auth_headers(LEADER))

    assert confirmed.json()["data"]["outcome"] == "group_deleted"
    assert (await client.get(f"{BASE}/{group['id']}")).status_code == 404


async def test_member_leave_needs_no_confirmation(client):
    group = await create_group(client)
    await join_and_approve(client, group["id"], STUDENT)

    response = await client.post(f"{BASE}/{group['id']}/leave", headers=auth_headers(STUDENT))

    assert response.json()["data"]["outcome"] == "member_left"


async def test_my_groups_and_discover(client):
    group = await create_group(client)
    await create_group(client, name="Hidden", visibility="private")

    mine = (await client.get(f"{BASE}/my", headers=auth_headers(LEADER))).json()["data"]
    found = (await client.get(f"{BASE}/discover", params={"search": "algo"})).json()["data"]

    assert len(mine) == 2
    assert found["total"] == 1
    assert found["items"][0]["id"] == group["id"]
    assert found["has_next"] is False


async def test_patch_group(client):
    group = await create_group(client)

    response = await client.patch(
        f"{BASE}/{group['id']}", json={"max_members": 8}, headers=auth_headers(LEADER)
    )
    forbidden = await client.patch(
        f"{BASE}/{group['id']}", json={"max_members": 99}, headers=auth_headers(STUDENT)
    )

    assert response.json()["data"]["max_members"] == 8
    assert forbidden.status_code == 403


async def test_send_and_read_messages(client):
    group = await create_group(client)
    await join_and_approve(client, group["id"], STUDENT)
    url = f"{BASE}/{group['id']}/messages"

    sent = await client.post(url, json={"body": " hello "}, headers=auth_headers(STUDENT))
    empty = await client.post(url, json={"body": "   "}, headers=auth_headers(STUDENT))
    history = await client.get(url, headers=auth_headers(LEADER))

    assert sent.status_code == 201
    assert sent.json()["data"]["body"] == "hello"
    assert empty.status_code == 422
    assert empty.json()["error"]["code"] == "EMPTY_MESSAGE"
    assert [m["body"] for m in history.json()["data"]["messages"]] == ["hello"]


async def test_outsiders_cannot_read_or_post(client):
    group = await create_group(client)
    url = f"{BASE}/{group['id']}/messages"

    read = await client.get(url, headers=auth_headers(OTHER))
    post = await client.post(url, json={"body": "hi"}, headers=auth_headers(OTHER))

    assert read.status_code == 403
    assert post.status_code == 403


async def test_file_upload_and_materials(client, blob_store):
    group = await create_group(client)

    response = await client.post(
        f"{BASE}/{group['id']}/files",
        files={"file": ("notes.pdf", b"%PDF-1.4", "application/pdf")},
        headers=auth_headers(LEADER),
    )
    materials = await client.get(f"{BASE}/{group['id']}/materials", headers=auth_headers(LEADER))

    data = response.json()["data"]
    assert response.status_code == 201
    assert data["kind"] == "file"
    assert data["attachment_url"].startswith("memory://chat-files/")
    assert blob_store.get(data["attachment_ref"]) == b"%PDF-1.4"
    assert [m["id"] for m in materials.json()["data"]["messages"]] == [data["id"]]


async def test_failed_upload_is_502(client, blob_store, store):
    group = await create_group(client)
    blob_store.fail_uploads = True

    response = await client.post(
        f"{BASE}/{group['id']}/files",
        files={"file": ("notes.pdf", b"data", "application/pdf")},
        headers=auth_headers(LEADER),
    )

    assert response.status_code == 502
    assert response.json()["error"]["code"] == "UPLOAD_FAILED"


async def test_store_outage_is_503(client, store):
    group = await create_group(client)
    store.available = False

    response = await client.get(f"{BASE}/{group['id']}")

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "STORE_UNAVAILABLE"


async def test_live_status(client):
    response = await client.get(f"{BASE}/live/status")

    assert response.json() == {"live_groups": 0, "open_views": 0}
