import uuid

import pytest
import pytest_asyncio


pytestmark = pytest.mark.asyncio

API = "/api/v1/conversations"


@pytest_asyncio.fixture
async def headers(create_user, auth_header_factory):
    user, password = await create_user()
    return await auth_header_factory(user.email, password)


async def test_full_conversation_crud_flow(client, headers):
    list_resp = await client.get(API, headers=headers)
    assert list_resp.status_code == 200
    assert list_resp.json()["data"]["conversations"] == []

    create_resp = await client.post(API, headers=headers, json={"title": "Initial title"})
    assert create_resp.status_code == 201
    convo = create_resp.json()["data"]["conversation"]
    convo_id = convo["id"]
    assert convo["title"] == "Initial title"
    assert convo["messages"] == []

    patch_resp = await client.patch(
        f"{API}/{convo_id}",
        headers=headers,
        json={
            "title": "Renamed",
            "messages": [
                {"role": "user", "content": "What is photosynthesis?"},
                {"role": "assistant", "content": "  The process plants use to make food.  "},
            ],
        },
    )
    assert patch_resp.status_code == 200
    convo = patch_resp.json()["data"]["conversation"]
    assert convo["title"] == "Renamed"
    assert [m["role"] for m in convo["messages"]] == ["user", "assistant"]
    assert convo["messages"][1]["content"] == "The process plants use to make food."

    more = await client.patch(
        f"{API}/{convo_id}",
        headers=headers,
        json={"messages": [{"role": "user", "content": "Thanks"}]},
    )
    detail_resp = await client.get(f"{API}/{convo_id}", headers=headers)
    assert more.status_code == detail_resp.status_code == 200
    detail = detail_resp.json()["data"]["conversation"]
    assert detail["title"] == "Renamed"
    assert [m["content"] for m in detail["messages"]][-1] == "Thanks"
    assert len(detail["messages"]) == 3

    delete_resp = await client.delete(f"{API}/{convo_id}", headers=headers)
    assert delete_resp.status_code == 204

    assert (await client.get(f"{API}/{convo_id}", headers=headers)).status_code == 404
    assert (await client.get(API, headers=headers)).json()["data"]["conversations"] == []


async def test_default_title_and_listing_order(client, headers):
    first = (await client.post(API, headers=headers, json={})).json()["data"]["conversation"]
    second = (await client.post(API, headers=headers, json={"title": "Second"})).json()["data"]["conversation"]
    assert first["title"] == "New Conversation"

    listing = (await client.get(API, headers=headers)).json()
    assert listing["results"] == 2
    assert [c["id"] for c in listing["data"]["conversations"]] == [second["id"], first["id"]]
    assert "messages" not in listing["data"]["conversations"][0]

    await client.patch(f"{API}/{first['id']}", headers=headers, json={"messages": [{"role": "user", "content": "hi"}]})
    listing = (await client.get(API, headers=headers)).json()
    assert [c["id"] for c in listing["data"]["conversations"]] == [first["id"], second["id"]]


async def test_invalid_messages_are_rejected(client, headers):
    convo_id = (await client.post(API, headers=headers, json={})).json()["data"]["conversation"]["id"]

    bad_role = await client.patch(f"{API}/{convo_id}", headers=headers, json={"messages": [{"role": "system", "content": "x"}]})
    blank = await client.patch(f"{API}/{convo_id}", headers=headers, json={"messages": [{"role": "user", "content": "   "}]})
    long_title = await client.post(API, headers=headers, json={"title": "x" * 101})

    assert bad_role.status_code == blank.status_code == long_title.status_code == 400


async def test_conversations_are_private(client, headers, create_user, auth_header_factory):
    convo_id = (await client.post(API, headers=headers, json={"title": "Mine"})).json()["data"]["conversation"]["id"]

    other, password = await create_user()
    other_headers = await auth_header_factory(other.email, password)

    assert (await client.get(f"{API}/{convo_id}", headers=other_headers)).status_code == 404
    assert (await client.patch(f"{API}/{convo_id}", headers=other_headers, json={"title": "Yours"})).status_code == 404
    assert (await client.delete(f"{API}/{convo_id}", headers=other_headers)).status_code == 404
    assert (await client.get(API, headers=other_headers)).json()["data"]["conversations"] == []


async def test_unknown_conversation(client, headers):
    resp = await client.get(f"{API}/{uuid.uuid4()}", headers=headers)
    assert resp.status_code == 404
    assert resp.json()["status"] == "error"


async def test_requires_session(client):
    assert (await client.get(API)).status_code == 401
