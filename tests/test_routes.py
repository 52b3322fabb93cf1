import pytest
from fastapi import HTTPException
from auth import CurrentUser, OPERATOR_ROLE
from routes.operator import call_next, get_waiting
from routes.queues import add_queue
from routes.user import join_queue, cancel_entry
from schema.queue_models import CreateQueueRequest
from status import QUEUE_EMPTY_MESSAGE


def create_queue(client, headers, name="City Hospital"):
    response = client.post("/queues", json={"name": name, "description": "Outpatients", "average_wait_time": 20}, headers=headers)
    assert response.status_code == 200
    return response.json()["data"]


def test_create_and_get_queue(client, operator_headers, alice_headers):
    created = create_queue(client, operator_headers)
    assert created["last_ticket_number"] == 0
    assert created["average_wait_time"] == 20

    response = client.get(f"/queues/{created['id']}", headers=alice_headers)
    body = response.json()
    assert response.status_code == 200
    assert body["status_code"] == 200
    assert body["data"]["name"] == "City Hospital"
    assert "version" not in body["data"]


def test_create_queue_requires_operator(client, alice_headers):
    response = client.post("/queues", json={"name": "Bank"}, headers=alice_headers)
    assert response.status_code == 403


def test_create_queue_duplicate(client, operator_headers):
    create_queue(client, operator_headers)
    response = client.post("/queues", json={"name": "City Hospital"}, headers=operator_headers)
    assert response.status_code == 409


def test_requests_need_a_token(client):
    assert client.get("/queues").status_code == 401
    assert client.get("/user/tickets", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_get_missing_queue(client, alice_headers):
    assert client.get("/queues/999", headers=alice_headers).status_code == 404


def test_join_call_and_views(client, operator_headers, alice_headers, bob_headers):
    queue = create_queue(client, operator_headers)
    qid = queue["id"]

    alice = client.post(f"/user/queues/{qid}/join", headers=alice_headers).json()
    bob = client.post(f"/user/queues/{qid}/join", headers=bob_headers).json()
    assert alice["status_code"] == 201
    assert (alice["data"]["ticket_number"], bob["data"]["ticket_number"]) == (1, 2)

    again = client.post(f"/user/queues/{qid}/join", headers=alice_headers)
    assert again.status_code == 409

    waiting = client.get(f"/operator/queues/{qid}/waiting", headers=operator_headers).json()["data"]
    assert [(w["ticket_number"], w["user_name"]) for w in waiting] == [(1, "Alice"), (2, "Bob")]

    called = client.post(f"/operator/queues/{qid}/next", headers=operator_headers).json()["data"]
    assert called == {
        "queue_id": qid,
        "entry_id": alice["data"]["entry_id"],
        "ticket_number": 1,
        "user_id": "alice",
        "user_name": "Alice",
    }

    tickets = client.get("/user/tickets", headers=bob_headers).json()["data"]
    assert tickets == [{
        "queue_id": qid,
        "queue_name": "City Hospital",
        "entry_id": bob["data"]["entry_id"],
        "ticket_number": 2,
        "current_number": 1,
        "people_ahead": 0,
    }]

    listing = client.get("/queues", headers=bob_headers).json()["data"]
    assert listing[0]["joined"] is True
    assert listing[0]["total_in_queue"] == 1

    history = client.get("/user/history", headers=alice_headers).json()["data"]
    assert [(h["ticket_number"], h["status"]) for h in history] == [(1, "serving")]


def test_call_next_on_empty_queue(client, operator_headers):
    qid = create_queue(client, operator_headers)["id"]

    response = client.post(f"/operator/queues/{qid}/next", headers=operator_headers)
    body = response.json()
    assert response.status_code == 200
    assert body["status_message"] == QUEUE_EMPTY_MESSAGE
    assert body["data"] is None

    queue = client.get(f"/queues/{qid}", headers=operator_headers).json()["data"]
    assert queue["current_number"] == 0


def test_operator_routes_require_operator(client, operator_headers, alice_headers):
    qid = create_queue(client, operator_headers)["id"]
    assert client.post(f"/operator/queues/{qid}/next", headers=alice_headers).status_code == 403
    assert client.get(f"/operator/queues/{qid}/waiting", headers=alice_headers).status_code == 403


def test_cancel_over_http(client, operator_headers, alice_headers, bob_headers):
    qid = create_queue(client, operator_headers)["id"]
    entry = client.post(f"/user/queues/{qid}/join", headers=alice_headers).json()["data"]

    stranger = client.post(f"/user/queues/{qid}/entries/{entry['entry_id']}/cancel", headers=bob_headers)
    assert stranger.status_code == 404

    response = client.post(f"/user/queues/{qid}/entries/{entry['entry_id']}/cancel", headers=alice_headers)
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "cancelled"

    repeat = client.post(f"/user/queues/{qid}/entries/{entry['entry_id']}/cancel", headers=alice_headers)
    assert repeat.status_code == 409

    waiting = client.get(f"/operator/queues/{qid}/waiting", headers=operator_headers).json()["data"]
    assert waiting == []


def test_join_missing_queue(client, alice_headers):
    assert client.post("/user/queues/999/join", headers=alice_headers).status_code == 404


@pytest.mark.asyncio
async def test_route_functions_directly(memory_store):
    from utils.coordinator import QueueCoordinator

    coordinator = QueueCoordinator(memory_store)
    operator = CurrentUser(user_id="op", user_name="Desk", role=OPERATOR_ROLE)
    user = CurrentUser(user_id="u", user_name="U")

    created = await add_queue(CreateQueueRequest(name="Registry"), operator=operator, coordinator=coordinator)
    assert created.status_code == 201
    qid = created.data.id

    joined = await join_queue(queue_id=qid, user=user, coordinator=coordinator)
    assert joined.data.ticket_number == 1

    with pytest.raises(HTTPException) as exc:
        await join_queue(queue_id=qid, user=user, coordinator=coordinator)
    assert exc.value.status_code == 409

    waiting = await get_waiting(queue_id=qid, operator=operator, store=memory_store)
    assert [w.ticket_number for w in waiting.data] == [1]

    called = await call_next(queue_id=qid, operator=operator, coordinator=coordinator)
    assert called.data.user_id == "u"

    empty = await call_next(queue_id=qid, operator=operator, coordinator=coordinator)
    assert empty.data is None

    with pytest.raises(HTTPException) as exc:
        await cancel_entry(queue_id=qid, entry_id=joined.data.entry_id, user=user, coordinator=coordinator)
    assert exc.value.status_code == 409


@pytest.mark.asyncio
async def test_join_failed_maps_to_503(mocker, memory_store):
    from utils.coordinator import QueueCoordinator
    from utils.errors import QueueConflict

    coordinator = QueueCoordinator(memory_store, join_retry_limit=2)
    queue = coordinator.create_queue("Busy")
    mocker.patch.object(memory_store, "commit_join", side_effect=QueueConflict(queue.id, 0))

    with pytest.raises(HTTPException) as exc:
        await join_queue(queue_id=queue.id, user=CurrentUser(user_id="u"), coordinator=coordinator)
    assert exc.value.status_code == 503
