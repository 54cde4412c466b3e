import pytest

STANDUP = {
    "name": "Standup",
    "date": "2030-01-01T09:00",
    "location": "Room1",
    "description": "daily",
}


def auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice(register):
    return register(name="Alice", email="alice@x.com", password="secret1")


@pytest.fixture
def bob(register):
    return register(name="Bob", email="bob@x.com", password="secret2")


def create(client, token, **overrides):
    payload = dict(STANDUP, **overrides)
    response = client.post("/api/events", json=payload, headers=auth(token))
    assert response.status_code == 201, response.get_json()
    return response.get_json()


def test_create_event_success(client, alice):
    token, user = alice

    response = client.post("/api/events", json=STANDUP, headers=auth(token))

    assert response.status_code == 201
    data = response.get_json()
    assert data["name"] == "Standup"
    assert data["date"] == "2030-01-01T09:00:00+00:00"
    assert data["creator"] == {"id": user["id"], "name": "Alice", "email": "alice@x.com"}
    assert data["organizer_name"] is None


def test_create_event_missing_fields(client, alice):
    token, _ = alice
    response = client.post("/api/events", json={"name": "Standup"}, headers=auth(token))
    assert response.status_code == 400
    assert "description" in response.get_json()["message"]


def test_create_event_invalid_date(client, alice):
    token, _ = alice
    response = client.post("/api/events", json=dict(STANDUP, date="next tuesday"), headers=auth(token))
    assert response.status_code == 400


def test_create_event_ignores_client_creator(client, alice, bob):
    token, user = alice
    _, other = bob
    data = create(client, token, creator_id=other["id"])
    assert data["creator"]["id"] == user["id"]


def test_events_require_authentication(client):
    assert client.get("/api/events").status_code == 401
    assert client.post("/api/events", json=STANDUP).status_code == 401
    assert client.get("/api/events/1").status_code == 401
    assert client.put("/api/events/1", json={"name": "x"}).status_code == 401
    assert client.delete("/api/events/1").status_code == 401


def test_list_events_sorted_by_date(client, alice):
    token, _ = alice
    create(client, token, name="Late", date="2031-06-01T10:00")
    create(client, token, name="Early", date="2029-03-01T10:00")
    create(client, token, name="Middle", date="2030-01-01T08:00:00Z")

    response = client.get("/api/events", headers=auth(token))

    assert response.status_code == 200
    assert [e["name"] for e in response.get_json()] == ["Early", "Middle", "Late"]


def test_get_event_detail(client, alice):
    token, _ = alice
    created = create(client, token)

    response = client.get(f"/api/events/{created['id']}", headers=auth(token))
    assert response.status_code == 200
    assert response.get_json() == created


def test_get_event_not_found(client, alice):
    token, _ = alice
    response = client.get("/api/events/999", headers=auth(token))
    assert response.status_code == 404
    assert response.get_json()["message"] == "Event not found"


def test_update_event_by_creator(client, alice):
    token, _ = alice
    created = create(client, token)

    response = client.put(
        f"/api/events/{created['id']}",
        json={"name": "Retro", "organizer_name": "Team Lead"},
        headers=auth(token),
    )

    assert response.status_code == 200
    data = response.get_json()
    assert data["name"] == "Retro"
    assert data["organizer_name"] == "Team Lead"
    assert data["location"] == "Room1"


def test_update_event_rejects_unknown_fields(client, alice, bob, event_store):
    token, user = alice
    _, other = bob
    created = create(client, token)

    response = client.put(
        f"/api/events/{created['id']}",
        json={"name": "Mine now", "creator_id": other["id"]},
        headers=auth(token),
    )

    assert response.status_code == 400
    assert "creator_id" in response.get_json()["message"]
    event = event_store.get(created["id"])
    assert event.creator_id == user["id"]
    assert event.name == "Standup"


def test_update_event_empty_patch(client, alice):
    token, _ = alice
    created = create(client, token)
    response = client.put(f"/api/events/{created['id']}", json={}, headers=auth(token))
    assert response.status_code == 400


def test_update_event_blank_required_field(client, alice):
    token, _ = alice
    created = create(client, token)
    response = client.put(f"/api/events/{created['id']}", json={"location": "  "}, headers=auth(token))
    assert response.status_code == 400


def test_update_event_not_creator(client, alice, bob):
    created = create(client, alice[0])
    response = client.put(f"/api/events/{created['id']}", json={"name": "x"}, headers=auth(bob[0]))
    assert response.status_code == 403
    assert response.get_json()["message"] == "Not authorized to update this event"


def test_update_event_not_found(client, alice):
    response = client.put("/api/events/999", json={"name": "x"}, headers=auth(alice[0]))
    assert response.status_code == 404


def test_delete_event_by_creator(client, alice, event_store):
    token, _ = alice
    created = create(client, token)

    response = client.delete(f"/api/events/{created['id']}", headers=auth(token))

    assert response.status_code == 200
    assert response.get_json()["message"] == "Event deleted successfully"
    assert event_store.get(created["id"]) is None


def test_delete_event_not_creator(client, alice, bob, event_store):
    created = create(client, alice[0])
    response = client.delete(f"/api/events/{created['id']}", headers=auth(bob[0]))
    assert response.status_code == 403
    assert event_store.get(created["id"]) is not None


def test_delete_event_not_found(client, alice):
    response = client.delete("/api/events/999", headers=auth(alice[0]))
    assert response.status_code == 404


def test_storage_failure_returns_generic_error(client, alice, event_store, mocker):
    mocker.patch.object(event_store, "list_all", side_effect=RuntimeError("connection reset by peer"))

    response = client.get("/api/events", headers=auth(alice[0]))

    assert response.status_code == 500
    assert response.get_json() == {"message": "Internal server error"}


def test_alice_bob_scenario(client, register):
    register(name="Alice", email="alice@x.com", password="secret1")
    login = client.post("/api/auth/login", json={"email": "alice@x.com", "password": "secret1"})
    assert login.status_code == 200
    alice_token = login.get_json()["token"]

    created = create(client, alice_token)

    listing = client.get("/api/events", headers=auth(alice_token)).get_json()
    assert len(listing) == 1
    assert listing[0]["creator"]["email"] == "alice@x.com"

    bob_token, _ = register(name="Bob", email="bob@x.com", password="secret2")
    response = client.delete(f"/api/events/{created['id']}", headers=auth(bob_token))
    assert response.status_code == 403


def test_health(client):
    assert client.get("/").get_json() == {"message": "Backend is running"}
    assert client.get("/health").get_json()["status"] == "ok"


def test_unknown_route_returns_json(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert "message" in response.get_json()


# --- CLIENT FIELD SPELLINGS ---

def test_create_event_accepts_organizer_name_alias(client, alice):
    token, _ = alice
    data = create(client, token, organizerName="Team")
    assert data["organizer_name"] == "Team"


def test_update_event_accepts_organizer_name_alias(client, alice):
    token, _ = alice
    created = create(client, token)

    response = client.put(
        f"/api/events/{created['id']}", json={"organizerName": "Team Lead"}, headers=auth(token)
    )

    assert response.status_code == 200
    assert response.get_json()["organizer_name"] == "Team Lead"


def test_snake_case_organizer_name_wins(client, alice):
    token, _ = alice
    data = create(client, token, organizer_name="Snake", organizerName="Camel")
    assert data["organizer_name"] == "Snake"


# --- EVENT IDS ---

def test_non_numeric_id_requires_authentication_first(client):
    assert client.get("/api/events/abc").status_code == 401
    assert client.put("/api/events/abc", json={"name": "x"}).status_code == 401
    assert client.delete("/api/events/abc").status_code == 401


def test_non_numeric_id_not_found(client, alice):
    token, _ = alice
    for path in ("/api/events/abc", "/api/events/-1", "/api/events/1.5"):
        assert client.get(path, headers=auth(token)).status_code == 404, path
    assert client.put("/api/events/abc", json={"name": "x"}, headers=auth(token)).status_code == 404
    assert client.delete("/api/events/abc", headers=auth(token)).status_code == 404
