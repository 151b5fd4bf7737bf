"""API tests over in-memory storage. No Neo4j required."""

import pytest
from fastapi.testclient import TestClient

from api.main import app


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("KITH_STORAGE", "memory")
    app.state.service = None
    return TestClient(app)


def _create(client) -> dict:
    r = client.post("/contacts")
    assert r.status_code == 201
    return r.json()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_new_contact_defaults(client):
    created = _create(client)
    r = client.get(f"/aggregates/{created['aggregate_id']}")
    assert r.status_code == 200
    body = r.json()
    assert body["send_to_voicemail"] is False
    assert body["custom_ringtone"] is None
    assert body["member_ids"] == [created["contact_id"]]


def test_merge_and_split_via_exceptions(client):
    first, second = _create(client), _create(client)
    r = client.patch(
        f"/aggregates/{first['aggregate_id']}",
        json={"send_to_voicemail": True, "custom_ringtone": "foo"},
    )
    assert r.json() == {"updated": 1}
    client.patch(
        f"/aggregates/{second['aggregate_id']}",
        json={"send_to_voicemail": False, "custom_ringtone": "bar"},
    )

    r = client.post(
        "/aggregation-exceptions",
        json={"type": "keep_in", "contact_a": first["contact_id"], "contact_b": second["contact_id"]},
    )
    assert r.json() == {"aggregate_id": first["aggregate_id"]}
    merged = client.get(f"/aggregates/{first['aggregate_id']}").json()
    assert merged["send_to_voicemail"] is False
    assert merged["custom_ringtone"] in {"foo", "bar"}

    client.post(
        "/aggregation-exceptions",
        json={"type": "keep_out", "contact_a": first["contact_id"], "contact_b": second["contact_id"]},
    )
    split = client.get(f"/contacts/{second['contact_id']}/aggregate").json()
    assert (split["send_to_voicemail"], split["custom_ringtone"]) == (False, "bar")
    assert len(client.get("/aggregation-exceptions").json()) == 1
    assert len(client.get("/aggregates").json()) == 2


def test_patch_without_ringtone_keeps_it(client):
    created = _create(client)
    url = f"/aggregates/{created['aggregate_id']}"
    client.patch(url, json={"send_to_voicemail": True, "custom_ringtone": "foo"})
    client.patch(url, json={"send_to_voicemail": False})
    assert client.get(url).json()["custom_ringtone"] == "foo"
    client.patch(url, json={"send_to_voicemail": False, "custom_ringtone": None})
    assert client.get(url).json()["custom_ringtone"] is None


def test_structured_name(client):
    created = _create(client)
    url = f"/contacts/{created['contact_id']}/name"
    r = client.put(url, json={"display_name": "Mr.John Kevin von Smith, Jr."})
    assert r.status_code == 200
    assert r.json()["family"] == "von Smith"
    assert client.get(url).json()["suffix"] == "Jr"

    r = client.put(url, json={"display_name": "Mr."})
    assert r.status_code == 400


def test_presence_summary(client):
    created = _create(client)
    r = client.post(
        f"/contacts/{created['contact_id']}/im",
        json={"protocol": 5, "handle": "test@gmail.com"},
    )
    assert r.status_code == 201
    for status in (5, 2, 1):
        client.post("/presence", json={"protocol": 5, "handle": "test@gmail.com", "status": status})
    body = client.get(f"/aggregates/{created['aggregate_id']}").json()
    assert body["presence"] == 1


def test_phone_validation(client):
    created = _create(client)
    url = f"/contacts/{created['contact_id']}/phones"
    r = client.post(url, json={"phone_number": "+1 202 555 1234"})
    assert r.status_code == 201
    assert r.json() == {"phone_number": "+12025551234"}
    assert client.post(url, json={"phone_number": "abc"}).status_code == 400


def test_not_found_and_invalid_exception(client):
    assert client.get("/aggregates/missing").status_code == 404
    assert client.patch("/aggregates/missing", json={"send_to_voicemail": True}).status_code == 404
    created = _create(client)
    r = client.post(
        "/aggregation-exceptions",
        json={"type": "keep_in", "contact_a": created["contact_id"], "contact_b": created["contact_id"]},
    )
    assert r.status_code == 400
    r = client.post(
        "/aggregation-exceptions",
        json={"type": "keep_in", "contact_a": created["contact_id"], "contact_b": "missing"},
    )
    assert r.status_code == 404


def test_delete_contact(client):
    created = _create(client)
    assert client.delete(f"/contacts/{created['contact_id']}").status_code == 204
    assert client.get(f"/aggregates/{created['aggregate_id']}").status_code == 404
    assert client.delete(f"/contacts/{created['contact_id']}").status_code == 404
