import importlib
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from guestbook.config import Settings
from guestbook.errors import StoreError, StoreUnavailableError
from guestbook.main import create_app
from guestbook.service import MessageService


def _client(service: MessageService) -> TestClient:
    return TestClient(create_app(service=service))


def test_healthcheck_endpoint(service):
    response = _client(service).get("/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True, "service": "Guestbook", "cache": "enabled"}


def test_empty_guestbook(service):
    response = _client(service).get("/api/messages")

    assert response.status_code == 200
    assert response.json() == []


def test_post_and_list_newest_first(service):
    client = _client(service)

    created = client.post("/api/messages", json={"content": "hello"})
    assert created.status_code == 201
    body = created.json()
    assert body["id"] == 1
    assert body["content"] == "hello"
    datetime.fromisoformat(body["created_at"].replace("Z", "+00:00"))

    assert [m["content"] for m in client.get("/api/messages").json()] == ["hello"]

    client.post("/api/messages", json={"content": "world"})
    listed = client.get("/api/messages").json()
    assert [m["content"] for m in listed] == ["world", "hello"]
    assert set(listed[0]) == {"id", "content", "created_at"}


def test_read_after_cached_read_reflects_new_post(service, cache):
    client = _client(service)
    client.post("/api/messages", json={"content": "first"})
    client.get("/api/messages")
    assert cache.get().hit

    client.post("/api/messages", json={"content": "second"})

    assert [m["content"] for m in client.get("/api/messages").json()] == ["second", "first"]


def test_blank_content_returns_400(service, store):
    client = _client(service)

    for payload in ({"content": "   "}, {"content": ""}, {}):
        response = client.post("/api/messages", json=payload)
        assert response.status_code == 400
        assert response.json() == {"error": "Message content cannot be empty"}

    assert store.count() == 0


def test_missing_body_returns_400(service):
    response = _client(service).post("/api/messages")

    assert response.status_code == 400
    assert response.json() == {"error": "Message content cannot be empty"}


@pytest.mark.parametrize("content_type", ["application/json", "text/plain"])
def test_non_json_body_is_treated_as_empty(service, content_type):
    response = _client(service).post(
        "/api/messages", content="not json", headers={"Content-Type": content_type}
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Message content cannot be empty"}


def test_missing_store_returns_503():
    client = _client(MessageService(store=None))

    listing = client.get("/api/messages")
    posting = client.post("/api/messages", json={"content": "hello"})

    assert listing.status_code == 503
    assert posting.status_code == 503
    assert listing.json() == {"error": "Database service not available."}


def test_store_failure_returns_500(service, store, monkeypatch):
    def broken():
        raise StoreError("database disk image is malformed")

    monkeypatch.setattr(store, "list_all", broken)

    response = _client(service).get("/api/messages")

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to retrieve messages"}


def test_metrics_record_request_durations(service):
    client = _client(service)
    client.get("/api/messages")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "http_request_duration_seconds_bucket" in response.text
    assert 'route="/api/messages"' in response.text


def test_home_page_renders(service):
    client = _client(service)

    page = client.get("/")
    script = client.get("/static/script.js")

    assert page.status_code == 200
    assert 'id="messageForm"' in page.text
    assert script.status_code == 200


def test_module_app_reads_environment(monkeypatch, tmp_path):
    db_path = tmp_path / "env" / "guestbook.db"
    monkeypatch.setenv("GUESTBOOK_DB_PATH", str(db_path))
    monkeypatch.setenv("GUESTBOOK_CACHE", "memory")

    import guestbook.main as main_module

    main_module = importlib.reload(main_module)
    client = TestClient(main_module.app)

    assert db_path.exists()
    assert client.get("/health").json()["cache"] == "enabled"
    assert client.post("/api/messages", json={"content": "from env"}).status_code == 201
    assert [m["content"] for m in client.get("/api/messages").json()] == ["from env"]


def test_wrongly_typed_content_returns_400(service, store):
    response = _client(service).post("/api/messages", json={"content": 42})

    assert response.status_code == 400
    assert response.json() == {"error": "Message content cannot be empty"}
    assert store.count() == 0


def test_unreachable_store_fails_app_creation(tmp_path):
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("")

    with pytest.raises(StoreUnavailableError):
        create_app(settings=Settings(db_path=str(blocker / "guestbook.db")))
