from unittest.mock import patch

from fastapi.testclient import TestClient

from tasklist.config import Settings
from tasklist.database import create_tables
from tasklist.errors import PersistFailed
from tasklist.main import create_app
from tasklist.repository import TaskRepository
from tasklist.routers.auth import CURRENT_USER_COOKIE


def _register(client, username="alice", password="secret1"):
    return client.post(
        "/api/auth/register",
        json={"username": username, "password": password, "confirm_password": password},
    )


def _task_ids(payload):
    return [t["id"] for s in payload["sections"] for t in s["tasks"]]


def test_root_and_health(offline_client) -> None:
    assert offline_client.get("/").status_code == 200
    assert offline_client.get("/health").json() == {"status": "healthy"}


def test_offline_checklist_uses_defaults(offline_client) -> None:
    response = offline_client.get("/api/tasks")

    assert response.status_code == 200
    data = response.json()
    assert data["connection"]["status"] == "not-configured"
    assert data["progress"] == {"completed": 0, "total": 9, "percent": 0, "all_completed": False}
    assert [s["progress"]["total"] for s in data["sections"]] == [3, 2, 4]


def test_offline_toggle_is_local(offline_client) -> None:
    response = offline_client.post("/api/tasks/phase1/task1/toggle")

    assert response.status_code == 200
    assert response.json()["task"]["completed"] is True
    assert response.json()["persisting"] is False
    assert offline_client.get("/api/tasks").json()["progress"]["completed"] == 1


def test_toggle_unknown_task(offline_client) -> None:
    assert offline_client.post("/api/tasks/phase1/task9/toggle").status_code == 404


def test_register_requires_store(offline_client) -> None:
    response = _register(offline_client)
    assert response.status_code == 503
    assert "not configured" in response.json()["detail"]


def test_initialize_only_from_needs_init(offline_client) -> None:
    response = offline_client.post("/api/setup/initialize")
    assert response.status_code == 409


def test_connected_checklist(client) -> None:
    data = client.get("/api/tasks").json()

    assert data["connection"]["status"] == "connected"
    assert data["connection"]["label"] == "Connected to cloud store"
    assert _task_ids(data) == [f"task{n}" for n in range(1, 10)]


def test_toggle_is_persisted_in_background(client, seeded_store) -> None:
    response = client.post("/api/tasks/phase2/task4/toggle")

    assert response.json()["persisting"] is True
    stored = next(t for t in TaskRepository(seeded_store).list_tasks() if t.id == "task4")
    assert stored.completed
    (entry,) = client.get("/api/tasks/reconciliation").json()
    assert entry["attempted"] is True and entry["last_error"] is None


def test_failed_persist_is_visible_and_retryable(client, seeded_store) -> None:
    with patch.object(TaskRepository, "set_completed", side_effect=PersistFailed("store down")):
        response = client.post("/api/tasks/phase2/task5/toggle")
    assert response.status_code == 200
    assert response.json()["task"]["completed"] is True

    (entry,) = client.get("/api/tasks/reconciliation").json()
    assert entry["last_error"] == "store down"

    entries = client.post("/api/tasks/reconciliation/retry").json()
    assert entries[0]["last_error"] is None
    stored = next(t for t in TaskRepository(seeded_store).list_tasks() if t.id == "task5")
    assert stored.completed


def test_auth_flow(client) -> None:
    registered = _register(client)
    assert registered.status_code == 201
    user = registered.json()["user"]
    assert "password_hash" not in user
    assert CURRENT_USER_COOKIE in client.cookies

    session = client.get("/api/auth/session").json()
    assert session["user"]["id"] == user["id"]

    # The signed-in session reads the user's own checklist.
    data = client.get("/api/tasks").json()
    assert data["connection"]["owner_id"] == user["id"]
    assert _task_ids(data)[0] == f"task1_user{user['id']}"

    client.post("/api/auth/logout")
    assert client.get("/api/auth/session").json() == {"user": None}

    login = client.post("/api/auth/login", json={"username": "alice", "password": "secret1"})
    assert login.status_code == 200
    assert login.json()["user"]["id"] == user["id"]


def test_duplicate_registration(client) -> None:
    _register(client)
    response = _register(client)
    assert response.status_code == 400
    assert response.json()["detail"] == "Username already exists"


def test_bad_login_messages_match(client) -> None:
    _register(client)
    wrong_password = client.post("/api/auth/login", json={"username": "alice", "password": "nope123"})
    unknown_user = client.post("/api/auth/login", json={"username": "bob", "password": "secret1"})

    assert wrong_password.status_code == unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json()


def test_register_validation(client) -> None:
    mismatch = client.post(
        "/api/auth/register",
        json={"username": "alice", "password": "secret1", "confirm_password": "secret2"},
    )
    short_name = _register(client, username=" al ")
    short_password = _register(client, password="123")

    assert mismatch.status_code == short_name.status_code == short_password.status_code == 422


def test_unreadable_token_is_anonymous(client) -> None:
    response = client.get("/api/auth/session", headers={"Authorization": "Bearer not-a-token"})
    assert response.json() == {"user": None}


def test_needs_init_flow(settings, empty_store) -> None:
    with TestClient(create_app(settings)) as client:
        status = client.get("/api/status").json()
        assert status["status"] == "needs-init"
        assert status["missing_tables"] == ["task_sections", "tasks"]
        assert len(_task_ids(client.get("/api/tasks").json())) == 9

        script = client.get("/api/setup/sql-script").json()["script"]
        assert "CREATE TABLE IF NOT EXISTS task_sections" in script
        assert "ON CONFLICT (id) DO UPDATE" in script

        failed = client.post("/api/setup/initialize").json()
        assert failed["success"] is False
        assert failed["connection"]["status"] == "needs-init"

        create_tables(empty_store)
        done = client.post("/api/setup/initialize").json()
        assert done["success"] is True
        assert done["connection"]["status"] == "connected"


def test_setup_guide(offline_client) -> None:
    steps = offline_client.get("/api/setup/guide").json()["steps"]
    assert [s["number"] for s in steps] == [1, 2, 3, 4]
    assert "STORE_URL=" in steps[2]["copyable"]
    assert "PostgreSQL" in steps[0]["title"]
    assert all(s["link"] is None for s in steps)


def test_unusable_store_url_serves_defaults() -> None:
    settings = Settings(
        store_url="https://abc.example.com",
        store_api_key="k",
        secret_key="test-secret",
        password_hash_rounds=4,
    )
    with TestClient(create_app(settings)) as client:
        status = client.get("/api/status").json()
        assert status["status"] == "error"
        assert status["error"].startswith("Database connection failed")
        assert len(_task_ids(client.get("/api/tasks").json())) == 9
        assert _register(client).status_code == 503
