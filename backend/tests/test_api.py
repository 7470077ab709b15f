"""End-to-end tests through the HTTP layer."""

import jwt
import pytest
from fastapi.testclient import TestClient

from backend.app.config import settings
from backend.app.database import get_db
from backend.app.dependencies.dashboard import get_session_factory
from backend.app.services import registry
from backend.app.utils.security import create_access_token, decode_access_token
from backend.main import app

TABLE_SQL = "CREATE TABLE orders (id INT, placed DATETIME)"


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    registry.clear()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    registry.clear()


def register(client, email="dev@example.com", password="secret123", full_name="Dev User"):
    response = client.post("/api/auth/register", json={"email": email, "password": password, "full_name": full_name})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def headers(client):
    return register(client)


def upload(client, headers, *names):
    body = [{"name": name, "type": "table", "content": TABLE_SQL} for name in names]
    response = client.post("/api/dashboard/upload", json=body, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def titles(state):
    return [n["title"] for n in state["notifications"]]


class TestAuth:
    def test_register_then_profile(self, client, headers):
        response = client.get("/api/auth/me", headers=headers)

        assert response.status_code == 200
        assert response.json()["email"] == "dev@example.com"
        assert response.json()["full_name"] == "Dev User"

    def test_duplicate_email(self, client, headers):
        response = client.post("/api/auth/register", json={"email": "DEV@example.com", "password": "secret123"})
        assert response.status_code == 400

    def test_short_password(self, client):
        response = client.post("/api/auth/register", json={"email": "a@example.com", "password": "123"})
        assert response.status_code == 400

    def test_login(self, client, headers):
        ok = client.post("/api/auth/login", json={"email": "dev@example.com", "password": "secret123"})
        bad = client.post("/api/auth/login", json={"email": "dev@example.com", "password": "wrong-password"})

        assert ok.status_code == 200 and ok.json()["token"]
        assert bad.status_code == 401

    def test_missing_or_bad_token(self, client):
        missing = client.get("/api/dashboard")
        assert missing.status_code == 401
        assert missing.headers["www-authenticate"] == "Bearer"
        bad = {"Authorization": "Bearer not-a-token"}
        assert client.get("/api/dashboard", headers=bad).status_code == 401

    def test_token_for_deleted_user(self, client):
        token = create_access_token("no-such-user")
        assert client.get("/api/migrations", headers={"Authorization": f"Bearer {token}"}).status_code == 401


class TestTokens:
    def test_round_trip(self):
        token = create_access_token("user-1", "u@example.com")
        assert decode_access_token(token) == "user-1"
        assert jwt.decode(token, settings.SECRET_KEY, algorithms=["HS256"])["email"] == "u@example.com"

    def test_other_token_type_rejected(self):
        token = jwt.encode({"sub": "user-1", "typ": "refresh"}, settings.SECRET_KEY, algorithm="HS256")
        assert decode_access_token(token) is None

    def test_wrong_key_rejected(self):
        token = jwt.encode({"sub": "user-1", "typ": "access"}, "another-key", algorithm="HS256")
        assert decode_access_token(token) is None


class TestDashboard:
    def test_first_visit(self, client, headers):
        state = client.get("/api/dashboard", headers=headers).json()

        assert state["view"] == "upload"
        assert state["show_wizard"] is True
        assert state["files"] == []
        assert state["selected_ai_model"] == settings.DEFAULT_AI_MODEL

        assert client.get("/api/dashboard", headers=headers).json()["show_wizard"] is True
        client.post("/api/dashboard/wizard/close", headers=headers)
        client.delete("/api/dashboard", headers=headers)
        assert client.get("/api/dashboard", headers=headers).json()["show_wizard"] is False

    def test_upload_convert_report(self, client, headers):
        state = upload(client, headers, "orders.sql", "customers.sql")

        assert state["view"] == "conversion"
        assert [f["name"] for f in state["files"]] == ["orders.sql", "customers.sql"]
        assert state["selected_file"]["name"] == "orders.sql"
        assert "Files Uploaded" in titles(state)

        state = client.post("/api/dashboard/convert-all", headers=headers).json()
        assert {f["conversion_status"] for f in state["files"]} == {"success"}
        assert state["unreviewed_count"] == 2
        assert "NUMBER(10)" in state["selected_file"]["converted_content"]

        state = client.post("/api/dashboard/report", headers=headers).json()
        assert state["view"] == "report"
        assert state["report"]["success_count"] == 2
        assert "Report Generated" in titles(state)

        state = client.post("/api/dashboard/report/close", headers=headers).json()
        assert state["view"] == "conversion"

    def test_duplicate_upload_is_reported(self, client, headers):
        upload(client, headers, "orders.sql")

        state = upload(client, headers, "ORDERS.sql", "new.sql")

        assert [o["status"] for o in state["upload_outcomes"]] == ["duplicate", "inserted"]
        assert [f["name"] for f in state["files"]] == ["orders.sql", "new.sql"]

    def test_multipart_upload(self, client, headers):
        files = [
            ("files", ("orders.sql", TABLE_SQL.encode(), "text/plain")),
            ("files", ("audit.trg", b"CREATE TRIGGER t ON orders FOR INSERT AS SELECT 1", "text/plain")),
        ]
        response = client.post("/api/dashboard/upload-files", files=files, headers=headers)

        assert response.status_code == 200, response.text
        assert [(f["name"], f["type"]) for f in response.json()["files"]] == [
            ("orders.sql", "table"), ("audit.trg", "trigger"),
        ]

    def test_multipart_rejects_unsupported_extension(self, client, headers):
        files = [("files", ("data.csv", b"id,name", "text/csv"))]
        response = client.post("/api/dashboard/upload-files", files=files, headers=headers)

        assert response.status_code == 400
        assert "data.csv" in response.json()["detail"]

    def test_reconvert_with_prompt(self, client, headers):
        state = upload(client, headers, "orders.sql")
        file_id = state["files"][0]["id"]

        response = client.post(
            f"/api/dashboard/reconvert/{file_id}", json={"custom_prompt": "keep comments"}, headers=headers
        )

        assert response.status_code == 200
        assert response.json()["selected_file"]["converted_content"].startswith(
            f"-- Converted with {settings.DEFAULT_AI_MODEL} (prompt: keep comments)"
        )

    def test_manual_edit_and_select(self, client, headers):
        state = upload(client, headers, "a.sql", "b.sql")
        second = state["files"][1]["id"]

        state = client.post(f"/api/dashboard/select/{second}", headers=headers).json()
        assert state["selected_file"]["id"] == second

        state = client.post("/api/dashboard/edit", json={"content": "-- mine"}, headers=headers).json()
        assert state["selected_file"]["converted_content"] == "-- mine"
        assert state["files"][1]["converted_content"] == "-- mine"

    def test_edit_without_selection(self, client, headers):
        response = client.post("/api/dashboard/edit", json={"content": "-- mine"}, headers=headers)
        assert response.status_code == 409

    def test_unknown_file(self, client, headers):
        assert client.post("/api/dashboard/select/missing", headers=headers).status_code == 404
        assert client.post("/api/dashboard/convert/missing", headers=headers).status_code == 404

    def test_invalid_tab(self, client, headers):
        response = client.post("/api/dashboard/tab", json={"tab": "history"}, headers=headers)
        assert response.status_code == 422

    def test_reset(self, client, headers):
        before = upload(client, headers, "orders.sql")["current_migration_id"]

        state = client.post("/api/dashboard/reset", headers=headers).json()

        assert state["files"] == []
        assert state["view"] == "upload"
        assert state["current_migration_id"] not in (None, before)
        assert "Migration Reset" in titles(state)

    def test_help_panel(self, client, headers):
        assert client.post("/api/dashboard/help/open", headers=headers).json()["show_help"] is True
        assert client.post("/api/dashboard/help/close", headers=headers).json()["show_help"] is False
        assert client.post("/api/dashboard/help/toggle", headers=headers).status_code == 400

    def test_users_are_isolated(self, client, headers):
        upload(client, headers, "orders.sql")
        other = register(client, email="other@example.com")

        assert client.get("/api/dashboard", headers=other).json()["files"] == []
        assert client.get("/api/migrations", headers=other).json() == []


class TestMigrations:
    def test_history_and_stats(self, client, headers):
        migration_id = upload(client, headers, "a.sql", "b.sql")["current_migration_id"]
        client.post("/api/dashboard/convert-type/table", headers=headers)

        migrations = client.get("/api/migrations", headers=headers).json()
        assert [m["id"] for m in migrations] == [migration_id]
        assert migrations[0]["stats"]["success"] == 2

        stats = client.get(f"/api/migrations/{migration_id}/stats", headers=headers).json()
        assert stats == {"total": 2, "success": 2, "failed": 0, "pending": 0, "deployed": 0}

        detail = client.get(f"/api/migrations/{migration_id}", headers=headers).json()
        assert [f["name"] for f in detail["files"]] == ["a.sql", "b.sql"]

    def test_unknown_migration(self, client, headers):
        assert client.get("/api/migrations/missing", headers=headers).status_code == 404
        assert client.get("/api/migrations/missing/stats", headers=headers).status_code == 404
        assert client.delete("/api/migrations/missing", headers=headers).status_code == 404

    def test_start_rename_delete(self, client, headers):
        created = client.post("/api/migrations", json={"project_name": "Billing"}, headers=headers).json()
        migration_id = created["migration_id"]
        assert [n["title"] for n in created["notifications"]] == ["Migration Started"]

        renamed = client.patch(f"/api/migrations/{migration_id}", json={"project_name": "Billing v2"}, headers=headers)
        assert renamed.json()["ok"] is True
        assert client.get(f"/api/migrations/{migration_id}", headers=headers).json()["project_name"] == "Billing v2"

        deleted = client.delete(f"/api/migrations/{migration_id}", headers=headers).json()
        assert deleted["ok"] is True
        assert client.get(f"/api/migrations/{migration_id}", headers=headers).status_code == 404

    def test_current_migration_is_stable(self, client, headers):
        first = client.post("/api/migrations/current", headers=headers).json()["migration_id"]
        second = client.post("/api/migrations/current", headers=headers).json()["migration_id"]
        assert first == second

    def test_failed_file_migration(self, client, headers):
        response = client.post("/api/migrations/failed", json={"file_name": "orders.sql"}, headers=headers)
        migration_id = response.json()["migration_id"]

        assert client.get(f"/api/migrations/{migration_id}", headers=headers).json()["project_name"] == "Failed: orders.sql"

    def test_cleanup(self, client, headers):
        response = client.post("/api/migrations/cleanup", headers=headers)
        assert response.json() == {"deleted": 0}

    def test_file_status_and_deploy_sync_dashboard(self, client, headers):
        file_id = upload(client, headers, "orders.sql")["files"][0]["id"]

        response = client.patch(
            f"/api/files/{file_id}/status",
            json={"status": "failed", "error_message": "ORA-00942"},
            headers=headers,
        )
        assert response.json()["ok"] is True
        state = client.get("/api/dashboard", headers=headers).json()
        assert state["files"][0]["conversion_status"] == "failed"
        assert state["files"][0]["error_message"] == "ORA-00942"

        assert client.post(f"/api/files/{file_id}/deploy", headers=headers).json()["ok"] is True
        state = client.get("/api/dashboard", headers=headers).json()
        assert state["files"][0]["conversion_status"] == "deployed"

        assert client.post("/api/files/missing/deploy", headers=headers).status_code == 404

    def test_deployment_log(self, client, headers):
        migration_id = client.post("/api/migrations/current", headers=headers).json()["migration_id"]

        response = client.post(
            "/api/deployment-logs",
            json={"status": "Success", "lines_of_sql": 42, "file_count": 2},
            headers=headers,
        )

        assert response.status_code == 201
        assert response.json()["migration_id"] == migration_id
        assert response.json()["lines_of_sql"] == 42

    def test_deployment_log_validation(self, client, headers):
        response = client.post(
            "/api/deployment-logs",
            json={"status": "Partial", "lines_of_sql": -1, "file_count": 2},
            headers=headers,
        )
        assert response.status_code == 422

    def test_logout_drops_dashboard(self, client, headers):
        upload(client, headers, "orders.sql")

        assert client.post("/api/auth/logout", headers=headers).json() == {"ok": True}
        assert client.get("/api/dashboard", headers=headers).json()["files"] == []
