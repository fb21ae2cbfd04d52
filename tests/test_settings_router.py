"""
Tests for the settings API router.
"""

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from settingstore.main import app
from settingstore.models import SettingHistory
from settingstore.routers.settings import get_manager
from settingstore.services.audit import ActorContext
from settingstore.services.settings_manager import SettingsManager

API = "/api/settings"


@pytest.fixture
def client(db_session, config, cache):
    """Create a test client whose managers use the test database and cache."""
    def override_get_manager(request: Request):
        return SettingsManager(
            db_session,
            config=config,
            cache=cache,
            actor=ActorContext.from_request(request),
        )

    app.dependency_overrides[get_manager] = override_get_manager
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestListAndShow:
    """Test GET endpoints."""

    def test_list_ordered(self, client, manager):
        manager.set_with_metadata("b", 2, order=2)
        manager.set_with_metadata("a", 1, order=1)
        response = client.get(f"{API}/")
        assert response.status_code == 200
        assert [s["key"] for s in response.json()] == ["a", "b"]

    def test_list_filters(self, client, manager):
        manager.set_with_metadata("site.name", "N", group="site", is_public=True)
        manager.set_with_metadata("site.secret", "S", group="site", is_public=False)
        manager.set_with_metadata("mail.from", "M", group="mail", is_public=True)

        keys = [s["key"] for s in client.get(f"{API}/", params={"group": "site"}).json()]
        assert keys == ["site.name", "site.secret"]

        keys = [s["key"] for s in client.get(f"{API}/", params={"public": True}).json()]
        assert keys == ["site.name", "mail.from"]

    def test_show(self, client, manager):
        manager.set("count", 3, group="app")
        response = client.get(f"{API}/count")
        assert response.status_code == 200
        body = response.json()
        assert body["value"] == 3
        assert body["type"] == "int"
        assert body["group"] == "app"

    def test_show_masks_encrypted(self, client, manager):
        manager.set_encrypted("api.key", "sk-123")
        body = client.get(f"{API}/api.key").json()
        assert body["value"] == "***encrypted***"
        assert body["encrypted"] is True

    def test_show_missing(self, client):
        assert client.get(f"{API}/missing").status_code == 404


class TestWrites:
    """Test POST/PUT/DELETE endpoints."""

    def test_create(self, client, manager):
        response = client.post(f"{API}/", json={"key": "site.name", "value": "My Site", "group": "site"})
        assert response.status_code == 201
        assert response.json()["value"] == "My Site"
        assert manager.get("site.name") == "My Site"

    def test_create_encrypted(self, client, manager):
        response = client.post(f"{API}/", json={"key": "api.key", "value": "sk", "encrypted": True})
        assert response.json()["value"] == "***encrypted***"
        assert manager.encrypted("api.key") == "sk"

    def test_create_existing_key(self, client, manager):
        manager.set("site.name", "x")
        response = client.post(f"{API}/", json={"key": "site.name", "value": "y"})
        assert response.status_code == 422
        assert "key" in response.json()["errors"]

    def test_create_requires_value(self, client):
        assert client.post(f"{API}/", json={"key": "k"}).status_code == 422

    def test_update(self, client, manager):
        manager.set("site.name", "old")
        response = client.put(f"{API}/site.name", json={"value": "new"})
        assert response.status_code == 200
        assert manager.get("site.name") == "new"

    def test_update_missing(self, client):
        assert client.put(f"{API}/missing", json={"value": 1}).status_code == 404

    def test_update_validation_error(self, client, manager):
        manager.set_with_metadata("site.email", "admin@acme.io", validation_rules=["email"])
        response = client.put(f"{API}/site.email", json={"value": "nope"})
        assert response.status_code == 422
        assert response.json()["errors"]["value"] == ["The value field must be a valid email address."]

    def test_delete(self, client, manager):
        manager.set("k", 1)
        response = client.delete(f"{API}/k")
        assert response.status_code == 200
        assert not manager.has("k")

    def test_delete_missing(self, client):
        assert client.delete(f"{API}/missing").status_code == 404

    def test_request_provenance_is_recorded(self, client, db_session):
        client.post(f"{API}/", json={"key": "k", "value": 1}, headers={"User-Agent": "pytest-agent"})
        record = db_session.query(SettingHistory).filter_by(setting_key="k").one()
        assert record.user_agent == "pytest-agent"
        assert record.ip_address == "testclient"


class TestHistoryAndRestore:
    """Test history and restore endpoints."""

    def test_history(self, client, manager):
        manager.set("k", "a")
        manager.set("k", "b")
        body = client.get(f"{API}/k/history").json()
        assert [h["action"] for h in body] == ["updated", "created"]
        assert body[0]["old_value"] == "a"

    def test_restore(self, client, manager):
        manager.set("k", "a")
        manager.set("k", "b")
        history_id = manager.get_history("k")[0].id

        response = client.post(f"{API}/k/restore/{history_id}")
        assert response.status_code == 200
        assert response.json()["value"] == "a"

    def test_restore_unknown_history(self, client):
        assert client.post(f"{API}/k/restore/999").status_code == 404

    def test_restore_key_mismatch(self, client, manager):
        manager.set("a", 1)
        manager.set("b", 1)
        history_id = manager.get_history("b")[0].id
        assert client.post(f"{API}/a/restore/{history_id}").status_code == 400


class TestHealth:
    """Test the health endpoint."""

    def test_health(self, client, db_session):
        from settingstore.database import get_db

        app.dependency_overrides[get_db] = lambda: db_session
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["database"] == "connected"
