"""Tests for the auth module: token creation, validation, and dev mode bypass."""

import pytest

from essdesign.core.config import settings
from essdesign.core.token_factory import create_token, decode_token


class TestTokenFactory:

    def test_create_and_decode(self):
        token = create_token("user-1", "test-secret", email="u@example.com")
        payload = decode_token(token, "test-secret")
        assert payload is not None
        assert payload.sub == "user-1"
        assert payload.email == "u@example.com"

    def test_wrong_secret_returns_none(self):
        token = create_token("user-1", "correct-secret")
        assert decode_token(token, "wrong-secret") is None

    def test_expired_token_returns_none(self):
        token = create_token("user-1", "secret", expires_hours=-1)
        assert decode_token(token, "secret") is None

    def test_malformed_token_returns_none(self):
        assert decode_token("not.a.token", "secret") is None
        assert decode_token("", "secret") is None

    def test_unsupported_algorithm(self):
        with pytest.raises(ValueError):
            create_token("user-1", "secret", algorithm="RS256")
        assert decode_token(create_token("user-1", "secret"), "secret", algorithm="RS256") is None


class TestAuthDisabledMode:
    """When AUTH_ENABLED=false (default), every request is anonymous."""

    def test_create_without_token_succeeds(self, client):
        resp = client.post("/api/folders", json={"name": "Open"})
        assert resp.status_code == 201
        assert resp.json()["owner_id"] is None


class TestAuthEnabledMode:

    @pytest.fixture(autouse=True)
    def _enable_auth(self, monkeypatch):
        monkeypatch.setattr(settings, "auth_enabled", True)

    def _headers(self, subject="user-42"):
        token = create_token(subject, settings.jwt_secret_key, email=f"{subject}@example.com")
        return {"Authorization": f"Bearer {token}"}

    def test_missing_token_is_401(self, client):
        resp = client.get("/api/folders")
        assert resp.status_code == 401
        assert resp.json()["error"] == "UNAUTHORIZED"

    def test_invalid_token_is_401(self, client):
        resp = client.get("/api/folders", headers={"Authorization": "Bearer garbage"})
        assert resp.status_code == 401

    def test_valid_token_records_owner(self, client):
        resp = client.post("/api/folders", json={"name": "Owned"}, headers=self._headers())
        assert resp.status_code == 201
        assert resp.json()["owner_id"] == "user-42"

    def test_health_stays_open(self, client):
        assert client.get("/health").status_code == 200
