"""
Intake Link Endpoint Tests

Tests for issuing and revoking intake links as an authenticated staff member.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from app.core.intake_tokens import decode_intake_token, mint_intake_token
from app.core.security import create_access_token, decode_access_token


INTAKE_SECRET = "s3cret"
ORG_ID = "org-1"


def token_from(url: str) -> str:
    return url.rsplit("/", 1)[-1]


class TestStaffAuth:
    """Tests for the staff bearer token."""

    def test_access_token_round_trip(self):
        token = create_access_token("user-1", ORG_ID)

        payload = decode_access_token(token)

        assert payload["sub"] == "user-1"
        assert payload["org_id"] == ORG_ID

    def test_expired_access_token(self):
        token = create_access_token("user-1", ORG_ID, expires_delta=timedelta(seconds=-5))

        assert decode_access_token(token) is None

    def test_requires_bearer(self, client: TestClient):
        response = client.post("/api/v1/intake-links/tablet")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_rejects_garbage_bearer(self, client: TestClient):
        response = client.post(
            "/api/v1/intake-links/tablet",
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 401

    def test_rejects_token_without_org(self, client: TestClient):
        token = jwt.encode(
            {"sub": "user-1", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            "test-jwt-secret",
            algorithm="HS256",
        )

        response = client.post(
            "/api/v1/intake-links/tablet",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401


class TestIssueLinks:
    """Tests for POST /intake-links/expiring and /intake-links/tablet."""

    def test_expiring_link(self, client: TestClient, staff_headers):
        """Verify a 24h link for the caller's organization is issued."""
        before = datetime.now(timezone.utc)

        response = client.post(
            "/api/v1/intake-links/expiring",
            json={"base_url": "https://app.example/"},
            headers=staff_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["kind"] == "expiring"
        assert data["url"].startswith("https://app.example/intake/")

        claims = decode_intake_token(token_from(data["url"]), INTAKE_SECRET)
        assert claims.org_id == ORG_ID
        assert claims.type == "expiring"

        expires_at = datetime.fromisoformat(data["expires_at"].replace("Z", "+00:00"))
        assert abs(expires_at - (before + timedelta(hours=24))) < timedelta(seconds=30)
        assert abs(expires_at.timestamp() * 1000 - claims.exp) <= 1

    def test_tablet_link_uses_public_app_url(self, app_factory, make_settings, staff_headers):
        """Verify the base URL falls back to PUBLIC_APP_URL."""
        client = app_factory(make_settings(PUBLIC_APP_URL="https://clinic.example/"))

        response = client.post("/api/v1/intake-links/tablet", headers=staff_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["kind"] == "tablet"
        assert data["expires_at"] is None
        assert data["url"].startswith("https://clinic.example/intake/tablet/")

        claims = decode_intake_token(token_from(data["url"]), INTAKE_SECRET)
        assert claims.type == "tablet"
        assert claims.exp is None

    def test_root_relative_without_base(self, client: TestClient, staff_headers):
        response = client.post("/api/v1/intake-links/tablet", headers=staff_headers)

        assert response.json()["url"].startswith("/intake/tablet/")

    def test_issued_link_passes_probe(self, client: TestClient, staff_headers):
        url = client.post("/api/v1/intake-links/expiring", headers=staff_headers).json()["url"]

        response = client.options(f"/api/v1/public/intake/{token_from(url)}")

        assert response.status_code == 200

    @pytest.mark.parametrize("kind", ["expiring", "tablet"])
    def test_missing_secret(self, app_factory, make_settings, staff_headers, kind):
        client = app_factory(make_settings(INTAKE_FORM_SECRET=""))

        response = client.post(f"/api/v1/intake-links/{kind}", headers=staff_headers)

        assert response.status_code == 500
        assert response.json()["detail"] == "Server misconfiguration"


class TestRevokeLinks:
    """Tests for POST /intake-links/revoke."""

    def test_revoke_full_link(self, client: TestClient, staff_headers):
        """Verify a revoked tablet link stops working."""
        url = client.post("/api/v1/intake-links/tablet", headers=staff_headers).json()["url"]
        probe_url = f"/api/v1/public/intake/{token_from(url)}"
        assert client.options(probe_url).status_code == 200

        response = client.post(
            "/api/v1/intake-links/revoke",
            json={"token": url},
            headers=staff_headers,
        )

        assert response.status_code == 200
        assert response.json()["revoked"] is True
        assert len(response.json()["fingerprint"]) == 64
        assert client.options(probe_url).status_code == 401

    def test_cannot_revoke_other_org(self, client: TestClient, staff_headers):
        foreign = mint_intake_token({"orgId": "org-2", "type": "tablet"}, INTAKE_SECRET)

        response = client.post(
            "/api/v1/intake-links/revoke",
            json={"token": foreign},
            headers=staff_headers,
        )

        assert response.status_code == 403
        assert client.options(f"/api/v1/public/intake/{foreign}").status_code == 200

    def test_invalid_token(self, client: TestClient, staff_headers):
        response = client.post(
            "/api/v1/intake-links/revoke",
            json={"token": "abc.def"},
            headers=staff_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid or expired"

    def test_requires_staff(self, client: TestClient):
        response = client.post("/api/v1/intake-links/revoke", json={"token": "abc.def"})

        assert response.status_code == 401

    def test_full_denylist(self, client: TestClient, staff_headers, monkeypatch):
        """Verify a full denylist refuses the revocation instead of dropping another."""
        from app.core.cache import TokenDenylist

        denylist = TokenDenylist(max_size=1)
        monkeypatch.setattr("app.api.v1.endpoints.intake_links.intake_denylist", denylist)
        kept = mint_intake_token({"orgId": "org-2", "type": "tablet"}, INTAKE_SECRET)
        denylist.revoke(kept, decode_intake_token(kept, INTAKE_SECRET))
        url = client.post("/api/v1/intake-links/tablet", headers=staff_headers).json()["url"]

        response = client.post(
            "/api/v1/intake-links/revoke",
            json={"token": url},
            headers=staff_headers,
        )

        assert response.status_code == 503
        assert denylist.is_revoked(kept) is True
