"""
Storefront Backend — Auth Gate, Error Envelope and Health Tests
=================================================================

What:  Admin-only routes reject missing, invalid and non-admin tokens;
       errors carry the standard envelope; /health reports the database;
       create_app() talks to the database its Settings name.
"""

from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from storefront.config import Settings
from storefront.database import Base, get_db_session
from storefront.exceptions import AuthenticationError
from storefront.security import create_access_token, decode_access_token

PRODUCTS = "/api/v1/products"
CATEGORIES = "/api/v1/categories"

ADMIN_ROUTES = [
    ("post", PRODUCTS),
    ("get", f"{PRODUCTS}/get/count"),
    ("put", f"{PRODUCTS}/00000000-0000-0000-0000-000000000000"),
    ("delete", f"{PRODUCTS}/00000000-0000-0000-0000-000000000000"),
    ("put", f"{PRODUCTS}/gallery-image/00000000-0000-0000-0000-000000000000"),
    ("post", CATEGORIES),
    ("put", f"{CATEGORIES}/00000000-0000-0000-0000-000000000000"),
    ("delete", f"{CATEGORIES}/00000000-0000-0000-0000-000000000000"),
]


class TestTokens:

    def test_round_trip_keeps_claims(self, app_settings):
        token = create_access_token({"sub": "a", "is_admin": True}, app_settings)
        claims = decode_access_token(token, app_settings)
        assert claims["sub"] == "a" and claims["is_admin"] is True

    def test_expired_token_rejected(self, app_settings):
        token = create_access_token({"sub": "a"}, app_settings, expires_delta=timedelta(seconds=-1))
        with pytest.raises(AuthenticationError):
            decode_access_token(token, app_settings)

    def test_wrong_secret_rejected(self, app_settings):
        other = Settings(jwt_secret="another-secret")
        token = create_access_token({"sub": "a"}, other)
        with pytest.raises(AuthenticationError):
            decode_access_token(token, app_settings)


class TestAdminGate:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method, path", ADMIN_ROUTES)
    async def test_missing_token(self, test_client, method, path):
        response = await test_client.request(method.upper(), path)

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
        assert response.json()["error"] == "not_authenticated"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method, path", ADMIN_ROUTES)
    async def test_non_admin_token(self, test_client, user_headers, method, path):
        response = await test_client.request(method.upper(), path, headers=user_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_garbage_token(self, test_client):
        response = await test_client.get(
            f"{PRODUCTS}/get/count", headers={"Authorization": "Bearer not.a.jwt"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_public_reads_need_no_token(self, test_client):
        for path in (PRODUCTS, CATEGORIES, f"{PRODUCTS}/get/featured/0"):
            assert (await test_client.get(path)).status_code == 200


class TestErrorEnvelope:

    @pytest.mark.asyncio
    async def test_error_body_and_request_id(self, test_client):
        response = await test_client.get(
            f"{PRODUCTS}/not-an-id", headers={"X-Request-ID": "req-123"}
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["message"] == "Invalid id"
        assert body["details"] == {"field": "id", "value": "not-an-id"}
        assert body["request_id"] == "req-123"
        assert response.headers["x-request-id"] == "req-123"


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["uptime_seconds"] >= 0

    @pytest.mark.asyncio
    async def test_health_database_error(self, test_app, test_client, mock_db_session):
        mock_db_session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("refused"))

        async def _failing_session():
            yield mock_db_session

        test_app.dependency_overrides[get_db_session] = _failing_session

        response = await test_client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
        assert response.json()["database"] == "disconnected"
        mock_db_session.rollback.assert_awaited()


class TestAppDatabase:
    """Apps built without dependency overrides use config.database_url."""

    def make_config(self, tmp_path, database_url):
        return Settings(
            database_url=database_url,
            upload_dir=str(tmp_path / "uploads"),
            jwt_secret="test-secret",
            log_level="WARNING",
        )

    @pytest.mark.asyncio
    async def test_requests_use_configured_database(self, tmp_path, admin_headers):
        from storefront.main import create_app

        db_file = tmp_path / "shop.db"
        app = create_app(self.make_config(tmp_path, f"sqlite+aiosqlite:///{db_file}"))
        assert app.state.engine.url.database == str(db_file)

        async with app.state.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        try:
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                created = await client.post(
                    CATEGORIES, json={"name": "Shoes"}, headers=admin_headers
                )
                listed = await client.get(CATEGORIES)
        finally:
            await app.state.engine.dispose()

        assert created.status_code == 201
        assert [c["name"] for c in listed.json()] == ["Shoes"]
        assert db_file.stat().st_size > 0

    @pytest.mark.asyncio
    async def test_unreachable_database_reports_unhealthy(self, tmp_path):
        from storefront.main import create_app

        url = f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'dir' / 'shop.db'}"
        app = create_app(self.make_config(tmp_path, url))
        try:
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                response = await client.get("/health")
        finally:
            await app.state.engine.dispose()

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"
