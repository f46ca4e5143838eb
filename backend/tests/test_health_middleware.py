"""
Tests for health checks and the HTTP middleware stack.
"""

from backoffice.routers import health
from shared.config.settings import settings


class TestHealth:
    """GET /api/health"""

    def test_liveness(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_detailed_without_events(self, client):
        response = client.get("/api/health/detailed")
        assert response.status_code == 200
        data = response.json()
        assert data["database"] is True
        assert data["redis"] is None

    def test_detailed_reports_database_outage(self, client, monkeypatch):
        monkeypatch.setattr(health, "database_health", lambda: False)
        response = client.get("/api/health/detailed")
        assert response.status_code == 503
        assert response.json()["status"] == "degraded"

    def test_detailed_checks_redis_when_events_enabled(self, client, monkeypatch):
        async def redis_down():
            return False

        monkeypatch.setattr(settings, "events_enabled", True)
        monkeypatch.setattr(health, "redis_health", redis_down)
        response = client.get("/api/health/detailed")
        assert response.status_code == 503
        assert response.json()["redis"] is False


class TestMiddlewares:
    """Security headers, request ids and content-type checks."""

    def test_security_headers(self, client):
        response = client.get("/api/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "Content-Security-Policy" in response.headers
        assert "Strict-Transport-Security" not in response.headers

    def test_request_id_generated(self, client):
        response = client.get("/api/health")
        assert response.headers["X-Request-ID"]

    def test_request_id_echoed(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"

    def test_non_json_body_rejected(self, client):
        response = client.post(
            "/api/auth/login",
            content="login=owner",
            headers={"Content-Type": "text/plain"},
        )
        assert response.status_code == 415

    def test_form_body_allowed_for_binotel(self, client):
        response = client.post(
            "/api/integrations/binotel/incoming",
            content="companyID=1",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        assert response.status_code == 200

    def test_cors_preflight(self, client):
        response = client.options(
            "/api/orders",
            headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "POST"},
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


class TestErrorResponses:
    """Application errors keep the {"detail": ...} shape."""

    def test_not_found_detail(self, client, owner_headers):
        response = client.get("/api/orders/999", headers=owner_headers)
        assert response.status_code == 404
        assert "detail" in response.json()

    def test_missing_token(self, client):
        response = client.get("/api/orders")
        assert response.status_code == 401
