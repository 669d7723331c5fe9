"""Tests for /health and /ready observability endpoints.

Uses FastAPI TestClient with in-memory SQLite connections to verify
liveness and readiness probes without external dependencies.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from replyagent.events.store import SQLiteEventStore, init_events_db
from replyagent.health import register_health_routes
from replyagent.templates.library import builtin_library

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_app(services: dict | None = None) -> FastAPI:
    """Create a minimal FastAPI app with health routes and given services."""
    app = FastAPI()
    app.state.services = services or {}
    register_health_routes(app)
    return app


# ---------------------------------------------------------------------------
# /health (liveness)
# ---------------------------------------------------------------------------


class TestHealthEndpoint:
    """GET /health liveness probe."""

    def test_health_returns_200(self) -> None:
        client = TestClient(_make_app())

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


# ---------------------------------------------------------------------------
# /ready (readiness)
# ---------------------------------------------------------------------------


class TestReadyEndpoint:
    """GET /ready readiness probe."""

    def test_ready_returns_200_when_services_ok(self) -> None:
        conn = init_events_db(":memory:")
        app = _make_app(
            {"event_store": SQLiteEventStore(conn), "template_library": builtin_library()}
        )
        client = TestClient(app)

        response = client.get("/ready")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ready",
            "checks": {"event_store": "ok", "templates": "ok"},
        }

        conn.close()

    def test_ready_returns_503_when_store_missing(self) -> None:
        app = _make_app({"event_store": None, "template_library": builtin_library()})
        client = TestClient(app)

        response = client.get("/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "not_ready"
        assert body["checks"]["event_store"] == "fail"
        assert body["checks"]["templates"] == "ok"

    def test_ready_returns_503_when_templates_missing(self) -> None:
        conn = init_events_db(":memory:")
        app = _make_app({"event_store": SQLiteEventStore(conn), "template_library": None})
        client = TestClient(app)

        response = client.get("/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["checks"]["event_store"] == "ok"
        assert body["checks"]["templates"] == "fail"

        conn.close()

    def test_ready_returns_503_when_db_connection_broken(self) -> None:
        """A closed connection that raises on execute -> event_store fails."""
        conn = init_events_db(":memory:")
        store = SQLiteEventStore(conn)
        conn.close()
        app = _make_app({"event_store": store, "template_library": builtin_library()})
        client = TestClient(app)

        response = client.get("/ready")

        assert response.status_code == 503
        assert response.json()["checks"]["event_store"] == "fail"

    def test_ready_returns_503_with_no_services(self) -> None:
        client = TestClient(_make_app())

        response = client.get("/ready")

        assert response.status_code == 503
        assert response.json()["checks"] == {"event_store": "fail", "templates": "fail"}
