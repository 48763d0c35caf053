from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from vantageflow.db import Base
from vantageflow.db import get_db
from vantageflow.main import create_app


def test_heatmap_endpoint_rate_limited_after_threshold(monkeypatch) -> None:
    """Rate limiter blocks repeated requests to heatmap endpoints."""

    monkeypatch.setenv("RATE_LIMIT_PER_MINUTE", "1")
    monkeypatch.setenv("RATE_LIMIT_WINDOW_SECONDS", "60")
    app = create_app()
    client = TestClient(app)

    headers = {"X-Forwarded-For": "203.0.113.10"}
    body = {"view": "week", "today": "2025-06-10"}

    first = client.post("/heatmap/compute", json=body, headers=headers)
    second = client.post("/heatmap/compute", json=body, headers=headers)

    assert first.status_code == 200
    assert second.status_code == 429
    assert second.headers["Retry-After"]


def test_rate_limit_is_tracked_per_client(monkeypatch) -> None:
    """Each forwarded client address gets its own request window."""

    monkeypatch.setenv("RATE_LIMIT_PER_MINUTE", "1")
    app = create_app()
    client = TestClient(app)

    body = {"view": "week", "today": "2025-06-10"}

    first = client.post(
        "/heatmap/compute", json=body, headers={"X-Forwarded-For": "203.0.113.10"}
    )
    other = client.post(
        "/heatmap/compute", json=body, headers={"X-Forwarded-For": "198.51.100.7"}
    )

    assert first.status_code == 200
    assert other.status_code == 200


def test_non_heatmap_routes_not_rate_limited(monkeypatch) -> None:
    """Rate limiter does not affect routes outside /heatmap."""

    monkeypatch.setenv("RATE_LIMIT_PER_MINUTE", "1")
    monkeypatch.setenv("RATE_LIMIT_WINDOW_SECONDS", "60")
    app = create_app()
    client = TestClient(app)

    first = client.get("/health/live")
    second = client.get("/health/live")

    assert first.status_code == 200
    assert second.status_code == 200


def test_project_heatmap_endpoint_is_rate_limited(monkeypatch) -> None:
    """Per-project heatmaps share the heatmap request limit."""

    monkeypatch.setenv("RATE_LIMIT_PER_MINUTE", "1")
    app = create_app()
    test_engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    testing_session_local = sessionmaker(bind=test_engine, autoflush=False)

    def override_get_db():
        db = testing_session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)

    first = client.get("/projects/1/heatmap")
    second = client.get("/projects/1/heatmap")
    project_list = client.get("/projects")

    assert first.status_code == 404
    assert second.status_code == 429
    assert project_list.status_code == 200
