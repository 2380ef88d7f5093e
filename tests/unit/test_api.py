"""API 엔드포인트 테스트

- 오케스트레이터/게시자는 dependency_overrides로 Fake 주입
- 외부 호출 없음
"""

import random

import pytest
from fastapi.testclient import TestClient

from pauseshop import __version__
from pauseshop.api import get_orchestrator, get_publisher
from pauseshop.app import create_app
from pauseshop.crawlers.amazon.http_engine import HttpEngineConfig, SearchHttpEngine
from pauseshop.crawlers.amazon.query_builder import SearchQueryConfig
from pauseshop.engine import CancellationRegistry, DiscoveryOrchestrator, InMemoryPublisher
from tests.fakes import FakeAnalysisClient, FakeSleep, FakeTransport, complete_event, ok_response, product_event
from tests.fixtures import AMAZON_PAGES, PRODUCTS


IMAGE = "data:image/jpeg;base64,/9j/4AAQSkZJRgABAQ=="


@pytest.fixture
def analysis_client():
    return FakeAnalysisClient([product_event(PRODUCTS["red_running_shoes"]), complete_event(1)])


@pytest.fixture
def publisher():
    return InMemoryPublisher()


@pytest.fixture
def orchestrator(analysis_client, publisher):
    engine = SearchHttpEngine(
        HttpEngineConfig(max_concurrent_requests=1, max_retries=0),
        transport=FakeTransport([ok_response(AMAZON_PAGES["new_layout"])]),
        sleep=FakeSleep(),
        rng=random.Random(0),
    )
    return DiscoveryOrchestrator(
        analysis_client=analysis_client,
        publisher=publisher,
        registry=CancellationRegistry(),
        engine=engine,
        query_config=SearchQueryConfig(),
    )


@pytest.fixture
def client(orchestrator, publisher):
    app = create_app()
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_publisher] = lambda: publisher
    with TestClient(app) as test_client:
        yield test_client


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == __version__
    assert data["active_pauses"] == 0


def test_register_pause(client, orchestrator):
    response = client.post("/api/v1/pauses", json={"pause_id": "1700000000000"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "registered"
    assert orchestrator.registry.is_registered("1700000000000")
    assert client.get("/health").json()["active_pauses"] == 1


def test_register_pause_rejects_blank_id(client):
    response = client.post("/api/v1/pauses", json={"pause_id": "   "})
    assert response.status_code == 422


def test_cancel_pause(client, orchestrator, analysis_client):
    client.post("/api/v1/pauses", json={"pause_id": "p1"})

    response = client.delete("/api/v1/pauses/p1")

    assert response.status_code == 200
    assert response.json() == {"success": True, "pause_id": "p1", "message": "cancelled"}
    assert not orchestrator.registry.is_registered("p1")


def test_cancel_unknown_pause(client):
    response = client.delete("/api/v1/pauses/unknown")

    assert response.status_code == 200
    assert response.json()["success"] is False
    assert response.json()["message"] == "not registered"


def test_analyze_frame(client, analysis_client):
    response = client.post("/api/v1/pauses/p1/frame", json={"image_data": IMAGE})

    assert response.status_code == 200
    data = response.json()
    assert data["outcome"]["success"] is True
    assert data["outcome"]["products_found"] == 1
    assert [n["type"] for n in data["notifications"]] == [
        "analysis_started",
        "product_discovered",
        "analysis_complete",
    ]

    discovered = data["notifications"][1]
    assert discovered["pause_id"] == "p1"
    assert discovered["product"]["name"] == "Red Running Shoes"
    assert [l["position"] for l in discovered["listings"]] == [1, 2]
    assert analysis_client.stream_calls[0]["image"] == IMAGE


def test_analyze_frame_rejects_non_image_payload(client):
    response = client.post("/api/v1/pauses/p1/frame", json={"image_data": "https://example.com/a.jpg"})
    assert response.status_code == 422


def test_notifications_history(client):
    client.post("/api/v1/pauses/p1/frame", json={"image_data": IMAGE})

    response = client.get("/api/v1/pauses/p1/notifications")

    assert response.status_code == 200
    assert len(response.json()) == 3
    assert client.get("/api/v1/pauses/other/notifications").json() == []
