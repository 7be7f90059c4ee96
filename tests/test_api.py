# ============================================================================
# FILE: tests/test_api.py
# ============================================================================
"""
HTTP tests for the FastAPI surface, with the pipeline swapped for stubs
"""

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient

import api
from api import app, get_pipeline
from config import ParsingConfig
from fakes import StubStrategy
from models import BoardingPassRecord, Strategy
from pipeline import FallbackOrchestrator
from usage_stats import UsageStatisticsRecorder


def _png() -> bytes:
    ok, buffer = cv2.imencode(".png", np.zeros((20, 20, 3), np.uint8))
    assert ok
    return buffer.tobytes()


def _orchestrator(validator, remote=None, ocr=None, stats=None):
    strategies = [
        StubStrategy(Strategy.REMOTE_VISION_MODEL, record=remote),
        StubStrategy(Strategy.ON_DEVICE_MODEL),
        StubStrategy(Strategy.OCR_PATTERN_MATCH, record=ocr),
    ]
    return FallbackOrchestrator(strategies, validator, stats=stats, config=ParsingConfig())


@pytest.fixture
def client_for():
    def build(orchestrator):
        app.dependency_overrides[get_pipeline] = lambda: orchestrator
        return TestClient(app)

    yield build
    app.dependency_overrides.clear()


def test_health(client_for, validator):
    """Health reports the configured chain"""
    client = client_for(_orchestrator(validator))
    response = client.get("/health")

    assert response.status_code == 200
    assert response.headers["X-Request-ID"]
    body = response.json()
    assert body["status"] == "ok"
    assert body["strategies"]


def test_extract_success(client_for, validator):
    """An accepted record comes back with its strategy and quality"""
    record = BoardingPassRecord(flight_number="6E6252", departure_code="HYD", arrival_code="IXC")
    client = client_for(_orchestrator(validator, remote=record))

    response = client.post("/extract", files={"file": ("pass.png", _png(), "image/png")})

    assert response.status_code == 200
    body = response.json()
    assert body["strategy"] == "remote_vision_model"
    assert body["record"]["flight_number"] == "6E6252"
    assert "Missing passenger name" in body["quality"]["issues"]
    assert len(body["attempts"]) == 1


def test_extract_offline_skips_remote(client_for, validator):
    """offline=true records the remote strategy as skipped"""
    remote = BoardingPassRecord(flight_number="6E6252", departure_code="HYD")
    ocr = BoardingPassRecord(flight_number="UA546", departure_code="EWR")
    client = client_for(_orchestrator(validator, remote=remote, ocr=ocr))

    response = client.post(
        "/extract",
        params={"offline": "true"},
        files={"file": ("pass.png", _png(), "image/png")},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["strategy"] == "ocr_pattern_match"
    assert body["attempts"][0]["error_kind"] == "strategy_unavailable"
    assert body["attempts"][0]["attempts"] == 0


def test_extract_exhausted(client_for, validator):
    """Exhaustion is a 422 carrying the structured error"""
    client = client_for(_orchestrator(validator))

    response = client.post("/extract", files={"file": ("pass.png", _png(), "image/png")})

    assert response.status_code == 422
    body = response.json()
    assert body["error"] is True
    assert body["kind"] == "all_strategies_exhausted"
    assert body["suggestions"]


def test_extract_rejects_bad_upload(client_for, validator):
    """Empty or undecodable uploads are client errors"""
    client = client_for(_orchestrator(validator))

    empty = client.post("/extract", files={"file": ("pass.png", b"", "image/png")})
    assert empty.status_code == 400

    garbage = client.post("/extract", files={"file": ("pass.png", b"not an image", "image/png")})
    assert garbage.status_code == 400


def test_stats(client_for, validator):
    """Statistics reflect the attempts made through the API"""
    record = BoardingPassRecord(flight_number="UA546", departure_code="EWR")
    recorder = UsageStatisticsRecorder(path=None)
    client = client_for(_orchestrator(validator, remote=record, stats=recorder))

    client.post("/extract", files={"file": ("pass.png", _png(), "image/png")})
    response = client.get("/stats")

    assert response.status_code == 200
    assert response.json()["attempts_by_method"] == {"remote_vision_model": 1}


def test_main_serves_app_with_uvicorn(monkeypatch):
    """The console entry point hands the app to uvicorn on the configured address"""
    import uvicorn

    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda target, **kwargs: calls.append((target, kwargs)))

    api.main()

    assert len(calls) == 1
    target, kwargs = calls[0]
    assert target is app
    assert kwargs["host"] == api.API_HOST
    assert kwargs["port"] == api.API_PORT
