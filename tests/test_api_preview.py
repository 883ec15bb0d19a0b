"""Tests for the preview API router.

The pipeline itself is replaced with an async fake via ``monkeypatch`` so the
tests exercise routing, rate limiting, error mapping and CORS only.
"""

from __future__ import annotations

from typing import Generator

import pytest
from fastapi.testclient import TestClient

from linkpreview.api.app import create_app
from linkpreview.preview.errors import FetchFailed, TooLarge, UnsafeUrl, WrongContentType
from linkpreview.preview.models import PreviewResult
from linkpreview.ratelimit import InMemoryRateLimiter


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


_RESULT = PreviewResult(
    title="Widget",
    image="https://shop.example/w.png",
    price=9.5,
    currency="USD",
    site_name="shop.example",
    source_url="https://shop.example/w",
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def calls(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    """Patch the pipeline with a fake that records the URLs it was given."""
    seen: list[str] = []

    async def fake_build_preview(url: str, resolver=None) -> PreviewResult:
        seen.append(url)
        return _RESULT

    monkeypatch.setattr("linkpreview.api.routers.preview.build_preview", fake_build_preview)
    return seen


@pytest.fixture()
def client(clock: FakeClock) -> Generator[TestClient, None, None]:
    limiter = InMemoryRateLimiter(points=10, window=60, clock=clock)
    with TestClient(create_app(rate_limiter=limiter)) as c:
        yield c


def _raise(monkeypatch: pytest.MonkeyPatch, exc: Exception) -> None:
    async def failing(url: str, resolver=None) -> PreviewResult:
        raise exc

    monkeypatch.setattr("linkpreview.api.routers.preview.build_preview", failing)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestPreviewEndpoint:
    def test_success_returns_camel_case_result(self, client: TestClient, calls: list[str]) -> None:
        resp = client.post("/preview", json={"url": "https://shop.example/w"})

        assert resp.status_code == 200
        assert resp.json() == {
            "title": "Widget",
            "image": "https://shop.example/w.png",
            "price": 9.5,
            "currency": "USD",
            "siteName": "shop.example",
            "sourceUrl": "https://shop.example/w",
        }
        assert calls == ["https://shop.example/w"]

    def test_missing_url_is_400(self, client: TestClient, calls: list[str]) -> None:
        resp = client.post("/preview", json={})
        assert resp.status_code == 400
        assert resp.json() == {"error": "url is required"}
        assert calls == []

    def test_empty_url_is_400(self, client: TestClient, calls: list[str]) -> None:
        resp = client.post("/preview", json={"url": ""})
        assert resp.status_code == 400
        assert resp.json() == {"error": "url is required"}

    def test_non_string_url_is_400(self, client: TestClient, calls: list[str]) -> None:
        resp = client.post("/preview", json={"url": 123})
        assert resp.status_code == 400
        assert resp.json() == {"error": "url must be a string"}
        assert calls == []

    def test_no_body_is_400(self, client: TestClient, calls: list[str]) -> None:
        resp = client.post("/preview")
        assert resp.status_code == 400
        assert resp.json() == {"error": "url is required"}

    def test_non_object_body_is_400(self, client: TestClient, calls: list[str]) -> None:
        resp = client.post("/preview", json=["https://shop.example/"])
        assert resp.status_code == 400
        assert resp.json() == {"error": "url is required"}

    def test_invalid_json_is_400(self, client: TestClient, calls: list[str]) -> None:
        resp = client.post(
            "/preview", content=b"{bad", headers={"Content-Type": "application/json"}
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Request body must be valid JSON"}
        assert calls == []

    @pytest.mark.parametrize(
        "exc",
        [
            UnsafeUrl("Invalid or unsafe URL."),
            WrongContentType("URL did not return HTML"),
            TooLarge("HTML exceeds max size (1548288 bytes)"),
            FetchFailed("timeout of 5000ms exceeded"),
        ],
    )
    def test_pipeline_errors_are_400_with_message(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch, exc: Exception
    ) -> None:
        _raise(monkeypatch, exc)
        resp = client.post("/preview", json={"url": "https://shop.example/"})
        assert resp.status_code == 400
        assert resp.json() == {"error": str(exc)}


class TestRateLimit:
    def test_eleventh_request_is_429(self, client: TestClient, calls: list[str]) -> None:
        for _ in range(10):
            assert client.post("/preview", json={"url": "https://shop.example/"}).status_code == 200

        resp = client.post("/preview", json={"url": "https://shop.example/"})
        assert resp.status_code == 429
        assert resp.json() == {"error": "Rate limit exceeded (10/min/IP)"}
        assert len(calls) == 10

    def test_quota_counts_failed_requests(self, client: TestClient, calls: list[str]) -> None:
        for _ in range(10):
            client.post("/preview", json={})
        assert client.post("/preview", json={"url": "https://shop.example/"}).status_code == 429

    def test_malformed_bodies_are_rate_limited(self, client: TestClient, calls: list[str]) -> None:
        statuses = [
            client.post(
                "/preview", content=b"{bad", headers={"Content-Type": "application/json"}
            ).status_code
            for _ in range(15)
        ]
        assert statuses == [400] * 10 + [429] * 5

    def test_request_succeeds_after_window(
        self, client: TestClient, clock: FakeClock, calls: list[str]
    ) -> None:
        for _ in range(11):
            client.post("/preview", json={"url": "https://shop.example/"})

        clock.now += 60
        assert client.post("/preview", json={"url": "https://shop.example/"}).status_code == 200


class TestCors:
    def test_preflight_from_allowed_origin(self, client: TestClient) -> None:
        resp = client.options(
            "/preview",
            headers={
                "Origin": "http://localhost:8080",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "http://localhost:8080"
        assert resp.headers["access-control-allow-credentials"] == "true"

    def test_preflight_from_other_origin_is_not_allowed(self, client: TestClient) -> None:
        resp = client.options(
            "/preview",
            headers={
                "Origin": "https://evil.example",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert "access-control-allow-origin" not in resp.headers


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}
