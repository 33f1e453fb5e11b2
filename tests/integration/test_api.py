"""
HTTP API 통합 테스트

get_session 을 메모리 SQLite 세션으로, 이미지 검색 의존성은 MockTransport 클라이언트로 교체합니다.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from catalog.api.endpoints.images import get_image_search_client, get_settings
from catalog.db import get_session
from catalog.enrichment.image_search import ImageSearchClient
from catalog.main import app
from catalog.settings import Settings


@pytest.fixture
def client(session_factory):
    def _override_session():
        with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _override_session
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


def _import(client, *items):
    response = client.post("/api/products/import", json=list(items))
    assert response.status_code == 201
    return response.json()


def _toner(**overrides):
    item = {
        "slug": "anua-toner",
        "title": "Anua Heartleaf Toner",
        "brand": "Anua",
        "priceKrw": 30000,
        "status": "Active",
        "stock": 5,
        "lifecycleStatus": "READY",
        "sourceUrl": "https://item.gmarket.co.kr/1",
    }
    item.update(overrides)
    return item


@pytest.mark.integration
class TestProductsApi:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_import_skips_existing(self, client):
        first = _import(client, _toner())
        assert first["created"] == 1
        assert first["products"][0]["slug"] == "anua-toner"
        assert first["products"][0]["lifecycleStatus"] == "READY"

        second = _import(client, _toner(), _toner(slug="other", sourceUrl="https://item.gmarket.co.kr/2"))
        assert second["created"] == 1
        assert second["skipped"] == 1

    def test_import_requires_items(self, client):
        assert client.post("/api/products/import", json=[]).status_code == 422

    def test_get_by_id_and_slug(self, client):
        product_id = _import(client, _toner())["products"][0]["id"]

        by_id = client.get(f"/api/products/{product_id}")
        by_slug = client.get("/api/products/anua-toner")
        assert by_id.status_code == 200
        assert by_id.json()["id"] == by_slug.json()["id"] == product_id
        assert by_slug.json()["priceKrw"] == 30000

    def test_unknown_product_is_404(self, client):
        response = client.get("/api/products/missing-slug")
        assert response.status_code == 404
        assert "missing-slug" in response.json()["error"]

    def test_list_filters(self, client):
        _import(client, _toner(), _toner(slug="serum", sourceUrl=None, lifecycleStatus="DRAFT"))

        ready = client.get("/api/products", params={"lifecycleStatus": "READY"}).json()
        assert [p["slug"] for p in ready] == ["anua-toner"]
        assert len(client.get("/api/products").json()) == 2

    def test_patch_reports_blocked_fields(self, client):
        _import(client, _toner())

        response = client.patch("/api/products/anua-toner", json={"title": "Renamed", "stock": 0, "status": "Draft"})
        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Renamed"
        assert body["stock"] == 5
        assert body["status"] == "Active"
        assert body["_warnings"]["blockedFields"] == ["stock", "status"]

    def test_patch_without_blocked_fields_has_no_warnings(self, client):
        _import(client, _toner())
        body = client.patch("/api/products/anua-toner", json={"brand": "ANUA"}).json()
        assert body["brand"] == "ANUA"
        assert body.get("_warnings") is None

    def test_patch_rejects_bad_lifecycle_status(self, client):
        _import(client, _toner())
        response = client.patch("/api/products/anua-toner", json={"lifecycleStatus": "ARCHIVED"})
        assert response.status_code == 400
        assert response.json()["context"]["field"] == "lifecycle_status"

    def test_patch_to_pushed_captures_baseline(self, client):
        _import(client, _toner())
        body = client.patch("/api/products/anua-toner", json={"lifecycleStatus": "PUSHED"}).json()
        assert body["lifecycleStatus"] == "PUSHED"
        assert body["sourceBaselinePriceKrw"] == 30000

    def test_bulk_status(self, client):
        _import(client, _toner(), _toner(slug="serum", sourceUrl=None))

        response = client.patch(
            "/api/products/bulk-status",
            json={"ids": ["anua-toner", "serum", "nope"], "lifecycleStatus": "pushed"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["updated"] == 2
        assert body["notFound"] == ["nope"]
        assert {p["lifecycleStatus"] for p in body["products"]} == {"PUSHED"}

    def test_bulk_status_rejects_unknown_status(self, client):
        _import(client, _toner())
        response = client.patch("/api/products/bulk-status", json={"ids": ["anua-toner"], "lifecycleStatus": "GONE"})
        assert response.status_code == 400

    def test_visibility_toggle(self, client):
        _import(client, _toner())
        assert client.post("/api/products/anua-toner/visibility").json()["visibility"] == "hidden"
        assert client.post("/api/products/anua-toner/visibility").json()["visibility"] == "public"

    def test_drift_check_only_counts_pushed(self, client):
        _import(client, _toner(), _toner(slug="serum", sourceUrl=None, lifecycleStatus="PUSHED"))

        body = client.post("/api/products/drift-check").json()
        assert body["checked"] == 1
        assert 0 <= body["priceChanged"] + body["outOfStock"] <= 1

    def test_product_images(self, client):
        _import(client, _toner())
        assert client.get("/api/products/anua-toner/images").json() == []


@pytest.mark.integration
class TestImageSuggestApi:
    def _use(self, config, handler=None):
        app.dependency_overrides[get_settings] = lambda: config
        if handler is not None:
            search = ImageSearchClient(config, client=httpx.Client(transport=httpx.MockTransport(handler)))
            app.dependency_overrides[get_image_search_client] = lambda: search

    def test_disabled(self, client):
        self._use(Settings(image_search_enabled=False))
        assert client.get("/api/images/suggest", params={"q": "toner"}).status_code == 400

    def test_not_configured(self, client):
        self._use(Settings(image_search_enabled=True, google_cloud_api_key="", custom_search_engine_id=""))
        assert client.get("/api/images/suggest", params={"q": "toner"}).status_code == 500

    def test_requires_query_or_product(self, client):
        self._use(Settings(image_search_enabled=True, google_cloud_api_key="g", custom_search_engine_id="cx"))
        assert client.get("/api/images/suggest").status_code == 400

    def test_suggest_for_product(self, client):
        seen = []

        def handler(request):
            seen.append(request.url.params["q"])
            return httpx.Response(200, json={"items": [{"link": "https://img/1.jpg"}, {"link": "https://img/2.jpg"}]})

        self._use(
            Settings(image_search_enabled=True, google_cloud_api_key="g", custom_search_engine_id="cx", gemini_api_key=""),
            handler,
        )
        _import(client, _toner())

        response = client.get("/api/images/suggest", params={"productId": "anua-toner", "count": 2})
        assert response.status_code == 200
        body = response.json()
        assert body["method"] == "fallback"
        assert body["query"] == "Anua Anua Heartleaf Toner"
        assert body["images"] == ["https://img/1.jpg", "https://img/2.jpg"]
        assert seen == [body["queryFinal"]]

    def test_search_failure_is_502(self, client):
        self._use(
            Settings(image_search_enabled=True, google_cloud_api_key="g", custom_search_engine_id="cx", gemini_api_key=""),
            lambda request: httpx.Response(403, text="quota"),
        )
        response = client.get("/api/images/suggest", params={"q": "anua toner"})
        assert response.status_code == 502

    def test_non_json_search_response_is_502(self, client):
        self._use(
            Settings(image_search_enabled=True, google_cloud_api_key="g", custom_search_engine_id="cx", gemini_api_key=""),
            lambda request: httpx.Response(200, text="<html>maintenance</html>"),
        )
        response = client.get("/api/images/suggest", params={"q": "anua toner"})
        assert response.status_code == 502
        assert response.json()["error_code"] == "ENRICHMENT_ERROR"
