from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api_server import create_app
from conftest import RULES_RANGE, StubTableSource
from shipping_rates.errors import ShippingConfigError


@pytest.fixture
def client_for(make_service):
    def _client(**kwargs) -> TestClient:
        service = make_service(**kwargs)
        return TestClient(create_app(service=service))

    return _client


@pytest.fixture
def client(client_for) -> TestClient:
    return client_for()


def price(client: TestClient, **params):
    base = {"country": "VN", "province": "HCMC", "district": "D1", "weight": 2}
    base.update(params)
    return client.get("/api/v1/shipping/price", params=base)


def test_health(client):
    assert client.get("/api/v1/health").json() == {"ok": True}


class TestPrice:
    def test_district_specific_price(self, client):
        resp = price(client, method="standard")
        assert resp.status_code == 200
        assert resp.json() == {
            "currency": "VND",
            "price": 20000.0,
            "matched_rule": {
                "country": "VN",
                "province": "HCMC",
                "district": "D1",
                "shipping_method": "standard",
                "min_weight": 0.0,
                "max_weight": 5.0,
            },
        }

    def test_wildcard_fallback(self, client):
        resp = price(client, district="Other")
        assert resp.status_code == 200
        assert resp.json()["price"] == 30000.0
        assert resp.json()["matched_rule"]["district"] == ""

    def test_no_match_is_404(self, client):
        resp = price(client, country="US")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "No shipping rule matched"

    def test_unsupported_method_is_400(self, client):
        resp = price(client, method="overnight")
        assert resp.status_code == 400
        assert "standard, express" in resp.json()["detail"]

    def test_missing_weight_is_422(self, client):
        resp = client.get("/api/v1/shipping/price", params={"country": "VN"})
        assert resp.status_code == 422

    def test_negative_weight_is_422(self, client):
        assert price(client, weight=-1).status_code == 422

    @pytest.mark.parametrize("missing", ["province", "district"])
    def test_province_and_district_are_required(self, client, missing):
        params = {"country": "VN", "province": "HCMC", "district": "D1", "weight": 1}
        del params[missing]
        resp = client.get("/api/v1/shipping/price", params=params)
        assert resp.status_code == 422

    def test_blank_province_and_district_match_wildcards(self, client):
        resp = price(client, province="", district="")
        assert resp.status_code == 200
        assert resp.json()["price"] == 30000.0

    def test_load_failure_is_500(self, client_for):
        client = client_for(source=StubTableSource(error=ConnectionError("down")))
        resp = price(client)
        assert resp.status_code == 500
        assert resp.json()["detail"] == "Unable to load shipping configuration"

    def test_config_error_is_500(self, client_for):
        client = client_for(source=StubTableSource(error=ShippingConfigError("GOOGLE_SHEETS_ID environment variable is not set")))
        resp = price(client)
        assert resp.status_code == 500
        assert "GOOGLE_SHEETS_ID" in resp.json()["detail"]


def test_config_listing(client):
    body = client.get("/api/v1/shipping/config").json()
    assert body["currency"] == "VND"
    assert body["default_method"] == "standard"
    assert body["supported_methods"] == ["standard", "express"]
    assert body["total_rules"] == 2
    assert body["rules"][0]["row_index"] == 2
    assert body["rules"][1]["district"] == "D1"
    cache = body["cache"]
    assert cache["ttl_ms"] == 60_000
    assert cache["total_rules"] == 2
    assert cache["last_loaded_at"] is not None
    assert cache["expires_at"] > cache["last_loaded_at"]


def test_country_listing(client):
    body = client.get("/api/v1/shipping/countries").json()
    assert body["total"] == 2
    assert body["countries"][0] == {
        "country_code": "VN",
        "label": "Vietnam",
        "currency": "VND",
        "shipping_cost": 30000.0,
        "tax_rate": 0.1,
        "free_shipping_threshold": 500000.0,
    }


def test_reload_forces_fetch(make_service):
    source = StubTableSource({RULES_RANGE: [["VN", "", "", "standard", "0", "5", "1"]]})
    client = TestClient(create_app(service=make_service(source=source)))

    client.get("/api/v1/shipping/config")
    resp = client.post("/api/v1/shipping/config/reload")

    assert resp.status_code == 204
    assert resp.content == b""
    assert source.fetch_count() == 2


def test_reload_failure_is_500(client_for):
    client = client_for(source=StubTableSource(error=ConnectionError("down")))
    assert client.post("/api/v1/shipping/config/reload").status_code == 500
