"""Tests for the HTTP surface."""

import json
import runpy

import pytest
import uvicorn
from fastapi.testclient import TestClient

from conftest import FakeGateway
from store_assistant import main


class ExplodingPipeline:
    def handle(self, request):
        raise RuntimeError("boom")


@pytest.fixture
def client():
    return TestClient(main.app)


class TestChatEndpoint:
    def test_missing_business_id(self, client):
        response = client.post("/chat", json={"message": "hi", "history": []})
        assert response.status_code == 400
        assert response.json()["detail"] == "businessId is required"

    def test_success_payload_is_camel_case(self, client, monkeypatch, make_pipeline):
        gateway = FakeGateway(json.dumps({"action": {
            "type": "price_update", "changeAmount": 100, "filterWidth": "200",
        }}))
        monkeypatch.setattr(main, "pipeline", make_pipeline(gateway))
        response = client.post("/chat", json={
            "message": "raise Venice 200 price by 100",
            "businessId": "biz-1",
            "history": [{"role": "user", "content": "hello"}],
        })
        assert response.status_code == 200
        action = response.json()["action"]
        assert action["type"] == "bulk_update_price"
        assert action["status"] == "pending"
        assert action["details"]["variations"][0]["variationId"] == 1
        assert action["details"]["variations"][0]["newPrice"] == 1100

    def test_message_only_omits_action(self, client, monkeypatch, make_pipeline):
        gateway = FakeGateway(json.dumps({"message": "Just info"}))
        monkeypatch.setattr(main, "pipeline", make_pipeline(gateway))
        response = client.post("/chat", json={"message": "describe Venice", "businessId": "biz-1"})
        assert response.status_code == 200
        assert response.json() == {"message": "Just info"}

    def test_store_not_connected_is_success_class(self, client, monkeypatch, make_pipeline):
        monkeypatch.setattr(main, "pipeline", make_pipeline(FakeGateway("{}"), connected=False))
        response = client.post("/chat", json={"message": "raise Venice", "businessId": "biz-1"})
        assert response.status_code == 200
        assert "not connected" in response.json()["message"]

    def test_unexpected_failure(self, client, monkeypatch):
        monkeypatch.setattr(main, "pipeline", ExplodingPipeline())
        response = client.post("/chat", json={"message": "hi", "businessId": "biz-1"})
        assert response.status_code == 500
        assert response.json() == {"error": "boom"}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_module_entry_serves_app(monkeypatch):
    served = {}
    monkeypatch.setenv("PORT", "9123")
    monkeypatch.setattr(uvicorn, "run", lambda app, host, port: served.update(app=app, port=port))
    runpy.run_module("store_assistant.main", run_name="__main__")
    assert served["port"] == 9123
    assert served["app"].title == "Store Assistant"
