"""Tests for purchase API routes."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from sweepbuy.api.routes.purchase import get_controller, router as purchase_router
from sweepbuy.purchase.controller import PurchaseController
from tests.fakes import BUYER, CONTRACT, incomplete


def create_test_app(controller) -> FastAPI:
    """Create a minimal FastAPI app wired to the given controller."""
    app = FastAPI()
    app.include_router(purchase_router)
    app.dependency_overrides[get_controller] = lambda: controller
    return app


def wallet_payload(**overrides) -> dict:
    payload = {
        "connected": True,
        "active_network_id": 4,
        "account_address": BUYER,
        "signer_address": BUYER,
    }
    payload.update(overrides)
    return payload


class TestListingRoutes:
    """Tests for loading and selecting items."""

    @pytest.fixture
    def client(self, controller):
        """Create a test client."""
        return TestClient(create_test_app(controller))

    def test_load_items(self, client):
        """Should list only priced tokens."""
        response = client.post("/api/purchase/items/load", json={})

        assert response.status_code == 200
        data = response.json()
        assert data["collection_contract"] == CONTRACT
        assert [item["item_id"] for item in data["items"]] == ["1", "3"]
        assert data["items"][0]["token"] == f"{CONTRACT}:1"
        assert data["selected"] == []
        assert data["phase"] == "idle"

    def test_load_other_collection(self, client, catalog):
        response = client.post(
            "/api/purchase/items/load", json={"collection_contract": "0xOther"}
        )

        assert response.status_code == 200
        assert catalog.calls == ["0xOther"]

    def test_get_items_before_load(self, client):
        response = client.get("/api/purchase/items")

        assert response.status_code == 200
        assert response.json()["items"] == []

    def test_toggle(self, client):
        client.post("/api/purchase/items/load", json={})

        response = client.post("/api/purchase/selection/3/toggle")
        assert response.status_code == 200
        assert response.json()["selected"] == ["3"]

        response = client.post("/api/purchase/selection/3/toggle")
        assert response.json()["selected"] == []

    def test_toggle_unknown_item(self, client):
        """Should return 404 for a token that is not listed."""
        client.post("/api/purchase/items/load", json={})

        response = client.post("/api/purchase/selection/2/toggle")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "UNKNOWN_ITEM"

    def test_clear_selection(self, client):
        client.post("/api/purchase/items/load", json={})
        client.post("/api/purchase/selection/1/toggle")
        client.post("/api/purchase/selection/3/toggle")

        response = client.delete("/api/purchase/selection")

        assert response.status_code == 200
        assert response.json()["selected"] == []


class TestSubmitRoutes:
    """Tests for submitting a purchase."""

    @pytest.fixture
    def client(self, controller):
        """Create a test client."""
        return TestClient(create_test_app(controller))

    def test_submit_with_empty_selection(self, client, process):
        client.post("/api/purchase/items/load", json={})

        response = client.post("/api/purchase/submit", json=wallet_payload())

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "EMPTY_SELECTION"
        assert process.calls == []

    def test_submit_runs_purchase(self, client, controller, process):
        """Background submission completes before the response is consumed."""
        process.script = [("steps", [incomplete("Approving")]), ("success",)]
        client.post("/api/purchase/items/load", json={})
        client.post("/api/purchase/selection/1/toggle")

        response = client.post("/api/purchase/submit", json=wallet_payload())

        assert response.status_code == 200
        assert response.json() == {"session_id": controller.session.id, "status": "started"}
        assert len(process.calls) == 1

        status = client.get("/api/purchase/status").json()
        assert status["phase"] == "succeeded"
        assert status["messages"] == ["InProgress: Approving", "Success"]
        assert status["progress_text"] == "Success"
        assert status["request_items"] == [f"{CONTRACT}:1"]
        assert status["loading"] is False
        assert status["completed_at"] is not None

    def test_submit_on_wrong_network(self, client, process):
        client.post("/api/purchase/items/load", json={})
        client.post("/api/purchase/selection/1/toggle")

        response = client.post(
            "/api/purchase/submit", json=wallet_payload(active_network_id=1)
        )

        assert response.status_code == 200
        assert process.calls == []
        status = client.get("/api/purchase/status").json()
        assert status["error_code"] == "WRONG_NETWORK"
        assert "wrong network" in status["error_text"]
        assert status["phase"] == "idle"

    def test_submit_without_signer_is_logged(self, client, controller, process):
        """A missing signer ends the background task without a purchase."""
        client.post("/api/purchase/items/load", json={})
        client.post("/api/purchase/selection/1/toggle")

        response = client.post(
            "/api/purchase/submit", json=wallet_payload(signer_address=None)
        )

        assert response.status_code == 200
        assert process.calls == []
        assert not controller.is_submitting

    def test_execution_error_reported_in_status(self, client, process):
        process.script = [("error", RuntimeError("Insufficient funds"))]
        client.post("/api/purchase/items/load", json={})
        client.post("/api/purchase/selection/3/toggle")

        client.post("/api/purchase/submit", json=wallet_payload())

        status = client.get("/api/purchase/status").json()
        assert status["phase"] == "failed"
        assert status["progress_text"] == "Error: Insufficient funds"

    def test_reload_while_submitting_conflicts(self, client, catalog, monkeypatch):
        client.post("/api/purchase/items/load", json={})
        monkeypatch.setattr(PurchaseController, "is_submitting", property(lambda self: True))

        response = client.post("/api/purchase/items/load", json={})

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "SUBMISSION_IN_PROGRESS"
        assert catalog.calls == [CONTRACT]
