"""Error envelope produced by the global handler for each failure family.

A small app wired like ``main.app`` raises each kind of error; the handler's
view of ``ENVIRONMENT`` is swapped per test.
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError

import core.error_handler as error_handler
from core.exceptions import PlanNotFoundError, SlotValidationError
from core.middleware import CORRELATION_HEADER, CorrelationIdMiddleware
from services.grocery.exceptions import FetchFailure, GroceryListError, WriteFailure


class SlotIn(BaseModel):
    meal_type: str = Field(pattern="^(lunch|dinner)$")
    servings: float = Field(gt=0)


def _raiser(exc: Exception):
    async def endpoint():
        raise exc

    return endpoint


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(error_handler.ExceptionNormalizationMiddleware)
    app.add_middleware(CorrelationIdMiddleware)
    for exc_type in (HTTPException, RequestValidationError):
        app.add_exception_handler(exc_type, error_handler.global_exception_handler)

    raisers = {
        "/missing-plan": PlanNotFoundError("Meal plan 123 not found"),
        "/bad-slot": SlotValidationError("Cook slots require a recipe"),
        "/fetch-failed": FetchFailure("Could not load recipe ingredients"),
        "/write-failed": WriteFailure("Could not save the new grocery list"),
        "/grocery-other": GroceryListError("Bucket collision", "bucket_conflict"),
        "/duplicate": IntegrityError("INSERT", {}, Exception("duplicate key")),
        "/boom": RuntimeError("Exploded with secret=should_not_leak"),
        "/teapot": HTTPException(status_code=418, detail="Short and stout"),
    }
    for path, exc in raisers.items():
        app.add_api_route(path, _raiser(exc), methods=["GET"])

    @app.post("/slots")
    async def create_slot(slot: SlotIn):  # pragma: no cover - rejected before
        return slot.model_dump()

    return app


@pytest.fixture
def client_for(monkeypatch):
    def make(environment: str) -> TestClient:
        settings = SimpleNamespace(ENVIRONMENT=environment)
        monkeypatch.setattr(error_handler, "get_settings", lambda: settings)
        return TestClient(_app())

    return make


class TestValidation:
    def test_production_hides_field_errors(self, client_for):
        resp = client_for("production").post(
            "/slots", json={"meal_type": "brunch", "servings": 0}
        )
        assert resp.status_code == 422
        error = resp.json()["error"]
        assert error["type"] == "validation_error"
        assert "validation_errors" not in error

    def test_development_lists_each_field_error(self, client_for):
        resp = client_for("development").post(
            "/slots", json={"meal_type": "brunch", "servings": 0}
        )
        assert resp.status_code == 422
        assert len(resp.json()["error"]["validation_errors"]) == 2


class TestDomainErrors:
    def test_unknown_plan_is_404(self, client_for):
        resp = client_for("production").get("/missing-plan")
        body = resp.json()
        assert resp.status_code == 404
        assert body["error"]["type"] == "not_found"
        assert body["message"] == "The requested resource was not found"

    def test_slot_rule_keeps_its_message(self, client_for):
        resp = client_for("production").get("/bad-slot")
        body = resp.json()
        assert resp.status_code == 400
        assert body["error"]["type"] == "domain_error"
        assert body["message"] == "Cook slots require a recipe"

    def test_integrity_violation_is_409(self, client_for):
        resp = client_for("production").get("/duplicate")
        assert resp.status_code == 409
        assert resp.json()["error"]["type"] == "integrity_error"


class TestGroceryStoreFailures:
    def test_fetch_failure_is_502_without_detail_in_production(self, client_for):
        resp = client_for("production").get("/fetch-failed")
        body = resp.json()
        assert resp.status_code == 502
        assert body["error"] == {
            "correlation_id": body["error"]["correlation_id"],
            "type": "fetch_failed",
        }
        assert body["message"] == "Failed to load grocery list data"

    def test_write_failure_is_500_with_detail_in_development(self, client_for):
        resp = client_for("development").get("/write-failed")
        body = resp.json()
        assert resp.status_code == 500
        assert body["error"]["type"] == "write_failed"
        assert body["error"]["details"] == {
            "detail": "Could not save the new grocery list"
        }

    def test_other_grocery_errors_use_their_code(self, client_for):
        resp = client_for("production").get("/grocery-other")
        body = resp.json()
        assert resp.status_code == 500
        assert body["error"]["type"] == "bucket_conflict"
        assert body["message"] == "Bucket collision"


class TestUnhandled:
    def test_production_body_is_generic(self, client_for):
        resp = client_for("production").get("/boom")
        body = resp.json()
        assert resp.status_code == 500
        assert body["error"]["type"] == "internal_server_error"
        assert "traceback" not in body["error"]
        assert "should_not_leak" not in resp.text

    def test_development_includes_traceback(self, client_for):
        resp = client_for("development").get("/boom")
        error = resp.json()["error"]
        assert error["exception_type"] == "RuntimeError"
        assert "RuntimeError" in error["traceback"]


def test_http_exception_keeps_its_status(client_for):
    resp = client_for("production").get("/teapot")
    assert resp.status_code == 418
    assert resp.json()["error"] == {
        "correlation_id": resp.headers[CORRELATION_HEADER],
        "type": "http_error",
    }


def test_incoming_correlation_id_is_reused(client_for):
    resp = client_for("production").get(
        "/missing-plan", headers={CORRELATION_HEADER: "cid-123"}
    )
    assert resp.headers[CORRELATION_HEADER] == "cid-123"
    assert resp.json()["error"]["correlation_id"] == "cid-123"
