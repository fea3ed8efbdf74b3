"""
Tests for error response formatting and the request context middleware.
"""

import json
import pytest
from unittest.mock import Mock

from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError, OperationalError

from rentals.middleware.request_context import RequestContextMiddleware
from rentals.services.error_handler import ErrorHandlerService
from rentals.utils.exceptions import (
    APIException,
    AuthError,
    BookingStateError,
    PersistenceError,
    ReconciliationError,
    ValidationError,
    persistence_error
)


class TestErrorHandlerService:
    """Test error handler service functionality."""

    def test_format_error_response(self):
        response = ErrorHandlerService.format_error_response(
            error_code="TEST_ERROR",
            message="Test error message",
            details=[{"field": "test", "message": "Test field error"}],
            request_id="test123"
        )

        assert response["error"]["code"] == "TEST_ERROR"
        assert response["error"]["message"] == "Test error message"
        assert response["error"]["request_id"] == "test123"
        assert response["error"]["details"][0]["field"] == "test"
        assert response["error"]["timestamp"].endswith("Z")

    def test_details_omitted_when_empty(self):
        response = ErrorHandlerService.format_error_response("X", "msg")
        assert "details" not in response["error"]

    def test_handle_validation_exception_with_field_errors(self):
        exception = ValidationError(
            "Invalid stay", field_errors=[{"field": "check_out", "message": "Check-out must be after check-in"}]
        )

        response = ErrorHandlerService.handle_api_exception(exception)

        assert response.status_code == 422
        data = json.loads(response.body)
        assert data["error"]["code"] == "VALIDATION_ERROR"
        assert data["error"]["details"][0]["field"] == "check_out"

    def test_auth_error_keeps_www_authenticate_header(self):
        response = ErrorHandlerService.handle_api_exception(AuthError("Invalid token"))

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_state_error_is_conflict(self):
        response = ErrorHandlerService.handle_api_exception(BookingStateError("cancelled", "confirmed"))

        assert response.status_code == 409
        assert "cancelled" in json.loads(response.body)["error"]["message"]

    def test_reconciliation_error_is_logged_as_error(self, caplog):
        exception = ReconciliationError("b-1", "pay_1")

        with caplog.at_level("ERROR"):
            response = ErrorHandlerService.handle_api_exception(exception)

        assert response.status_code == 500
        assert json.loads(response.body)["error"]["code"] == "RECONCILIATION_ERROR"
        assert any("Reconciliation required" in record.message for record in caplog.records)

    def test_handle_validation_error(self):
        mock_error = Mock()
        mock_error.errors.return_value = [
            {"loc": ("body", "check_in"), "msg": "Field required", "type": "missing", "input": None},
            {"loc": ("query", "page"), "msg": "Input should be greater than 0", "type": "greater_than", "input": "0"},
        ]

        response = ErrorHandlerService.handle_validation_error(mock_error)

        data = json.loads(response.body)
        assert response.status_code == 422
        assert [d["field"] for d in data["error"]["details"]] == ["check_in", "query -> page"]

    def test_handle_database_error(self):
        integrity = ErrorHandlerService.handle_database_error(IntegrityError("stmt", {}, Exception("dup")))
        operational = ErrorHandlerService.handle_database_error(OperationalError("stmt", {}, Exception("down")))

        assert integrity.status_code == 409
        assert operational.status_code == 500
        assert json.loads(operational.body)["error"]["code"] == "PERSISTENCE_ERROR"

    def test_handle_unexpected_error(self):
        response = ErrorHandlerService.handle_unexpected_error(RuntimeError("boom"))

        data = json.loads(response.body)
        assert response.status_code == 500
        assert data["error"]["code"] == "INTERNAL_SERVER_ERROR"
        assert "boom" not in data["error"]["message"]


class TestPersistenceErrorTranslation:

    def test_integrity_maps_to_conflict(self):
        error = persistence_error(IntegrityError("stmt", {}, Exception("dup")), "save payment")

        assert isinstance(error, PersistenceError)
        assert error.status_code == 409

    def test_other_errors_map_to_500(self):
        error = persistence_error(OperationalError("stmt", {}, Exception("down")), "save payment")

        assert error.status_code == 500
        assert error.detail == "Failed to save payment"


def _app(max_request_size: int = 1024) -> FastAPI:
    app = FastAPI()
    app.add_middleware(
        RequestContextMiddleware, max_request_size=max_request_size, enable_request_logging=False
    )

    @app.exception_handler(APIException)
    async def api_exception_handler(request, exc):
        return ErrorHandlerService.handle_api_exception(exc, request)

    @app.get("/ok")
    async def ok():
        return {"ok": True}

    @app.post("/echo")
    async def echo(payload: dict):
        return payload

    @app.get("/fail")
    async def fail():
        raise ValidationError("Nope")

    @app.get("/teapot")
    async def teapot():
        raise HTTPException(status_code=418, detail="I'm a teapot")

    return app


class TestRequestContextMiddleware:

    def test_generates_request_id(self):
        response = TestClient(_app()).get("/ok")

        assert response.status_code == 200
        assert len(response.headers["X-Request-ID"]) == 8
        assert float(response.headers["X-Process-Time"]) >= 0

    def test_error_body_carries_request_id(self):
        response = TestClient(_app()).get("/fail", headers={"X-Request-ID": "req-42"})

        assert response.status_code == 422
        assert response.json()["error"]["request_id"] == "req-42"
        assert response.headers["X-Request-ID"] == "req-42"

    def test_rejects_oversized_body(self):
        response = TestClient(_app(max_request_size=16)).post("/echo", json={"text": "x" * 100})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "BAD_REQUEST"

    def test_small_body_passes(self):
        response = TestClient(_app(max_request_size=1024)).post("/echo", json={"text": "hi"})
        assert response.json() == {"text": "hi"}

    @pytest.mark.parametrize("path,status", [("/teapot", 418), ("/missing", 404)])
    def test_framework_errors_pass_through(self, path, status):
        response = TestClient(_app()).get(path)
        assert response.status_code == status
