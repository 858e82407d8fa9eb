"""
Tests for error formatting, exception handlers and the request gate.
"""

import json
import pytest
from httpx import AsyncClient
from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, OperationalError

from maskan.services.error_handler import ErrorHandlerService
from maskan.utils.exceptions import (
    ListingNotFoundError,
    UpstreamFailureError,
    ValidationError,
)
from tests.conftest import auth_headers


def body_of(response) -> dict:
    return json.loads(response.body)


class TestErrorHandlerService:
    """Test ErrorHandlerService formatting."""

    def test_format_error_response(self):
        body = ErrorHandlerService.format_error_response(
            error_code="NOT_FOUND",
            message="Listing not found",
            request_id="abc123"
        )

        assert body["message"] == "Listing not found"
        assert body["code"] == "NOT_FOUND"
        assert body["requestId"] == "abc123"
        assert "timestamp" in body
        assert "details" not in body

    def test_api_exception(self):
        response = ErrorHandlerService.handle_api_exception(ListingNotFoundError("42"))

        assert response.status_code == 404
        assert body_of(response)["message"] == "Listing not found with ID: 42"
        assert body_of(response)["requestId"]

    def test_validation_exception_carries_field_errors(self):
        response = ErrorHandlerService.handle_api_exception(
            ValidationError.for_field("imageMode", "imageMode must be one of: replace, append")
        )

        body = body_of(response)
        assert response.status_code == 400
        assert body["details"] == [
            {"field": "imageMode", "message": "imageMode must be one of: replace, append"}
        ]

    def test_pydantic_error_is_400(self):
        class Sample(BaseModel):
            beds: int

        with pytest.raises(PydanticValidationError) as exc_info:
            Sample.model_validate({"beds": "many"})

        response = ErrorHandlerService.handle_validation_error(exc_info.value)

        body = body_of(response)
        assert response.status_code == 400
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"][0]["field"] == "beds"

    def test_integrity_error_is_400(self):
        error = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: users.email"))

        response = ErrorHandlerService.handle_database_error(error)

        assert response.status_code == 400
        assert body_of(response)["code"] == "INTEGRITY_ERROR"

    def test_other_database_error_is_500(self):
        error = OperationalError("SELECT 1", {}, Exception("connection refused"))

        response = ErrorHandlerService.handle_database_error(error)

        assert response.status_code == 500
        assert "connection refused" not in body_of(response)["message"]

    def test_unexpected_error_hides_details(self):
        response = ErrorHandlerService.handle_unexpected_error(RuntimeError("secret stack detail"))

        assert response.status_code == 500
        assert "secret" not in body_of(response)["message"]

    def test_upstream_failure_is_502(self):
        response = ErrorHandlerService.handle_api_exception(UpstreamFailureError())

        assert response.status_code == 502
        assert body_of(response)["code"] == "UPSTREAM_FAILURE"


class TestApiErrors:
    """Test error bodies produced by the application."""

    async def test_missing_token_is_401(self, async_client: AsyncClient):
        response = await async_client.get("/api/user-listings")

        assert response.status_code == 401
        body = response.json()
        assert body["code"] == "UNAUTHENTICATED"
        assert body["requestId"] == response.headers["X-Request-ID"]

    async def test_invalid_token_is_401(self, async_client: AsyncClient):
        response = await async_client.get("/api/user-listings", headers=auth_headers("garbage"))

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_TOKEN"

    async def test_request_validation_is_400(self, async_client: AsyncClient):
        response = await async_client.post("/api/login", json={"email": "ann@x.com"})

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert any(detail["field"] == "password" for detail in body["details"])

    async def test_unknown_route_uses_error_shape(self, async_client: AsyncClient):
        response = await async_client.get("/api/nowhere")

        assert response.status_code == 404
        assert response.json()["code"] == "HTTP_404"


class TestRequestGate:
    """Test the request gate middleware."""

    async def test_request_id_echoed(self, async_client: AsyncClient):
        response = await async_client.get("/", headers={"X-Request-ID": "trace-me"})

        assert response.status_code == 200
        assert response.headers["X-Request-ID"] == "trace-me"

    async def test_request_id_generated(self, async_client: AsyncClient):
        response = await async_client.get("/")

        assert response.headers["X-Request-ID"]

    async def test_oversize_body_rejected(self, async_client: AsyncClient, app):
        too_big = app.state.settings.max_request_size + 1

        response = await async_client.post(
            "/api/login",
            content=b"{}",
            headers={"Content-Type": "application/json", "Content-Length": str(too_big)},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "REQUEST_TOO_LARGE"

    async def test_health(self, async_client: AsyncClient):
        response = await async_client.get("/health")

        assert response.status_code == 200
        assert response.json()["database"] == "connected"
