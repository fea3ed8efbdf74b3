"""
Error handling service for consistent error response formatting and logging.
Every failure leaves the API as ``{"error": {code, message, timestamp, request_id, details?}}``.
"""

from datetime import datetime, timezone
from typing import Dict, Any, Optional, List
from fastapi import Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from rentals.utils.exceptions import APIException, ValidationError, ReconciliationError
import logging
import uuid

logger = logging.getLogger(__name__)


class ErrorHandlerService:
    """
    Formats and logs errors consistently across the application.
    """

    @staticmethod
    def format_error_response(
        error_code: str,
        message: str,
        details: Optional[List[Dict[str, Any]]] = None,
        request_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Format error response in a consistent structure.

        Args:
            error_code: Error code identifier
            message: Human-readable error message
            details: Optional list of detailed error information
            request_id: Optional request identifier for tracking

        Returns:
            Formatted error response dictionary
        """
        response = {
            "error": {
                "code": error_code,
                "message": message,
                "timestamp": ErrorHandlerService._get_current_timestamp(),
                "request_id": request_id,
            }
        }

        if details:
            response["error"]["details"] = details

        return response

    @staticmethod
    def handle_api_exception(
        exception: APIException,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Handle custom API exceptions with structured response."""
        request_id = ErrorHandlerService._request_id(request)
        path = request.url.path if request else None

        if isinstance(exception, ReconciliationError):
            logger.error(
                f"Reconciliation required [{request_id}]: booking {exception.booking_id}, "
                f"transaction {exception.transaction_id}",
                extra={"request_id": request_id, "path": path, "error_code": exception.error_code}
            )
        elif exception.status_code >= 500:
            logger.error(
                f"API Exception [{request_id}]: {exception.error_code} - {exception.detail}",
                extra={"request_id": request_id, "path": path, "status_code": exception.status_code}
            )
        else:
            logger.warning(
                f"API Exception [{request_id}]: {exception.error_code} - {exception.detail}",
                extra={"request_id": request_id, "path": path, "status_code": exception.status_code}
            )

        details = exception.field_errors if isinstance(exception, ValidationError) else None

        error_response = ErrorHandlerService.format_error_response(
            error_code=exception.error_code or "API_ERROR",
            message=exception.detail,
            details=details,
            request_id=request_id
        )

        return JSONResponse(
            status_code=exception.status_code,
            content=error_response,
            headers=exception.headers
        )

    @staticmethod
    def handle_validation_error(
        exception: RequestValidationError,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Handle request validation errors with detailed field information."""
        request_id = ErrorHandlerService._request_id(request)

        validation_details = []
        for error in exception.errors():
            field_path = " -> ".join(str(loc) for loc in error["loc"] if loc != "body")
            validation_details.append({
                "field": field_path or None,
                "message": error["msg"],
                "type": error["type"],
                "input": error.get("input")
            })

        logger.warning(
            f"Validation Error [{request_id}]: {len(validation_details)} field errors",
            extra={"request_id": request_id, "path": request.url.path if request else None}
        )

        error_response = ErrorHandlerService.format_error_response(
            error_code="VALIDATION_ERROR",
            message="Request validation failed",
            details=validation_details,
            request_id=request_id
        )

        return JSONResponse(status_code=422, content=jsonable_encoder(error_response))

    @staticmethod
    def handle_database_error(
        exception: SQLAlchemyError,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Handle database errors that escaped the service layer."""
        request_id = ErrorHandlerService._request_id(request)

        if isinstance(exception, IntegrityError):
            status_code = 409
            message = "Data integrity constraint violation"
        else:
            status_code = 500
            message = "Database operation failed"

        logger.error(
            f"Database Error [{request_id}]: {type(exception).__name__} - {exception}",
            extra={"request_id": request_id, "path": request.url.path if request else None},
            exc_info=True
        )

        error_response = ErrorHandlerService.format_error_response(
            error_code="PERSISTENCE_ERROR",
            message=message,
            request_id=request_id
        )
        return JSONResponse(status_code=status_code, content=error_response)

    @staticmethod
    def handle_http_exception(
        exception: HTTPException,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Handle framework HTTP exceptions (404 routes, 405 methods, ...)."""
        request_id = ErrorHandlerService._request_id(request)

        logger.warning(
            f"HTTP Exception [{request_id}]: {exception.status_code} - {exception.detail}",
            extra={"request_id": request_id, "path": request.url.path if request else None}
        )

        error_response = ErrorHandlerService.format_error_response(
            error_code=f"HTTP_{exception.status_code}",
            message=str(exception.detail),
            request_id=request_id
        )

        return JSONResponse(
            status_code=exception.status_code,
            content=error_response,
            headers=getattr(exception, "headers", None)
        )

    @staticmethod
    def handle_unexpected_error(
        exception: Exception,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Handle unexpected errors without exposing internals."""
        request_id = ErrorHandlerService._request_id(request)

        logger.error(
            f"Unexpected Error [{request_id}]: {type(exception).__name__} - {exception}",
            extra={"request_id": request_id, "path": request.url.path if request else None},
            exc_info=exception
        )

        error_response = ErrorHandlerService.format_error_response(
            error_code="INTERNAL_SERVER_ERROR",
            message="An unexpected error occurred. Please try again later.",
            request_id=request_id
        )
        return JSONResponse(status_code=500, content=error_response)

    @staticmethod
    def _request_id(request: Optional[Request]) -> str:
        """Request id stamped by the middleware, or a fresh one."""
        if request is not None:
            request_id = getattr(request.state, "request_id", None)
            if request_id:
                return request_id
        return str(uuid.uuid4())[:8]

    @staticmethod
    def _get_current_timestamp() -> str:
        return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
