"""
Custom exceptions and error handlers for consistent error responses.

Every failure leaves the API as the same envelope:
    {"success": false, "message": ..., "error_code": ..., "data": {...}}
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict, Optional

logger = logging.getLogger("tollway.errors")


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = 500,
        data: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.data = data or {}
        super().__init__(message)

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "success": False,
            "message": self.message,
            "error_code": self.error_code,
        }
        if self.data:
            payload["data"] = self.data
        return payload


# Toll processing errors

class GateNotFoundError(AppException):
    """Raised when a scan references a toll gate that does not exist."""

    def __init__(self, gate_ref: Any):
        super().__init__(
            message="Toll gate not found",
            error_code="GATE_NOT_FOUND",
            status_code=status.HTTP_404_NOT_FOUND,
            data={"toll_gate": gate_ref}
        )


class GateUnavailableError(AppException):
    """Raised when the gate is inactive or its hardware is not operational."""

    def __init__(self, message: str = "Toll gate is not operational", data: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="GATE_UNAVAILABLE",
            status_code=status.HTTP_409_CONFLICT,
            data=data
        )


class RfidNotFoundError(AppException):
    """Raised when no active vehicle carries the scanned tag."""

    def __init__(self):
        super().__init__(
            message="RFID tag not registered or vehicle inactive",
            error_code="RFID_NOT_FOUND",
            status_code=status.HTTP_404_NOT_FOUND
        )


class InsufficientFundsError(AppException):
    """Raised when an account cannot cover a debit."""

    def __init__(self, required=None, available=None, data: Dict[str, Any] = None):
        self.required = required
        self.available = available
        super().__init__(
            message="Insufficient balance",
            error_code="INSUFFICIENT_BALANCE",
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            data=data
        )


class DuplicateReferenceError(AppException):
    """Raised when a ledger reference token has already been used."""

    def __init__(self, reference: str, transaction_id: Optional[int] = None):
        self.reference = reference
        self.transaction_id = transaction_id
        super().__init__(
            message="Reference has already been processed",
            error_code="DUPLICATE_REFERENCE",
            status_code=status.HTTP_409_CONFLICT,
            data={"reference": reference}
        )


class InternalPersistenceError(AppException):
    """Raised when the settlement could not be persisted."""

    def __init__(self, message: str = "Transaction failed - Please try again"):
        super().__init__(
            message=message,
            error_code="TRANSACTION_FAILED",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


class GatewayTimeoutError(AppException):
    """Raised when a passage could not be decided in time."""

    def __init__(self):
        super().__init__(
            message="Passage processing timed out",
            error_code="GATEWAY_TIMEOUT",
            status_code=status.HTTP_504_GATEWAY_TIMEOUT
        )


class ScanValidationError(AppException):
    """Raised when a scan report fails domain validation."""

    def __init__(self, errors: list):
        super().__init__(
            message="Invalid request data",
            error_code="VALIDATION_ERROR",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            data={"errors": errors}
        )


class InvalidAmountError(AppException):
    """Raised for non-positive ledger amounts."""

    def __init__(self, message: str = "Amount must be greater than zero"):
        super().__init__(
            message=message,
            error_code="INVALID_AMOUNT",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
        )


# Generic errors

class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="NOT_FOUND",
            status_code=status.HTTP_404_NOT_FOUND,
            data={"resource": resource, "id": resource_id}
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    error_code_map = {
        400: "BAD_REQUEST",
        401: "UNAUTHORIZED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        409: "CONFLICT",
        500: "INTERNAL_SERVER_ERROR"
    }

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": exc.detail,
            "error_code": error_code_map.get(exc.status_code, "UNKNOWN_ERROR"),
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    errors = [
        {"field": ".".join(str(part) for part in err["loc"][1:]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "message": "Invalid request data",
            "error_code": "VALIDATION_ERROR",
            "data": {"errors": errors}
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "message": "An internal server error occurred",
            "error_code": "INTERNAL_SERVER_ERROR",
        }
    )
