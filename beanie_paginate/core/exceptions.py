"""Library errors and their JSON rendering for FastAPI apps."""

from typing import Any

from fastapi import Request, status
from fastapi.responses import ORJSONResponse

from beanie_paginate.core.logging import get_logger

log = get_logger(__name__)


class PaginationError(Exception):
    """Base error. ``details`` carries what was rejected (field errors, the bad select, ...)."""

    def __init__(
        self,
        message: str,
        code: str = "PAGINATION_ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "code": self.code, "details": self.details}


class InvalidOptionsError(PaginationError):
    """Options that fail validation: bad limit/page/offset, malformed sort or select."""

    def __init__(self, message: str = "Invalid pagination options", details: dict[str, Any] | None = None):
        super().__init__(message, code="INVALID_OPTIONS", status_code=status.HTTP_400_BAD_REQUEST, details=details)


class UnsupportedOperationError(PaginationError):
    """A valid option the chosen document source cannot honour."""

    def __init__(self, message: str = "Unsupported operation", details: dict[str, Any] | None = None):
        super().__init__(message, code="UNSUPPORTED", status_code=status.HTTP_400_BAD_REQUEST, details=details)


def error_response(request: Request, exc: PaginationError) -> ORJSONResponse:
    body: dict[str, Any] = {"error": exc.to_dict()}
    request_id = getattr(request.state, "request_id", None)
    if request_id is not None:
        body["request_id"] = request_id
    return ORJSONResponse(status_code=exc.status_code, content=body)


async def pagination_exception_handler(request: Request, exc: PaginationError) -> ORJSONResponse:
    log.warning("pagination_error", code=exc.code, path=request.url.path, details=exc.details)
    return error_response(request, exc)
