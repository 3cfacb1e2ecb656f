# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""HTTP error rendering.

Every error leaves the API as::

    {"success": false, "error": "<message>", "code": "<machine code>"}

Routers raise APIError (or plain HTTPException, whose code is derived from
the status). Domain exceptions that escape a router are caught by the
handlers registered in register_exception_handlers().
"""

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.domains.auth.service import (
    AccountInactiveError,
    AccountSuspendedError,
    AuthError,
    DuplicateUserError,
    InvalidCredentialsError,
    InvalidTenantError,
    LicenseExpiredError,
    TokenRefreshError,
)
from src.domains.authorization.gates import AuthorizationError
from src.infrastructure.database.repositories import (
    ConstraintViolationError,
    InvalidQueryError,
    InvalidReferenceError,
)

logger = logging.getLogger(__name__)

DEFAULT_CODES: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "bad_request",
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
    status.HTTP_429_TOO_MANY_REQUESTS: "rate_limited",
    status.HTTP_500_INTERNAL_SERVER_ERROR: "internal_error",
    status.HTTP_503_SERVICE_UNAVAILABLE: "service_unavailable",
}

# Auth service failures that are not plain 400 bad_request.
_AUTH_ERROR_CODES: dict[type[AuthError], tuple[int, str]] = {
    InvalidTenantError: (status.HTTP_401_UNAUTHORIZED, "invalid_tenant"),
    LicenseExpiredError: (status.HTTP_401_UNAUTHORIZED, "license_expired"),
    InvalidCredentialsError: (status.HTTP_401_UNAUTHORIZED, "invalid_credentials"),
    AccountSuspendedError: (status.HTTP_401_UNAUTHORIZED, "account_suspended"),
    AccountInactiveError: (status.HTTP_401_UNAUTHORIZED, "account_inactive"),
    TokenRefreshError: (status.HTTP_401_UNAUTHORIZED, "invalid_token"),
    DuplicateUserError: (status.HTTP_400_BAD_REQUEST, "duplicate_user"),
}


class APIError(HTTPException):
    """HTTPException with a machine-readable code.

    Attributes:
        code: Stable error code sent to the client.
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        code: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.code = code or DEFAULT_CODES.get(status_code, "error")


def auth_http_error(error: AuthError) -> APIError:
    """Translate an auth service failure into its HTTP form."""
    for error_type, (status_code, code) in _AUTH_ERROR_CODES.items():
        if isinstance(error, error_type):
            return APIError(status_code, str(error), code)
    return APIError(status.HTTP_400_BAD_REQUEST, str(error), "bad_request")


def not_found(resource: str) -> APIError:
    return APIError(status.HTTP_404_NOT_FOUND, f"{resource} not found", "not_found")


def error_body(message: str, code: str) -> dict[str, object]:
    return {"success": False, "error": message, "code": code}


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = getattr(exc, "code", None) or DEFAULT_CODES.get(exc.status_code, "error")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail), code),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed input as 400 with the failing fields."""
    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    body = error_body("Validation failed", "validation_error")
    body["details"] = details
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)


async def authorization_exception_handler(request: Request, exc: AuthorizationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content=error_body("Insufficient permissions", "forbidden"),
    )


async def invalid_query_exception_handler(request: Request, exc: InvalidQueryError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(str(exc), "bad_request"),
    )


async def constraint_exception_handler(request: Request, exc: ConstraintViolationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(str(exc), "validation_error"),
    )


async def reference_exception_handler(request: Request, exc: InvalidReferenceError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(str(exc), "bad_request"),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error", "internal_error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error renderers on an application."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(AuthorizationError, authorization_exception_handler)
    app.add_exception_handler(InvalidQueryError, invalid_query_exception_handler)
    app.add_exception_handler(ConstraintViolationError, constraint_exception_handler)
    app.add_exception_handler(InvalidReferenceError, reference_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
