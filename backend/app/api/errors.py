"""Exception-to-response translation for the API.

Three kinds of failure are distinguished:

- request validation (guard violations raised as RequestValidationFailed,
  or FastAPI's own RequestValidationError for missing or malformed
  parameters) becomes a 400 whose message lists ``<field>: <rule>`` pairs;
- InvalidArgumentError from the service layer becomes a 400 carrying the
  error text;
- anything else becomes a 500 with a fixed message; the detail is logged
  server-side only.

Every response uses the ErrorResponse shape. Lookups that find nothing are
not errors and never reach these handlers.
"""

from __future__ import annotations

import dataclasses
import http
import logging
from typing import TYPE_CHECKING

import fastapi
from fastapi import exceptions, responses, status

from app.api import schemas
from app.services import map_layers as map_layer_service

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "An unexpected error occurred"


@dataclasses.dataclass(frozen=True)
class Violation:
    """A single failed request rule, e.g. ``latitude: Latitude must be <= 90``."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class RequestValidationFailed(Exception):
    """Raised by router guard checks when a request breaks its constraints."""

    def __init__(self, violations: Sequence[Violation]) -> None:
        self.violations = list(violations)
        super().__init__(format_violations(self.violations))


def format_violations(violations: Sequence[Violation]) -> str:
    return ", ".join(str(violation) for violation in violations)


def _violations_from_pydantic(
    exc: exceptions.RequestValidationError,
) -> list[Violation]:
    return [
        Violation(
            field=".".join(str(part) for part in error.get("loc", ())),
            message=str(error.get("msg", "Invalid value")),
        )
        for error in exc.errors()
    ]


def _error_response(
    request: fastapi.Request,
    status_code: int,
    message: str,
) -> responses.JSONResponse:
    payload = schemas.ErrorResponse(
        status=status_code,
        error=http.HTTPStatus(status_code).phrase,
        message=message,
        path=request.url.path,
    )
    return responses.JSONResponse(
        status_code=status_code,
        content=payload.model_dump(),
    )


async def request_validation_failed_handler(
    request: fastapi.Request,
    exc: Exception,
) -> responses.JSONResponse:
    if isinstance(exc, exceptions.RequestValidationError):
        violations = _violations_from_pydantic(exc)
    else:
        violations = getattr(exc, "violations", [])
    message = format_violations(violations)
    logger.warning("Validation error on %s: %s", request.url.path, message)
    return _error_response(request, status.HTTP_400_BAD_REQUEST, message)


async def invalid_argument_handler(
    request: fastapi.Request,
    exc: Exception,
) -> responses.JSONResponse:
    message = str(exc) or "Invalid argument"
    logger.warning("Invalid argument on %s: %s", request.url.path, message)
    return _error_response(request, status.HTTP_400_BAD_REQUEST, message)


async def catch_unhandled_errors(
    request: fastapi.Request,
    call_next: Callable[[fastapi.Request], Awaitable[responses.Response]],
) -> responses.Response:
    """Turn any exception no handler claimed into the uniform 500 payload.

    Installed as HTTP middleware rather than an ``Exception`` handler so the
    response passes back through CORSMiddleware and keeps its headers.
    """
    try:
        return await call_next(request)
    except Exception as exc:
        logger.error(
            "Unhandled error on %s %s",
            request.method,
            request.url.path,
            exc_info=exc,
        )
        return _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            INTERNAL_ERROR_MESSAGE,
        )


def register_exception_handlers(app: fastapi.FastAPI) -> None:
    """Attach the API's error translators to an application.

    Must run before CORSMiddleware is added so CORS wraps the 500 middleware.
    """
    app.add_exception_handler(
        RequestValidationFailed,
        request_validation_failed_handler,
    )
    app.add_exception_handler(
        exceptions.RequestValidationError,
        request_validation_failed_handler,
    )
    app.add_exception_handler(
        map_layer_service.InvalidArgumentError,
        invalid_argument_handler,
    )
    app.middleware("http")(catch_unhandled_errors)
