"""Error envelope, correlation ids and structured logging for Meal Queue.

Every failure leaves the API as an ``ErrorResponse``. The status code and the
``error.type`` string come from ``_ERROR_RULES``; how much diagnostic detail
rides along depends on ``ENVIRONMENT`` (see ``core.security_config``).
"""

import logging
import sys
import traceback
import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from core.config import get_settings
from core.exceptions import (
    GroceryItemNotFoundError,
    PlanItemNotFoundError,
    PlanNotFoundError,
    PlanValidationError,
    SlotValidationError,
)
from core.security_config import get_allowed_error_fields, is_sensitive_key
from schemas.api import ErrorResponse
from services.grocery.exceptions import FetchFailure, GroceryListError, WriteFailure


_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

REDACTED = "[REDACTED]"


@dataclass(frozen=True, slots=True)
class ErrorRule:
    """How one family of exceptions is reported."""

    status_code: int
    error_type: str
    message: str | None  # None: use str(exc)
    log_level: int = logging.WARNING
    expose_detail: bool = False


# First matching rule wins, so subclasses go before their bases
_ERROR_RULES: tuple[tuple[Any, ErrorRule], ...] = (
    (
        FetchFailure,
        ErrorRule(
            status_code=502,
            error_type="fetch_failed",
            message="Failed to load grocery list data",
            log_level=logging.ERROR,
            expose_detail=True,
        ),
    ),
    (
        WriteFailure,
        ErrorRule(
            status_code=500,
            error_type="write_failed",
            message="Failed to regenerate grocery list",
            log_level=logging.ERROR,
            expose_detail=True,
        ),
    ),
    (
        GroceryListError,
        ErrorRule(500, "grocery_error", None, logging.ERROR, expose_detail=True),
    ),
    (
        PlanNotFoundError | PlanItemNotFoundError | GroceryItemNotFoundError,
        ErrorRule(404, "not_found", "The requested resource was not found"),
    ),
    # Slot and date rule messages describe the request, so they are returned as-is
    (
        PlanValidationError | SlotValidationError,
        ErrorRule(400, "domain_error", None),
    ),
    (
        IntegrityError,
        ErrorRule(
            status_code=409,
            error_type="integrity_error",
            message="A data integrity constraint was violated",
            log_level=logging.ERROR,
        ),
    ),
)


def get_correlation_id() -> str:
    """Return the request's correlation id, minting one when none is bound."""
    current = _correlation_id_var.get()
    if current:
        return current
    minted = str(uuid.uuid4())
    _correlation_id_var.set(minted)
    return minted


def set_correlation_id(correlation_id: str | None) -> None:
    _correlation_id_var.set(correlation_id)


class StructuredLogger:
    """Wraps a stdlib logger; every record carries the correlation id and
    a redacted copy of the keyword fields under ``structured_data``."""

    def __init__(self, logger_name: str):
        self.logger = logging.getLogger(logger_name)

    def _emit(
        self, level: int, message: str, fields: dict[str, Any], exc_info: bool = False
    ) -> None:
        correlation_id = get_correlation_id()
        payload = {
            "correlation_id": correlation_id,
            "message": message,
            **self._sanitize_data(fields),
        }
        # The JSON formatter lifts structured_data into the record itself
        if get_settings().ENVIRONMENT != "production":
            message = f"[{correlation_id}] {message}"
        self.logger.log(
            level, message, extra={"structured_data": payload}, exc_info=exc_info
        )

    def _sanitize_data(self, data: dict[str, Any]) -> dict[str, Any]:
        if not isinstance(data, dict):
            return {}
        return {
            key: REDACTED if is_sensitive_key(key) else self._sanitize_value(value)
            for key, value in data.items()
        }

    def _sanitize_value(self, value: Any) -> Any:
        if isinstance(value, dict):
            return self._sanitize_data(value)
        if isinstance(value, list):
            return [self._sanitize_value(v) for v in value]
        return value

    def log(self, level: int, message: str, **fields: Any) -> None:
        self._emit(level, message, fields)

    def debug(self, message: str, **fields: Any) -> None:
        self._emit(logging.DEBUG, message, fields)

    def info(self, message: str, **fields: Any) -> None:
        self._emit(logging.INFO, message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._emit(logging.WARNING, message, fields)

    def error(self, message: str, **fields: Any) -> None:
        self._emit(logging.ERROR, message, fields)

    def exception(self, message: str, **fields: Any) -> None:
        """Log at ERROR with the active traceback attached."""
        self._emit(logging.ERROR, message, fields, exc_info=True)


structured_logger = StructuredLogger(__name__)


class ExceptionNormalizationMiddleware(BaseHTTPMiddleware):
    """Turn exceptions that escape the route stack into the error envelope."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:  # noqa: BLE001
            return await global_exception_handler(request, exc)


def _build_error_response(
    *,
    correlation_id: str,
    error_type: str,
    message: str,
    environment: str,
    details: dict[str, Any] | None = None,
    traceback_str: str | None = None,
    exception_type: str | None = None,
    validation_errors: Any | None = None,
    status_code: int = 500,
) -> JSONResponse:
    """Assemble the envelope, keeping only fields the environment allows."""
    optional: dict[str, Any] = {
        "details": details or None,
        "traceback": traceback_str or None,
        "exception_type": exception_type or None,
        "validation_errors": validation_errors,
    }
    allowed = get_allowed_error_fields(environment)
    error_body: dict[str, Any] = {"correlation_id": correlation_id, "type": error_type}
    error_body.update(
        (field, value)
        for field, value in optional.items()
        if field in allowed and value is not None
    )
    envelope = ErrorResponse(message=message, error=error_body, success=False)
    return JSONResponse(status_code=status_code, content=envelope.model_dump())


def _match_rule(exc: Exception) -> ErrorRule | None:
    for exc_types, rule in _ERROR_RULES:
        if isinstance(exc, exc_types):
            return rule
    return None


def _http_error(
    exc: StarletteHTTPException, correlation_id: str, environment: str
) -> JSONResponse:
    return _build_error_response(
        correlation_id=correlation_id,
        error_type="http_error",
        message="An HTTP error occurred",
        environment=environment,
        details={"detail": exc.detail},
        exception_type=type(exc).__name__,
        status_code=exc.status_code,
    )


def _validation_error(
    exc: ValidationError | RequestValidationError,
    correlation_id: str,
    environment: str,
) -> JSONResponse:
    # ctx may hold the raw ValueError, which JSONResponse cannot serialize
    errors = jsonable_encoder(exc.errors())
    structured_logger.warning("Request validation failed", validation_errors=errors)
    return _build_error_response(
        correlation_id=correlation_id,
        error_type="validation_error",
        message="Invalid request data provided",
        environment=environment,
        validation_errors=errors,
        status_code=422,
    )


def _unhandled_error(
    exc: Exception, correlation_id: str, environment: str
) -> JSONResponse:
    structured_logger.exception(
        "Unhandled exception", exception_type=type(exc).__name__, error=str(exc)
    )
    return _build_error_response(
        correlation_id=correlation_id,
        error_type="internal_server_error",
        message="An internal error occurred",
        environment=environment,
        traceback_str="".join(traceback.format_exception(exc)).strip(),
        exception_type=type(exc).__name__,
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map any exception to the error envelope.

    A store failure is reported the same way whether the regeneration ran
    silently on load or was asked for explicitly.
    """
    environment = get_settings().ENVIRONMENT
    correlation_id = get_correlation_id()

    if isinstance(exc, StarletteHTTPException):
        return _http_error(exc, correlation_id, environment)
    if isinstance(exc, ValidationError | RequestValidationError):
        return _validation_error(exc, correlation_id, environment)

    rule = _match_rule(exc)
    if rule is None:
        return _unhandled_error(exc, correlation_id, environment)

    detail = exc.message if isinstance(exc, GroceryListError) else str(exc)
    error_type = exc.error_code if isinstance(exc, GroceryListError) else rule.error_type
    structured_logger.log(
        rule.log_level,
        "Request failed",
        error_type=error_type,
        exception_type=type(exc).__name__,
        detail=detail,
    )
    return _build_error_response(
        correlation_id=correlation_id,
        error_type=error_type,
        message=rule.message or detail,
        environment=environment,
        details={"detail": detail} if rule.expose_detail else None,
        status_code=rule.status_code,
    )


def setup_logging() -> None:
    """Install a single stdout handler on the root logger.

    Production logs are JSON lines via python-json-logger; other environments
    use a plain text format. Calling this twice is a no-op.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    environment = get_settings().ENVIRONMENT
    level = logging.DEBUG if environment == "development" else logging.INFO

    formatter: logging.Formatter
    if environment == "production":
        from pythonjsonlogger.jsonlogger import JsonFormatter  # type: ignore

        formatter = JsonFormatter(fmt="%(asctime)s %(levelname)s %(name)s %(message)s")
    else:
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)-7s %(name)s | %(message)s"
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.setLevel(level)
    root.setLevel(level)
    root.addHandler(handler)

    if environment == "production":
        for noisy in ("uvicorn.access", "sqlalchemy.engine"):
            logging.getLogger(noisy).setLevel(logging.WARNING)
