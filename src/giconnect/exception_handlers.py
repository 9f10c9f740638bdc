"""
Exception handlers that turn every failure into ``{"error": "<message>"}``.

Only client-safe messages leave the process: ``GIConnectError.safe_message``,
a field-level validation summary, an HTTP reason phrase, or a generic 500.
"""
import logging
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from giconnect.errors import GIConnectError, ValidationError

logger = logging.getLogger(__name__)

_REQUIRED_ERROR_TYPES = {"missing", "string_too_short"}
_LOCATION_ROOTS = {"body", "query", "header", "path"}


def _error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def _field_name(loc: tuple) -> str:
    parts = [str(part) for part in loc]
    if parts and parts[0] in _LOCATION_ROOTS:
        parts = parts[1:]
    return ".".join(parts)


def to_validation_error(error: dict) -> ValidationError:
    """Summarize one pydantic error as ``<field> required`` or ``<field> invalid: ...``."""
    error_type = error.get("type", "")
    field = _field_name(tuple(error.get("loc", ())))

    if error_type == "json_invalid":
        detail = (error.get("ctx") or {}).get("error") or error.get("msg", "")
        return ValidationError(f"invalid JSON body: {detail}")
    if not field:
        return ValidationError("request body must be a JSON object")
    if error_type in _REQUIRED_ERROR_TYPES or error.get("input") in (None, ""):
        return ValidationError(f"{field} required", field=field)
    return ValidationError(f"{field} invalid: {error.get('msg', 'invalid value')}", field=field)


async def giconnect_exception_handler(request: Request, exc: GIConnectError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.safe_message}")
    else:
        logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.safe_message}")
    return _error_response(exc.status_code, exc.safe_message)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    error = to_validation_error(errors[0]) if errors else ValidationError("invalid request")
    return await giconnect_exception_handler(request, error)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions globally.

    This catches any exception that wasn't handled by specific endpoints
    and returns a generic 500 error to the client while logging the details.
    """
    logger.error(
        f"Unhandled exception occurred",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error": str(exc)
        },
        exc_info=True
    )

    return _error_response(500, "Internal server error occurred")
