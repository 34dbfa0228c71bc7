from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ipwatch.logger import logger


def _normalize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Make sure validation error dicts are JSON-serializable."""
    normalized: list[dict[str, Any]] = []
    for error in errors:
        e = dict(error)
        ctx = e.get("ctx")
        if isinstance(ctx, dict):
            # Convert any non-serializable ctx values (e.g. exceptions) to strings.
            e["ctx"] = {k: str(v) for k, v in ctx.items()}
        normalized.append(e)
    return normalized


def _build_validation_error_payload(exc: RequestValidationError) -> dict:
    """Normalize validation errors into the `{code, message}` error shape.

    Field-level details are not exposed to clients.
    """
    code = "invalid_request"
    message = "Invalid request body"

    for error in _normalize_validation_errors(list(exc.errors())):
        loc = error.get("loc", ())
        if len(loc) >= 1 and loc[-1] == "status":
            code = "invalid_presence_status"
            message = "Presence status must be either 'active' or 'idle'."
            break
        if len(loc) >= 1 and loc[-1] == "available":
            code = "invalid_network_availability"
            message = "Network availability must be a boolean."
            break

    return {
        "code": code,
        "message": message,
    }


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request body validation errors."""
    logger.info(
        "Validation error during request handling "
        f"path={request.url.path} method={request.method} errors={_normalize_validation_errors(list(exc.errors()))}"
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=_build_validation_error_payload(exc))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected errors to return a structured 500 response."""
    logger.exception(
        f"Unhandled exception while processing request: {repr(exc)} path={request.url.path} method={request.method}"
    )
    content: dict[str, Any] = {
        "code": "internal_error",
        "message": "An unexpected error occurred while processing the request.",
    }
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
    )
