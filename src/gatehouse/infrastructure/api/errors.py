"""Exception handlers shaping errors into the response envelope.

Every error response has the form
``{"success": false, "message": ..., "data": null, "errors"?: ...}``.
Suspended accounts are answered differently for API and browser callers.
"""

from typing import Any
from urllib.parse import urlencode

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from gatehouse.core.config import get_settings
from gatehouse.core.logging import get_logger
from gatehouse.domain.exceptions import AccountSuspended, AuthenticationFailed, GatehouseError

logger = get_logger(__name__)

# pydantic error type -> lower-cased validation rule name
RULE_KEYS = {
    "missing": "required",
    "string_type": "string",
    "string_too_short": "min",
    "string_too_long": "max",
    "too_short": "min",
    "too_long": "max",
    "bool_type": "boolean",
    "bool_parsing": "boolean",
    "int_type": "integer",
    "int_parsing": "integer",
    "int_from_float": "integer",
    "list_type": "array",
    "datetime_parsing": "date_format",
    "datetime_type": "date_format",
}


def error_envelope(message: str, errors: dict[str, Any] | None = None, **extra: Any) -> dict:
    """Build the body of an error response."""
    body: dict[str, Any] = {"success": False, "message": message, "data": None, **extra}
    if errors is not None:
        body["errors"] = errors
    return body


def expects_json(request: Request) -> bool:
    """Whether the caller is an API client rather than a browser navigation."""
    accept = request.headers.get("accept", "")
    if "json" in accept:
        return True
    return "text/html" not in accept


def rule_key(error: dict[str, Any]) -> str:
    """Map a pydantic error to a validation rule name."""
    error_type = error.get("type", "")
    if error_type in RULE_KEYS:
        return RULE_KEYS[error_type]
    if error_type == "value_error" and "email" in str(error.get("msg", "")).lower():
        return "email"
    return error_type.lower()


def validation_errors(exc: RequestValidationError) -> dict[str, dict[str, str]]:
    """Collapse pydantic errors to ``{field: {key, message}}``, first error per field."""
    errors: dict[str, dict[str, str]] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "body"
        if field not in errors:
            errors[field] = {"key": rule_key(error), "message": error.get("msg", "Invalid.")}
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers.

    Args:
        app: FastAPI application instance.
    """

    @app.exception_handler(AccountSuspended)
    async def account_suspended_handler(request: Request, exc: AccountSuspended) -> Response:
        if expects_json(request):
            return JSONResponse(
                status_code=exc.status_code,
                content=error_envelope(exc.message, code=exc.code),
            )
        query = urlencode({"message": exc.message})
        return RedirectResponse(
            url=f"{get_settings().login_url}?{query}",
            status_code=status.HTTP_303_SEE_OTHER,
        )

    @app.exception_handler(GatehouseError)
    async def gatehouse_error_handler(request: Request, exc: GatehouseError) -> JSONResponse:
        errors = getattr(exc, "errors", None) or None
        headers = (
            {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationFailed) else None
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(exc.message, errors, code=exc.code),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = validation_errors(exc)
        logger.info("Request validation failed", path=request.url.path, fields=list(errors))
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_envelope("Validation failed", errors),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle uncaught exceptions."""
        logger.error(
            "Unhandled exception",
            path=str(request.url),
            method=request.method,
            error=str(exc),
            exc_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_envelope(
                str(exc) if get_settings().debug else "An unexpected error occurred"
            ),
        )
