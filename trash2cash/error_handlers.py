"""Global exception handlers.

Three layers, all rendering the `{success, message, data}` envelope:
station errors keep their own status and message, request validation
errors become 422, and anything else is a 500 that never leaks details.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from trash2cash.core.errors import StationError
from trash2cash.routes.schemas import fail

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_station_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _register_station_error_handler(app: FastAPI) -> None:

    @app.exception_handler(StationError)
    async def station_error_handler(request: Request, exc: StationError):
        log = logger.error if exc.http_status >= 500 else logger.warning
        log(f"{exc.code} on {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.http_status, content=fail(exc.message))


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=422,
            content=fail(_describe(exc)),
        )


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all; never leaks internal details."""
        logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=fail("An unexpected error occurred"),
        )


def _describe(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = [str(p) for p in error.get("loc", ()) if p != "body"]
        field = ".".join(loc) or "request"
        parts.append(f"{field}: {error.get('msg', 'invalid')}")
    return "Invalid request data (" + "; ".join(parts) + ")"
