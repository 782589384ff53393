"""
Unified Error Handling for FastAPI.

Provides:
- Mapping of domain errors to HTTP responses (404 / 422)
- Consistent JSON body for unhandled exceptions (500)
- Error logging with request context
"""

import logging
import traceback
import uuid
from typing import Callable

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ..core.config import get_settings
from ..domain.errors import DomainError, InvalidSchedule, NotFound

logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Middleware that catches all unhandled exceptions and returns
    consistent JSON error responses.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and handle any errors."""
        request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())[:8]

        try:
            return await call_next(request)

        except HTTPException:
            # Let HTTP exceptions pass through to FastAPI's handler
            raise

        except Exception as e:
            logger.error(
                f"Unhandled exception [{request_id}]: {type(e).__name__}: {e}",
                exc_info=True,
                extra={
                    "path": request.url.path,
                    "method": request.method,
                },
            )
            if get_settings().debug:
                content = get_error_response(e, request_id, include_traceback=True)
            else:
                content = {
                    "error": {
                        "message": "Internal server error",
                    },
                    "request_id": request_id,
                }
            return JSONResponse(status_code=500, content=content)


def domain_error_body(error: DomainError) -> dict:
    return {"error": type(error).__name__, "message": str(error)}


async def not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content=domain_error_body(exc))


async def invalid_schedule_handler(request: Request, exc: InvalidSchedule) -> JSONResponse:
    logger.info(f"Rejected schedule on {request.url.path}: {exc}")
    return JSONResponse(status_code=422, content=domain_error_body(exc))


def register_exception_handlers(app: FastAPI) -> None:
    """Install domain error -> HTTP status mappings on the app."""
    app.add_exception_handler(NotFound, not_found_handler)
    app.add_exception_handler(InvalidSchedule, invalid_schedule_handler)


def get_error_response(
    error: Exception,
    request_id: str = None,
    include_traceback: bool = False,
) -> dict:
    """
    Build a standard error response dict.

    Args:
        error: The exception that occurred
        request_id: Optional request ID for tracking
        include_traceback: Whether to include full traceback (dev only)

    Returns:
        Error response dictionary
    """
    response = {
        "error": {
            "message": str(error),
            "type": type(error).__name__,
        },
    }

    if request_id:
        response["request_id"] = request_id

    if include_traceback:
        response["error"]["traceback"] = traceback.format_exc()

    return response
