"""Error handling middleware."""

import structlog
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import AppException

logger = structlog.get_logger()


def _error_body(error: str, message: object, request: Request) -> dict:
    return {
        "error": error,
        "message": message,
        "path": str(request.url),
    }


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Map application exceptions to their HTTP status.

    Args:
        request: Request object
        exc: Application exception

    Returns:
        JSON error response
    """
    logger.info(
        "request_rejected",
        error=exc.__class__.__name__,
        message=exc.message,
        status_code=exc.status_code,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.__class__.__name__, exc.message, request),
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Handle HTTP exceptions raised by routing."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body("HTTPException", exc.detail, request),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Handle request schema errors.

    Args:
        request: Request object
        exc: Validation exception

    Returns:
        JSON error response with validation details
    """
    content = _error_body("ValidationError", "Request validation failed", request)
    content["details"] = jsonable_errors(exc)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=content,
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Strip non-serializable context from pydantic error entries."""
    return [
        {key: value for key, value in error.items() if key in ("type", "loc", "msg")}
        for error in exc.errors()
    ]


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "unhandled_exception",
        error=exc.__class__.__name__,
        path=request.url.path,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("InternalServerError", "An unexpected error occurred", request),
    )
