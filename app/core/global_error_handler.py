from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from typing import Any, Optional
import traceback
import logging

from app.core.config import settings
from app.core.errors import ServiceError

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Define a standard error response format
def create_error_response(
    status_code: int,
    message: str,
    details: Optional[Any] = None,
    kind: Optional[str] = None,
) -> dict:
    response = {
        "message": message,
        "code": status_code,
    }
    if kind:
        response["kind"] = kind
    if details:
        response["details"] = details
    return response


def _is_production(request: Request) -> bool:
    services = getattr(request.app.state, "services", None)
    if services is not None:
        return services.settings.is_production
    return settings.is_production


async def service_exception_handler(request: Request, exc: ServiceError):
    """Maps domain errors to their HTTP status, keeping the stable error kind."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"{exc.kind}: {exc.detail} for {request.method} {request.url.path}")

    content = create_error_response(
        status_code=exc.status_code,
        message=exc.detail,
        details=exc.details,
        kind=exc.kind,
    )
    if exc.status_code >= 500 and not _is_production(request) and exc.__cause__ is not None:
        content["debug"] = str(exc.__cause__)
    return JSONResponse(status_code=exc.status_code, content=content)

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handles StarletteHTTPException (which includes FastAPI's HTTPException)."""
    logger.warning(f"HTTP Exception: {exc.status_code} - {exc.detail} for {request.method} {request.url.path}")
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(
            status_code=exc.status_code,
            message=exc.detail,
        ),
        headers=getattr(exc, "headers", None),
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handles RequestValidationError for input validation errors."""
    logger.warning(f"Validation Error: {exc.errors()} for {request.method} {request.url.path}")
    # Extracting specific error messages for better client feedback
    error_details = []
    for error in exc.errors():
        field = ".".join(map(str, error["loc"]))
        msg = error["msg"]
        error_details.append(f"Field '{field}': {msg}")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=create_error_response(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            message="Validation failed",
            details={"errors": error_details},
            kind="InvalidInput",
        ),
    )

async def general_exception_handler(request: Request, exc: Exception):
    """Handles any other unhandled exceptions."""
    # Log the full traceback for internal debugging
    logger.error(f"Unhandled Exception: {exc}\n{traceback.format_exc()} for {request.method} {request.url.path}")

    content = create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="An unexpected internal server error occurred.",
    )
    if not _is_production(request):
        content["debug"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)

# Function to register all handlers with the FastAPI app
def register_global_exception_handlers(app: FastAPI):
    app.exception_handler(ServiceError)(service_exception_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
