"""FastAPI application entrypoint."""

import logging
from typing import Dict, List

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from clinic.routers import get_api_router
from clinic.services.errors import (
    InvalidStateError,
    NotFoundError,
    SchedulingError,
    ValidationError,
)
from clinic.utils.config import get_settings

LOGGER = logging.getLogger(__name__)

REQUEST_LOCATIONS = {"body", "query", "path"}

settings = get_settings()
logging.basicConfig(level=settings.log_level.upper())

app = FastAPI(title=settings.app_name, version=settings.app_version)
app.include_router(get_api_router())


@app.exception_handler(ValidationError)
def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"errors": exc.errors},
    )


@app.exception_handler(RequestValidationError)
def handle_request_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Reshape malformed request bodies into the field-keyed error map."""

    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        location = [
            str(part)
            for part in error.get("loc", ())
            if part not in REQUEST_LOCATIONS
        ]
        field = location[0] if location else "__root__"
        errors.setdefault(field, []).append(error.get("msg", "Invalid value."))

    LOGGER.debug("Malformed request for %s: %s", request.url.path, errors)
    return JSONResponse(
        status_code=422,
        content={"errors": errors},
    )


@app.exception_handler(NotFoundError)
def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": exc.message},
    )


@app.exception_handler(InvalidStateError)
def handle_invalid_state(request: Request, exc: InvalidStateError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": exc.message, "code": exc.code},
    )


@app.exception_handler(SchedulingError)
def handle_scheduling_error(request: Request, exc: SchedulingError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": exc.message, "code": exc.code},
    )


@app.exception_handler(Exception)
def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.error(
        "Unhandled error on %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error."},
    )


@app.get("/health")
def health_check() -> dict[str, str]:
    """Return service health status."""

    return {"status": "ok"}


@app.get("/version")
def version() -> dict[str, str]:
    """Return application version metadata."""

    return {"version": settings.app_version}
