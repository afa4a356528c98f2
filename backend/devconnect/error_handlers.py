"""Exception handlers turning the error taxonomy into HTTP responses.

Client errors carry an actionable ``msg``. Storage faults and unexpected
exceptions are logged in full server-side and answered with a generic
500 so no internal detail leaks.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .errors import AuthError, CascadeDeleteError, ProfileServiceError, StorageFault

logger = logging.getLogger(__name__)

SERVER_ERROR_MESSAGE = "Server Error"


def _validation_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    errors: List[Dict[str, Any]] = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"param": ".".join(location), "msg": error.get("msg", "Invalid value")})
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = _validation_errors(exc)
        logger.info("Rejected %s %s: %s", request.method, request.url.path, errors)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"errors": errors})

    @app.exception_handler(StorageFault)
    async def storage_fault_handler(request: Request, exc: StorageFault) -> JSONResponse:
        if isinstance(exc, CascadeDeleteError):
            logger.error(
                "Cascading delete incomplete on %s %s: completed=%s failed=%s",
                request.method,
                request.url.path,
                exc.completed_steps,
                exc.failed_step,
            )
        else:
            logger.error("Storage fault on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"msg": SERVER_ERROR_MESSAGE},
        )

    @app.exception_handler(ProfileServiceError)
    async def service_error_handler(request: Request, exc: ProfileServiceError) -> JSONResponse:
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
        return JSONResponse(status_code=exc.status_code, content={"msg": exc.message}, headers=headers)

    @app.exception_handler(Exception)
    async def unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"msg": SERVER_ERROR_MESSAGE},
        )


__all__ = ["SERVER_ERROR_MESSAGE", "register_exception_handlers"]
