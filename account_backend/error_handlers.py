from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from account_backend.core.errors import AppError, StorageError

log = structlog.get_logger(__name__)


async def app_error_handler(request: Request, exc: AppError):
    if isinstance(exc, StorageError):
        cause = exc.__cause__
        log.error(
            "storage_request_failed",
            path=request.url.path,
            error=exc.message,
            cause=repr(cause) if cause else None,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def http_exception_handler(_: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(_: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        # JSON decode errors carry a character offset instead of a field name
        loc = [p for p in err.get("loc", ()) if isinstance(p, str) and p not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc) or "body", "message": err.get("msg", "Invalid value")})
    return JSONResponse(status_code=400, content={"success": False, "errors": errors})


async def unhandled_exception_handler(request: Request, exc: Exception):
    log.error("unhandled_error", path=request.url.path, method=request.method, exc_info=exc)
    return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
