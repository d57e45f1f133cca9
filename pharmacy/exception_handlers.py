import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import PharmacyError
from .validation import format_errors

logger = logging.getLogger(__name__)

_HTTP_KINDS = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PharmacyError)
    async def pharmacy_error_handler(request: Request, exc: PharmacyError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
        else:
            logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.kind, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # exc.detail can be str/dict/list
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        kind = _HTTP_KINDS.get(exc.status_code, "http_error")
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, message)
        else:
            logger.warning("%s %s -> %s: %s", request.method, request.url.path, kind, message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": kind, "message": message},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = format_errors(exc.errors())
        logger.warning("%s %s -> validation_error: %s", request.method, request.url.path, details)
        return JSONResponse(
            status_code=422,
            content={"error": "validation_error", "message": "Invalid request data", "details": details},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("%s %s failed unexpectedly", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "unexpected", "message": "Internal server error"},
        )
