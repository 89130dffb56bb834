"""Exception handlers: every failure leaves the API as ``{"detail": ..., "code": ...}`` JSON."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from noizlabs.errors import NoizError

logger = structlog.get_logger()


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, object]]:
    """Pydantic errors minus their ``ctx``/``input`` payloads, which may not serialize."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


async def _noiz_error(request: Request, exc: NoizError) -> JSONResponse:
    logger.info("request_rejected", path=request.url.path, status=exc.status_code, code=exc.code, detail=exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "code": exc.code})


async def _http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": "not_found" if exc.status_code == 404 else "http_error"},
        headers=getattr(exc, "headers", None),
    )


async def _validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": "Validation error", "code": "invalid_request", "errors": jsonable_errors(exc)},
    )


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", path=request.url.path, method=request.method, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error", "code": "internal_error"})


def setup_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(NoizError, _noiz_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error)
