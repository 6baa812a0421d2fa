from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from structlog import get_logger

from propertyhub.config import settings
from propertyhub.dependencies.auth import RequestContext

logger = get_logger(__name__)


def internal_error(ctx: RequestContext, exc: Exception) -> HTTPException:
    """500 envelope; the raw error is echoed only in development."""
    detail = {"message": "Internal server error"}
    if ctx.is_development:
        detail["error"] = str(exc)
    return HTTPException(status_code=500, detail=detail)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict):
        body = exc.detail
    elif exc.status_code == 405:
        body = {"message": "Method not allowed"}
    else:
        body = {"message": exc.detail}
    return JSONResponse(body, status_code=exc.status_code, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Request validation failed", path=request.url.path, errors=len(exc.errors()))
    return JSONResponse({"message": "Invalid request"}, status_code=400)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", path=request.url.path)
    body = {"message": "Internal server error"}
    if settings.is_development:
        body["error"] = str(exc)
    return JSONResponse(body, status_code=500)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
