# app/api/errors.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.domain.errors import CommerceError
from app.domain.schemas import envelope
from app.utils.logging import get_logger

logger = get_logger(__name__)


async def commerce_error_handler(request: Request, exc: CommerceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=envelope(None, exc.message, success=False))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in err["loc"][1:]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content=envelope(errors, "Validation failed", success=False))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"{request.method} {request.url.path} crashed: {exc}")
    return JSONResponse(status_code=500, content=envelope(None, "Internal server error", success=False))


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(CommerceError, commerce_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
