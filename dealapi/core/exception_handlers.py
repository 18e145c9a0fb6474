import logging
import traceback
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError

from .exceptions import (
    BaseAPIException,
    ConflictError,
    InternalServerError,
    ServiceUnavailableError,
)

logger = logging.getLogger("dealapi")


def _request_context(request: Request) -> Dict[str, Any]:
    client = request.client.host if request.client else "-"
    return {
        "method": request.method,
        "url": str(request.url),
        "client": client,
    }


def _prefix(ctx: Dict[str, Any]) -> str:
    return f"{ctx['method']} {ctx['url']} from {ctx['client']}"


async def handle_base_api_exception(request: Request, exc: BaseAPIException):
    ctx = _request_context(request)
    if exc.status_code >= 500:
        logger.error(f"[{type(exc).__name__}] {_prefix(ctx)} -> {exc.status_code}: {exc.message}")
    else:
        logger.warning(f"[{type(exc).__name__}] {_prefix(ctx)} -> {exc.status_code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.detail,  # type: ignore[arg-type]
        headers=getattr(exc, "headers", None),
    )


async def handle_http_exception(request: Request, exc: HTTPException):
    ctx = _request_context(request)
    error_msg = f"[HTTPException] {_prefix(ctx)} -> {exc.status_code}: {exc.detail}"

    if exc.status_code >= 500:
        tb_str = "".join(traceback.format_tb(exc.__traceback__))
        logger.error(f"{error_msg}\n\nStack Trace:\n{tb_str}")
    else:
        logger.warning(error_msg)

    if isinstance(exc.detail, dict) and "error" in exc.detail:
        content = exc.detail
    else:
        content = {
            "success": False,
            "error": {
                "code": "HTTP_ERROR",
                "message": str(exc.detail),
                "details": {},
            },
        }
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


async def handle_validation_error(request: Request, exc: RequestValidationError):
    ctx = _request_context(request)
    logger.warning(f"[ValidationError] {_prefix(ctx)} -> 422: {exc.errors()}")
    content = {
        "success": False,
        "error": {
            "code": "VALIDATION_001",
            "message": "Validation failed",
            "details": {"errors": jsonable_encoder(exc.errors())},
        },
    }
    return JSONResponse(status_code=422, content=content)


async def handle_integrity_error(request: Request, exc: IntegrityError):
    """유니크 제약 위반 등은 409 로 응답"""
    ctx = _request_context(request)
    logger.warning(f"[IntegrityError] {_prefix(ctx)} -> 409: {exc.orig}")
    conflict = ConflictError("Resource already exists")
    return JSONResponse(status_code=conflict.status_code, content=conflict.detail)  # type: ignore[arg-type]


async def handle_operational_error(request: Request, exc: OperationalError):
    ctx = _request_context(request)
    logger.error(f"[OperationalError] {_prefix(ctx)} -> 503: {exc.orig}")
    unavailable = ServiceUnavailableError("Database unavailable")
    return JSONResponse(status_code=unavailable.status_code, content=unavailable.detail)  # type: ignore[arg-type]


async def handle_unexpected_error(request: Request, exc: Exception):
    ctx = _request_context(request)

    tb_str = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(
        f"\n{'=' * 80}\n"
        f"[Unhandled Error] {_prefix(ctx)}\n"
        f"Exception Type: {type(exc).__name__}\n"
        f"Exception Message: {str(exc)}\n\n"
        f"Full Stack Trace:\n{tb_str}"
        f"{'=' * 80}"
    )

    internal = InternalServerError()
    return JSONResponse(status_code=internal.status_code, content=internal.detail)  # type: ignore[arg-type]


def register_exception_handlers(app: FastAPI) -> None:
    # BaseAPIException 이 HTTPException 보다 먼저 매칭되도록 등록
    app.add_exception_handler(BaseAPIException, handle_base_api_exception)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, handle_integrity_error)  # type: ignore[arg-type]
    app.add_exception_handler(OperationalError, handle_operational_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unexpected_error)
