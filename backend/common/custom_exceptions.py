from fastapi import FastAPI, HTTPException, Request,status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from backend.common.logging_setup import get_logger
from backend.common.utils import build_error, json_error
from backend.common.constants import request_id_ctx

logger = get_logger("pashmiya.errors")


async def fallback_handler(request: Request, exc: Exception):

    rid = request_id_ctx.get(None)

    logger.error(
        "unexpected.exception",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=exc,
    )

    payload = build_error(code="SERVER_ERROR", details={"message": "Internal Server Error"}, request_id=rid)
    return json_error(payload, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    rid = request_id_ctx.get(None)
    errors = exc.errors()
    logger.warning(
        "request.validation_failed",
        extra={
            "errors": errors,
            "path": request.url.path,
        },
    )

    fields = [".".join(str(p) for p in e.get("loc", ()) if p != "body") for e in errors]
    details = {"message": "invalid request", "fields": [f for f in fields if f]}
    payload = build_error(code="UNPROCESSABLE_ENTITY", details=details, request_id=rid)
    return json_error(payload, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):

    rid = request_id_ctx.get(None)

    # structured details (e.g. stock shortages) pass through untouched
    if isinstance(exc.detail, dict):
        details = exc.detail
    else:
        details = {"message": exc.detail}

    if exc.status_code >= 500:
        logger.error("http.server_error", extra={"path": request.url.path, "status_code": exc.status_code,
                                                  "detail": exc.detail})

    payload = build_error(code=f"HTTP_{exc.status_code}", details=details, request_id=rid)
    return json_error(payload, status_code=exc.status_code, headers=getattr(exc, "headers", None))


def register_all_exceptions(app: FastAPI):

    app.add_exception_handler(
        Exception, # catch all unidentified/unhandled exceptions
        fallback_handler
    )

    app.add_exception_handler(
        RequestValidationError,
        validation_exception_handler
    )

    # starlette's base class also covers routing 404/405s
    app.add_exception_handler(
        StarletteHTTPException,
        http_exception_handler
    )
    app.add_exception_handler(
        HTTPException,
        http_exception_handler
    )
