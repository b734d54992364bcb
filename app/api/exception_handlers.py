# FILE: app/api/exception_handlers.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.response import err
from app.services.errors import LabError

logger = logging.getLogger(__name__)


def _validation_msg(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Validation error"
    first = errors[0]
    loc = ".".join(str(x) for x in first.get("loc", ()) if x != "body")
    msg = str(first.get("msg", "invalid value"))
    return f"{loc}: {msg}" if loc else msg


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(LabError)
    async def lab_error_handler(request: Request, exc: LabError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s -> %s", request.method, request.url.path, exc.msg)
        return err(msg=exc.msg,
                   status_code=exc.status_code,
                   code=exc.code,
                   details=exc.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # exc.detail can be str/dict/list
        msg = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return err(msg=msg, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return err(msg=_validation_msg(exc),
                   status_code=422,
                   code="validation_error")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method,
                         request.url.path)
        return err(msg="Internal server error",
                   status_code=500,
                   code="internal_error")
