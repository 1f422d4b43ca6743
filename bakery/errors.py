# bakery/errors.py
from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Caller-facing failure rendered as {"ok": false, "error": CODE, ...}."""

    def __init__(self, code: str, status_code: int = 400, **extra: Any) -> None:
        super().__init__(code)
        self.code = code
        self.status_code = status_code
        self.extra = extra

    def payload(self) -> dict[str, Any]:
        return {"ok": False, "error": self.code, **self.extra}


class NotFound(ApiError):
    def __init__(self, **extra: Any) -> None:
        super().__init__("NOT_FOUND", 404, **extra)


class Unauthorized(ApiError):
    def __init__(self, code: str = "UNAUTHORIZED") -> None:
        super().__init__(code, 401)


def _field_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ())]
        out.append({"field": ".".join(loc[1:]) or (loc[0] if loc else ""), "message": err.get("msg", "")})
    return out


_HTTP_CODES = {404: "NOT_FOUND", 405: "METHOD_NOT_ALLOWED", 401: "UNAUTHORIZED"}


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def _api_error(_request: Request, exc: ApiError):
        return JSONResponse(status_code=exc.status_code, content=exc.payload())

    @app.exception_handler(RequestValidationError)
    async def _validation_error(_request: Request, exc: RequestValidationError):
        sources = {(err.get("loc") or ("",))[0] for err in exc.errors()}
        if "body" in sources:
            code = "BAD_BODY"
        elif "path" in sources:
            code = "BAD_ID"
        else:
            code = "BAD_QUERY"
        return JSONResponse(
            status_code=400,
            content={"ok": False, "error": code, "details": _field_errors(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_request: Request, exc: StarletteHTTPException):
        code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
        return JSONResponse(status_code=exc.status_code, content={"ok": False, "error": code})

    @app.exception_handler(Exception)
    async def _server_error(request: Request, exc: Exception):
        logger.exception("API_ERROR %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"ok": False, "error": "SERVER_ERROR"})
