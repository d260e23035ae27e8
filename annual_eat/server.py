"""HTTP service exposing the OAuth flow, data fetch and report generation.

Endpoints
---------
- ``GET  /api/auth/authorize``: ``{"url", "state"}`` for the jAccount login page.
- ``POST /api/auth/token``: ``{"code"}`` → ``{"token"}``.
- ``POST /api/data/fetch``: ``{"code", "startDate", "endDate"}`` → ``{"data"}``
  where ``data`` is the upstream transactions body.
- ``POST /api/report/generate``: upstream transactions body → ``text/html``.

Errors are returned as ``{"error": message}``: 400 for malformed bodies, bad
input and upstream failures, 500 for configuration problems and anything
unexpected. CORS is open to every origin.
"""

from __future__ import annotations

from datetime import date

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel

from . import jaccount
from .api import build_report
from .config import Settings
from .errors import ConfigError, NoDataError, UpstreamError
from .logging_setup import get_logger
from .models import EatResponse
from .render import EMPTY_REPORT_HTML, render_report

_logger = get_logger("annual_eat.server")


class TokenRequest(BaseModel):
    code: str | None = None


class FetchRequest(BaseModel):
    code: str | None = None
    startDate: str | None = None  # noqa: N815 - wire name
    endDate: str | None = None  # noqa: N815 - wire name


def _error(message: str, status: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application.

    When ``settings`` is omitted they are read from the environment on each
    request, so a ``.env`` loaded after import still takes effect.
    """

    app = FastAPI(title="annual-eat", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    def _settings() -> Settings:
        return settings if settings is not None else Settings.from_env()

    @app.exception_handler(UpstreamError)
    async def _upstream_error(_request: Request, exc: UpstreamError) -> JSONResponse:
        _logger.warning("upstream failure: %s", exc)
        return _error(str(exc), 400)

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(_request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        return _error(f"请求格式错误: {where} {first.get('msg', '')}".strip(), 400)

    @app.exception_handler(ConfigError)
    async def _config_error(_request: Request, exc: ConfigError) -> JSONResponse:
        _logger.error("configuration error: %s", exc)
        return _error(str(exc), 500)

    @app.exception_handler(Exception)
    async def _unexpected_error(_request: Request, exc: Exception) -> JSONResponse:
        _logger.exception("request failed")
        return _error(f"请求失败: {exc}", 500)

    @app.get("/api/auth/authorize")
    def authorize() -> dict[str, str]:
        url, state = jaccount.authorization_url(_settings())
        return {"url": url, "state": state}

    @app.post("/api/auth/token")
    def token(body: TokenRequest) -> JSONResponse:
        if not body.code:
            return _error("缺少必要参数", 400)
        tok = jaccount.exchange_code(_settings(), body.code)
        return JSONResponse({"token": tok.access_token})

    @app.post("/api/data/fetch")
    def fetch(body: FetchRequest) -> JSONResponse:
        if not body.code or not body.startDate or not body.endDate:
            return _error("缺少必要参数", 400)
        try:
            start = date.fromisoformat(body.startDate)
            end = date.fromisoformat(body.endDate)
            begin, finish = jaccount.day_bounds(start, end)
        except ValueError as e:
            return _error(f"日期无效: {e}", 400)

        cfg = _settings()
        tok = jaccount.exchange_code(cfg, body.code)
        data = jaccount.fetch_transactions(cfg, tok.access_token, begin, finish)
        return JSONResponse({"data": data.model_dump(by_alias=True)})

    @app.post("/api/report/generate")
    def generate(body: EatResponse) -> Response:
        if not body.entities:
            return PlainTextResponse("消费记录为空，无法生成报告", status_code=400)
        try:
            report = build_report(body.raw_transactions())
        except NoDataError:
            return HTMLResponse(EMPTY_REPORT_HTML)
        return HTMLResponse(render_report(report))

    return app


__all__ = ["create_app"]
