"""Thin client for jAccount OAuth and the campus-card transactions API.

Three calls, all blocking and non-retrying:

- :func:`authorization_url` builds the browser URL for the authorization-code
  flow (no network).
- :func:`exchange_code` trades an authorization code for an access token
  (form POST with HTTP Basic client authentication).
- :func:`fetch_transactions` downloads the transactions between two epoch
  timestamps in a single request.

Non-2xx responses and ``errno != 0`` bodies raise
:class:`~annual_eat.errors.UpstreamError`.
"""

from __future__ import annotations

import base64
import json
import urllib.error
import urllib.parse
import urllib.request
import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from pydantic import ValidationError

from .config import Settings
from .errors import UpstreamError
from .logging_setup import get_logger
from .models import EatResponse, TokenResponse

CST = timezone(timedelta(hours=8), "CST")

_logger = get_logger("annual_eat.jaccount")


def authorization_url(settings: Settings, state: str | None = None) -> tuple[str, str]:
    """Return ``(url, state)`` for the jAccount authorization page.

    A random UUID is used as ``state`` when none is given.
    """

    state = state or str(uuid.uuid4())
    params = urllib.parse.urlencode(
        {
            "response_type": "code",
            "client_id": settings.require_client_id(),
            "redirect_uri": settings.redirect_uri,
            "scope": "",
            "state": state,
        }
    )
    return f"{settings.authorize_url}?{params}", state


def day_bounds(start: date, end: date) -> tuple[int, int]:
    """Epoch seconds of ``start`` 00:00:00 and ``end`` 23:59:59 in UTC+8."""

    if end < start:
        raise ValueError(f"end date {end.isoformat()} is before start date {start.isoformat()}")
    begin = datetime.combine(start, time(0, 0, 0), tzinfo=CST)
    finish = datetime.combine(end, time(23, 59, 59), tzinfo=CST)
    return int(begin.timestamp()), int(finish.timestamp())


def _request_json(req: urllib.request.Request, *, timeout: float, what: str) -> Any:
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            body = resp.read()
    except urllib.error.HTTPError as e:
        try:
            err_body = e.read().decode("utf-8", errors="replace")
        except Exception:  # noqa: BLE001 - the status alone is still useful
            err_body = ""
        raise UpstreamError(f"{what} failed: {e.code} {err_body}", status=e.code, body=err_body) from e
    except urllib.error.URLError as e:
        raise UpstreamError(f"{what} failed: {e.reason}") from e

    text = body.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise UpstreamError(f"{what} returned invalid JSON", body=text) from e


def exchange_code(settings: Settings, code: str) -> TokenResponse:
    """Exchange an authorization ``code`` for an access token."""

    client_id, client_secret = settings.require_credentials()
    form = urllib.parse.urlencode(
        {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": settings.redirect_uri,
        }
    ).encode("utf-8")
    basic = base64.b64encode(f"{client_id}:{client_secret}".encode()).decode("ascii")

    req = urllib.request.Request(settings.token_url, data=form, method="POST")
    req.add_header("Content-Type", "application/x-www-form-urlencoded")
    req.add_header("Authorization", f"Basic {basic}")

    _logger.debug("exchanging authorization code at %s", settings.token_url)
    payload = _request_json(req, timeout=settings.http_timeout, what="token exchange")
    try:
        return TokenResponse.model_validate(payload)
    except ValidationError as e:
        raise UpstreamError("token exchange returned an unexpected body", body=str(payload)) from e


def fetch_transactions(
    settings: Settings, access_token: str, begin: int, end: int
) -> EatResponse:
    """Fetch all transactions paid between the epoch timestamps ``begin`` and ``end``."""

    params = urllib.parse.urlencode(
        {
            "access_token": access_token,
            "channel": "",
            "start": "0",
            "beginDate": str(begin),
            "endDate": str(end),
            "status": "",
        }
    )
    req = urllib.request.Request(f"{settings.api_url}?{params}", method="GET")

    _logger.info("fetching transactions %d..%d", begin, end)
    payload = _request_json(req, timeout=settings.http_timeout, what="transactions fetch")
    try:
        data = EatResponse.model_validate(payload)
    except ValidationError as e:
        raise UpstreamError("transactions API returned an unexpected body", body=str(payload)) from e

    if data.errno != 0:
        raise UpstreamError(
            f"transactions API error: errno={data.errno} {data.error or ''}".rstrip(),
            body=str(payload),
        )
    _logger.info("fetched %d transactions", len(data.entities))
    return data


def fetch_with_code(settings: Settings, code: str, start: date, end: date) -> EatResponse:
    """Exchange ``code`` and download the transactions for the inclusive date range."""

    token = exchange_code(settings, code)
    begin, finish = day_bounds(start, end)
    return fetch_transactions(settings, token.access_token, begin, finish)


__all__ = [
    "authorization_url",
    "day_bounds",
    "exchange_code",
    "fetch_transactions",
    "fetch_with_code",
]
