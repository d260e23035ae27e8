"""Runtime settings read from the environment.

Entrypoints load a local ``.env`` with ``python-dotenv`` (never overriding
variables that are already set) before calling :meth:`Settings.from_env`.

Recognized variables
--------------------
- ``ANNUAL_EAT_CLIENT_ID`` / ``CLIENT_ID``: jAccount OAuth client id.
- ``ANNUAL_EAT_CLIENT_SECRET`` / ``CLIENT_SECRET``: jAccount OAuth secret.
- ``ANNUAL_EAT_AUTHORIZE_URL``, ``ANNUAL_EAT_TOKEN_URL``, ``ANNUAL_EAT_API_URL``,
  ``ANNUAL_EAT_REDIRECT_URI``: endpoint overrides.
- ``ANNUAL_EAT_HTTP_TIMEOUT``: per-request timeout in seconds (default 30).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from .errors import ConfigError

DEFAULT_AUTHORIZE_URL = "https://jaccount.sjtu.edu.cn/oauth2/authorize"
DEFAULT_TOKEN_URL = "https://jaccount.sjtu.edu.cn/oauth2/token"
DEFAULT_API_URL = "https://api.sjtu.edu.cn/v1/unicode/transactions"
DEFAULT_REDIRECT_URI = "https://net.sjtu.edu.cn"
DEFAULT_HTTP_TIMEOUT = 30.0


def _first_env(env: Mapping[str, str], *names: str) -> str | None:
    for name in names:
        v = env.get(name)
        if v is not None and v.strip():
            return v.strip()
    return None


@dataclass(frozen=True, slots=True)
class Settings:
    client_id: str | None = None
    client_secret: str | None = None
    authorize_url: str = DEFAULT_AUTHORIZE_URL
    token_url: str = DEFAULT_TOKEN_URL
    api_url: str = DEFAULT_API_URL
    redirect_uri: str = DEFAULT_REDIRECT_URI
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        """Build settings from ``env`` (``os.environ`` when omitted)."""

        e = os.environ if env is None else env

        raw_timeout = _first_env(e, "ANNUAL_EAT_HTTP_TIMEOUT")
        if raw_timeout is None:
            timeout = DEFAULT_HTTP_TIMEOUT
        else:
            try:
                timeout = float(raw_timeout)
            except ValueError as exc:
                raise ConfigError(
                    f"ANNUAL_EAT_HTTP_TIMEOUT must be a number, got {raw_timeout!r}"
                ) from exc
            if timeout <= 0:
                raise ConfigError("ANNUAL_EAT_HTTP_TIMEOUT must be positive")

        return cls(
            client_id=_first_env(e, "ANNUAL_EAT_CLIENT_ID", "CLIENT_ID"),
            client_secret=_first_env(e, "ANNUAL_EAT_CLIENT_SECRET", "CLIENT_SECRET"),
            authorize_url=_first_env(e, "ANNUAL_EAT_AUTHORIZE_URL") or DEFAULT_AUTHORIZE_URL,
            token_url=_first_env(e, "ANNUAL_EAT_TOKEN_URL") or DEFAULT_TOKEN_URL,
            api_url=_first_env(e, "ANNUAL_EAT_API_URL") or DEFAULT_API_URL,
            redirect_uri=_first_env(e, "ANNUAL_EAT_REDIRECT_URI") or DEFAULT_REDIRECT_URI,
            http_timeout=timeout,
        )

    def require_client_id(self) -> str:
        if not self.client_id:
            raise ConfigError("ANNUAL_EAT_CLIENT_ID (or CLIENT_ID) is not set")
        return self.client_id

    def require_credentials(self) -> tuple[str, str]:
        """Return ``(client_id, client_secret)`` or raise naming what is missing."""

        client_id = self.client_id or ""
        client_secret = self.client_secret or ""
        missing = []
        if not client_id:
            missing.append("ANNUAL_EAT_CLIENT_ID")
        if not client_secret:
            missing.append("ANNUAL_EAT_CLIENT_SECRET")
        if missing:
            raise ConfigError("missing OAuth credentials: " + ", ".join(missing))
        return client_id, client_secret


__all__ = ["Settings"]
