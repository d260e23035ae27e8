"""Pytest configuration for test isolation.

The CLI loads a ``.env`` from the working directory and every entrypoint reads
jAccount settings from the environment. To keep tests hermetic, each test
runs inside its own temporary directory with the package's environment
variables removed.
"""

from __future__ import annotations

from pathlib import Path

import pytest

_ENV_VARS = (
    "ANNUAL_EAT_CLIENT_ID",
    "ANNUAL_EAT_CLIENT_SECRET",
    "ANNUAL_EAT_AUTHORIZE_URL",
    "ANNUAL_EAT_TOKEN_URL",
    "ANNUAL_EAT_API_URL",
    "ANNUAL_EAT_REDIRECT_URI",
    "ANNUAL_EAT_HTTP_TIMEOUT",
    "ANNUAL_EAT_LOG_LEVEL",
    "CLIENT_ID",
    "CLIENT_SECRET",
)


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run in a per-test working directory with a clean environment."""

    for name in _ENV_VARS:
        # setenv first so teardown also undoes values a loaded .env put there.
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
