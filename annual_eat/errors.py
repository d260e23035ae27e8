"""Exception types raised by ``annual_eat``.

Pure pipeline functions raise these and never catch them; the CLI and the HTTP
service translate them into exit codes and responses.
"""

from __future__ import annotations

from typing import Literal


class AnnualEatError(Exception):
    """Base class for all package errors."""


class NoDataError(AnnualEatError):
    """There is nothing to analyze.

    ``reason`` is ``"empty"`` when the raw batch had no entities and
    ``"filtered"`` when every entity was discarded during normalization.
    """

    def __init__(self, reason: Literal["empty", "filtered"], *, raw_count: int = 0) -> None:
        self.reason = reason
        self.raw_count = raw_count
        if reason == "empty":
            msg = "no transactions to analyze: the batch is empty"
        else:
            msg = (
                f"no transactions to analyze: all {raw_count} entities were "
                "filtered out during normalization"
            )
        super().__init__(msg)


class UpstreamError(AnnualEatError):
    """jAccount or the transactions API rejected a request."""

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        self.status = status
        self.body = body
        super().__init__(message)


class ConfigError(AnnualEatError):
    """Required configuration is missing or malformed."""
