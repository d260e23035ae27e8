"""Public interface for the ``annual_eat`` package.

Re-exports the pipeline entry points and the public models. There is no
runtime logic here.
"""

from .analysis import analyze_records
from .api import build_report, generate_report_html
from .errors import AnnualEatError, ConfigError, NoDataError, UpstreamError
from .models import (
    EatEntity,
    EatResponse,
    MealMoment,
    NormalizedRecord,
    RawTransaction,
    Report,
    TokenResponse,
)
from .normalizers import normalize_transactions
from .render import render_report

__all__ = [
    # API
    "analyze_records",
    "build_report",
    "generate_report_html",
    "normalize_transactions",
    "render_report",
    # Models
    "RawTransaction",
    "NormalizedRecord",
    "MealMoment",
    "Report",
    "EatEntity",
    "EatResponse",
    "TokenResponse",
    # Errors
    "AnnualEatError",
    "ConfigError",
    "NoDataError",
    "UpstreamError",
]
