"""Public orchestration for ``annual_eat``.

:func:`build_report` is the single entry point into the pipeline: it rejects
an empty batch, normalizes, rejects a batch that normalizes to nothing, and
then analyzes. Both rejections raise :class:`~annual_eat.errors.NoDataError`
so callers never see a report built from zero records.
"""

from __future__ import annotations

from collections.abc import Iterable

from .analysis import analyze_records
from .errors import NoDataError
from .logging_setup import get_logger
from .models import RawTransaction, Report
from .normalizers import normalize_transactions
from .render import render_report

_logger = get_logger("annual_eat.api")


def build_report(entities: Iterable[RawTransaction]) -> Report:
    """Normalize ``entities`` and compute the yearly report.

    Raises
    ------
    NoDataError
        ``reason="empty"`` when ``entities`` is empty, ``reason="filtered"``
        when nothing survives normalization.
    """

    raw = list(entities)
    if not raw:
        raise NoDataError("empty")

    records = normalize_transactions(raw)
    if not records:
        _logger.warning("all %d transactions were filtered out", len(raw))
        raise NoDataError("filtered", raw_count=len(raw))

    return analyze_records(records)


def generate_report_html(entities: Iterable[RawTransaction]) -> str:
    """Build the report for ``entities`` and render it as HTML."""

    return render_report(build_report(entities))


__all__ = ["build_report", "generate_report_html"]
