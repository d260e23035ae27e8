"""HTML rendering of a :class:`~annual_eat.models.Report`.

The page is a single self-contained document (inline CSS, Chart.js from a
CDN) filled in with :class:`string.Template`. Merchant names are escaped for
HTML and the chart data is embedded as JSON inside a ``<script>`` block.
"""

from __future__ import annotations

import json
from functools import cache
from html import escape
from importlib import resources
from string import Template

from .models import Report

EMPTY_REPORT_HTML = "<html><body><h1>无有效消费记录</h1></body></html>"

OTHER_MERCHANTS_LABEL = "其他"


@cache
def _template() -> Template:
    text = resources.files("annual_eat").joinpath("templates/report.html").read_text(encoding="utf-8")
    return Template(text)


def _money(amount: float) -> str:
    return f"{amount:.2f}"


def _chart_json(report: Report) -> str:
    # "</" would close the surrounding <script> element.
    return json.dumps(report.chart_data(), ensure_ascii=False).replace("</", "<\\/")


def top_merchants(report: Report, n: int = 5) -> list[tuple[str, float]]:
    """Largest ``n`` merchant totals, with the remainder folded into ``其他``.

    Mirrors the grouping used by the merchant doughnut chart. Merchants with
    equal totals keep their report order.
    """

    ranked = sorted(report.merchant_amount.items(), key=lambda kv: kv[1], reverse=True)
    top = list(ranked[:n])
    rest = round(sum(v for _, v in ranked[n:]), 2)
    if rest > 0:
        top.append((OTHER_MERCHANTS_LABEL, rest))
    return top


def render_report(report: Report) -> str:
    """Return the complete HTML document for ``report``."""

    return _template().substitute(
        year=report.year,
        total_amount=_money(report.total_amount),
        first_meal_location=escape(report.first_meal.location),
        first_meal_time=report.first_meal.time,
        first_meal_amount=_money(report.first_meal.amount),
        max_meal_location=escape(report.max_meal.location),
        max_meal_time=report.max_meal.time,
        max_meal_amount=_money(report.max_meal.amount),
        most_frequent_location=escape(report.most_frequent_location),
        most_frequent_count=report.most_frequent_count,
        most_frequent_amount=_money(report.most_frequent_amount),
        most_spent_location=escape(report.most_spent_location),
        most_spent_amount=_money(report.most_spent_amount),
        most_spent_count=report.most_spent_count,
        breakfast_count=report.breakfast_count,
        lunch_count=report.lunch_count,
        dinner_count=report.dinner_count,
        earliest_meal_location=escape(report.earliest_meal.location),
        earliest_meal_time=report.earliest_meal.time,
        earliest_meal_amount=_money(report.earliest_meal.amount),
        peak_month=report.peak_month,
        peak_month_amount=_money(report.peak_month_amount),
        chart_json=_chart_json(report),
    )


__all__ = ["EMPTY_REPORT_HTML", "render_report", "top_merchants"]
