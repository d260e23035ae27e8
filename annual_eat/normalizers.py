"""Raw transaction → :class:`NormalizedRecord` normalization.

Rules, applied to each entity in order:

1. Flip the sign and round to two decimals; drop the entity when the result is
   negative (it was not an expenditure).
2. Collapse per-vehicle licence plate codes (``沪`` followed by 4–7 letters or
   digits, any case) into the single merchant ``班车``.
3. Drop merchants in the excluded categories (electric-bike services,
   swimming, deductions, showers, the textbook office, the campus hospital,
   top-ups).
4. Drop entities without a completed payment (``pay_time == 0``).

The kept records are returned sorted by ``pay_time``; ties keep their input
order.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from .logging_setup import get_logger
from .models import NormalizedRecord, RawTransaction

SHUTTLE_MERCHANT = "班车"

EXCLUDED_MERCHANT_KEYWORDS: tuple[str, ...] = (
    "电瓶车",
    "游泳",
    "核减",
    "浴室",
    "教材科",
    "校医院",
    "充值",
)

_PLATE_RE = re.compile(r"^沪[0-9A-Z]{4,7}$", re.IGNORECASE)
_EXCLUDED_RE = re.compile("|".join(re.escape(k) for k in EXCLUDED_MERCHANT_KEYWORDS))

_CENT = Decimal("0.01")

_logger = get_logger("annual_eat.normalizers")


def round_amount(value: float) -> float:
    """Round ``value`` to two decimals, halves away from zero.

    The float's shortest decimal representation is quantized, so ``15.005``
    becomes ``15.01`` even though its binary value is slightly below the
    midpoint. Negative zero is returned as ``0.0``.
    """

    q = Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)
    return float(q) or 0.0


def normalize_merchant(name: str) -> str:
    """Return the aggregation key for a raw merchant name."""

    s = name.strip()
    if _PLATE_RE.match(s):
        return SHUTTLE_MERCHANT
    return s


def is_excluded_merchant(name: str) -> bool:
    """Whether ``name`` belongs to a category left out of the report."""

    return _EXCLUDED_RE.search(name) is not None


def normalize_transactions(entities: Iterable[RawTransaction]) -> list[NormalizedRecord]:
    """Clean, filter and chronologically sort a batch of raw transactions."""

    records: list[NormalizedRecord] = []
    seen = 0
    for e in entities:
        seen += 1
        adj_amount = round_amount(-e.amount)
        if adj_amount < 0:
            _logger.debug("dropping non-expenditure %r (amount=%s)", e.merchant, e.amount)
            continue

        merchant = normalize_merchant(e.merchant)
        if is_excluded_merchant(merchant):
            _logger.debug("dropping excluded merchant %r", merchant)
            continue

        if e.pay_time == 0:
            _logger.debug("dropping unpaid transaction at %r", merchant)
            continue

        records.append(
            NormalizedRecord(
                merchant=e.merchant,
                amount=adj_amount,
                order_time=e.order_time,
                pay_time=e.pay_time,
                normalized_merchant=merchant,
            )
        )

    # list.sort is stable, so equal pay times keep their input order.
    records.sort(key=lambda r: r.pay_time)
    _logger.info("normalized %d of %d transactions", len(records), seen)
    return records


__all__ = [
    "EXCLUDED_MERCHANT_KEYWORDS",
    "SHUTTLE_MERCHANT",
    "is_excluded_merchant",
    "normalize_merchant",
    "normalize_transactions",
    "round_amount",
]
