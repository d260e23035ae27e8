"""Data models for ``annual_eat``.

Two families of types live here:

- Pipeline records (frozen ``dataclass`` instances): :class:`RawTransaction`
  as supplied by the upstream API, :class:`NormalizedRecord` produced by
  :mod:`annual_eat.normalizers`, and the :class:`Report` produced by
  :mod:`annual_eat.analysis`. None of them is mutated after construction.
- Wire models (pydantic): the JSON shapes exchanged with jAccount and the
  transactions API. Field names follow the upstream camelCase via aliases.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Pipeline records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RawTransaction:
    """A single transaction entity as returned by the upstream API.

    Attributes
    ----------
    merchant:
        Merchant name exactly as supplied (may carry surrounding whitespace).
    amount:
        Signed amount. Expenditures are negative upstream.
    order_time:
        Order creation time in epoch seconds.
    pay_time:
        Payment completion time in epoch seconds; ``0`` means the payment
        never completed.
    """

    merchant: str
    amount: float
    order_time: int
    pay_time: int


@dataclass(frozen=True, slots=True)
class NormalizedRecord:
    """A cleaned expenditure ready for analysis.

    ``amount`` is the sign-flipped upstream amount rounded to two decimals and
    is never negative. ``pay_time`` is never ``0``. ``normalized_merchant`` is
    the aggregation key (plate codes collapsed into one shuttle category).
    """

    merchant: str
    amount: float
    order_time: int
    pay_time: int
    normalized_merchant: str


@dataclass(frozen=True, slots=True)
class MealMoment:
    """Location, formatted local time, and amount of one highlighted record."""

    location: str
    time: str
    amount: float


@dataclass(frozen=True, slots=True)
class Report:
    """Yearly highlights plus the three aggregate breakdowns.

    The mapping fields preserve insertion order; the order of
    ``merchant_amount`` is the order in which merchants first appear in the
    chronologically sorted records. ``monthly_amount`` always has the keys
    ``"1"``..``"12"`` and ``time_distribution`` always has ``"0"``..``"23"``.
    """

    year: int
    total_amount: float
    first_meal: MealMoment
    max_meal: MealMoment
    most_frequent_location: str
    most_frequent_count: int
    most_frequent_amount: float
    most_spent_location: str
    most_spent_amount: float
    most_spent_count: int
    breakfast_count: int
    lunch_count: int
    dinner_count: int
    earliest_meal: MealMoment
    peak_month: int
    peak_month_amount: float
    merchant_amount: Mapping[str, float]
    monthly_amount: Mapping[str, float]
    time_distribution: Mapping[str, int]

    def chart_data(self) -> dict[str, dict[str, float] | dict[str, int]]:
        """Return the breakdowns keyed the way the report template expects."""

        return {
            "MerchantAmount": dict(self.merchant_amount),
            "MonthlyAmount": dict(self.monthly_amount),
            "TimeDistribution": dict(self.time_distribution),
        }


# ---------------------------------------------------------------------------
# Wire models (jAccount OAuth and the transactions API)
# ---------------------------------------------------------------------------


class EatEntity(BaseModel):
    """One transaction entity in the upstream JSON payload."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    merchant: str
    amount: float
    order_time: int = Field(alias="orderTime")
    pay_time: int = Field(alias="payTime")

    def to_raw(self) -> RawTransaction:
        return RawTransaction(
            merchant=self.merchant,
            amount=self.amount,
            order_time=self.order_time,
            pay_time=self.pay_time,
        )


class EatResponse(BaseModel):
    """Top-level body of the transactions API (also the report input file)."""

    model_config = ConfigDict(extra="ignore")

    entities: list[EatEntity] = Field(default_factory=list)
    errno: int = 0
    error: str | None = None

    def raw_transactions(self) -> list[RawTransaction]:
        return [e.to_raw() for e in self.entities]


class TokenResponse(BaseModel):
    """Access token payload returned by the jAccount token endpoint."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 0
    scope: str = ""
