import math

import pytest

from annual_eat.models import RawTransaction
from annual_eat.normalizers import (
    EXCLUDED_MERCHANT_KEYWORDS,
    SHUTTLE_MERCHANT,
    is_excluded_merchant,
    normalize_merchant,
    normalize_transactions,
    round_amount,
)
from tests.helpers.records import cst_epoch, raw

T0 = cst_epoch(2024, 3, 1, 12, 0)


# ---- Amounts -------------------------------------------------------------------


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (20.0, 20.0),
        (15.005, 15.01),
        (2.675, 2.68),
        (3.14159, 3.14),
        (0.004, 0.0),
        (-1.005, -1.01),
    ],
)
def test_round_amount_rounds_halves_away_from_zero(value, expected):
    assert round_amount(value) == expected


def test_round_amount_never_returns_negative_zero():
    z = round_amount(-0.0)
    assert z == 0.0
    assert math.copysign(1.0, z) == 1.0


def test_amount_sign_is_flipped_and_rounded():
    out = normalize_transactions([raw("食堂A", -15.005, T0), raw("食堂B", -20, T0 + 1)])
    assert [r.amount for r in out] == [15.01, 20.0]


def test_non_expenditures_are_dropped():
    out = normalize_transactions([raw("食堂A", 5.0, T0), raw("食堂B", -3.5, T0 + 1)])
    assert [r.normalized_merchant for r in out] == ["食堂B"]


def test_zero_amount_is_kept():
    out = normalize_transactions([raw("食堂A", 0.0, T0)])
    assert len(out) == 1
    assert out[0].amount == 0.0


# ---- Merchants -----------------------------------------------------------------


@pytest.mark.parametrize(
    "name",
    ["沪A12345", "沪b1234", " 沪ab12cd3 ", "沪D9876\t", "沪abcdefg"],
)
def test_licence_plates_collapse_to_shuttle(name):
    assert normalize_merchant(name) == SHUTTLE_MERCHANT


@pytest.mark.parametrize(
    "name",
    ["沪A12", "沪A12345678", "上海沪A1234", "沪A-1234", "苏A12345"],
)
def test_non_plates_are_only_trimmed(name):
    assert normalize_merchant(f"  {name} ") == name


def test_each_excluded_keyword_is_filtered():
    entities = [raw(f"闵行{k}服务点", -1.0, T0 + i) for i, k in enumerate(EXCLUDED_MERCHANT_KEYWORDS)]
    entities.append(raw("第一食堂", -1.0, T0 + 100))
    out = normalize_transactions(entities)
    assert [r.normalized_merchant for r in out] == ["第一食堂"]


def test_is_excluded_merchant_matches_substrings():
    assert is_excluded_merchant("核减测试")
    assert is_excluded_merchant("校医院药房")
    assert not is_excluded_merchant("第二食堂")
    assert not is_excluded_merchant(SHUTTLE_MERCHANT)


def test_original_merchant_is_preserved_next_to_normalized_key():
    out = normalize_transactions([raw(" 沪A12345 ", -2.0, T0)])
    assert out[0].merchant == " 沪A12345 "
    assert out[0].normalized_merchant == SHUTTLE_MERCHANT


# ---- Validity and ordering -----------------------------------------------------


def test_unpaid_transactions_are_dropped():
    out = normalize_transactions([raw("食堂A", -3.0, 0), raw("食堂B", -4.0, T0)])
    assert [r.normalized_merchant for r in out] == ["食堂B"]


def test_output_is_sorted_by_pay_time_and_stable_for_ties():
    entities = [
        raw("C", -1.0, T0 + 30),
        raw("A", -1.0, T0 + 10),
        raw("B1", -1.0, T0 + 20),
        raw("B2", -2.0, T0 + 20),
        raw("B3", -3.0, T0 + 20),
    ]
    out = normalize_transactions(entities)
    assert [r.normalized_merchant for r in out] == ["A", "B1", "B2", "B3", "C"]


def test_other_fields_pass_through_unchanged():
    e = RawTransaction(merchant="食堂A", amount=-9.9, order_time=123, pay_time=T0)
    (r,) = normalize_transactions([e])
    assert (r.order_time, r.pay_time) == (123, T0)


def test_empty_input_gives_empty_output():
    assert normalize_transactions([]) == []


def _mixed_batch() -> list[RawTransaction]:
    return [
        raw("沪A12345", -20.0, 1700000000),
        raw("核减测试", 5, 1700000001),
        raw("食堂A", -15.005, 1700003700),
        raw("浴室", -2.0, 1700003800),
        raw("食堂B", -7.25, 0),
        raw("沪c7777", -4.0, 1700000000),
        raw("食堂A", 3.0, 1700009000),
        raw("食堂C", -0.0, 1700009100),
    ]


def test_every_record_satisfies_the_invariants():
    out = normalize_transactions(_mixed_batch())
    assert out
    assert all(r.amount >= 0 for r in out)
    assert all(r.pay_time != 0 for r in out)


def test_renormalizing_the_output_is_a_no_op():
    first = normalize_transactions(_mixed_batch())
    # Feed the normalized view back in with the upstream sign convention.
    again = normalize_transactions(
        RawTransaction(
            merchant=r.normalized_merchant,
            amount=-r.amount,
            order_time=r.order_time,
            pay_time=r.pay_time,
        )
        for r in first
    )
    assert [(r.normalized_merchant, r.amount, r.pay_time) for r in again] == [
        (r.normalized_merchant, r.amount, r.pay_time) for r in first
    ]
