from __future__ import annotations

from datetime import date, datetime

import pytest

from trainingdb.apps.training.dates import (
    add_months,
    days_until,
    first_of_month,
    format_iso_date,
    parse_iso_date,
)


@pytest.mark.parametrize(
    "base, months, expected",
    [
        (date(2024, 1, 31), 1, date(2024, 2, 29)),
        (date(2023, 1, 31), 1, date(2023, 2, 28)),
        (date(2024, 11, 30), 3, date(2025, 2, 28)),
        (date(2024, 1, 15), 12, date(2025, 1, 15)),
        (date(2024, 8, 31), 1, date(2024, 9, 30)),
        (date(2024, 3, 31), -1, date(2024, 2, 29)),
        (date(2025, 1, 10), -13, date(2023, 12, 10)),
    ],
)
def test_add_months_clamps_to_month_end(base, months, expected):
    assert add_months(base, months) == expected


def test_add_months_zero_is_identity():
    d = date(2024, 2, 29)
    assert add_months(d, 0) == d


def test_days_until_is_signed_and_none_for_missing_date():
    today = date(2025, 3, 15)
    assert days_until(None, today) is None
    assert days_until(today, today) == 0
    assert days_until(date(2025, 3, 14), today) == -1
    assert days_until(date(2025, 4, 14), today) == 30


def test_parse_iso_date_is_lenient():
    assert parse_iso_date("2025-02-03") == date(2025, 2, 3)
    assert parse_iso_date("  2025-02-03 ") == date(2025, 2, 3)
    assert parse_iso_date("2025-02-03T10:30:00") == date(2025, 2, 3)
    assert parse_iso_date(datetime(2025, 2, 3, 23, 59)) == date(2025, 2, 3)
    assert parse_iso_date(date(2025, 2, 3)) == date(2025, 2, 3)

    assert parse_iso_date(None) is None
    assert parse_iso_date("") is None
    assert parse_iso_date("2025-02-30") is None
    assert parse_iso_date("next tuesday") is None


def test_format_and_first_of_month():
    assert format_iso_date(None) == ""
    assert format_iso_date(date(2025, 1, 5)) == "2025-01-05"
    assert first_of_month(date(2025, 1, 31)) == date(2025, 1, 1)


def test_parse_iso_date_rejects_trailing_garbage():
    assert parse_iso_date("2024-01-15garbage") is None
    assert parse_iso_date("2024-01-15 xyz") is None


def test_add_months_past_max_year_raises():
    with pytest.raises(ValueError):
        add_months(date(2024, 1, 1), 120000)
