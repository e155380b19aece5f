import datetime

import pytest

from sdc.values import (
    convert_fiscal_to_date,
    fill_default_value,
    is_fiscal_date,
    is_valid_date,
    is_valid_value,
    normalise_json_key,
    normalise_json_value,
    normalise_value_to_numeric,
    string_to_date,
    string_to_float,
    string_to_int,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("Q1 2006", "2005-09-30"),
        ("Q3 2006", "2006-03-31"),
        ("H1 2006", "2006-06-30"),
        ("H2 2006", "2006-12-31"),
    ],
)
def test_convert_fiscal_to_date(value, expected):
    assert convert_fiscal_to_date(value) == expected


def test_convert_fiscal_to_date_invalid_quarter():
    with pytest.raises(ValueError):
        convert_fiscal_to_date("Q5 2006")


def test_convert_fiscal_to_date_not_fiscal():
    with pytest.raises(ValueError):
        convert_fiscal_to_date("2006")


def test_string_to_date_iso():
    assert string_to_date("2024-06-30") == "2024-06-30"


def test_string_to_date_month_name():
    assert string_to_date("Jan 2, 2006") == "2006-01-02"


def test_string_to_date_month_and_short_year():
    assert string_to_date("Mar '24") == "2024-03-01"


def test_string_to_date_rejects_garbage():
    with pytest.raises(ValueError):
        string_to_date("Upcoming")


@pytest.mark.parametrize(
    "label, expected",
    [
        ("Quarter Ending", "period_ending"),
        ("Total Analysts", "total_analysts"),
        ("EPS (Diluted)", "eps_diluted"),
        ("R&D Expenses", "r_d_expenses"),
        ("Income Tax, Foreign", "income_tax_foreign"),
        ("  Shareholders' Equity ", "shareholders_equity"),
    ],
)
def test_normalise_json_key(label, expected):
    assert normalise_json_key(label) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        ("1.5B", ("1.5", 1, 1e9)),
        ("$1,234", ("1234", 1, 1.0)),
        ("n/a", ("0", 0, 0.0)),
        ("-", ("0", 0, 0.0)),
        ("+7K", ("7", 1, 1000.0)),
        ("12.5 (+3%)", ("12.5", 1, 1.0)),
    ],
)
def test_normalise_value_to_numeric(value, expected):
    assert normalise_value_to_numeric(value) == expected


def test_normalise_value_to_numeric_percent():
    base, sign, multiplier = normalise_value_to_numeric("-12.3%")
    assert (base, sign) == ("12.3", -1)
    assert multiplier == pytest.approx(0.01)


def test_normalise_value_to_numeric_empty():
    with pytest.raises(ValueError):
        normalise_value_to_numeric("  ")


def test_string_to_float_scaled():
    assert string_to_float("1.5B") == 1.5e9


def test_string_to_float_percent():
    assert string_to_float("-12.5%") == pytest.approx(-0.125)


def test_string_to_float_not_available():
    assert string_to_float("n/a") == 0.0


def test_string_to_float_invalid():
    with pytest.raises(ValueError):
        string_to_float("abc")


def test_string_to_int_scaled():
    assert string_to_int("12K") == 12000


def test_string_to_int_commas():
    assert string_to_int("1,234") == 1234


def test_string_to_int_rejects_fraction():
    with pytest.raises(ValueError):
        string_to_int("2.5K")


def test_is_fiscal_date():
    assert is_fiscal_date("Q1 2024")
    assert not is_fiscal_date("2024")


def test_is_valid_date():
    assert is_valid_date("Jan 2, 2006")
    assert not is_valid_date("Current")


@pytest.mark.parametrize(
    "value, expected",
    [
        ("-", False),
        ("12.3", True),
        ("Upcoming", False),
        ("Jan 2, 2006", True),
        ("Q1 2024", True),
        ("1.5B", False),
    ],
)
def test_is_valid_value(value, expected):
    assert is_valid_value(value) is expected


@pytest.mark.parametrize("value, expected", [("", "0"), (" - ", "0"), ("abc", None)])
def test_fill_default_value(value, expected):
    assert fill_default_value(value) == expected


def test_normalise_json_value_float():
    assert normalise_json_value(" 1.5B ", float) == 1.5e9


def test_normalise_json_value_int():
    assert normalise_json_value("42", int) == 42


def test_normalise_json_value_str():
    assert normalise_json_value("  Buy ", str) == "Buy"


def test_normalise_json_value_fiscal_date():
    assert normalise_json_value("Q3 2024", datetime.date) == "2024-03-31"


def test_normalise_json_value_plain_date_kept():
    assert normalise_json_value("Jan 2, 2006", datetime.date) == "Jan 2, 2006"


def test_normalise_json_value_bad_fiscal_date():
    with pytest.raises(ValueError):
        normalise_json_value("Q5 2024", datetime.date)


def test_normalise_json_value_unsupported_type():
    assert normalise_json_value("true", bool) is None