"""Normalisation of table labels and cell texts scraped from financial pages."""

from __future__ import annotations

import datetime as _dt
import re
from typing import Any

_KEY_REPLACEMENTS = (
    (" ", "_"),
    ("&", "_"),
    ("/", "_"),
    ("-", "_"),
    (",", "_"),
    ("'", ""),
    ("(", ""),
    (")", ""),
    (".", ""),
)
_UNDERSCORES = re.compile(r"_+")
_KEY_ALIASES = {"quarter_ending": "period_ending"}

_PARENTHESISED = re.compile(r"\(.*\)")
_SCALED_NUMBER = re.compile(r"[.\d]+[KBMT%]?", re.ASCII)
_INTEGER = re.compile(r"[+-]?\d+", re.ASCII)
_MULTIPLIERS = {
    "K": 1000.0,
    "M": 1000.0 * 1000,
    "B": 1000.0 * 1000 * 1000,
    "T": 1000.0 * 1000 * 1000 * 1000,
    "%": 1.0 / 100,
}

_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)
_FISCAL_PERIOD = re.compile(r"([QH])(\d) (\d{4})", re.ASCII)
_FISCAL_DATE = re.compile(r"[QH]\d \d{4}", re.ASCII)
_LETTERS = re.compile(r"[a-zA-Z]+")

# Fiscal period -> (month-day of its last day, shift applied to the year)
_QUARTER_ENDS = {
    "1": ("09-30", -1),
    "2": ("12-31", -1),
    "3": ("03-31", 0),
    "4": ("06-30", 0),
}
_HALF_ENDS = {
    "1": ("06-30", 0),
    "2": ("12-31", 0),
}


def normalise_json_key(key: str) -> str:
    """Turn a table label such as ``"EPS (Diluted)"`` into a JSON key."""
    key = key.lower().strip()
    for old, new in _KEY_REPLACEMENTS:
        key = key.replace(old, new)
    key = _UNDERSCORES.sub("_", key)
    return _KEY_ALIASES.get(key, key)


def normalise_value_to_numeric(value: str) -> tuple[str, int, float]:
    """Split a cell text into its bare number, its sign and its multiplier.

    ``"n/a"`` and a lone ``"-"`` give ``("0", 0, 0.0)``.
    """
    value = value.replace(" ", "")
    if value.lower() == "n/a":
        return "0", 0, 0.0

    for unwanted in ('"', ",", "$"):
        value = value.replace(unwanted, "")
    value = _PARENTHESISED.sub("", value)
    if not value:
        raise ValueError("empty numeric value")

    sign = 1
    if value[0] == "-":
        if len(value) == 1:
            return "0", 0, 0.0
        sign = -1
        value = value[1:]
    if value[0] == "+":
        value = value[1:]

    multiplier = 1.0
    base = value
    if _SCALED_NUMBER.fullmatch(value) and value[-1] in _MULTIPLIERS:
        multiplier = _MULTIPLIERS[value[-1]]
        base = value[:-1]
    return base, sign, multiplier


def string_to_float(value: str) -> float:
    """Convert a cell text such as ``"1.5B"`` or ``"-3.2%"`` to a float."""
    base, sign, multiplier = normalise_value_to_numeric(value)
    if "_" in base:
        raise ValueError(f"invalid number {value!r}")
    try:
        number = float(base)
    except ValueError as exc:
        raise ValueError(f"invalid number {value!r}") from exc
    return float(sign) * number * multiplier


def string_to_int(value: str) -> int:
    """Convert a cell text such as ``"12K"`` to an integer."""
    base, sign, multiplier = normalise_value_to_numeric(value)
    if not _INTEGER.fullmatch(base):
        raise ValueError(f"invalid integer {value!r}")
    return int(float(sign) * float(int(base)) * multiplier)


def string_to_date(value: str) -> str:
    """Convert a date text to ``YYYY-MM-DD``.

    Accepts ``2006-01-02``, ``Jan 2, 2006`` and ``Jan '06``; the last one
    means the first day of that month.
    """
    if _ISO_DATE.fullmatch(value):
        try:
            return _dt.datetime.strptime(value, "%Y-%m-%d").date().isoformat()
        except ValueError:
            pass
    try:
        return _dt.datetime.strptime(value, "%b %d, %Y").date().isoformat()
    except ValueError:
        pass
    try:
        parsed = _dt.datetime.strptime(value, "%b '%y")
    except ValueError as exc:
        raise ValueError(f"unsupported date {value!r}") from exc
    return _dt.date(parsed.year, parsed.month, 1).isoformat()


def convert_fiscal_to_date(value: str) -> str:
    """Return the last day of a fiscal period such as ``"Q1 2006"`` or ``"H2 2006"``."""
    match = _FISCAL_PERIOD.search(value)
    if match is None:
        raise ValueError(f"unsupported date format, {value}")
    kind, period, year = match.groups()
    ends = _QUARTER_ENDS if kind == "Q" else _HALF_ENDS
    try:
        month_day, shift = ends[period]
    except KeyError:
        raise ValueError(f"unsupported date format, {value}") from None
    if shift:
        year = str(int(year) + shift)
    return f"{year}-{month_day}"


def is_valid_date(value: str) -> bool:
    try:
        string_to_date(value)
    except ValueError:
        return False
    return True


def is_fiscal_date(value: str) -> bool:
    return _FISCAL_DATE.search(value) is not None


def is_valid_value(value: str) -> bool:
    """Whether a cell holds data: not ``"-"``, and no letters unless it is a date."""
    value = value.strip()
    if value == "-":
        return False
    if _LETTERS.search(value) and not is_valid_date(value) and not is_fiscal_date(value):
        return False
    return True


def fill_default_value(value: str) -> str | None:
    """Return ``"0"`` for an empty or ``"-"`` cell, None for anything else."""
    value = value.strip()
    if value in ("", "-"):
        return "0"
    return None


def _is_date_type(value_type: Any) -> bool:
    return isinstance(value_type, type) and issubclass(value_type, _dt.date)


def normalise_json_value(value: str, value_type: Any) -> Any:
    """Convert a cell text to a JSON value for a field of ``value_type``.

    Floats and ints are parsed; strings are kept. Date fields keep the text,
    except that fiscal periods become the ``YYYY-MM-DD`` of their last day.
    Any other type gives None.
    """
    value = value.strip()
    converted: Any = None
    if value_type is float:
        converted = string_to_float(value)
    elif value_type is int:
        converted = string_to_int(value)
    elif value_type is str or _is_date_type(value_type):
        converted = value

    if _is_date_type(value_type) and is_fiscal_date(value):
        converted = string_to_date(convert_fiscal_to_date(value))
    return converted