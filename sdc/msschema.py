"""Record types of the market-data ticker and end-of-day API."""

import dataclasses
import typing
from dataclasses import dataclass, field
from typing import Any


def _tag(json_name: str, *, primary_key: bool = False, **kwargs: Any) -> Any:
    metadata = {"json": json_name}
    if primary_key:
        metadata["db"] = "PrimaryKey"
    return field(metadata=metadata, **kwargs)


def _zero(tp: Any) -> Any:
    if typing.get_origin(tp) is list:
        return []
    if dataclasses.is_dataclass(tp):
        return tp()
    return {float: 0.0, int: 0, bool: False, str: ""}.get(tp)


def _lookup(data: dict, key: str) -> tuple:
    if key in data:
        return True, data[key]
    folded = key.casefold()
    for candidate, value in data.items():
        if isinstance(candidate, str) and candidate.casefold() == folded:
            return True, value
    return False, None


def _decode(tp: Any, value: Any, name: str) -> Any:
    if value is None:
        return _zero(tp)
    if typing.get_origin(tp) is list:
        if not isinstance(value, list):
            raise TypeError(f"field {name}: expected an array, got {type(value).__name__}")
        (item_type,) = typing.get_args(tp)
        return [_decode(item_type, item, name) for item in value]
    if dataclasses.is_dataclass(tp):
        if not isinstance(value, dict):
            raise TypeError(f"field {name}: expected an object, got {type(value).__name__}")
        return _from_mapping(tp, value)
    if tp is float and isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if tp is int and isinstance(value, int) and not isinstance(value, bool):
        return value
    if tp in (bool, str) and isinstance(value, tp):
        return value
    raise TypeError(f"field {name}: cannot use {type(value).__name__} as {tp.__name__}")


def _from_mapping(cls: type, data: dict) -> Any:
    values = {}
    for f in dataclasses.fields(cls):
        found, raw = _lookup(data, f.metadata.get("json", f.name))
        if found:
            values[f.name] = _decode(f.type, raw, f.name)
    return cls(**values)


def _struct_from_dict(cls: type, data: Any) -> Any:
    if not isinstance(data, dict):
        raise TypeError(f"expected an object, got {type(data).__name__}")
    return _from_mapping(cls, data)


def _encode(value: Any) -> Any:
    if isinstance(value, list):
        return [_encode(item) for item in value]
    if dataclasses.is_dataclass(value):
        return {
            f.metadata.get("json", f.name): _encode(getattr(value, f.name))
            for f in dataclasses.fields(value)
        }
    return value


class _JsonStruct:
    """Conversion to and from decoded JSON objects keyed by json tags."""

    @classmethod
    def from_dict(cls, data):
        return _struct_from_dict(cls, data)

    def to_dict(self) -> dict:
        return _encode(self)


@dataclass
class StockExchangeName(_JsonStruct):
    name: str = _tag("name", default="")


@dataclass
class Tickers(_JsonStruct):
    name: str = _tag("name", default="")
    symbol: str = _tag("symbol", primary_key=True, default="")
    has_intraday: bool = _tag("has_intraday", default=False)
    has_eod: bool = _tag("has_eod", default=False)
    country: str = _tag("country", default="")
    stock_exchange: StockExchangeName = _tag(
        "stock_exchange", default_factory=StockExchangeName
    )

    @classmethod
    def from_dict(cls, data):
        """Build a ticker from a decoded JSON object."""
        return _struct_from_dict(cls, data)

    def to_dict(self) -> dict:
        """Return the ticker as a JSON object keyed by json tags."""
        return _encode(self)


@dataclass
class StockExchange(_JsonStruct):
    name: str = _tag("name", primary_key=True, default="")
    acronym: str = _tag("acronym", default="")
    mic: str = _tag("mic", default="")
    country: str = _tag("country", default="")
    country_code: str = _tag("country_code", default="")
    city: str = _tag("city", default="")
    website: str = _tag("website", default="")


@dataclass
class Intraday(_JsonStruct):
    open: float = _tag("open", default=0.0)
    high: float = _tag("high", default=0.0)
    low: float = _tag("low", default=0.0)
    last: float = _tag("last", default=0.0)
    close: float = _tag("close", default=0.0)
    volume: float = _tag("volume", default=0.0)
    date: str = _tag("date", default="")
    symbol: str = _tag("symbol", primary_key=True, default="")
    exchange: str = _tag("exchange", default="")


@dataclass
class EOD(_JsonStruct):
    open: float = _tag("open", default=0.0)
    high: float = _tag("high", default=0.0)
    low: float = _tag("low", default=0.0)
    close: float = _tag("close", default=0.0)
    volume: float = _tag("volume", default=0.0)
    adj_high: float = _tag("adj_high", default=0.0)
    adj_low: float = _tag("adj_low", default=0.0)
    adj_close: float = _tag("adj_close", default=0.0)
    adj_open: float = _tag("adj_open", default=0.0)
    adj_volume: float = _tag("adj_volume", default=0.0)
    split_factor: float = _tag("split_factor", default=0.0)
    dividend: float = _tag("dividend", default=0.0)
    symbol: str = _tag("symbol", primary_key=True, default="")
    exchange: str = _tag("exchange", default="")
    date: str = _tag("date", default="")

    @classmethod
    def from_dict(cls, data):
        """Build an end-of-day record from a decoded JSON object."""
        return _struct_from_dict(cls, data)

    def to_dict(self) -> dict:
        """Return the record as a JSON object keyed by json tags."""
        return _encode(self)


@dataclass
class Pagination(_JsonStruct):
    limit: int = _tag("limit", default=0)
    offset: int = _tag("offset", default=0)
    count: int = _tag("count", default=0)
    total: int = _tag("total", default=0)


@dataclass
class TickersBody(_JsonStruct):
    data: list[Tickers] = _tag("data", default_factory=list)

    @classmethod
    def from_dict(cls, data):
        """Build the tickers response body from a decoded JSON object."""
        return _struct_from_dict(cls, data)


@dataclass
class EODBody(_JsonStruct):
    data: list[EOD] = _tag("data", default_factory=list)

    @classmethod
    def from_dict(cls, data):
        """Build the end-of-day response body from a decoded JSON object."""
        return _struct_from_dict(cls, data)