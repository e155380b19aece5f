import json

import pytest

from sdc.msschema import (
    EOD,
    EODBody,
    Pagination,
    StockExchangeName,
    Tickers,
    TickersBody,
)

TICKERS_JSON = json.dumps(
    {
        "pagination": {"limit": 100, "offset": 0, "count": 1, "total": 1},
        "data": [
            {
                "name": "Microsoft Corporation",
                "symbol": "MSFT",
                "has_intraday": False,
                "has_eod": True,
                "country": None,
                "stock_exchange": {"name": "NASDAQ Stock Exchange", "acronym": "NASDAQ"},
            }
        ],
    }
)


def test_tickers_body_parses_nested_records():
    body = TickersBody.from_dict(json.loads(TICKERS_JSON))
    assert len(body.data) == 1
    ticker = body.data[0]
    assert ticker.symbol == "MSFT"
    assert ticker.has_eod is True
    assert ticker.country == ""
    assert ticker.stock_exchange == StockExchangeName("NASDAQ Stock Exchange")


def test_tickers_round_trip():
    ticker = Tickers("Apple Inc", "AAPL", True, True, "USA", StockExchangeName("NASDAQ"))
    assert Tickers.from_dict(ticker.to_dict()) == ticker


def test_tickers_to_dict_uses_json_tags():
    data = Tickers(symbol="AAPL").to_dict()
    assert set(data) == {
        "name",
        "symbol",
        "has_intraday",
        "has_eod",
        "country",
        "stock_exchange",
    }
    assert data["stock_exchange"] == {"name": ""}


def test_keys_match_case_insensitively():
    assert Tickers.from_dict({"SYMBOL": "AAPL"}).symbol == "AAPL"


def test_eod_accepts_integers_for_floats():
    eod = EOD.from_dict({"open": 10, "symbol": "MSFT"})
    assert eod.open == 10.0
    assert isinstance(eod.open, float)


def test_eod_round_trip():
    eod = EOD(open=1.5, close=2.5, volume=100.0, symbol="MSFT", date="2024-06-30")
    assert EOD.from_dict(json.loads(json.dumps(eod.to_dict()))) == eod


def test_eod_wrong_type_raises():
    with pytest.raises(TypeError):
        EOD.from_dict({"open": "abc"})


def test_from_dict_rejects_non_object():
    with pytest.raises(TypeError):
        Tickers.from_dict(["MSFT"])


def test_eod_body_null_data_is_empty():
    assert EODBody.from_dict({"data": None}).data == []


def test_eod_body_parses_rows():
    body = EODBody.from_dict({"data": [{"symbol": "A"}, {"symbol": "B"}]})
    assert [row.symbol for row in body.data] == ["A", "B"]


def test_pagination_rejects_fractional_int():
    with pytest.raises(TypeError):
        Pagination.from_dict({"limit": 1.5})