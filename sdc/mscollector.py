"""Collection of tickers and end-of-day prices from the market-data API."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sdc.common import TABLE_MS_TICKERS
from sdc.errors import HttpServerError
from sdc.msschema import EOD, EODBody, Tickers, TickersBody

TICKERS_URL = "http://api.marketstack.com/v1/tickers"
EOD_URL = "http://api.marketstack.com/v1/eod"
TABLE_MS_EOD = "ms_eod"

_module_logger = logging.getLogger(__name__)


@dataclass
class _SymbolRow:
    symbol: str = ""


def _dumps(records: list[Any]) -> str:
    return json.dumps([record.to_dict() for record in records], separators=(",", ":"))


def _parse(cls: Any, json_text: str) -> Any:
    try:
        return cls.from_dict(json.loads(json_text))
    except (ValueError, TypeError) as exc:
        raise ValueError(f"Failed to unmarshal json text, Error: {exc}") from exc


class MSCollector:
    """Fetches market-data records and loads them into a database schema."""

    def __init__(
        self,
        loader: Any,
        reader: Any,
        schema: str,
        logger: logging.Logger | None = None,
    ) -> None:
        loader.create_schema(schema)
        loader.exec("SET search_path TO " + schema)
        self.loader = loader
        self.reader = reader
        self.schema = schema
        self.logger = logger or _module_logger
        self.access_key = os.environ.get("MSACCESSKEY", "")

    def _read(self, url: str, params: dict[str, str] | None) -> str:
        try:
            return self.reader.read(url, params)
        except (HttpServerError, ConnectionError) as exc:
            raise RuntimeError(f"Failed to load data from url {url}, Error: {exc}") from exc

    def _load(self, json_text: str, table: str, entity_type: Any) -> int:
        try:
            return self.loader.load_by_json_text(json_text, table, entity_type)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to load json text to table {table}. Error: {exc}"
            ) from exc

    def collect_tickers(self) -> int:
        """Fetch all tickers and load them; returns the number of rows loaded."""
        json_text = self._read(TICKERS_URL, None)
        self.loader.create_table_by_json_struct(TABLE_MS_TICKERS, Tickers)
        return self.load_to_db(json_text)

    def load_to_db(self, json_text: str) -> int:
        """Load the ``data`` array of a tickers response into the tickers table."""
        body = _parse(TickersBody, json_text)
        rows = self._load(_dumps(body.data), TABLE_MS_TICKERS, Tickers)
        self.logger.info("%d rows were loaded into %s:%s table", rows, self.schema, TABLE_MS_TICKERS)
        return rows

    def collect_eod(self) -> None:
        """Fetch end-of-day prices for up to 20 known tickers."""
        sql = f"select symbol from {self.schema}.{TABLE_MS_TICKERS} limit 20"
        try:
            results = self.loader.run_query(sql, _SymbolRow)
        except Exception as exc:
            raise RuntimeError(f"Failed to run query [{sql}]. Error: {exc}") from exc
        if not isinstance(results, list):
            raise TypeError("the query results are not returned as a list of rows")

        for row in results:
            self.logger.info("Load EOD for symbol %s", row.symbol)
            json_text = self._read(EOD_URL, {"symbols": row.symbol})
            body = _parse(EODBody, json_text)
            if not body.data:
                self.logger.info("No data found for symbol %s", row.symbol)
                continue
            rows = self._load(_dumps(body.data), TABLE_MS_EOD, EOD)
            self.logger.info("%d rows were loaded into %s:%s table", rows, self.schema, TABLE_MS_EOD)

    def load_tickers_file(self, file_json: str | Path) -> int:
        """Load a JSON array of tickers from a file into the tickers table."""
        try:
            text = Path(file_json).read_text()
        except OSError as exc:
            raise OSError(f"Failed to read file {file_json}") from exc
        self.loader.create_table_by_json_struct(TABLE_MS_TICKERS, Tickers)
        return self.loader.load_by_json_text(text, TABLE_MS_TICKERS, Tickers)