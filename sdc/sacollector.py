"""Collection of overview, financial statement and rating data for stock symbols."""

from __future__ import annotations

import enum
import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sdc.common import JsonFieldMetadata, get_json_struct_metadata
from sdc.errors import HttpServerError
from sdc.htmldom import parse_html, search_text
from sdc.saparser import SAHTMLParser

BASE_URL = "https://stockanalysis.com/stocks/"
NO_DATA_PATTERN = "No quarterly.*available for this stock"
SYMBOL_FIELD = "Symbol"

_HTTP_NOT_FOUND = 404
_REDIRECTED_SYMBOL = re.compile(r"stocks/([A-Za-z]+)/")

_module_logger = logging.getLogger(__name__)


class SADataKind(enum.Enum):
    """The kinds of data collected for a symbol."""

    REDIRECTED_SYMBOLS = "redirected_symbols"
    STOCK_OVERVIEW = "stock_overview"
    FINANCIALS_INCOME = "financials_income"
    FINANCIALS_BALANCE_SHEET = "financials_balance_sheet"
    FINANCIALS_CASH_FLOW = "financials_cash_flow"
    FINANCIAL_RATIOS = "financial_ratios"
    ANALYSTS_RATING = "analysts_rating"


@dataclass(frozen=True)
class SATable:
    """A database table and the record type stored in it."""

    name: str
    entity_type: type

    @property
    def struct_name(self) -> str:
        return self.entity_type.__name__


@dataclass
class _SymbolRow:
    symbol: str = ""


def _dumps(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"))


class SACollector:
    """Reads symbol pages, decodes their tables and stores the records."""

    def __init__(
        self,
        reader: Any,
        exporter: Any,
        db: Any,
        tables: Mapping[SADataKind, SATable],
        logger: logging.Logger | None = None,
    ) -> None:
        missing = [kind.name for kind in SADataKind if kind not in tables]
        if missing:
            raise ValueError(f"no table given for {', '.join(missing)}")
        self.reader = reader
        self.exporter = exporter
        self.loader = db
        self.tables: dict[SADataKind, SATable] = dict(tables)
        self.logger = logger or _module_logger
        self.metrics_fields: dict[str, dict[str, JsonFieldMetadata]] = {
            table.struct_name: get_json_struct_metadata(table.entity_type)
            for table in self.tables.values()
        }
        self.html_parser = SAHTMLParser(self.metrics_fields, self.logger)
        self.symbol = ""

    def set_symbol(self, symbol: str) -> None:
        self.symbol = symbol

    def create_tables(self) -> None:
        for table in self.tables.values():
            self.loader.create_table_by_json_struct(table.name, table.entity_type)
        self.logger.info("All tables created")

    def _load(self, json_text: str, table: SATable) -> int:
        try:
            rows = self.loader.load_by_json_text(json_text, table.name, table.entity_type)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to load data into table {table.name}. Error: {exc}"
            ) from exc
        self.logger.info("%s rows have been loaded into %s", rows, table.name)
        return rows

    def map_redirected_symbol(self, symbol: str) -> str | None:
        """Record and return the symbol that ``symbol`` now redirects to, if any."""
        redirected = self._redirected_symbol(symbol)
        if not redirected:
            return None
        json_text = _dumps([{"symbol": symbol, "redirected_symbol": redirected}])
        self.logger.debug("JSON text generated - %s", json_text)
        self._load(json_text, self.tables[SADataKind.REDIRECTED_SYMBOLS])
        return redirected

    def _redirected_symbol(self, symbol: str) -> str | None:
        symbol = symbol.lower()
        url = f"{BASE_URL}{symbol}/financials/?p=quarterly"
        redirected_url = self.reader.redirected_url(url)
        if redirected_url == url:
            self.logger.info("no redirected symbol found for %s", symbol)
            return None
        match = _REDIRECTED_SYMBOL.search(redirected_url)
        return match.group(1) if match else None

    def _symbol_exists(self, symbol: str, table: str) -> bool:
        sql = f"SELECT symbol FROM {table} where symbol = '{symbol}'"
        try:
            results = self.loader.run_query(sql, _SymbolRow)
        except Exception as exc:
            raise RuntimeError(f"Failed to run query [{sql}]. Error: {exc}") from exc
        if not isinstance(results, list):
            raise TypeError("the query results are not returned as a list of rows")
        return len(results) > 0

    def _already_collected(self, symbol: str, table: SATable) -> bool:
        try:
            exists = self._symbol_exists(symbol, table.name)
        except (RuntimeError, TypeError) as exc:
            self.logger.warning("%s", exc)
            return False
        if exists:
            self.logger.info("skip [%s] as it already exists in %s.", symbol, table.name)
        return exists

    def collect_financial_overview(self, symbol: str) -> int:
        """Store the overview of ``symbol``; returns the number of rows loaded."""
        self.symbol = symbol
        table = self.tables[SADataKind.STOCK_OVERVIEW]
        if self._already_collected(symbol, table):
            return 0
        json_text = self._read_overview_page(BASE_URL + symbol, table.struct_name)
        return self._load(json_text, table)

    def collect_financial_details(self, symbol: str) -> None:
        """Collect every kind of data; raises the last failure after trying all."""
        last_error: Exception | None = None
        for collect in (
            self.collect_financial_overview,
            self.collect_financials_income,
            self.collect_financials_balance_sheet,
            self.collect_financials_cash_flow,
            self.collect_financials_ratios,
            self.collect_analyst_ratings,
        ):
            try:
                collect(symbol)
            except Exception as exc:
                self.logger.warning("%s", exc)
                last_error = exc
        if last_error is not None:
            raise last_error

    def collect_financials_income(self, symbol: str) -> int:
        return self._collect_statement(
            symbol, "/financials/?p=quarterly", SADataKind.FINANCIALS_INCOME
        )

    def collect_financials_balance_sheet(self, symbol: str) -> int:
        return self._collect_statement(
            symbol,
            "/financials/balance-sheet/?p=quarterly",
            SADataKind.FINANCIALS_BALANCE_SHEET,
        )

    def collect_financials_cash_flow(self, symbol: str) -> int:
        return self._collect_statement(
            symbol,
            "/financials/cash-flow-statement/?p=quarterly",
            SADataKind.FINANCIALS_CASH_FLOW,
        )

    def collect_financials_ratios(self, symbol: str) -> int:
        return self._collect_statement(
            symbol, "/financials/ratios/?p=quarterly", SADataKind.FINANCIAL_RATIOS
        )

    def collect_analyst_ratings(self, symbol: str) -> int:
        """Store the analyst ratings; a missing ratings page is not an error."""
        self.symbol = symbol
        url = f"{BASE_URL}{symbol.lower()}/ratings"
        table = self.tables[SADataKind.ANALYSTS_RATING]
        if self._already_collected(symbol, table):
            return 0
        try:
            json_text = self._read_analyst_ratings_page(url, table.struct_name)
        except HttpServerError as exc:
            if exc.status_code == _HTTP_NOT_FOUND:
                self.logger.info(
                    "No Analyst Rating page found for symbol %s, url %s. Ignore.",
                    self.symbol, url,
                )
                return 0
            raise
        return self._load(json_text, table)

    def _collect_statement(self, symbol: str, path: str, kind: SADataKind) -> int:
        self.symbol = symbol
        url = f"{BASE_URL}{symbol.lower()}{path}"
        table = self.tables[kind]
        if self._already_collected(symbol, table):
            return 0
        json_text = self._read_financial_details_page(url, table.struct_name)
        if json_text:
            try:
                self.exporter.export(table.entity_type, table.name, json_text, self.symbol)
            except Exception as exc:
                raise RuntimeError(
                    f"Failed to load data into table {table.name}. Error: {exc}"
                ) from exc
        else:
            self.logger.info("No data got from %s", url)
        return 0

    def _read_overview_page(self, url: str, struct_name: str) -> str:
        self.logger.info("Read %s", url)
        document = parse_html(self.reader.read(url, None))
        try:
            indicators = self.html_parser.decode_overview_pages(document, struct_name)
        except ValueError as exc:
            raise ValueError(f"Failed to parse {url}. Error: {exc}") from exc
        if not indicators:
            raise ValueError(f"No indicator found from overall page {url}")
        self._pack_symbol_field(indicators, struct_name)
        json_text = _dumps([indicators])
        self.logger.debug("JSON text generated - %s", json_text)
        return json_text

    def _read_analyst_ratings_page(self, url: str, struct_name: str) -> str:
        self.logger.info("Read %s", url)
        document = parse_html(self.reader.read(url, None))
        try:
            indicators = self.html_parser.decode_analyst_ratings_grid(document, struct_name)
        except ValueError as exc:
            raise ValueError(f"Failed to parse {url}. Error: {exc}") from exc
        if not indicators:
            raise ValueError(f"No indicator found from analyst ratings page {url}")
        self._pack_symbol_field(indicators, struct_name)
        json_text = _dumps([indicators])
        self.logger.debug("JSON text generated - %s", json_text)
        return json_text

    def _read_financial_details_page(self, url: str, struct_name: str) -> str | None:
        """Return the page's data points as JSON, or None if it has no data."""
        self.logger.info("Load data from %s", url)
        document = parse_html(self.reader.read(url, None))
        if search_text(document, NO_DATA_PATTERN) is not None:
            return None
        try:
            data_points = self.html_parser.decode_financials_page(document, struct_name)
        except ValueError as exc:
            raise ValueError(f"Failed to parse {url}. Error: {exc}") from exc
        if not data_points:
            raise ValueError(f"No indicator found from financials {url}")
        for point in data_points:
            self._pack_symbol_field(point, struct_name)
        json_text = _dumps(data_points)
        self.logger.debug("JSON text generated - %s", json_text)
        return json_text

    def _pack_symbol_field(self, metrics: dict[str, Any], struct_name: str) -> None:
        fields = self.metrics_fields.get(struct_name, {})
        has_symbol = any(name.casefold() == SYMBOL_FIELD.casefold() for name in fields)
        if has_symbol and SYMBOL_FIELD not in metrics:
            metrics[SYMBOL_FIELD] = self.symbol


def collect_financials_for_symbol(collector: SACollector, symbol: str) -> str:
    """Create the tables and collect everything for ``symbol``, following a redirect.

    Returns the symbol the data was collected under.
    """
    try:
        collector.create_tables()
    except Exception as exc:
        collector.logger.error("Failed to create tables. Error: %s", exc)
        raise

    try:
        redirected = collector.map_redirected_symbol(symbol)
    except HttpServerError as exc:
        if exc.status_code == _HTTP_NOT_FOUND:
            collector.logger.info("Symbol %s not found", symbol)
        raise
    if redirected:
        collector.logger.info("Symbol %s is redirected to %s", symbol, redirected)
        symbol = redirected

    collector.collect_financial_details(symbol)
    print("Collect financials for symbol " + symbol)
    return symbol