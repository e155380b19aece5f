"""Workers that process one symbol at a time, and the builder that makes them."""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sdc.cache import CacheManager
from sdc.common import CACHE_KEY_PROXY, CACHE_KEY_SYMBOL, CACHE_KEY_SYMBOL_ERROR
from sdc.httpreader import HttpReader
from sdc.proxies import load_proxies

TABLE_YF_TICKERS = "yf_tickers"

_SKIPPED_SYMBOL = re.compile(r"\.|\$")
_SKIPPED_NAME = re.compile(r"- Warrants")

_module_logger = logging.getLogger(__name__)


@dataclass
class _SymbolRow:
    symbol: str = ""


def _field(record: Any, name: str) -> str:
    if not isinstance(record, dict):
        raise TypeError(f"expected an object, got {type(record).__name__}")
    for key, value in record.items():
        if isinstance(key, str) and key.casefold() == name:
            return value if isinstance(value, str) else ""
    return ""


class Worker(ABC):
    """Processes symbols with the dependencies handed over by a builder."""

    def __init__(
        self,
        db: Any = None,
        reader: Any = None,
        exporters: Any = None,
        cache: Any = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.db = db
        self.reader = reader
        self.exporters = exporters
        self.cache = cache
        self.logger = logger or _module_logger

    def init(self) -> None:
        """Set up before the first symbol; nothing is needed by default."""
        return None

    @abstractmethod
    def do(self, symbol: str) -> None:
        """Process one symbol, raising on failure."""

    def done(self) -> None:
        """Release resources after the last symbol; nothing by default."""
        return None


class CommonWorkerBuilder:
    """Collects a worker's dependencies and loads the symbols to process."""

    worker_class: type[Worker] | None = None

    def __init__(self) -> None:
        self.db: Any = None
        self.reader: Any = None
        self.exporters: Any = None
        self.cache: Any = None
        self.logger: logging.Logger | None = None
        self.params: Any = None

    @property
    def _log(self) -> logging.Logger:
        return self.logger or _module_logger

    def with_logger(self, logger: logging.Logger) -> CommonWorkerBuilder:
        self.logger = logger
        return self

    def with_db(self, db: Any) -> CommonWorkerBuilder:
        self.db = db
        return self

    def with_exporter(self, exporter: Any) -> CommonWorkerBuilder:
        self.exporters = exporter
        return self

    def with_reader(self, reader: Any) -> CommonWorkerBuilder:
        self.reader = reader
        return self

    def with_params(self, params: Any) -> CommonWorkerBuilder:
        self.params = params
        return self

    def with_cache(self, cm: Any) -> CommonWorkerBuilder:
        self.cache = cm
        return self

    def default(self) -> None:
        """Fill in the dependencies that have not been given."""
        if self.logger is None:
            self.logger = _module_logger
        if self.reader is None:
            self.reader = HttpReader()
        if self.cache is None:
            cm = CacheManager()
            cm.connect()
            self.cache = cm

    def _load_symbols_from_file(self, path: str | Path) -> None:
        records = json.loads(Path(path).read_text())
        if not isinstance(records, list):
            raise TypeError("the tickers file does not hold a JSON array")
        for record in records:
            symbol = _field(record, "symbol")
            name = _field(record, "name")
            if not symbol:
                self._log.info("Ignore the empty symbol.")
            elif _SKIPPED_SYMBOL.search(symbol):
                self._log.info("Ignore symbol %s.", symbol)
            elif _SKIPPED_NAME.search(name):
                self._log.info("Ignore symbol %s, name %s.", symbol, name)
            else:
                self.cache.add_to_set(CACHE_KEY_SYMBOL, symbol)

    def _load_symbols_from_db(self, table: str) -> None:
        sql = "SELECT symbol FROM " + table
        try:
            results = self.db.run_query(sql, _SymbolRow)
        except Exception as exc:
            raise RuntimeError(f"Failed to run query [{sql}]. Error: {exc}") from exc
        if not isinstance(results, list):
            raise TypeError("the query results are not returned as a list of rows")
        self._log.info("%d symbols retrieved from table %s", len(results), table)
        for row in results:
            if not row.symbol:
                self._log.info("Ignore the empty symbol.")
                continue
            self.cache.add_to_set(CACHE_KEY_SYMBOL, row.symbol)

    def _load_symbols_from_cache(self, set_name: str) -> None:
        try:
            self.cache.move_set(set_name, CACHE_KEY_SYMBOL)
        except (RuntimeError, ConnectionError) as exc:
            raise RuntimeError(f"failed to restore the error symbols. Error: {exc}") from exc

    def _load_proxies_from_file(self, path: str | Path) -> None:
        count = load_proxies(self.cache, CACHE_KEY_PROXY, path)
        self._log.info("%d proxies loaded to cache", count)

    def prepare(self) -> None:
        """Queue the symbols, and any proxies, named by the parameters."""
        if self.params is None:
            raise ValueError("the builder has no parameters")
        if self.params.tickers_json:
            self._load_symbols_from_file(self.params.tickers_json)
        elif self.params.is_continue:
            self._load_symbols_from_cache(CACHE_KEY_SYMBOL_ERROR)
        else:
            self._load_symbols_from_db(TABLE_YF_TICKERS)

        if self.params.proxy_file:
            self._load_proxies_from_file(self.params.proxy_file)

    def build(self) -> Worker:
        if self.worker_class is None:
            raise TypeError(f"{type(self).__name__} has no worker class")
        return self.worker_class(
            db=self.db,
            reader=self.reader,
            exporters=self.exporters,
            cache=self.cache,
            logger=self.logger,
        )