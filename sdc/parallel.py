"""Processing of cached symbols by a pool of workers, and the worker for symbol pages."""

from __future__ import annotations

import enum
import logging
import queue
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from sdc.common import (
    CACHE_KEY_PROXY,
    CACHE_KEY_SYMBOL,
    CACHE_KEY_SYMBOL_ERROR,
    CACHE_KEY_SYMBOL_INVALID,
    LOG_FILE,
)
from sdc.errors import HttpServerError
from sdc.exporters import DataExporters, DBExporter, FileExporter
from sdc.httpreader import HttpReader, new_local_client, new_proxy_client
from sdc.sacollector import SACollector, SADataKind, SATable
from sdc.workerbuilder import CommonWorkerBuilder, Worker

_HTTP_NOT_FOUND = 404
_HTTP_TOO_MANY_REQUESTS = 429

_module_logger = logging.getLogger(__name__)

_FINISHED = object()


class ResultCode(enum.IntEnum):
    """Outcome of one unit of work reported by a worker."""

    SUCCESS = 0
    WORKER_INIT_FAILURE = 1
    WORKER_DONE_FAILURE = 2
    WORKER_PROCESS_FAILURE = 3
    SERVER_SYMBOL_NOT_VALID = 4


@dataclass(frozen=True)
class PCResponse:
    """A worker's report for one symbol, or for its own set-up or tear-down."""

    symbol: str
    error_id: ResultCode
    error_text: str = ""


@dataclass
class PCParams:
    """Where the symbols and proxies to process come from."""

    is_continue: bool = False
    tickers_json: str = ""
    proxy_file: str = ""


def _bracketed(values: list[str]) -> str:
    return "[" + " ".join(values) + "]"


@dataclass
class ParallelCollector:
    """Runs workers in parallel over the symbols queued in the cache.

    Each worker first uses one of the cached proxies, moving on to another
    proxy when the server reports too many requests, and finally a direct
    connection once the proxies are used up.
    """

    new_builder: Callable[[], CommonWorkerBuilder]
    cache: Any
    params: PCParams = field(default_factory=PCParams)
    log_file: str = LOG_FILE

    def _length(self, key: str) -> int:
        try:
            return self.cache.get_length(key)
        except Exception as exc:
            _module_logger.warning("Failed to get the length of %s: %s", key, exc)
            return 0

    def _members(self, key: str) -> list[str]:
        try:
            return sorted(self.cache.get_all_from_set(key))
        except Exception as exc:
            _module_logger.warning("Failed to get the members of %s: %s", key, exc)
            return []

    def _worker_logger(self, worker_id: str) -> tuple[logging.Logger, logging.Handler | None]:
        worker_logger = logging.Logger(f"{__name__}.worker{worker_id}", logging.DEBUG)
        try:
            handler: logging.Handler = logging.FileHandler(
                f"{self.log_file}.{worker_id}", mode="w"
            )
        except OSError as exc:
            _module_logger.warning("Failed to open the log of worker %s: %s", worker_id, exc)
            return _module_logger, None
        handler.setFormatter(logging.Formatter("sdc: %(asctime)s %(message)s"))
        worker_logger.addHandler(handler)
        return worker_logger, handler

    def execute(self, parallel: int) -> str | None:
        """Process every queued symbol with ``parallel`` workers.

        Returns the printed results summary, or None if no symbol was queued.
        """
        builder = self.new_builder()
        builder.with_params(self.params)
        builder.default()
        builder.prepare()

        self.cache.connect()
        try:
            return self._run(parallel)
        finally:
            self.cache.disconnect()

    def _run(self, parallel: int) -> str | None:
        total = self._length(CACHE_KEY_SYMBOL)
        if total <= 0:
            _module_logger.info("No symbol found.")
            return None
        _module_logger.info("%d symbols to be processed in parallel(%d).", total, parallel)
        summary = ["", "Results Summary:", f"Total: {total}"]

        proxies: queue.Queue[str] = queue.Queue()
        if self._length(CACHE_KEY_PROXY) > 0:
            while proxy := self.cache.pop_from_set(CACHE_KEY_PROXY):
                _module_logger.debug("Push %s into [proxy] channel.", proxy)
                proxies.put(proxy)
            _module_logger.info("All proxies are pushed into [proxy] channel.")

        symbols: queue.Queue[str] = queue.Queue()
        while True:
            try:
                symbol = self.cache.pop_from_set(CACHE_KEY_SYMBOL)
            except Exception as exc:
                _module_logger.warning("Failed to pop a symbol: %s", exc)
                break
            if not symbol:
                _module_logger.info("All symbols are pushed into [input] channel.")
                break
            symbols.put(symbol)

        results: queue.Queue[Any] = queue.Queue()
        threads = [
            threading.Thread(
                target=self._worker_routine,
                args=(str(index), symbols, proxies, results),
                daemon=True,
            )
            for index in range(parallel)
        ]
        for thread in threads:
            thread.start()

        processed = succeeded = finished = 0
        while finished < len(threads):
            response = results.get()
            if response is _FINISHED:
                finished += 1
                continue
            processed += 1
            if response.error_id is ResultCode.SUCCESS:
                succeeded += 1
            else:
                _module_logger.warning(
                    "Failed to process symbol %s. Error %s",
                    response.symbol, response.error_text,
                )
                key = (
                    CACHE_KEY_SYMBOL_INVALID
                    if response.error_id is ResultCode.SERVER_SYMBOL_NOT_VALID
                    else CACHE_KEY_SYMBOL_ERROR
                )
                try:
                    self.cache.add_to_set(key, response.symbol)
                except Exception as exc:
                    _module_logger.warning("%s", exc)
            print(f"Processed {processed}, succeeded {succeeded}")
        for thread in threads:
            thread.join()

        for key, label in (
            (CACHE_KEY_SYMBOL, "Left"),
            (CACHE_KEY_SYMBOL_ERROR, "Error"),
            (CACHE_KEY_SYMBOL_INVALID, "Invalid"),
        ):
            if self._length(key) > 0:
                members = self._members(key)
                _module_logger.info("%s symbols: %s", label, members)
                summary.append(f"{label}: {_bracketed(members)}")
            else:
                _module_logger.info("No %s symbol.", label.lower())

        text = "\n".join(summary) + "\n"
        print(text)
        return text

    def _worker_routine(
        self,
        worker_id: str,
        symbols: queue.Queue[str],
        proxies: queue.Queue[str],
        results: queue.Queue[Any],
    ) -> None:
        worker_logger, handler = self._worker_logger(worker_id)

        def log(text: str) -> None:
            worker_logger.info("[Go%s] %s", worker_id, text)

        try:
            log("Begin")
            self._process(log, worker_logger, symbols, proxies, results)
            log("Finish")
        except Exception as exc:
            log(f"Unexpected failure: {exc}")
        finally:
            results.put(_FINISHED)
            if handler is not None:
                worker_logger.removeHandler(handler)
                handler.close()

    def _process(
        self,
        log: Callable[[str], None],
        worker_logger: logging.Logger,
        symbols: queue.Queue[str],
        proxies: queue.Queue[str],
        results: queue.Queue[Any],
    ) -> None:
        builder = self.new_builder()
        while True:
            try:
                proxy = proxies.get_nowait()
            except queue.Empty:
                builder.with_reader(HttpReader(new_local_client()))
                log("Established native reader")
                last_round = True
            else:
                try:
                    client = new_proxy_client(proxy)
                except Exception as exc:
                    log(str(exc))
                    continue
                builder.with_reader(HttpReader(client))
                log("Established proxy reader with proxy url " + proxy)
                last_round = False

            builder.with_logger(worker_logger)
            builder.default()
            worker = builder.build()

            try:
                worker.init()
            except Exception as exc:
                log(str(exc))
                results.put(PCResponse("", ResultCode.WORKER_INIT_FAILURE, str(exc)))
                return

            complete = self._drain(log, worker, symbols, results)

            try:
                worker.done()
            except Exception as exc:
                results.put(PCResponse("", ResultCode.WORKER_DONE_FAILURE, str(exc)))

            if complete or last_round:
                return

    def _drain(
        self,
        log: Callable[[str], None],
        worker: Worker,
        symbols: queue.Queue[str],
        results: queue.Queue[Any],
    ) -> bool:
        """Process symbols until none is left (True) or the server throttles (False)."""
        while True:
            try:
                symbol = symbols.get_nowait()
            except queue.Empty:
                log("All symbols are processed")
                return True
            log(f"Begin processing [{symbol}]")
            try:
                worker.do(symbol)
            except HttpServerError as exc:
                log(str(exc))
                if exc.status_code == _HTTP_NOT_FOUND:
                    results.put(
                        PCResponse(symbol, ResultCode.SERVER_SYMBOL_NOT_VALID, str(exc))
                    )
                    log(f"End processing [{symbol}]. Symbol Not Valid.")
                    continue
                if exc.status_code == _HTTP_TOO_MANY_REQUESTS:
                    log(f"End processing [{symbol}]. Too many request.")
                    return False
                results.put(PCResponse(symbol, ResultCode.WORKER_PROCESS_FAILURE, str(exc)))
                log(f"End processing [{symbol}]. Process Error: {exc}")
            except Exception as exc:
                log(str(exc))
                results.put(PCResponse(symbol, ResultCode.WORKER_PROCESS_FAILURE, str(exc)))
                log(f"End processing [{symbol}]. Process Error: {exc}")
            else:
                results.put(PCResponse(symbol, ResultCode.SUCCESS))
                log(f"End processing [{symbol}]. Succeeded.")

    def done(self) -> None:
        """Nothing is held once ``execute`` returns."""
        return None


class SAWorker(Worker):
    """Collects the overview and financial details of each symbol."""

    def __init__(
        self,
        tables: Mapping[SADataKind, SATable],
        db: Any = None,
        reader: Any = None,
        exporters: Any = None,
        cache: Any = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(db=db, reader=reader, exporters=exporters, cache=cache, logger=logger)
        self.tables = dict(tables)
        self.collector: SACollector | None = None

    def init(self) -> None:
        self.collector = SACollector(
            self.reader, self.exporters, self.db, self.tables, self.logger
        )

    def do(self, symbol: str) -> None:
        if self.collector is None:
            raise RuntimeError("the worker has not been initialised")
        redirected = self.collector.map_redirected_symbol(symbol)
        if redirected:
            symbol = redirected
        self.collector.collect_financial_overview(symbol)
        self.collector.collect_financial_details(symbol)

    def done(self) -> None:
        return None


class SAWorkerBuilder(CommonWorkerBuilder):
    """Builds SAWorker instances that store into ``schema``."""

    worker_class = SAWorker

    def __init__(self, tables: Mapping[SADataKind, SATable], schema: str = "public") -> None:
        super().__init__()
        self.tables = dict(tables)
        self.schema = schema

    def default(self) -> None:
        """Fill in the exporters, reader, cache and logger not given."""
        if self.logger is None:
            self.logger = _module_logger
        if self.db is None:
            raise ValueError("SAWorkerBuilder needs a database loader")
        if self.exporters is None:
            self.exporters = DataExporters(
                [DBExporter(self.db, self.schema), FileExporter.for_source("SA")]
            )
        super().default()

    def prepare(self) -> None:
        """Create the tables, then queue the symbols and proxies."""
        self.default()
        SACollector(
            self.reader, self.exporters, self.db, self.tables, self.logger
        ).create_tables()
        try:
            super().prepare()
        except Exception as exc:
            self._log.warning("Failed to queue symbols: %s", exc)

    def build(self) -> SAWorker:
        return SAWorker(
            self.tables,
            db=self.db,
            reader=self.reader,
            exporters=self.exporters,
            cache=self.cache,
            logger=self.logger,
        )