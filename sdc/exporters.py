"""Destinations that collected JSON data is written to."""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class DataExporter(ABC):
    """Something that stores a JSON document for a table and symbol."""

    @abstractmethod
    def export(self, entity_type: Any, table: str, data: str, symbol: str) -> None:
        """Store ``data``, a JSON text of ``entity_type`` records, for ``table``."""


class FileExporter(DataExporter):
    """Writes each document to ``<path>/<symbol>/<table>.json``."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    @classmethod
    def for_source(cls, source: str) -> FileExporter:
        """An exporter under ``$SDC_HOME/data/<source>``, created if missing."""
        directory = Path(os.environ.get("SDC_HOME", "") + "/data/" + source)
        directory.mkdir(mode=0o755, parents=True, exist_ok=True)
        return cls(directory)

    def export(self, entity_type: Any, table: str, data: str, symbol: str) -> None:
        directory = self.path / symbol if symbol else self.path
        directory.mkdir(mode=0o755, parents=True, exist_ok=True)
        (directory / f"{table}.json").write_text(data, encoding="utf-8")


class DBExporter(DataExporter):
    """Loads each document into a database table through a loader."""

    def __init__(self, db: Any, schema: str) -> None:
        db.create_schema(schema)
        db.exec("SET search_path TO " + schema)
        self.db = db
        self.schema = schema

    def export(self, entity_type: Any, table: str, data: str, symbol: str) -> None:
        try:
            rows = self.db.load_by_json_text(data, table, entity_type)
        except Exception as exc:
            raise RuntimeError(f"failed to load json text to table {table}: {exc}") from exc
        logger.info("%d rows were loaded into %s:%s", rows, self.schema, table)


class DataExporters(DataExporter):
    """Sends each document to several exporters in turn."""

    def __init__(self, exporters: Iterable[DataExporter] = ()) -> None:
        self.exporters: list[DataExporter] = list(exporters)

    def add_exporter(self, exporter: DataExporter) -> None:
        self.exporters.append(exporter)

    def export(self, entity_type: Any, table: str, data: str, symbol: str) -> None:
        """Export to every exporter, stopping at the first failure."""
        for exporter in self.exporters:
            exporter.export(entity_type, table, data, symbol)