"""Shared constants and helpers for collectors."""

from __future__ import annotations

import contextlib
import dataclasses
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

LOG_FILE = "logs/sdc.log"
PROXY_FILE = "data/proxies.txt"
CACHE_KEY_PROXY = "PROXIES"
CACHE_KEY_SYMBOL = "SYMBOLS"
CACHE_KEY_SYMBOL_ERROR = "SYMBOLS_ERROR"
CACHE_KEY_SYMBOL_INVALID = "SYMBOLS_INVALID"
CACHE_KEY_SYMBOL_NODATA = "SYMBOLS_NODATA"
CACHE_KEY_SYMBOL_REDIRECTED = "SYMBOLS_REDIRECTED"

TABLE_MS_TICKERS = "ms_tickers"

PRIMARY_KEY = "PrimaryKey"

_CLEARED_KEYS = (
    CACHE_KEY_PROXY,
    CACHE_KEY_SYMBOL,
    CACHE_KEY_SYMBOL_ERROR,
    CACHE_KEY_SYMBOL_REDIRECTED,
    CACHE_KEY_SYMBOL_INVALID,
)


@dataclass(frozen=True)
class JsonFieldMetadata:
    """A record field's name, type and its json/db tags."""

    field_name: str
    field_type: Any
    field_tags: dict[str, str] = field(default_factory=dict)


def concat_maps(*args: Mapping[str, Any] | None) -> dict[str, Any]:
    """Merge mappings; a key present twice must carry equal values."""
    results: dict[str, Any] = {}
    for mapping in args:
        for key, value in (mapping or {}).items():
            if key in results and results[key] != value:
                raise ValueError(
                    f"Failed to concat maps, key {key} has conflict values "
                    f"{value} and {results[key]}"
                )
            results[key] = value
    return results


def clear_cache(cm: Any) -> None:
    """Connect and delete the proxy and symbol sets; errors propagate."""
    cm.connect()
    try:
        for key in _CLEARED_KEYS:
            cm.delete_set(key)
    finally:
        cm.disconnect()


def cache_cleanup(cm: Any) -> None:
    """Best-effort removal of the proxy and symbol sets."""
    with contextlib.suppress(ConnectionError, RuntimeError):
        cm.connect()
    for key in _CLEARED_KEYS:
        try:
            cm.delete_set(key)
        except (ConnectionError, RuntimeError) as exc:
            logger.warning("Failed to delete %s: %s", key, exc)
    cm.disconnect()


def get_json_struct_metadata(struct_type: type) -> dict[str, JsonFieldMetadata]:
    """Describe every field of a dataclass, keyed by field name."""
    if not (isinstance(struct_type, type) and dataclasses.is_dataclass(struct_type)):
        raise TypeError(f"{struct_type!r} is not a dataclass type")
    metadata = {}
    for f in dataclasses.fields(struct_type):
        tags = {tag: f.metadata[tag] for tag in ("json", "db") if tag in f.metadata}
        metadata[f.name] = JsonFieldMetadata(f.name, f.type, tags)
    return metadata


def get_field_type_by_tag(
    fields_metadata: Mapping[str, JsonFieldMetadata], tag: str
) -> Any:
    """Return the type of the field whose json tag is ``tag``, or None."""
    return next(
        (m.field_type for m in fields_metadata.values() if m.field_tags.get("json") == tag),
        None,
    )


def get_primary_key_field_names(
    fields_metadata: Mapping[str, JsonFieldMetadata],
) -> list[str]:
    return [
        name
        for name, m in fields_metadata.items()
        if m.field_tags.get("db") == PRIMARY_KEY
    ]


def is_key_field(
    fields_metadata: Mapping[str, JsonFieldMetadata], json_tag_value: str
) -> bool:
    """Whether the field tagged ``json_tag_value`` is a database primary key."""
    return any(
        m.field_tags.get("json") == json_tag_value
        and m.field_tags.get("db") == PRIMARY_KEY
        for m in fields_metadata.values()
    )


def count_matches(text: str, pattern: str) -> int:
    """Count non-overlapping matches of ``pattern`` in ``text``."""
    return sum(1 for _ in re.finditer(pattern, text))