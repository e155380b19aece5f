"""Extraction of metrics from the tables and grids of financial web pages."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Any

from sdc.common import JsonFieldMetadata, concat_maps, get_field_type_by_tag, is_key_field
from sdc.htmldom import Node, NodeType, first_text_node, text_of_adjacent_div
from sdc.values import (
    fill_default_value,
    is_valid_value,
    normalise_json_key,
    normalise_json_value,
)

_module_logger = logging.getLogger(__name__)

MetricsFields = Mapping[str, Mapping[str, JsonFieldMetadata]]

OVERVIEW_TABLES = ("overview-info", "overview-quote")
FINANCIALS_TABLE = "financials"
ANALYST_RATING_LABELS = (
    "Total Analysts",
    "Consensus Rating",
    "Price Target",
    "Upside",
)


def _siblings_after(node: Node) -> Iterator[Node]:
    sibling = node.next_sibling
    while sibling is not None:
        yield sibling
        sibling = sibling.next_sibling


def _data_test_values(node: Node) -> list[str]:
    if node.type is not NodeType.ELEMENT:
        return []
    return [value for name, value in node.attrs if name == "data-test"]


class SAHTMLParser:
    """Decodes page tables into JSON-ready dictionaries.

    ``metrics_fields`` maps a record type name to the metadata of its
    fields; a field's json tag names the key a table label normalises to.
    """

    def __init__(
        self,
        metrics_fields: MetricsFields,
        logger: logging.Logger | None = None,
    ) -> None:
        self.metrics_fields = metrics_fields
        self.logger = logger or _module_logger

    def _fields(self, struct_name: str) -> Mapping[str, JsonFieldMetadata]:
        return self.metrics_fields.get(struct_name, {})

    def _field_type(self, struct_name: str, key: str) -> Any:
        field_type = get_field_type_by_tag(self._fields(struct_name), key)
        if field_type is None:
            raise ValueError(f"Failed to get field type for tag {key}")
        return field_type

    def _normalise(self, text: str, field_type: Any) -> Any:
        name = getattr(field_type, "__name__", str(field_type))
        self.logger.debug("Normalise %s to %s value", text, name)
        value = normalise_json_value(text, field_type)
        self.logger.debug("Got %r", value)
        return value

    def decode_overview_pages(self, node: Node, struct_name: str) -> dict[str, Any]:
        """Merge the overview tables found anywhere under ``node``."""
        indicators: dict[str, Any] = {}
        for marker in _data_test_values(node):
            if marker in OVERVIEW_TABLES:
                try:
                    indicators = self._decode_simple_table(node, struct_name)
                except ValueError as exc:
                    raise ValueError(
                        f"Failed to decode html table {marker}. Error: {exc}"
                    ) from exc
        for child in node.children:
            indicators = concat_maps(
                indicators, self.decode_overview_pages(child, struct_name)
            )
        return indicators

    def decode_financials_page(self, node: Node, struct_name: str) -> list[dict[str, Any]]:
        """Decode the first financials table under ``node``; empty if none."""
        if FINANCIALS_TABLE in _data_test_values(node):
            try:
                return self._decode_time_series_table(node, struct_name)
            except ValueError as exc:
                raise ValueError(
                    f"Failed to decode html table financials. Error: {exc}"
                ) from exc
        for child in node.children:
            data_points = self.decode_financials_page(child, struct_name)
            if data_points:
                return data_points
        return []

    def decode_analyst_ratings_grid(self, node: Node, struct_name: str) -> dict[str, Any]:
        """Read the labelled values of the analyst ratings grid."""
        metrics: dict[str, Any] = {}
        for label in ANALYST_RATING_LABELS:
            value = text_of_adjacent_div(node, label)
            if not value:
                continue
            self.logger.debug("Read %s", value)
            key = normalise_json_key(label)
            field_type = self._field_type(struct_name, key)
            metrics[key] = self._normalise(value, field_type)
        return metrics

    def _decode_simple_table(self, node: Node, struct_name: str) -> dict[str, Any]:
        metrics: dict[str, Any] = {}
        body = node.first_child
        if body is None:
            return metrics
        for row in body.children:
            label_cell = row.first_child
            if label_cell is None:
                continue
            label = first_text_node(label_cell)
            if label is None:
                continue
            self.logger.debug("Read %s", label.data)
            for cell in _siblings_after(label_cell):
                text = first_text_node(cell)
                if text is None:
                    continue
                key = normalise_json_key(label.data)
                field_type = self._field_type(struct_name, key)
                self.logger.debug("Read %s", text.data)
                metrics[key] = self._normalise(text.data, field_type)
        return metrics

    def _decode_time_series_table(
        self, node: Node, struct_name: str
    ) -> list[dict[str, Any]]:
        data_points: list[dict[str, Any]] = []
        fields = self._fields(struct_name)
        head = node.first_child
        if head is None:
            raise ValueError("faild to get a valid header")

        skip_first = False
        skip_last = False
        for row in head.children:
            label_cell = row.first_child
            if label_cell is None:
                continue
            label = first_text_node(label_cell)
            if label is None:
                continue
            self.logger.debug("Read %s", label.data)
            key = normalise_json_key(label.data)
            if not is_key_field(fields, key):
                self.logger.debug("ignore table header key %s: not db primary key", key)
                continue
            field_type = get_field_type_by_tag(fields, key)
            if field_type is None:
                self.logger.debug("ignore table header key %s: no field type found", key)
                continue

            first_cell: Node | None = None
            index = 0
            for cell in _siblings_after(label_cell):
                text = first_text_node(cell)
                if text is None:
                    continue
                if first_cell is None:
                    first_cell = cell
                self.logger.debug("Read %s", text.data)
                if not is_valid_value(text.data):
                    if cell is first_cell:
                        # The leading "current" column holds no period; drop it everywhere.
                        skip_first = True
                        continue
                    if cell.next_sibling is None:
                        skip_last = True
                        continue
                    raise ValueError(f"invalid value {text.data} for field {key}")
                value = self._normalise(text.data, field_type)
                if index == len(data_points):
                    data_points.append({})
                data_points[index][key] = value
                index += 1
            self.logger.debug("Collect %d data points for key %s", index, key)

        if not data_points:
            raise ValueError("faild to get a valid header")

        if head.next_sibling is None or head.next_sibling.next_sibling is None:
            raise ValueError("unexpected structure. Can not find the tbody element")
        body = head.next_sibling.next_sibling

        for row in body.children:
            label_cell = row.first_child
            if label_cell is None:
                continue
            label = first_text_node(label_cell)
            if label is None:
                continue
            self.logger.debug("Read %s", label.data)
            key = normalise_json_key(label.data)
            if label_cell.next_sibling is None:
                self.logger.debug("Skip the values for key %s: no data fields.", key)

            values: list[Any] = []
            first_cell = None
            for cell in _siblings_after(label_cell):
                if cell.type is not NodeType.ELEMENT or cell.data != "td":
                    continue
                text = first_text_node(cell)
                if text is None:
                    continue
                if first_cell is None:
                    first_cell = cell
                if cell is first_cell and skip_first:
                    continue
                if cell.next_sibling is None and skip_last:
                    continue
                cell_text = text.data
                self.logger.debug("Read %s", cell_text)
                if not is_valid_value(cell_text):
                    default = fill_default_value(cell_text)
                    if default is None:
                        self.logger.debug("Ignore value %s", cell_text)
                        continue
                    cell_text = default
                field_type = self._field_type(struct_name, key)
                values.append(self._normalise(cell_text, field_type))

            if len(values) != len(data_points):
                self.logger.debug(
                    "The key field has %d data points, the field %s has %d. Ignore the field.",
                    len(data_points), key, len(values),
                )
                continue
            for point, value in zip(data_points, values):
                point[key] = value

        return data_points