"""Sortable, selectable grid state and its view model."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Sequence, Tuple

from .errors import SchemaError
from .render import PLACEHOLDER, Display, render_cell
from .schema import ColumnSchema, normalize_columns


logger = logging.getLogger("schemaview.grid")

ASC = "asc"
DESC = "desc"

SortHandler = Callable[[str, str], None]
SelectHandler = Callable[[List[Any]], None]
RowHandler = Callable[[dict], None]


@dataclass(frozen=True)
class SortState:
    key: str
    direction: str = ASC

    def __post_init__(self) -> None:
        if self.direction not in (ASC, DESC):
            raise ValueError(f"direction must be '{ASC}' or '{DESC}'")

    def toggled(self) -> "SortState":
        return SortState(self.key, DESC if self.direction == ASC else ASC)

    def as_dict(self) -> dict:
        return {"key": self.key, "direction": self.direction}


def next_sort(current: SortState | None, key: str) -> SortState:
    if current is not None and current.key == key:
        return current.toggled()
    return SortState(key, ASC)


def cell_payload(value: Any) -> Any:
    if isinstance(value, Display):
        return value.as_dict()
    if isinstance(value, dict):
        return value
    if value is None or value == "":
        return {"kind": "placeholder", "text": PLACEHOLDER, "href": None, "external": False, "css_class": None}
    return {"kind": "text", "text": str(value), "href": None, "external": False, "css_class": None}


def _row_ids(rows: Sequence[dict]) -> Tuple[Any, ...]:
    ids = []
    for idx, row in enumerate(rows):
        if not isinstance(row, dict) or row.get("id") is None:
            raise SchemaError("row id is required", f"rows[{idx}].id")
        ids.append(row["id"])
    return tuple(ids)


class Grid:
    """Owns sort and selection state for one loaded page of rows.

    Sorting only records the new state and notifies ``on_sort``; fetching the
    reordered rows is left to whoever owns the data.
    """

    def __init__(
        self,
        columns: Iterable[Any],
        rows: Sequence[dict] = (),
        selectable: bool = True,
        sortable: bool = True,
        loading: bool = False,
        empty_message: str = "No data available",
        on_sort: SortHandler | None = None,
        on_select: SelectHandler | None = None,
        on_row_click: RowHandler | None = None,
        currency: str | None = None,
    ) -> None:
        self._columns: Tuple[ColumnSchema, ...] = tuple(normalize_columns(list(columns)))
        self._rows: Tuple[dict, ...] = ()
        self._ids: Tuple[Any, ...] = ()
        self._sort: SortState | None = None
        self._selection: FrozenSet[Any] = frozenset()
        self.selectable = selectable
        self.sortable = sortable
        self.loading = loading
        self.empty_message = empty_message
        self.on_sort = on_sort
        self.on_select = on_select
        self.on_row_click = on_row_click
        self.currency = currency
        self.set_rows(rows)

    @property
    def columns(self) -> Tuple[ColumnSchema, ...]:
        return self._columns

    @property
    def rows(self) -> Tuple[dict, ...]:
        return self._rows

    @property
    def sort(self) -> SortState | None:
        return self._sort

    @property
    def selection(self) -> FrozenSet[Any]:
        return self._selection

    def column(self, key: str) -> ColumnSchema | None:
        for col in self._columns:
            if col.key == key:
                return col
        return None

    def is_sortable(self, key: str) -> bool:
        col = self.column(key)
        return bool(self.sortable and col is not None and col.sortable)

    def set_sort(self, key: str) -> SortState | None:
        if not self.is_sortable(key):
            logger.debug("sort_ignored key=%s", key)
            return self._sort
        self._sort = next_sort(self._sort, key)
        if self.on_sort:
            self.on_sort(self._sort.key, self._sort.direction)
        return self._sort

    def clear_sort(self) -> None:
        self._sort = None

    def _emit_selection(self, selection: FrozenSet[Any]) -> FrozenSet[Any]:
        changed = selection != self._selection
        self._selection = selection
        if changed and self.on_select:
            self.on_select(self.selected_ids())
        return self._selection

    def selected_ids(self) -> List[Any]:
        return [row_id for row_id in self._ids if row_id in self._selection]

    def select_all(self, checked: bool) -> FrozenSet[Any]:
        if not self.selectable:
            return self._selection
        return self._emit_selection(frozenset(self._ids) if checked else frozenset())

    def select_row(self, row_id: Any, checked: bool) -> FrozenSet[Any]:
        if not self.selectable:
            return self._selection
        if checked:
            if row_id not in self._ids:
                logger.debug("select_ignored id=%s reason=not_loaded", row_id)
                return self._selection
            return self._emit_selection(self._selection | {row_id})
        return self._emit_selection(self._selection - {row_id})

    def clear_selection(self) -> FrozenSet[Any]:
        return self._emit_selection(frozenset())

    def set_rows(self, rows: Sequence[dict]) -> None:
        """Replace the loaded rows and drop selected ids that are no longer present."""
        rows = list(rows or [])
        ids = _row_ids(rows)
        self._rows = tuple(copy.deepcopy(rows))
        self._ids = ids
        self._emit_selection(self._selection & frozenset(ids))

    def row(self, row_id: Any) -> dict | None:
        for row in self._rows:
            if row.get("id") == row_id:
                return row
        return None

    def click_row(self, row_id: Any) -> dict | None:
        row = self.row(row_id)
        if row is not None and self.on_row_click:
            self.on_row_click(row)
        return row

    def toggle_checkbox(self, row_id: Any, checked: bool) -> FrozenSet[Any]:
        # checkbox interaction stops here; it never reaches click_row
        return self.select_row(row_id, checked)

    def reset(self) -> None:
        self._sort = None
        self._selection = frozenset()

    @property
    def all_selected(self) -> bool:
        return bool(self._ids) and len(self._selection) == len(self._ids)

    @property
    def indeterminate(self) -> bool:
        return 0 < len(self._selection) < len(self._ids)

    def _header(self, col: ColumnSchema) -> dict:
        sortable = self.sortable and col.sortable
        item: Dict[str, Any] = {"key": col.key, "label": col.label, "sortable": sortable}
        if sortable:
            current = self._sort
            item["indicators"] = {
                ASC: current == SortState(col.key, ASC),
                DESC: current == SortState(col.key, DESC),
            }
        return item

    def view_model(self) -> dict:
        if self.loading:
            return {"kind": "grid", "loading": True, "spinner": {"message": "Loading..."}}
        colspan = len(self._columns) + (1 if self.selectable else 0)
        model: Dict[str, Any] = {
            "kind": "grid",
            "loading": False,
            "selectable": self.selectable,
            "sort": self._sort.as_dict() if self._sort else None,
            "headers": [self._header(col) for col in self._columns],
            "body": [],
        }
        if self.selectable:
            model["select_all"] = {"checked": self.all_selected, "indeterminate": self.indeterminate}
        if not self._rows:
            model["body"].append({"type": "empty", "message": self.empty_message, "colspan": colspan})
            return model
        for row in self._rows:
            row_id = row["id"]
            model["body"].append(
                {
                    "type": "data",
                    "id": row_id,
                    "selected": row_id in self._selection,
                    "cells": [
                        {"key": col.key, "display": cell_payload(render_cell(col, row, self.currency))}
                        for col in self._columns
                    ],
                }
            )
        return model
