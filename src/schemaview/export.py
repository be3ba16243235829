"""CSV export of loaded rows using their rendered text."""

from __future__ import annotations

import csv
import io
from typing import Any, Iterable, List, Sequence

from .render import plain_text, render_cell
from .schema import ACTIONS_COLUMN_KEY, ColumnSchema, normalize_columns


def export_rows(columns: Iterable[Any], rows: Sequence[dict], ids: Sequence[Any] | None = None) -> List[List[str]]:
    """Header line plus one line per exported row, as display text.

    ``ids`` limits the export to those rows, in row order. The actions column is
    never exported.
    """
    cols: List[ColumnSchema] = [c for c in normalize_columns(list(columns)) if c.key != ACTIONS_COLUMN_KEY]
    wanted = set(ids) if ids is not None else None
    lines = [[c.label for c in cols]]
    for row in rows:
        if wanted is not None and row.get("id") not in wanted:
            continue
        lines.append([plain_text(render_cell(c, row)) for c in cols])
    return lines


def export_csv(columns: Iterable[Any], rows: Sequence[dict], ids: Sequence[Any] | None = None) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(export_rows(columns, rows, ids))
    return buffer.getvalue()
