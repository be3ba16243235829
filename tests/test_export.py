import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from schemaview.export import export_csv, export_rows
from schemaview.list_view import Capabilities, build_columns


COLUMNS = [
    {"key": "name", "label": "Name"},
    {"key": "amount", "label": "Amount", "type": "currency"},
    {"key": "active", "label": "Active", "type": "boolean"},
]
ROWS = [
    {"id": 1, "name": "Acme, Inc.", "amount": 1234.5, "active": True},
    {"id": 2, "name": "Globex", "amount": None, "active": False},
]


class TestExport(unittest.TestCase):
    def test_rows_use_display_text(self) -> None:
        lines = export_rows(COLUMNS, ROWS)
        self.assertEqual(lines[0], ["Name", "Amount", "Active"])
        self.assertEqual(lines[1], ["Acme, Inc.", "$1,234.50", "Yes"])
        self.assertEqual(lines[2], ["Globex", "", "No"])

    def test_actions_column_skipped(self) -> None:
        columns = build_columns(COLUMNS, Capabilities(on_view=print))
        self.assertEqual(export_rows(columns, ROWS)[0], ["Name", "Amount", "Active"])

    def test_selected_ids_only(self) -> None:
        lines = export_rows(COLUMNS, ROWS, ids=[2])
        self.assertEqual([line[0] for line in lines], ["Name", "Globex"])

    def test_csv_quotes_commas(self) -> None:
        text = export_csv(COLUMNS, ROWS, ids=[1])
        self.assertEqual(text, 'Name,Amount,Active\n"Acme, Inc.","$1,234.50",Yes\n')


if __name__ == "__main__":
    unittest.main()
