import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from schemaview.errors import SchemaError
from schemaview.grid import ASC, DESC, Grid, SortState, next_sort


COLUMNS = [
    {"key": "name", "label": "Name"},
    {"key": "amount", "label": "Amount", "type": "currency"},
    {"key": "notes", "label": "Notes", "sortable": False},
]


def _rows(ids):
    return [{"id": i, "name": f"Row {i}", "amount": i * 10} for i in ids]


class TestGrid(unittest.TestCase):
    def test_sort_cycle(self) -> None:
        grid = Grid(COLUMNS)
        self.assertIsNone(grid.sort)
        self.assertEqual(grid.set_sort("name"), SortState("name", ASC))
        self.assertEqual(grid.set_sort("name"), SortState("name", DESC))
        self.assertEqual(grid.set_sort("name"), SortState("name", ASC))
        self.assertEqual(grid.set_sort("amount"), SortState("amount", ASC))

    def test_sort_ignores_unsortable_and_unknown(self) -> None:
        calls = []
        grid = Grid(COLUMNS, on_sort=lambda key, direction: calls.append((key, direction)))
        grid.set_sort("name")
        self.assertEqual(grid.set_sort("notes"), SortState("name", ASC))
        self.assertEqual(grid.set_sort("missing"), SortState("name", ASC))
        self.assertEqual(calls, [("name", ASC)])

    def test_next_sort(self) -> None:
        self.assertEqual(next_sort(None, "a"), SortState("a", ASC))
        self.assertEqual(next_sort(SortState("a", DESC), "a"), SortState("a", ASC))
        self.assertEqual(next_sort(SortState("a", DESC), "b"), SortState("b", ASC))

    def test_select_all_and_subset_after_refresh(self) -> None:
        grid = Grid(COLUMNS, rows=_rows(range(1, 11)))
        grid.select_all(True)
        self.assertEqual(len(grid.selection), 10)
        grid.set_rows(_rows(range(5, 13)))
        self.assertTrue(grid.selection <= {row["id"] for row in grid.rows})
        self.assertEqual(grid.selected_ids(), [5, 6, 7, 8, 9, 10])
        grid.select_all(False)
        self.assertEqual(grid.selection, frozenset())

    def test_select_row_produces_new_state(self) -> None:
        seen = []
        grid = Grid(COLUMNS, rows=_rows([1, 2, 3]), on_select=seen.append)
        before = grid.selection
        grid.select_row(2, True)
        self.assertEqual(before, frozenset())
        self.assertEqual(grid.selection, frozenset({2}))
        grid.select_row(99, True)
        self.assertEqual(grid.selection, frozenset({2}))
        grid.select_row(2, False)
        self.assertEqual(seen, [[2], []])

    def test_select_all_flags(self) -> None:
        grid = Grid(COLUMNS, rows=_rows([1, 2]))
        grid.select_row(1, True)
        vm = grid.view_model()
        self.assertEqual(vm["select_all"], {"checked": False, "indeterminate": True})
        grid.select_row(2, True)
        self.assertEqual(grid.view_model()["select_all"], {"checked": True, "indeterminate": False})

    def test_row_click_is_separate_from_checkbox(self) -> None:
        clicked = []
        grid = Grid(COLUMNS, rows=_rows([1]), on_row_click=clicked.append)
        grid.toggle_checkbox(1, True)
        self.assertEqual(clicked, [])
        grid.click_row(1)
        self.assertEqual(clicked[0]["id"], 1)
        self.assertEqual(grid.selection, frozenset({1}))

    def test_empty_grid_renders_single_row(self) -> None:
        grid = Grid(COLUMNS, rows=[], empty_message="No leads found")
        body = grid.view_model()["body"]
        self.assertEqual(len(body), 1)
        self.assertEqual(body[0]["type"], "empty")
        self.assertEqual(body[0]["message"], "No leads found")
        self.assertNotIn("cells", body[0])
        self.assertEqual(body[0]["colspan"], 4)

    def test_loading_suppresses_table(self) -> None:
        grid = Grid(COLUMNS, rows=_rows([1]), loading=True)
        vm = grid.view_model()
        self.assertTrue(vm["loading"])
        self.assertIn("spinner", vm)
        self.assertNotIn("body", vm)
        self.assertNotIn("headers", vm)

    def test_header_indicators(self) -> None:
        grid = Grid(COLUMNS, rows=_rows([1]))
        grid.set_sort("amount")
        grid.set_sort("amount")
        headers = {h["key"]: h for h in grid.view_model()["headers"]}
        self.assertEqual(headers["amount"]["indicators"], {"asc": False, "desc": True})
        self.assertEqual(headers["name"]["indicators"], {"asc": False, "desc": False})
        self.assertNotIn("indicators", headers["notes"])

    def test_cells_use_renderer_dispatch(self) -> None:
        grid = Grid(COLUMNS, rows=[{"id": 1, "name": "A", "amount": 5}], currency="USD")
        row = grid.view_model()["body"][0]
        cells = {c["key"]: c["display"] for c in row["cells"]}
        self.assertEqual(cells["amount"]["text"], "$5.00")
        self.assertEqual(cells["notes"]["kind"], "placeholder")
        self.assertFalse(row["selected"])

    def test_rows_are_copied(self) -> None:
        rows = _rows([1])
        grid = Grid(COLUMNS, rows=rows)
        rows[0]["name"] = "changed"
        self.assertEqual(grid.row(1)["name"], "Row 1")

    def test_rows_need_ids(self) -> None:
        with self.assertRaises(SchemaError):
            Grid(COLUMNS, rows=[{"name": "no id"}])


if __name__ == "__main__":
    unittest.main()
