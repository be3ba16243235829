import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from schemaview.datasource import ListQuery, MemoryDataSource
from schemaview.errors import NotFoundError


ROWS = [
    {"id": "1", "name": "Acme", "status": "New", "amount": 30},
    {"id": "2", "name": "Globex", "status": "Qualified", "amount": None},
    {"id": "3", "name": "Initech", "status": "New", "amount": 10},
    {"id": "4", "name": "acme east", "status": "Contacted", "amount": 20},
]


class TestListQuery(unittest.TestCase):
    def test_to_params(self) -> None:
        query = ListQuery(page=2, limit=10, search="ac", sort_by="name", sort_order="desc", filters={"status": "New", "x": ""})
        self.assertEqual(
            query.to_params(),
            {"page": 2, "limit": 10, "search": "ac", "sortBy": "name", "sortOrder": "desc", "status": "New"},
        )
        self.assertEqual(ListQuery().to_params(), {"page": 1, "limit": 20})


class TestMemoryDataSource(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.source = MemoryDataSource(ROWS, search_fields=["name"])

    async def test_search_is_case_insensitive(self) -> None:
        result = await self.source.list(ListQuery(search="ACME"))
        self.assertEqual([r["id"] for r in result.rows], ["1", "4"])
        self.assertEqual(result.pagination.total_count, 2)

    async def test_filters_and_sort_with_missing_last(self) -> None:
        result = await self.source.list(ListQuery(filters={"status": "New"}, sort_by="amount", sort_order="asc"))
        self.assertEqual([r["id"] for r in result.rows], ["3", "1"])
        result = await self.source.list(ListQuery(sort_by="amount", sort_order="desc"))
        self.assertEqual([r["id"] for r in result.rows], ["1", "4", "3", "2"])

    async def test_pagination(self) -> None:
        result = await self.source.list(ListQuery(page=2, limit=3))
        self.assertEqual(len(result.rows), 1)
        self.assertEqual(result.pagination.total_pages, 2)
        self.assertFalse(result.pagination.has_next_page)

    async def test_crud(self) -> None:
        created = await self.source.create({"name": "Umbrella"})
        self.assertTrue(created["id"])
        fetched = await self.source.get_by_id(created["id"])
        self.assertEqual(fetched["name"], "Umbrella")
        updated = await self.source.update(created["id"], {"name": "Umbrella Corp", "id": "ignored"})
        self.assertEqual(updated["id"], created["id"])
        await self.source.remove(created["id"])
        with self.assertRaises(NotFoundError):
            await self.source.get_by_id(created["id"])

    async def test_missing_records(self) -> None:
        with self.assertRaises(NotFoundError):
            await self.source.update("nope", {})
        with self.assertRaises(NotFoundError):
            await self.source.remove("nope")

    async def test_bulk_remove_ignores_absent(self) -> None:
        await self.source.bulk_remove(["1", "2", "zzz"])
        self.assertEqual(sorted(r["id"] for r in self.source.snapshot()), ["3", "4"])

    async def test_rows_are_isolated(self) -> None:
        result = await self.source.list(ListQuery())
        result.rows[0]["name"] = "mutated"
        again = await self.source.get_by_id(result.rows[0]["id"])
        self.assertNotEqual(again["name"], "mutated")


if __name__ == "__main__":
    unittest.main()
