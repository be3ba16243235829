import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from schemaview.datasource import ListQuery
from schemaview.errors import NotFoundError, RequestError
from schemaview.http_source import HttpDataSource, singular


def _build_app(store: dict, calls: list) -> FastAPI:
    app = FastAPI()

    @app.get("/api/leads")
    async def list_leads(request: Request):
        params = dict(request.query_params)
        calls.append(("GET", "/leads", params))
        page = int(params.get("page", 1))
        limit = int(params.get("limit", 20))
        rows = list(store.values())
        if params.get("search"):
            rows = [r for r in rows if params["search"].lower() in r["company"].lower()]
        if params.get("status"):
            rows = [r for r in rows if r["status"] == params["status"]]
        total = len(rows)
        start = (page - 1) * limit
        return {
            "success": True,
            "data": {
                "leads": rows[start : start + limit],
                "pagination": {
                    "currentPage": page,
                    "totalPages": -(-total // limit),
                    "totalCount": total,
                    "limit": limit,
                    "hasNextPage": False,
                    "hasPrevPage": page > 1,
                },
            },
        }

    @app.delete("/api/leads/bulk-delete")
    async def bulk_delete(request: Request):
        body = await request.json()
        calls.append(("DELETE", "/leads/bulk-delete", body))
        deleted = 0
        for lead_id in body.get("leadIds", []):
            if store.pop(lead_id, None) is not None:
                deleted += 1
        return {"success": True, "message": f"{deleted} leads deleted successfully"}

    @app.get("/api/leads/{lead_id}")
    async def get_lead(lead_id: str):
        lead = store.get(lead_id)
        if lead is None:
            return JSONResponse({"success": False, "message": "Lead not found"}, status_code=404)
        return {"success": True, "data": {"lead": lead}}

    @app.post("/api/leads")
    async def create_lead(request: Request):
        body = await request.json()
        if not body.get("lastName"):
            return JSONResponse(
                {
                    "success": False,
                    "message": "Validation failed",
                    "code": "VALIDATION_ERROR",
                    "errors": [{"field": "lastName", "message": "Last name is required"}],
                },
                status_code=400,
            )
        lead_id = f"l{len(store) + 1}"
        store[lead_id] = {"_id": lead_id, **body}
        return JSONResponse({"success": True, "data": {"lead": store[lead_id]}}, status_code=201)

    @app.put("/api/leads/{lead_id}")
    async def update_lead(lead_id: str, request: Request):
        if lead_id not in store:
            return JSONResponse({"success": False, "message": "Lead not found"}, status_code=404)
        store[lead_id].update(await request.json())
        return {"success": True, "data": {"lead": store[lead_id]}}

    @app.delete("/api/leads/{lead_id}")
    async def delete_lead(lead_id: str):
        if store.pop(lead_id, None) is None:
            return JSONResponse({"success": False, "message": "Lead not found"}, status_code=404)
        return {"success": True, "message": "Lead deleted successfully"}

    return app


class TestHttpDataSource(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.store = {
            "a1": {"_id": "a1", "company": "Acme", "status": "New", "lastName": "Doe"},
            "a2": {"_id": "a2", "company": "Globex", "status": "Qualified", "lastName": "Roe"},
        }
        self.calls = []
        app = _build_app(self.store, self.calls)
        self.client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test/api")
        self.source = HttpDataSource("leads", client=self.client)

    async def asyncTearDown(self) -> None:
        await self.client.aclose()

    async def test_singular(self) -> None:
        self.assertEqual(singular("leads"), "lead")
        self.assertEqual(singular("opportunities"), "opportunity")
        self.assertEqual(self.source.item_key, "lead")

    async def test_list_sends_query_and_normalizes_ids(self) -> None:
        with self.assertLogs("schemaview.http", level="INFO") as logs:
            result = await self.source.list(
                ListQuery(page=1, limit=1, search="ac", sort_by="createdAt", sort_order="desc", filters={"status": "New"})
            )
        self.assertEqual([r["id"] for r in result.rows], ["a1"])
        self.assertEqual(result.pagination.total_count, 1)
        _, _, params = self.calls[0]
        self.assertEqual(params["sortBy"], "createdAt")
        self.assertEqual(params["sortOrder"], "desc")
        self.assertEqual(params["status"], "New")
        self.assertTrue(any("http_call method=GET" in line for line in logs.output))

    async def test_pagination_is_recomputed(self) -> None:
        result = await self.source.list(ListQuery(page=1, limit=1))
        self.assertEqual(result.pagination.total_pages, 2)
        self.assertTrue(result.pagination.has_next_page)

    async def test_get_and_not_found(self) -> None:
        lead = await self.source.get_by_id("a2")
        self.assertEqual(lead["id"], "a2")
        with self.assertRaises(NotFoundError) as ctx:
            await self.source.get_by_id("zz")
        self.assertEqual(ctx.exception.status, 404)
        self.assertEqual(ctx.exception.message, "Lead not found")

    async def test_create_update_remove(self) -> None:
        created = await self.source.create({"company": "Initech", "status": "New", "lastName": "Poe"})
        self.assertEqual(created["company"], "Initech")
        updated = await self.source.update(created["id"], {"status": "Contacted"})
        self.assertEqual(updated["status"], "Contacted")
        await self.source.remove(created["id"])
        self.assertNotIn(created["id"], self.store)

    async def test_server_validation_error(self) -> None:
        with self.assertRaises(RequestError) as ctx:
            await self.source.create({"company": "Nope"})
        exc = ctx.exception
        self.assertEqual(exc.status, 400)
        self.assertEqual(exc.code, "VALIDATION_ERROR")
        self.assertEqual(exc.detail[0]["field"], "lastName")

    async def test_bulk_remove_uses_bulk_endpoint(self) -> None:
        await self.source.bulk_remove(["a1", "a2"])
        self.assertEqual(self.calls[-1], ("DELETE", "/leads/bulk-delete", {"leadIds": ["a1", "a2"]}))
        self.assertEqual(self.store, {})


class TestHttpFailures(unittest.IsolatedAsyncioTestCase):
    async def test_transport_error_becomes_request_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test/api") as client:
            source = HttpDataSource("accounts", client=client)
            with self.assertRaises(RequestError) as ctx:
                await source.get_by_id("x")
        self.assertEqual(ctx.exception.code, "NETWORK_ERROR")

    async def test_server_error_and_malformed_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET" and request.url.path.endswith("/accounts"):
                return httpx.Response(200, json={"data": "nope"})
            return httpx.Response(500, json={"message": "Server exploded"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test/api") as client:
            source = HttpDataSource("accounts", client=client)
            with self.assertRaises(RequestError) as ctx:
                await source.remove("x")
            self.assertEqual(ctx.exception.status, 500)
            self.assertEqual(ctx.exception.message, "Server exploded")
            with self.assertRaises(RequestError) as bad:
                await source.list(ListQuery())
            self.assertEqual(bad.exception.code, "BAD_RESPONSE")


if __name__ == "__main__":
    unittest.main()
