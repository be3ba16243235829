"""REST data source over httpx."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Sequence

import httpx

from .config import get_settings
from .datasource import DataSource, ListQuery, ListResult
from .errors import NotFoundError, RequestError
from .pagination import PaginationState


logger = logging.getLogger("schemaview.http")


def singular(collection: str) -> str:
    if collection.endswith("ies"):
        return collection[:-3] + "y"
    if collection.endswith("s"):
        return collection[:-1]
    return collection


def _normalize_row(row: Any) -> dict:
    if not isinstance(row, dict):
        raise RequestError("Malformed record in response", code="BAD_RESPONSE")
    item = dict(row)
    if item.get("id") is None and item.get("_id") is not None:
        item["id"] = item["_id"]
    return item


def _payload(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


class HttpDataSource(DataSource):
    """Talks to ``{base_url}/{collection}`` endpoints.

    Responses are expected as ``{"data": {...}}`` envelopes; list responses carry
    the rows under the collection name next to a ``pagination`` object.
    """

    def __init__(
        self,
        collection: str,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        headers: Dict[str, str] | None = None,
        item_key: str | None = None,
    ) -> None:
        settings = get_settings()
        self.collection = collection.strip("/")
        self.item_key = item_key or singular(self.collection)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=(base_url or settings.api_url).rstrip("/"),
            timeout=timeout if timeout is not None else settings.api_timeout,
            headers=headers,
        )
        self._default_limit = settings.page_limit

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpDataSource":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict:
        start = time.perf_counter()
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("http_transport_error method=%s path=%s error=%s", method, path, exc)
            raise RequestError(f"Network error: {exc}", code="NETWORK_ERROR") from exc
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info("http_call method=%s path=%s status=%s ms=%.1f", method, path, response.status_code, elapsed_ms)
        body = _payload(response)
        if response.status_code == 404:
            raise NotFoundError(body.get("message") or "Record not found", code=body.get("code") or "NOT_FOUND")
        if response.status_code >= 400:
            raise RequestError(
                body.get("message") or f"Request failed with status {response.status_code}",
                status=response.status_code,
                code=body.get("code") or "REQUEST_FAILED",
                detail=body.get("errors"),
            )
        return body

    def _item(self, body: dict) -> dict:
        data = body.get("data")
        if isinstance(data, dict) and isinstance(data.get(self.item_key), dict):
            return _normalize_row(data[self.item_key])
        raise RequestError("Malformed response: missing record", code="BAD_RESPONSE")

    async def list(self, query: ListQuery) -> ListResult:
        body = await self._request("GET", f"/{self.collection}", params=query.to_params())
        data = body.get("data")
        if not isinstance(data, dict):
            raise RequestError("Malformed response: missing data", code="BAD_RESPONSE")
        raw_rows = data.get(self.collection)
        if raw_rows is None:
            raw_rows = data.get("items") or []
        if not isinstance(raw_rows, list):
            raise RequestError("Malformed response: rows must be a list", code="BAD_RESPONSE")
        rows = [_normalize_row(row) for row in raw_rows]
        pagination = PaginationState.from_payload(data.get("pagination"), query.limit or self._default_limit)
        return ListResult(rows, pagination)

    async def get_by_id(self, record_id: Any) -> dict:
        return self._item(await self._request("GET", f"/{self.collection}/{record_id}"))

    async def create(self, data: dict) -> dict:
        return self._item(await self._request("POST", f"/{self.collection}", json=data))

    async def update(self, record_id: Any, data: dict) -> dict:
        return self._item(await self._request("PUT", f"/{self.collection}/{record_id}", json=data))

    async def remove(self, record_id: Any) -> None:
        await self._request("DELETE", f"/{self.collection}/{record_id}")

    async def bulk_remove(self, ids: Sequence[Any]) -> None:
        await self._request("DELETE", f"/{self.collection}/bulk-delete", json={f"{self.item_key}Ids": list(ids)})
