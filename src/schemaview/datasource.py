"""Data source interface consumed by the orchestrators, plus an in-memory implementation."""

from __future__ import annotations

import abc
import copy
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence

from .errors import NotFoundError
from .pagination import PaginationState


logger = logging.getLogger("schemaview.datasource")


@dataclass(frozen=True)
class ListQuery:
    page: int = 1
    limit: int = 20
    search: str = ""
    sort_by: str | None = None
    sort_order: str | None = None
    filters: Dict[str, Any] = field(default_factory=dict, hash=False)

    def to_params(self) -> dict:
        params: Dict[str, Any] = {"page": self.page, "limit": self.limit}
        if self.search:
            params["search"] = self.search
        if self.sort_by:
            params["sortBy"] = self.sort_by
            params["sortOrder"] = self.sort_order or "asc"
        for key, value in self.filters.items():
            if value is None or value == "":
                continue
            params[key] = value
        return params


@dataclass
class ListResult:
    rows: List[dict]
    pagination: PaginationState


class DataSource(abc.ABC):
    """One entity collection. Every call may raise ``RequestError``."""

    @abc.abstractmethod
    async def list(self, query: ListQuery) -> ListResult: ...

    @abc.abstractmethod
    async def get_by_id(self, record_id: Any) -> dict: ...

    @abc.abstractmethod
    async def create(self, data: dict) -> dict: ...

    @abc.abstractmethod
    async def update(self, record_id: Any, data: dict) -> dict: ...

    @abc.abstractmethod
    async def remove(self, record_id: Any) -> None: ...

    async def bulk_remove(self, ids: Sequence[Any]) -> None:
        for record_id in ids:
            await self.remove(record_id)


def _sort_key(value: Any) -> tuple:
    if value is None or value == "":
        return (1, 0, "")
    if isinstance(value, bool):
        return (0, 0, int(value))
    if isinstance(value, (int, float)):
        return (0, 0, value)
    return (0, 1, str(value).lower())


class MemoryDataSource(DataSource):
    def __init__(self, rows: Iterable[dict] = (), search_fields: Sequence[str] | None = None) -> None:
        self._records: Dict[Any, dict] = {}
        self._search_fields = list(search_fields) if search_fields else None
        for row in rows:
            record = copy.deepcopy(row)
            record.setdefault("id", uuid.uuid4().hex)
            self._records[record["id"]] = record

    def _matches(self, record: dict, term: str) -> bool:
        needle = term.strip().lower()
        if not needle:
            return True
        keys = self._search_fields or [k for k in record if k != "id"]
        for key in keys:
            value = record.get(key)
            if isinstance(value, str) and needle in value.lower():
                return True
        return False

    def _filtered(self, query: ListQuery) -> List[dict]:
        items = [r for r in self._records.values() if self._matches(r, query.search)]
        for key, value in query.filters.items():
            if value is None or value == "":
                continue
            items = [r for r in items if r.get(key) == value or str(r.get(key)) == str(value)]
        if query.sort_by:
            reverse = query.sort_order == "desc"
            present = [r for r in items if r.get(query.sort_by) not in (None, "")]
            missing = [r for r in items if r.get(query.sort_by) in (None, "")]
            present.sort(key=lambda r: _sort_key(r.get(query.sort_by)), reverse=reverse)
            items = present + missing
        return items

    async def list(self, query: ListQuery) -> ListResult:
        items = self._filtered(query)
        pagination = PaginationState(max(1, query.page), max(1, query.limit), len(items))
        start = pagination.offset()
        rows = [copy.deepcopy(r) for r in items[start : start + pagination.limit]]
        logger.debug("memory_list page=%s limit=%s total=%s", pagination.current_page, pagination.limit, len(items))
        return ListResult(rows, pagination)

    async def get_by_id(self, record_id: Any) -> dict:
        record = self._records.get(record_id)
        if record is None:
            raise NotFoundError(f"Record not found: {record_id}")
        return copy.deepcopy(record)

    async def create(self, data: dict) -> dict:
        record = copy.deepcopy(data)
        if record.get("id") in (None, ""):
            record["id"] = uuid.uuid4().hex
        self._records[record["id"]] = record
        return copy.deepcopy(record)

    async def update(self, record_id: Any, data: dict) -> dict:
        record = self._records.get(record_id)
        if record is None:
            raise NotFoundError(f"Record not found: {record_id}")
        changes = copy.deepcopy(data)
        changes.pop("id", None)
        record.update(changes)
        return copy.deepcopy(record)

    async def remove(self, record_id: Any) -> None:
        if record_id not in self._records:
            raise NotFoundError(f"Record not found: {record_id}")
        del self._records[record_id]

    async def bulk_remove(self, ids: Sequence[Any]) -> None:
        for record_id in ids:
            self._records.pop(record_id, None)

    def snapshot(self) -> List[dict]:
        return [copy.deepcopy(r) for r in self._records.values()]
