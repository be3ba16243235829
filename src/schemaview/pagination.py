"""Pagination arithmetic for list views."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PaginationState:
    current_page: int = 1
    limit: int = 20
    total_count: int = 0

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError("limit must be >= 1")
        if self.current_page < 1:
            raise ValueError("current_page must be >= 1")
        if self.total_count < 0:
            raise ValueError("total_count must be >= 0")

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit)

    @property
    def has_prev_page(self) -> bool:
        return self.current_page > 1

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def first_index(self) -> int:
        if self.total_count == 0:
            return 0
        return (self.current_page - 1) * self.limit + 1

    @property
    def last_index(self) -> int:
        return min(self.current_page * self.limit, self.total_count)

    def summary(self) -> str:
        return f"Showing {self.first_index} to {self.last_index} of {self.total_count} results"

    def offset(self) -> int:
        return (self.current_page - 1) * self.limit

    def as_dict(self) -> dict:
        return {
            "currentPage": self.current_page,
            "limit": self.limit,
            "totalCount": self.total_count,
            "totalPages": self.total_pages,
            "hasPrevPage": self.has_prev_page,
            "hasNextPage": self.has_next_page,
        }

    @classmethod
    def from_payload(cls, payload: Any, default_limit: int = 20) -> "PaginationState":
        """Build from a wire payload, recomputing derived fields from the counts."""
        if not isinstance(payload, dict):
            return cls(1, default_limit, 0)
        page = _as_int(payload.get("currentPage", payload.get("page")), 1)
        limit = _as_int(payload.get("limit"), default_limit)
        total = _as_int(payload.get("totalCount", payload.get("total")), 0)
        return cls(max(1, page), max(1, limit), max(0, total))


def _as_int(value: Any, default: int) -> int:
    if isinstance(value, bool) or value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
