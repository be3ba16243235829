"""Environment-driven settings for the view engine."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_str(name: str, default: str) -> str:
    return os.getenv(name, "").strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    search_debounce_ms: int = 300
    page_limit: int = 20
    related_list_limit: int = 5
    notification_ms: int = 5000
    currency: str = "USD"
    api_url: str = "http://localhost:5000/api"
    api_timeout: float = 30.0
    default_sort_by: str = "createdAt"
    default_sort_order: str = "desc"

    @classmethod
    def from_env(cls) -> "Settings":
        sort_order = _env_str("SCHEMAVIEW_DEFAULT_SORT_ORDER", "desc").lower()
        if sort_order not in ("asc", "desc"):
            sort_order = "desc"
        return cls(
            search_debounce_ms=max(0, _env_int("SCHEMAVIEW_SEARCH_DEBOUNCE_MS", 300)),
            page_limit=max(1, _env_int("SCHEMAVIEW_PAGE_LIMIT", 20)),
            related_list_limit=max(1, _env_int("SCHEMAVIEW_RELATED_LIST_LIMIT", 5)),
            notification_ms=max(0, _env_int("SCHEMAVIEW_NOTIFICATION_MS", 5000)),
            currency=_env_str("SCHEMAVIEW_CURRENCY", "USD").upper(),
            api_url=_env_str("SCHEMAVIEW_API_URL", "http://localhost:5000/api").rstrip("/"),
            api_timeout=_env_float("SCHEMAVIEW_API_TIMEOUT", 30.0),
            default_sort_by=_env_str("SCHEMAVIEW_DEFAULT_SORT_BY", "createdAt"),
            default_sort_order=sort_order,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS


def reset_settings() -> None:
    global _SETTINGS
    _SETTINGS = None
