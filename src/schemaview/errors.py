"""Error taxonomy shared by the view engine and its data sources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class ViewError(Exception):
    code: str
    message: str
    path: str | None = None

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        base = f"{self.code}: {self.message}"
        return f"{base} (path={self.path})" if self.path else base

    def as_issue(self, detail: dict | None = None) -> dict:
        return {"code": self.code, "message": self.message, "path": self.path, "detail": detail}


class SchemaError(ViewError):
    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__("SCHEMA_INVALID", message, path)


class FormValidationError(ViewError):
    def __init__(self, errors: Dict[str, str]) -> None:
        first = next(iter(errors), None)
        super().__init__("VALIDATION_FAILED", f"{len(errors)} field(s) failed validation", first)
        self.errors = dict(errors)


class RequestError(ViewError):
    def __init__(
        self,
        message: str,
        status: int | None = None,
        code: str = "REQUEST_FAILED",
        detail: Any = None,
    ) -> None:
        super().__init__(code, message, None)
        self.status = status
        self.detail = detail


class NotFoundError(RequestError):
    def __init__(self, message: str = "Record not found", code: str = "NOT_FOUND", detail: Any = None) -> None:
        super().__init__(message, status=404, code=code, detail=detail)
