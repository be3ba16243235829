"""Delete confirmation modal state shared by the list and record views."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple


SINGLE = "single"
BULK = "bulk"


@dataclass(frozen=True)
class ConfirmDelete:
    open: bool = False
    mode: str | None = None
    target: Any = None
    ids: Tuple[Any, ...] = ()
    pending: bool = False

    @classmethod
    def for_row(cls, row: Any) -> "ConfirmDelete":
        return cls(open=True, mode=SINGLE, target=row)

    @classmethod
    def for_ids(cls, ids: Tuple[Any, ...]) -> "ConfirmDelete":
        return cls(open=True, mode=BULK, ids=tuple(ids))

    def with_pending(self, pending: bool) -> "ConfirmDelete":
        return ConfirmDelete(self.open, self.mode, self.target, self.ids, pending)

    def message(self, noun: str = "item") -> str:
        if self.mode == BULK and len(self.ids) > 1:
            subject = f"{len(self.ids)} selected items"
        elif self.mode == BULK:
            subject = "1 selected item"
        else:
            subject = f"this {noun}"
        return f"Are you sure you want to delete {subject}? This action cannot be undone."

    def view_model(self, noun: str = "item") -> dict | None:
        if not self.open:
            return None
        return {
            "kind": "confirm_delete",
            "title": "Confirm Delete",
            "message": self.message(noun),
            "confirm": {"label": "Delete", "variant": "danger", "disabled": self.pending},
            "cancel": {"label": "Cancel", "disabled": self.pending},
        }
