"""Transient, dismissible user notifications."""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Dict, List

from .config import get_settings
from .debounce import Scheduler, TimerHandle


TYPES = ("success", "error", "warning", "info")


@dataclass(frozen=True)
class Notification:
    id: int
    type: str
    title: str
    message: str
    duration_ms: int

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "duration_ms": self.duration_ms,
        }


class NotificationCenter:
    def __init__(self, scheduler: Scheduler | None = None, duration_ms: int | None = None) -> None:
        self._scheduler = scheduler
        self._duration_ms = duration_ms if duration_ms is not None else get_settings().notification_ms
        self._items: List[Notification] = []
        self._timers: Dict[int, TimerHandle] = {}
        self._ids = itertools.count(1)

    def notify(self, type: str, title: str, message: str, duration_ms: int | None = None) -> Notification:
        if type not in TYPES:
            type = "info"
        duration = self._duration_ms if duration_ms is None else duration_ms
        item = Notification(next(self._ids), type, title, message, duration)
        self._items.append(item)
        if self._scheduler is not None and duration > 0:
            self._timers[item.id] = self._scheduler.call_later(duration, lambda: self.dismiss(item.id))
        return item

    def success(self, message: str, title: str = "Success") -> Notification:
        return self.notify("success", title, message)

    def error(self, message: str, title: str = "Error") -> Notification:
        return self.notify("error", title, message)

    def dismiss(self, notification_id: int) -> bool:
        timer = self._timers.pop(notification_id, None)
        if timer is not None:
            timer.cancel()
        before = len(self._items)
        self._items = [n for n in self._items if n.id != notification_id]
        return len(self._items) != before

    def clear(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._items = []

    def items(self) -> List[Notification]:
        return list(self._items)

    def as_list(self) -> List[dict]:
        return [n.as_dict() for n in self._items]
