"""Value renderer dispatch keyed by semantic type."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable

from .config import get_settings
from .schema import ColumnSchema, FieldSchema, Option, SemanticType, semantic_type


PLACEHOLDER = "—"

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

_CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "JPY": "¥", "INR": "₹"}
_ZERO_DECIMAL_CURRENCIES = {"JPY", "KRW"}

BADGE_YES_CLASS = "badge badge-yes"
BADGE_NO_CLASS = "badge badge-no"


@dataclass(frozen=True)
class Display:
    kind: str
    text: str
    href: str | None = None
    external: bool = False
    css_class: str | None = None

    def as_dict(self) -> dict:
        return {
            "kind": self.kind,
            "text": self.text,
            "href": self.href,
            "external": self.external,
            "css_class": self.css_class,
        }


def _text(value: Any) -> Display:
    return Display("text", value if isinstance(value, str) else str(value))


def _raw(value: Any) -> Display:
    try:
        return _text(value)
    except Exception:
        return Display("text", object.__repr__(value))


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise TypeError("boolean is not a number")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        return Decimal(value.strip().replace(",", ""))
    raise TypeError(f"not a number: {type(value).__name__}")


def format_currency(value: Any, currency: str | None = None) -> str:
    code = (currency or get_settings().currency).upper()
    amount = _to_decimal(value)
    if not amount.is_finite():
        raise InvalidOperation("non-finite amount")
    places = 0 if code in _ZERO_DECIMAL_CURRENCIES else 2
    quantum = Decimal(1).scaleb(-places)
    rounded = amount.quantize(quantum, rounding=ROUND_HALF_UP)
    body = f"{abs(rounded):,.{places}f}"
    symbol = _CURRENCY_SYMBOLS.get(code)
    text = f"{symbol}{body}" if symbol else f"{code} {body}"
    return f"-{text}" if rounded < 0 else text


def parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # epoch milliseconds
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    if isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        return datetime.fromisoformat(raw)
    raise TypeError(f"not a date: {type(value).__name__}")


def format_date(value: Any) -> str:
    dt = parse_datetime(value)
    return f"{_MONTHS[dt.month - 1]} {dt.day:02d}, {dt.year:04d}"


def format_datetime(value: Any) -> str:
    dt = parse_datetime(value)
    hour = dt.hour % 12 or 12
    meridiem = "AM" if dt.hour < 12 else "PM"
    return f"{format_date(dt)} {hour:02d}:{dt.minute:02d} {meridiem}"


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("false", "no", "0", "off"):
            return False
        return bool(lowered)
    return bool(value)


def _render_text(value: Any, options: Iterable[Option], currency: str | None) -> Display:
    return _text(value)


def _render_email(value: Any, options: Iterable[Option], currency: str | None) -> Display:
    text = str(value)
    return Display("link", text, href=f"mailto:{text}")


def _render_phone(value: Any, options: Iterable[Option], currency: str | None) -> Display:
    text = str(value)
    return Display("link", text, href=f"tel:{text}")


def _render_url(value: Any, options: Iterable[Option], currency: str | None) -> Display:
    text = str(value)
    return Display("link", text, href=text, external=True)


def _render_currency(value: Any, options: Iterable[Option], currency: str | None) -> Display:
    return Display("text", format_currency(value, currency))


def _render_percentage(value: Any, options: Iterable[Option], currency: str | None) -> Display:
    return Display("text", f"{value}%")


def _render_date(value: Any, options: Iterable[Option], currency: str | None) -> Display:
    return Display("text", format_date(value))


def _render_datetime(value: Any, options: Iterable[Option], currency: str | None) -> Display:
    return Display("text", format_datetime(value))


def _render_boolean(value: Any, options: Iterable[Option], currency: str | None) -> Display:
    if _as_bool(value):
        return Display("badge", "Yes", css_class=BADGE_YES_CLASS)
    return Display("badge", "No", css_class=BADGE_NO_CLASS)


def _render_select(value: Any, options: Iterable[Option], currency: str | None) -> Display:
    if isinstance(value, (list, tuple)):
        labels = [_option_text(item, options) for item in value]
        return Display("text", ", ".join(labels))
    return Display("text", _option_text(value, options))


def _option_text(value: Any, options: Iterable[Option]) -> str:
    for opt in options:
        if opt.value == value:
            return opt.label
    return str(value)


def _render_textarea(value: Any, options: Iterable[Option], currency: str | None) -> Display:
    return Display("multiline", str(value))


Renderer = Callable[[Any, Iterable[Option], "str | None"], Display]

_RENDERERS: Dict[SemanticType, Renderer] = {
    SemanticType.TEXT: _render_text,
    SemanticType.EMAIL: _render_email,
    SemanticType.PHONE: _render_phone,
    SemanticType.URL: _render_url,
    SemanticType.CURRENCY: _render_currency,
    SemanticType.PERCENTAGE: _render_percentage,
    SemanticType.DATE: _render_date,
    SemanticType.DATETIME: _render_datetime,
    SemanticType.BOOLEAN: _render_boolean,
    SemanticType.SELECT: _render_select,
    SemanticType.TEXTAREA: _render_textarea,
    SemanticType.NUMBER: _render_text,
}

_UNCOVERED = set(SemanticType) - set(_RENDERERS)
if _UNCOVERED:
    raise RuntimeError(f"renderer missing for semantic types: {sorted(t.value for t in _UNCOVERED)}")


def render(ftype: Any, value: Any, options: Iterable[Option] = (), currency: str | None = None) -> Display:
    """Render ``value`` for display according to semantic type ``ftype``.

    Never raises: an unknown type renders as text and a value that does not fit
    its type degrades to its raw string form.
    """
    if _is_empty(value):
        return Display("placeholder", PLACEHOLDER)
    try:
        stype, _ = semantic_type(ftype)
    except Exception:
        stype = SemanticType.TEXT
    try:
        return _RENDERERS[stype](value, tuple(options or ()), currency)
    except Exception:
        return _raw(value)


def render_field(fschema: FieldSchema, value: Any, currency: str | None = None) -> Display:
    return render(fschema.type, value, fschema.options, currency)


def render_cell(column: ColumnSchema, row: dict, currency: str | None = None) -> Any:
    value = row.get(column.key) if isinstance(row, dict) else None
    if column.renderer is not None:
        return column.renderer(value, row)
    return render(column.type, value, column.options, currency)


def plain_text(display: Any) -> str:
    if isinstance(display, Display):
        return "" if display.kind == "placeholder" else display.text
    if display is None:
        return ""
    if isinstance(display, dict) and "text" in display:
        return str(display["text"])
    return str(display)
