"""Per-field rule composition for form values."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any, Dict, Iterable
from urllib.parse import urlparse

from .conditions import ConditionError, eval_condition
from .schema import FieldSchema, SemanticType


ValidationResult = Dict[str, str]

logger = logging.getLogger("schemaview.form")

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_NUMERIC_TYPES = (SemanticType.NUMBER, SemanticType.CURRENCY, SemanticType.PERCENTAGE)


def is_empty(fschema: FieldSchema, value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set)):
        return len(value) == 0
    if fschema.type == SemanticType.BOOLEAN and value is False:
        return True
    return False


def condition_context(values: dict) -> dict:
    return {"values": dict(values or {}), "record": dict(values or {})}


def is_visible(fschema: FieldSchema, values: dict) -> bool:
    if not fschema.visible_when:
        return True
    try:
        return eval_condition(fschema.visible_when, condition_context(values), strict=False)
    except ConditionError as exc:
        logger.warning("visible_when_invalid field=%s error=%s", fschema.name, exc)
        return True


def is_required(fschema: FieldSchema, values: dict) -> bool:
    if fschema.required:
        return True
    for rule in fschema.rules_of("required_when"):
        try:
            if eval_condition(rule.value, condition_context(values), strict=False):
                return True
        except ConditionError as exc:
            # an unreadable condition keeps the field required
            logger.warning("required_when_invalid field=%s error=%s", fschema.name, exc)
            return True
    return False


def _required_message(fschema: FieldSchema) -> str:
    for rule in fschema.rules_of("required"):
        if rule.message:
            return rule.message
    return f"{fschema.label or fschema.name} is required"


def to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip().replace(",", ""))
        except ValueError:
            return None
    return None


def _is_date(value: Any, with_time: bool) -> bool:
    if isinstance(value, (date, datetime)):
        return True
    if not isinstance(value, str):
        return False
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        if with_time:
            datetime.fromisoformat(raw)
        else:
            date.fromisoformat(raw[:10])
        return True
    except ValueError:
        return False


def _type_error(fschema: FieldSchema, value: Any) -> str | None:
    ftype = fschema.type
    if ftype == SemanticType.EMAIL:
        if not isinstance(value, str) or not _EMAIL_RE.match(value.strip()):
            return "Invalid email"
    elif ftype == SemanticType.URL:
        parsed = urlparse(value.strip()) if isinstance(value, str) else None
        if parsed is None or parsed.scheme not in ("http", "https") or not parsed.netloc:
            return "Invalid URL"
    elif ftype in _NUMERIC_TYPES:
        if to_number(value) is None:
            return "Must be a number"
    elif ftype == SemanticType.DATE:
        if not _is_date(value, with_time=False):
            return "Invalid date"
    elif ftype == SemanticType.DATETIME:
        if not _is_date(value, with_time=True):
            return "Invalid date"
    elif ftype == SemanticType.SELECT and fschema.options:
        allowed = [opt.value for opt in fschema.options]
        items = value if isinstance(value, (list, tuple)) else [value]
        if any(item not in allowed for item in items):
            return f"{fschema.label or fschema.name} must be one of the listed options"
    return None


def _rule_error(fschema: FieldSchema, value: Any, values: dict) -> str | None:
    for rule in fschema.rules:
        kind = rule.kind
        if kind == "pattern":
            pattern = rule.value
            if isinstance(pattern, str):
                pattern = re.compile(pattern)
            if pattern is not None and not pattern.search(str(value)):
                return rule.message or "Invalid format"
        elif kind == "min_length":
            if len(str(value)) < int(rule.value):
                return rule.message or f"Must be at least {rule.value} characters"
        elif kind == "max_length":
            if len(str(value)) > int(rule.value):
                return rule.message or f"Must be at most {rule.value} characters"
        elif kind in ("min", "max"):
            number = to_number(value)
            if number is None:
                return "Must be a number"
            if kind == "min" and number < float(rule.value):
                return rule.message or f"Must be at least {rule.value}"
            if kind == "max" and number > float(rule.value):
                return rule.message or f"Must be at most {rule.value}"
        elif kind == "validate":
            outcome = rule.value(value, values)
            if outcome is True or outcome is None:
                continue
            if isinstance(outcome, str):
                return outcome
            return rule.message or "Invalid value"
    return None


def validate_field(fschema: FieldSchema, value: Any, values: dict | None = None) -> str | None:
    """Return the first error message for ``value`` or ``None`` when it passes.

    Presence is checked first; an empty optional value skips every other rule.
    """
    values = values if values is not None else {fschema.name: value}
    if is_empty(fschema, value):
        if is_required(fschema, values):
            return _required_message(fschema)
        return None
    return _type_error(fschema, value) or _rule_error(fschema, value, values)


def validate_values(fields: Iterable[FieldSchema], values: dict, only_visible: bool = True) -> ValidationResult:
    values = dict(values or {})
    errors: ValidationResult = {}
    for fschema in fields:
        if only_visible and not is_visible(fschema, values):
            continue
        message = validate_field(fschema, values.get(fschema.name), values)
        if message:
            errors[fschema.name] = message
    return errors
