"""Conditions attached to fields: ``visible_when`` and ``required_when``.

A condition is a dict with an ``op``. Boolean ops (``and``/``or``/``not``) hold
``children``; comparisons hold ``left``/``right`` operands. An operand is either
``{"var": "values.stage"}``, ``{"literal": ...}`` or ``{"array": [...]}``.
The shorthand ``{"field": "stage", "op": "eq", "value": "Closed Lost"}`` is
accepted for single-field checks.
"""

from __future__ import annotations

import math
import operator
from typing import Any, Callable, Dict, Iterator

from .errors import ViewError


SCHEMA_INVALID = "CONDITION_SCHEMA_ERROR"
DEPTH_EXCEEDED = "CONDITION_DEPTH_EXCEEDED"
VAR_UNRESOLVED = "CONDITION_VAR_UNRESOLVED"
TYPE_MISMATCH = "CONDITION_TYPE_ERROR"
UNKNOWN_OP = "CONDITION_UNKNOWN_OP"

_MISSING = object()


class ConditionError(ViewError):
    def __init__(self, code: str, message: str, path: str | None = None) -> None:
        super().__init__(code, message, path)


def _number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


_ORDERING: Dict[str, Callable[[Any, Any], bool]] = {
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
}

_ALIASES = {"equals": "eq", "not_equals": "neq", "ne": "neq"}


class _Evaluator:
    def __init__(self, ctx: dict, depth_limit: int, strict: bool) -> None:
        self.ctx = ctx
        self.depth_limit = depth_limit
        self.strict = strict

    def _guard(self, depth: int, path: str) -> None:
        if depth > self.depth_limit:
            raise ConditionError(DEPTH_EXCEEDED, "Depth limit exceeded", path)

    def lookup(self, name: str, path: str) -> Any:
        current: Any = self.ctx
        for part in name.split("."):
            if not isinstance(current, dict) or part not in current:
                return _MISSING
            current = current[part]
        return current

    def var(self, name: Any, path: str) -> Any:
        if not isinstance(name, str) or not name:
            raise ConditionError(SCHEMA_INVALID, "var must be a non-empty string", path)
        value = self.lookup(name, path)
        if value is _MISSING:
            if self.strict:
                raise ConditionError(VAR_UNRESOLVED, f"Unresolved var: {name}", path)
            return None
        return value

    def operand(self, node: Any, path: str, depth: int) -> Any:
        self._guard(depth, path)
        if not isinstance(node, dict):
            raise ConditionError(SCHEMA_INVALID, "Operand must be an object", path)
        if "var" in node:
            return self.var(node["var"], path)
        if "literal" in node:
            return node["literal"]
        if "array" in node:
            items = node["array"]
            if not isinstance(items, list):
                raise ConditionError(SCHEMA_INVALID, "array must be a list", path)
            return [self.operand(item, f"{path}.array[{i}]", depth + 1) for i, item in enumerate(items)]
        raise ConditionError(SCHEMA_INVALID, "Operand needs var, literal or array", path)

    def evaluate(self, cond: Any, path: str, depth: int) -> bool:
        self._guard(depth, path)
        if not isinstance(cond, dict):
            raise ConditionError(SCHEMA_INVALID, "Condition must be an object", path)
        op = cond.get("op")
        if not isinstance(op, str):
            raise ConditionError(SCHEMA_INVALID, "Missing op", path)
        op = _ALIASES.get(op, op)
        if "field" in cond:
            return self._shorthand(op, cond, path)
        if op in ("and", "or", "not"):
            return self._boolean(op, cond, path, depth)
        if op in ("exists", "not_exists"):
            if "left" not in cond:
                raise ConditionError(SCHEMA_INVALID, "Missing left", path)
            left = cond["left"]
            if isinstance(left, dict) and "var" in left:
                value = self.lookup(str(left["var"]), f"{path}.left")
            else:
                value = self.operand(left, f"{path}.left", depth + 1)
            present = value is not _MISSING and value is not None and value != ""
            return present if op == "exists" else not present
        if "left" not in cond or "right" not in cond:
            raise ConditionError(SCHEMA_INVALID, "Comparison needs left and right", path)
        left = self.operand(cond["left"], f"{path}.left", depth + 1)
        right = self.operand(cond["right"], f"{path}.right", depth + 1)
        return self.compare(op, left, right, path)

    def _shorthand(self, op: str, cond: dict, path: str) -> bool:
        value = self.var(f"values.{cond['field']}", f"{path}.field")
        if op in ("exists", "not_exists"):
            present = value is not None and value != ""
            return present if op == "exists" else not present
        return self.compare(op, value, cond.get("value"), path)

    def _boolean(self, op: str, cond: dict, path: str, depth: int) -> bool:
        children = cond.get("children")
        if not isinstance(children, list):
            raise ConditionError(SCHEMA_INVALID, "children must be a list", f"{path}.children")
        if op == "not":
            if len(children) != 1:
                raise ConditionError(SCHEMA_INVALID, "not takes exactly one child", f"{path}.children")
            return not self.evaluate(children[0], f"{path}.children[0]", depth + 1)
        results: Iterator[bool] = (
            self.evaluate(child, f"{path}.children[{i}]", depth + 1) for i, child in enumerate(children)
        )
        return all(results) if op == "and" else any(results)

    def compare(self, op: str, left: Any, right: Any, path: str) -> bool:
        if op == "eq":
            return left == right
        if op == "neq":
            return left != right
        if op in _ORDERING:
            if not (_number(left) and _number(right)):
                if self.strict:
                    raise ConditionError(TYPE_MISMATCH, f"{op} compares numbers only", path)
                return False
            if not (math.isfinite(left) and math.isfinite(right)):
                raise ConditionError(TYPE_MISMATCH, "Non-finite number", path)
            return _ORDERING[op](left, right)
        if op == "contains":
            if isinstance(left, str) and isinstance(right, str):
                return right in left
            if isinstance(left, (list, tuple)):
                return right in left
            if left is None and not self.strict:
                return False
            raise ConditionError(TYPE_MISMATCH, "contains needs a string or list on the left", path)
        if op in ("in", "not_in"):
            if not isinstance(right, (list, tuple)):
                raise ConditionError(TYPE_MISMATCH, "right must be a list", f"{path}.right")
            return (left in right) == (op == "in")
        raise ConditionError(UNKNOWN_OP, f"Unknown op: {op}", path)


def eval_condition(cond: dict, ctx: dict, depth_limit: int = 10, strict: bool = True) -> bool:
    """Evaluate ``cond`` against ``ctx``.

    With ``strict=False`` an unresolved ``var`` evaluates to ``None`` and a
    numeric comparison against a non-number is false, which is how form
    dependencies treat fields that have no value yet.
    """
    if not isinstance(ctx, dict):
        raise ConditionError(SCHEMA_INVALID, "ctx must be an object", "$")
    return _Evaluator(ctx, depth_limit, strict).evaluate(cond, "$", 1)


def referenced_fields(cond: Any) -> set:
    """Names of the form values a condition reads."""
    names: set = set()
    if isinstance(cond, dict):
        if isinstance(cond.get("field"), str):
            names.add(cond["field"])
        var = cond.get("var")
        if isinstance(var, str) and var.startswith(("values.", "record.")):
            names.add(var.split(".")[1])
        for value in cond.values():
            if isinstance(value, (dict, list)):
                names |= referenced_fields(value)
    elif isinstance(cond, list):
        for item in cond:
            names |= referenced_fields(item)
    return names
