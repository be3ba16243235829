import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from schemaview.conditions import (
    DEPTH_EXCEEDED,
    SCHEMA_INVALID,
    TYPE_MISMATCH,
    UNKNOWN_OP,
    VAR_UNRESOLVED,
    ConditionError,
    eval_condition,
    referenced_fields,
)
from schemaview.errors import ViewError


def _eq(var, literal):
    return {"op": "eq", "left": {"var": var}, "right": {"literal": literal}}


class TestConditions(unittest.TestCase):
    def setUp(self) -> None:
        self.ctx = {"values": {"stage": "Closed Lost", "amount": 300, "tags": ["vip", "new"], "note": ""}}

    def _code(self, cond, **kwargs):
        with self.assertRaises(ConditionError) as ctx:
            eval_condition(cond, self.ctx, **kwargs)
        return ctx.exception.code

    def test_boolean_ops(self) -> None:
        self.assertTrue(eval_condition({"op": "and", "children": []}, self.ctx))
        self.assertFalse(eval_condition({"op": "or", "children": []}, self.ctx))
        self.assertTrue(eval_condition({"op": "not", "children": [_eq("values.stage", "Open")]}, self.ctx))
        cond = {"op": "or", "children": [_eq("values.stage", "Open"), _eq("values.amount", 300)]}
        self.assertTrue(eval_condition(cond, self.ctx))

    def test_comparisons(self) -> None:
        gt = {"op": "gt", "left": {"var": "values.amount"}, "right": {"literal": 100}}
        self.assertTrue(eval_condition(gt, self.ctx))
        lte = {"op": "lte", "left": {"var": "values.amount"}, "right": {"literal": 100}}
        self.assertFalse(eval_condition(lte, self.ctx))
        contains = {"op": "contains", "left": {"var": "values.tags"}, "right": {"literal": "vip"}}
        self.assertTrue(eval_condition(contains, self.ctx))
        in_op = {"op": "in", "left": {"var": "values.stage"}, "right": {"array": [{"literal": "Closed Won"}, {"literal": "Closed Lost"}]}}
        self.assertTrue(eval_condition(in_op, self.ctx))
        not_in = {"op": "not_in", "left": {"var": "values.stage"}, "right": {"literal": ["Open"]}}
        self.assertTrue(eval_condition(not_in, self.ctx))

    def test_field_shorthand(self) -> None:
        self.assertTrue(eval_condition({"field": "stage", "op": "equals", "value": "Closed Lost"}, self.ctx))
        self.assertFalse(eval_condition({"field": "stage", "op": "not_equals", "value": "Closed Lost"}, self.ctx))
        self.assertTrue(eval_condition({"field": "tags", "op": "contains", "value": "new"}, self.ctx))
        self.assertFalse(eval_condition({"field": "note", "op": "exists"}, self.ctx))

    def test_exists(self) -> None:
        self.assertFalse(eval_condition({"op": "exists", "left": {"var": "values.note"}}, self.ctx))
        self.assertTrue(eval_condition({"op": "not_exists", "left": {"var": "values.missing"}}, self.ctx))

    def test_strict_and_lenient_vars(self) -> None:
        self.assertEqual(self._code(_eq("values.missing", 1)), VAR_UNRESOLVED)
        self.assertFalse(eval_condition(_eq("values.missing", 1), self.ctx, strict=False))
        gt = {"op": "gt", "left": {"var": "values.missing"}, "right": {"literal": 1}}
        self.assertFalse(eval_condition(gt, self.ctx, strict=False))
        bad = {"op": "gt", "left": {"var": "values.stage"}, "right": {"literal": 1}}
        self.assertEqual(self._code(bad), TYPE_MISMATCH)

    def test_schema_errors(self) -> None:
        self.assertEqual(self._code({"left": {"literal": 1}}), SCHEMA_INVALID)
        self.assertEqual(self._code({"op": "xor", "left": {"literal": 1}, "right": {"literal": 1}}), UNKNOWN_OP)
        self.assertEqual(self._code({"op": "not", "children": []}), SCHEMA_INVALID)
        self.assertEqual(self._code({"op": "eq", "left": {"literal": 1}}), SCHEMA_INVALID)

    def test_depth_limit(self) -> None:
        cond = _eq("values.amount", 300)
        for _ in range(12):
            cond = {"op": "not", "children": [cond]}
        self.assertEqual(self._code(cond), DEPTH_EXCEEDED)

    def test_errors_join_view_taxonomy(self) -> None:
        self.assertTrue(issubclass(ConditionError, ViewError))

    def test_referenced_fields(self) -> None:
        cond = {
            "op": "and",
            "children": [_eq("values.stage", "Closed Lost"), {"field": "amount", "op": "gt", "value": 0}],
        }
        self.assertEqual(referenced_fields(cond), {"stage", "amount"})
        self.assertEqual(referenced_fields(None), set())


if __name__ == "__main__":
    unittest.main()
