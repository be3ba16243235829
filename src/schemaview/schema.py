"""Field and column schemas plus normalization of loose definitions."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Tuple

from .errors import SchemaError


ACTIONS_COLUMN_KEY = "actions"


class SemanticType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    URL = "url"
    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    DATE = "date"
    DATETIME = "datetime"
    BOOLEAN = "boolean"
    SELECT = "select"
    TEXTAREA = "textarea"
    NUMBER = "number"


# Input-control names and legacy type names that map onto a semantic type.
# The second item is the control hint kept on the field.
_TYPE_ALIASES: Dict[str, Tuple[SemanticType, str | None]] = {
    "string": (SemanticType.TEXT, None),
    "password": (SemanticType.TEXT, "password"),
    "file": (SemanticType.TEXT, "file"),
    "tel": (SemanticType.PHONE, None),
    "enum": (SemanticType.SELECT, None),
    "radio": (SemanticType.SELECT, "radio"),
    "checkbox": (SemanticType.BOOLEAN, "checkbox"),
    "bool": (SemanticType.BOOLEAN, None),
    "percent": (SemanticType.PERCENTAGE, None),
    "int": (SemanticType.NUMBER, None),
    "integer": (SemanticType.NUMBER, None),
    "float": (SemanticType.NUMBER, None),
}

RULE_KINDS = ("required", "pattern", "min_length", "max_length", "min", "max", "validate", "required_when")

_RULE_KEY_ALIASES = {
    "minLength": "min_length",
    "maxLength": "max_length",
    "requiredWhen": "required_when",
}


def semantic_type(value: Any) -> Tuple[SemanticType, str | None]:
    if isinstance(value, SemanticType):
        return value, None
    if not isinstance(value, str) or not value.strip():
        return SemanticType.TEXT, None
    key = value.strip().lower()
    try:
        return SemanticType(key), None
    except ValueError:
        pass
    if key in _TYPE_ALIASES:
        return _TYPE_ALIASES[key]
    raise SchemaError(f"Unknown field type: {value}", "type")


@dataclass(frozen=True)
class Option:
    value: Any
    label: str


@dataclass(frozen=True)
class Rule:
    """One validation rule attached to a field.

    ``value`` depends on ``kind``: a regex string for ``pattern``, an int for the
    length bounds, a number for ``min``/``max``, a callable ``(value, values)``
    returning ``True`` or an error message for ``validate``, and a condition dict
    for ``required_when``.
    """

    kind: str
    value: Any = field(default=None, hash=False)
    message: str | None = None


@dataclass(frozen=True)
class FieldSchema:
    name: str
    type: SemanticType = SemanticType.TEXT
    label: str = ""
    required: bool = False
    options: Tuple[Option, ...] = ()
    rules: Tuple[Rule, ...] = ()
    control: str | None = None
    placeholder: str | None = None
    disabled: bool = False
    default: Any = field(default=None, hash=False)
    visible_when: Any = field(default=None, hash=False, compare=False)

    def option_label(self, value: Any) -> str | None:
        for opt in self.options:
            if opt.value == value:
                return opt.label
        return None

    def rules_of(self, kind: str) -> List[Rule]:
        return [rule for rule in self.rules if rule.kind == kind]


@dataclass(frozen=True)
class ColumnSchema:
    key: str
    label: str = ""
    sortable: bool = True
    type: SemanticType = SemanticType.TEXT
    options: Tuple[Option, ...] = ()
    renderer: Callable[[Any, dict], Any] | None = field(default=None, compare=False)


@dataclass(frozen=True)
class Section:
    title: str
    fields: Tuple[str, ...] = ()
    description: str | None = None


def title_case(value: str) -> str:
    parts = [p for p in re.split(r"[_\-]", value) if p]
    return " ".join(p[:1].upper() + p[1:] for p in parts) if parts else value


def humanize(name: str) -> str:
    spaced = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", " ", name)
    return title_case(spaced.replace(" ", "_"))


def _option_label(value: Any) -> str:
    text = str(value)
    if re.fullmatch(r"[a-z0-9_\-]+", text):
        return title_case(text)
    return text


def normalize_options(options: Any) -> Tuple[Option, ...]:
    if not isinstance(options, (list, tuple)):
        return ()
    items: List[Option] = []
    for opt in options:
        if isinstance(opt, Option):
            items.append(opt)
        elif isinstance(opt, dict) and "value" in opt:
            label = opt.get("label")
            items.append(Option(opt["value"], str(label) if label is not None else _option_label(opt["value"])))
        else:
            items.append(Option(opt, _option_label(opt)))
    return tuple(items)


def _rule_from_definition(kind: str, definition: Any, path: str) -> Rule | None:
    if definition is None or definition is False:
        return None
    if kind == "validate":
        if callable(definition):
            return Rule("validate", definition)
        raise SchemaError("validate must be callable", path)
    if isinstance(definition, dict) and kind != "required_when":
        return Rule(kind, definition.get("value"), definition.get("message"))
    if kind == "required":
        return Rule("required", True, definition if isinstance(definition, str) else None)
    return Rule(kind, definition)


def normalize_rules(raw: Any, path: str = "rules") -> Tuple[Rule, ...]:
    if raw is None:
        return ()
    if isinstance(raw, (list, tuple)):
        rules = []
        for idx, item in enumerate(raw):
            if not isinstance(item, Rule):
                raise SchemaError("rule list items must be Rule", f"{path}[{idx}]")
            if item.kind not in RULE_KINDS:
                raise SchemaError(f"Unknown rule kind: {item.kind}", f"{path}[{idx}]")
            rules.append(item)
        return tuple(rules)
    if not isinstance(raw, dict):
        raise SchemaError("rules must be an object or a list of rules", path)
    rules = []
    for key, definition in raw.items():
        kind = _RULE_KEY_ALIASES.get(key, key)
        if kind not in RULE_KINDS:
            raise SchemaError(f"Unknown rule kind: {key}", f"{path}.{key}")
        if kind == "validate" and isinstance(definition, dict):
            # named validators, evaluated in declaration order
            for name, func in definition.items():
                rule = _rule_from_definition("validate", func, f"{path}.validate.{name}")
                if rule:
                    rules.append(rule)
            continue
        rule = _rule_from_definition(kind, definition, f"{path}.{key}")
        if rule:
            rules.append(rule)
    return tuple(rules)


def _legacy_visibility(dependencies: Any) -> dict | None:
    if not isinstance(dependencies, list) or not dependencies:
        return None
    children = []
    for dep in dependencies:
        if not isinstance(dep, dict) or "field" not in dep:
            continue
        condition = dep.get("condition", "equals")
        left = {"var": f"values.{dep['field']}"}
        right = {"literal": dep.get("value")}
        if condition == "not_equals":
            children.append({"op": "neq", "left": left, "right": right})
        elif condition == "contains":
            children.append({"op": "contains", "left": left, "right": right})
        else:
            children.append({"op": "eq", "left": left, "right": right})
    return {"op": "and", "children": children}


def field_from_dict(data: dict, path: str = "field") -> FieldSchema:
    name = data.get("name") or data.get("id")
    if not isinstance(name, str) or not name:
        raise SchemaError("field name is required", f"{path}.name")
    ftype, control = semantic_type(data.get("type"))
    control = data.get("control") or control
    options = normalize_options(data.get("options") or data.get("values"))
    if ftype == SemanticType.BOOLEAN and control == "checkbox" and options:
        # checkbox with options is a multi-value checkbox group
        ftype = SemanticType.SELECT
    rules_raw = data.get("rules")
    if rules_raw is None:
        rules_raw = data.get("validation")
    rules = list(normalize_rules(rules_raw, f"{path}.rules"))
    required_when = data.get("required_when")
    if required_when is not None:
        rules.append(Rule("required_when", required_when))
    required = bool(data.get("required")) or any(r.kind == "required" for r in rules)
    visible_when = data.get("visible_when")
    if visible_when is None:
        visible_when = _legacy_visibility(data.get("dependencies"))
    label = data.get("label")
    return FieldSchema(
        name=name,
        type=ftype,
        label=str(label) if label else humanize(name),
        required=required,
        options=options,
        rules=tuple(rules),
        control=control,
        placeholder=data.get("placeholder"),
        disabled=bool(data.get("disabled")),
        default=data.get("default"),
        visible_when=visible_when,
    )


def normalize_fields(fields: Any) -> List[FieldSchema]:
    if isinstance(fields, dict):
        items = []
        for fid, fdef in fields.items():
            if isinstance(fdef, FieldSchema):
                items.append(fdef)
            elif isinstance(fdef, dict):
                items.append({"name": fid, **fdef})
            else:
                items.append({"name": fid})
        fields = items
    if not isinstance(fields, (list, tuple)):
        return []
    normalized: List[FieldSchema] = []
    seen: set[str] = set()
    for idx, item in enumerate(fields):
        if isinstance(item, FieldSchema):
            fschema = item
        elif isinstance(item, dict):
            fschema = field_from_dict(item, f"fields[{idx}]")
        else:
            raise SchemaError("field must be an object", f"fields[{idx}]")
        if fschema.name in seen:
            raise SchemaError(f"Duplicate field name: {fschema.name}", f"fields[{idx}].name")
        seen.add(fschema.name)
        normalized.append(fschema)
    return normalized


def column_from_dict(data: dict, path: str = "column") -> ColumnSchema:
    key = data.get("key") or data.get("field") or data.get("name")
    if not isinstance(key, str) or not key:
        raise SchemaError("column key is required", f"{path}.key")
    ctype, _ = semantic_type(data.get("type"))
    renderer = data.get("renderer") or data.get("render")
    if renderer is not None and not callable(renderer):
        raise SchemaError("renderer must be callable", f"{path}.renderer")
    label = data.get("label")
    return ColumnSchema(
        key=key,
        label=str(label) if label is not None else humanize(key),
        sortable=data.get("sortable") is not False,
        type=ctype,
        options=normalize_options(data.get("options")),
        renderer=renderer,
    )


def normalize_columns(columns: Any) -> List[ColumnSchema]:
    if not isinstance(columns, (list, tuple)):
        return []
    normalized: List[ColumnSchema] = []
    for idx, item in enumerate(columns):
        if isinstance(item, ColumnSchema):
            normalized.append(item)
        elif isinstance(item, dict):
            normalized.append(column_from_dict(item, f"columns[{idx}]"))
        else:
            raise SchemaError("column must be an object", f"columns[{idx}]")
    return normalized


def columns_from_fields(fields: Iterable[FieldSchema], names: Iterable[str] | None = None) -> List[ColumnSchema]:
    by_name = {f.name: f for f in fields}
    order = list(names) if names is not None else list(by_name)
    columns = []
    for name in order:
        fschema = by_name.get(name)
        if fschema is None:
            raise SchemaError(f"Unknown field for column: {name}", "columns")
        columns.append(ColumnSchema(key=name, label=fschema.label, type=fschema.type, options=fschema.options))
    return columns


def normalize_sections(sections: Any) -> List[Section]:
    if not isinstance(sections, (list, tuple)):
        return []
    items: List[Section] = []
    for idx, sec in enumerate(sections):
        if isinstance(sec, Section):
            items.append(sec)
            continue
        if not isinstance(sec, dict) or not isinstance(sec.get("title"), str):
            raise SchemaError("section title is required", f"sections[{idx}].title")
        names = sec.get("fields") or []
        items.append(Section(sec["title"], tuple(n for n in names if isinstance(n, str)), sec.get("description")))
    return items


@dataclass(frozen=True)
class RelatedList:
    """Associated records shown under a record, truncated to a few items."""

    title: str
    items: Tuple[dict, ...] = field(default=(), hash=False)
    count: int | None = None
    singular: str | None = None
    on_add: Callable[[], Any] | None = field(default=None, compare=False)
    on_view_all: Callable[[], Any] | None = field(default=None, compare=False)
    on_item_click: Callable[[dict], Any] | None = field(default=None, compare=False)

    @property
    def noun(self) -> str:
        if self.singular:
            return self.singular
        if self.title.endswith("ies"):
            return self.title[:-3] + "y"
        return self.title[:-1] if self.title.endswith("s") else self.title


def normalize_related_lists(related: Any) -> List[RelatedList]:
    if not isinstance(related, (list, tuple)):
        return []
    items: List[RelatedList] = []
    for idx, rel in enumerate(related):
        if isinstance(rel, RelatedList):
            items.append(rel)
            continue
        if not isinstance(rel, dict) or not isinstance(rel.get("title"), str):
            raise SchemaError("related list title is required", f"related_lists[{idx}].title")
        data = rel.get("items", rel.get("data")) or []
        items.append(
            RelatedList(
                title=rel["title"],
                items=tuple(dict(item) for item in data if isinstance(item, dict)),
                count=rel.get("count"),
                singular=rel.get("singular"),
                on_add=rel.get("on_add"),
                on_view_all=rel.get("on_view_all"),
                on_item_click=rel.get("on_item_click"),
            )
        )
    return items
