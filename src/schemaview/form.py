"""Form engine: editable controls per field, validation, gated submission."""

from __future__ import annotations

import copy
import inspect
import logging
from typing import Any, Callable, Dict, Iterable, List

from .conditions import referenced_fields
from .errors import FormValidationError, SchemaError
from .schema import FieldSchema, SemanticType, normalize_fields
from .validation import ValidationResult, is_required, is_visible, validate_field, validate_values


logger = logging.getLogger("schemaview.form")

LAYOUTS = ("vertical", "horizontal", "inline")

# semantic type -> (control, input type)
_CONTROLS: Dict[SemanticType, tuple] = {
    SemanticType.TEXT: ("input", "text"),
    SemanticType.EMAIL: ("input", "email"),
    SemanticType.PHONE: ("input", "tel"),
    SemanticType.URL: ("input", "url"),
    SemanticType.CURRENCY: ("input", "number"),
    SemanticType.PERCENTAGE: ("input", "number"),
    SemanticType.NUMBER: ("input", "number"),
    SemanticType.DATE: ("input", "date"),
    SemanticType.DATETIME: ("input", "datetime-local"),
    SemanticType.BOOLEAN: ("checkbox", None),
    SemanticType.SELECT: ("select", None),
    SemanticType.TEXTAREA: ("textarea", None),
}

_UNCOVERED = set(SemanticType) - set(_CONTROLS)
if _UNCOVERED:
    raise RuntimeError(f"form control missing for semantic types: {sorted(t.value for t in _UNCOVERED)}")


def control_for(fschema: FieldSchema) -> tuple:
    control, input_type = _CONTROLS[fschema.type]
    hint = fschema.control
    if fschema.type == SemanticType.SELECT and hint == "radio":
        return "radio_group", None
    if fschema.type == SemanticType.SELECT and hint == "checkbox":
        return "checkbox_group", None
    if control == "input" and hint in ("password", "file"):
        return ("file", None) if hint == "file" else ("input", "password")
    return control, input_type


def _input_value(input_type: str | None, value: Any) -> Any:
    if value is None:
        return ""
    if input_type == "date":
        return str(value).split("T")[0]
    if input_type == "datetime-local":
        text = str(value).replace(" ", "T")
        return text[:16]
    return value


def _dependents(fields: List[FieldSchema]) -> Dict[str, List[FieldSchema]]:
    """Map each field name to the fields whose conditions read it."""
    result: Dict[str, List[FieldSchema]] = {}
    for fschema in fields:
        conditions = [fschema.visible_when] + [r.value for r in fschema.rules_of("required_when")]
        for name in referenced_fields(conditions):
            if name != fschema.name:
                result.setdefault(name, []).append(fschema)
    return result


class Form:
    def __init__(
        self,
        fields: Iterable[Any],
        default_values: dict | None = None,
        on_submit: Callable[[dict], Any] | None = None,
        on_cancel: Callable[[], Any] | None = None,
        *,
        submit_label: str = "Submit",
        cancel_label: str = "Cancel",
        show_cancel: bool = False,
        layout: str = "vertical",
        validate_on_change: bool = False,
        loading: bool = False,
    ) -> None:
        if layout not in LAYOUTS:
            raise SchemaError(f"Unknown form layout: {layout}", "layout")
        self.fields: List[FieldSchema] = normalize_fields(list(fields))
        self._by_name = {f.name: f for f in self.fields}
        self._dependents = _dependents(self.fields)
        self.default_values = self._initial_values(default_values or {})
        self.values: Dict[str, Any] = copy.deepcopy(self.default_values)
        self.errors: ValidationResult = {}
        self.on_submit = on_submit
        self.on_cancel = on_cancel
        self.submit_label = submit_label
        self.cancel_label = cancel_label
        self.show_cancel = show_cancel or on_cancel is not None
        self.layout = layout
        self.validate_on_change = validate_on_change
        self.loading = loading
        self.submitting = False
        self.submitted = False

    def _initial_values(self, defaults: dict) -> dict:
        values: Dict[str, Any] = {}
        for fschema in self.fields:
            values[fschema.name] = copy.deepcopy(fschema.default)
        values.update(copy.deepcopy(defaults))
        return values

    def field(self, name: str) -> FieldSchema:
        fschema = self._by_name.get(name)
        if fschema is None:
            raise SchemaError(f"Unknown field: {name}", name)
        return fschema

    def set_value(self, name: str, value: Any) -> None:
        fschema = self.field(name)
        self.values[name] = value
        if self.validate_on_change or self.submitted or name in self.errors:
            self._revalidate(fschema)
        # fields whose conditions read this one may have changed visibility or requiredness
        for dep in self._dependents.get(name, ()):
            if self.submitted or dep.name in self.errors:
                self._revalidate(dep)

    def _revalidate(self, fschema: FieldSchema) -> None:
        message = None
        if is_visible(fschema, self.values):
            message = validate_field(fschema, self.values.get(fschema.name), self.values)
        if message:
            self.errors[fschema.name] = message
        else:
            self.errors.pop(fschema.name, None)

    def set_values(self, values: dict) -> None:
        for name, value in values.items():
            self.set_value(name, value)

    def visible_fields(self) -> List[FieldSchema]:
        return [f for f in self.fields if is_visible(f, self.values)]

    def validate(self) -> ValidationResult:
        self.errors = validate_values(self.fields, self.values)
        return dict(self.errors)

    @property
    def is_valid(self) -> bool:
        return not validate_values(self.fields, self.values)

    @property
    def busy(self) -> bool:
        return self.submitting or self.loading

    async def submit(self) -> bool:
        """Validate and hand the full value set to ``on_submit``.

        Returns ``False`` without calling ``on_submit`` when any field fails or a
        previous submission is still running, and ``False`` when ``on_submit``
        itself returns ``False``. Errors raised by ``on_submit`` propagate after
        the form leaves its submitting state.
        """
        if self.submitting:
            logger.debug("form_submit_ignored reason=in_flight")
            return False
        self.submitted = True
        errors = self.validate()
        if errors:
            logger.debug("form_submit_blocked fields=%s", sorted(errors))
            return False
        if self.on_submit is None:
            return True
        self.submitting = True
        try:
            result = self.on_submit(copy.deepcopy(self.values))
            if inspect.isawaitable(result):
                result = await result
        finally:
            self.submitting = False
        if result is False:
            logger.debug("form_submit_rejected reason=handler_failed")
            return False
        return True

    async def submit_or_raise(self) -> None:
        if not await self.submit() and self.errors:
            raise FormValidationError(self.errors)

    def reset(self, values: dict | None = None) -> None:
        if values is not None:
            self.default_values = self._initial_values(values)
        self.values = copy.deepcopy(self.default_values)
        self.errors = {}
        self.submitted = False

    async def cancel(self) -> None:
        if self.on_cancel is None:
            self.reset()
            return
        result = self.on_cancel()
        if inspect.isawaitable(result):
            await result

    def _control(self, fschema: FieldSchema) -> dict:
        control, input_type = control_for(fschema)
        value = self.values.get(fschema.name)
        item: Dict[str, Any] = {
            "name": fschema.name,
            "label": fschema.label,
            "control": control,
            "input_type": input_type,
            "required": is_required(fschema, self.values),
            "disabled": fschema.disabled or self.busy,
            "placeholder": fschema.placeholder,
            "error": self.errors.get(fschema.name),
        }
        if control == "checkbox":
            item["checked"] = bool(value)
        elif control == "select":
            item["value"] = "" if value is None else value
            item["options"] = [{"value": "", "label": f"Select {fschema.label}"}] + [
                {"value": opt.value, "label": opt.label, "selected": opt.value == value} for opt in fschema.options
            ]
        elif control == "radio_group":
            item["value"] = value
            item["options"] = [
                {"value": opt.value, "label": opt.label, "checked": opt.value == value} for opt in fschema.options
            ]
        elif control == "checkbox_group":
            chosen = value if isinstance(value, (list, tuple)) else []
            item["value"] = list(chosen)
            item["options"] = [
                {"value": opt.value, "label": opt.label, "checked": opt.value in chosen} for opt in fschema.options
            ]
        elif control == "textarea":
            item["value"] = "" if value is None else str(value)
            item["rows"] = 4
        elif control == "file":
            item["value"] = None
        else:
            item["value"] = _input_value(input_type, value)
        return item

    def view_model(self) -> dict:
        return {
            "kind": "form",
            "layout": self.layout,
            "controls": [self._control(f) for f in self.visible_fields()],
            "submit": {"label": self.submit_label, "loading": self.busy, "disabled": self.busy},
            "cancel": {"label": self.cancel_label, "disabled": self.busy} if self.show_cancel else None,
            "errors": dict(self.errors),
        }
