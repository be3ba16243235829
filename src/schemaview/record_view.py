"""Record orchestrator: read-only sections, edit surface, related lists, delete."""

from __future__ import annotations

import inspect
import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Sequence

from .config import get_settings
from .datasource import DataSource
from .errors import NotFoundError, RequestError, SchemaError
from .form import Form
from .list_view import Capabilities
from .modal import ConfirmDelete
from .notifications import NotificationCenter
from .render import plain_text, render, render_field
from .schema import FieldSchema, RelatedList, SemanticType, normalize_fields, normalize_related_lists, normalize_sections


logger = logging.getLogger("schemaview.record")

VIEW = "view"
EDIT = "edit"

RECORD_SOURCE_INTENTS = ("delete", "save")


def record_title(data: dict, title: str | None = None) -> str:
    return title or data.get("name") or data.get("title") or "Record"


def _item_label(item: dict) -> str:
    for key in ("name", "title", "subject"):
        if item.get(key):
            return str(item[key])
    return ""


def _meta(data: dict) -> List[dict]:
    meta = []
    if data.get("createdBy"):
        meta.append({"kind": "created_by", "text": f"Created by {data['createdBy']}"})
    created = plain_text(render(SemanticType.DATE, data.get("createdAt")))
    if created:
        meta.append({"kind": "created_at", "text": created})
    modified = plain_text(render(SemanticType.DATE, data.get("lastModifiedAt")))
    if modified:
        meta.append({"kind": "modified_at", "text": f"Modified {modified}"})
    return meta


class RecordView:
    """One record, shown read-only or through an edit form.

    ``save()`` never leaves Edit on its own; the caller flips ``is_editing``
    once it has accepted the change. Deleting goes through the same confirmation
    modal as the list, then navigates to ``back_url`` when one is configured.

    A ``source`` always serves ``load()``. It handles delete or save only when
    ``use_source_for`` names them.
    """

    def __init__(
        self,
        fields: Iterable[Any],
        data: dict | None = None,
        capabilities: Capabilities | None = None,
        *,
        title: str | None = None,
        sections: Sequence[Any] = (),
        related_lists: Sequence[Any] = (),
        source: DataSource | None = None,
        use_source_for: Iterable[str] = (),
        record_id: Any = None,
        is_editing: bool = False,
        loading: bool = False,
        back_url: str | None = None,
        on_navigate: Callable[[str], Any] | None = None,
        on_save: Callable[[dict], Any] | None = None,
        on_cancel_edit: Callable[[], Any] | None = None,
        show_edit: bool = True,
        show_delete: bool = True,
        show_clone: bool = False,
        show_share: bool = False,
        related_limit: int | None = None,
        notifications: NotificationCenter | None = None,
        scheduler: Any = None,
        currency: str | None = None,
    ) -> None:
        caps = capabilities or Capabilities()
        intents = set(use_source_for)
        unknown = intents - set(RECORD_SOURCE_INTENTS)
        if unknown:
            raise SchemaError(f"Unknown source intents: {sorted(unknown)}", "use_source_for")
        if intents and source is None:
            raise SchemaError("use_source_for needs a source", "use_source_for")
        if "delete" in intents and caps.on_delete is None:
            caps = replace(caps, on_delete=self._remove_from_source)
        if "save" in intents and on_save is None:
            on_save = self._update_source
        self.fields: List[FieldSchema] = normalize_fields(list(fields))
        self.sections = normalize_sections(list(sections))
        self.related_lists: List[RelatedList] = normalize_related_lists(list(related_lists))
        self.data: Dict[str, Any] = dict(data or {})
        self.capabilities = caps
        self.title = title
        self.source = source
        self.record_id = record_id if record_id is not None else self.data.get("id")
        self.loading = loading
        self.back_url = back_url
        self.on_navigate = on_navigate
        self.on_save = on_save
        self.on_cancel_edit = on_cancel_edit
        self.show_edit = show_edit
        self.show_delete = show_delete
        self.show_clone = show_clone
        self.show_share = show_share
        self.related_limit = related_limit or get_settings().related_list_limit
        self.notifications = notifications or NotificationCenter(scheduler=scheduler)
        self.currency = currency
        self.modal = ConfirmDelete()
        self.error: str | None = None
        self.saving = False
        self.deleted = False
        self.mode = VIEW
        self.form: Form | None = None
        if is_editing:
            self._enter_edit()

    async def _invoke(self, callback: Callable[..., Any] | None, *args: Any) -> Any:
        if callback is None:
            return None
        result = callback(*args)
        if inspect.isawaitable(result):
            return await result
        return result

    async def _remove_from_source(self, row: dict) -> None:
        await self.source.remove(row.get("id", self.record_id))

    async def _update_source(self, form_data: dict) -> None:
        self.data = await self.source.update(self.record_id, form_data)

    # loading

    async def load(self) -> bool:
        if self.source is None or self.record_id is None:
            return False
        self.loading = True
        try:
            self.data = await self.source.get_by_id(self.record_id)
        except NotFoundError as exc:
            logger.info("record_not_found id=%s", self.record_id)
            self.data = {}
            self.error = exc.message
            return False
        except RequestError as exc:
            logger.warning("record_fetch_failed id=%s error=%s", self.record_id, exc)
            self.notifications.error("Failed to load record. Please try again.")
            return False
        finally:
            self.loading = False
        self.error = None
        if self.form is not None:
            self.form.reset(self.data)
        return True

    # view/edit state machine

    @property
    def is_editing(self) -> bool:
        return self.mode == EDIT

    @is_editing.setter
    def is_editing(self, value: bool) -> None:
        if value:
            self._enter_edit()
        else:
            self.mode = VIEW
            self.form = None

    def _enter_edit(self) -> None:
        if self.mode == EDIT:
            return
        self.mode = EDIT
        self.form = Form(
            self.fields,
            default_values=self.data,
            on_submit=self.save,
            on_cancel=self.cancel_edit,
            submit_label="Save",
            show_cancel=True,
        )

    async def edit(self) -> None:
        if self.mode == EDIT:
            return
        self._enter_edit()
        await self._invoke(self.capabilities.on_edit, dict(self.data))

    async def cancel_edit(self) -> None:
        if self.mode != EDIT:
            return
        self.is_editing = False
        await self._invoke(self.on_cancel_edit)

    async def save(self, form_data: dict) -> bool:
        if self.saving:
            logger.debug("record_save_ignored id=%s reason=in_flight", self.record_id)
            return False
        if self.on_save is None:
            return False
        self.saving = True
        if self.form is not None:
            self.form.loading = True
        try:
            await self._invoke(self.on_save, form_data)
        except RequestError as exc:
            logger.warning("record_save_failed id=%s error=%s", self.record_id, exc)
            self.notifications.error(f"Failed to save. {exc.message}")
            return False
        finally:
            self.saving = False
            if self.form is not None:
                self.form.loading = False
        self.notifications.success("Record saved successfully")
        return True

    async def submit(self) -> bool:
        if self.form is None:
            return False
        return await self.form.submit()

    # header intents

    async def back(self) -> None:
        if self.back_url:
            await self._invoke(self.on_navigate, self.back_url)

    async def clone(self) -> None:
        await self._invoke(self.capabilities.on_clone, dict(self.data))

    async def share(self) -> None:
        await self._invoke(self.capabilities.on_share, dict(self.data))

    # delete confirmation

    def request_delete(self) -> bool:
        if self.capabilities.on_delete is None or self.modal.pending:
            return False
        self.modal = ConfirmDelete.for_row(dict(self.data))
        return True

    def cancel_delete(self) -> None:
        if not self.modal.pending:
            self.modal = ConfirmDelete()

    async def confirm_delete(self) -> bool:
        modal = self.modal
        if not modal.open or modal.pending:
            return False
        self.modal = modal.with_pending(True)
        try:
            await self._invoke(self.capabilities.on_delete, modal.target)
        except RequestError as exc:
            logger.warning("record_delete_failed id=%s error=%s", self.record_id, exc)
            self.notifications.error(f"Failed to delete. {exc.message}")
            self.modal = modal.with_pending(False)
            return False
        except BaseException:
            self.modal = modal.with_pending(False)
            raise
        self.modal = ConfirmDelete()
        self.deleted = True
        self.notifications.success("Record deleted successfully")
        await self.back()
        return True

    # related lists

    async def add_related(self, index: int) -> None:
        await self._invoke(self.related_lists[index].on_add)

    async def view_all_related(self, index: int) -> None:
        await self._invoke(self.related_lists[index].on_view_all)

    async def click_related_item(self, index: int, position: int) -> None:
        rel = self.related_lists[index]
        if 0 <= position < len(rel.items):
            await self._invoke(rel.on_item_click, dict(rel.items[position]))

    def _related(self, rel: RelatedList) -> dict:
        count = rel.count
        shown = rel.items[: self.related_limit]
        body: Dict[str, Any] = {
            "title": rel.title,
            "count_label": f"{count} {'item' if count == 1 else 'items'}" if count is not None else None,
            "add": {"label": f"Add {rel.noun}"} if rel.on_add else None,
            "items": [
                {"label": _item_label(item), "description": item.get("description"), "id": item.get("id")}
                for item in shown
            ],
            "view_all": {"label": f"View All ({len(rel.items)})"} if len(rel.items) > self.related_limit else None,
            "empty": None,
        }
        if not rel.items:
            body["empty"] = {
                "message": f"No {rel.title.lower()} found",
                "add": {"label": f"Add First {rel.noun}"} if rel.on_add else None,
            }
        return body

    # view model

    def _field(self, fschema: FieldSchema) -> dict:
        display = render_field(fschema, self.data.get(fschema.name), self.currency)
        return {"name": fschema.name, "label": fschema.label, "display": display.as_dict()}

    def _panels(self) -> List[dict]:
        if not self.sections:
            return [{"title": None, "description": None, "fields": [self._field(f) for f in self.fields]}]
        by_name = {f.name: f for f in self.fields}
        panels = []
        for section in self.sections:
            panels.append(
                {
                    "title": section.title,
                    "description": section.description,
                    "fields": [self._field(by_name[name]) for name in section.fields if name in by_name],
                }
            )
        return panels

    def _actions(self) -> List[dict]:
        if self.is_editing:
            return []
        caps = self.capabilities
        candidates = [
            ("share", "Share", self.show_share and caps.on_share is not None),
            ("clone", "Clone", self.show_clone and caps.on_clone is not None),
            ("delete", "Delete", self.show_delete and caps.on_delete is not None),
            ("edit", "Edit", self.show_edit and caps.on_edit is not None),
        ]
        return [{"intent": intent, "label": label} for intent, label, shown in candidates if shown]

    def view_model(self) -> dict:
        if self.loading:
            return {"kind": "record", "loading": True, "spinner": {"message": "Loading..."}}
        header = {
            "title": record_title(self.data, self.title),
            "back": {"href": self.back_url} if self.back_url else None,
            "meta": _meta(self.data),
            "actions": self._actions(),
        }
        if self.error is not None:
            return {
                "kind": "record",
                "loading": False,
                "mode": self.mode,
                "header": header,
                "error": {"title": "Record not found", "message": self.error},
                "notifications": self.notifications.as_list(),
            }
        editing = self.is_editing and self.form is not None
        return {
            "kind": "record",
            "loading": False,
            "mode": self.mode,
            "header": header,
            "error": None,
            "form": self.form.view_model() if editing else None,
            "sections": [] if editing else self._panels(),
            "related": [] if editing else [self._related(rel) for rel in self.related_lists],
            "modal": self.modal.view_model("record"),
            "notifications": self.notifications.as_list(),
        }
