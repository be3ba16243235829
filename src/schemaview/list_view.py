"""List orchestrator: grid + search + bulk actions + pagination + delete confirmation."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Sequence, Set

from .config import get_settings
from .datasource import DataSource, ListQuery
from .debounce import Debouncer, Scheduler
from .errors import RequestError, SchemaError
from .grid import Grid
from .modal import BULK, ConfirmDelete
from .notifications import NotificationCenter
from .pagination import PaginationState
from .schema import ACTIONS_COLUMN_KEY, ColumnSchema, normalize_columns


logger = logging.getLogger("schemaview.list")

Callback = Callable[..., Any]


@dataclass(frozen=True)
class Capabilities:
    """Optional callbacks. A control is rendered iff its callback is present."""

    on_view: Callback | None = None
    on_edit: Callback | None = None
    on_delete: Callback | None = None
    on_bulk_delete: Callback | None = None
    on_create: Callback | None = None
    on_export: Callback | None = None
    on_import: Callback | None = None
    on_refresh: Callback | None = None
    on_search: Callback | None = None
    on_sort: Callback | None = None
    on_page_change: Callback | None = None
    on_filter: Callback | None = None
    on_clone: Callback | None = None
    on_share: Callback | None = None

    @property
    def can_bulk_delete(self) -> bool:
        return self.on_bulk_delete is not None or self.on_delete is not None


async def _noop(*args: Any) -> None:
    return None


SOURCE_INTENTS = ("delete", "bulk_delete", "refresh")


def source_capabilities(
    source: DataSource,
    capabilities: Capabilities | None = None,
    use_source_for: Iterable[str] = (),
) -> Capabilities:
    """Let ``source`` fulfil the intents named in ``use_source_for``.

    Only named intents are filled, and only where the caller left the callback
    empty. Nothing is added because a source happens to be present.
    """
    caps = capabilities or Capabilities()
    intents = set(use_source_for)
    unknown = intents - set(SOURCE_INTENTS)
    if unknown:
        raise SchemaError(f"Unknown source intents: {sorted(unknown)}", "use_source_for")
    fills: Dict[str, Any] = {}
    if "delete" in intents and caps.on_delete is None:
        fills["on_delete"] = lambda row: source.remove(row["id"])
    if "bulk_delete" in intents and caps.on_bulk_delete is None:
        fills["on_bulk_delete"] = source.bulk_remove
    if "refresh" in intents and caps.on_refresh is None:
        fills["on_refresh"] = _noop
    return replace(caps, **fills)


def _action_renderer(capabilities: Capabilities) -> Callable[[Any, dict], dict]:
    intents = [
        ("view", "View", capabilities.on_view),
        ("edit", "Edit", capabilities.on_edit),
        ("delete", "Delete", capabilities.on_delete),
    ]
    present = [(intent, label) for intent, label, cb in intents if cb is not None]

    def render_actions(_value: Any, row: dict) -> dict:
        return {
            "kind": "actions",
            "actions": [
                {"intent": intent, "label": label, "row_id": row.get("id"), "stop_propagation": True}
                for intent, label in present
            ],
        }

    return render_actions


def build_columns(columns: Iterable[Any], capabilities: Capabilities | None = None) -> List[ColumnSchema]:
    """Return the columns with exactly one ``actions`` column.

    A supplied ``actions`` column keeps its position; without a renderer it gets
    the default view/edit/delete triggers. Applying this twice changes nothing.
    """
    caps = capabilities or Capabilities()
    result: List[ColumnSchema] = []
    seen_actions = False
    for col in normalize_columns(list(columns)):
        if col.key == ACTIONS_COLUMN_KEY:
            if seen_actions:
                continue
            seen_actions = True
            if col.renderer is None:
                col = replace(col, renderer=_action_renderer(caps), sortable=False)
        result.append(col)
    if not seen_actions:
        result.append(ColumnSchema(key=ACTIONS_COLUMN_KEY, label="Actions", sortable=False, renderer=_action_renderer(caps)))
    return result


class ListView:
    def __init__(
        self,
        title: str,
        columns: Iterable[Any],
        capabilities: Capabilities | None = None,
        *,
        source: DataSource | None = None,
        use_source_for: Iterable[str] = (),
        rows: Sequence[dict] = (),
        pagination: PaginationState | None = None,
        selectable: bool = True,
        show_search: bool = True,
        show_create: bool = True,
        show_export: bool = True,
        show_import: bool = False,
        show_refresh: bool = True,
        show_filters: bool = True,
        create_label: str = "New",
        search_placeholder: str = "Search...",
        limit: int | None = None,
        debounce_ms: float | None = None,
        default_sort_by: str | None = None,
        default_sort_order: str | None = None,
        scheduler: Scheduler | None = None,
        notifications: NotificationCenter | None = None,
        currency: str | None = None,
    ) -> None:
        settings = get_settings()
        caps = capabilities or Capabilities()
        if source is not None:
            caps = source_capabilities(source, caps, use_source_for)
        elif use_source_for:
            raise SchemaError("use_source_for needs a source", "use_source_for")
        self.title = title
        self.source = source
        self.capabilities = caps
        self.show_search = show_search
        self.show_create = show_create
        self.show_export = show_export
        self.show_import = show_import
        self.show_refresh = show_refresh
        self.show_filters = show_filters
        self.create_label = create_label
        self.search_placeholder = search_placeholder
        self.limit = limit or settings.page_limit
        self.default_sort_by = default_sort_by if default_sort_by is not None else settings.default_sort_by
        self.default_sort_order = default_sort_order or settings.default_sort_order
        self.notifications = notifications or NotificationCenter(scheduler=scheduler)
        self.columns = build_columns(columns, caps)
        self.grid = Grid(
            self.columns,
            rows=rows,
            selectable=selectable,
            empty_message=f"No {title.lower()} found",
            currency=currency,
        )
        self.pagination = pagination or PaginationState(1, self.limit, len(self.grid.rows))
        self.search_text = ""
        self.search = ""
        self.filters: Dict[str, Any] = {}
        self.modal = ConfirmDelete()
        self._debouncer = Debouncer(
            settings.search_debounce_ms if debounce_ms is None else debounce_ms,
            self._emit_search,
            scheduler,
        )
        self._tasks: Set[asyncio.Task] = set()
        self._load_seq = 0
        self._closed = False

    @property
    def loading(self) -> bool:
        return self.grid.loading

    def set_loading(self, loading: bool) -> None:
        self.grid.loading = loading

    @property
    def rows(self) -> tuple:
        return self.grid.rows

    @property
    def selected_ids(self) -> List[Any]:
        return self.grid.selected_ids()

    async def _invoke(self, callback: Callback | None, *args: Any) -> Any:
        if callback is None:
            return None
        result = callback(*args)
        if inspect.isawaitable(result):
            return await result
        return result

    def _spawn(self, awaitable: Awaitable[Any]) -> asyncio.Task:
        async def runner() -> Any:
            return await awaitable

        task = asyncio.get_running_loop().create_task(runner())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def settle(self) -> None:
        """Wait for loads started from timer callbacks."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # data

    def query(self) -> ListQuery:
        sort = self.grid.sort
        return ListQuery(
            page=self.pagination.current_page,
            limit=self.limit,
            search=self.search,
            sort_by=sort.key if sort else (self.default_sort_by or None),
            sort_order=sort.direction if sort else (self.default_sort_order if self.default_sort_by else None),
            filters=dict(self.filters),
        )

    def set_data(self, rows: Sequence[dict], pagination: PaginationState | None = None) -> None:
        self.grid.set_rows(rows)
        self.pagination = pagination or PaginationState(1, self.limit, len(self.grid.rows))

    async def load(self) -> bool:
        if self.source is None:
            return False
        self._load_seq += 1
        seq = self._load_seq
        query = self.query()
        self.set_loading(True)
        try:
            result = await self.source.list(query)
            if seq != self._load_seq:
                logger.debug("list_fetch_stale title=%s seq=%s latest=%s", self.title, seq, self._load_seq)
                return False
            self.set_data(result.rows, result.pagination)
        except RequestError as exc:
            if seq == self._load_seq:
                logger.warning("list_fetch_failed title=%s page=%s error=%s", self.title, query.page, exc)
                self.notifications.error(f"Failed to load {self.title.lower()}. Please try again.")
            return False
        finally:
            # only the latest load owns the spinner
            if seq == self._load_seq:
                self.set_loading(False)
        last_page = max(1, result.pagination.total_pages)
        if result.pagination.current_page > last_page:
            # the page emptied out under us, e.g. after deleting its last row
            self.pagination = replace(result.pagination, current_page=last_page)
            return await self.load()
        return True

    # search

    def type_search(self, text: str) -> None:
        self.search_text = text
        self._debouncer.push(text)

    def _emit_search(self, term: str) -> None:
        if self._closed:
            return
        logger.debug("search_emit title=%s term=%s", self.title, term)
        self.search = term
        self.pagination = replace(self.pagination, current_page=1)
        result = self.capabilities.on_search(term) if self.capabilities.on_search else None
        if inspect.isawaitable(result):
            self._spawn(result)
        if self.source is not None:
            self._spawn(self.load())

    @property
    def search_pending(self) -> bool:
        return self._debouncer.pending

    # sort, page, filters

    async def sort(self, key: str) -> None:
        before = self.grid.sort
        state = self.grid.set_sort(key)
        if state is None or state == before:
            return
        await self._invoke(self.capabilities.on_sort, state.key, state.direction)
        await self.load()

    async def change_page(self, page: int) -> None:
        total = self.pagination.total_pages
        if page < 1 or page > max(1, total) or page == self.pagination.current_page:
            logger.debug("page_change_ignored title=%s page=%s total=%s", self.title, page, total)
            return
        self.pagination = replace(self.pagination, current_page=page)
        await self._invoke(self.capabilities.on_page_change, page)
        await self.load()

    async def next_page(self) -> None:
        if self.pagination.has_next_page:
            await self.change_page(self.pagination.current_page + 1)

    async def prev_page(self) -> None:
        if self.pagination.has_prev_page:
            await self.change_page(self.pagination.current_page - 1)

    async def set_filter(self, key: str, value: Any) -> None:
        if value is None or value == "":
            self.filters.pop(key, None)
        else:
            self.filters[key] = value
        self.pagination = replace(self.pagination, current_page=1)
        await self._invoke(self.capabilities.on_filter, dict(self.filters))
        await self.load()

    # selection

    def select_row(self, row_id: Any, checked: bool) -> None:
        self.grid.toggle_checkbox(row_id, checked)

    def select_all(self, checked: bool) -> None:
        self.grid.select_all(checked)

    # row intents

    async def view(self, row_id: Any) -> None:
        row = self.grid.row(row_id)
        if row is not None:
            await self._invoke(self.capabilities.on_view, row)

    async def edit(self, row_id: Any) -> None:
        row = self.grid.row(row_id)
        if row is not None:
            await self._invoke(self.capabilities.on_edit, row)

    async def click_row(self, row_id: Any) -> None:
        await self.view(row_id)

    # toolbar intents

    async def create(self) -> None:
        await self._invoke(self.capabilities.on_create)

    async def export(self, ids: Sequence[Any] | None = None) -> None:
        await self._invoke(self.capabilities.on_export, list(ids) if ids is not None else None)

    async def bulk_export(self) -> None:
        if self.selected_ids:
            await self.export(self.selected_ids)

    async def import_records(self) -> None:
        await self._invoke(self.capabilities.on_import)

    async def refresh(self) -> None:
        await self._invoke(self.capabilities.on_refresh)
        await self.load()

    # delete confirmation

    def request_delete(self, row_id: Any) -> bool:
        if self.capabilities.on_delete is None or self.modal.pending:
            return False
        row = self.grid.row(row_id)
        if row is None:
            return False
        self.modal = ConfirmDelete.for_row(row)
        return True

    def request_bulk_delete(self) -> bool:
        ids = self.selected_ids
        if not ids or not self.capabilities.can_bulk_delete or self.modal.pending:
            return False
        self.modal = ConfirmDelete.for_ids(tuple(ids))
        return True

    def cancel_delete(self) -> None:
        if self.modal.pending:
            return
        self.modal = ConfirmDelete()

    async def _delete_rows(self, ids: Sequence[Any]) -> None:
        caps = self.capabilities
        if caps.on_bulk_delete is not None:
            await self._invoke(caps.on_bulk_delete, list(ids))
            return
        for row_id in ids:
            row = self.grid.row(row_id) or {"id": row_id}
            await self._invoke(caps.on_delete, row)

    async def confirm_delete(self) -> bool:
        modal = self.modal
        if not modal.open:
            return False
        if modal.pending:
            logger.debug("delete_ignored title=%s reason=in_flight", self.title)
            return False
        self.modal = modal.with_pending(True)
        try:
            if modal.mode == BULK:
                await self._delete_rows(modal.ids)
            else:
                await self._invoke(self.capabilities.on_delete, modal.target)
        except RequestError as exc:
            logger.warning("list_delete_failed title=%s mode=%s error=%s", self.title, modal.mode, exc)
            self.notifications.error(f"Failed to delete. {exc.message}")
            self.modal = modal.with_pending(False)
            return False
        except BaseException:
            # modal stays open with pending cleared
            self.modal = modal.with_pending(False)
            raise
        self.modal = ConfirmDelete()
        if modal.mode == BULK:
            self.grid.clear_selection()
            count = len(modal.ids)
            self.notifications.success(f"{count} item{'s' if count != 1 else ''} deleted successfully")
        else:
            self.notifications.success("Item deleted successfully")
        await self.load()
        return True

    # lifecycle

    def close(self) -> None:
        self._closed = True
        self._debouncer.close()
        for task in list(self._tasks):
            task.cancel()
        self.notifications.clear()

    # view model

    def _toolbar(self) -> dict:
        caps = self.capabilities
        return {
            "import": {"label": "Import"} if self.show_import and caps.on_import else None,
            "export": {"label": "Export"} if self.show_export and caps.on_export else None,
            "refresh": {"label": "Refresh"} if self.show_refresh and caps.on_refresh else None,
            "create": {"label": self.create_label} if self.show_create and caps.on_create else None,
            "filters": {"label": "Filters", "active": dict(self.filters)} if self.show_filters and caps.on_filter else None,
        }

    def _bulk_bar(self) -> dict | None:
        count = len(self.grid.selection)
        if count == 0:
            return None
        actions = []
        if self.capabilities.can_bulk_delete:
            actions.append({"intent": "bulk_delete", "label": "Delete"})
        if self.capabilities.on_export:
            actions.append({"intent": "bulk_export", "label": "Export"})
        return {"selected_count": count, "label": f"{count} selected", "actions": actions}

    def _pagination(self) -> dict | None:
        pag = self.pagination
        if pag.total_pages <= 1:
            return None
        return {
            "summary": pag.summary(),
            "page_label": f"Page {pag.current_page} of {pag.total_pages}",
            "prev": {"label": "Previous", "disabled": not pag.has_prev_page},
            "next": {"label": "Next", "disabled": not pag.has_next_page},
            "state": pag.as_dict(),
        }

    def view_model(self) -> dict:
        count = len(self.grid.rows)
        return {
            "kind": "list",
            "title": self.title,
            "count_label": f"{count} {'item' if count == 1 else 'items'}" if count else None,
            "toolbar": self._toolbar(),
            "search": {"placeholder": self.search_placeholder, "value": self.search_text} if self.show_search else None,
            "bulk": self._bulk_bar(),
            "grid": self.grid.view_model(),
            "pagination": self._pagination(),
            "modal": self.modal.view_model(),
            "notifications": self.notifications.as_list(),
        }
