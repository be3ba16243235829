"""Schema-driven list, record and form views."""

from .conditions import ConditionError, eval_condition
from .config import Settings, get_settings, reset_settings
from .datasource import DataSource, ListQuery, ListResult, MemoryDataSource
from .debounce import AsyncioScheduler, Debouncer, ManualScheduler
from .errors import FormValidationError, NotFoundError, RequestError, SchemaError, ViewError
from .export import export_csv
from .form import Form
from .grid import Grid, SortState
from .html import render_html
from .http_source import HttpDataSource
from .list_view import Capabilities, ListView, build_columns
from .notifications import NotificationCenter
from .pagination import PaginationState
from .record_view import RecordView
from .render import Display, render
from .schema import (
    ColumnSchema,
    FieldSchema,
    Option,
    RelatedList,
    Rule,
    Section,
    SemanticType,
    normalize_columns,
    normalize_fields,
)
from .validation import validate_field, validate_values

__all__ = [
    "AsyncioScheduler",
    "Capabilities",
    "ColumnSchema",
    "ConditionError",
    "DataSource",
    "Debouncer",
    "Display",
    "FieldSchema",
    "Form",
    "FormValidationError",
    "Grid",
    "HttpDataSource",
    "ListQuery",
    "ListResult",
    "ListView",
    "ManualScheduler",
    "MemoryDataSource",
    "NotFoundError",
    "NotificationCenter",
    "Option",
    "PaginationState",
    "RecordView",
    "RelatedList",
    "RequestError",
    "Rule",
    "SchemaError",
    "Section",
    "SemanticType",
    "Settings",
    "SortState",
    "ViewError",
    "build_columns",
    "eval_condition",
    "export_csv",
    "get_settings",
    "normalize_columns",
    "normalize_fields",
    "render",
    "render_html",
    "reset_settings",
    "validate_field",
    "validate_values",
]
