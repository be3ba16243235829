"""HTML rendering of view models through a locked-down Jinja2 sandbox."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from jinja2 import DictLoader
from jinja2.runtime import Macro
from jinja2.sandbox import ImmutableSandboxedEnvironment

_ALLOWED_FILTERS = {
    "default",
    "lower",
    "length",
}

_ALLOWED_TESTS = {
    "defined",
    "undefined",
    "none",
    "equalto",
}

_MACROS = """
{%- macro display(d) -%}
{%- if d is none -%}
{%- elif d.kind == "actions" -%}
<span class="row-actions">{% for a in d.actions %}<button type="button" data-intent="{{ a.intent }}" data-row-id="{{ a.row_id }}" data-stop-propagation="true">{{ a.label }}</button>{% endfor %}</span>
{%- elif d.kind == "link" -%}
<a href="{{ d.href }}"{% if d.external %} target="_blank" rel="noopener noreferrer"{% endif %}>{{ d.text }}</a>
{%- elif d.kind == "badge" -%}
<span class="{{ d.css_class }}">{{ d.text }}</span>
{%- elif d.kind == "multiline" -%}
<div class="multiline" style="white-space: pre-wrap">{{ d.text }}</div>
{%- elif d.kind == "placeholder" -%}
<span class="placeholder">{{ d.text }}</span>
{%- else -%}
{{ d.text }}
{%- endif -%}
{%- endmacro -%}

{%- macro modal(m) -%}
{%- if m -%}
<div class="modal" role="dialog" aria-label="{{ m.title }}">
<h2>{{ m.title }}</h2>
<p>{{ m.message }}</p>
<button type="button" data-intent="cancel_delete"{% if m.cancel.disabled %} disabled{% endif %}>{{ m.cancel.label }}</button>
<button type="button" class="danger" data-intent="confirm_delete"{% if m.confirm.disabled %} disabled{% endif %}>{{ m.confirm.label }}</button>
</div>
{%- endif -%}
{%- endmacro -%}

{%- macro notifications(items) -%}
{%- if items -%}
<ul class="notifications">{% for n in items %}<li class="notification notification-{{ n.type }}" data-id="{{ n.id }}"><strong>{{ n.title }}</strong> {{ n.message }}</li>{% endfor %}</ul>
{%- endif -%}
{%- endmacro -%}

{%- macro spinner(model) -%}
<div class="spinner" role="status">{{ model.spinner.message }}</div>
{%- endmacro -%}
"""

_GRID = """
{%- from "macros.html" import display, spinner -%}
{%- if grid.loading -%}
{{ spinner(grid) }}
{%- else -%}
<table class="grid">
<thead><tr>
{%- if grid.selectable %}<th><input type="checkbox" data-intent="select_all"{% if grid.select_all.checked %} checked{% endif %}{% if grid.select_all.indeterminate %} data-indeterminate="true"{% endif %}></th>{% endif -%}
{%- for h in grid.headers -%}
<th data-key="{{ h.key }}"{% if h.sortable %} data-intent="sort"{% endif %}>{{ h.label }}
{%- if h.sortable %}<span class="sort-asc{% if h.indicators.asc %} active{% endif %}">&#9650;</span><span class="sort-desc{% if h.indicators.desc %} active{% endif %}">&#9660;</span>{% endif -%}
</th>
{%- endfor -%}
</tr></thead>
<tbody>
{%- for r in grid.body -%}
{%- if r.type == "empty" -%}
<tr class="empty"><td colspan="{{ r.colspan }}">{{ r.message }}</td></tr>
{%- else -%}
<tr data-id="{{ r.id }}" data-intent="view"{% if r.selected %} class="selected"{% endif %}>
{%- if grid.selectable %}<td><input type="checkbox" data-intent="select_row" data-stop-propagation="true"{% if r.selected %} checked{% endif %}></td>{% endif -%}
{%- for c in r.cells %}<td data-key="{{ c.key }}">{{ display(c.display) }}</td>{% endfor -%}
</tr>
{%- endif -%}
{%- endfor -%}
</tbody>
</table>
{%- endif -%}
"""

_LIST = """
{%- from "macros.html" import modal, notifications -%}
<section class="list-view">
<header>
<h1>{{ vm.title }}</h1>
{%- if vm.count_label %}<span class="count">{{ vm.count_label }}</span>{% endif -%}
{%- for name in ["import", "export", "refresh", "filters", "create"] -%}
{%- set b = vm.toolbar[name] -%}
{%- if b %}<button type="button" data-intent="{{ name }}">{{ b.label }}</button>{% endif -%}
{%- endfor -%}
</header>
{%- if vm.search %}<input type="search" data-intent="search" placeholder="{{ vm.search.placeholder }}" value="{{ vm.search.value }}">{% endif -%}
{%- if vm.bulk -%}
<div class="bulk-bar"><span>{{ vm.bulk.label }}</span>{% for a in vm.bulk.actions %}<button type="button" data-intent="{{ a.intent }}">{{ a.label }}</button>{% endfor %}</div>
{%- endif -%}
{% include "grid.html" %}
{%- if vm.pagination -%}
<nav class="pagination">
<span class="summary">{{ vm.pagination.summary }}</span>
<button type="button" data-intent="prev_page"{% if vm.pagination.prev.disabled %} disabled{% endif %}>{{ vm.pagination.prev.label }}</button>
<span class="page">{{ vm.pagination.page_label }}</span>
<button type="button" data-intent="next_page"{% if vm.pagination.next.disabled %} disabled{% endif %}>{{ vm.pagination.next.label }}</button>
</nav>
{%- endif -%}
{{ modal(vm.modal) }}
{{ notifications(vm.notifications) }}
</section>
"""

_FORM = """
<form class="form form-{{ form.layout }}" novalidate>
{%- for c in form.controls -%}
<div class="field{% if c.error %} has-error{% endif %}" data-name="{{ c.name }}">
{%- if c.control == "checkbox" -%}
<label><input type="checkbox" name="{{ c.name }}"{% if c.checked %} checked{% endif %}{% if c.disabled %} disabled{% endif %}> {{ c.label }}{% if c.required %} *{% endif %}</label>
{%- else -%}
<label for="field-{{ c.name }}">{{ c.label }}{% if c.required %} *{% endif %}</label>
{%- if c.control == "textarea" -%}
<textarea id="field-{{ c.name }}" name="{{ c.name }}" rows="{{ c.rows }}"{% if c.placeholder %} placeholder="{{ c.placeholder }}"{% endif %}{% if c.disabled %} disabled{% endif %}>{{ c.value }}</textarea>
{%- elif c.control == "select" -%}
<select id="field-{{ c.name }}" name="{{ c.name }}"{% if c.disabled %} disabled{% endif %}>{% for o in c.options %}<option value="{{ o.value }}"{% if o.selected %} selected{% endif %}>{{ o.label }}</option>{% endfor %}</select>
{%- elif c.control == "radio_group" or c.control == "checkbox_group" -%}
{%- set kind = "radio" if c.control == "radio_group" else "checkbox" -%}
{% for o in c.options %}<label><input type="{{ kind }}" name="{{ c.name }}" value="{{ o.value }}"{% if o.checked %} checked{% endif %}{% if c.disabled %} disabled{% endif %}> {{ o.label }}</label>{% endfor %}
{%- elif c.control == "file" -%}
<input type="file" id="field-{{ c.name }}" name="{{ c.name }}"{% if c.disabled %} disabled{% endif %}>
{%- else -%}
<input type="{{ c.input_type }}" id="field-{{ c.name }}" name="{{ c.name }}" value="{{ c.value }}"{% if c.placeholder %} placeholder="{{ c.placeholder }}"{% endif %}{% if c.disabled %} disabled{% endif %}>
{%- endif -%}
{%- endif -%}
{%- if c.error %}<p class="error">{{ c.error }}</p>{% endif -%}
</div>
{%- endfor -%}
<div class="form-actions">
{%- if form.cancel %}<button type="button" data-intent="cancel"{% if form.cancel.disabled %} disabled{% endif %}>{{ form.cancel.label }}</button>{% endif -%}
<button type="submit"{% if form.submit.disabled %} disabled{% endif %}>{{ form.submit.label }}</button>
</div>
</form>
"""

_RECORD = """
{%- from "macros.html" import display, modal, notifications, spinner -%}
{%- if vm.loading -%}
{{ spinner(vm) }}
{%- else -%}
<article class="record-view">
<header>
{%- if vm.header.back %}<a class="back" href="{{ vm.header.back.href }}" data-intent="back">Back</a>{% endif -%}
<h1>{{ vm.header.title }}</h1>
{%- if vm.header.meta %}<div class="meta">{% for m in vm.header.meta %}<span class="{{ m.kind }}">{{ m.text }}</span>{% endfor %}</div>{% endif -%}
{%- for a in vm.header.actions %}<button type="button" data-intent="{{ a.intent }}">{{ a.label }}</button>{% endfor -%}
</header>
{%- if vm.error -%}
<div class="record-error"><h2>{{ vm.error.title }}</h2><p>{{ vm.error.message }}</p></div>
{%- elif vm.form -%}
{% include "form.html" %}
{%- else -%}
{%- for p in vm.sections -%}
<section class="panel">
{%- if p.title %}<h2>{{ p.title }}</h2>{% endif -%}
{%- if p.description %}<p class="description">{{ p.description }}</p>{% endif -%}
<dl>{% for f in p.fields %}<dt>{{ f.label }}</dt><dd>{{ display(f.display) }}</dd>{% endfor %}</dl>
</section>
{%- endfor -%}
{%- for rel in vm.related -%}
<section class="related">
<h2>{{ rel.title }}</h2>
{%- if rel.count_label %}<span class="count">{{ rel.count_label }}</span>{% endif -%}
{%- if rel.add %}<button type="button" data-intent="add_related">{{ rel.add.label }}</button>{% endif -%}
{%- if rel.empty -%}
<p class="empty">{{ rel.empty.message }}</p>
{%- if rel.empty.add %}<button type="button" data-intent="add_related">{{ rel.empty.add.label }}</button>{% endif -%}
{%- else -%}
<ul>{% for item in rel["items"] %}<li><strong>{{ item.label }}</strong>{% if item.description %} <span>{{ item.description }}</span>{% endif %}</li>{% endfor %}</ul>
{%- if rel.view_all %}<button type="button" data-intent="view_all">{{ rel.view_all.label }}</button>{% endif -%}
{%- endif -%}
</section>
{%- endfor -%}
{%- endif -%}
{{ modal(vm.modal) }}
{{ notifications(vm.notifications) }}
</article>
{%- endif -%}
"""

TEMPLATES = {
    "macros.html": _MACROS,
    "grid.html": _GRID,
    "list.html": _LIST,
    "form.html": _FORM,
    "record.html": _RECORD,
}


class _LockedSandbox(ImmutableSandboxedEnvironment):
    """Sandbox for view-model templates.

    Templates only see plain dicts, lists and scalars, read through item
    lookup, so attribute access is refused outright. The one thing a template
    may call is a macro defined in ``macros.html``; any other callable would
    reach Python objects the view model never meant to expose.
    """

    def is_safe_attribute(self, obj, attr, value) -> bool:
        return False

    def is_safe_callable(self, obj) -> bool:
        return isinstance(obj, Macro)


@lru_cache(maxsize=1)
def _env() -> _LockedSandbox:
    env = _LockedSandbox(loader=DictLoader(TEMPLATES), autoescape=True)
    env.globals = {}
    env.filters = {key: val for key, val in env.filters.items() if key in _ALLOWED_FILTERS}
    env.tests = {key: val for key, val in env.tests.items() if key in _ALLOWED_TESTS}
    return env


def _plain(value: Any) -> Any:
    """Copy a view model down to JSON-like data.

    Renderer callables, Decimals and dates left in a model become their text,
    so nothing callable reaches the sandbox.
    """
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, dict):
        return {str(key): _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, frozenset, set)):
        return [_plain(item) for item in value]
    return str(value)


def _model(obj: Any) -> dict:
    if hasattr(obj, "view_model"):
        obj = obj.view_model()
    if not isinstance(obj, dict):
        raise TypeError("expected a view model dict or an object with view_model()")
    return _plain(obj)


def render_grid(grid: Any) -> str:
    return _env().get_template("grid.html").render(grid=_model(grid))


def render_list(view: Any) -> str:
    vm = _model(view)
    return _env().get_template("list.html").render(vm=vm, grid=vm["grid"])


def render_form(form: Any) -> str:
    return _env().get_template("form.html").render(form=_model(form))


def render_record(view: Any) -> str:
    vm = _model(view)
    return _env().get_template("record.html").render(vm=vm, form=vm.get("form"))


_BY_KIND = {
    "grid": render_grid,
    "list": render_list,
    "form": render_form,
    "record": render_record,
}


def render_html(view: Any) -> str:
    model = _model(view)
    renderer = _BY_KIND.get(model.get("kind"))
    if renderer is None:
        raise ValueError(f"Unknown view model kind: {model.get('kind')}")
    return renderer(model)
