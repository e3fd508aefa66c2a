"""
Template scope stack and reference rendering.

A reference is resolved innermost scope first: template locals, then the
script's Binding Table, then runtime globals. Anything else is Unresolved.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Dict, FrozenSet, Iterable, Iterator, List

from ..script.bindings import JS_GLOBALS, BindingCategory, BindingTable, require_exhaustive
from ..script.transform import props_access
from .helpers import HelperRegistry, RuntimeHelper

logger = logging.getLogger(__name__)

Renderer = Callable[[str, str, HelperRegistry], str]


def _bare(name: str, key: str, helpers: HelperRegistry) -> str:
    return name


def _unref(name: str, key: str, helpers: HelperRegistry) -> str:
    return f"{helpers.use(RuntimeHelper.UNREF)}({name})"


def _prefixed(prefix: str) -> Renderer:
    def render(name: str, key: str, helpers: HelperRegistry) -> str:
        return f"{prefix}.{name}"

    return render


def _props(target: str) -> Renderer:
    def render(name: str, key: str, helpers: HelperRegistry) -> str:
        return props_access(key, target)

    return render


# Render function closed over the setup scope (`<script setup>` present).
INLINE_REFERENCES: Dict[BindingCategory, Renderer] = dict(
    require_exhaustive(
        {
            BindingCategory.DATA: _prefixed("_ctx"),
            BindingCategory.PROPS: _props("__props"),
            BindingCategory.PROPS_ALIASED: _props("__props"),
            BindingCategory.SETUP_LET: _unref,
            BindingCategory.SETUP_CONST: _bare,
            BindingCategory.SETUP_REACTIVE_CONST: _bare,
            BindingCategory.SETUP_MAYBE_REF: _unref,
            BindingCategory.SETUP_REF: _unref,
            BindingCategory.OPTIONS: _prefixed("_ctx"),
            BindingCategory.LITERAL_CONST: _bare,
            BindingCategory.COMPONENT: _bare,
            BindingCategory.IMPORTED: _bare,
            BindingCategory.TEMPLATE_LOCAL: _bare,
            BindingCategory.JS_GLOBAL: _bare,
            BindingCategory.UNRESOLVED: _prefixed("_ctx"),
        },
        "inline template references",
    )
)

# Standalone `render(_ctx, _cache, $props, $setup, $data, $options)`.
RENDER_FUNCTION_REFERENCES: Dict[BindingCategory, Renderer] = dict(
    require_exhaustive(
        {
            BindingCategory.DATA: _prefixed("$data"),
            BindingCategory.PROPS: _props("$props"),
            BindingCategory.PROPS_ALIASED: _props("$props"),
            BindingCategory.SETUP_LET: _prefixed("$setup"),
            BindingCategory.SETUP_CONST: _prefixed("$setup"),
            BindingCategory.SETUP_REACTIVE_CONST: _prefixed("$setup"),
            BindingCategory.SETUP_MAYBE_REF: _prefixed("$setup"),
            BindingCategory.SETUP_REF: _prefixed("$setup"),
            BindingCategory.OPTIONS: _prefixed("$options"),
            BindingCategory.LITERAL_CONST: _prefixed("$setup"),
            BindingCategory.COMPONENT: _prefixed("$setup"),
            BindingCategory.IMPORTED: _prefixed("$setup"),
            BindingCategory.TEMPLATE_LOCAL: _bare,
            BindingCategory.JS_GLOBAL: _bare,
            BindingCategory.UNRESOLVED: _prefixed("_ctx"),
        },
        "render function references",
    )
)


class TemplateScope:
    """Names introduced by `v-for` aliases and slot props, innermost last."""

    def __init__(self) -> None:
        self._frames: List[FrozenSet[str]] = []

    @contextmanager
    def push(self, names: Iterable[str]) -> Iterator[None]:
        self._frames.append(frozenset(names))
        try:
            yield
        finally:
            self._frames.pop()

    def is_local(self, name: str) -> bool:
        return any(name in frame for frame in reversed(self._frames))

    @property
    def depth(self) -> int:
        return len(self._frames)


class BindingResolver:
    """Resolves template identifiers against the scope stack and Binding Table."""

    def __init__(self, table: BindingTable, helpers: HelperRegistry, inline: bool):
        self.table = table
        self.helpers = helpers
        self.inline = inline
        self.scope = TemplateScope()
        self._renderers = INLINE_REFERENCES if inline else RENDER_FUNCTION_REFERENCES

    def resolve(self, name: str) -> BindingCategory:
        if self.scope.is_local(name):
            return BindingCategory.TEMPLATE_LOCAL
        category = self.table.category_of(name)
        if category is not None:
            return category
        if name in JS_GLOBALS:
            return BindingCategory.JS_GLOBAL
        return BindingCategory.UNRESOLVED

    def render(self, name: str, category: BindingCategory) -> str:
        key = self.table.props_aliases.get(name, name)
        return self._renderers[category](name, key, self.helpers)

    def reference(self, name: str) -> str:
        return self.render(name, self.resolve(name))

    @staticmethod
    def should_warn(name: str) -> bool:
        """Public instance properties (`$attrs`, `$slots`, ...) are always provided."""
        return not name.startswith("$")
