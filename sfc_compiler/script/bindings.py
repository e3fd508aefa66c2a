"""
Binding categories, declaration records and the Binding Table.

The classifier is a pure function from a declaration record to exactly one
BindingCategory. The template compiler and the assembler consume categories
through dispatch tables checked with `require_exhaustive`, so a new category
fails at import time instead of falling through silently.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional

from ..core.models import SourceSpan

logger = logging.getLogger(__name__)


class BindingCategory(Enum):
    """How the template must reference an identifier at runtime."""

    DATA = "data"  # returned from data()
    PROPS = "props"
    PROPS_ALIASED = "props-aliased"  # local alias of a destructured <script setup> prop
    SETUP_LET = "setup-let"  # may be reassigned, always unwrapped
    SETUP_CONST = "setup-const"  # can never be a ref
    SETUP_REACTIVE_CONST = "setup-reactive-const"
    SETUP_MAYBE_REF = "setup-maybe-ref"
    SETUP_REF = "setup-ref"
    OPTIONS = "options"  # computed, methods, inject, ...
    LITERAL_CONST = "literal-const"
    COMPONENT = "component"  # .vue import or defineComponent() call
    IMPORTED = "imported"
    TEMPLATE_LOCAL = "template-local"  # v-for alias or slot scope variable
    JS_GLOBAL = "js-global"
    UNRESOLVED = "unresolved"

    @property
    def needs_unwrap(self) -> bool:
        return self in _UNWRAPPED


_UNWRAPPED = frozenset(
    {BindingCategory.SETUP_REF, BindingCategory.SETUP_MAYBE_REF, BindingCategory.SETUP_LET}
)

# Globals the runtime allows template expressions to touch directly.
JS_GLOBALS = frozenset(
    {
        "Infinity",
        "undefined",
        "NaN",
        "isFinite",
        "isNaN",
        "parseFloat",
        "parseInt",
        "decodeURI",
        "decodeURIComponent",
        "encodeURI",
        "encodeURIComponent",
        "Math",
        "Number",
        "Date",
        "Array",
        "Object",
        "Boolean",
        "String",
        "RegExp",
        "Map",
        "Set",
        "JSON",
        "Intl",
        "BigInt",
        "console",
        "Error",
        "Symbol",
    }
)


def require_exhaustive(table: Mapping[BindingCategory, Any], consumer: str) -> Mapping[BindingCategory, Any]:
    """Fail loudly when a dispatch table misses a category."""
    missing = [category.name for category in BindingCategory if category not in table]
    if missing:
        raise TypeError(f"{consumer} does not handle binding categories: {', '.join(missing)}")
    return table


class DeclarationOrigin(Enum):
    """Where in the script an identifier was declared."""

    OPTIONS_DATA = "options-data"
    OPTIONS_PROPS = "options-props"
    OPTIONS_OTHER = "options-other"
    OPTIONS_SETUP = "options-setup"  # keys returned from an Options API setup()
    SETUP_PROP = "setup-prop"
    SETUP_PROP_ALIAS = "setup-prop-alias"
    SETUP_DECLARATION = "setup-declaration"
    IMPORT = "import"


class DeclarationKind(Enum):
    CONST = "const"
    LET = "let"
    VAR = "var"
    FUNCTION = "function"
    CLASS = "class"
    ENUM = "enum"
    IMPORT = "import"
    OPTION = "option"
    PROP = "prop"


class InitializerKind(Enum):
    """Shape of a declaration's right-hand side, as far as ref-ness goes."""

    NONE = "none"
    LITERAL = "literal"
    REF_CALL = "ref-call"
    REACTIVE_CALL = "reactive-call"
    COMPONENT_CALL = "component-call"
    NEVER_REF = "never-ref"
    MAYBE_REF = "maybe-ref"


class ImportKind(Enum):
    VUE = "vue"
    COMPONENT = "component"
    OTHER = "other"


@dataclass(frozen=True)
class DeclarationRecord:
    """One identifier as declared by the script, before classification."""

    name: str
    origin: DeclarationOrigin
    kind: DeclarationKind
    span: SourceSpan
    initializer: InitializerKind = InitializerKind.NONE
    import_kind: Optional[ImportKind] = None
    import_source: Optional[str] = None
    prop_key: Optional[str] = None
    is_destructured: bool = False


def classify(record: DeclarationRecord) -> BindingCategory:
    """Assign the binding category of a script declaration.

    Structural signals (options, props, imports) are checked before the
    const/let shape of a `<script setup>` declaration.
    """
    origin = record.origin

    if origin is DeclarationOrigin.OPTIONS_DATA:
        return BindingCategory.DATA
    if origin is DeclarationOrigin.OPTIONS_PROPS:
        return BindingCategory.PROPS
    if origin is DeclarationOrigin.SETUP_PROP_ALIAS:
        return BindingCategory.PROPS_ALIASED
    if origin is DeclarationOrigin.SETUP_PROP:
        return BindingCategory.PROPS
    if origin is DeclarationOrigin.OPTIONS_OTHER:
        return BindingCategory.OPTIONS
    if origin is DeclarationOrigin.OPTIONS_SETUP:
        return BindingCategory.SETUP_MAYBE_REF
    if origin is DeclarationOrigin.IMPORT:
        if record.import_kind is ImportKind.COMPONENT:
            return BindingCategory.COMPONENT
        if record.import_kind is ImportKind.VUE:
            return BindingCategory.SETUP_CONST
        return BindingCategory.IMPORTED

    kind = record.kind
    if kind in (DeclarationKind.LET, DeclarationKind.VAR):
        return BindingCategory.SETUP_LET
    if kind in (DeclarationKind.FUNCTION, DeclarationKind.CLASS):
        return BindingCategory.SETUP_CONST
    if kind is DeclarationKind.ENUM:
        return BindingCategory.LITERAL_CONST

    initializer = record.initializer
    if initializer is InitializerKind.REF_CALL:
        return BindingCategory.SETUP_REF
    if initializer is InitializerKind.MAYBE_REF:
        return BindingCategory.SETUP_MAYBE_REF
    if initializer is InitializerKind.REACTIVE_CALL:
        return BindingCategory.SETUP_REACTIVE_CONST
    if initializer is InitializerKind.LITERAL:
        return BindingCategory.LITERAL_CONST
    if initializer is InitializerKind.COMPONENT_CALL:
        return BindingCategory.COMPONENT
    return BindingCategory.SETUP_CONST


@dataclass(frozen=True)
class BindingEntry:
    identifier: str
    category: BindingCategory


class BindingTable(Mapping[str, BindingEntry]):
    """Immutable identifier → BindingEntry mapping for one compile call."""

    def __init__(
        self,
        entries: Iterable[BindingEntry] = (),
        props_aliases: Optional[Mapping[str, str]] = None,
    ):
        self._entries: Mapping[str, BindingEntry] = MappingProxyType(
            {entry.identifier: entry for entry in entries}
        )
        self._props_aliases: Mapping[str, str] = MappingProxyType(dict(props_aliases or {}))

    def __getitem__(self, identifier: str) -> BindingEntry:
        return self._entries[identifier]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        pairs = ", ".join(f"{name}={entry.category.name}" for name, entry in self._entries.items())
        return f"BindingTable({pairs})"

    def category_of(self, identifier: str) -> Optional[BindingCategory]:
        entry = self._entries.get(identifier)
        return entry.category if entry else None

    @property
    def props_aliases(self) -> Mapping[str, str]:
        """Local alias → original prop key, for PROPS_ALIASED entries."""
        return self._props_aliases

    def to_dict(self) -> Dict[str, Any]:
        """Serialize as `{name: category}` plus `__propsAliases` when present."""
        result: Dict[str, Any] = {name: entry.category.value for name, entry in self._entries.items()}
        if self._props_aliases:
            result["__propsAliases"] = dict(self._props_aliases)
        return result


def build_binding_table(records: Iterable[DeclarationRecord]) -> BindingTable:
    """Classify records into a table. Later records win on name collision."""
    categories: Dict[str, BindingCategory] = {}
    aliases: Dict[str, str] = {}

    for record in records:
        category = classify(record)
        if record.name in categories:
            logger.debug(
                "Binding '%s' re-declared: %s replaces %s",
                record.name,
                category.name,
                categories[record.name].name,
            )
            aliases.pop(record.name, None)
        categories[record.name] = category
        if category is BindingCategory.PROPS_ALIASED and record.prop_key:
            aliases[record.name] = record.prop_key

    return BindingTable(
        (BindingEntry(name, category) for name, category in categories.items()),
        props_aliases=aliases,
    )
