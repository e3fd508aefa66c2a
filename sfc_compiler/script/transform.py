"""
Rewrites script blocks into the pieces the assembler places in the module.

`<script setup>` becomes the body of `setup()`: imports are hoisted, macro
calls are replaced by their runtime equivalents and references to
destructured props read through `__props`. A plain `<script>` keeps its code
with `export default` turned into a `__default__` constant.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Set, Tuple

from tree_sitter import Node

from ..core.models import PropsDestructureMode
from ..parsing import js_parser
from ..parsing.js_parser import FUNCTION_NODES, ParsedSource
from ..template.helpers import HelperRegistry, RuntimeHelper
from .analyzer import (
    DEFINE_EMITS,
    DEFINE_EXPOSE,
    DEFINE_MODEL,
    DEFINE_OPTIONS,
    DEFINE_PROPS,
    DEFINE_SLOTS,
    WITH_DEFAULTS,
    MacroCall,
    OptionsScriptInfo,
    SetupScriptInfo,
)

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")


@dataclass(frozen=True)
class _Edit:
    start: int
    end: int
    text: str


@dataclass
class SetupCode:
    """The transformed `<script setup>`."""

    imports: List[str] = field(default_factory=list)
    body: str = ""
    is_async: bool = False


def props_access(key: str, target: str = "__props") -> str:
    if _IDENTIFIER.match(key):
        return f"{target}.{key}"
    return f'{target}["{key}"]'


def apply_edits(parsed: ParsedSource, edits: List[_Edit], start: int = 0, end: Optional[int] = None) -> str:
    """Apply non-overlapping edits inside `[start, end)` of the parsed bytes."""
    end = len(parsed.data) if end is None else end
    pieces: List[bytes] = []
    cursor = start
    for edit in sorted(edits, key=lambda e: (e.start, e.end)):
        if edit.start < cursor or edit.end > end:
            continue
        pieces.append(parsed.data[cursor : edit.start])
        pieces.append(edit.text.encode("utf-8"))
        cursor = edit.end
    pieces.append(parsed.data[cursor:end])
    return b"".join(pieces).decode("utf-8")


class SetupTransformer:
    """Produces the `setup()` body for one `<script setup>` block."""

    def __init__(self, info: SetupScriptInfo, mode: PropsDestructureMode, helpers: HelperRegistry):
        self.info = info
        self.mode = mode
        self.helpers = helpers
        self._edits: List[_Edit] = []
        self._removed: List[Tuple[int, int]] = []

    def transform(self) -> SetupCode:
        parsed = self.info.parsed
        code = SetupCode(is_async=self.info.has_await)

        for statement in self.info.imports:
            code.imports.append(parsed.text(statement))
            self._remove(statement)

        for macro in self.info.macros:
            self._rewrite_macro(macro)

        props = self.info.props
        if props is not None and props.destructured and self.mode is PropsDestructureMode.ON:
            self._rewrite_prop_references(parsed.root, frozenset())

        code.body = apply_edits(parsed, self._edits).strip()
        logger.debug("Setup body rewritten with %d edits", len(self._edits))
        return code

    def _remove(self, node: Node) -> None:
        end = node.end_byte
        data = self.info.parsed.data
        # Swallow the line break that followed the removed statement.
        while end < len(data) and data[end : end + 1] in (b" ", b"\t", b";"):
            end += 1
        if data[end : end + 1] == b"\n":
            end += 1
        self._edits.append(_Edit(node.start_byte, end, ""))
        self._removed.append((node.start_byte, end))

    def _replace(self, node: Node, text: str) -> None:
        self._edits.append(_Edit(node.start_byte, node.end_byte, text))
        self._removed.append((node.start_byte, node.end_byte))

    def _rewrite_macro(self, macro: MacroCall) -> None:
        declarator = macro.declarator
        value = declarator.child_by_field_name("value") if declarator is not None else None
        sole_declarator = declarator is None or (
            sum(1 for child in macro.statement.named_children if child.type == "variable_declarator") == 1
        )

        if macro.name in {DEFINE_PROPS, WITH_DEFAULTS}:
            if declarator is None or value is None:
                self._remove(macro.statement)
            elif macro.is_duplicate:
                self._replace(value, "__props")
            elif macro.is_destructure and self.mode is PropsDestructureMode.ON:
                props = self.info.props
                if props is not None and props.rest:
                    excluded = ", ".join(f'"{key}"' for key in props.destructured.values())
                    helper = self.helpers.use(RuntimeHelper.CREATE_PROPS_REST_PROXY)
                    rest = f"const {props.rest} = {helper}(__props, [{excluded}])"
                    self._replace(macro.statement if sole_declarator else declarator, rest)
                elif sole_declarator:
                    self._remove(macro.statement)
                else:
                    self._replace(value, "__props")
            else:
                self._replace(value, "__props")
            return

        if macro.name == DEFINE_EMITS:
            if value is None:
                self._remove(macro.statement)
            else:
                self._replace(value, "__emit")
            return

        if macro.name == DEFINE_EXPOSE:
            callee = macro.call.child_by_field_name("function")
            if callee is not None:
                self._edits.append(_Edit(callee.start_byte, callee.end_byte, "__expose"))
            return

        if macro.name == DEFINE_OPTIONS:
            self._remove(macro.statement)
            return

        if macro.name == DEFINE_MODEL:
            if value is None:
                self._remove(macro.statement)
                return
            model = next((m for m in self.info.models if m.local == _declared_name(declarator)), None)
            name = model.name if model is not None else "modelValue"
            helper = self.helpers.use(RuntimeHelper.USE_MODEL)
            self._replace(value, f'{helper}(__props, "{name}")')
            return

        if macro.name == DEFINE_SLOTS:
            if value is None:
                self._remove(macro.statement)
            else:
                self._replace(value, f"{self.helpers.use(RuntimeHelper.USE_SLOTS)}()")

    def _is_removed(self, node: Node) -> bool:
        return any(start <= node.start_byte and node.end_byte <= end for start, end in self._removed)

    def _rewrite_prop_references(self, node: Node, shadowed: FrozenSet[str]) -> None:
        props = self.info.props
        assert props is not None
        if self._is_removed(node):
            return

        kind = node.type
        if kind == "identifier":
            name = js_parser.node_text(node)
            if name in props.destructured and name not in shadowed:
                self._edits.append(_Edit(node.start_byte, node.end_byte, props_access(props.destructured[name])))
            return

        if kind == "shorthand_property_identifier":
            name = js_parser.node_text(node)
            if name in props.destructured and name not in shadowed:
                access = props_access(props.destructured[name])
                self._edits.append(_Edit(node.start_byte, node.end_byte, f"{name}: {access}"))
            return

        parameters: Optional[Node] = None
        if kind in FUNCTION_NODES:
            parameters = node.child_by_field_name("parameters") or node.child_by_field_name("parameter")
            names: Set[str] = set()
            if parameters is not None:
                names.update(js_parser.node_text(i) for i in js_parser.pattern_identifiers(parameters))
            body = node.child_by_field_name("body")
            if body is not None and body.type == "statement_block":
                names.update(_block_declarations(body))
            shadowed = shadowed | names
        elif kind == "statement_block":
            shadowed = shadowed | _block_declarations(node)

        for child in node.children:
            if parameters is not None and _same_node(child, parameters):
                continue
            self._rewrite_prop_references(child, shadowed)


def transform_options_script(info: OptionsScriptInfo) -> Tuple[str, bool]:
    """Return the plain script code and whether it defines `__default__`."""
    parsed = info.parsed
    if info.default_export is None or info.default_value is None:
        return parsed.text(parsed.root).strip(), False

    edit = _Edit(info.default_export.start_byte, info.default_value.start_byte, "const __default__ = ")
    return apply_edits(parsed, [edit]).strip(), True


def _declared_name(declarator: Optional[Node]) -> Optional[str]:
    if declarator is None:
        return None
    target = declarator.child_by_field_name("name")
    return js_parser.node_text(target) if target is not None and target.type == "identifier" else None


def _same_node(a: Node, b: Node) -> bool:
    return a.start_byte == b.start_byte and a.end_byte == b.end_byte and a.type == b.type


def _block_declarations(block: Node) -> FrozenSet[str]:
    """Names declared directly inside a statement block."""
    names: Set[str] = set()
    for statement in block.named_children:
        if statement.type in {"lexical_declaration", "variable_declaration"}:
            for declarator in statement.named_children:
                target = declarator.child_by_field_name("name") if declarator.type == "variable_declarator" else None
                if target is not None:
                    names.update(js_parser.node_text(i) for i in js_parser.pattern_identifiers(target))
        elif statement.type in {"function_declaration", "class_declaration", "generator_function_declaration"}:
            name = statement.child_by_field_name("name")
            if name is not None:
                names.add(js_parser.node_text(name))
    return frozenset(names)
