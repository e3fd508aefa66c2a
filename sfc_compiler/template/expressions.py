"""
Per-identifier rewriting of template expressions.

Each expression is parsed with tree-sitter and re-emitted with every free
identifier replaced by the reference its binding category calls for.
"""

import logging
import re
from typing import FrozenSet, List, Optional, Tuple

from tree_sitter import Node

from ..core.diagnostics import ByteOffsets, DiagnosticKind, DiagnosticsCollector
from ..parsing import js_parser
from ..parsing.js_parser import FUNCTION_NODES, ParsedSource
from ..script.bindings import BindingCategory
from .helpers import HelperRegistry, RuntimeHelper
from .scope import BindingResolver

logger = logging.getLogger(__name__)

_HANDLER_REFERENCES = frozenset({"identifier", "member_expression", "subscript_expression"})
_FUNCTIONS = frozenset({"arrow_function", "function_expression", "function"})
_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")


class _Source:
    """One parsed expression and where its text sits in the component source."""

    def __init__(self, parsed: ParsedSource, prefix: int, exp_start: int):
        self.parsed = parsed
        self.prefix = prefix  # bytes of wrapper text before the expression
        self.exp_start = exp_start


class ExpressionCompiler:
    """Compiles template expressions against a BindingResolver."""

    def __init__(
        self,
        resolver: BindingResolver,
        diagnostics: DiagnosticsCollector,
        offsets: ByteOffsets,
        lang: Optional[str] = None,
        report_unresolved: bool = True,
    ):
        self.resolver = resolver
        self.diagnostics = diagnostics
        self.offsets = offsets
        self.lang = lang
        self.report_unresolved = report_unresolved

    @property
    def helpers(self) -> HelperRegistry:
        return self.resolver.helpers

    # ------------------------------------------------------------ entry points

    def expression(self, exp: str, exp_start: int, locals_: FrozenSet[str] = frozenset()) -> str:
        """Compile a value expression."""
        source = self._parse(f"({exp})", 1, exp_start, exp)
        if source is None:
            return exp.strip() or "undefined"
        node = self._expression_node(source)
        if node is None:
            return exp.strip() or "undefined"
        return self._emit(source, js_parser.unwrap_parentheses(node), locals_)

    def handler(self, exp: str, exp_start: int) -> str:
        """Compile a `v-on` value: a handler reference, a function, or inline statements."""
        stripped = exp.strip()
        source = self._parse(f"({stripped})", 1, exp_start + _leading(exp), exp, report=False)
        if source is not None:
            node = self._expression_node(source)
            inner = js_parser.unwrap_parentheses(node) if node is not None else None
            if inner is not None and (inner.type in _HANDLER_REFERENCES or inner.type in _FUNCTIONS):
                return self._emit(source, inner, frozenset())

        statements = self._parse(stripped, 0, exp_start + _leading(exp), exp)
        if statements is None:
            return f"$event => ({stripped})"
        body = [child for child in statements.parsed.root.named_children if child.type != "comment"]
        locals_ = frozenset({"$event"})
        if len(body) == 1 and body[0].type == "expression_statement" and body[0].named_child_count:
            compiled = self._emit(statements, body[0].named_children[0], locals_)
            return f"$event => ({compiled})"
        compiled = self._emit(statements, statements.parsed.root, locals_)
        return f"$event => {{ {compiled} }}"

    def assignment(self, exp: str, exp_start: int, value: str = "$event") -> str:
        """Compile `exp = value` for `v-model`, honouring ref semantics."""
        stripped = exp.strip()
        source = self._parse(f"({stripped} = {value})", 1, exp_start + _leading(exp), exp)
        if source is None:
            return f"{stripped} = {value}"
        node = self._expression_node(source)
        if node is None:
            return f"{stripped} = {value}"
        return self._emit(source, js_parser.unwrap_parentheses(node), frozenset({value}))

    def parameters(self, pattern: str, exp_start: int) -> Tuple[str, List[str]]:
        """Parse a binding pattern (`item`, `{ a, b }`); return its text and bound names."""
        stripped = pattern.strip()
        source = self._parse(f"({stripped}) => 0", 1, exp_start + _leading(pattern), pattern)
        if source is None:
            return stripped, []
        for node in js_parser.walk(source.parsed.root):
            if node.type == "arrow_function":
                parameters = node.child_by_field_name("parameters") or node.child_by_field_name("parameter")
                if parameters is None:
                    break
                names = [js_parser.node_text(i) for i in js_parser.pattern_identifiers(parameters)]
                return stripped, names
        return stripped, []

    def is_simple_identifier(self, exp: str) -> bool:
        return _IDENTIFIER.match(exp.strip()) is not None

    def is_static(self, exp: str) -> bool:
        """True for expressions made only of literals."""
        source = self._parse(f"({exp})", 1, 0, exp, report=False)
        if source is None:
            return False
        for node in js_parser.walk(source.parsed.root):
            if node.type in {"identifier", "shorthand_property_identifier", "this", "call_expression"}:
                return False
        return True

    # --------------------------------------------------------------- internals

    def _parse(
        self, code: str, prefix: int, exp_start: int, original: str, report: bool = True
    ) -> Optional[_Source]:
        parsed = js_parser.parse(code, self.lang)
        error = js_parser.first_syntax_error(parsed.root)
        if error is not None:
            if report:
                start = self.offsets(exp_start)
                end = self.offsets(exp_start + len(original))
                self.diagnostics.report(
                    DiagnosticKind.TEMPLATE_PARSE_ERROR,
                    start,
                    end,
                    f"Error parsing JavaScript expression: {error[2]}",
                )
            return None
        return _Source(parsed, prefix, exp_start)

    def _expression_node(self, source: _Source) -> Optional[Node]:
        root = source.parsed.root
        for statement in root.named_children:
            if statement.type == "expression_statement" and statement.named_child_count:
                return statement.named_children[0]
        return None

    def _emit(self, source: _Source, node: Node, locals_: FrozenSet[str]) -> str:
        kind = node.type

        if kind == "identifier":
            return self._identifier(source, node, locals_)

        if kind == "shorthand_property_identifier":
            name = js_parser.node_text(node)
            rendered = self._identifier(source, node, locals_)
            return name if rendered == name else f"{name}: {rendered}"

        if kind in FUNCTION_NODES:
            parameters = node.child_by_field_name("parameters") or node.child_by_field_name("parameter")
            if parameters is not None:
                names = {js_parser.node_text(i) for i in js_parser.pattern_identifiers(parameters)}
                locals_ = locals_ | names

        if kind in {"assignment_expression", "augmented_assignment_expression"}:
            rewritten = self._ref_assignment(source, node, locals_)
            if rewritten is not None:
                return rewritten

        if kind == "update_expression":
            rewritten = self._ref_update(source, node, locals_)
            if rewritten is not None:
                return rewritten

        if not node.children:
            return source.parsed.text(node)
        return self._join(source, node, locals_)

    def _join(self, source: _Source, node: Node, locals_: FrozenSet[str]) -> str:
        data = source.parsed.data
        pieces: List[str] = []
        cursor = node.start_byte
        for child in node.children:
            pieces.append(data[cursor : child.start_byte].decode("utf-8"))
            pieces.append(self._emit(source, child, locals_))
            cursor = child.end_byte
        pieces.append(data[cursor : node.end_byte].decode("utf-8"))
        return "".join(pieces)

    def _identifier(self, source: _Source, node: Node, locals_: FrozenSet[str]) -> str:
        name = js_parser.node_text(node)
        if name in locals_:
            return name
        category = self.resolver.resolve(name)
        if (
            category is BindingCategory.UNRESOLVED
            and self.report_unresolved
            and self.resolver.should_warn(name)
        ):
            lo = self.offsets(source.exp_start) + node.start_byte - source.prefix
            self.diagnostics.report(
                DiagnosticKind.UNRESOLVED_BINDING_WARNING,
                max(lo, 0),
                max(lo, 0) + (node.end_byte - node.start_byte),
                f"'{name}' is not declared in the component script and is not a known global.",
            )
        return self.resolver.render(name, category)

    def _lvalue_category(self, node: Optional[Node], locals_: FrozenSet[str]) -> Optional[BindingCategory]:
        if node is None or node.type != "identifier" or not self.resolver.inline:
            return None
        name = js_parser.node_text(node)
        if name in locals_:
            return None
        category = self.resolver.resolve(name)
        if category in {BindingCategory.SETUP_REF, BindingCategory.SETUP_MAYBE_REF, BindingCategory.SETUP_LET}:
            return category
        return None

    def _ref_assignment(self, source: _Source, node: Node, locals_: FrozenSet[str]) -> Optional[str]:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        category = self._lvalue_category(left, locals_)
        if category is None or left is None or right is None:
            return None
        name = js_parser.node_text(left)
        operator = source.parsed.data[left.end_byte : right.start_byte].decode("utf-8").strip()
        value = self._emit(source, right, locals_)
        if category is BindingCategory.SETUP_LET:
            is_ref = self.helpers.use(RuntimeHelper.IS_REF)
            return f"{is_ref}({name}) ? {name}.value {operator} {value} : {name} {operator} {value}"
        return f"{name}.value {operator} {value}"

    def _ref_update(self, source: _Source, node: Node, locals_: FrozenSet[str]) -> Optional[str]:
        argument = node.child_by_field_name("argument")
        category = self._lvalue_category(argument, locals_)
        if category is None or argument is None:
            return None
        name = js_parser.node_text(argument)
        operator = next((c.type for c in node.children if c.type in {"++", "--"}), "++")
        prefix = node.children[0].type in {"++", "--"}

        def wrap(target: str) -> str:
            return f"{operator}{target}" if prefix else f"{target}{operator}"

        if category is BindingCategory.SETUP_LET:
            is_ref = self.helpers.use(RuntimeHelper.IS_REF)
            return f"{is_ref}({name}) ? {wrap(name + '.value')} : {wrap(name)}"
        return wrap(f"{name}.value")


def _leading(text: str) -> int:
    return len(text) - len(text.lstrip())
