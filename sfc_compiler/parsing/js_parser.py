"""
JavaScript and TypeScript front end backed by tree-sitter.

Grammar objects are shared; a fresh Parser is created for every parse so
concurrent compile calls never share parser state.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

logger = logging.getLogger(__name__)

JAVASCRIPT = Language(tree_sitter_javascript.language())
TYPESCRIPT = Language(tree_sitter_typescript.language_typescript())
TSX = Language(tree_sitter_typescript.language_tsx())

FUNCTION_NODES = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "function_expression",
        "function",
        "generator_function",
        "arrow_function",
        "method_definition",
        "class_declaration",
        "class",
    }
)


def language_for(lang: Optional[str]) -> Language:
    if lang == "ts":
        return TYPESCRIPT
    if lang == "tsx":
        return TSX
    return JAVASCRIPT


@dataclass
class ParsedSource:
    """A parsed piece of JavaScript together with its encoded bytes."""

    tree: Tree
    data: bytes

    @property
    def root(self) -> Node:
        return self.tree.root_node

    def text(self, node: Node) -> str:
        return self.data[node.start_byte : node.end_byte].decode("utf-8")

    def slice(self, start: int, end: int) -> str:
        return self.data[start:end].decode("utf-8")


def parse(source: str, lang: Optional[str] = None) -> ParsedSource:
    """Parse a module or expression source."""
    data = source.encode("utf-8")
    parser = Parser(language_for(lang))
    return ParsedSource(parser.parse(data), data)


def node_text(node: Node) -> str:
    return (node.text or b"").decode("utf-8")


def iter_syntax_errors(root: Node) -> Iterator[Tuple[int, int, str]]:
    """Yield `(start_byte, end_byte, message)` for every error region."""
    if not root.has_error:
        return
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR":
            preview = node_text(node)[:30].strip()
            message = f"Unexpected token near '{preview}'" if preview else "Unexpected token"
            yield node.start_byte, node.end_byte, message
            continue
        if node.is_missing:
            yield node.start_byte, node.end_byte, f"Expected '{node.type}'"
            continue
        if node.has_error:
            stack.extend(reversed(node.children))


def first_syntax_error(root: Node) -> Optional[Tuple[int, int, str]]:
    for error in iter_syntax_errors(root):
        return error
    return None


def unwrap_parentheses(node: Node) -> Node:
    while node.type == "parenthesized_expression" and node.named_child_count == 1:
        node = node.named_children[0]
    return node


def strip_type_wrappers(node: Node) -> Node:
    """Look through `x as T`, `x satisfies T` and `x!` around an expression."""
    node = unwrap_parentheses(node)
    while node.type in {"as_expression", "satisfies_expression", "non_null_expression"}:
        node = unwrap_parentheses(node.named_children[0])
    return node


def call_callee_name(node: Node) -> Optional[str]:
    """Name of the identifier called by a call expression, if it is a plain identifier."""
    node = strip_type_wrappers(node)
    if node.type != "call_expression":
        return None
    callee = node.child_by_field_name("function")
    if callee is None or callee.type != "identifier":
        return None
    return node_text(callee)


def call_arguments(node: Node) -> List[Node]:
    arguments = node.child_by_field_name("arguments")
    if arguments is None:
        return []
    return [child for child in arguments.named_children if child.type != "comment"]


def string_value(node: Node) -> Optional[str]:
    """Literal value of a plain string node."""
    if node.type != "string":
        return None
    fragments = [node_text(child) for child in node.named_children if child.type == "string_fragment"]
    return "".join(fragments)


def property_key(node: Node) -> Optional[str]:
    """Static key of an object property node (`pair`, method, shorthand)."""
    if node.type in {"shorthand_property_identifier", "shorthand_property_identifier_pattern"}:
        return node_text(node)
    key = node.child_by_field_name("key") or node.child_by_field_name("name")
    if key is None:
        return None
    if key.type in {"property_identifier", "identifier"}:
        return node_text(key)
    if key.type == "string":
        return string_value(key)
    if key.type == "number":
        return node_text(key)
    return None


def walk(node: Node, skip_functions: bool = False) -> Iterator[Node]:
    """Pre-order traversal, optionally not descending into nested functions."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        if skip_functions and current is not node and current.type in FUNCTION_NODES:
            continue
        stack.extend(reversed(current.children))


def pattern_identifiers(node: Node) -> List[Node]:
    """Identifier nodes bound by a binding pattern, in source order.

    Default values and computed keys inside the pattern are not bindings and
    are skipped.
    """
    found: List[Node] = []
    stack = [node]
    while stack:
        current = stack.pop()
        kind = current.type
        if kind in {"identifier", "shorthand_property_identifier_pattern"}:
            found.append(current)
        elif kind == "pair_pattern":
            value = current.child_by_field_name("value")
            if value is not None:
                stack.append(value)
        elif kind in {"assignment_pattern", "object_assignment_pattern"}:
            left = current.child_by_field_name("left")
            if left is not None:
                stack.append(left)
        elif kind in {
            "object_pattern",
            "array_pattern",
            "rest_pattern",
            "formal_parameters",
            "required_parameter",
            "optional_parameter",
        }:
            if kind in {"required_parameter", "optional_parameter"}:
                pattern = current.child_by_field_name("pattern")
                if pattern is not None:
                    stack.append(pattern)
                continue
            stack.extend(reversed(current.named_children))
    return found
