"""
Template Compiler: turns the template tree into a render function.

Every directive has one fixed lowering. Identifier references inside
expressions are rewritten through the ExpressionCompiler, which consults the
Binding Table and the template scope stack.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from ..core.diagnostics import ByteOffsets, DiagnosticKind, DiagnosticsCollector
from ..core.models import TemplateBlock
from ..script.bindings import BindingCategory, BindingTable
from .ast import (
    Attribute,
    CommentNode,
    Directive,
    ElementNode,
    ElementType,
    InterpolationNode,
    RootNode,
    TemplateChild,
    TextNode,
)
from .expressions import ExpressionCompiler
from .helpers import BUILTIN_COMPONENTS, HelperRegistry, RuntimeHelper
from .parser import TemplateParser
from .scope import BindingResolver

logger = logging.getLogger(__name__)

HOISTED = -1

PATCH_FLAGS = (
    (1, "TEXT"),
    (2, "CLASS"),
    (4, "STYLE"),
    (8, "PROPS"),
    (16, "FULL_PROPS"),
    (32, "NEED_HYDRATION"),
    (64, "STABLE_FRAGMENT"),
    (128, "KEYED_FRAGMENT"),
    (256, "UNKEYED_FRAGMENT"),
    (512, "NEED_PATCH"),
    (1024, "DYNAMIC_SLOTS"),
)
TEXT, CLASS, STYLE, PROPS, FULL_PROPS = 1, 2, 4, 8, 16
STABLE_FRAGMENT, KEYED_FRAGMENT, UNKEYED_FRAGMENT, NEED_PATCH, DYNAMIC_SLOTS = 64, 128, 256, 512, 1024

_FOR_ALIAS = re.compile(r"^([\s\S]*?)\s+(?:in|of)\s+([\s\S]*)$")
_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")
_EVENT_OPTIONS = ("passive", "once", "capture")
_NON_KEY_MODIFIERS = frozenset({"stop", "prevent", "self", "ctrl", "shift", "alt", "meta", "exact", "middle"})
_MAYBE_KEY_MODIFIERS = frozenset({"left", "right"})
_KEYBOARD_EVENTS = frozenset({"onkeyup", "onkeydown", "onkeypress"})
_HANDLED_DIRECTIVES = frozenset({"bind", "on", "model", "show", "html", "text", "cloak", "once", "slot", "memo"})
_COMPONENT_CATEGORIES = frozenset(
    {
        BindingCategory.SETUP_CONST,
        BindingCategory.SETUP_LET,
        BindingCategory.SETUP_REF,
        BindingCategory.SETUP_MAYBE_REF,
        BindingCategory.SETUP_REACTIVE_CONST,
        BindingCategory.COMPONENT,
        BindingCategory.IMPORTED,
    }
)
_REF_CATEGORIES = frozenset(
    {BindingCategory.SETUP_REF, BindingCategory.SETUP_MAYBE_REF, BindingCategory.SETUP_LET}
)


def format_patch_flag(flag: int) -> str:
    if flag == HOISTED:
        return "-1 /* HOISTED */"
    names = [name for bit, name in PATCH_FLAGS if flag & bit]
    return f"{flag} /* {', '.join(names)} */"


def camelize(text: str) -> str:
    return re.sub(r"-(\w)", lambda m: m.group(1).upper(), text)


def capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def js_string(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def js_key(key: str) -> str:
    return key if _IDENTIFIER.match(key) else js_string(key)


@dataclass
class TemplateOutput:
    """Render function pieces handed to the assembler."""

    expression: str = "null"
    preamble: List[str] = field(default_factory=list)  # statements inside the render function
    hoisted: List[str] = field(default_factory=list)  # module-level constants


@dataclass
class _Props:
    """Props object under construction for one element or component."""

    segments: List[Union[List[Tuple[str, str]], str]] = field(default_factory=lambda: [[]])
    flag: int = 0
    dynamic: List[str] = field(default_factory=list)
    has_ref: bool = False
    static_class: Optional[str] = None
    dynamic_class: Optional[str] = None
    static_style: Optional[str] = None
    dynamic_style: Optional[str] = None

    @property
    def pairs(self) -> List[Tuple[str, str]]:
        last = self.segments[-1]
        if isinstance(last, str):
            self.segments.append([])
            last = self.segments[-1]
        return last  # type: ignore[return-value]

    def add(self, key: str, value: str, is_handler: bool = False) -> None:
        pairs = self.pairs
        for index, (existing, current) in enumerate(pairs):
            if existing == key:
                if is_handler:
                    merged = current[1:-1] if current.startswith("[") else current
                    pairs[index] = (key, f"[{merged}, {value}]")
                else:
                    pairs[index] = (key, value)
                return
        pairs.append((key, value))

    def spread(self, expression: str) -> None:
        self.segments.append(expression)

    def mark_dynamic(self, name: str) -> None:
        if name not in self.dynamic:
            self.dynamic.append(name)


class TemplateCompiler:
    """Compiles one template block against an immutable Binding Table."""

    def __init__(
        self,
        table: BindingTable,
        helpers: HelperRegistry,
        diagnostics: DiagnosticsCollector,
        offsets: ByteOffsets,
        inline: bool,
        lang: Optional[str] = None,
        hoist_static: bool = False,
        condense_whitespace: bool = True,
        keep_comments: bool = True,
    ):
        self.table = table
        self.helpers = helpers
        self.diagnostics = diagnostics
        self.offsets = offsets
        self.inline = inline
        self.hoist_static = hoist_static
        self.parser = TemplateParser(diagnostics, offsets, condense_whitespace, keep_comments)
        self.resolver = BindingResolver(table, helpers, inline)
        self.expressions = ExpressionCompiler(self.resolver, diagnostics, offsets, lang)
        self._output = TemplateOutput()
        self._assets: Dict[str, str] = {}
        self._cache_index = 0

    def compile(self, block: TemplateBlock) -> TemplateOutput:
        root = self.parser.parse(block)
        self._output = TemplateOutput()
        self._output.expression = self._gen_root(root)
        self._output.preamble = list(self._assets.values())
        logger.debug(
            "Compiled template: %d helpers, %d hoisted nodes",
            len(self.helpers),
            len(self._output.hoisted),
        )
        return self._output

    # ------------------------------------------------------------------ tree

    def _gen_root(self, root: RootNode) -> str:
        meaningful = [c for c in root.children if not (isinstance(c, TextNode) and c.is_whitespace)]
        children = self._gen_children(root.children, allow_hoist=len(meaningful) > 1)
        if not children:
            return "null"
        if len(children) == 1:
            return children[0]
        fragment = self.helpers.use(RuntimeHelper.FRAGMENT)
        create = self.helpers.use(RuntimeHelper.CREATE_VNODE)
        return f"{create}({fragment}, null, [{', '.join(children)}], {format_patch_flag(STABLE_FRAGMENT)})"

    def _gen_children(self, children: List[TemplateChild], allow_hoist: bool = True) -> List[str]:
        result: List[str] = []
        index = 0
        while index < len(children):
            child = children[index]

            if isinstance(child, (TextNode, InterpolationNode)):
                run = []
                while index < len(children) and isinstance(children[index], (TextNode, InterpolationNode)):
                    run.append(children[index])
                    index += 1
                result.append(self._gen_text_vnode(run))
                continue

            if isinstance(child, ElementNode) and child.directive("if") is not None:
                chain, index = self._collect_if_chain(children, index)
                result.append(self._gen_if(chain))
                continue

            if isinstance(child, ElementNode) and (child.directive("else-if") or child.directive("else")):
                self._error(child.start, child.end, "v-else/v-else-if has no adjacent v-if or v-else-if.")
                index += 1
                continue

            if allow_hoist and self.hoist_static and isinstance(child, ElementNode) and self._is_static(child):
                result.append(self._hoist(child))
            else:
                result.append(self._gen_node(child))
            index += 1
        return result

    def _gen_node(self, node: TemplateChild, branch_key: Optional[int] = None) -> str:
        if isinstance(node, CommentNode):
            return f"{self.helpers.use(RuntimeHelper.CREATE_COMMENT)}({js_string(node.content)})"
        if isinstance(node, (TextNode, InterpolationNode)):
            return self._gen_text_vnode([node])

        for_directive = node.take_directive("for")
        if for_directive is not None:
            return self._gen_for(node, for_directive, branch_key)

        once = node.take_directive("once")
        if once is not None:
            vnode = self._gen_node(node, branch_key)
            index = self._cache_index
            self._cache_index += 1
            return f"_cache[{index}] || (_cache[{index}] = {vnode})"

        slot_directive = node.directive("slot")
        if slot_directive is not None and node.element_type is not ElementType.COMPONENT:
            self._error(
                slot_directive.start,
                slot_directive.end,
                "v-slot can only be used on components or <template> tags.",
            )
            node.take_directive("slot")

        if node.element_type is ElementType.SLOT:
            return self._gen_slot_outlet(node)
        if node.element_type is ElementType.TEMPLATE:
            return self._gen_fragment(node.children, None if branch_key is None else str(branch_key))
        if node.element_type is ElementType.COMPONENT:
            return self._gen_component(node, branch_key)
        return self._gen_element(node, branch_key)

    def _gen_fragment(self, children: List[TemplateChild], key: Optional[str]) -> str:
        generated = self._gen_children(children)
        if len(generated) == 1 and key is None:
            return generated[0]
        fragment = self.helpers.use(RuntimeHelper.FRAGMENT)
        create = self.helpers.use(RuntimeHelper.CREATE_VNODE)
        props = f"{{ key: {key} }}" if key is not None else "null"
        return f"{create}({fragment}, {props}, [{', '.join(generated)}], {format_patch_flag(STABLE_FRAGMENT)})"

    # ------------------------------------------------------------------ text

    def _text_expression(self, run: List[Union[TextNode, InterpolationNode]]) -> Tuple[str, bool]:
        parts: List[str] = []
        dynamic = False
        for node in run:
            if isinstance(node, TextNode):
                if node.content:
                    parts.append(js_string(node.content))
            else:
                dynamic = True
                compiled = self.expressions.expression(node.expression, node.exp_start)
                parts.append(f"{self.helpers.use(RuntimeHelper.TO_DISPLAY_STRING)}({compiled})")
        return " + ".join(parts) or '""', dynamic

    def _gen_text_vnode(self, run: List) -> str:
        text, dynamic = self._text_expression(run)
        create = self.helpers.use(RuntimeHelper.CREATE_TEXT)
        if dynamic:
            return f"{create}({text}, {format_patch_flag(TEXT)})"
        return f"{create}({text})"

    # ------------------------------------------------------------ conditionals

    def _collect_if_chain(self, children: List[TemplateChild], index: int) -> Tuple[List[ElementNode], int]:
        chain = [children[index]]  # type: ignore[list-item]
        index += 1
        while index < len(children):
            candidate = children[index]
            if isinstance(candidate, CommentNode) or (isinstance(candidate, TextNode) and candidate.is_whitespace):
                lookahead = index + 1
                while lookahead < len(children) and (
                    isinstance(children[lookahead], CommentNode)
                    or (isinstance(children[lookahead], TextNode) and children[lookahead].is_whitespace)  # type: ignore[union-attr]
                ):
                    lookahead += 1
                if lookahead < len(children) and _is_else_branch(children[lookahead]):
                    index = lookahead
                    continue
                break
            if _is_else_branch(candidate):
                chain.append(candidate)  # type: ignore[arg-type]
                index += 1
                if candidate.directive("else") is not None:  # type: ignore[union-attr]
                    break
                continue
            break
        return chain, index  # type: ignore[return-value]

    def _gen_if(self, chain: List[ElementNode]) -> str:
        comment = f'{self.helpers.use(RuntimeHelper.CREATE_COMMENT)}("v-if", true)'
        code = comment
        for key in range(len(chain) - 1, -1, -1):
            branch = chain[key]
            directive = branch.take_directive("if") or branch.take_directive("else-if")
            if directive is None:
                branch.take_directive("else")
                code = self._gen_node(branch, branch_key=key)
                continue
            if not directive.has_exp:
                self._error(directive.start, directive.end, f"v-{directive.name} is missing expression.")
                condition = "false"
            else:
                condition = self.expressions.expression(directive.exp or "", directive.exp_start)
            code = f"({condition})\n    ? {self._gen_node(branch, branch_key=key)}\n    : {code}"
        return code

    # ------------------------------------------------------------------ loops

    def _gen_for(self, node: ElementNode, directive: Directive, branch_key: Optional[int]) -> str:
        match = _FOR_ALIAS.match((directive.exp or "").strip())
        if match is None:
            self._error(directive.start, directive.end, "v-for has invalid expression.")
            return f'{self.helpers.use(RuntimeHelper.CREATE_COMMENT)}("v-for", true)'

        raw_aliases, raw_source = match.group(1), match.group(2)
        source_start = directive.exp_start + (directive.exp or "").find(raw_source)
        source = self.expressions.expression(raw_source, source_start)

        alias_text = raw_aliases.strip()
        alias_offset = directive.exp_start + (directive.exp or "").find(alias_text)
        if alias_text.startswith("(") and alias_text.endswith(")"):
            alias_text = alias_text[1:-1]
            alias_offset += 1

        params: List[str] = []
        names: List[str] = []
        for piece, offset in _split_top_level(alias_text):
            if not piece.strip():
                params.append(f"__{len(params)}")
                continue
            text, bound = self.expressions.parameters(piece, alias_offset + offset)
            params.append(text)
            names.extend(bound)

        key_attribute = node.attribute("key")
        key_directive = next(
            (p for p in node.props if isinstance(p, Directive) and p.name == "bind" and p.arg == "key"), None
        )
        keyed = key_attribute is not None or key_directive is not None
        with self.resolver.scope.push(names):
            if node.element_type is ElementType.TEMPLATE:
                # the key of a <template v-for> goes on the fragment wrapping each iteration
                key = None
                if key_directive is not None:
                    key = self.expressions.expression(key_directive.exp or "", key_directive.exp_start)
                elif key_attribute is not None:
                    key = js_string(key_attribute.value or "")
                body = self._gen_fragment(node.children, key)
            else:
                body = self._gen_node(node)

        render_list = self.helpers.use(RuntimeHelper.RENDER_LIST)
        fragment = self.helpers.use(RuntimeHelper.FRAGMENT)
        create = self.helpers.use(RuntimeHelper.CREATE_VNODE)
        props = f"{{ key: {branch_key} }}" if branch_key is not None else "null"
        flag = format_patch_flag(KEYED_FRAGMENT if keyed else UNKEYED_FRAGMENT)
        return (
            f"{create}({fragment}, {props}, {render_list}({source}, ({', '.join(params)}) => {{\n"
            f"      return {body}\n    }}), {flag})"
        )

    # --------------------------------------------------------------- elements

    def _gen_element(self, node: ElementNode, branch_key: Optional[int] = None) -> str:
        runtime_directives: List[str] = []
        props = self._build_props(node, False, runtime_directives, branch_key)

        children_code: Optional[str] = None
        if not any(isinstance(p, Directive) and p.name in {"html", "text"} for p in node.props):
            children_code = self._element_children(node.children, props)

        flag = props.flag
        if not flag and (props.has_ref or runtime_directives):
            flag = NEED_PATCH

        args = [js_string(node.tag), self._props_code(props, False) or "null", children_code or "null"]
        if flag:
            args.append(format_patch_flag(flag))
            if flag & PROPS and not flag & FULL_PROPS and props.dynamic:
                args.append(json.dumps(props.dynamic))
        vnode = f"{self.helpers.use(RuntimeHelper.CREATE_ELEMENT_VNODE)}({_trim_args(args)})"
        return self._with_directives(vnode, runtime_directives)

    def _element_children(self, children: List[TemplateChild], props: _Props) -> Optional[str]:
        if not children:
            return None
        if all(isinstance(child, (TextNode, InterpolationNode)) for child in children):
            text, dynamic = self._text_expression(children)  # type: ignore[arg-type]
            if dynamic:
                props.flag |= TEXT
            return text
        return f"[{', '.join(self._gen_children(children))}]"

    def _with_directives(self, vnode: str, runtime_directives: List[str]) -> str:
        if not runtime_directives:
            return vnode
        with_directives = self.helpers.use(RuntimeHelper.WITH_DIRECTIVES)
        return f"{with_directives}({vnode}, [{', '.join(runtime_directives)}])"

    def _is_static(self, node: TemplateChild) -> bool:
        if isinstance(node, (TextNode, CommentNode)):
            return True
        if isinstance(node, InterpolationNode):
            return False
        if node.element_type is not ElementType.ELEMENT:
            return False
        for prop in node.props:
            if isinstance(prop, Directive) or prop.name in {"ref", "key"}:
                return False
        return all(self._is_static(child) for child in node.children)

    def _hoist(self, node: ElementNode) -> str:
        props = self._build_props(node, False, [], None)
        children = self._element_children(node.children, props)
        args = [js_string(node.tag), self._props_code(props, False) or "null", children or "null"]
        args.append(format_patch_flag(HOISTED))
        name = f"_hoisted_{len(self._output.hoisted) + 1}"
        create = self.helpers.use(RuntimeHelper.CREATE_ELEMENT_VNODE)
        self._output.hoisted.append(f"const {name} = /*#__PURE__*/{create}({', '.join(args)})")
        return name

    # ------------------------------------------------------------ components

    def _component_reference(self, node: ElementNode) -> str:
        tag = node.tag
        if tag == "component":
            is_directive = next(
                (p for p in node.props if isinstance(p, Directive) and p.name == "bind" and p.arg == "is"), None
            )
            is_attribute = node.attribute("is")
            resolve = self.helpers.use(RuntimeHelper.RESOLVE_DYNAMIC_COMPONENT)
            if is_directive is not None:
                node.props.remove(is_directive)
                return f"{resolve}({self.expressions.expression(is_directive.exp or '', is_directive.exp_start)})"
            if is_attribute is not None:
                node.props.remove(is_attribute)
                return f"{resolve}({js_string(is_attribute.value or '')})"

        if tag in BUILTIN_COMPONENTS:
            return self.helpers.use(BUILTIN_COMPONENTS[tag])

        for candidate in (tag, camelize(tag), capitalize(camelize(tag))):
            category = self.table.category_of(candidate)
            if category in _COMPONENT_CATEGORIES:
                return self.resolver.render(candidate, category)

        name = "_component_" + re.sub(r"[^\w$]", "_", tag)
        if name not in self._assets:
            resolve = self.helpers.use(RuntimeHelper.RESOLVE_COMPONENT)
            self._assets[name] = f"const {name} = {resolve}({js_string(tag)})"
        return name

    def _gen_component(self, node: ElementNode, branch_key: Optional[int] = None) -> str:
        component = self._component_reference(node)
        runtime_directives: List[str] = []
        props = self._build_props(node, True, runtime_directives, branch_key)

        if node.tag == "Teleport":
            slots = f"[{', '.join(self._gen_children(node.children))}]" if node.children else None
        else:
            slots = self._gen_slots(node, props)

        flag = props.flag
        if not flag and (props.has_ref or runtime_directives):
            flag = NEED_PATCH

        args = [component, self._props_code(props, True) or "null", slots or "null"]
        if flag:
            args.append(format_patch_flag(flag))
            if flag & PROPS and not flag & FULL_PROPS and props.dynamic:
                args.append(json.dumps(props.dynamic))
        vnode = f"{self.helpers.use(RuntimeHelper.CREATE_VNODE)}({_trim_args(args)})"
        return self._with_directives(vnode, runtime_directives)

    def _gen_slots(self, node: ElementNode, props: _Props) -> Optional[str]:
        own_slot = node.take_directive("slot")
        static_slots: List[str] = []
        dynamic_slots: List[str] = []
        implicit: List[TemplateChild] = []

        if own_slot is not None and not own_slot.is_static_arg:
            dynamic_slots.append(self._slot_descriptor(own_slot, node.children))
        elif own_slot is not None:
            static_slots.append(self._slot_entry(own_slot, node.children))
        else:
            for child in node.children:
                slot = None
                if isinstance(child, ElementNode) and child.tag == "template":
                    slot = child.take_directive("slot")
                if slot is not None:
                    condition = child.take_directive("if") or child.take_directive("else-if")
                    loop = child.take_directive("for")
                    if condition is not None or loop is not None or not slot.is_static_arg:
                        dynamic_slots.append(self._dynamic_slot(slot, child, condition, loop))
                    else:
                        static_slots.append(self._slot_entry(slot, child.children))
                else:
                    implicit.append(child)

            if any(not (isinstance(c, TextNode) and c.is_whitespace) and not isinstance(c, CommentNode) for c in implicit):
                static_slots.insert(0, f"default: {self._slot_function(None, implicit)}")

        if not static_slots and not dynamic_slots:
            return None

        if dynamic_slots:
            props.flag |= DYNAMIC_SLOTS
            static_slots.append("_: 2 /* DYNAMIC */")
            create_slots = self.helpers.use(RuntimeHelper.CREATE_SLOTS)
            return f"{create_slots}({{ {', '.join(static_slots)} }}, [{', '.join(dynamic_slots)}])"

        static_slots.append("_: 1 /* STABLE */")
        return "{ " + ", ".join(static_slots) + " }"

    def _slot_function(self, slot: Optional[Directive], children: List[TemplateChild]) -> str:
        params = ""
        names: List[str] = []
        if slot is not None and slot.has_exp:
            params, names = self.expressions.parameters(slot.exp or "", slot.exp_start)
        with self.resolver.scope.push(names):
            generated = self._gen_children(children)
        with_ctx = self.helpers.use(RuntimeHelper.WITH_CTX)
        return f"{with_ctx}(({params}) => [{', '.join(generated)}])"

    def _slot_entry(self, slot: Directive, children: List[TemplateChild]) -> str:
        name = slot.arg or "default"
        return f"{js_key(name)}: {self._slot_function(slot, children)}"

    def _dynamic_slot(
        self,
        slot: Directive,
        template: ElementNode,
        condition: Optional[Directive],
        loop: Optional[Directive],
    ) -> str:
        if loop is not None:
            match = _FOR_ALIAS.match((loop.exp or "").strip())
            if match is None:
                self._error(loop.start, loop.end, "v-for has invalid expression.")
                return "undefined"
            source = self.expressions.expression(match.group(2), loop.exp_start + (loop.exp or "").find(match.group(2)))
            alias_text = match.group(1).strip().strip("()")
            alias_start = loop.exp_start + (loop.exp or "").find(alias_text)
            params: List[str] = []
            names: List[str] = []
            for piece, offset in _split_top_level(alias_text):
                text, bound = self.expressions.parameters(piece, alias_start + offset)
                params.append(text)
                names.extend(bound)
            with self.resolver.scope.push(names):
                entry = self._slot_descriptor(slot, template.children)
            render_list = self.helpers.use(RuntimeHelper.RENDER_LIST)
            return f"{render_list}({source}, ({', '.join(params)}) => ({entry}))"

        entry = self._slot_descriptor(slot, template.children)
        if condition is not None:
            test = self.expressions.expression(condition.exp or "", condition.exp_start)
            return f"({test}) ? {entry} : undefined"
        return entry

    def _slot_descriptor(self, slot: Directive, children: List[TemplateChild]) -> str:
        if slot.is_static_arg:
            name = js_string(slot.arg or "default")
        else:
            name = self.expressions.expression(slot.arg or "", slot.start)
        return f"{{ name: {name}, fn: {self._slot_function(slot, children)} }}"

    def _gen_slot_outlet(self, node: ElementNode) -> str:
        name = '"default"'
        props = _Props()
        for prop in node.props:
            if isinstance(prop, Attribute):
                if prop.name == "name":
                    name = js_string(prop.value or "default")
                else:
                    props.add(js_key(camelize(prop.name)), js_string(prop.value or ""))
            elif prop.name == "bind" and prop.arg == "name":
                name = self.expressions.expression(prop.exp or "", prop.exp_start)
            elif prop.name == "bind" and prop.arg is not None:
                props.add(js_key(camelize(prop.arg)), self.expressions.expression(prop.exp or "", prop.exp_start))
            elif prop.name == "bind":
                props.spread(self.expressions.expression(prop.exp or "", prop.exp_start))
            elif prop.name == "on" and prop.arg is not None:
                props.add(js_key(_handler_key(prop.arg, False)), self.expressions.handler(prop.exp or "", prop.exp_start))

        render_slot = self.helpers.use(RuntimeHelper.RENDER_SLOT)
        args = ["_ctx.$slots", name]
        props_code = self._props_code(props, True)
        meaningful = [c for c in node.children if not (isinstance(c, TextNode) and c.is_whitespace)]
        if meaningful:
            args.append(props_code or "{}")
            args.append(f"() => [{', '.join(self._gen_children(node.children))}]")
        elif props_code:
            args.append(props_code)
        return f"{render_slot}({', '.join(args)})"

    # ------------------------------------------------------------------ props

    def _build_props(
        self,
        node: ElementNode,
        is_component: bool,
        runtime_directives: List[str],
        branch_key: Optional[int],
    ) -> _Props:
        props = _Props()
        if branch_key is not None and not _has_key(node):
            props.add("key", str(branch_key))

        for prop in list(node.props):
            if isinstance(prop, Attribute):
                self._static_attribute(prop, props, is_component)
            else:
                self._directive(node, prop, props, is_component, runtime_directives)

        if props.flag & FULL_PROPS:
            props.flag = FULL_PROPS | (props.flag & (TEXT | DYNAMIC_SLOTS))
        elif props.dynamic:
            props.flag |= PROPS
        return props

    def _static_attribute(self, attribute: Attribute, props: _Props, is_component: bool) -> None:
        name, value = attribute.name, attribute.value
        if name == "ref":
            props.has_ref = True
            category = self.table.category_of(value or "") if self.inline else None
            if category in _REF_CATEGORIES:
                props.add("ref_key", js_string(value or ""))
                props.add("ref", value or "")
            else:
                props.add("ref", js_string(value or ""))
            return
        if name == "class":
            props.static_class = " ".join((value or "").split())
            props.add("class", "")  # placeholder, filled in by _props_code
            return
        if name == "style":
            props.static_style = value or ""
            props.add("style", "")
            return
        props.add(js_key(name), js_string(value or ""))

    def _directive(
        self,
        node: ElementNode,
        directive: Directive,
        props: _Props,
        is_component: bool,
        runtime_directives: List[str],
    ) -> None:
        name = directive.name

        if name == "bind":
            self._bind(directive, props, is_component)
        elif name == "on":
            self._on(directive, props, is_component)
        elif name == "model":
            self._model(node, directive, props, is_component, runtime_directives)
        elif name == "show":
            value = self._required_expression(directive)
            runtime_directives.append(f"[{self.helpers.use(RuntimeHelper.V_SHOW)}, {value}]")
        elif name == "html":
            props.add("innerHTML", self._required_expression(directive))
            props.mark_dynamic("innerHTML")
        elif name == "text":
            value = self._required_expression(directive)
            props.add("textContent", f"{self.helpers.use(RuntimeHelper.TO_DISPLAY_STRING)}({value})")
            props.mark_dynamic("textContent")
        elif name in _HANDLED_DIRECTIVES:
            return
        else:
            runtime_directives.append(self._custom_directive(directive))

    def _required_expression(self, directive: Directive) -> str:
        if not directive.has_exp:
            self._error(directive.start, directive.end, f"v-{directive.name} is missing expression.")
            return "undefined"
        return self.expressions.expression(directive.exp or "", directive.exp_start)

    def _bind(self, directive: Directive, props: _Props, is_component: bool) -> None:
        if directive.arg is None:
            if directive.has_exp:
                props.spread(self.expressions.expression(directive.exp or "", directive.exp_start))
                props.flag |= FULL_PROPS
            else:
                self._error(directive.start, directive.end, "v-bind is missing expression.")
            return

        if directive.has_exp:
            value = self.expressions.expression(directive.exp or "", directive.exp_start)
        elif directive.is_static_arg:
            value = self.expressions.expression(camelize(directive.arg), directive.start)
        else:
            self._error(directive.start, directive.end, "v-bind is missing expression.")
            return

        if not directive.is_static_arg:
            key_exp = self.expressions.expression(directive.arg, directive.start)
            props.add(f"[{key_exp} || \"\"]", value)
            props.flag |= FULL_PROPS
            return

        name = directive.arg
        if "camel" in directive.modifiers:
            name = camelize(name)
        if "prop" in directive.modifiers:
            name = "." + name
        elif "attr" in directive.modifiers:
            name = "^" + name

        if name in ("class", "style"):
            if name == "class":
                props.dynamic_class = value
            else:
                props.dynamic_style = value
            props.add(name, "")
            if is_component:
                props.mark_dynamic(name)
            else:
                props.flag |= CLASS if name == "class" else STYLE
            return
        if name == "ref":
            props.has_ref = True
        props.add(js_key(name), value)
        if name not in {"key", "ref"}:
            props.mark_dynamic(name)

    def _on(self, directive: Directive, props: _Props, is_component: bool) -> None:
        if directive.arg is None:
            if directive.has_exp:
                to_handlers = self.helpers.use(RuntimeHelper.TO_HANDLERS)
                value = self.expressions.expression(directive.exp or "", directive.exp_start)
                props.spread(f"{to_handlers}({value})")
                props.flag |= FULL_PROPS
            else:
                self._error(directive.start, directive.end, "v-on is missing expression.")
            return

        if directive.has_exp:
            handler = self.expressions.handler(directive.exp or "", directive.exp_start)
        else:
            handler = "() => {}"

        event = directive.arg
        options: List[str] = []
        non_keys: List[str] = []
        keys: List[str] = []
        lowered_key = "on" + event.lower()
        for modifier in directive.modifiers:
            if modifier in _EVENT_OPTIONS:
                options.append(modifier)
            elif modifier in _MAYBE_KEY_MODIFIERS:
                if lowered_key in _KEYBOARD_EVENTS:
                    keys.append(modifier)
                else:
                    non_keys.append(modifier)
            elif modifier in _NON_KEY_MODIFIERS:
                non_keys.append(modifier)
            else:
                keys.append(modifier)

        if directive.is_static_arg and event.lower() == "click":
            if "right" in non_keys:
                event = "contextmenu"
            elif "middle" in non_keys:
                event = "mouseup"

        if non_keys:
            with_modifiers = self.helpers.use(RuntimeHelper.WITH_MODIFIERS)
            handler = f"{with_modifiers}({handler}, {json.dumps(non_keys)})"
        if keys and (not directive.is_static_arg or lowered_key in _KEYBOARD_EVENTS):
            with_keys = self.helpers.use(RuntimeHelper.WITH_KEYS)
            handler = f"{with_keys}({handler}, {json.dumps(keys)})"

        suffix = "".join(capitalize(option) for option in options)
        if not directive.is_static_arg:
            to_handler_key = self.helpers.use(RuntimeHelper.TO_HANDLER_KEY)
            event_exp = self.expressions.expression(event, directive.start)
            key = f"[{to_handler_key}({event_exp}){' + ' + js_string(suffix) if suffix else ''}]"
            props.add(key, handler, is_handler=True)
            props.flag |= FULL_PROPS
            return

        handler_key = _handler_key(event, is_component) + suffix
        props.add(js_key(handler_key), handler, is_handler=True)
        props.mark_dynamic(handler_key)

    def _model(
        self,
        node: ElementNode,
        directive: Directive,
        props: _Props,
        is_component: bool,
        runtime_directives: List[str],
    ) -> None:
        if not directive.has_exp:
            self._error(directive.start, directive.end, "v-model is missing expression.")
            return

        exp, start = directive.exp or "", directive.exp_start
        value = self.expressions.expression(exp, start)
        handler = f"$event => ({self.expressions.assignment(exp, start)})"

        if is_component:
            prop_name = directive.arg or "modelValue"
            event = f"onUpdate:{prop_name}"
            props.add(js_key(prop_name), value)
            props.add(js_key(event), handler, is_handler=True)
            props.mark_dynamic(prop_name)
            props.mark_dynamic(event)
            if directive.modifiers:
                modifiers_key = "modelModifiers" if prop_name == "modelValue" else f"{prop_name}Modifiers"
                modifiers = ", ".join(f"{js_key(m)}: true" for m in directive.modifiers)
                props.add(js_key(modifiers_key), f"{{ {modifiers} }}")
            return

        props.add(js_key("onUpdate:modelValue"), handler, is_handler=True)
        props.mark_dynamic("onUpdate:modelValue")
        helper = self._model_directive(node)
        entry = [self.helpers.use(helper), value]
        if directive.modifiers:
            modifiers = ", ".join(f"{js_key(m)}: true" for m in directive.modifiers)
            entry.extend(["void 0", f"{{ {modifiers} }}"])
        runtime_directives.append(f"[{', '.join(entry)}]")

    def _model_directive(self, node: ElementNode) -> RuntimeHelper:
        if node.tag == "select":
            return RuntimeHelper.V_MODEL_SELECT
        if node.tag == "textarea":
            return RuntimeHelper.V_MODEL_TEXT
        if any(isinstance(p, Directive) and p.name == "bind" and p.arg == "type" for p in node.props):
            return RuntimeHelper.V_MODEL_DYNAMIC
        type_attribute = node.attribute("type")
        kind = type_attribute.value if type_attribute is not None else None
        if kind == "checkbox":
            return RuntimeHelper.V_MODEL_CHECKBOX
        if kind == "radio":
            return RuntimeHelper.V_MODEL_RADIO
        return RuntimeHelper.V_MODEL_TEXT

    def _custom_directive(self, directive: Directive) -> str:
        reference: Optional[str] = None
        setup_name = "v" + capitalize(camelize(directive.name))
        if self.inline:
            category = self.table.category_of(setup_name)
            if category is not None:
                reference = self.resolver.render(setup_name, category)
        if reference is None:
            reference = "_directive_" + re.sub(r"[^\w$]", "_", directive.name)
            if reference not in self._assets:
                resolve = self.helpers.use(RuntimeHelper.RESOLVE_DIRECTIVE)
                self._assets[reference] = f"const {reference} = {resolve}({js_string(directive.name)})"

        entry = [reference]
        if directive.has_exp:
            entry.append(self.expressions.expression(directive.exp or "", directive.exp_start))
        if directive.arg is not None:
            if len(entry) == 1:
                entry.append("void 0")
            if directive.is_static_arg:
                entry.append(js_string(directive.arg))
            else:
                entry.append(self.expressions.expression(directive.arg, directive.start))
        if directive.modifiers:
            while len(entry) < 3:
                entry.append("void 0")
            entry.append("{ " + ", ".join(f"{js_key(m)}: true" for m in directive.modifiers) + " }")
        return f"[{', '.join(entry)}]"

    def _props_code(self, props: _Props, is_component: bool) -> Optional[str]:
        segments: List[str] = []
        for segment in props.segments:
            if isinstance(segment, str):
                segments.append(segment)
                continue
            if not segment:
                continue
            pairs = []
            for key, value in segment:
                if key == "class" and not value:
                    value = self._class_value(props)
                elif key == "style" and not value:
                    value = self._style_value(props)
                pairs.append(f"{key}: {value}")
            segments.append("{ " + ", ".join(pairs) + " }")

        if not segments:
            return None
        if len(segments) == 1 and not any(isinstance(s, str) for s in props.segments):
            return segments[0]
        merge = self.helpers.use(RuntimeHelper.MERGE_PROPS)
        return f"{merge}({', '.join(segments)})"

    def _class_value(self, props: _Props) -> str:
        if props.dynamic_class is None:
            return js_string(props.static_class or "")
        normalize = self.helpers.use(RuntimeHelper.NORMALIZE_CLASS)
        if props.static_class:
            return f"{normalize}([{js_string(props.static_class)}, {props.dynamic_class}])"
        return f"{normalize}({props.dynamic_class})"

    def _style_value(self, props: _Props) -> str:
        static = _parse_style(props.static_style) if props.static_style is not None else None
        if props.dynamic_style is None:
            return static or "{}"
        normalize = self.helpers.use(RuntimeHelper.NORMALIZE_STYLE)
        if static:
            return f"{normalize}([{static}, {props.dynamic_style}])"
        return f"{normalize}({props.dynamic_style})"

    def _error(self, start: int, end: int, message: str) -> None:
        self.diagnostics.report(
            DiagnosticKind.TEMPLATE_PARSE_ERROR, self.offsets(start), self.offsets(end), message
        )


def _is_else_branch(node: TemplateChild) -> bool:
    return isinstance(node, ElementNode) and (
        node.directive("else-if") is not None or node.directive("else") is not None
    )


def _has_key(node: ElementNode) -> bool:
    if node.attribute("key") is not None:
        return True
    return any(isinstance(p, Directive) and p.name == "bind" and p.arg == "key" for p in node.props)


def _handler_key(event: str, is_component: bool) -> str:
    if event.startswith("vue:"):
        event = "vnode-" + event[4:]
    if is_component or event.startswith("vnode") or not re.search(r"[A-Z]", event):
        return "on" + capitalize(camelize(event))
    return f"on:{event}"


def _parse_style(text: str) -> str:
    style: Dict[str, str] = {}
    for declaration in re.split(r";(?![^(]*\))", text):
        if ":" not in declaration:
            continue
        name, value = declaration.split(":", 1)
        if name.strip():
            style[name.strip()] = value.strip()
    return json.dumps(style, ensure_ascii=False, separators=(",", ":"))


def _split_top_level(text: str) -> List[Tuple[str, int]]:
    """Split on commas outside brackets; return pieces with their offsets."""
    pieces: List[Tuple[str, int]] = []
    depth = 0
    start = 0
    for index, char in enumerate(text):
        if char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
        elif char == "," and depth == 0:
            pieces.append((text[start:index], start))
            start = index + 1
    pieces.append((text[start:], start))
    return pieces


def _trim_args(args: List[str]) -> str:
    while args and args[-1] == "null":
        args.pop()
    return ", ".join(args)
