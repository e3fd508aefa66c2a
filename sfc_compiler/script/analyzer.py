"""
Script Analyzer.

Parses `<script>` and `<script setup>` and produces one DeclarationRecord
per top-level identifier, together with the compiler macro calls the setup
transform rewrites. Binding categories are assigned later by the classifier.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from tree_sitter import Node

from ..core.diagnostics import DiagnosticKind, DiagnosticsCollector
from ..core.models import PropsDestructureMode, ScriptBlock, SourceSpan
from ..parsing import js_parser
from ..parsing.block_splitter import MergedScript
from ..parsing.js_parser import ParsedSource
from .bindings import (
    DeclarationKind,
    DeclarationOrigin,
    DeclarationRecord,
    ImportKind,
    InitializerKind,
)

logger = logging.getLogger(__name__)

REF_CALLS = frozenset({"ref", "computed", "shallowRef", "customRef", "toRef", "useTemplateRef"})
REACTIVE_CALLS = frozenset({"reactive", "shallowReactive"})
COMPONENT_CALLS = frozenset({"defineComponent", "defineAsyncComponent"})

DEFINE_PROPS = "defineProps"
DEFINE_EMITS = "defineEmits"
DEFINE_EXPOSE = "defineExpose"
DEFINE_OPTIONS = "defineOptions"
DEFINE_MODEL = "defineModel"
DEFINE_SLOTS = "defineSlots"
WITH_DEFAULTS = "withDefaults"

MACROS = frozenset(
    {DEFINE_PROPS, DEFINE_EMITS, DEFINE_EXPOSE, DEFINE_OPTIONS, DEFINE_MODEL, DEFINE_SLOTS, WITH_DEFAULTS}
)

_LITERAL_NODES = frozenset({"string", "number", "true", "false", "null", "undefined", "regex"})
_NEVER_REF_NODES = frozenset(
    {
        "object",
        "array",
        "arrow_function",
        "function_expression",
        "function",
        "generator_function",
        "class",
        "binary_expression",
        "unary_expression",
        "update_expression",
        "template_string",
    }
)
_TS_PRIMITIVES = {
    "string": "String",
    "number": "Number",
    "boolean": "Boolean",
    "object": "Object",
    "symbol": "Symbol",
    "bigint": "BigInt",
}
_TS_CONSTRUCTORS = frozenset(
    {"String", "Number", "Boolean", "Function", "Object", "Array", "Date", "Symbol", "Map", "Set", "RegExp", "Error", "Promise"}
)


@dataclass
class TypeProp:
    """A prop declared through a TypeScript type argument."""

    key: str
    required: bool
    types: List[str] = field(default_factory=list)

    def runtime_options(self) -> str:
        if not self.types:
            type_text = "null"
        elif len(self.types) == 1:
            type_text = self.types[0]
        else:
            type_text = f"[{', '.join(self.types)}]"
        return f"{{ type: {type_text}, required: {'true' if self.required else 'false'} }}"


@dataclass
class PropsDeclaration:
    """Everything known about the component's `defineProps()` call."""

    runtime: Optional[str] = None  # runtime declaration text, array or object
    type_props: List[TypeProp] = field(default_factory=list)
    keys: List[str] = field(default_factory=list)
    defaults: Optional[str] = None  # second argument of withDefaults()
    variable: Optional[str] = None
    destructured: Dict[str, str] = field(default_factory=dict)  # local -> key
    destructure_defaults: Dict[str, str] = field(default_factory=dict)  # key -> expression
    rest: Optional[str] = None


@dataclass
class ModelDeclaration:
    name: str
    options: Optional[str] = None
    local: Optional[str] = None


@dataclass
class MacroCall:
    """A compiler macro call found at the top level of `<script setup>`."""

    name: str
    call: Node
    statement: Node
    declarator: Optional[Node] = None
    is_duplicate: bool = False

    @property
    def is_destructure(self) -> bool:
        if self.declarator is None:
            return False
        target = self.declarator.child_by_field_name("name")
        return target is not None and target.type in {"object_pattern", "array_pattern"}


@dataclass
class OptionsScriptInfo:
    block: ScriptBlock
    parsed: ParsedSource
    default_export: Optional[Node] = None  # the `export default` statement
    default_value: Optional[Node] = None


@dataclass
class SetupScriptInfo:
    block: ScriptBlock
    parsed: ParsedSource
    imports: List[Node] = field(default_factory=list)
    macros: List[MacroCall] = field(default_factory=list)
    props: Optional[PropsDeclaration] = None
    emits: Optional[str] = None
    emit_variable: Optional[str] = None
    has_expose: bool = False
    options: Optional[str] = None
    models: List[ModelDeclaration] = field(default_factory=list)
    has_await: bool = False


@dataclass
class ScriptAnalysis:
    """Output of the Script Analyzer for one component."""

    records: List[DeclarationRecord] = field(default_factory=list)
    options: Optional[OptionsScriptInfo] = None
    setup: Optional[SetupScriptInfo] = None
    setup_locals: List[str] = field(default_factory=list)
    lang: Optional[str] = None

    @property
    def has_setup(self) -> bool:
        return self.setup is not None

    @property
    def is_typescript(self) -> bool:
        return self.lang in {"ts", "tsx"}


class ScriptAnalyzer:
    """Builds declaration records for the merged script blocks."""

    def __init__(self, diagnostics: DiagnosticsCollector, destructure_mode: PropsDestructureMode):
        self.diagnostics = diagnostics
        self.destructure_mode = destructure_mode
        self._vue_imports: Dict[str, str] = {}
        self._foreign_imports: Set[str] = set()

    def analyze(self, merged: MergedScript) -> ScriptAnalysis:
        analysis = ScriptAnalysis(lang=merged.lang)
        if merged.is_empty:
            return analysis

        parsed_blocks: List[Tuple[ScriptBlock, ParsedSource]] = []
        for block in merged.blocks():
            if block.src:
                logger.debug("Script block with src=%s is not inlined", block.src)
            parsed = js_parser.parse(block.content, merged.lang)
            self._report_syntax_errors(block, parsed)
            self._collect_vue_imports(parsed)
            parsed_blocks.append((block, parsed))

        for block, parsed in parsed_blocks:
            if block.is_setup:
                analysis.setup = self._analyze_setup(block, parsed, analysis)
            else:
                analysis.options = self._analyze_options(block, parsed, analysis, merged.has_setup)

        # Options records first so that <script setup> declarations win.
        analysis.records.sort(key=_record_order)
        logger.debug("Analyzed %d script declarations", len(analysis.records))
        return analysis

    # ------------------------------------------------------------------ helpers

    def _report_syntax_errors(self, block: ScriptBlock, parsed: ParsedSource) -> None:
        for start, end, message in js_parser.iter_syntax_errors(parsed.root):
            self.diagnostics.report(
                DiagnosticKind.SCRIPT_PARSE_ERROR,
                block.span.lo + start,
                block.span.lo + end,
                message,
            )

    def _span(self, block: ScriptBlock, node: Node) -> SourceSpan:
        return SourceSpan(block.span.lo + node.start_byte, block.span.lo + node.end_byte)

    def _collect_vue_imports(self, parsed: ParsedSource) -> None:
        for statement in parsed.root.named_children:
            if statement.type != "import_statement" or _is_type_only(statement):
                continue
            source = _import_source(statement)
            for local, imported, _is_type in _import_specifiers(statement):
                if source == "vue":
                    self._vue_imports[local] = imported
                else:
                    self._foreign_imports.add(local)

    def _vue_api_name(self, callee: str) -> Optional[str]:
        """The Vue API a callee refers to, or None when it comes from elsewhere."""
        if callee in self._vue_imports:
            return self._vue_imports[callee]
        if callee in self._foreign_imports:
            return None
        return callee

    def _initializer_kind(self, value: Optional[Node]) -> InitializerKind:
        if value is None:
            return InitializerKind.NONE
        node = js_parser.strip_type_wrappers(value)
        kind = node.type

        if kind == "sequence_expression" and node.named_child_count:
            return self._initializer_kind(node.named_children[-1])

        if _is_literal(node):
            return InitializerKind.LITERAL

        if kind == "call_expression":
            callee = js_parser.call_callee_name(node)
            api = self._vue_api_name(callee) if callee else None
            if callee == DEFINE_MODEL or api in REF_CALLS:
                return InitializerKind.REF_CALL
            if api in REACTIVE_CALLS:
                return InitializerKind.REACTIVE_CALL
            if api in COMPONENT_CALLS:
                return InitializerKind.COMPONENT_CALL
            return InitializerKind.MAYBE_REF

        if kind in _NEVER_REF_NODES:
            return InitializerKind.NEVER_REF

        return InitializerKind.MAYBE_REF

    # ------------------------------------------------------------ top level

    def _declaration_records(
        self,
        block: ScriptBlock,
        statement: Node,
        parsed: ParsedSource,
    ) -> List[DeclarationRecord]:
        """Records for an ordinary top-level statement (no macro handling)."""
        records: List[DeclarationRecord] = []
        kind = statement.type

        if kind == "import_statement":
            if _is_type_only(statement):
                return records
            source = _import_source(statement) or ""
            for local, imported, is_type in _import_specifiers(statement):
                if is_type:
                    continue
                if source == "vue":
                    import_kind = ImportKind.VUE
                elif source.endswith(".vue"):
                    import_kind = ImportKind.COMPONENT
                else:
                    import_kind = ImportKind.OTHER
                records.append(
                    DeclarationRecord(
                        name=local,
                        origin=DeclarationOrigin.IMPORT,
                        kind=DeclarationKind.IMPORT,
                        span=self._span(block, statement),
                        import_kind=import_kind,
                        import_source=source,
                    )
                )
            return records

        if kind in {"lexical_declaration", "variable_declaration"}:
            declaration_kind = _declaration_kind(statement)
            for declarator in statement.named_children:
                if declarator.type != "variable_declarator":
                    continue
                records.extend(self._declarator_records(block, declarator, declaration_kind))
            return records

        if kind in {"function_declaration", "generator_function_declaration"}:
            return self._named_record(block, statement, DeclarationKind.FUNCTION)

        if kind in {"class_declaration", "abstract_class_declaration"}:
            return self._named_record(block, statement, DeclarationKind.CLASS)

        if kind == "enum_declaration":
            return self._named_record(block, statement, DeclarationKind.ENUM)

        if kind == "export_statement":
            declaration = statement.child_by_field_name("declaration")
            if declaration is not None:
                return self._declaration_records(block, declaration, parsed)

        return records

    def _named_record(self, block: ScriptBlock, node: Node, kind: DeclarationKind) -> List[DeclarationRecord]:
        name = node.child_by_field_name("name")
        if name is None:
            return []
        return [
            DeclarationRecord(
                name=js_parser.node_text(name),
                origin=DeclarationOrigin.SETUP_DECLARATION,
                kind=kind,
                span=self._span(block, name),
            )
        ]

    def _declarator_records(
        self,
        block: ScriptBlock,
        declarator: Node,
        kind: DeclarationKind,
    ) -> List[DeclarationRecord]:
        target = declarator.child_by_field_name("name")
        value = declarator.child_by_field_name("value")
        if target is None:
            return []

        if target.type == "identifier":
            initializer = self._initializer_kind(value)
            return [
                DeclarationRecord(
                    name=js_parser.node_text(target),
                    origin=DeclarationOrigin.SETUP_DECLARATION,
                    kind=kind,
                    span=self._span(block, target),
                    initializer=initializer,
                )
            ]

        # Destructured: ref-ness of each element is unknown.
        return [
            DeclarationRecord(
                name=js_parser.node_text(identifier),
                origin=DeclarationOrigin.SETUP_DECLARATION,
                kind=kind,
                span=self._span(block, identifier),
                initializer=InitializerKind.MAYBE_REF,
                is_destructured=True,
            )
            for identifier in js_parser.pattern_identifiers(target)
        ]

    # -------------------------------------------------------------- options

    def _analyze_options(
        self,
        block: ScriptBlock,
        parsed: ParsedSource,
        analysis: ScriptAnalysis,
        has_setup: bool,
    ) -> OptionsScriptInfo:
        info = OptionsScriptInfo(block=block, parsed=parsed)

        for statement in parsed.root.named_children:
            if statement.type == "export_statement" and _is_default_export(statement):
                info.default_export = statement
                info.default_value = statement.child_by_field_name("value") or statement.child_by_field_name(
                    "declaration"
                )
                continue
            if has_setup:
                records = self._declaration_records(block, statement, parsed)
                analysis.records.extend(records)
                analysis.setup_locals.extend(record.name for record in records)

        component = _component_object(info.default_value)
        if component is not None:
            analysis.records.extend(self._options_records(block, component))
        return info

    def _options_records(self, block: ScriptBlock, component: Node) -> List[DeclarationRecord]:
        records: List[DeclarationRecord] = []

        def add(names: List[Tuple[str, Node]], origin: DeclarationOrigin) -> None:
            for name, node in names:
                records.append(
                    DeclarationRecord(
                        name=name,
                        origin=origin,
                        kind=DeclarationKind.OPTION,
                        span=self._span(block, node),
                    )
                )

        for member in component.named_children:
            key = js_parser.property_key(member)
            if key is None:
                continue
            value = member.child_by_field_name("value") if member.type == "pair" else member
            if value is None:
                continue
            value = js_parser.strip_type_wrappers(value)

            if key == "props":
                add(_declared_names(value), DeclarationOrigin.OPTIONS_PROPS)
            elif key == "data":
                add(_returned_keys(value), DeclarationOrigin.OPTIONS_DATA)
            elif key in {"computed", "methods", "inject"}:
                add(_declared_names(value), DeclarationOrigin.OPTIONS_OTHER)
            elif key == "setup":
                add(_returned_keys(value), DeclarationOrigin.OPTIONS_SETUP)

        return records

    # ---------------------------------------------------------------- setup

    def _analyze_setup(
        self,
        block: ScriptBlock,
        parsed: ParsedSource,
        analysis: ScriptAnalysis,
    ) -> SetupScriptInfo:
        info = SetupScriptInfo(block=block, parsed=parsed)
        prop_records: List[DeclarationRecord] = []
        records: List[DeclarationRecord] = []

        for statement in parsed.root.named_children:
            kind = statement.type

            if kind == "import_statement":
                info.imports.append(statement)
                records.extend(self._declaration_records(block, statement, parsed))
                continue

            if kind == "export_statement":
                declaration = statement.child_by_field_name("declaration")
                if declaration is None or declaration.type not in {
                    "interface_declaration",
                    "type_alias_declaration",
                }:
                    self.diagnostics.report(
                        DiagnosticKind.SCRIPT_PARSE_ERROR,
                        block.span.lo + statement.start_byte,
                        block.span.lo + statement.end_byte,
                        "<script setup> cannot contain ES module exports.",
                    )
                continue

            if kind == "expression_statement" and statement.named_child_count:
                call = js_parser.strip_type_wrappers(statement.named_children[0])
                name = js_parser.call_callee_name(call)
                if name in MACROS:
                    self._handle_macro(block, parsed, info, MacroCall(name, call, statement), prop_records)
                    continue

            if kind in {"lexical_declaration", "variable_declaration"}:
                declaration_kind = _declaration_kind(statement)
                for declarator in statement.named_children:
                    if declarator.type != "variable_declarator":
                        continue
                    value = declarator.child_by_field_name("value")
                    call = js_parser.strip_type_wrappers(value) if value is not None else None
                    name = js_parser.call_callee_name(call) if call is not None else None
                    if name in MACROS:
                        macro = MacroCall(name, call, statement, declarator)
                        records.extend(self._handle_macro(block, parsed, info, macro, prop_records))
                    else:
                        records.extend(self._declarator_records(block, declarator, declaration_kind))
                continue

            records.extend(self._declaration_records(block, statement, parsed))

        info.has_await = _has_top_level_await(parsed.root)

        analysis.records.extend(prop_records)
        analysis.records.extend(records)
        analysis.setup_locals.extend(
            record.name for record in records if record.origin is not DeclarationOrigin.SETUP_PROP_ALIAS
        )
        return info

    def _handle_macro(
        self,
        block: ScriptBlock,
        parsed: ParsedSource,
        info: SetupScriptInfo,
        macro: MacroCall,
        prop_records: List[DeclarationRecord],
    ) -> List[DeclarationRecord]:
        """Record a macro call; returns records for the variables it declares."""
        info.macros.append(macro)
        target = macro.declarator.child_by_field_name("name") if macro.declarator is not None else None

        if macro.name in {DEFINE_PROPS, WITH_DEFAULTS}:
            return self._handle_define_props(block, parsed, info, macro, target, prop_records)

        if macro.name == DEFINE_EMITS:
            info.emits = self._emits_declaration(parsed, macro.call)
            if target is not None and target.type == "identifier":
                info.emit_variable = js_parser.node_text(target)
                return [self._local(block, target, InitializerKind.NEVER_REF)]
            return []

        if macro.name == DEFINE_EXPOSE:
            info.has_expose = True
            return []

        if macro.name == DEFINE_OPTIONS:
            arguments = js_parser.call_arguments(macro.call)
            if arguments:
                info.options = parsed.text(arguments[0])
            return []

        if macro.name == DEFINE_MODEL:
            model = self._model_declaration(parsed, macro.call)
            prop_records.append(
                DeclarationRecord(
                    name=model.name,
                    origin=DeclarationOrigin.SETUP_PROP,
                    kind=DeclarationKind.PROP,
                    span=self._span(block, macro.call),
                )
            )
            if target is not None and target.type == "identifier":
                model.local = js_parser.node_text(target)
                info.models.append(model)
                return [self._local(block, target, InitializerKind.REF_CALL)]
            info.models.append(model)
            return []

        if macro.name == DEFINE_SLOTS:
            if target is not None and target.type == "identifier":
                return [self._local(block, target, InitializerKind.NEVER_REF)]
            return []

        return []

    def _local(self, block: ScriptBlock, target: Node, initializer: InitializerKind) -> DeclarationRecord:
        return DeclarationRecord(
            name=js_parser.node_text(target),
            origin=DeclarationOrigin.SETUP_DECLARATION,
            kind=DeclarationKind.CONST,
            span=self._span(block, target),
            initializer=initializer,
        )

    def _handle_define_props(
        self,
        block: ScriptBlock,
        parsed: ParsedSource,
        info: SetupScriptInfo,
        macro: MacroCall,
        target: Optional[Node],
        prop_records: List[DeclarationRecord],
    ) -> List[DeclarationRecord]:
        if info.props is not None:
            self.diagnostics.report(
                DiagnosticKind.SCRIPT_PARSE_ERROR,
                block.span.lo + macro.call.start_byte,
                block.span.lo + macro.call.end_byte,
                "Duplicate defineProps() call.",
            )
            macro.is_duplicate = True
            if target is None:
                return []
            return [
                DeclarationRecord(
                    name=js_parser.node_text(identifier),
                    origin=DeclarationOrigin.SETUP_DECLARATION,
                    kind=DeclarationKind.CONST,
                    span=self._span(block, identifier),
                    initializer=InitializerKind.NEVER_REF,
                )
                for identifier in js_parser.pattern_identifiers(target)
            ]

        call = macro.call
        props = PropsDeclaration()
        if macro.name == WITH_DEFAULTS:
            arguments = js_parser.call_arguments(call)
            inner = js_parser.strip_type_wrappers(arguments[0]) if arguments else None
            if inner is None or js_parser.call_callee_name(inner) != DEFINE_PROPS:
                self.diagnostics.report(
                    DiagnosticKind.SCRIPT_PARSE_ERROR,
                    block.span.lo + call.start_byte,
                    block.span.lo + call.end_byte,
                    "withDefaults() first argument must be a defineProps() call.",
                )
                return []
            if len(arguments) > 1:
                props.defaults = parsed.text(arguments[1])
            call = inner

        self._props_shape(parsed, call, props)
        info.props = props
        locals_: List[DeclarationRecord] = []

        if target is not None and target.type == "identifier":
            props.variable = js_parser.node_text(target)
            locals_.append(self._local(block, target, InitializerKind.REACTIVE_CALL))
        elif target is not None and target.type == "object_pattern":
            locals_.extend(self._props_destructure(block, parsed, target, props))
        elif target is not None:
            self.diagnostics.report(
                DiagnosticKind.SCRIPT_PARSE_ERROR,
                block.span.lo + target.start_byte,
                block.span.lo + target.end_byte,
                "defineProps() result can only be assigned to an identifier or object pattern.",
            )

        for key in props.keys:
            prop_records.append(
                DeclarationRecord(
                    name=key,
                    origin=DeclarationOrigin.SETUP_PROP,
                    kind=DeclarationKind.PROP,
                    span=self._span(block, call),
                )
            )
        return locals_

    def _props_destructure(
        self,
        block: ScriptBlock,
        parsed: ParsedSource,
        pattern: Node,
        props: PropsDeclaration,
    ) -> List[DeclarationRecord]:
        mode = self.destructure_mode
        if mode is PropsDestructureMode.ERROR:
            self.diagnostics.report(
                DiagnosticKind.PROPS_DESTRUCTURE_ERROR,
                block.span.lo + pattern.start_byte,
                block.span.lo + pattern.end_byte,
                "Props destructure is explicitly prohibited via config.",
            )

        if mode is not PropsDestructureMode.ON:
            return [
                DeclarationRecord(
                    name=js_parser.node_text(identifier),
                    origin=DeclarationOrigin.SETUP_DECLARATION,
                    kind=DeclarationKind.CONST,
                    span=self._span(block, identifier),
                    initializer=InitializerKind.NEVER_REF,
                    is_destructured=True,
                )
                for identifier in js_parser.pattern_identifiers(pattern)
            ]

        records: List[DeclarationRecord] = []
        for element in pattern.named_children:
            key: Optional[str] = None
            local: Optional[Node] = None
            default: Optional[Node] = None

            if element.type == "shorthand_property_identifier_pattern":
                key, local = js_parser.node_text(element), element
            elif element.type == "object_assignment_pattern":
                local = element.child_by_field_name("left")
                default = element.child_by_field_name("right")
                key = js_parser.node_text(local) if local is not None else None
            elif element.type == "pair_pattern":
                key = js_parser.property_key(element)
                value = element.child_by_field_name("value")
                if value is not None and value.type == "assignment_pattern":
                    local = value.child_by_field_name("left")
                    default = value.child_by_field_name("right")
                else:
                    local = value
            elif element.type == "rest_pattern" and element.named_child_count:
                rest = element.named_children[0]
                props.rest = js_parser.node_text(rest)
                records.append(self._local(block, rest, InitializerKind.REACTIVE_CALL))
                continue

            if key is None or local is None or local.type not in {"identifier", "shorthand_property_identifier_pattern"}:
                self.diagnostics.report(
                    DiagnosticKind.PROPS_DESTRUCTURE_ERROR,
                    block.span.lo + element.start_byte,
                    block.span.lo + element.end_byte,
                    "Nested patterns are not supported in props destructure.",
                )
                continue

            local_name = js_parser.node_text(local)
            props.destructured[local_name] = key
            if default is not None:
                props.destructure_defaults[key] = parsed.text(default)
            if key not in props.keys:
                props.keys.append(key)
            if local_name != key:
                records.append(
                    DeclarationRecord(
                        name=local_name,
                        origin=DeclarationOrigin.SETUP_PROP_ALIAS,
                        kind=DeclarationKind.PROP,
                        span=self._span(block, local),
                        prop_key=key,
                        is_destructured=True,
                    )
                )
        return records

    def _props_shape(self, parsed: ParsedSource, call: Node, props: PropsDeclaration) -> None:
        arguments = js_parser.call_arguments(call)
        if arguments:
            runtime = js_parser.strip_type_wrappers(arguments[0])
            props.runtime = parsed.text(arguments[0])
            props.keys.extend(name for name, _node in _declared_names(runtime))
            return

        type_node = _type_argument(call)
        if type_node is None:
            return
        for member in self._type_members(parsed, type_node):
            if member.type not in {"property_signature", "method_signature"}:
                continue
            key = js_parser.property_key(member)
            if key is None:
                continue
            optional = any(child.type == "?" for child in member.children)
            if member.type == "method_signature":
                types = ["Function"]
            else:
                types = _runtime_types(_annotation(member))
            props.type_props.append(TypeProp(key=key, required=not optional, types=types))
            props.keys.append(key)

    def _type_members(self, parsed: ParsedSource, type_node: Node) -> List[Node]:
        """Members of a type literal, or of a local interface / type alias it names."""
        if type_node.type in {"object_type", "interface_body"}:
            return list(type_node.named_children)
        if type_node.type == "type_identifier":
            wanted = js_parser.node_text(type_node)
            for statement in parsed.root.named_children:
                declaration = statement
                if statement.type == "export_statement":
                    declaration = statement.child_by_field_name("declaration") or statement
                if declaration.type not in {"interface_declaration", "type_alias_declaration"}:
                    continue
                name = declaration.child_by_field_name("name")
                if name is None or js_parser.node_text(name) != wanted:
                    continue
                body = declaration.child_by_field_name("body") or declaration.child_by_field_name("value")
                if body is not None:
                    return self._type_members(parsed, body)
        return []

    def _emits_declaration(self, parsed: ParsedSource, call: Node) -> Optional[str]:
        arguments = js_parser.call_arguments(call)
        if arguments:
            return parsed.text(arguments[0])

        type_node = _type_argument(call)
        if type_node is None:
            return None
        events: List[str] = []
        for member in self._type_members(parsed, type_node):
            if member.type == "property_signature":
                key = js_parser.property_key(member)
                if key is not None:
                    events.append(key)
            elif member.type == "call_signature":
                events.extend(_call_signature_events(member))
        return "[" + ", ".join(f'"{event}"' for event in events) + "]"

    def _model_declaration(self, parsed: ParsedSource, call: Node) -> ModelDeclaration:
        arguments = js_parser.call_arguments(call)
        name = "modelValue"
        options: Optional[str] = None
        if arguments:
            first = js_parser.strip_type_wrappers(arguments[0])
            literal = js_parser.string_value(first)
            if literal is not None:
                name = literal
                if len(arguments) > 1:
                    options = parsed.text(arguments[1])
            else:
                options = parsed.text(arguments[0])
        return ModelDeclaration(name=name, options=options)


def _record_order(record: DeclarationRecord) -> int:
    return 0 if record.origin in _OPTIONS_ORIGINS else 1


_OPTIONS_ORIGINS = frozenset(
    {
        DeclarationOrigin.OPTIONS_DATA,
        DeclarationOrigin.OPTIONS_PROPS,
        DeclarationOrigin.OPTIONS_OTHER,
        DeclarationOrigin.OPTIONS_SETUP,
    }
)


def _is_literal(node: Node) -> bool:
    if node.type in _LITERAL_NODES:
        return True
    if node.type == "template_string":
        return not any(child.type == "template_substitution" for child in node.named_children)
    if node.type == "unary_expression" and node.named_child_count == 1:
        return node.named_children[0].type == "number"
    return False


def _declaration_kind(statement: Node) -> DeclarationKind:
    if statement.type == "variable_declaration":
        return DeclarationKind.VAR
    for child in statement.children:
        if child.type == "let":
            return DeclarationKind.LET
        if child.type == "const":
            return DeclarationKind.CONST
    return DeclarationKind.CONST


def _is_type_only(statement: Node) -> bool:
    return any(child.type in {"type", "typeof"} for child in statement.children)


def _import_source(statement: Node) -> Optional[str]:
    source = statement.child_by_field_name("source")
    return js_parser.string_value(source) if source is not None else None


def _import_specifiers(statement: Node) -> List[Tuple[str, str, bool]]:
    """`(local, imported, is_type)` for each binding an import statement creates."""
    specifiers: List[Tuple[str, str, bool]] = []
    for clause in statement.named_children:
        if clause.type != "import_clause":
            continue
        for part in clause.named_children:
            if part.type == "identifier":
                specifiers.append((js_parser.node_text(part), "default", False))
            elif part.type == "namespace_import":
                for identifier in part.named_children:
                    if identifier.type == "identifier":
                        specifiers.append((js_parser.node_text(identifier), "*", False))
            elif part.type == "named_imports":
                for specifier in part.named_children:
                    if specifier.type != "import_specifier":
                        continue
                    name = specifier.child_by_field_name("name")
                    alias = specifier.child_by_field_name("alias")
                    if name is None:
                        continue
                    imported = js_parser.string_value(name) or js_parser.node_text(name)
                    local = js_parser.node_text(alias) if alias is not None else imported
                    is_type = any(child.type in {"type", "typeof"} for child in specifier.children)
                    specifiers.append((local, imported, is_type))
    return specifiers


def _is_default_export(statement: Node) -> bool:
    return any(child.type == "default" for child in statement.children)


def _component_object(value: Optional[Node]) -> Optional[Node]:
    """The options object of `export default {...}` or `defineComponent({...})`."""
    if value is None:
        return None
    node = js_parser.strip_type_wrappers(value)
    if node.type == "call_expression" and js_parser.call_callee_name(node) == "defineComponent":
        arguments = js_parser.call_arguments(node)
        node = js_parser.strip_type_wrappers(arguments[0]) if arguments else node
    return node if node.type == "object" else None


def _object_keys(node: Node) -> List[Tuple[str, Node]]:
    keys: List[Tuple[str, Node]] = []
    for member in node.named_children:
        if member.type not in {"pair", "method_definition", "shorthand_property_identifier"}:
            continue
        key = js_parser.property_key(member)
        if key is not None:
            keys.append((key, member))
    return keys


def _declared_names(node: Node) -> List[Tuple[str, Node]]:
    """Names from an array of strings or the keys of an object."""
    if node.type == "array":
        names = []
        for element in node.named_children:
            value = js_parser.string_value(element)
            if value is not None:
                names.append((value, element))
        return names
    if node.type == "object":
        return _object_keys(node)
    return []


def _returned_keys(function: Node) -> List[Tuple[str, Node]]:
    """Keys of the object literal a `data()` / `setup()` function returns."""
    body = function.child_by_field_name("body")
    if body is None:
        return []
    body = js_parser.unwrap_parentheses(body)
    if body.type == "object":
        return _object_keys(body)
    for node in js_parser.walk(body, skip_functions=True):
        if node.type != "return_statement" or not node.named_child_count:
            continue
        returned = js_parser.strip_type_wrappers(node.named_children[0])
        if returned.type == "object":
            return _object_keys(returned)
    return []


def _has_top_level_await(root: Node) -> bool:
    for node in js_parser.walk(root, skip_functions=True):
        if node.type == "await_expression":
            return True
        if node.type == "for_in_statement" and any(child.type == "await" for child in node.children):
            return True
    return False


def _type_argument(call: Node) -> Optional[Node]:
    arguments = call.child_by_field_name("type_arguments")
    if arguments is None:
        for child in call.children:
            if child.type == "type_arguments":
                arguments = child
                break
    if arguments is None or not arguments.named_child_count:
        return None
    return arguments.named_children[0]


def _annotation(member: Node) -> Optional[Node]:
    annotation = member.child_by_field_name("type")
    if annotation is None:
        return None
    if annotation.type == "type_annotation" and annotation.named_child_count:
        return annotation.named_children[0]
    return annotation


def _runtime_types(type_node: Optional[Node]) -> List[str]:
    """Runtime constructors for a TypeScript prop type; empty when unknown."""
    if type_node is None:
        return []
    kind = type_node.type
    if kind == "parenthesized_type" and type_node.named_child_count:
        return _runtime_types(type_node.named_children[0])
    if kind == "predefined_type":
        runtime = _TS_PRIMITIVES.get(js_parser.node_text(type_node))
        return [runtime] if runtime else []
    if kind == "literal_type" and type_node.named_child_count:
        literal = type_node.named_children[0].type
        if literal == "string":
            return ["String"]
        if literal == "number":
            return ["Number"]
        if literal in {"true", "false"}:
            return ["Boolean"]
        return []
    if kind in {"array_type", "tuple_type"}:
        return ["Array"]
    if kind in {"function_type", "constructor_type"}:
        return ["Function"]
    if kind == "object_type":
        return ["Object"]
    if kind == "generic_type":
        name = type_node.child_by_field_name("name")
        text = js_parser.node_text(name) if name is not None else ""
        if text in {"Array", "ReadonlyArray"}:
            return ["Array"]
        return [text] if text in _TS_CONSTRUCTORS else ["Object"]
    if kind == "type_identifier":
        text = js_parser.node_text(type_node)
        return [text] if text in _TS_CONSTRUCTORS else []
    if kind == "union_type":
        types: List[str] = []
        for member in type_node.named_children:
            member_types = _runtime_types(member)
            if not member_types:
                return []
            types.extend(t for t in member_types if t not in types)
        return types
    return []


def _call_signature_events(signature: Node) -> List[str]:
    """Event names from `(e: 'change' | 'update', ...): void`."""
    parameters = signature.child_by_field_name("parameters")
    if parameters is None or not parameters.named_child_count:
        return []
    first = _annotation(parameters.named_children[0])
    if first is None:
        return []
    candidates = first.named_children if first.type == "union_type" else [first]
    events: List[str] = []
    for candidate in candidates:
        if candidate.type == "literal_type" and candidate.named_child_count:
            value = js_parser.string_value(candidate.named_children[0])
            if value is not None:
                events.append(value)
    return events
