"""
Codegen Assembler: merges script output and render function into one module.

Layout of the generated module:

    import { ... } from "vue"          runtime helpers
    <hoisted <script setup> imports>
    <plain <script> code>              `export default` renamed to `__default__`
    const _hoisted_1 = ...             static template nodes
    [function _sfc_render(...)]        render-function mode only
    export default { ... }             or `const <genDefaultAs> = { ... }`
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import List, Optional, Tuple

from ..core.models import CompileOptions
from ..script.analyzer import ModelDeclaration, PropsDeclaration, ScriptAnalysis
from ..script.bindings import BindingTable
from ..script.transform import SetupCode
from ..template.codegen import TemplateOutput
from ..template.helpers import HelperRegistry, RuntimeHelper

logger = logging.getLogger(__name__)

RENDER_FUNCTION = "_sfc_render"
RENDER_SIGNATURE = "_ctx, _cache, $props, $setup, $data, $options"


@dataclass
class ModuleParts:
    """Everything the earlier stages produced for one component."""

    analysis: ScriptAnalysis
    table: BindingTable
    setup: Optional[SetupCode] = None
    options_code: Optional[str] = None
    has_default_export: bool = False
    template: Optional[TemplateOutput] = None
    css_vars: List[Tuple[str, str]] = field(default_factory=list)  # (name, compiled expression)
    has_scoped_style: bool = False


@dataclass(frozen=True)
class AssembledModule:
    code: str
    setup_bindings: Optional[BindingTable] = None


class CodegenAssembler:
    """Builds the final module text for one compile call."""

    def __init__(self, options: CompileOptions, helpers: HelperRegistry):
        self.options = options
        self.helpers = helpers

    def assemble(self, parts: ModuleParts) -> AssembledModule:
        if parts.analysis.has_setup:
            body = self._setup_module(parts)
        elif parts.template is not None or parts.options_code is not None or parts.css_vars:
            body = self._options_module(parts)
        else:
            body = [self._export(self._object([], parts))]

        sections = [self.helpers.import_statement()] + body
        code = "\n".join(section for section in sections if section) + "\n"

        bindings = parts.table if self.options.output_setup_bindings else None
        logger.debug("Assembled module of %d characters", len(code))
        return AssembledModule(code=code, setup_bindings=bindings)

    # ---------------------------------------------------------------- modules

    def _setup_module(self, parts: ModuleParts) -> List[str]:
        setup = parts.setup or SetupCode()
        info = parts.analysis.setup
        assert info is not None

        sections: List[str] = list(setup.imports)
        if parts.options_code:
            sections.append(parts.options_code)
        if parts.template is not None:
            sections.extend(parts.template.hoisted)

        entries: List[str] = []
        if parts.has_default_export:
            entries.append("...__default__")
        if info.options:
            entries.append(f"...{info.options}")
        entries.append(f"__name: {json.dumps(self.component_name)}")

        props = self._props_option(info.props, info.models)
        if props:
            entries.append(f"props: {props}")
        emits = self._emits_option(info.emits, info.models)
        if emits:
            entries.append(f"emits: {emits}")

        entries.append(self._setup_function(parts, setup))
        return sections + [self._export(self._object(entries, parts))]

    def _setup_function(self, parts: ModuleParts, setup: SetupCode) -> str:
        info = parts.analysis.setup
        assert info is not None

        context = ["expose: __expose"]
        if info.emits is not None or info.models:
            context.append("emit: __emit")
        props_param = "__props: any" if parts.analysis.is_typescript else "__props"
        signature = f"setup({props_param}, {{ {', '.join(context)} }})"
        if setup.is_async:
            signature = "async " + signature

        statements: List[str] = []
        if not info.has_expose:
            statements.append("__expose();")
        if parts.css_vars:
            statements.append(self._use_css_vars(parts.css_vars))
        if setup.body:
            statements.append(setup.body)

        if parts.template is not None:
            statements.append(f"return (_ctx, _cache) => {{\n{self._render_body(parts.template)}\n}}")
        else:
            returned = ", ".join(dict.fromkeys(parts.analysis.setup_locals))
            statements.append(f"return {{ {returned} }}" if returned else "return {}")

        return f"{signature} {{\n\n" + "\n\n".join(statements) + "\n}"

    def _options_module(self, parts: ModuleParts) -> List[str]:
        sections: List[str] = []
        if parts.options_code:
            sections.append(parts.options_code)

        has_default = parts.has_default_export
        if parts.css_vars:
            if not has_default:
                sections.append("const __default__ = {}")
                has_default = True
            sections.append(self._inject_css_vars(parts.css_vars))

        entries: List[str] = []
        if has_default:
            entries.append("...__default__")

        if parts.template is not None:
            sections.extend(parts.template.hoisted)
            sections.append(
                f"function {RENDER_FUNCTION}({RENDER_SIGNATURE}) {{\n{self._render_body(parts.template)}\n}}"
            )
            entries.append(f"render: {RENDER_FUNCTION}")

        return sections + [self._export(self._object(entries, parts))]

    # -------------------------------------------------------------- fragments

    @property
    def component_name(self) -> str:
        return PurePath(self.options.filename).stem or "anonymous"

    def _object(self, entries: List[str], parts: ModuleParts) -> str:
        entries = list(entries)
        if parts.has_scoped_style:
            entries.append(f"__scopeId: {json.dumps(self.options.scope_id)}")
        if not entries:
            return "{}"
        return "{\n" + ",\n".join("  " + entry for entry in entries) + "\n}"

    def _export(self, component: str) -> str:
        if self.options.gen_default_as:
            return f"const {self.options.gen_default_as} = {component}"
        return f"export default {component}"

    def _render_body(self, template: TemplateOutput) -> str:
        lines = ["  " + statement for statement in template.preamble]
        if lines:
            lines.append("")
        lines.append(f"  return {template.expression}")
        return "\n".join(lines)

    def _props_option(self, props: Optional[PropsDeclaration], models: List[ModelDeclaration]) -> Optional[str]:
        declaration: Optional[str] = None
        if props is not None:
            if props.runtime is not None:
                declaration = props.runtime
            elif props.type_props:
                members = ",\n".join(
                    f"    {_js_key(prop.key)}: {prop.runtime_options()}" for prop in props.type_props
                )
                declaration = "{\n" + members + "\n  }"

            defaults = props.defaults
            if props.destructure_defaults:
                defaults = "{ " + ", ".join(
                    f"{_js_key(key)}: {value}" for key, value in props.destructure_defaults.items()
                ) + " }"
            if declaration is not None and defaults:
                merge = self.helpers.use(RuntimeHelper.MERGE_DEFAULTS)
                declaration = f"/*#__PURE__*/{merge}({declaration}, {defaults})"

        if not models:
            return declaration

        model_props = []
        for model in models:
            modifiers = "modelModifiers" if model.name == "modelValue" else f"{model.name}Modifiers"
            model_props.append(f"{json.dumps(model.name)}: {model.options or '{}'}")
            model_props.append(f"{json.dumps(modifiers)}: {{}}")
        model_object = "{\n" + ",\n".join(f"    {entry}" for entry in model_props) + "\n  }"
        if declaration is None:
            return model_object
        merge = self.helpers.use(RuntimeHelper.MERGE_MODELS)
        return f"/*#__PURE__*/{merge}({declaration}, {model_object})"

    def _emits_option(self, emits: Optional[str], models: List[ModelDeclaration]) -> Optional[str]:
        if not models:
            return emits
        updates = "[" + ", ".join(json.dumps(f"update:{model.name}") for model in models) + "]"
        if emits is None:
            return updates
        merge = self.helpers.use(RuntimeHelper.MERGE_MODELS)
        return f"/*#__PURE__*/{merge}({emits}, {updates})"

    def _css_vars_object(self, css_vars: List[Tuple[str, str]]) -> str:
        entries = ",\n".join(f"  {json.dumps(name)}: ({expression})" for name, expression in css_vars)
        return "{\n" + entries + "\n}"

    def _use_css_vars(self, css_vars: List[Tuple[str, str]]) -> str:
        use_css_vars = self.helpers.use(RuntimeHelper.USE_CSS_VARS)
        return f"{use_css_vars}(_ctx => ({self._css_vars_object(css_vars)}))"

    def _inject_css_vars(self, css_vars: List[Tuple[str, str]]) -> str:
        """Wrap the options `setup()` so the CSS variables are registered first."""
        return "\n".join(
            [
                f"const __injectCSSVars__ = () => {{\n{self._use_css_vars(css_vars)}\n}}",
                "const __setup__ = __default__.setup",
                "__default__.setup = __setup__",
                "  ? (props, ctx) => { __injectCSSVars__(); return __setup__(props, ctx) }",
                "  : __injectCSSVars__",
            ]
        )


def _js_key(key: str) -> str:
    return key if key.isidentifier() else json.dumps(key)
