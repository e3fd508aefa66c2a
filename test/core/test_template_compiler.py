"""
Tests for the Template Compiler.
Tests reference rewriting, directive lowering, component resolution and hoisting.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional

import pytest

from sfc_compiler.core.diagnostics import ByteOffsets, DiagnosticKind, DiagnosticsCollector
from sfc_compiler.core.models import TemplateBlock
from sfc_compiler.script.bindings import BindingCategory, BindingEntry, BindingTable
from sfc_compiler.template.codegen import TemplateCompiler, TemplateOutput, format_patch_flag
from sfc_compiler.template.helpers import HelperRegistry, RuntimeHelper

REF = BindingCategory.SETUP_REF
CONST = BindingCategory.SETUP_CONST


@dataclass
class Compiled:
    output: TemplateOutput
    helpers: HelperRegistry
    diagnostics: DiagnosticsCollector

    @property
    def code(self) -> str:
        return self.output.expression


def make_table(bindings: Dict[str, BindingCategory], aliases: Optional[Dict[str, str]] = None) -> BindingTable:
    return BindingTable((BindingEntry(name, category) for name, category in bindings.items()), aliases)


@pytest.fixture
def compile_template(template_block: Callable[[str], TemplateBlock]) -> Callable[..., Compiled]:
    """Compile a template string against a table of bindings."""

    def run(
        content: str,
        bindings: Optional[Dict[str, BindingCategory]] = None,
        inline: bool = True,
        aliases: Optional[Dict[str, str]] = None,
        hoist_static: bool = False,
    ) -> Compiled:
        diagnostics = DiagnosticsCollector()
        helpers = HelperRegistry()
        compiler = TemplateCompiler(
            make_table(bindings or {}, aliases),
            helpers,
            diagnostics,
            ByteOffsets(content),
            inline=inline,
            hoist_static=hoist_static,
        )
        return Compiled(compiler.compile(template_block(content)), helpers, diagnostics)

    return run


class TestPatchFlags:
    """Test patch flag formatting."""

    def test_format_patch_flag(self) -> None:
        assert format_patch_flag(1) == "1 /* TEXT */"
        assert format_patch_flag(9) == "9 /* TEXT, PROPS */"
        assert format_patch_flag(-1) == "-1 /* HOISTED */"


class TestReferenceRewriting:
    """Test how identifiers are rewritten per binding category."""

    def test_setup_ref_is_unwrapped(self, compile_template: Callable[..., Compiled]) -> None:
        """Test that refs read through `_unref` in inline mode."""
        compiled = compile_template("{{ count }}", {"count": REF})

        assert compiled.code == "_createTextVNode(_toDisplayString(_unref(count)), 1 /* TEXT */)"
        assert RuntimeHelper.UNREF in compiled.helpers
        assert len(compiled.diagnostics) == 0

    def test_inline_categories(self, compile_template: Callable[..., Compiled]) -> None:
        """Test the rendered reference of each category with <script setup>."""
        bindings = {
            "c": CONST,
            "r": BindingCategory.SETUP_REACTIVE_CONST,
            "l": BindingCategory.SETUP_LET,
            "m": BindingCategory.SETUP_MAYBE_REF,
            "p": BindingCategory.PROPS,
            "alias": BindingCategory.PROPS_ALIASED,
            "d": BindingCategory.DATA,
            "o": BindingCategory.OPTIONS,
            "n": BindingCategory.LITERAL_CONST,
            "Comp": BindingCategory.COMPONENT,
            "imp": BindingCategory.IMPORTED,
        }
        compiled = compile_template(
            "<p>{{ [c, r, l, m, p, alias, d, o, n, Comp, imp, Math] }}</p>",
            bindings,
            aliases={"alias": "original-key"},
        )

        assert (
            "[c, r, _unref(l), _unref(m), __props.p, __props[\"original-key\"], _ctx.d, _ctx.o, n, Comp, imp, Math]"
            in compiled.code
        )
        assert len(compiled.diagnostics) == 0

    def test_render_function_categories(self, compile_template: Callable[..., Compiled]) -> None:
        """Test the rendered reference of each category without <script setup>."""
        bindings = {
            "d": BindingCategory.DATA,
            "p": BindingCategory.PROPS,
            "s": BindingCategory.SETUP_MAYBE_REF,
            "o": BindingCategory.OPTIONS,
        }
        compiled = compile_template("<p>{{ [d, p, s, o, missing] }}</p>", bindings, inline=False)

        assert "[$data.d, $props.p, $setup.s, $options.o, _ctx.missing]" in compiled.code

    def test_unresolved_identifier_warns(self, compile_template: Callable[..., Compiled]) -> None:
        """Test the warning and fallback for an unknown identifier."""
        content = "<p>{{ missing }}</p>"
        compiled = compile_template(content)

        assert "_ctx.missing" in compiled.code
        warnings = compiled.diagnostics.of_kind(DiagnosticKind.UNRESOLVED_BINDING_WARNING)
        assert len(warnings) == 1
        assert (warnings[0].lo, warnings[0].hi) == (content.index("missing"), content.index("missing") + 7)
        assert not warnings[0].is_error

    def test_instance_properties_do_not_warn(self, compile_template: Callable[..., Compiled]) -> None:
        """Test that `$`-prefixed names are accepted silently."""
        compiled = compile_template("<p>{{ $attrs.id }}</p>")

        assert "_ctx.$attrs.id" in compiled.code
        assert len(compiled.diagnostics) == 0

    def test_member_keys_are_not_rewritten(self, compile_template: Callable[..., Compiled]) -> None:
        """Test that property names and object keys stay as written."""
        compiled = compile_template("<p>{{ user.name + { name: n }.name }}</p>", {"user": REF, "n": CONST})

        assert "_unref(user).name + { name: n }.name" in compiled.code

    def test_arrow_parameters_are_local(self, compile_template: Callable[..., Compiled]) -> None:
        """Test that function parameters shadow bindings."""
        compiled = compile_template("<p>{{ items.map(x => x * 2) }}</p>", {"items": REF, "x": REF})

        assert "_unref(items).map(x => x * 2)" in compiled.code

    def test_invalid_expression(self, compile_template: Callable[..., Compiled]) -> None:
        """Test that a syntax error in an expression is a template error."""
        compiled = compile_template("<p>{{ a + }}</p>", {"a": CONST})

        errors = compiled.diagnostics.of_kind(DiagnosticKind.TEMPLATE_PARSE_ERROR)
        assert len(errors) == 1
        assert errors[0].message.startswith("Error parsing JavaScript expression")


class TestStructuralDirectives:
    """Test v-if, v-for, v-once and v-slot lowering."""

    def test_v_if_chain(self, compile_template: Callable[..., Compiled]) -> None:
        """Test a full v-if / v-else-if / v-else chain."""
        compiled = compile_template(
            '<div v-if="ok">a</div>\n<p v-else-if="other">b</p>\n<span v-else>c</span>',
            {"ok": REF, "other": CONST},
        )

        assert compiled.code == (
            "(_unref(ok))\n"
            '    ? _createElementVNode("div", { key: 0 }, "a")\n'
            "    : (other)\n"
            '    ? _createElementVNode("p", { key: 1 }, "b")\n'
            '    : _createElementVNode("span", { key: 2 }, "c")'
        )

    def test_v_if_without_else(self, compile_template: Callable[..., Compiled]) -> None:
        """Test that a lone v-if falls back to a comment node."""
        compiled = compile_template('<div v-if="ok">a</div>', {"ok": CONST})

        assert compiled.code == (
            "(ok)\n"
            '    ? _createElementVNode("div", { key: 0 }, "a")\n'
            '    : _createCommentVNode("v-if", true)'
        )

    def test_v_else_without_v_if(self, compile_template: Callable[..., Compiled]) -> None:
        """Test that an orphan v-else is an error."""
        compiled = compile_template("<p v-else>x</p>")

        errors = list(compiled.diagnostics)
        assert len(errors) == 1
        assert errors[0].message == "v-else/v-else-if has no adjacent v-if or v-else-if."
        assert compiled.code == "null"

    def test_v_for_aliases_shadow_bindings(self, compile_template: Callable[..., Compiled]) -> None:
        """Test that a v-for alias is a template local even when a binding has the same name."""
        compiled = compile_template('<li v-for="item in items">{{ item }}</li>', {"items": REF, "item": REF})

        assert compiled.code == (
            "_createVNode(_Fragment, null, _renderList(_unref(items), (item) => {\n"
            '      return _createElementVNode("li", null, _toDisplayString(item), 1 /* TEXT */)\n'
            "    }), 256 /* UNKEYED_FRAGMENT */)"
        )
        assert len(compiled.diagnostics) == 0

    def test_v_for_with_index_and_key(self, compile_template: Callable[..., Compiled]) -> None:
        """Test destructured aliases and the keyed fragment flag."""
        compiled = compile_template(
            '<li v-for="({ id, label }, index) of rows" :key="id">{{ index }}: {{ label }}</li>',
            {"rows": CONST},
        )

        assert "_renderList(rows, ({ id, label }, index) => {" in compiled.code
        assert "{ key: id }" in compiled.code
        assert "128 /* KEYED_FRAGMENT */" in compiled.code
        assert len(compiled.diagnostics) == 0

    def test_template_v_for_key_on_fragment(self, compile_template: Callable[..., Compiled]) -> None:
        """Test that the key of a <template v-for> is set on each iteration's fragment."""
        compiled = compile_template(
            '<template v-for="n in items" :key="n.id"><i>{{ n }}</i></template>', {"items": CONST}
        )

        assert compiled.code == (
            "_createVNode(_Fragment, null, _renderList(items, (n) => {\n"
            "      return _createVNode(_Fragment, { key: n.id }, "
            '[_createElementVNode("i", null, _toDisplayString(n), 1 /* TEXT */)], 64 /* STABLE_FRAGMENT */)\n'
            "    }), 128 /* KEYED_FRAGMENT */)"
        )
        assert len(compiled.diagnostics) == 0

    def test_template_v_for_static_key(self, compile_template: Callable[..., Compiled]) -> None:
        compiled = compile_template('<template v-for="n in 3" key="row"><i>a</i><i>b</i></template>')

        assert '_createVNode(_Fragment, { key: "row" }, [' in compiled.code

    def test_invalid_v_for(self, compile_template: Callable[..., Compiled]) -> None:
        """Test a v-for without `in` / `of`."""
        compiled = compile_template('<li v-for="items">x</li>', {"items": CONST})

        errors = list(compiled.diagnostics)
        assert len(errors) == 1
        assert errors[0].message == "v-for has invalid expression."

    def test_v_once_is_cached(self, compile_template: Callable[..., Compiled]) -> None:
        """Test that v-once nodes are stored in the render cache."""
        compiled = compile_template("<span v-once>{{ a }}</span>", {"a": CONST})

        assert compiled.code.startswith("_cache[0] || (_cache[0] = _createElementVNode(")

    def test_v_slot_on_element(self, compile_template: Callable[..., Compiled]) -> None:
        """Test that v-slot is rejected on plain elements."""
        compiled = compile_template('<div v-slot="props">x</div>')

        errors = list(compiled.diagnostics)
        assert len(errors) == 1
        assert errors[0].message == "v-slot can only be used on components or <template> tags."


class TestComponents:
    """Test component resolution and slots."""

    def test_unknown_component_is_resolved_at_runtime(self, compile_template: Callable[..., Compiled]) -> None:
        """Test `_resolveComponent` for components without a binding."""
        compiled = compile_template("<MyButton />")

        assert compiled.output.preamble == ['const _component_MyButton = _resolveComponent("MyButton")']
        assert compiled.code == "_createVNode(_component_MyButton)"

    def test_setup_component_binding(self, compile_template: Callable[..., Compiled]) -> None:
        """Test that an imported component is referenced directly, also from kebab-case."""
        compiled = compile_template("<my-button></my-button>", {"MyButton": BindingCategory.COMPONENT})

        assert compiled.code == "_createVNode(MyButton)"
        assert compiled.output.preamble == []

    def test_builtin_component(self, compile_template: Callable[..., Compiled]) -> None:
        """Test that built-in components come from the runtime."""
        compiled = compile_template("<KeepAlive></KeepAlive>")

        assert compiled.code == "_createVNode(_KeepAlive)"

    def test_dynamic_component(self, compile_template: Callable[..., Compiled]) -> None:
        """Test `<component :is>`."""
        compiled = compile_template('<component :is="view" />', {"view": REF})

        assert compiled.code == "_createVNode(_resolveDynamicComponent(_unref(view)))"

    def test_named_and_default_slots(self, compile_template: Callable[..., Compiled]) -> None:
        """Test slot functions with scoped slot props."""
        compiled = compile_template(
            '<Comp><template #header="{ title }">{{ title }}</template>body</Comp>',
            {"Comp": BindingCategory.COMPONENT},
        )

        assert compiled.code == (
            "_createVNode(Comp, null, { "
            'default: _withCtx(() => [_createTextVNode("body")]), '
            "header: _withCtx(({ title }) => [_createTextVNode(_toDisplayString(title), 1 /* TEXT */)]), "
            "_: 1 /* STABLE */ })"
        )
        assert len(compiled.diagnostics) == 0

    def test_conditional_slot_is_dynamic(self, compile_template: Callable[..., Compiled]) -> None:
        """Test that a v-if on a slot template creates dynamic slots."""
        compiled = compile_template(
            '<Comp><template v-if="ok" #extra>x</template></Comp>',
            {"Comp": BindingCategory.COMPONENT, "ok": CONST},
        )

        assert "_createSlots({ _: 2 /* DYNAMIC */ }, [(ok) ? { name: \"extra\"" in compiled.code
        assert "1024 /* DYNAMIC_SLOTS */" in compiled.code

    def test_dynamic_slot_name_on_component(self, compile_template: Callable[..., Compiled]) -> None:
        """Test that `v-slot:[name]` on the component tag uses the value of `name`."""
        compiled = compile_template(
            '<Comp v-slot:[name]="{ c }">{{ c }}</Comp>',
            {"Comp": BindingCategory.COMPONENT, "name": BindingCategory.LITERAL_CONST},
        )

        assert compiled.code == (
            "_createVNode(Comp, null, _createSlots({ _: 2 /* DYNAMIC */ }, [{ name: name, "
            "fn: _withCtx(({ c }) => [_createTextVNode(_toDisplayString(c), 1 /* TEXT */)]) }]), "
            "1024 /* DYNAMIC_SLOTS */)"
        )
        assert "name: _withCtx" not in compiled.code
        assert len(compiled.diagnostics) == 0

    def test_static_slot_name_on_component(self, compile_template: Callable[..., Compiled]) -> None:
        compiled = compile_template('<Comp v-slot:item="{ c }">{{ c }}</Comp>', {"Comp": BindingCategory.COMPONENT})

        assert compiled.code.startswith("_createVNode(Comp, null, { item: _withCtx(({ c }) => [")
        assert compiled.code.endswith("_: 1 /* STABLE */ })")

    def test_component_v_model(self, compile_template: Callable[..., Compiled]) -> None:
        """Test v-model on a component."""
        compiled = compile_template('<Comp v-model.trim="text" />', {"Comp": BindingCategory.COMPONENT, "text": REF})

        assert "modelValue: _unref(text)" in compiled.code
        assert '"onUpdate:modelValue": $event => (text.value = $event)' in compiled.code
        assert "modelModifiers: { trim: true }" in compiled.code
        assert '8 /* PROPS */, ["modelValue", "onUpdate:modelValue"]' in compiled.code

    def test_slot_outlet(self, compile_template: Callable[..., Compiled]) -> None:
        """Test `<slot>` with a name, props and fallback content."""
        compiled = compile_template('<slot name="footer" :item="x">fallback</slot>', {"x": CONST})

        assert compiled.code == '_renderSlot(_ctx.$slots, "footer", { item: x }, () => [_createTextVNode("fallback")])'


class TestElementProps:
    """Test props, events and runtime directives on elements."""

    def test_static_element(self, compile_template: Callable[..., Compiled]) -> None:
        compiled = compile_template('<div id="app">hello</div>')

        assert compiled.code == '_createElementVNode("div", { id: "app" }, "hello")'

    def test_event_handler_with_ref_update(self, compile_template: Callable[..., Compiled]) -> None:
        """Test an inline handler mutating a ref."""
        compiled = compile_template('<button @click="count++">{{ count }}</button>', {"count": REF})

        assert compiled.code == (
            '_createElementVNode("button", { onClick: $event => (count.value++) }, '
            '_toDisplayString(_unref(count)), 9 /* TEXT, PROPS */, ["onClick"])'
        )

    def test_let_assignment_checks_ref(self, compile_template: Callable[..., Compiled]) -> None:
        """Test that assigning to a `let` binding handles both refs and plain values."""
        compiled = compile_template('<button @click="total = 0">reset</button>', {"total": BindingCategory.SETUP_LET})

        assert "$event => (_isRef(total) ? total.value = 0 : total = 0)" in compiled.code
        assert RuntimeHelper.IS_REF in compiled.helpers

    def test_handler_reference(self, compile_template: Callable[..., Compiled]) -> None:
        """Test that a method reference is passed as the handler itself."""
        compiled = compile_template('<form @submit.prevent="save"></form>', {"save": CONST})

        assert '{ onSubmit: _withModifiers(save, ["prevent"]) }' in compiled.code

    def test_key_modifiers(self, compile_template: Callable[..., Compiled]) -> None:
        compiled = compile_template('<input @keyup.enter="go">', {"go": CONST})

        assert '{ onKeyup: _withKeys(go, ["enter"]) }' in compiled.code

    def test_click_right_and_event_options(self, compile_template: Callable[..., Compiled]) -> None:
        """Test `.right` on click and the option suffixes."""
        compiled = compile_template('<div @click.right="a" @scroll.passive="b"></div>', {"a": CONST, "b": CONST})

        assert 'onContextmenu: _withModifiers(a, ["right"])' in compiled.code
        assert "onScrollPassive: b" in compiled.code

    def test_merged_handlers(self, compile_template: Callable[..., Compiled]) -> None:
        """Test two handlers for the same event."""
        compiled = compile_template('<div @click="a" @click.self="b"></div>', {"a": CONST, "b": CONST})

        assert 'onClick: [a, _withModifiers(b, ["self"])]' in compiled.code

    def test_class_and_style(self, compile_template: Callable[..., Compiled]) -> None:
        """Test static and dynamic class merging and static style parsing."""
        compiled = compile_template(
            '<div class="a  b" :class="{ active: on }" style="color: red; font-size: 12px"></div>',
            {"on": REF},
        )

        assert 'class: _normalizeClass(["a b", { active: _unref(on) }])' in compiled.code
        assert 'style: {"color":"red","font-size":"12px"}' in compiled.code
        assert "2 /* CLASS */" in compiled.code

    def test_object_spread(self, compile_template: Callable[..., Compiled]) -> None:
        """Test `v-bind="obj"` merging with static props."""
        compiled = compile_template('<div id="a" v-bind="attrs"></div>', {"attrs": CONST})

        assert '_mergeProps({ id: "a" }, attrs)' in compiled.code
        assert "16 /* FULL_PROPS */" in compiled.code

    def test_dynamic_argument(self, compile_template: Callable[..., Compiled]) -> None:
        compiled = compile_template('<div :[name]="value"></div>', {"name": CONST, "value": CONST})

        assert '{ [name || ""]: value }' in compiled.code
        assert "16 /* FULL_PROPS */" in compiled.code

    def test_v_model_on_input(self, compile_template: Callable[..., Compiled]) -> None:
        """Test v-model on a text input."""
        compiled = compile_template('<input v-model="text">', {"text": REF})

        assert compiled.code == (
            '_withDirectives(_createElementVNode("input", { "onUpdate:modelValue": $event => (text.value = $event) }, '
            'null, 8 /* PROPS */, ["onUpdate:modelValue"]), [[_vModelText, _unref(text)]])'
        )

    def test_v_model_checkbox(self, compile_template: Callable[..., Compiled]) -> None:
        compiled = compile_template('<input type="checkbox" v-model="checked">', {"checked": REF})

        assert "[[_vModelCheckbox, _unref(checked)]]" in compiled.code

    def test_v_show(self, compile_template: Callable[..., Compiled]) -> None:
        compiled = compile_template('<div v-show="visible">x</div>', {"visible": REF})

        assert compiled.code == (
            '_withDirectives(_createElementVNode("div", null, "x", 512 /* NEED_PATCH */), '
            "[[_vShow, _unref(visible)]])"
        )

    def test_v_html_and_v_text(self, compile_template: Callable[..., Compiled]) -> None:
        compiled = compile_template('<div v-html="raw"></div><p v-text="msg"></p>', {"raw": CONST, "msg": CONST})

        assert '{ innerHTML: raw }, null, 8 /* PROPS */, ["innerHTML"]' in compiled.code
        assert '{ textContent: _toDisplayString(msg) }, null, 8 /* PROPS */, ["textContent"]' in compiled.code

    def test_template_ref(self, compile_template: Callable[..., Compiled]) -> None:
        """Test that a ref attribute binds to a setup ref."""
        compiled = compile_template('<input ref="el">', {"el": REF})

        assert compiled.code == '_createElementVNode("input", { ref_key: "el", ref: el }, null, 512 /* NEED_PATCH */)'

    def test_custom_directives(self, compile_template: Callable[..., Compiled]) -> None:
        """Test setup-declared and runtime-resolved custom directives."""
        compiled = compile_template('<div v-focus></div><div v-tooltip:top="tip"></div>', {"vFocus": CONST, "tip": CONST})

        assert "[[vFocus]]" in compiled.code
        assert '[[_directive_tooltip, tip, "top"]]' in compiled.code
        assert compiled.output.preamble == ['const _directive_tooltip = _resolveDirective("tooltip")']


class TestStaticHoisting:
    """Test hoisting of static subtrees."""

    def test_static_children_are_hoisted(self, compile_template: Callable[..., Compiled]) -> None:
        compiled = compile_template(
            "<div><p>static</p><p>{{ a }}</p></div>", {"a": BindingCategory.LITERAL_CONST}, hoist_static=True
        )

        assert compiled.output.hoisted == [
            'const _hoisted_1 = /*#__PURE__*/_createElementVNode("p", null, "static", -1 /* HOISTED */)'
        ]
        assert compiled.code == (
            '_createElementVNode("div", null, [_hoisted_1, '
            '_createElementVNode("p", null, _toDisplayString(a), 1 /* TEXT */)])'
        )

    def test_nothing_hoisted_without_option(self, compile_template: Callable[..., Compiled]) -> None:
        compiled = compile_template("<div><p>static</p><p>{{ a }}</p></div>", {"a": CONST})

        assert compiled.output.hoisted == []

    def test_multiple_roots_use_fragment(self, compile_template: Callable[..., Compiled]) -> None:
        compiled = compile_template("<p>a</p><p>b</p>")

        assert compiled.code == (
            '_createVNode(_Fragment, null, [_createElementVNode("p", null, "a"), '
            '_createElementVNode("p", null, "b")], 64 /* STABLE_FRAGMENT */)'
        )
