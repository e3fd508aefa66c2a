"""
Tests for the Style Extractor.
"""

import hashlib
from typing import Dict, Optional, Union

import pytest

from sfc_compiler.core.config import CompilerConfig
from sfc_compiler.core.diagnostics import DiagnosticKind, DiagnosticsCollector
from sfc_compiler.core.models import CompileOptions, SourceSpan, StyleBlock
from sfc_compiler.style.extractor import StyleExtractor, css_var_name, find_v_binds


def make_style(content: str, attrs: Optional[Dict[str, Union[str, bool]]] = None, content_index: int = 0) -> StyleBlock:
    size = len(content.encode("utf-8"))
    return StyleBlock(
        content=content,
        span=SourceSpan(content_index, content_index + size),
        outer_span=SourceSpan(0, content_index + size + len("</style>")),
        content_index=content_index,
        attrs=attrs or {},
    )


@pytest.fixture
def options() -> CompileOptions:
    return CompileOptions(id="abc123")


class TestCssVarName:
    """Test CSS variable naming."""

    def test_development_name_is_readable(self) -> None:
        assert css_var_name("abc", "color", False) == "abc-color"

    def test_development_name_escapes_punctuation(self) -> None:
        assert css_var_name("abc", "theme.color", False) == "abc-theme\\.color"

    def test_production_name_is_hashed(self) -> None:
        expected = hashlib.sha256("abccolor".encode("utf-8")).hexdigest()[:8]

        assert css_var_name("abc", "color", True) == expected


class TestFindVBinds:
    """Test locating v-bind() calls in CSS text."""

    def test_plain_and_quoted_expressions(self) -> None:
        css = ".a { color: v-bind(color); width: v-bind('size.w'); }"
        found = find_v_binds(css)

        assert [expression for _, _, expression, _ in found] == ["color", "size.w"]
        start, end, _, offset = found[0]
        assert css[start:end] == "v-bind(color)"
        assert css[offset : offset + len("color")] == "color"
        _, _, _, quoted_offset = found[1]
        assert css[quoted_offset : quoted_offset + len("size.w")] == "size.w"

    def test_comments_are_ignored(self) -> None:
        css = "/* v-bind(hidden) */ .a { color: v-bind(shown) }"

        assert [expression for _, _, expression, _ in find_v_binds(css)] == ["shown"]

    def test_nested_parentheses(self) -> None:
        found = find_v_binds(".a { width: v-bind(size(1) + 'px') }")

        assert found[0][2] == "size(1) + 'px'"


class TestStyleExtractor:
    """Test style block extraction."""

    def test_blocks_pass_through_with_flags(self, diagnostics: DiagnosticsCollector, options: CompileOptions) -> None:
        """Test that CSS is untouched and flags are carried over."""
        extractor = StyleExtractor(diagnostics, CompilerConfig())
        extraction = extractor.extract(
            [make_style(".a { color: red }", {"scoped": True}), make_style("$x: 1;", {"lang": "scss", "module": True})],
            options,
        )

        first, second = extraction.styles
        assert first.code == ".a { color: red }"
        assert first.lang == "css"
        assert first.is_scoped
        assert not first.is_compiled
        assert second.lang == "scss"
        assert second.is_module
        assert extraction.has_scoped
        assert extraction.css_vars == []

    def test_v_bind_is_rewritten_and_deduplicated(
        self, diagnostics: DiagnosticsCollector, options: CompileOptions
    ) -> None:
        """Test that each expression yields one CSS variable across blocks."""
        extractor = StyleExtractor(diagnostics, CompilerConfig())
        extraction = extractor.extract(
            [
                make_style(".a { color: v-bind(color) }", content_index=100),
                make_style(".b { border-color: v-bind(color) }"),
            ],
            options,
        )

        assert extraction.styles[0].code == ".a { color: var(--abc123-color) }"
        assert extraction.styles[1].code == ".b { border-color: var(--abc123-color) }"
        assert len(extraction.css_vars) == 1
        css_var = extraction.css_vars[0]
        assert css_var.name == "abc123-color"
        assert css_var.expression == "color"
        assert css_var.exp_start == 100 + len(".a { color: v-bind(")

    def test_trim(self, diagnostics: DiagnosticsCollector, options: CompileOptions) -> None:
        config = CompilerConfig()
        config.style.trim = True
        extraction = StyleExtractor(diagnostics, config).extract([make_style("\n  .a {}\n")], options)

        assert extraction.styles[0].code == ".a {}"

    def test_transformer_output_marks_block_compiled(
        self, diagnostics: DiagnosticsCollector, options: CompileOptions
    ) -> None:
        """Test that a successful transformer replaces the code."""

        def transformer(code: str, block: StyleBlock, opts: CompileOptions) -> str:
            return f"/* {opts.id} */{code}"

        extraction = StyleExtractor(diagnostics, CompilerConfig(), transformer).extract(
            [make_style(".a {}")], options
        )

        assert extraction.styles[0].code == "/* abc123 */.a {}"
        assert extraction.styles[0].is_compiled
        assert len(diagnostics) == 0

    def test_transformer_failure_is_reported(self, diagnostics: DiagnosticsCollector, options: CompileOptions) -> None:
        """Test that a failing transformer leaves the block as written."""

        def transformer(code: str, block: StyleBlock, opts: CompileOptions) -> str:
            raise ValueError("unexpected token")

        block = make_style(".a {", content_index=10)
        extraction = StyleExtractor(diagnostics, CompilerConfig(), transformer).extract([block], options)

        assert extraction.styles[0].code == ".a {"
        assert not extraction.styles[0].is_compiled
        errors = diagnostics.of_kind(DiagnosticKind.STYLE_TRANSFORM_ERROR)
        assert len(errors) == 1
        assert errors[0].message == "Style transform failed: unexpected token"
        assert (errors[0].lo, errors[0].hi) == (block.span.lo, block.span.hi)

    def test_transformer_returning_non_string(
        self, diagnostics: DiagnosticsCollector, options: CompileOptions
    ) -> None:
        extraction = StyleExtractor(diagnostics, CompilerConfig(), lambda code, block, opts: None).extract(
            [make_style(".a {}")], options
        )

        assert extraction.styles[0].code == ".a {}"
        errors = diagnostics.of_kind(DiagnosticKind.STYLE_TRANSFORM_ERROR)
        assert errors[0].message == "Style transformer returned NoneType, expected str"
