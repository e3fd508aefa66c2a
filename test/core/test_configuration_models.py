"""
Tests for configuration and model classes.
Tests model functionality, configuration validation, and data structures.
"""

import pytest

from sfc_compiler.core.config import CompilerConfig
from sfc_compiler.core.diagnostics import Diagnostic, DiagnosticKind, Severity
from sfc_compiler.core.exceptions import SFCConfigurationError
from sfc_compiler.core.models import (
    CompileOptions,
    CompileResult,
    CustomBlock,
    PropsDestructureMode,
    SourceSpan,
    StyleOutput,
)
from sfc_compiler.script.bindings import BindingCategory, BindingEntry, BindingTable


class TestCompilerConfig:
    """Test CompilerConfig."""

    def test_defaults(self) -> None:
        """Test CompilerConfig default values."""
        config = CompilerConfig()

        assert config.is_production is False
        assert config.ssr is False
        assert config.source_map is False
        assert config.script.hoist_static is True
        assert config.template.condense_whitespace is True
        assert config.template.keep_comments is None
        assert config.style.trim is False
        assert config.max_source_size == 5 * 1024 * 1024

    def test_keep_comments_follows_production_mode(self) -> None:
        """Test that comments are kept unless building for production."""
        config = CompilerConfig()
        assert config.keep_comments is True

        config.is_production = True
        assert config.keep_comments is False

        config.template.keep_comments = True
        assert config.keep_comments is True

    def test_presets(self) -> None:
        """Test the development and production presets."""
        development = CompilerConfig.for_development()
        production = CompilerConfig.for_production()

        assert not development.is_production
        assert development.keep_comments
        assert not development.hoists_static

        assert production.is_production
        assert not production.keep_comments
        assert production.hoists_static

    def test_hoisting_requires_production(self) -> None:
        config = CompilerConfig()
        assert config.script.hoist_static
        assert not config.hoists_static

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test creating config from environment variables."""
        monkeypatch.setenv("SFC_PRODUCTION", "true")
        monkeypatch.setenv("SFC_HOIST_STATIC", "false")
        monkeypatch.setenv("SFC_KEEP_COMMENTS", "true")
        monkeypatch.setenv("SFC_MAX_SOURCE_SIZE", "1024")

        config = CompilerConfig.from_environment()

        assert config.is_production is True
        assert config.script.hoist_static is False
        assert config.keep_comments is True
        assert config.max_source_size == 1024
        assert config.ssr is False

    def test_from_environment_invalid_size(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SFC_MAX_SOURCE_SIZE", "lots")

        with pytest.raises(SFCConfigurationError) as exc_info:
            CompilerConfig.from_environment()

        assert exc_info.value.config_key == "max_source_size"

    def test_validation_warnings(self) -> None:
        """Test warnings for reserved and risky settings."""
        config = CompilerConfig.for_production()
        config.ssr = True
        config.source_map = True
        config.max_source_size = 100 * 1024 * 1024
        config.template.keep_comments = True

        warnings = config.validate()

        assert warnings == [
            "SSR code generation is not implemented - the flag is ignored",
            "Source maps are not implemented - no source map will be produced",
            "Source size limit is very high",
            "Template comments are kept in production output",
        ]

    def test_default_config_is_valid(self) -> None:
        assert CompilerConfig().validate() == []

    def test_to_dict(self) -> None:
        data = CompilerConfig().to_dict()

        assert data["is_production"] is False
        assert data["script"]["hoist_static"] is True
        assert data["template"]["condense_whitespace"] is True


class TestCompileOptions:
    """Test per-call compile options."""

    def test_defaults(self) -> None:
        options = CompileOptions()

        assert options.filename == "anonymous.vue"
        assert options.gen_default_as is None
        assert options.destructure_mode is PropsDestructureMode.ON
        assert not options.output_setup_bindings

    def test_scope_id(self) -> None:
        assert CompileOptions(id="7ba5bd90").scope_id == "data-v-7ba5bd90"

    @pytest.mark.parametrize(
        "value, expected",
        [
            (True, PropsDestructureMode.ON),
            (False, PropsDestructureMode.OFF),
            ("error", PropsDestructureMode.ERROR),
            ("true", PropsDestructureMode.ON),
            ("false", PropsDestructureMode.OFF),
            (PropsDestructureMode.OFF, PropsDestructureMode.OFF),
        ],
    )
    def test_props_destructure_values(self, value: object, expected: PropsDestructureMode) -> None:
        """Test every accepted propsDestructure form."""
        assert CompileOptions(props_destructure=value).destructure_mode is expected  # type: ignore[arg-type]

    def test_invalid_props_destructure(self) -> None:
        with pytest.raises(SFCConfigurationError) as exc_info:
            CompileOptions(props_destructure="sometimes")

        assert exc_info.value.config_key == "props_destructure"
        assert "Valid values" in exc_info.value.get_help_message()

    def test_invalid_gen_default_as(self) -> None:
        """Test that genDefaultAs must be an identifier."""
        with pytest.raises(SFCConfigurationError) as exc_info:
            CompileOptions(gen_default_as="my component")

        assert exc_info.value.config_key == "gen_default_as"

    def test_options_are_frozen(self) -> None:
        options = CompileOptions()

        with pytest.raises(AttributeError):
            options.id = "changed"  # type: ignore[misc]


class TestSourceSpan:
    """Test byte spans."""

    def test_length_and_shift(self) -> None:
        span = SourceSpan(4, 10)

        assert len(span) == 6
        assert span.shift(3) == SourceSpan(7, 13)

    def test_contains(self) -> None:
        outer = SourceSpan(0, 20)

        assert outer.contains(SourceSpan(5, 20))
        assert not outer.contains(SourceSpan(5, 21))

    def test_invalid_span(self) -> None:
        with pytest.raises(ValueError):
            SourceSpan(5, 4)
        with pytest.raises(ValueError):
            SourceSpan(-1, 4)


class TestCompileResult:
    """Test the compile result model."""

    def test_summary_and_serialization(self) -> None:
        """Test summary counts and the serialized field names."""
        error = Diagnostic(SourceSpan(0, 3), "broken", DiagnosticKind.MALFORMED_DOCUMENT)
        warning = Diagnostic(
            SourceSpan(5, 8), "unknown", DiagnosticKind.UNRESOLVED_BINDING_WARNING, Severity.WARNING
        )
        table = BindingTable(
            [BindingEntry("count", BindingCategory.SETUP_REF), BindingEntry("label", BindingCategory.PROPS_ALIASED)],
            {"label": "title"},
        )
        result = CompileResult(
            code="export default {}\n",
            styles=(StyleOutput(code=".a {}", lang="css", is_scoped=True, is_compiled=False),),
            errors=(error, warning),
            custom_blocks=(
                CustomBlock("{}", SourceSpan(10, 12), SourceSpan(0, 20), tag_name="i18n"),
            ),
            setup_bindings=table,
        )

        assert result.has_errors
        assert result.warnings == [warning]
        assert result.get_summary() == {
            "success": False,
            "code_length": len("export default {}\n"),
            "styles_count": 1,
            "custom_blocks_count": 1,
            "errors_count": 1,
            "warnings_count": 1,
            "bindings_count": 2,
        }

        data = result.to_dict()
        assert data["errors"] == [
            {"lo": 0, "hi": 3, "message": "broken"},
            {"lo": 5, "hi": 8, "message": "unknown"},
        ]
        assert data["styles"] == [{"code": ".a {}", "isCompiled": False, "lang": "css", "isScoped": True}]
        assert data["customBlocks"] == [{"content": "{}", "lo": 10, "hi": 12, "tagName": "i18n"}]
        assert data["setupBindings"] == {
            "count": "setup-ref",
            "label": "props-aliased",
            "__propsAliases": {"label": "title"},
        }
        assert "sourceMap" not in data

    def test_warnings_only_result_succeeds(self) -> None:
        warning = Diagnostic(
            SourceSpan(0, 1), "unknown", DiagnosticKind.UNRESOLVED_BINDING_WARNING, Severity.WARNING
        )
        result = CompileResult(code="", errors=(warning,))

        assert not result.has_errors
        assert result.get_summary()["success"] is True
        assert "setupBindings" not in result.to_dict()
