"""
SFC Compiler

Compiles Vue single-file components into JavaScript modules: block
splitting, script binding analysis, template render-function generation and
style extraction, with structured diagnostics and a cancellable async entry
point.
"""

from typing import Any, Dict

__version__ = "0.3.0"

# Core exports
from .core.compiler import SFCCompiler
from .core.config import CompilerConfig, ScriptOptions, StyleOptions, TemplateOptions
from .core.diagnostics import Diagnostic, DiagnosticKind, Severity
from .core.exceptions import (
    CompilationCancelled,
    SFCCompilationError,
    SFCConfigurationError,
    SFCError,
    SFCSessionError,
)
from .core.models import (
    CompileOptions,
    CompileResult,
    CustomBlock,
    PropsDestructureMode,
    SourceSpan,
    StyleBlock,
    StyleOutput,
)
from .core.session import CancellationToken, CompilationSession, SessionState
from .script.bindings import BindingCategory, BindingEntry, BindingTable

__all__ = [
    # Compiler
    "SFCCompiler",
    "CompilationSession",
    "SessionState",
    "CancellationToken",
    # Configuration and models
    "CompilerConfig",
    "ScriptOptions",
    "TemplateOptions",
    "StyleOptions",
    "CompileOptions",
    "CompileResult",
    "PropsDestructureMode",
    "SourceSpan",
    "StyleBlock",
    "StyleOutput",
    "CustomBlock",
    # Bindings
    "BindingCategory",
    "BindingEntry",
    "BindingTable",
    # Diagnostics
    "Diagnostic",
    "DiagnosticKind",
    "Severity",
    # Exceptions
    "SFCError",
    "SFCCompilationError",
    "SFCConfigurationError",
    "SFCSessionError",
    "CompilationCancelled",
]


def get_version() -> str:
    """Get the current version of the SFC compiler."""
    return __version__


def get_compiler_info() -> Dict[str, Any]:
    """Get information about the compiler's supported features."""
    return {
        "version": __version__,
        "binding_categories": [category.value for category in BindingCategory],
        "diagnostic_kinds": [kind.value for kind in DiagnosticKind],
        "props_destructure_modes": [mode.value for mode in PropsDestructureMode],
        "script_languages": ["js", "ts", "tsx"],
        "reserved_flags": ["ssr", "source_map", "is_custom_element"],
    }
