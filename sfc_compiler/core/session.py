"""
Compilation Session: drives the pipeline for exactly one compile call.

    Idle -> Parsing -> Analyzing -> Generating -> Done
                  \\-> Cancelled (cancellation observed before generation)

Cancellation is cooperative. The token is polled after the Block Splitter,
after the Script Analyzer and after the Template Compiler, never mid-stage.
"""

import logging
import threading
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from ..codegen.assembler import CodegenAssembler, ModuleParts
from ..parsing.block_splitter import BlockSplitter, SfcDescriptor, merge_scripts
from ..script.analyzer import ScriptAnalysis, ScriptAnalyzer
from ..script.bindings import BindingTable, build_binding_table
from ..script.transform import SetupTransformer, transform_options_script
from ..style.extractor import StyleExtraction, StyleExtractor, StyleTransformer
from ..template.codegen import TemplateCompiler, TemplateOutput
from ..template.expressions import ExpressionCompiler
from ..template.helpers import HelperRegistry
from ..template.scope import BindingResolver
from .config import CompilerConfig
from .diagnostics import ByteOffsets, DiagnosticKind, DiagnosticsCollector
from .exceptions import CompilationCancelled, SFCCompilationError, SFCError, SFCSessionError
from .models import CompileOptions, CompileResult

logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = "idle"
    PARSING = "parsing"
    ANALYZING = "analyzing"
    GENERATING = "generating"
    DONE = "done"
    CANCELLED = "cancelled"


_TRANSITIONS: Dict[SessionState, FrozenSet[SessionState]] = {
    SessionState.IDLE: frozenset({SessionState.PARSING}),
    SessionState.PARSING: frozenset({SessionState.ANALYZING, SessionState.CANCELLED, SessionState.DONE}),
    SessionState.ANALYZING: frozenset({SessionState.GENERATING, SessionState.CANCELLED, SessionState.DONE}),
    SessionState.GENERATING: frozenset({SessionState.DONE}),
    SessionState.DONE: frozenset(),
    SessionState.CANCELLED: frozenset(),
}

# Diagnostic kind for an SFCError escaping a stage.
_STAGE_KINDS = {
    "parse": DiagnosticKind.MALFORMED_DOCUMENT,
    "script": DiagnosticKind.SCRIPT_PARSE_ERROR,
    "template": DiagnosticKind.TEMPLATE_PARSE_ERROR,
    "style": DiagnosticKind.STYLE_TRANSFORM_ERROR,
}


class CancellationToken:
    """Thread-safe flag a caller sets to cancel an asynchronous compile."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.is_cancelled})"


class CompilationSession:
    """Single-use orchestrator of one compile call."""

    def __init__(
        self,
        source: str,
        options: CompileOptions,
        config: CompilerConfig,
        style_transformer: Optional[StyleTransformer] = None,
        token: Optional[CancellationToken] = None,
    ):
        self.source = source
        self.options = options
        self.config = config
        self.style_transformer = style_transformer
        self.token = token

        self.diagnostics = DiagnosticsCollector()
        self.offsets = ByteOffsets(source)
        self.helpers = HelperRegistry()
        self._state = SessionState.IDLE
        self.history: List[SessionState] = [SessionState.IDLE]

    @property
    def state(self) -> SessionState:
        return self._state

    def _transition(self, state: SessionState) -> None:
        if state not in _TRANSITIONS[self._state]:
            raise SFCSessionError(
                f"Invalid session transition {self._state.value} -> {state.value}",
                current_state=self._state.value,
                requested_state=state.value,
            )
        logger.debug("Session %s: %s -> %s", self.options.filename, self._state.value, state.value)
        self._state = state
        self.history.append(state)

    def _checkpoint(self, stage: str) -> None:
        if self.token is not None and self.token.is_cancelled:
            self._transition(SessionState.CANCELLED)
            logger.debug("Compilation of %s cancelled after %s", self.options.filename, stage)
            raise CompilationCancelled(stage=stage, filename=self.options.filename)

    def run(self) -> CompileResult:
        """Run the pipeline; raises CompilationCancelled when the token fires."""
        if self._state is not SessionState.IDLE:
            raise SFCSessionError(
                "A compilation session can only be run once",
                current_state=self._state.value,
                requested_state=SessionState.PARSING.value,
            )

        self._transition(SessionState.PARSING)
        descriptor: Optional[SfcDescriptor] = None
        try:
            descriptor = self._parse()
            if self.diagnostics.is_fatal:
                return self._fatal_result(descriptor)
            self._checkpoint("block splitter")

            self._transition(SessionState.ANALYZING)
            analysis, table = self._analyze(descriptor)
            self._checkpoint("script analyzer")

            extraction = self._extract_styles(descriptor)
            template = self._compile_template(descriptor, analysis, table)
            self._checkpoint("template compiler")

            self._transition(SessionState.GENERATING)
            return self._generate(descriptor, analysis, table, template, extraction)
        except SFCSessionError:
            raise
        except SFCError as e:
            return self._error_result(e, descriptor)

    # ----------------------------------------------------------------- stages

    def _parse(self) -> SfcDescriptor:
        size = len(self.source.encode("utf-8"))
        if size > self.config.max_source_size:
            raise SFCCompilationError(
                f"Source is {size} bytes, larger than the {self.config.max_source_size} byte limit",
                stage="parse",
                lo=0,
                hi=size,
                fatal=True,
            )
        return BlockSplitter(self.diagnostics).split(self.source)

    def _analyze(self, descriptor: SfcDescriptor) -> Tuple[ScriptAnalysis, BindingTable]:
        merged = merge_scripts(descriptor)
        analysis = ScriptAnalyzer(self.diagnostics, self.options.destructure_mode).analyze(merged)
        table = build_binding_table(analysis.records)
        logger.debug("Binding table for %s: %r", self.options.filename, table)
        return analysis, table

    def _extract_styles(self, descriptor: SfcDescriptor) -> StyleExtraction:
        extractor = StyleExtractor(self.diagnostics, self.config, self.style_transformer)
        return extractor.extract(list(descriptor.styles), self.options)

    def _compile_template(
        self,
        descriptor: SfcDescriptor,
        analysis: ScriptAnalysis,
        table: BindingTable,
    ) -> Optional[TemplateOutput]:
        if descriptor.template is None:
            return None
        compiler = TemplateCompiler(
            table,
            self.helpers,
            self.diagnostics,
            self.offsets,
            inline=analysis.has_setup,
            lang=analysis.lang,
            hoist_static=self.config.hoists_static,
            condense_whitespace=self.config.template.condense_whitespace,
            keep_comments=self.config.keep_comments,
        )
        return compiler.compile(descriptor.template)

    def _generate(
        self,
        descriptor: SfcDescriptor,
        analysis: ScriptAnalysis,
        table: BindingTable,
        template: Optional[TemplateOutput],
        extraction: StyleExtraction,
    ) -> CompileResult:
        parts = ModuleParts(analysis=analysis, table=table, template=template)
        parts.has_scoped_style = extraction.has_scoped

        if analysis.setup is not None:
            transformer = SetupTransformer(analysis.setup, self.options.destructure_mode, self.helpers)
            parts.setup = transformer.transform()
        if analysis.options is not None:
            parts.options_code, parts.has_default_export = transform_options_script(analysis.options)

        if extraction.css_vars:
            # Options-only components read CSS variables off the instance.
            resolver_table = table if analysis.has_setup else build_binding_table([])
            resolver = BindingResolver(resolver_table, self.helpers, inline=True)
            expressions = ExpressionCompiler(
                resolver,
                self.diagnostics,
                self.offsets,
                analysis.lang,
                report_unresolved=analysis.has_setup,
            )
            parts.css_vars = [
                (var.name, expressions.expression(var.expression, var.exp_start)) for var in extraction.css_vars
            ]

        module = CodegenAssembler(self.options, self.helpers).assemble(parts)
        self._transition(SessionState.DONE)
        return CompileResult(
            code=module.code,
            styles=tuple(extraction.styles),
            errors=self.diagnostics.snapshot(),
            custom_blocks=descriptor.custom_blocks,
            source_map=None,
            setup_bindings=module.setup_bindings,
        )

    # ---------------------------------------------------------------- results

    def _fatal_result(self, descriptor: Optional[SfcDescriptor]) -> CompileResult:
        self._transition(SessionState.DONE)
        return CompileResult(
            code="",
            errors=self.diagnostics.snapshot(),
            custom_blocks=descriptor.custom_blocks if descriptor is not None else (),
        )

    def _error_result(self, error: SFCError, descriptor: Optional[SfcDescriptor]) -> CompileResult:
        stage = getattr(error, "stage", None)
        kind = _STAGE_KINDS.get(stage or "", DiagnosticKind.MALFORMED_DOCUMENT)
        lo = getattr(error, "lo", 0)
        hi = getattr(error, "hi", 0)
        logger.debug("Stage %s failed: %s", stage, error.message)
        self.diagnostics.report_fatal(kind, lo, hi, error.message)
        return self._fatal_result(descriptor)
