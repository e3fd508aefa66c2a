"""
Diagnostics for the SFC compiler.

Every stage reports problems into a shared collector instead of raising, so a
single compile call can surface several independent issues at once.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Tuple

from .models import SourceSpan

logger = logging.getLogger(__name__)


class DiagnosticKind(Enum):
    """Taxonomy of diagnostics produced by the pipeline."""

    MALFORMED_DOCUMENT = "malformed-document"
    SCRIPT_PARSE_ERROR = "script-parse-error"
    TEMPLATE_PARSE_ERROR = "template-parse-error"
    PROPS_DESTRUCTURE_ERROR = "props-destructure-error"
    UNRESOLVED_BINDING_WARNING = "unresolved-binding-warning"
    STYLE_TRANSFORM_ERROR = "style-transform-error"


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


_DEFAULT_SEVERITY = {
    DiagnosticKind.MALFORMED_DOCUMENT: Severity.ERROR,
    DiagnosticKind.SCRIPT_PARSE_ERROR: Severity.ERROR,
    DiagnosticKind.TEMPLATE_PARSE_ERROR: Severity.ERROR,
    DiagnosticKind.PROPS_DESTRUCTURE_ERROR: Severity.ERROR,
    DiagnosticKind.UNRESOLVED_BINDING_WARNING: Severity.WARNING,
    DiagnosticKind.STYLE_TRANSFORM_ERROR: Severity.ERROR,
}


@dataclass(frozen=True)
class Diagnostic:
    """A single problem found in the component source. Pure data."""

    span: SourceSpan
    message: str
    kind: DiagnosticKind
    severity: Severity = Severity.ERROR

    @property
    def lo(self) -> int:
        return self.span.lo

    @property
    def hi(self) -> int:
        return self.span.hi

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the wire shape `{lo, hi, message}`."""
        return {"lo": self.span.lo, "hi": self.span.hi, "message": self.message}


class DiagnosticsCollector:
    """Accumulates diagnostics in the order stages report them."""

    def __init__(self) -> None:
        self._diagnostics: List[Diagnostic] = []
        self._fatal = False

    def report(
        self,
        kind: DiagnosticKind,
        lo: int,
        hi: int,
        message: str,
    ) -> Diagnostic:
        diagnostic = Diagnostic(
            span=SourceSpan(lo, max(lo, hi)),
            message=message,
            kind=kind,
            severity=_DEFAULT_SEVERITY[kind],
        )
        self._diagnostics.append(diagnostic)
        logger.debug("%s at %d..%d: %s", kind.value, diagnostic.lo, diagnostic.hi, message)
        return diagnostic

    def report_fatal(self, kind: DiagnosticKind, lo: int, hi: int, message: str) -> Diagnostic:
        """Report a diagnostic that prevents code generation."""
        self._fatal = True
        return self.report(kind, lo, hi, message)

    @property
    def is_fatal(self) -> bool:
        return self._fatal

    @property
    def has_errors(self) -> bool:
        return any(d.is_error for d in self._diagnostics)

    def of_kind(self, kind: DiagnosticKind) -> List[Diagnostic]:
        return [d for d in self._diagnostics if d.kind is kind]

    def snapshot(self) -> Tuple[Diagnostic, ...]:
        return tuple(self._diagnostics)

    def __len__(self) -> int:
        return len(self._diagnostics)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(list(self._diagnostics))


class ByteOffsets:
    """Converts character indices of a source string into UTF-8 byte offsets."""

    def __init__(self, source: str):
        self._ascii = source.isascii()
        self._prefix: List[int] = []
        if not self._ascii:
            total = 0
            self._prefix.append(0)
            for char in source:
                total += len(char.encode("utf-8"))
                self._prefix.append(total)

    def __call__(self, index: int) -> int:
        if self._ascii:
            return index
        index = max(0, min(index, len(self._prefix) - 1))
        return self._prefix[index]

    def span(self, start: int, end: int) -> Tuple[int, int]:
        return self(start), self(end)
