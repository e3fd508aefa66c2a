"""
Style Extractor: passes style blocks through with their flags.

CSS grammar is never interpreted here. The only rewrite is `v-bind(expr)`,
which becomes `var(--name)` and registers a CSS variable for `_useCssVars`.
An optional transformer (the external CSS collaborator) may post-process each
block; its output marks the block as compiled.
"""

import hashlib
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from ..core.config import CompilerConfig
from ..core.diagnostics import DiagnosticKind, DiagnosticsCollector
from ..core.exceptions import SFCError
from ..core.models import CompileOptions, StyleBlock, StyleOutput

logger = logging.getLogger(__name__)

StyleTransformer = Callable[[str, StyleBlock, CompileOptions], str]

_V_BIND = re.compile(r"v-bind\s*\(")
_ESCAPE = re.compile(r"[ !\"#$%&'()*+,./:;<=>?@\[\\\]^`{|}~]")
_COMMENT = re.compile(r"/\*[\s\S]*?\*/")


@dataclass(frozen=True)
class CssVar:
    """One `v-bind()` occurrence, deduplicated by expression."""

    name: str
    expression: str
    exp_start: int  # char index of the expression in the component source


@dataclass
class StyleExtraction:
    styles: List[StyleOutput] = field(default_factory=list)
    css_vars: List[CssVar] = field(default_factory=list)

    @property
    def has_scoped(self) -> bool:
        return any(style.is_scoped for style in self.styles)


def css_var_name(scope_id: str, expression: str, is_production: bool) -> str:
    """Variable name injected for a `v-bind()` expression (without the `--`)."""
    if is_production:
        return hashlib.sha256((scope_id + expression).encode("utf-8")).hexdigest()[:8]
    escaped = _ESCAPE.sub(lambda m: "\\" + m.group(0), expression)
    return f"{scope_id}-{escaped}"


def find_v_binds(css: str) -> List[Tuple[int, int, str, int]]:
    """Locate `v-bind(...)` calls.

    Returns (start, end, expression, expression offset) tuples with offsets
    relative to `css`. Quoted arguments are unquoted.
    """
    masked = _COMMENT.sub(lambda m: " " * len(m.group(0)), css)
    found = []
    for match in _V_BIND.finditer(masked):
        depth = 1
        quote: Optional[str] = None
        index = match.end()
        while index < len(masked) and depth:
            char = masked[index]
            if quote:
                if char == quote:
                    quote = None
            elif char in "'\"":
                quote = char
            elif char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
            index += 1
        if depth:
            break

        raw = css[match.end() : index - 1]
        stripped = raw.strip()
        offset = match.end() + (len(raw) - len(raw.lstrip()))
        if len(stripped) >= 2 and stripped[0] == stripped[-1] and stripped[0] in "'\"":
            stripped = stripped[1:-1]
            offset += 1
        found.append((match.start(), index, stripped, offset))
    return found


class StyleExtractor:
    """Collects style blocks and their CSS variables."""

    def __init__(
        self,
        diagnostics: DiagnosticsCollector,
        config: CompilerConfig,
        transformer: Optional[StyleTransformer] = None,
    ):
        self.diagnostics = diagnostics
        self.config = config
        self.transformer = transformer

    def extract(self, blocks: List[StyleBlock], options: CompileOptions) -> StyleExtraction:
        extraction = StyleExtraction()
        seen: Dict[str, str] = {}

        for block in blocks:
            code = block.content
            rewritten: List[str] = []
            cursor = 0
            for start, end, expression, exp_offset in find_v_binds(code):
                if expression not in seen:
                    name = css_var_name(options.id, expression, self.config.is_production)
                    seen[expression] = name
                    extraction.css_vars.append(
                        CssVar(name, expression, block.content_index + exp_offset)
                    )
                rewritten.append(code[cursor:start])
                rewritten.append(f"var(--{seen[expression]})")
                cursor = end
            rewritten.append(code[cursor:])
            code = "".join(rewritten)

            if self.config.style.trim:
                code = code.strip()

            is_compiled = False
            if self.transformer is not None:
                code, is_compiled = self._transform(code, block, options)

            extraction.styles.append(
                StyleOutput(
                    code=code,
                    lang=block.lang or "css",
                    is_scoped=block.is_scoped,
                    is_compiled=is_compiled,
                    is_module=block.is_module,
                )
            )

        logger.debug(
            "Extracted %d style blocks with %d CSS variables",
            len(extraction.styles),
            len(extraction.css_vars),
        )
        return extraction

    def _transform(self, code: str, block: StyleBlock, options: CompileOptions) -> Tuple[str, bool]:
        try:
            transformed = self.transformer(code, block, options)  # type: ignore[misc]
        except (SFCError, ValueError, TypeError, RuntimeError) as e:
            self.diagnostics.report(
                DiagnosticKind.STYLE_TRANSFORM_ERROR,
                block.span.lo,
                block.span.hi,
                f"Style transform failed: {e}",
            )
            return code, False

        if not isinstance(transformed, str):
            self.diagnostics.report(
                DiagnosticKind.STYLE_TRANSFORM_ERROR,
                block.span.lo,
                block.span.hi,
                f"Style transformer returned {type(transformed).__name__}, expected str",
            )
            return code, False
        return transformed, True
