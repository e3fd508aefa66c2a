"""
Block splitting for single-file components.

Separates the raw document into template, script, style and custom blocks,
each with byte spans into the original source. Text between blocks is ignored.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..core.diagnostics import ByteOffsets, DiagnosticKind, DiagnosticsCollector
from ..core.models import (
    AttributeValue,
    Block,
    CustomBlock,
    ScriptBlock,
    SourceSpan,
    StyleBlock,
    TemplateBlock,
)

logger = logging.getLogger(__name__)

_TAG_NAME = re.compile(r"[A-Za-z][\w:.-]*")
_ATTR_NAME = re.compile(r"[^\s\"'<>/=]+")
_UNQUOTED_VALUE = re.compile(r"[^\s\"'=<>`]+")
_TEMPLATE_TAGS = re.compile(r"<template(?=[\s/>])|</template\s*>", re.IGNORECASE)


@dataclass(frozen=True)
class SfcDescriptor:
    """The blocks of one component, as found in the document."""

    blocks: Tuple[Block, ...] = ()
    template: Optional[TemplateBlock] = None
    script: Optional[ScriptBlock] = None
    script_setup: Optional[ScriptBlock] = None
    styles: Tuple[StyleBlock, ...] = ()
    custom_blocks: Tuple[CustomBlock, ...] = ()

    @property
    def is_empty(self) -> bool:
        return self.template is None and self.script is None and self.script_setup is None


@dataclass(frozen=True)
class MergedScript:
    """`<script>` and `<script setup>` of one component, passed on together.

    Declarations of the setup block win over same-named declarations of the
    plain script when bindings are registered.
    """

    options: Optional[ScriptBlock] = None
    setup: Optional[ScriptBlock] = None

    @property
    def has_setup(self) -> bool:
        return self.setup is not None

    @property
    def is_empty(self) -> bool:
        return self.options is None and self.setup is None

    @property
    def lang(self) -> Optional[str]:
        for block in (self.setup, self.options):
            if block is not None and block.lang:
                return block.lang
        return None

    @property
    def is_typescript(self) -> bool:
        return self.lang in {"ts", "tsx"}

    def blocks(self) -> List[ScriptBlock]:
        return [block for block in (self.options, self.setup) if block is not None]


class BlockSplitter:
    """Splits raw SFC text into blocks, reporting malformed structure."""

    def __init__(self, diagnostics: DiagnosticsCollector):
        self.diagnostics = diagnostics

    def split(self, source: str) -> SfcDescriptor:
        offsets = ByteOffsets(source)
        blocks: List[Block] = []
        pos = 0
        length = len(source)

        while pos < length:
            lt = source.find("<", pos)
            if lt == -1:
                break

            if source.startswith("<!--", lt):
                end = source.find("-->", lt + 4)
                if end == -1:
                    self.diagnostics.report(
                        DiagnosticKind.MALFORMED_DOCUMENT,
                        offsets(lt),
                        offsets(length),
                        "Unexpected end of file inside a comment.",
                    )
                    break
                pos = end + 3
                continue

            if source.startswith("</", lt):
                end = source.find(">", lt)
                end = length if end == -1 else end + 1
                self.diagnostics.report(
                    DiagnosticKind.MALFORMED_DOCUMENT,
                    offsets(lt),
                    offsets(end),
                    "Invalid end tag at the top level of the component.",
                )
                pos = end
                continue

            name_match = _TAG_NAME.match(source, lt + 1)
            if name_match is None:
                pos = lt + 1
                continue

            tag = name_match.group(0)
            start_tag = self._parse_start_tag(source, name_match.end())
            if start_tag is None:
                self.diagnostics.report_fatal(
                    DiagnosticKind.MALFORMED_DOCUMENT,
                    offsets(lt),
                    offsets(length),
                    f"Unterminated start tag <{tag}>.",
                )
                break

            open_end, attrs, self_closing = start_tag
            if self_closing:
                close_start, close_end = open_end, open_end
            else:
                close = self._find_close(source, tag, open_end)
                if close is None:
                    # Span runs to end-of-document; blocks closed so far are kept.
                    self.diagnostics.report(
                        DiagnosticKind.MALFORMED_DOCUMENT,
                        offsets(lt),
                        offsets(length),
                        f"Element <{tag}> is missing end tag.",
                    )
                    break
                close_start, close_end = close

            block = self._make_block(
                tag,
                attrs,
                source[open_end:close_start],
                SourceSpan(*offsets.span(open_end, close_start)),
                SourceSpan(*offsets.span(lt, close_end)),
                open_end,
            )
            blocks.append(block)
            logger.debug("Split <%s> block at %d..%d", tag, block.span.lo, block.span.hi)
            pos = close_end

        return self._describe(blocks)

    def _parse_start_tag(
        self, source: str, index: int
    ) -> Optional[Tuple[int, Dict[str, AttributeValue], bool]]:
        """Parse attributes up to the closing `>` of a start tag."""
        attrs: Dict[str, AttributeValue] = {}
        length = len(source)

        while index < length:
            char = source[index]

            if char.isspace():
                index += 1
                continue

            if char == ">":
                return index + 1, attrs, False

            if source.startswith("/>", index):
                return index + 2, attrs, True

            if char == "/":
                index += 1
                continue

            name_match = _ATTR_NAME.match(source, index)
            if name_match is None:
                index += 1
                continue

            name = name_match.group(0)
            index = name_match.end()
            while index < length and source[index].isspace():
                index += 1

            if index < length and source[index] == "=":
                index += 1
                while index < length and source[index].isspace():
                    index += 1
                if index >= length:
                    return None
                quote = source[index]
                if quote in "\"'":
                    end = source.find(quote, index + 1)
                    if end == -1:
                        return None
                    attrs[name] = source[index + 1 : end]
                    index = end + 1
                else:
                    value_match = _UNQUOTED_VALUE.match(source, index)
                    value = value_match.group(0) if value_match else ""
                    attrs[name] = value
                    index += max(len(value), 1)
            else:
                attrs[name] = True

        return None

    def _find_close(self, source: str, tag: str, index: int) -> Optional[Tuple[int, int]]:
        """Find the matching end tag. Templates may nest `<template>` elements."""
        if tag.lower() == "template":
            depth = 1
            for match in _TEMPLATE_TAGS.finditer(source, index):
                if match.group(0).startswith("</"):
                    depth -= 1
                    if depth == 0:
                        return match.start(), match.end()
                else:
                    tag_end = source.find(">", match.end())
                    if tag_end != -1 and source[tag_end - 1] != "/":
                        depth += 1
            return None

        close = re.compile(rf"</{re.escape(tag)}\s*>", re.IGNORECASE).search(source, index)
        if close is None:
            return None
        return close.start(), close.end()

    def _make_block(
        self,
        tag: str,
        attrs: Dict[str, AttributeValue],
        content: str,
        span: SourceSpan,
        outer_span: SourceSpan,
        content_index: int,
    ) -> Block:
        kind = tag.lower()
        if kind == "template":
            return TemplateBlock(content, span, outer_span, content_index, attrs)
        if kind == "script":
            return ScriptBlock(content, span, outer_span, content_index, attrs)
        if kind == "style":
            return StyleBlock(content, span, outer_span, content_index, attrs)
        return CustomBlock(content, span, outer_span, content_index, attrs, tag_name=tag)

    def _describe(self, blocks: List[Block]) -> SfcDescriptor:
        template: Optional[TemplateBlock] = None
        script: Optional[ScriptBlock] = None
        script_setup: Optional[ScriptBlock] = None
        styles: List[StyleBlock] = []
        custom_blocks: List[CustomBlock] = []
        kept: List[Block] = []

        for block in blocks:
            if isinstance(block, TemplateBlock):
                if template is not None:
                    self._duplicate(block, "Single file component can contain only one <template> element.")
                    continue
                template = block
            elif isinstance(block, ScriptBlock):
                if block.is_setup:
                    if script_setup is not None:
                        self._duplicate(block, "Single file component can contain only one <script setup> element.")
                        continue
                    script_setup = block
                else:
                    if script is not None:
                        self._duplicate(block, "Single file component can contain only one <script> element.")
                        continue
                    script = block
            elif isinstance(block, StyleBlock):
                styles.append(block)
            elif isinstance(block, CustomBlock):
                custom_blocks.append(block)
            kept.append(block)

        if script is not None and script_setup is not None and script.lang != script_setup.lang:
            self.diagnostics.report(
                DiagnosticKind.MALFORMED_DOCUMENT,
                script_setup.outer_span.lo,
                script_setup.outer_span.hi,
                "<script> and <script setup> must have the same language type.",
            )

        return SfcDescriptor(
            blocks=tuple(kept),
            template=template,
            script=script,
            script_setup=script_setup,
            styles=tuple(styles),
            custom_blocks=tuple(custom_blocks),
        )

    def _duplicate(self, block: Block, message: str) -> None:
        self.diagnostics.report(
            DiagnosticKind.MALFORMED_DOCUMENT, block.outer_span.lo, block.outer_span.hi, message
        )


def merge_scripts(descriptor: SfcDescriptor) -> MergedScript:
    """Combine the plain and setup script blocks for the Script Analyzer."""
    return MergedScript(options=descriptor.script, setup=descriptor.script_setup)
