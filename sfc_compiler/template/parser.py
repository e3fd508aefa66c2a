"""
Template parser.

Hand-written because templates are case and attribute sensitive in ways an
HTML5 parser normalises away (`@click`, `:prop`, `#slot`, PascalCase tags).
"""

import html
import logging
import re
from typing import List, Optional, Tuple

from ..core.diagnostics import ByteOffsets, DiagnosticKind, DiagnosticsCollector
from ..core.models import TemplateBlock
from .ast import (
    Attribute,
    CommentNode,
    Directive,
    ElementNode,
    ElementType,
    InterpolationNode,
    Prop,
    RootNode,
    TemplateChild,
    TextNode,
)
from .helpers import BUILTIN_COMPONENTS

logger = logging.getLogger(__name__)

VOID_ELEMENTS = frozenset(
    "area,base,br,col,embed,hr,img,input,link,meta,param,source,track,wbr".split(",")
)

HTML_TAGS = frozenset(
    (
        "html,body,base,head,link,meta,style,title,address,article,aside,footer,header,hgroup,h1,h2,"
        "h3,h4,h5,h6,nav,section,div,dd,dl,dt,figcaption,figure,picture,hr,img,li,main,ol,p,pre,ul,a,"
        "b,abbr,bdi,bdo,br,cite,code,data,dfn,em,i,kbd,mark,q,rp,rt,ruby,s,samp,small,span,strong,"
        "sub,sup,time,u,var,wbr,area,audio,map,track,video,embed,object,param,source,canvas,script,"
        "noscript,del,ins,caption,col,colgroup,table,thead,tbody,td,th,tr,button,datalist,fieldset,"
        "form,input,label,legend,meter,optgroup,option,output,progress,select,textarea,details,"
        "dialog,menu,summary,template,blockquote,iframe,tfoot,search"
    ).split(",")
)

SVG_TAGS = frozenset(
    (
        "svg,animate,animateMotion,animateTransform,circle,clipPath,color-profile,defs,desc,"
        "discard,ellipse,feBlend,feColorMatrix,feComponentTransfer,feComposite,feConvolveMatrix,"
        "feDiffuseLighting,feDisplacementMap,feDistantLight,feDropShadow,feFlood,feFuncA,feFuncB,"
        "feFuncG,feFuncR,feGaussianBlur,feImage,feMerge,feMergeNode,feMorphology,feOffset,"
        "fePointLight,feSpecularLighting,feSpotLight,feTile,feTurbulence,filter,foreignObject,g,"
        "hatch,hatchpath,image,line,linearGradient,marker,mask,mesh,meshgradient,meshpatch,meshrow,"
        "metadata,mpath,path,pattern,polygon,polyline,radialGradient,rect,set,solidcolor,stop,"
        "switch,symbol,text,textPath,title,tspan,unknown,use,view"
    ).split(",")
)

_TAG_NAME = re.compile(r"[A-Za-z][^\s/>]*")
_ATTR_NAME = re.compile(r"[^\s\"'<>/=]+")
_UNQUOTED_VALUE = re.compile(r"[^\s\"'=<>`]+")
_DIRECTIVE_START = re.compile(r"^(v-[A-Za-z0-9-]|:|\.|@|#)")
_DIRECTIVE = re.compile(
    r"(?:^v-([a-z0-9-]+))?(?:(?::|^\.|^@|^#)(\[[^\]]+\]|[^.]+))?(.+)?$", re.IGNORECASE
)
_CONDENSE = re.compile(r"[\t\r\n\f ]+")
_STRUCTURAL = {"if", "else-if", "else", "for", "slot"}


def is_native_tag(tag: str) -> bool:
    return tag in HTML_TAGS or tag in SVG_TAGS


class TemplateParser:
    """Parses a template block into a RootNode, reporting syntax errors."""

    def __init__(
        self,
        diagnostics: DiagnosticsCollector,
        offsets: ByteOffsets,
        condense_whitespace: bool = True,
        keep_comments: bool = True,
    ):
        self.diagnostics = diagnostics
        self.offsets = offsets
        self.condense_whitespace = condense_whitespace
        self.keep_comments = keep_comments

    def parse(self, block: TemplateBlock) -> RootNode:
        source = block.content
        base = block.content_index
        length = len(source)
        root = RootNode(start=base, end=base + length)
        stack: List[ElementNode] = []
        pre_depth = 0  # inside <pre>
        v_pre: Optional[ElementNode] = None
        pos = 0

        def children() -> List[TemplateChild]:
            return stack[-1].children if stack else root.children

        while pos < length:
            if v_pre is None and source.startswith("{{", pos):
                end = source.find("}}", pos + 2)
                if end == -1:
                    self._error(base + pos, base + length, "Interpolation end sign was not found.")
                    self._add_text(children(), source[pos:], base + pos, base + length)
                    break
                children().append(
                    InterpolationNode(
                        expression=source[pos + 2 : end],
                        start=base + pos,
                        end=base + end + 2,
                        exp_start=base + pos + 2,
                    )
                )
                pos = end + 2
                continue

            if source.startswith("<!--", pos):
                end = source.find("-->", pos + 4)
                if end == -1:
                    self._error(base + pos, base + length, "Unterminated comment.")
                    break
                children().append(CommentNode(source[pos + 4 : end], base + pos, base + end + 3))
                pos = end + 3
                continue

            if source.startswith("</", pos) and _TAG_NAME.match(source, pos + 2):
                name_match = _TAG_NAME.match(source, pos + 2)
                assert name_match is not None
                tag = name_match.group(0)
                close = source.find(">", name_match.end())
                close = length if close == -1 else close + 1
                index = _find_open(stack, tag)
                if index is None:
                    self._error(base + pos, base + close, f"Invalid end tag </{tag}>.")
                else:
                    while len(stack) > index + 1:
                        unclosed = stack.pop()
                        self._error(unclosed.start, base + pos, f"Element <{unclosed.tag}> is missing end tag.")
                        unclosed.end = base + pos
                    element = stack.pop()
                    element.end = base + close
                    if element is v_pre:
                        v_pre = None
                    if element.tag == "pre":
                        pre_depth -= 1
                pos = close
                continue

            if source.startswith("<", pos) and _TAG_NAME.match(source, pos + 1):
                name_match = _TAG_NAME.match(source, pos + 1)
                assert name_match is not None
                tag = name_match.group(0)
                parsed = self._parse_attributes(source, name_match.end(), base, v_pre is not None)
                if parsed is None:
                    self._error(base + pos, base + length, f"Unterminated start tag <{tag}>.")
                    break
                end, props, self_closing = parsed

                element = ElementNode(
                    tag=tag,
                    start=base + pos,
                    end=base + end,
                    props=props,
                    is_self_closing=self_closing,
                    in_pre=pre_depth > 0,
                )
                entering_v_pre = v_pre is None and _strip_v_pre(element)
                element.element_type = _element_type(element)
                children().append(element)

                if not self_closing and tag.lower() not in VOID_ELEMENTS:
                    stack.append(element)
                    if entering_v_pre:
                        v_pre = element
                    if tag == "pre":
                        pre_depth += 1
                pos = end
                continue

            # Plain text up to the next tag or interpolation.
            next_tag = source.find("<", pos + 1)
            next_tag = length if next_tag == -1 else next_tag
            if v_pre is None:
                next_interp = source.find("{{", pos)
                if pos < next_interp < next_tag:
                    next_tag = next_interp
            self._add_text(children(), source[pos:next_tag], base + pos, base + next_tag)
            pos = next_tag

        while stack:
            unclosed = stack.pop()
            self._error(unclosed.start, base + length, f"Element <{unclosed.tag}> is missing end tag.")
            unclosed.end = base + length

        root.children = self._condense(root.children, in_pre=False)
        logger.debug("Parsed template with %d root nodes", len(root.children))
        return root

    def _error(self, start: int, end: int, message: str) -> None:
        self.diagnostics.report(
            DiagnosticKind.TEMPLATE_PARSE_ERROR, self.offsets(start), self.offsets(end), message
        )

    def _add_text(self, children: List[TemplateChild], raw: str, start: int, end: int) -> None:
        content = html.unescape(raw)
        if children and isinstance(children[-1], TextNode) and children[-1].end == start:
            previous = children[-1]
            previous.content += content
            previous.end = end
            return
        children.append(TextNode(content, start, end))

    def _parse_attributes(
        self, source: str, index: int, base: int, in_v_pre: bool
    ) -> Optional[Tuple[int, List[Prop], bool]]:
        props: List[Prop] = []
        length = len(source)

        while index < length:
            char = source[index]
            if char.isspace():
                index += 1
                continue
            if char == ">":
                return index + 1, props, False
            if source.startswith("/>", index):
                return index + 2, props, True
            if char == "/":
                index += 1
                continue

            name_match = _ATTR_NAME.match(source, index)
            if name_match is None:
                index += 1
                continue
            name = name_match.group(0)
            attr_start = index
            index = name_match.end()
            value: Optional[str] = None
            value_start = index

            probe = index
            while probe < length and source[probe].isspace():
                probe += 1
            if probe < length and source[probe] == "=":
                probe += 1
                while probe < length and source[probe].isspace():
                    probe += 1
                if probe >= length:
                    return None
                quote = source[probe]
                if quote in "\"'":
                    end = source.find(quote, probe + 1)
                    if end == -1:
                        return None
                    value = source[probe + 1 : end]
                    value_start = probe + 1
                    index = end + 1
                else:
                    value_match = _UNQUOTED_VALUE.match(source, probe)
                    value = value_match.group(0) if value_match else ""
                    value_start = probe
                    index = probe + max(len(value), 1)

            decoded = html.unescape(value) if value is not None else None
            props.append(
                self._make_prop(name, decoded, base + attr_start, base + index, base + value_start, in_v_pre)
            )

        return None

    def _make_prop(
        self,
        name: str,
        value: Optional[str],
        start: int,
        end: int,
        value_start: int,
        in_v_pre: bool,
    ) -> Prop:
        if in_v_pre or not _DIRECTIVE_START.match(name):
            return Attribute(name=name, value=value, start=start, end=end)

        match = _DIRECTIVE.match(name)
        assert match is not None
        is_prop_shorthand = name.startswith(".")
        if match.group(1):
            directive_name = match.group(1)
        elif is_prop_shorthand or name.startswith(":"):
            directive_name = "bind"
        elif name.startswith("@"):
            directive_name = "on"
        else:
            directive_name = "slot"

        arg = match.group(2)
        is_static_arg = True
        if arg is not None and arg.startswith("["):
            is_static_arg = False
            if not arg.endswith("]"):
                self._error(start, end, "Missing end bracket for dynamic directive argument.")
                arg = arg[1:]
            else:
                arg = arg[1:-1]

        modifiers = match.group(3)[1:].split(".") if match.group(3) else []
        if is_prop_shorthand:
            modifiers.append("prop")

        return Directive(
            name=directive_name,
            raw_name=name,
            start=start,
            end=end,
            exp=value,
            exp_start=value_start,
            arg=arg,
            is_static_arg=is_static_arg,
            modifiers=[m for m in modifiers if m],
        )

    def _condense(self, nodes: List[TemplateChild], in_pre: bool) -> List[TemplateChild]:
        """Whitespace handling and comment removal, applied depth first."""
        kept: List[Optional[TemplateChild]] = list(nodes)

        for index, node in enumerate(kept):
            if isinstance(node, ElementNode):
                node.children = self._condense(node.children, in_pre or node.tag == "pre")
                continue
            if isinstance(node, CommentNode):
                if not self.keep_comments:
                    kept[index] = None
                continue
            if not isinstance(node, TextNode) or in_pre:
                continue

            if node.is_whitespace:
                prev = kept[index - 1] if index > 0 else None
                nxt = kept[index + 1] if index + 1 < len(kept) else None
                condense = self.condense_whitespace
                if (
                    prev is None
                    or nxt is None
                    or (
                        condense
                        and (
                            (isinstance(prev, CommentNode) and isinstance(nxt, (CommentNode, ElementNode)))
                            or (
                                isinstance(prev, ElementNode)
                                and (
                                    isinstance(nxt, CommentNode)
                                    or (isinstance(nxt, ElementNode) and _has_newline(node.content))
                                )
                            )
                        )
                    )
                ):
                    kept[index] = None
                else:
                    node.content = " "
            elif self.condense_whitespace:
                node.content = _CONDENSE.sub(" ", node.content)

        result = [node for node in kept if node is not None]

        if in_pre and result and isinstance(result[0], TextNode) and result[0].content.startswith("\n"):
            first = result[0]
            first.content = first.content[1:]
            if not first.content:
                result.pop(0)
        return result


def _find_open(stack: List[ElementNode], tag: str) -> Optional[int]:
    for index in range(len(stack) - 1, -1, -1):
        if stack[index].tag.lower() == tag.lower():
            return index
    return None


def _has_newline(text: str) -> bool:
    return "\n" in text or "\r" in text


def _strip_v_pre(element: ElementNode) -> bool:
    """Drop a `v-pre` attribute, turning the element's directives into plain attributes."""
    for index, prop in enumerate(element.props):
        if isinstance(prop, Directive) and prop.name == "pre":
            del element.props[index]
            element.props = [
                Attribute(p.raw_name, p.exp, p.start, p.end) if isinstance(p, Directive) else p
                for p in element.props
            ]
            return True
    return False


def _element_type(element: ElementNode) -> ElementType:
    tag = element.tag
    if tag == "slot":
        return ElementType.SLOT
    if tag == "template":
        if any(isinstance(p, Directive) and p.name in _STRUCTURAL for p in element.props):
            return ElementType.TEMPLATE
        return ElementType.ELEMENT
    if tag == "component" or tag in BUILTIN_COMPONENTS or tag[0].isupper():
        return ElementType.COMPONENT
    if is_native_tag(tag):
        return ElementType.ELEMENT
    return ElementType.COMPONENT
