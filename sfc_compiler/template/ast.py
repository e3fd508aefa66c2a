"""
Template syntax tree.

Positions are character indices into the whole component source; the
template compiler converts them to byte offsets when reporting.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

_WHITESPACE = re.compile(r"[\t\r\n\f ]*")


class ElementType(Enum):
    ELEMENT = "element"
    COMPONENT = "component"
    SLOT = "slot"
    TEMPLATE = "template"


@dataclass
class Attribute:
    """A plain `name="value"` attribute."""

    name: str
    value: Optional[str]
    start: int
    end: int


@dataclass
class Directive:
    """`v-name:arg.modifiers="exp"` in any of its shorthand forms."""

    name: str
    raw_name: str
    start: int
    end: int
    exp: Optional[str] = None
    exp_start: int = 0
    arg: Optional[str] = None
    is_static_arg: bool = True
    modifiers: List[str] = field(default_factory=list)

    @property
    def has_exp(self) -> bool:
        return self.exp is not None and self.exp.strip() != ""


Prop = Union[Attribute, Directive]


@dataclass
class TextNode:
    content: str
    start: int
    end: int

    @property
    def is_whitespace(self) -> bool:
        return _WHITESPACE.fullmatch(self.content) is not None


@dataclass
class InterpolationNode:
    expression: str
    start: int
    end: int
    exp_start: int


@dataclass
class CommentNode:
    content: str
    start: int
    end: int


@dataclass
class ElementNode:
    tag: str
    start: int
    end: int
    props: List[Prop] = field(default_factory=list)
    children: List["TemplateChild"] = field(default_factory=list)
    element_type: ElementType = ElementType.ELEMENT
    is_self_closing: bool = False
    in_pre: bool = False

    def directive(self, name: str) -> Optional[Directive]:
        for prop in self.props:
            if isinstance(prop, Directive) and prop.name == name:
                return prop
        return None

    def attribute(self, name: str) -> Optional[Attribute]:
        for prop in self.props:
            if isinstance(prop, Attribute) and prop.name == name:
                return prop
        return None

    def take_directive(self, name: str) -> Optional[Directive]:
        """Remove and return the first directive with the given name."""
        for index, prop in enumerate(self.props):
            if isinstance(prop, Directive) and prop.name == name:
                return self.props.pop(index)  # type: ignore[return-value]
        return None

    def has_dynamic_props(self) -> bool:
        return any(isinstance(prop, Directive) for prop in self.props)


TemplateChild = Union[ElementNode, TextNode, InterpolationNode, CommentNode]


@dataclass
class RootNode:
    children: List[TemplateChild] = field(default_factory=list)
    start: int = 0
    end: int = 0
