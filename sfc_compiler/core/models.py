"""
Data models for the SFC compiler.

All entities are created fresh for one compile call and are not mutated once
the call returns.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Union

from .exceptions import SFCConfigurationError

if TYPE_CHECKING:
    from ..script.bindings import BindingTable
    from .diagnostics import Diagnostic

_JS_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")


@dataclass(frozen=True)
class SourceSpan:
    """Half-open byte range `[lo, hi)` into the original source."""

    lo: int
    hi: int

    def __post_init__(self) -> None:
        if self.lo < 0 or self.hi < self.lo:
            raise ValueError(f"Invalid span: {self.lo}..{self.hi}")

    def __len__(self) -> int:
        return self.hi - self.lo

    def shift(self, offset: int) -> "SourceSpan":
        return SourceSpan(self.lo + offset, self.hi + offset)

    def contains(self, other: "SourceSpan") -> bool:
        return self.lo <= other.lo and other.hi <= self.hi


class BlockKind(Enum):
    """Top-level block types of a single-file component."""

    TEMPLATE = "template"
    SCRIPT = "script"
    STYLE = "style"
    CUSTOM = "custom"


AttributeValue = Union[str, bool]


@dataclass(frozen=True)
class Block:
    """A top-level block with its raw inner content.

    `span` covers the inner content in bytes, `outer_span` the whole element
    including its tags. `content_index` is the character index of the content
    in the source, used to map nested offsets back to bytes.
    """

    content: str
    span: SourceSpan
    outer_span: SourceSpan
    content_index: int = 0
    attrs: Dict[str, AttributeValue] = field(default_factory=dict)

    kind = BlockKind.CUSTOM

    @property
    def lang(self) -> Optional[str]:
        value = self.attrs.get("lang")
        return value if isinstance(value, str) and value else None

    @property
    def src(self) -> Optional[str]:
        value = self.attrs.get("src")
        return value if isinstance(value, str) else None


@dataclass(frozen=True)
class TemplateBlock(Block):
    kind = BlockKind.TEMPLATE


@dataclass(frozen=True)
class ScriptBlock(Block):
    kind = BlockKind.SCRIPT

    @property
    def is_setup(self) -> bool:
        return "setup" in self.attrs

    @property
    def is_typescript(self) -> bool:
        return self.lang in {"ts", "tsx"}


@dataclass(frozen=True)
class StyleBlock(Block):
    kind = BlockKind.STYLE

    is_compiled: bool = False

    @property
    def is_scoped(self) -> bool:
        return "scoped" in self.attrs

    @property
    def is_module(self) -> bool:
        return "module" in self.attrs


@dataclass(frozen=True)
class CustomBlock(Block):
    kind = BlockKind.CUSTOM

    tag_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "lo": self.span.lo,
            "hi": self.span.hi,
            "tagName": self.tag_name,
        }


class PropsDestructureMode(Enum):
    """How `<script setup>` props destructuring is treated."""

    OFF = "off"
    ON = "on"
    ERROR = "error"

    @classmethod
    def from_value(cls, value: Union[bool, str, "PropsDestructureMode"]) -> "PropsDestructureMode":
        """Accept the `false | true | 'error'` form as well as the enum itself."""
        if isinstance(value, cls):
            return value
        if value is True:
            return cls.ON
        if value is False:
            return cls.OFF
        if isinstance(value, str):
            lowered = value.lower()
            for mode in cls:
                if mode.value == lowered:
                    return mode
            if lowered in {"true", "false"}:
                return cls.ON if lowered == "true" else cls.OFF
        raise SFCConfigurationError(
            f"Invalid propsDestructure value: {value!r}",
            config_key="props_destructure",
            config_value=value,
            valid_values=["False", "True", "'error'"],
        )


@dataclass(frozen=True)
class CompileOptions:
    """Per-call options. Immutable for the duration of one compile call."""

    id: str = ""
    filename: str = "anonymous.vue"
    is_custom_element: bool = False
    gen_default_as: Optional[str] = None
    props_destructure: Union[bool, str, PropsDestructureMode] = PropsDestructureMode.ON
    output_setup_bindings: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "props_destructure", PropsDestructureMode.from_value(self.props_destructure)
        )

        if self.gen_default_as is not None and not _JS_IDENTIFIER.match(self.gen_default_as):
            raise SFCConfigurationError(
                f"genDefaultAs must be a valid identifier, got {self.gen_default_as!r}",
                config_key="gen_default_as",
                config_value=self.gen_default_as,
            )

    @property
    def destructure_mode(self) -> PropsDestructureMode:
        assert isinstance(self.props_destructure, PropsDestructureMode)
        return self.props_destructure

    @property
    def scope_id(self) -> str:
        """Scope attribute name used for scoped styles."""
        return f"data-v-{self.id}"


@dataclass(frozen=True)
class StyleOutput:
    """A style block as handed back to the caller."""

    code: str
    lang: str
    is_scoped: bool
    is_compiled: bool
    is_module: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "isCompiled": self.is_compiled,
            "lang": self.lang,
            "isScoped": self.is_scoped,
        }


@dataclass(frozen=True)
class CompileResult:
    """Result of one compile call."""

    code: str
    styles: Tuple[StyleOutput, ...] = ()
    errors: Tuple["Diagnostic", ...] = ()
    custom_blocks: Tuple[CustomBlock, ...] = ()
    source_map: Optional[str] = None
    setup_bindings: Optional["BindingTable"] = None

    @property
    def has_errors(self) -> bool:
        """True when at least one error-severity diagnostic was reported."""
        return any(d.is_error for d in self.errors)

    @property
    def warnings(self) -> List["Diagnostic"]:
        return [d for d in self.errors if not d.is_error]

    def get_summary(self) -> Dict[str, Any]:
        """Get compilation summary."""
        return {
            "success": not self.has_errors,
            "code_length": len(self.code),
            "styles_count": len(self.styles),
            "custom_blocks_count": len(self.custom_blocks),
            "errors_count": sum(1 for d in self.errors if d.is_error),
            "warnings_count": len(self.warnings),
            "bindings_count": len(self.setup_bindings) if self.setup_bindings is not None else 0,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the field names external tooling expects."""
        result: Dict[str, Any] = {
            "code": self.code,
            "styles": [style.to_dict() for style in self.styles],
            "errors": [diagnostic.to_dict() for diagnostic in self.errors],
            "customBlocks": [block.to_dict() for block in self.custom_blocks],
        }
        if self.source_map is not None:
            result["sourceMap"] = self.source_map
        if self.setup_bindings is not None:
            result["setupBindings"] = self.setup_bindings.to_dict()
        return result
