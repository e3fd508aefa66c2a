"""
Global configuration for the SFC compiler.

One CompilerConfig applies to every call made through a compiler instance.
"""

import os
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from .exceptions import SFCConfigurationError


@dataclass
class ScriptOptions:
    """Script block compilation options."""

    hoist_static: bool = True
    source_map: bool = False  # reserved


@dataclass
class TemplateOptions:
    """Template block compilation options."""

    condense_whitespace: bool = True
    keep_comments: Optional[bool] = None  # None: keep outside production


@dataclass
class StyleOptions:
    """Style block options."""

    trim: bool = False  # strip surrounding whitespace of each style block


@dataclass
class CompilerConfig:
    """Main compiler configuration class."""

    is_production: bool = False
    ssr: bool = False  # reserved, not implemented
    source_map: bool = False  # reserved, not implemented

    script: ScriptOptions = field(default_factory=ScriptOptions)
    template: TemplateOptions = field(default_factory=TemplateOptions)
    style: StyleOptions = field(default_factory=StyleOptions)

    max_source_size: int = 5 * 1024 * 1024  # 5MB

    @classmethod
    def from_environment(cls) -> "CompilerConfig":
        """Create config from environment variables."""
        config = cls()

        if os.getenv("SFC_PRODUCTION") == "true":
            config.is_production = True

        if os.getenv("SFC_SSR") == "true":
            config.ssr = True

        if os.getenv("SFC_SOURCE_MAP") == "true":
            config.source_map = True

        if os.getenv("SFC_HOIST_STATIC") == "false":
            config.script.hoist_static = False

        if keep_comments := os.getenv("SFC_KEEP_COMMENTS"):
            config.template.keep_comments = keep_comments == "true"

        if max_size := os.getenv("SFC_MAX_SOURCE_SIZE"):
            try:
                config.max_source_size = int(max_size)
            except ValueError:
                raise SFCConfigurationError(
                    f"SFC_MAX_SOURCE_SIZE must be an integer, got {max_size!r}",
                    config_key="max_source_size",
                    config_value=max_size,
                )

        return config

    @classmethod
    def for_development(cls) -> "CompilerConfig":
        """Create development-friendly config: comments kept, nothing hoisted."""
        config = cls()
        config.template.keep_comments = True
        config.script.hoist_static = False
        return config

    @classmethod
    def for_production(cls) -> "CompilerConfig":
        """Create production config: static hoisting, comments dropped."""
        config = cls()
        config.is_production = True
        config.template.keep_comments = False
        config.script.hoist_static = True
        return config

    @property
    def keep_comments(self) -> bool:
        if self.template.keep_comments is None:
            return not self.is_production
        return self.template.keep_comments

    @property
    def hoists_static(self) -> bool:
        return self.is_production and self.script.hoist_static

    def validate(self) -> List[str]:
        """Validate configuration and return any warnings."""
        warnings = []

        if self.ssr:
            warnings.append("SSR code generation is not implemented - the flag is ignored")

        if self.source_map or self.script.source_map:
            warnings.append("Source maps are not implemented - no source map will be produced")

        if self.max_source_size <= 0:
            warnings.append("Source size limit is not positive - every component will be rejected")
        elif self.max_source_size > 50 * 1024 * 1024:  # 50MB
            warnings.append("Source size limit is very high")

        if self.template.keep_comments and self.is_production:
            warnings.append("Template comments are kept in production output")

        return warnings

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
