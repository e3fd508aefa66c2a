"""
Exception classes for the SFC compiler.

Analysis problems in a component are never raised to the caller; they are
reported as diagnostics on the CompileResult. The exceptions below cover
caller mistakes, internal stage failures and the cancellation outcome.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class SFCError(Exception):
    """Base exception for all SFC compiler errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.error_code = error_code
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "timestamp": self.timestamp.isoformat(),
            "details": self.details,
        }


class SFCConfigurationError(SFCError):
    """Raised when compiler configuration or compile options are invalid."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        valid_values: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(message, details, error_code=error_code or "CONFIGURATION_ERROR")
        self.config_key = config_key
        self.config_value = config_value
        self.valid_values = valid_values or []

        if config_key:
            self.details["config_key"] = config_key
        if valid_values:
            self.details["valid_values"] = valid_values

    def get_help_message(self) -> str:
        """Get error message with configuration help."""
        parts = [self.message]

        if self.config_key:
            parts.append(f"Configuration key: {self.config_key}")

        if self.valid_values:
            valid = ", ".join(str(v) for v in self.valid_values)
            parts.append(f"Valid values: {valid}")

        return " | ".join(parts)


class SFCCompilationError(SFCError):
    """Raised by a pipeline stage that cannot continue.

    The compilation session turns this into a diagnostic; it only escapes
    when a stage is driven directly.
    """

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        lo: int = 0,
        hi: int = 0,
        fatal: bool = False,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(message, details, error_code=error_code or "COMPILATION_FAILED")
        self.stage = stage
        self.lo = lo
        self.hi = hi
        self.fatal = fatal

        if stage:
            self.details["stage"] = stage

    def get_context_message(self) -> str:
        """Get error message with stage context."""
        parts = [self.message]

        if self.stage:
            parts.append(f"Stage: {self.stage}")

        if self.hi > self.lo:
            parts.append(f"Bytes: {self.lo}..{self.hi}")

        return " | ".join(parts)


class SFCSessionError(SFCError):
    """Raised when a compilation session is driven out of order or reused."""

    def __init__(
        self,
        message: str,
        current_state: Optional[str] = None,
        requested_state: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details, error_code="SESSION_STATE_ERROR")
        self.current_state = current_state
        self.requested_state = requested_state

        if current_state:
            self.details["current_state"] = current_state
        if requested_state:
            self.details["requested_state"] = requested_state


class CompilationCancelled(asyncio.CancelledError):
    """Outcome of an asynchronous compile whose cancellation token fired.

    Not an SFCError: cancellation is neither a result nor an error.
    """

    def __init__(self, stage: Optional[str] = None, filename: Optional[str] = None):
        message = "Compilation cancelled"
        if stage:
            message += f" after {stage}"
        super().__init__(message)
        self.stage = stage
        self.filename = filename
