"""
Main SFC compiler: blocking and cancellable entry points.
"""

import asyncio
import copy
import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional, Set

from ..style.extractor import StyleTransformer
from .config import CompilerConfig
from .exceptions import SFCCompilationError
from .models import CompileOptions, CompileResult
from .session import CancellationToken, CompilationSession

logger = logging.getLogger(__name__)


class SFCCompiler:
    """Compiles Vue single-file components.

    One instance may serve any number of calls, from any number of threads;
    every call runs in its own CompilationSession and shares nothing with
    other calls.
    """

    def __init__(
        self,
        config: Optional[CompilerConfig] = None,
        style_transformer: Optional[StyleTransformer] = None,
    ):
        self._config = copy.deepcopy(config) if config is not None else CompilerConfig()
        self.style_transformer = style_transformer
        self._warned: Set[str] = set()

        for warning in self._config.validate():
            self._warn_once(warning)

    @property
    def config(self) -> CompilerConfig:
        """A copy of the configuration; the compiler's own stays read-only."""
        return copy.deepcopy(self._config)

    def _warn_once(self, message: str) -> None:
        if message not in self._warned:
            self._warned.add(message)
            logger.warning(message)

    def session(
        self,
        source: str,
        options: Optional[CompileOptions] = None,
        token: Optional[CancellationToken] = None,
    ) -> CompilationSession:
        """Create the single-use session for one call."""
        options = options or CompileOptions()
        if options.is_custom_element:
            self._warn_once("Custom element mode is not implemented - the flag is ignored")
        return CompilationSession(source, options, self._config, self.style_transformer, token)

    def compile_sync(self, source: str, options: Optional[CompileOptions] = None) -> CompileResult:
        """Compile on the calling thread. Problems surface as `result.errors`."""
        return self.session(source, options).run()

    async def compile_async(
        self,
        source: str,
        options: Optional[CompileOptions] = None,
        signal: Optional[CancellationToken] = None,
    ) -> CompileResult:
        """Compile in a worker thread.

        Raises CompilationCancelled when `signal` is cancelled before code
        generation starts. Cancelling the awaiting task cancels the signal.
        """
        token = signal or CancellationToken()
        session = self.session(source, options, token)
        try:
            return await asyncio.to_thread(session.run)
        except asyncio.CancelledError:
            token.cancel()
            raise

    def compile_file(self, path: str, options: Optional[CompileOptions] = None) -> CompileResult:
        """Compile a `.vue` file. The filename defaults to the file's path."""
        file_path = Path(path)

        if not file_path.exists():
            raise SFCCompilationError(f"Component file not found: {path}", stage="read")

        try:
            source = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SFCCompilationError(f"Cannot read component file: {e}", stage="read")

        if file_path.suffix.lower() != ".vue":
            logger.warning("Unusual file extension: %s", file_path.suffix)

        if options is None:
            options = CompileOptions(filename=str(file_path))
        elif options.filename == CompileOptions().filename:
            options = replace(options, filename=str(file_path))
        return self.compile_sync(source, options)
