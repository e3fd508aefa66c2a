"""
Tests for the Compilation Session state machine.
Tests state history, single use, cancellation checkpoints and fatal stages.
"""

from typing import Optional

import pytest

from sfc_compiler.core.config import CompilerConfig
from sfc_compiler.core.diagnostics import DiagnosticKind
from sfc_compiler.core.exceptions import CompilationCancelled, SFCSessionError
from sfc_compiler.core.models import CompileOptions
from sfc_compiler.core.session import CancellationToken, CompilationSession, SessionState


class CancelOnPoll(CancellationToken):
    """Token that reports cancellation from the n-th poll onwards."""

    def __init__(self, poll: int) -> None:
        super().__init__()
        self.poll = poll
        self.polls = 0

    @property
    def is_cancelled(self) -> bool:
        self.polls += 1
        return self.polls >= self.poll


def make_session(
    source: str, config: Optional[CompilerConfig] = None, token: Optional[CancellationToken] = None
) -> CompilationSession:
    return CompilationSession(source, CompileOptions(filename="Test.vue"), config or CompilerConfig(), token=token)


class TestCompilationSession:
    """Test the session lifecycle."""

    def test_successful_run_history(self, counter_component: str) -> None:
        """Test that a normal compile walks every state once."""
        session = make_session(counter_component)

        result = session.run()

        assert not result.has_errors
        assert session.state is SessionState.DONE
        assert session.history == [
            SessionState.IDLE,
            SessionState.PARSING,
            SessionState.ANALYZING,
            SessionState.GENERATING,
            SessionState.DONE,
        ]

    def test_session_is_single_use(self, counter_component: str) -> None:
        """Test that a finished session cannot run again."""
        session = make_session(counter_component)
        session.run()

        with pytest.raises(SFCSessionError) as exc_info:
            session.run()

        assert exc_info.value.current_state == "done"
        assert exc_info.value.requested_state == "parsing"

    def test_fatal_document_skips_generation(self) -> None:
        """Test that a fatal splitter diagnostic ends the session without code."""
        source = "<template"
        session = make_session(source)

        result = session.run()

        assert result.code == ""
        assert result.has_errors
        assert session.history == [SessionState.IDLE, SessionState.PARSING, SessionState.DONE]

    def test_source_size_limit(self) -> None:
        """Test that an oversized source is rejected with one fatal diagnostic."""
        config = CompilerConfig()
        config.max_source_size = 10
        source = "<template><p>too long</p></template>"
        session = make_session(source, config)

        result = session.run()

        assert result.code == ""
        assert len(result.errors) == 1
        error = result.errors[0]
        assert error.kind is DiagnosticKind.MALFORMED_DOCUMENT
        assert (error.lo, error.hi) == (0, len(source))
        assert "byte limit" in error.message
        assert session.state is SessionState.DONE


class TestCancellation:
    """Test cooperative cancellation checkpoints."""

    def test_cancelled_before_run(self, counter_component: str) -> None:
        """Test that a token cancelled up front stops after the block splitter."""
        token = CancellationToken()
        token.cancel()
        session = make_session(counter_component, token=token)

        with pytest.raises(CompilationCancelled) as exc_info:
            session.run()

        assert exc_info.value.stage == "block splitter"
        assert exc_info.value.filename == "Test.vue"
        assert session.state is SessionState.CANCELLED
        assert session.history == [SessionState.IDLE, SessionState.PARSING, SessionState.CANCELLED]

    def test_cancelled_during_analysis(self, counter_component: str) -> None:
        """Test the checkpoint after the script analyzer."""
        session = make_session(counter_component, token=CancelOnPoll(2))

        with pytest.raises(CompilationCancelled) as exc_info:
            session.run()

        assert exc_info.value.stage == "script analyzer"
        assert session.history[-2:] == [SessionState.ANALYZING, SessionState.CANCELLED]

    def test_cancelled_after_template(self, counter_component: str) -> None:
        """Test the last checkpoint, before code generation."""
        session = make_session(counter_component, token=CancelOnPoll(3))

        with pytest.raises(CompilationCancelled) as exc_info:
            session.run()

        assert exc_info.value.stage == "template compiler"
        assert SessionState.GENERATING not in session.history

    def test_untouched_token_completes(self, counter_component: str) -> None:
        token = CancellationToken()
        session = make_session(counter_component, token=token)

        result = session.run()

        assert result.code
        assert repr(token) == "CancellationToken(cancelled=False)"
