"""Test configuration and fixtures."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from release_orchestrator.config import ReleaseSettings
from release_orchestrator.context import ReleaseContext
from release_orchestrator.extensions import ExtensionManager, WorkflowListener
from release_orchestrator.logging import SessionLogger
from release_orchestrator.model import Project, ReleaseModel
from release_orchestrator.workflow.commands import Command
from release_orchestrator.workflow.events import ExecutionEvent, Phase


class RecordingHooks:
    """Stands in for `HookExecutor`; records events and fails on demand."""

    def __init__(self, calls: list[str], fail_on: dict[Phase, Exception] | None = None) -> None:
        self.calls = calls
        self.fail_on = dict(fail_on or {})
        self.events: list[ExecutionEvent] = []

    def execute_hooks(self, event: ExecutionEvent) -> None:
        self.events.append(event)
        self.calls.append(f"hooks:{event.phase.value}")
        error = self.fail_on.get(event.phase)
        if error is not None:
            raise error


class RecordingListener(WorkflowListener):
    """Records every callback; raises `error` for the keys in `fail_on`.

    Keys are "session_start", "session_end" or "<step>:<phase>".
    """

    def __init__(
        self,
        calls: list[str],
        *,
        continue_on_error: bool = False,
        fail_on: set[str] | None = None,
        error: Exception | None = None,
    ) -> None:
        super().__init__()
        self.calls = calls
        self.continue_on_error = continue_on_error
        self.fail_on = set(fail_on or ())
        self.error = error or RuntimeError("listener failure")
        self.closed = 0

    def _maybe_fail(self, key: str) -> None:
        if key in self.fail_on:
            raise self.error

    def on_session_start(self, context: ReleaseContext) -> None:
        self.calls.append("session_start")
        self._maybe_fail("session_start")

    def on_session_end(self, context: ReleaseContext) -> None:
        self.calls.append("session_end")
        self._maybe_fail("session_end")

    def on_workflow_step(self, event: ExecutionEvent, context: ReleaseContext) -> None:
        key = f"{event.scope}:{event.phase.value}"
        self.calls.append(key)
        self._maybe_fail(key)

    def close(self) -> None:
        self.closed += 1


@dataclass
class FakeStep:
    """A workflow item that records its invocation and optionally fails."""

    command: Command
    calls: list[str]
    error: Exception | None = None
    invoked: int = field(default=0)

    def invoke(self, context: ReleaseContext) -> None:
        self.invoked += 1
        self.calls.append(f"invoke:{self.command.value}")
        if self.error is not None:
            raise self.error


class CountingLogger(SessionLogger):
    """Session logger that counts `close()` calls."""

    def __init__(self, calls: list[str]) -> None:
        super().__init__()
        self.calls = calls
        self.close_count = 0

    def close(self) -> None:
        self.close_count += 1
        self.calls.append("logger:close")
        super().close()


class CountingExtensions(ExtensionManager):
    """Extension manager that counts `cleanup()` calls."""

    def __init__(self, calls: list[str]) -> None:
        super().__init__()
        self.calls = calls
        self.cleanup_count = 0

    def cleanup(self) -> None:
        self.cleanup_count += 1
        self.calls.append("extensions:cleanup")
        super().cleanup()


@pytest.fixture
def calls() -> list[str]:
    """Shared, ordered log of what every collaborator observed."""
    return []


@pytest.fixture
def release_model() -> ReleaseModel:
    """Provide a valid release configuration."""
    return ReleaseModel(project=Project(name="demo", version="1.2.3"))


@pytest.fixture
def settings(tmp_path: Path) -> ReleaseSettings:
    """Provide settings writing into a temporary output directory."""
    return ReleaseSettings(RELEASE_OUTPUT_DIRECTORY=tmp_path / "out", LOG_LEVEL="DEBUG")


@pytest.fixture
def extensions(calls: list[str]) -> CountingExtensions:
    return CountingExtensions(calls)


@pytest.fixture
def session_logger(calls: list[str]) -> CountingLogger:
    return CountingLogger(calls)


@pytest.fixture
def context(
    release_model: ReleaseModel,
    settings: ReleaseSettings,
    session_logger: CountingLogger,
    extensions: CountingExtensions,
) -> ReleaseContext:
    """Provide a release context wired to counting collaborators."""
    return ReleaseContext(
        release_model,
        settings=settings,
        logger=session_logger,
        extensions=extensions,
    )


@pytest.fixture
def hooks(calls: list[str]) -> RecordingHooks:
    return RecordingHooks(calls)
