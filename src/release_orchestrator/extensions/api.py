"""Listener API for workflow extensions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from release_orchestrator.errors import ListenerFailure

if TYPE_CHECKING:
    from release_orchestrator.context import ReleaseContext
    from release_orchestrator.workflow.events import ExecutionEvent


class WorkflowListener(ABC):
    """Abstract base class for workflow listeners.

    Listeners observe the session and every step of a release run. A listener
    whose `continue_on_error` is True has its own failures logged and absorbed;
    otherwise a failure halts the workflow.
    """

    continue_on_error: bool = False

    def __init__(self, properties: dict[str, Any] | None = None) -> None:
        """Initialize the listener.

        Args:
            properties: Free-form settings taken from the release configuration.
        """
        self.properties: dict[str, Any] = dict(properties or {})

    @property
    def name(self) -> str:
        return type(self).__name__

    def on_session_start(self, context: ReleaseContext) -> None:
        """Called once before any step runs."""

    def on_session_end(self, context: ReleaseContext) -> None:
        """Called once after the step loop has concluded."""

    @abstractmethod
    def on_workflow_step(self, event: ExecutionEvent, context: ReleaseContext) -> None:
        """Called before each step and after it succeeds or fails.

        Args:
            event: The lifecycle event; `event.scope` is the step name.
            context: The running release context.
        """

    def close(self) -> None:
        """Release resources held by the listener. Called once per run."""


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """Outcome of delivering one event to every registered listener.

    `halted` is set when a listener that does not tolerate errors failed;
    dispatch stops at that listener. `tolerated` lists failures of listeners
    that do tolerate errors.
    """

    halted: ListenerFailure | None = None
    tolerated: tuple[ListenerFailure, ...] = ()

    @property
    def ok(self) -> bool:
        return self.halted is None and not self.tolerated
