"""Registry and dispatcher for workflow listeners."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from importlib.metadata import entry_points
from types import TracebackType
from typing import TYPE_CHECKING

from release_orchestrator.errors import ListenerFailure, ReleaseError
from release_orchestrator.extensions.api import DispatchResult, WorkflowListener

if TYPE_CHECKING:
    from release_orchestrator.context import ReleaseContext
    from release_orchestrator.model import ExtensionSpec
    from release_orchestrator.workflow.events import ExecutionEvent

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "release_orchestrator.extensions"


class ExtensionManager:
    """Holds the listeners for one release run.

    The manager is an explicit handle: whoever creates it owns it, and
    `cleanup()` (or leaving a `with` block) releases every listener. Cleanup is
    idempotent so the workflow engine may also call it at the end of a run.
    """

    def __init__(self, listeners: Iterable[WorkflowListener] = ()) -> None:
        self._listeners: list[WorkflowListener] = list(listeners)
        self._closed = False

    @classmethod
    def load(cls, specs: Mapping[str, ExtensionSpec]) -> ExtensionManager:
        """Instantiate the listeners enabled in `specs` from installed entry points.

        Each entry point in the `release_orchestrator.extensions` group must
        resolve to a callable accepting the extension's `properties` dict and
        returning a `WorkflowListener`.

        Raises:
            ReleaseError: If an enabled extension is not installed or does not
                produce a `WorkflowListener`. Listeners loaded before the
                failure are closed first.
        """

        available = {ep.name: ep for ep in entry_points(group=ENTRY_POINT_GROUP)}
        manager = cls()
        try:
            for name, spec in specs.items():
                if not spec.enabled:
                    logger.info("Extension disabled", extra={"extension": name})
                    continue
                ep = available.get(name)
                if ep is None:
                    raise ReleaseError(f"Extension {name!r} is not installed")

                factory = ep.load()
                listener = factory(dict(spec.properties))
                if not isinstance(listener, WorkflowListener):
                    raise ReleaseError(f"Extension {name!r} did not produce a WorkflowListener")
                if spec.continue_on_error is not None:
                    listener.continue_on_error = spec.continue_on_error
                manager.register(listener)
                logger.info(
                    "Extension loaded",
                    extra={"extension": name, "continue_on_error": listener.continue_on_error},
                )
        except BaseException:
            # Close whatever was loaded before the failure.
            manager.cleanup()
            raise
        return manager

    @property
    def listeners(self) -> tuple[WorkflowListener, ...]:
        return tuple(self._listeners)

    def register(self, listener: WorkflowListener) -> None:
        if self._closed:
            raise ReleaseError("Extension manager has already been cleaned up")
        self._listeners.append(listener)

    def dispatch(self, callback: Callable[[WorkflowListener], None]) -> DispatchResult:
        """Call `callback` for each listener, in registration order."""

        tolerated: list[ListenerFailure] = []
        for listener in self._listeners:
            try:
                callback(listener)
            except Exception as e:
                failure = ListenerFailure(
                    listener=listener.name,
                    continue_on_error=listener.continue_on_error,
                    cause=e,
                )
                if not listener.continue_on_error:
                    return DispatchResult(halted=failure, tolerated=tuple(tolerated))
                tolerated.append(failure)
        return DispatchResult(tolerated=tuple(tolerated))

    def session_start(self, context: ReleaseContext) -> DispatchResult:
        return self.dispatch(lambda listener: listener.on_session_start(context))

    def session_end(self, context: ReleaseContext) -> DispatchResult:
        return self.dispatch(lambda listener: listener.on_session_end(context))

    def workflow_step(self, event: ExecutionEvent, context: ReleaseContext) -> DispatchResult:
        return self.dispatch(lambda listener: listener.on_workflow_step(event, context))

    def cleanup(self) -> None:
        """Close every listener once and empty the registry."""

        if self._closed:
            return
        self._closed = True
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            try:
                listener.close()
            except Exception:
                logger.warning(
                    "Listener failed to close", extra={"listener": listener.name}, exc_info=True
                )

    def __enter__(self) -> ExtensionManager:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cleanup()
