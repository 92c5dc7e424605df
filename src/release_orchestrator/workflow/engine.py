"""The workflow engine: runs release steps inside a session.

Lifecycle of `Workflow.execute()`:

1. log the dry-run flag and active filters
2. run before-session hooks
3. fire the session-start event
4. run each step, firing before/success/failure events around it
5. fire the session-end event
6. resolve the outcome, run closing hooks, re-raise the winning failure

Whatever happens, the extension manager is cleaned up and the session logger
closed afterwards, in that order.
"""

from __future__ import annotations

from collections.abc import Iterable
from contextlib import ExitStack
from typing import NoReturn

from release_orchestrator.context import ReleaseContext
from release_orchestrator.errors import ListenerFailure, ReleaseError
from release_orchestrator.extensions import DispatchResult
from release_orchestrator.hooks.executor import HookExecutor
from release_orchestrator.workflow.commands import WorkflowItem
from release_orchestrator.workflow.events import SESSION, ExecutionEvent, Phase
from release_orchestrator.workflow.outcome import FailureRecord, Outcome, OutcomeKind, Session, resolve


def format_duration(seconds: float) -> str:
    minutes, secs = divmod(seconds, 60)
    hours, minutes = divmod(int(minutes), 60)
    if hours:
        return f"{hours}h {minutes}m {secs:.3f}s"
    if minutes:
        return f"{minutes}m {secs:.3f}s"
    return f"{secs:.3f}s"


def _propagate(cause: BaseException) -> NoReturn:
    """Re-raise `cause`; a non-`Exception` cause is a defensive path and gets wrapped."""

    if isinstance(cause, Exception):
        raise cause
    raise ReleaseError("Unexpected error") from cause


class Workflow:
    """An ordered list of release steps bound to one release context."""

    def __init__(
        self,
        context: ReleaseContext,
        items: Iterable[WorkflowItem],
        *,
        hooks: HookExecutor | None = None,
    ) -> None:
        context.validate_once()
        self.context = context
        self._items: tuple[WorkflowItem, ...] = tuple(items)
        self._hooks = hooks
        self.session: Session | None = None

    @property
    def items(self) -> tuple[WorkflowItem, ...]:
        return self._items

    def execute(self) -> None:
        """Run the workflow.

        Raises:
            Exception: The single failure that decides the run, if any.
        """

        with ExitStack() as stack:
            # Callbacks run last-in first-out: extensions first, then the logger.
            stack.callback(self.context.logger.close)
            stack.callback(self.context.extensions.cleanup)
            self._do_execute()

    def _do_execute(self) -> None:
        record = FailureRecord()
        session = self.session = Session()

        self._log_filters()
        hooks = self._hooks or HookExecutor(self.context)

        self._run_before_session_hooks(hooks, record)
        if record.hook_before_session is None:
            self._fire_session_start(record)

        if not record.aborted_before_steps:
            self._run_steps(record)
            self._fire_session_end(record)

        duration = session.end()
        self.context.logger.reset()
        self.context.report()

        outcome = resolve(record)
        session.outcome = outcome
        self._close_up(outcome, duration, hooks)

    def _log_filters(self) -> None:
        log = self.context.logger
        log.info("dry-run set to %s", self.context.dry_run)
        for name, values in self.context.filters.active().items():
            log.info("%s: %s", name.replace("_", " "), ", ".join(values))

    def _listener_halt(self, result: DispatchResult) -> ListenerFailure | None:
        """Log every listener failure; return the one that halts the workflow."""

        log = self.context.logger
        failures = list(result.tolerated)
        if result.halted is not None:
            failures.append(result.halted)
        for failure in failures:
            log.error(
                "Listener %s failed",
                failure.listener,
                extra={"continue_on_error": failure.continue_on_error},
            )
            log.trace(failure.cause)
        return result.halted

    def _run_before_session_hooks(self, hooks: HookExecutor, record: FailureRecord) -> None:
        try:
            hooks.execute_hooks(ExecutionEvent.before(SESSION))
        except Exception as e:
            self.context.logger.error("Unexpected error while running hooks")
            self.context.logger.trace(e)
            record.hook_before_session = e

    def _fire_session_start(self, record: FailureRecord) -> None:
        halted = self._listener_halt(self.context.fire_session_start_event())
        if halted is not None:
            record.session_start_listener = halted.cause

    def _fire_session_end(self, record: FailureRecord) -> None:
        halted = self._listener_halt(self.context.fire_session_end_event())
        if halted is not None:
            record.session_end_listener = halted.cause

    def _run_steps(self, record: FailureRecord) -> None:
        ctx = self.context
        try:
            for item in self._items:
                step = item.command.to_step()
                ctx.logger.step(step)

                halted = self._listener_halt(ctx.fire_workflow_event(ExecutionEvent.before(step)))
                if halted is not None:
                    record.loop_listener = halted.cause
                    break

                try:
                    item.invoke(ctx)
                except Exception as e:
                    record.step = e
                    result = ctx.fire_workflow_event(ExecutionEvent.failure_of(step, e))
                    halted = self._listener_halt(result)
                    if halted is not None:
                        record.loop_listener = halted.cause
                        break
                    if result.tolerated:
                        # A tolerant listener failed while reporting: move on to the next step.
                        continue
                    break

                halted = self._listener_halt(ctx.fire_workflow_event(ExecutionEvent.success(step)))
                if halted is not None:
                    record.loop_listener = halted.cause
                    break
        finally:
            ctx.logger.reset()

    def _run_closing_hooks(self, hooks: HookExecutor, event: ExecutionEvent) -> None:
        try:
            hooks.execute_hooks(event)
        except Exception as e:
            self.context.logger.error("Unexpected error while running hooks")
            self.context.logger.trace(e)

    def _close_up(self, outcome: Outcome, duration: float, hooks: HookExecutor) -> None:
        log = self.context.logger

        phase = outcome.closing_hooks
        if phase is Phase.SUCCESS:
            self._run_closing_hooks(hooks, ExecutionEvent.success(SESSION))
        elif phase is Phase.FAILURE and outcome.cause is not None:
            self._run_closing_hooks(hooks, ExecutionEvent.failure_of(SESSION, outcome.cause))

        if outcome.kind is OutcomeKind.SUCCESS or outcome.cause is None:
            log.info("Release succeeded in %s", format_duration(duration))
            return

        log.error(
            "Release failed after %s", format_duration(duration), extra={"outcome": outcome.kind.value}
        )
        log.trace(outcome.cause)
        _propagate(outcome.cause)
