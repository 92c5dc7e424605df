"""Failure bookkeeping for a workflow session.

Several independent sources can fail during a run: the before-session hooks,
listeners at session start, the steps themselves, listeners inside the step
loop and listeners at session end. The engine records each in its own slot
and `resolve()` picks exactly one outcome using a fixed precedence that does
not depend on arrival order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from release_orchestrator.workflow.events import Phase


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    HOOK_BEFORE_SESSION = "hook_before_session"
    SESSION_START_LISTENER = "session_start_listener"
    STEP = "step"
    SESSION_END_LISTENER = "session_end_listener"
    LOOP_LISTENER = "loop_listener"


# Session hooks run while closing each outcome (None: no closing hooks).
CLOSING_HOOKS: dict[OutcomeKind, Phase | None] = {
    OutcomeKind.SUCCESS: Phase.SUCCESS,
    OutcomeKind.HOOK_BEFORE_SESSION: None,
    OutcomeKind.SESSION_START_LISTENER: None,
    OutcomeKind.STEP: Phase.FAILURE,
    OutcomeKind.SESSION_END_LISTENER: Phase.FAILURE,
    OutcomeKind.LOOP_LISTENER: None,
}


@dataclass(frozen=True, slots=True)
class Outcome:
    kind: OutcomeKind
    cause: BaseException | None = None

    @property
    def failed(self) -> bool:
        return self.kind is not OutcomeKind.SUCCESS

    @property
    def closing_hooks(self) -> Phase | None:
        return CLOSING_HOOKS[self.kind]


@dataclass(slots=True)
class FailureRecord:
    """Failure slots populated during one session. Engine-private."""

    hook_before_session: BaseException | None = None
    session_start_listener: BaseException | None = None
    step: BaseException | None = None
    session_end_listener: BaseException | None = None
    loop_listener: BaseException | None = None

    @property
    def aborted_before_steps(self) -> bool:
        """True when the session never reached the step loop."""

        return self.hook_before_session is not None or self.session_start_listener is not None


def resolve(record: FailureRecord) -> Outcome:
    """Pick the single outcome of a session. First match wins.

    1. before-session hook failure
    2. session-end listener failure
    3. step failure (a loop listener failure recorded alongside is dropped)
    4. session-start or loop listener failure
    5. success
    """

    if record.hook_before_session is not None:
        return Outcome(OutcomeKind.HOOK_BEFORE_SESSION, record.hook_before_session)
    if record.session_end_listener is not None:
        return Outcome(OutcomeKind.SESSION_END_LISTENER, record.session_end_listener)
    if record.step is not None:
        return Outcome(OutcomeKind.STEP, record.step)
    if record.session_start_listener is not None:
        return Outcome(OutcomeKind.SESSION_START_LISTENER, record.session_start_listener)
    if record.loop_listener is not None:
        return Outcome(OutcomeKind.LOOP_LISTENER, record.loop_listener)
    return Outcome(OutcomeKind.SUCCESS)


@dataclass(slots=True)
class Session:
    """A single run of a workflow."""

    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    ended_at: datetime | None = None
    outcome: Outcome | None = None

    def end(self) -> float:
        """Stamp the end of the session and return its duration in seconds."""

        self.ended_at = datetime.now(UTC)
        return self.duration

    @property
    def duration(self) -> float:
        end = self.ended_at or datetime.now(UTC)
        return (end - self.started_at).total_seconds()
