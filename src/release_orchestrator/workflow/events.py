from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

SESSION = "session"


class Phase(str, Enum):
    BEFORE = "before"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True, slots=True)
class ExecutionEvent:
    """A lifecycle event produced by the workflow engine.

    `scope` is either `SESSION` or the name of a workflow step.
    """

    scope: str
    phase: Phase
    failure: BaseException | None = None

    @classmethod
    def before(cls, scope: str) -> ExecutionEvent:
        return cls(scope=scope, phase=Phase.BEFORE)

    @classmethod
    def success(cls, scope: str) -> ExecutionEvent:
        return cls(scope=scope, phase=Phase.SUCCESS)

    @classmethod
    def failure_of(cls, scope: str, cause: BaseException) -> ExecutionEvent:
        return cls(scope=scope, phase=Phase.FAILURE, failure=cause)

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {"scope": self.scope, "phase": self.phase.value}
        if self.failure is not None:
            out["failure"] = f"{type(self.failure).__name__}: {self.failure}"
        return out
