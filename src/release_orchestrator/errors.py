"""Error taxonomy for the release workflow."""

from __future__ import annotations

from dataclasses import dataclass


class ReleaseError(Exception):
    """Engine-level fatal error.

    Anything surfaced to the caller of a workflow run is either a step's own
    exception or an instance of this class.
    """


class HookExecutionError(ReleaseError):
    """Raised when a session hook fails and does not tolerate errors."""

    def __init__(self, message: str, *, cmd: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.cmd = cmd
        self.returncode = returncode


class ModelValidationError(ReleaseError):
    """Raised when the release configuration is invalid."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("Invalid release configuration:\n- " + "\n- ".join(errors))
        self.errors = list(errors)


@dataclass(frozen=True, slots=True)
class ListenerFailure:
    """A listener failed while handling a lifecycle event.

    The extension manager reports these; it never decides control flow. The
    workflow engine inspects `continue_on_error` to decide whether to halt.
    """

    listener: str
    continue_on_error: bool
    cause: BaseException

    def __str__(self) -> str:
        return f"Listener {self.listener!r} failed: {self.cause}"
