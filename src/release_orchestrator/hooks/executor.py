"""Session hooks: external commands run around a release session.

Hooks are configured under `hooks.command.{before,success,failure}` and are
selected by event phase, event scope (via `filter`) and platform.
"""

from __future__ import annotations

import os
import shlex
import subprocess
import sys
from typing import TYPE_CHECKING

from release_orchestrator.errors import HookExecutionError
from release_orchestrator.model import CommandHook, Hooks
from release_orchestrator.workflow.events import ExecutionEvent, Phase

if TYPE_CHECKING:
    from release_orchestrator.context import ReleaseContext
    from release_orchestrator.logging import SessionLogger


def platform_matches(platforms: list[str], current: str) -> bool:
    """Return True when `current` (a `sys.platform` value) is selected.

    Entries are prefixes ("linux", "win", "darwin"); "!name" excludes.
    """

    wanted = [p for p in platforms if not p.startswith("!")]
    unwanted = [p[1:] for p in platforms if p.startswith("!")]
    if any(current.startswith(p) for p in unwanted):
        return False
    return not wanted or any(current.startswith(p) for p in wanted)


class HookExecutor:
    """Runs the command hooks that match a lifecycle event."""

    def __init__(self, context: ReleaseContext, *, platform: str | None = None) -> None:
        self._hooks: Hooks = context.model.hooks
        self._logger: SessionLogger = context.logger
        self._platform = platform or sys.platform

    def _select(self, event: ExecutionEvent) -> list[CommandHook]:
        by_phase = {
            Phase.BEFORE: self._hooks.command.before,
            Phase.SUCCESS: self._hooks.command.success,
            Phase.FAILURE: self._hooks.command.failure,
        }
        return [
            hook
            for hook in by_phase[event.phase]
            if hook.filter.admits(event.scope) and platform_matches(hook.platforms, self._platform)
        ]

    def execute_hooks(self, event: ExecutionEvent) -> None:
        """Run every matching hook in declaration order.

        Raises:
            HookExecutionError: If a hook fails and does not tolerate errors.
        """

        if not self._hooks.enabled:
            return

        selected = self._select(event)
        if not selected:
            return

        self._logger.info(
            "Executing %s hooks", event.phase.value, extra={"scope": event.scope, "count": len(selected)}
        )
        for hook in selected:
            self._run(hook, event)

    def _environment(self, event: ExecutionEvent) -> dict[str, str]:
        env = dict(os.environ)
        env.update(self._hooks.environment)
        env["RELEASE_EVENT_PHASE"] = event.phase.value
        env["RELEASE_EVENT_SCOPE"] = event.scope
        if event.failure is not None:
            env["RELEASE_FAILURE"] = str(event.failure)
        return env

    def _run(self, hook: CommandHook, event: ExecutionEvent) -> None:
        self._logger.info("Running hook: %s", hook.cmd)
        returncode: int | None = None
        try:
            result = subprocess.run(
                shlex.split(hook.cmd),
                capture_output=True,
                text=True,
                env=self._environment(event),
                timeout=hook.timeout_seconds,
                check=False,
            )
        except subprocess.TimeoutExpired:
            problem = f"Hook timed out after {hook.timeout_seconds}s: {hook.cmd}"
        except OSError as e:
            problem = f"Hook could not be started: {hook.cmd} ({e})"
        else:
            if hook.verbose and result.stdout:
                for line in result.stdout.splitlines():
                    self._logger.info(line, extra={"hook": hook.cmd})
            if result.returncode == 0:
                return
            returncode = result.returncode
            problem = f"Hook exited with code {returncode}: {hook.cmd}"
            if result.stderr:
                self._logger.debug(result.stderr.strip(), extra={"hook": hook.cmd})

        if hook.continue_on_error:
            self._logger.warning(problem)
            return
        raise HookExecutionError(problem, cmd=hook.cmd, returncode=returncode)
