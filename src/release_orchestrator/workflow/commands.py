"""Release stages and the items that run them."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from importlib.metadata import entry_points
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from release_orchestrator.context import ReleaseContext

logger = logging.getLogger(__name__)

STEP_ENTRY_POINT_GROUP = "release_orchestrator.steps"


class Command(str, Enum):
    DOWNLOAD = "download"
    ASSEMBLE = "assemble"
    CHANGELOG = "changelog"
    CATALOG = "catalog"
    CHECKSUM = "checksum"
    SIGN = "sign"
    DEPLOY = "deploy"
    UPLOAD = "upload"
    RELEASE = "release"
    PREPARE = "prepare"
    PACKAGE = "package"
    PUBLISH = "publish"
    ANNOUNCE = "announce"

    def to_step(self) -> str:
        return self.value


StepHandler = Callable[["ReleaseContext"], None]


class WorkflowItem(Protocol):
    """A single blocking unit of release work."""

    @property
    def command(self) -> Command: ...

    def invoke(self, context: ReleaseContext) -> None: ...


@dataclass(frozen=True, slots=True)
class CommandItem:
    """Runs `handler` for `command`.

    Errors raised by the handler propagate to the engine unchanged.
    """

    command: Command
    handler: StepHandler

    def invoke(self, context: ReleaseContext) -> None:
        self.handler(context)


@dataclass(frozen=True, slots=True)
class NoopItem:
    """Stands in for a stage with no registered handler."""

    command: Command

    def invoke(self, context: ReleaseContext) -> None:
        context.logger.info("Nothing to do for %s", self.command.value)


class StepRegistry:
    """Maps release stages to the callables that perform them."""

    def __init__(self, handlers: Mapping[Command, StepHandler] | None = None) -> None:
        self._handlers: dict[Command, StepHandler] = dict(handlers or {})

    def register(self, command: Command, handler: StepHandler) -> None:
        if command in self._handlers:
            logger.warning("Replacing step handler", extra={"command": command.value})
        self._handlers[command] = handler

    def __contains__(self, command: object) -> bool:
        return command in self._handlers

    def item_for(self, command: Command) -> WorkflowItem:
        handler = self._handlers.get(command)
        if handler is None:
            return NoopItem(command)
        return CommandItem(command, handler)

    @classmethod
    def from_entry_points(cls) -> StepRegistry:
        """Collect handlers published under the `release_orchestrator.steps` group.

        Entry point names are command names (e.g. `announce`); unknown names
        are ignored with a warning.
        """

        registry = cls()
        for ep in entry_points(group=STEP_ENTRY_POINT_GROUP):
            try:
                command = Command(ep.name)
            except ValueError:
                logger.warning("Ignoring step for unknown command", extra={"entry_point": ep.name})
                continue
            registry.register(command, ep.load())
        return registry
