"""Ready-made workflows for each top-level release command."""

from __future__ import annotations

from release_orchestrator.context import ReleaseContext
from release_orchestrator.workflow.commands import Command, StepRegistry
from release_orchestrator.workflow.engine import Workflow

_RELEASE = (
    Command.CHANGELOG,
    Command.CHECKSUM,
    Command.CATALOG,
    Command.SIGN,
    Command.DEPLOY,
    Command.UPLOAD,
    Command.RELEASE,
)

_PREPARE = (Command.CHECKSUM, Command.PREPARE)

WORKFLOWS: dict[str, tuple[Command, ...]] = {
    "download": (Command.DOWNLOAD,),
    "assemble": (Command.ASSEMBLE,),
    "changelog": (Command.CHANGELOG,),
    "checksum": (Command.CHECKSUM,),
    "catalog": (Command.CATALOG,),
    "sign": (Command.CHECKSUM, Command.SIGN),
    "deploy": (Command.DEPLOY,),
    "upload": (Command.CHECKSUM, Command.SIGN, Command.UPLOAD),
    "release": _RELEASE,
    "prepare": _PREPARE,
    "package": _PREPARE + (Command.PACKAGE,),
    "publish": _PREPARE + (Command.PACKAGE, Command.PUBLISH),
    "announce": (Command.CHANGELOG, Command.ANNOUNCE),
    "full_release": _RELEASE + (Command.PREPARE, Command.PACKAGE, Command.PUBLISH, Command.ANNOUNCE),
}


def build_workflow(name: str, context: ReleaseContext, registry: StepRegistry) -> Workflow:
    """Create the workflow called `name`.

    Raises:
        KeyError: If `name` is not a known workflow.
        ModelValidationError: If the context's configuration is invalid.
    """

    commands = WORKFLOWS[name]
    return Workflow(context, [registry.item_for(command) for command in commands])
