"""Release configuration model.

The model is deliberately small: project identity, session hooks and the
extensions to enable. Step-specific configuration belongs to the step
implementations, not here.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from release_orchestrator.errors import ModelValidationError
from release_orchestrator.version import CalVer, CalVerFormatError

# https://semver.org/#is-there-a-suggested-regular-expression-regex-to-check-a-semver-string
SEMVER_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)

CALVER_PREFIX = "CALVER:"


class Project(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    version: str
    version_pattern: str = Field(
        default="SEMVER",
        description="SEMVER, CUSTOM, or CALVER:<format> (e.g. CALVER:YYYY.0M.MICRO)",
    )


class HookFilter(BaseModel):
    """Event scopes a hook applies to. Empty `includes` means every scope."""

    includes: list[str] = Field(default_factory=list)
    excludes: list[str] = Field(default_factory=list)

    def admits(self, scope: str) -> bool:
        if scope in self.excludes:
            return False
        return not self.includes or scope in self.includes


class CommandHook(BaseModel):
    model_config = ConfigDict(extra="forbid")

    cmd: str
    filter: HookFilter = Field(default_factory=HookFilter)
    continue_on_error: bool = False
    verbose: bool = False
    platforms: list[str] = Field(
        default_factory=list,
        description="Platform prefixes (sys.platform) to run on; '!name' excludes",
    )
    timeout_seconds: float | None = Field(default=None, gt=0)


class CommandHooks(BaseModel):
    before: list[CommandHook] = Field(default_factory=list)
    success: list[CommandHook] = Field(default_factory=list)
    failure: list[CommandHook] = Field(default_factory=list)


class Hooks(BaseModel):
    enabled: bool = True
    environment: dict[str, str] = Field(default_factory=dict)
    command: CommandHooks = Field(default_factory=CommandHooks)


class ExtensionSpec(BaseModel):
    """Per-extension switches, keyed by entry point name in `ReleaseModel.extensions`."""

    enabled: bool = True
    continue_on_error: bool | None = Field(
        default=None,
        description="Overrides the listener's own policy when set",
    )
    properties: dict[str, Any] = Field(default_factory=dict)


class ReleaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    project: Project
    hooks: Hooks = Field(default_factory=Hooks)
    extensions: dict[str, ExtensionSpec] = Field(default_factory=dict)

    @classmethod
    def from_file(cls, path: Path) -> ReleaseModel:
        return cls.model_validate_json(path.read_text(encoding="utf-8"))


def _version_errors(project: Project) -> list[str]:
    pattern = project.version_pattern.strip()
    version = project.version.strip()

    if pattern.upper() == "SEMVER":
        if not SEMVER_RE.match(version):
            return [f"project.version {version!r} is not a semantic version"]
        return []

    if pattern.upper() == "CUSTOM":
        return []

    if pattern.upper().startswith(CALVER_PREFIX):
        fmt = pattern[len(CALVER_PREFIX) :]
        try:
            CalVer.of(fmt, version)
        except CalVerFormatError as e:
            return [f"project.version_pattern: {e}"]
        except ValueError as e:
            return [f"project.version: {e}"]
        return []

    return [f"project.version_pattern {pattern!r} is not supported"]


def validate_model(model: ReleaseModel) -> None:
    """Check cross-field rules pydantic cannot express.

    All problems are collected and reported together.

    Raises:
        ModelValidationError: If any rule is violated.
    """

    errors: list[str] = []
    if not model.project.name.strip():
        errors.append("project.name must not be blank")
    if not model.project.version.strip():
        errors.append("project.version must not be blank")
    else:
        errors.extend(_version_errors(model.project))

    for phase in ("before", "success", "failure"):
        for index, hook in enumerate(getattr(model.hooks.command, phase)):
            if not hook.cmd.strip():
                errors.append(f"hooks.command.{phase}[{index}].cmd must not be blank")

    if errors:
        raise ModelValidationError(errors)
