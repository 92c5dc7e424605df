"""The release context shared by the engine, hooks, listeners and steps."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from release_orchestrator.config import ReleaseSettings
from release_orchestrator.extensions import DispatchResult, ExtensionManager
from release_orchestrator.logging import SessionLogger
from release_orchestrator.model import ReleaseModel, validate_model
from release_orchestrator.workflow.events import SESSION, ExecutionEvent

logger = logging.getLogger(__name__)


class WorkflowFilters(BaseModel):
    """Include/exclude filters narrowing what each step acts on.

    Steps consult these; the engine only reports them.
    """

    included_downloader_types: list[str] = Field(default_factory=list)
    excluded_downloader_types: list[str] = Field(default_factory=list)
    included_downloader_names: list[str] = Field(default_factory=list)
    excluded_downloader_names: list[str] = Field(default_factory=list)
    included_assemblers: list[str] = Field(default_factory=list)
    excluded_assemblers: list[str] = Field(default_factory=list)
    included_distributions: list[str] = Field(default_factory=list)
    excluded_distributions: list[str] = Field(default_factory=list)
    included_catalogers: list[str] = Field(default_factory=list)
    excluded_catalogers: list[str] = Field(default_factory=list)
    included_packagers: list[str] = Field(default_factory=list)
    excluded_packagers: list[str] = Field(default_factory=list)
    included_deployer_types: list[str] = Field(default_factory=list)
    excluded_deployer_types: list[str] = Field(default_factory=list)
    included_deployer_names: list[str] = Field(default_factory=list)
    excluded_deployer_names: list[str] = Field(default_factory=list)
    included_uploader_types: list[str] = Field(default_factory=list)
    excluded_uploader_types: list[str] = Field(default_factory=list)
    included_uploader_names: list[str] = Field(default_factory=list)
    excluded_uploader_names: list[str] = Field(default_factory=list)
    included_announcers: list[str] = Field(default_factory=list)
    excluded_announcers: list[str] = Field(default_factory=list)

    def active(self) -> dict[str, list[str]]:
        """Non-empty filters, in declaration order."""

        return {name: values for name, values in self if values}


class ReleaseContext:
    """Everything a release run needs, bundled for one session.

    The context owns the session logger and holds the extension manager
    handle; the workflow engine releases both when a run ends.
    """

    def __init__(
        self,
        model: ReleaseModel,
        *,
        settings: ReleaseSettings | None = None,
        logger: SessionLogger | None = None,
        extensions: ExtensionManager | None = None,
        filters: WorkflowFilters | None = None,
        dry_run: bool | None = None,
    ) -> None:
        self.model = model
        self.settings = settings or ReleaseSettings()
        self.logger = logger or SessionLogger(trace_file=self.settings.trace_log_file)
        self.extensions = extensions if extensions is not None else ExtensionManager()
        self.filters = filters or WorkflowFilters()
        self.dry_run = self.settings.dry_run if dry_run is None else dry_run
        self.events: list[dict[str, object]] = []
        self._validated = False

    @property
    def validated(self) -> bool:
        return self._validated

    def validate_once(self) -> None:
        """Validate the model the first time this is called; later calls are no-ops.

        Raises:
            ModelValidationError: If the model is invalid.
        """

        if self._validated:
            return
        self.logger.info("Validating configuration")
        validate_model(self.model)
        self._validated = True

    def _record(self, fields: dict[str, object]) -> None:
        self.events.append({"timestamp": datetime.now(UTC).isoformat(), **fields})

    def fire_session_start_event(self) -> DispatchResult:
        self._record({"scope": SESSION, "phase": "start"})
        return self.extensions.session_start(self)

    def fire_session_end_event(self) -> DispatchResult:
        self._record({"scope": SESSION, "phase": "end"})
        return self.extensions.session_end(self)

    def fire_workflow_event(self, event: ExecutionEvent) -> DispatchResult:
        self._record(event.to_json())
        return self.extensions.workflow_step(event, self)

    def report(self) -> None:
        """Write the session report to the configured output directory."""

        path = self.settings.report_file
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "project": {
                "name": self.model.project.name,
                "version": self.model.project.version,
            },
            "dry_run": self.dry_run,
            "filters": self.filters.active(),
            "events": self.events,
        }
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        logger.debug("Report written", extra={"path": str(path)})
