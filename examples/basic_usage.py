#!/usr/bin/env python3
"""Programmatic release example.

This demonstrates using the engine directly instead of the CLI:

* load settings from `.env` and the release configuration from JSON
* register step handlers in code rather than through entry points
* attach a listener that prints every lifecycle event
* run the `announce` workflow (changelog, then announce)
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from release_orchestrator.config import ReleaseSettings
from release_orchestrator.context import ReleaseContext
from release_orchestrator.extensions import ExtensionManager, WorkflowListener
from release_orchestrator.logging import configure_logging
from release_orchestrator.model import ReleaseModel
from release_orchestrator.workflow.commands import Command, StepRegistry
from release_orchestrator.workflow.events import ExecutionEvent
from release_orchestrator.workflow.factory import build_workflow


class PrintingListener(WorkflowListener):
    continue_on_error = True

    def on_session_start(self, context: ReleaseContext) -> None:
        print(f"Releasing {context.model.project.name} {context.model.project.version}")

    def on_workflow_step(self, event: ExecutionEvent, context: ReleaseContext) -> None:
        print(f"  {event.scope}: {event.phase.value}")


def write_changelog(context: ReleaseContext) -> None:
    path = context.settings.output_directory / "CHANGELOG.md"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"## {context.model.project.version}\n\n- Example release\n", encoding="utf-8")


def announce(context: ReleaseContext) -> None:
    if context.dry_run:
        context.logger.info("Dry run: not announcing")
        return
    print(f"Announcing {context.model.project.name} {context.model.project.version}")


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the announce workflow (programmatic example).")
    parser.add_argument("--config", type=Path, default=Path("release.json"), help="Release configuration")
    parser.add_argument("--dry-run", action="store_true", help="Skip the announcement")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = ReleaseSettings()
    configure_logging(settings.log_level)

    model = ReleaseModel.from_file(args.config)
    registry = StepRegistry({Command.CHANGELOG: write_changelog, Command.ANNOUNCE: announce})

    with ExtensionManager([PrintingListener()]) as extensions:
        context = ReleaseContext(model, settings=settings, extensions=extensions, dry_run=args.dry_run or None)
        build_workflow("announce", context, registry).execute()

    print(f"Report written to: {settings.report_file}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
