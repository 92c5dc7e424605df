"""CLI entrypoint for release workflows."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from release_orchestrator import __version__
from release_orchestrator.config import ReleaseSettings
from release_orchestrator.context import ReleaseContext, WorkflowFilters
from release_orchestrator.errors import ReleaseError
from release_orchestrator.extensions import ExtensionManager
from release_orchestrator.logging import configure_logging
from release_orchestrator.model import ReleaseModel, validate_model
from release_orchestrator.workflow.commands import StepRegistry
from release_orchestrator.workflow.factory import WORKFLOWS, build_workflow

logger = logging.getLogger(__name__)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to the JSON release configuration (defaults to RELEASE_CONFIG_FILE)",
    )
    parser.add_argument(
        "--output-directory",
        type=Path,
        default=None,
        help="Where to write the trace log and report (defaults to RELEASE_OUTPUT_DIRECTORY)",
    )


def _add_workflow_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Skip remote operations (defaults to RELEASE_DRY_RUN)",
    )
    for field in WorkflowFilters.model_fields:
        parser.add_argument(
            "--" + field.replace("_", "-"),
            dest=field,
            action="append",
            default=[],
            metavar="NAME",
            help=f"Add NAME to the {field.replace('_', ' ')} filter",
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="release-orchestrator",
        description="Run release workflows: assemble, release, publish and announce a project",
    )
    parser.add_argument(
        "--version", action="version", version=f"release-orchestrator {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Validate the release configuration")
    _add_common_arguments(validate)

    for name, commands in WORKFLOWS.items():
        sub = subparsers.add_parser(
            name.replace("_", "-"),
            help="Run steps: " + ", ".join(c.value for c in commands),
        )
        _add_common_arguments(sub)
        _add_workflow_arguments(sub)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = ReleaseSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    if args.output_directory is not None:
        settings = settings.model_copy(update={"output_directory": args.output_directory})

    config_path: Path = args.config or settings.config_file
    try:
        model = ReleaseModel.from_file(config_path)
    except FileNotFoundError:
        logger.error("Release configuration not found", extra={"path": str(config_path)})
        return 2
    except ValidationError as e:
        logger.error("Release configuration is malformed", extra={"path": str(config_path)})
        print(e, file=sys.stderr)
        return 2

    try:
        if args.command == "validate":
            validate_model(model)
            print(f"Configuration is valid: {config_path}")
            return 0

        filters = WorkflowFilters(**{field: getattr(args, field) for field in WorkflowFilters.model_fields})
        registry = StepRegistry.from_entry_points()
        with ExtensionManager.load(model.extensions) as extensions:
            context = ReleaseContext(
                model,
                settings=settings,
                extensions=extensions,
                filters=filters,
                dry_run=True if args.dry_run else None,
            )
            try:
                workflow = build_workflow(args.command.replace("-", "_"), context, registry)
            except Exception:
                # The workflow owns the session logger only once it exists.
                context.logger.close()
                raise
            workflow.execute()
        return 0

    except ReleaseError as e:
        logger.error(str(e))
        print(str(e), file=sys.stderr)
        return 1

    except Exception:
        logger.exception("Release failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
