"""Unit tests for the command line entrypoint."""

from __future__ import annotations

import json
import logging
import shlex
import sys
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from release_orchestrator.context import ReleaseContext
from release_orchestrator.main import build_parser, main


@dataclass
class FakeEntryPoint:
    name: str
    target: Any

    def load(self) -> Any:
        return self.target


@pytest.fixture(autouse=True)
def isolated(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Run inside tmp_path with a clean environment and restore root logging."""

    for name in ("LOG_LEVEL", "RELEASE_OUTPUT_DIRECTORY", "RELEASE_DRY_RUN", "RELEASE_CONFIG_FILE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def steps(monkeypatch: pytest.MonkeyPatch) -> dict[str, Any]:
    """Step handlers exposed as if installed under the steps entry point group."""

    installed: dict[str, Any] = {}

    def fake_entry_points(*, group: str) -> list[FakeEntryPoint]:
        return [FakeEntryPoint(name, target) for name, target in installed.items()]

    monkeypatch.setattr("release_orchestrator.workflow.commands.entry_points", fake_entry_points)
    return installed


def _write_config(path: Path, **overrides: Any) -> Path:
    config: dict[str, Any] = {"project": {"name": "demo", "version": "2.0.0"}}
    config.update(overrides)
    path.write_text(json.dumps(config), encoding="utf-8")
    return path


def test_parser_exposes_workflows_with_filters() -> None:
    args = build_parser().parse_args(
        ["full-release", "--dry-run", "--included-announcers", "slack", "--included-announcers", "mail"]
    )

    assert args.command == "full-release"
    assert args.dry_run is True
    assert args.included_announcers == ["slack", "mail"]
    assert args.excluded_announcers == []


def test_validate(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config = _write_config(tmp_path / "release.json")

    assert main(["validate", "--config", str(config)]) == 0
    assert "Configuration is valid" in capsys.readouterr().out


def test_validate_reports_invalid_configuration(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config = _write_config(tmp_path / "release.json", project={"name": "demo", "version": "2.0"})

    assert main(["validate", "--config", str(config)]) == 1
    assert "not a semantic version" in capsys.readouterr().err


def test_missing_configuration_is_a_config_error(tmp_path: Path) -> None:
    assert main(["release", "--config", str(tmp_path / "missing.json")]) == 2


def test_malformed_configuration_is_a_config_error(tmp_path: Path) -> None:
    config = tmp_path / "release.json"
    config.write_text('{"project": {"name": "demo"}}', encoding="utf-8")

    assert main(["validate", "--config", str(config)]) == 2


def test_bad_log_level_is_a_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "loud")

    assert main(["validate"]) == 2


def test_release_runs_registered_steps_and_writes_report(tmp_path: Path, steps: dict[str, Any]) -> None:
    invoked: list[str] = []

    def announce(context: ReleaseContext) -> None:
        invoked.append(f"announce dry_run={context.dry_run}")

    steps["announce"] = announce
    _write_config(tmp_path / "release.json")
    out = tmp_path / "out"

    code = main(
        ["announce", "--output-directory", str(out), "--dry-run", "--included-announcers", "slack"]
    )

    assert code == 0
    assert invoked == ["announce dry_run=True"]
    report = json.loads((out / "release-report.json").read_text(encoding="utf-8"))
    assert report["dry_run"] is True
    assert report["filters"] == {"included_announcers": ["slack"]}
    assert [(e["scope"], e["phase"]) for e in report["events"]] == [
        ("session", "start"),
        ("changelog", "before"),
        ("changelog", "success"),
        ("announce", "before"),
        ("announce", "success"),
        ("session", "end"),
    ]
    assert (out / "trace.log").exists()


def test_failing_step_exits_with_failure(tmp_path: Path, steps: dict[str, Any]) -> None:
    def upload(_context: ReleaseContext) -> None:
        raise ConnectionError("artifact store unreachable")

    steps["upload"] = upload
    config = _write_config(tmp_path / "release.json")

    assert main(["upload", "--config", str(config), "--output-directory", str(tmp_path / "out")]) == 1


def test_failing_before_hook_exits_with_failure(tmp_path: Path, steps: dict[str, Any]) -> None:
    invoked: list[str] = []
    steps["deploy"] = lambda context: invoked.append("deploy")
    hook = {"cmd": shlex.join([sys.executable, "-c", "import sys; sys.exit(4)"])}
    config = _write_config(tmp_path / "release.json", hooks={"command": {"before": [hook]}})

    assert main(["deploy", "--config", str(config), "--output-directory", str(tmp_path / "out")]) == 1
    assert invoked == []


class BrokenEntryPoint(FakeEntryPoint):
    def load(self) -> Any:
        raise ImportError("No module named 'release_steps'")


def test_broken_step_plugin_leaves_no_trace_handler(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(
        "release_orchestrator.workflow.commands.entry_points",
        lambda *, group: [BrokenEntryPoint("announce", None)],
    )
    config = _write_config(tmp_path / "release.json")

    code = main(["announce", "--config", str(config), "--output-directory", str(tmp_path / "out")])

    assert code == 1
    assert logging.getLogger("release_orchestrator.session").handlers == []


def test_invalid_configuration_closes_the_trace_log(tmp_path: Path, steps: dict[str, Any]) -> None:
    config = _write_config(tmp_path / "release.json", project={"name": "demo", "version": "2.0"})

    code = main(["release", "--config", str(config), "--output-directory", str(tmp_path / "out")])

    assert code == 1
    assert logging.getLogger("release_orchestrator.session").handlers == []
