"""Unit tests for the extension manager."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pytest

from release_orchestrator.context import ReleaseContext
from release_orchestrator.errors import ReleaseError
from release_orchestrator.extensions import ENTRY_POINT_GROUP, ExtensionManager, WorkflowListener
from release_orchestrator.model import ExtensionSpec
from release_orchestrator.workflow.events import ExecutionEvent
from tests.conftest import RecordingListener


@dataclass
class FakeEntryPoint:
    name: str
    target: Callable[..., Any]

    def load(self) -> Callable[..., Any]:
        return self.target


class PropertiesListener(WorkflowListener):
    def on_workflow_step(self, event: ExecutionEvent, context: ReleaseContext) -> None:
        pass


class ExplodingClose(PropertiesListener):
    def close(self) -> None:
        raise RuntimeError("close failed")


@pytest.fixture
def installed(monkeypatch: pytest.MonkeyPatch) -> dict[str, Callable[..., Any]]:
    """Replace installed entry points with an editable mapping."""

    available: dict[str, Callable[..., Any]] = {}

    def fake_entry_points(*, group: str) -> list[FakeEntryPoint]:
        assert group == ENTRY_POINT_GROUP
        return [FakeEntryPoint(name, target) for name, target in available.items()]

    monkeypatch.setattr("release_orchestrator.extensions.manager.entry_points", fake_entry_points)
    return available


def test_dispatch_continues_past_tolerant_failures(calls: list[str], context: ReleaseContext) -> None:
    first = RecordingListener(calls, continue_on_error=True, fail_on={"session_start"})
    second = RecordingListener(calls)
    manager = ExtensionManager([first, second])

    result = manager.session_start(context)

    assert calls == ["session_start", "session_start"]
    assert result.halted is None
    assert len(result.tolerated) == 1
    assert result.tolerated[0].continue_on_error is True
    assert result.tolerated[0].listener == "RecordingListener"
    assert not result.ok


def test_dispatch_stops_at_first_intolerant_failure(calls: list[str], context: ReleaseContext) -> None:
    error = RuntimeError("stop")
    tolerant = RecordingListener(calls, continue_on_error=True, fail_on={"release:before"})
    strict = RecordingListener(calls, fail_on={"release:before"}, error=error)
    never = RecordingListener([])
    manager = ExtensionManager([tolerant, strict, never])

    result = manager.workflow_step(ExecutionEvent.before("release"), context)

    assert result.halted is not None
    assert result.halted.cause is error
    assert len(result.tolerated) == 1
    assert never.calls == []


def test_dispatch_without_listeners_is_ok(context: ReleaseContext) -> None:
    assert ExtensionManager().session_end(context).ok


def test_cleanup_closes_listeners_once(calls: list[str]) -> None:
    listener = RecordingListener(calls)
    manager = ExtensionManager([listener])

    manager.cleanup()
    manager.cleanup()

    assert listener.closed == 1
    assert manager.listeners == ()
    with pytest.raises(ReleaseError):
        manager.register(RecordingListener(calls))


def test_cleanup_survives_close_errors(calls: list[str]) -> None:
    after = RecordingListener(calls)
    manager = ExtensionManager([ExplodingClose(), after])

    manager.cleanup()

    assert after.closed == 1


def test_context_manager_cleans_up(calls: list[str]) -> None:
    listener = RecordingListener(calls)
    with ExtensionManager([listener]) as manager:
        assert manager.listeners == (listener,)
    assert listener.closed == 1


def test_load_instantiates_enabled_extensions(installed: dict[str, Callable[..., Any]]) -> None:
    installed["audit"] = PropertiesListener
    installed["unused"] = PropertiesListener

    manager = ExtensionManager.load(
        {
            "audit": ExtensionSpec(continue_on_error=True, properties={"channel": "#releases"}),
            "unused": ExtensionSpec(enabled=False),
        }
    )

    (listener,) = manager.listeners
    assert isinstance(listener, PropertiesListener)
    assert listener.properties == {"channel": "#releases"}
    assert listener.continue_on_error is True


def test_load_keeps_listener_policy_without_override(installed: dict[str, Callable[..., Any]]) -> None:
    installed["audit"] = PropertiesListener

    (listener,) = ExtensionManager.load({"audit": ExtensionSpec()}).listeners

    assert listener.continue_on_error is False


def test_load_rejects_missing_extension(installed: dict[str, Callable[..., Any]]) -> None:
    with pytest.raises(ReleaseError, match="not installed"):
        ExtensionManager.load({"missing": ExtensionSpec()})


def test_load_rejects_non_listener(installed: dict[str, Callable[..., Any]]) -> None:
    installed["bogus"] = lambda properties: object()

    with pytest.raises(ReleaseError, match="did not produce"):
        ExtensionManager.load({"bogus": ExtensionSpec()})


@pytest.mark.parametrize(
    ("name", "target", "message"),
    [
        ("missing", None, "not installed"),
        ("bogus", lambda properties: object(), "did not produce"),
    ],
)
def test_load_failure_closes_listeners_already_loaded(
    installed: dict[str, Callable[..., Any]],
    calls: list[str],
    name: str,
    target: Callable[..., Any] | None,
    message: str,
) -> None:
    loaded = RecordingListener(calls)
    installed["audit"] = lambda properties: loaded
    if target is not None:
        installed[name] = target

    with pytest.raises(ReleaseError, match=message):
        ExtensionManager.load({"audit": ExtensionSpec(), name: ExtensionSpec()})

    assert loaded.closed == 1
