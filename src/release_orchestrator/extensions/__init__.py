"""Workflow extensions: listeners and the manager that dispatches to them."""

from release_orchestrator.extensions.api import DispatchResult, WorkflowListener
from release_orchestrator.extensions.manager import ENTRY_POINT_GROUP, ExtensionManager

__all__ = [
    "DispatchResult",
    "ENTRY_POINT_GROUP",
    "ExtensionManager",
    "WorkflowListener",
]
