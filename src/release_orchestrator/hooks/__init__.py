"""Session hook execution."""

from release_orchestrator.hooks.executor import HookExecutor, platform_matches

__all__ = ["HookExecutor", "platform_matches"]
