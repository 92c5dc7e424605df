"""Release workflow domain concepts.

This package introduces first-class types for:
- Lifecycle events fired around the session and each step
- Release stages (commands) and the items that run them
- The failure record and its resolution into a single outcome
- The workflow engine and the factories that assemble step lists

Import from the submodules directly; this package does not re-export them so
that `hooks` and `context` can depend on `workflow.events` without cycles.
"""

__all__: list[str] = []
