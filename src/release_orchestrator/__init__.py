"""Release Orchestrator.

Drives a release as an ordered list of steps inside a session:
- configuration loaded from `.env` and a JSON release file
- structured logging with a per-session trace log
- session hooks and listener extensions around every step
"""

__version__ = "0.1.0"

from release_orchestrator.config import ReleaseSettings

__all__ = ["__version__", "ReleaseSettings"]
