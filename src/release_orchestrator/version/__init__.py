"""Version formats understood by the release configuration."""

from release_orchestrator.version.calver import CalVer, CalVerFormatError

__all__ = ["CalVer", "CalVerFormatError"]
