"""Error taxonomy shared across docpilot components."""

from __future__ import annotations

from pathlib import Path


class DocPilotError(RuntimeError):
    """Base class for failures reported to the user as a single message."""


class DiscoveryError(DocPilotError):
    """Raised when the project tree cannot be read during discovery."""


class FrontMatterError(DocPilotError):
    """Raised when a fragment opens a front-matter block that cannot be parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Invalid front-matter in {path.name}: {reason}")
        self.path = path
        self.reason = reason


class DependencyMissingError(DocPilotError):
    """Raised when a required external tool is not installed."""

    def __init__(self, tool: str, hint: str) -> None:
        super().__init__(f"Dependency missing: {tool} - {hint}")
        self.tool = tool
        self.hint = hint


class BuildError(DocPilotError):
    """Raised when the converter ran but did not produce the artifact."""

    def __init__(self, message: str, *, stderr: str = "") -> None:
        super().__init__(message)
        self.stderr = stderr


class BuildIOError(BuildError):
    """Raised when the output location cannot be prepared."""


class ConfigError(DocPilotError):
    """Raised when the persisted settings file cannot be parsed."""


class DiagramError(DocPilotError):
    """Raised when a diagram source cannot be rendered."""


__all__ = [
    "BuildError",
    "BuildIOError",
    "ConfigError",
    "DependencyMissingError",
    "DiagramError",
    "DiscoveryError",
    "DocPilotError",
    "FrontMatterError",
]
