"""External tool detection with platform-specific install hints."""

from __future__ import annotations

import shutil
import subprocess
import sys
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .errors import DependencyMissingError
from .logging import get_logger

logger = get_logger("dependencies")

# tool name -> (package name used in hints, required for any build)
_TOOLS: Sequence[tuple[str, str, bool]] = (
    ("pandoc", "pandoc", True),
    ("xelatex", "texlive", True),
    ("mmdc", "mermaid-cli", False),
)

_FORMAT_TOOLS = {
    "pdf": ("pandoc", "xelatex"),
    "all": ("pandoc", "xelatex"),
    "docx": ("pandoc",),
    "html": ("pandoc",),
    "diagrams": ("mmdc",),
}


@dataclass
class DependencyStatus:
    """Availability of one external tool."""

    name: str
    available: bool
    version: Optional[str]
    required: bool
    install_hint: str


def install_hint(package: str, *, platform: str | None = None) -> str:
    """Return a one-line install command for ``package`` on this platform."""
    platform = platform or sys.platform
    if package == "mermaid-cli":
        return "npm install -g @mermaid-js/mermaid-cli"
    if platform == "darwin":
        if package == "texlive":
            return "brew install --cask mactex"
        return f"brew install {package}"
    if platform.startswith("linux"):
        if package == "texlive":
            return "sudo apt install texlive-xetex"
        return f"sudo apt install {package}"
    return f"Install {package} via your package manager"


class DependencyChecker:
    """Reports which converter tools are installed."""

    def __init__(
        self,
        which: Callable[[str], Optional[str]] | None = None,
        runner: Callable[[List[str]], str] | None = None,
    ) -> None:
        self._which = which or shutil.which
        self._runner = runner or self._default_runner

    def check_all(self) -> List[DependencyStatus]:
        return [self.check(name) for name, _package, _required in _TOOLS]

    def check(self, name: str) -> DependencyStatus:
        package, required = next(
            (pkg, req) for tool, pkg, req in _TOOLS if tool == name
        )
        available = self._which(name) is not None
        version = self._probe_version(name) if available else None
        return DependencyStatus(
            name=name,
            available=available,
            version=version,
            required=required,
            install_hint=install_hint(package),
        )

    def validate_for_build(self, fmt: str) -> None:
        """Raise :class:`DependencyMissingError` when a tool for ``fmt`` is absent."""
        logger.info("Validating dependencies for %s build", fmt)
        needed = _FORMAT_TOOLS.get(fmt, ("pandoc",))
        missing = [status for status in map(self.check, needed) if not status.available]
        if not missing:
            return

        lines = [f"Missing required dependencies for {fmt} format:"]
        lines.extend(f"  - {status.name}: {status.install_hint}" for status in missing)
        tool = missing[0].name if len(missing) == 1 else "multiple"
        raise DependencyMissingError(tool, "\n".join(lines))

    def _probe_version(self, name: str) -> Optional[str]:
        logger.debug("Checking version for command: %s", name)
        try:
            output = self._runner([name, "--version"])
        except (OSError, subprocess.SubprocessError):
            return None
        first_line = next((line for line in output.splitlines() if line.strip()), "")
        return first_line.strip() or None

    @staticmethod
    def _default_runner(args: List[str]) -> str:
        completed = subprocess.run(
            args,
            check=True,
            text=True,
            capture_output=True,
            timeout=30,
        )
        return completed.stdout


__all__ = ["DependencyChecker", "DependencyStatus", "install_hint"]
