"""Diagram source rendering through the Mermaid CLI."""

from __future__ import annotations

import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence

from .dependencies import install_hint
from .errors import DependencyMissingError, DiagramError, DocPilotError
from .logging import get_logger

DIAGRAMS_SUBDIR = "diagrams"


class DiagramRenderer(Protocol):
    """Turns diagram source text into image bytes of the requested format."""

    def render(self, source: str, fmt: str) -> bytes:
        ...


class MermaidCliRenderer:
    """Renders Mermaid source with ``mmdc`` from @mermaid-js/mermaid-cli."""

    def __init__(
        self,
        executable: str = "mmdc",
        runner: Callable[[List[str]], "subprocess.CompletedProcess[str]"] | None = None,
    ) -> None:
        self.executable = executable
        self._runner = runner or self._default_runner

    def render(self, source: str, fmt: str) -> bytes:
        with tempfile.TemporaryDirectory(prefix="docpilot-mmd-") as tmp:
            tmp_path = Path(tmp)
            input_path = tmp_path / "diagram.mmd"
            output_path = tmp_path / f"diagram.{fmt}"
            input_path.write_text(source, encoding="utf-8")

            command = [self.executable, "-i", str(input_path), "-o", str(output_path)]
            try:
                completed = self._runner(command)
            except FileNotFoundError as exc:
                raise DependencyMissingError(self.executable, install_hint("mermaid-cli")) from exc

            if completed.returncode != 0:
                raise DiagramError(f"Failed to render Mermaid diagram: {completed.stderr.strip()}")
            if not output_path.exists():
                raise DiagramError("Mermaid renderer produced no output")
            return output_path.read_bytes()

    @staticmethod
    def _default_runner(command: List[str]) -> "subprocess.CompletedProcess[str]":
        return subprocess.run(command, check=False, text=True, capture_output=True)


@dataclass
class DiagramResult:
    """Outcome of rendering one diagram source file."""

    source: Path
    outputs: List[Path] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class DiagramProcessor:
    """Renders each diagram source independently into ``<output>/diagrams``."""

    def __init__(self, output_dir: Path, renderer: DiagramRenderer | None = None) -> None:
        self.output_dir = output_dir / DIAGRAMS_SUBDIR
        self.renderer = renderer or MermaidCliRenderer()
        self.logger = get_logger("diagrams")

    def process_all(
        self, sources: Sequence[Path], formats: Sequence[str] = ("svg",)
    ) -> List[DiagramResult]:
        """Render every source; one failing diagram does not stop the others.

        A missing renderer is raised immediately since no diagram could succeed.
        """
        if not sources:
            return []
        self.output_dir.mkdir(parents=True, exist_ok=True)

        results: List[DiagramResult] = []
        for source in sources:
            result = DiagramResult(source=source)
            try:
                result.outputs = self.process_file(source, formats)
            except DependencyMissingError:
                raise
            except (DocPilotError, OSError, UnicodeDecodeError) as exc:
                self.logger.error("Failed to process %s: %s", source.name, exc)
                result.error = str(exc)
            results.append(result)
        return results

    def process_file(self, source: Path, formats: Sequence[str] = ("svg",)) -> List[Path]:
        self.logger.info("Processing diagram: %s", source)
        content = source.read_text(encoding="utf-8")
        outputs: List[Path] = []
        for fmt in formats:
            target = self.output_dir / f"{source.stem}.{fmt}"
            target.write_bytes(self.renderer.render(content, fmt))
            self.logger.debug("Generated %s", target)
            outputs.append(target)
        return outputs


__all__ = [
    "DIAGRAMS_SUBDIR",
    "DiagramProcessor",
    "DiagramRenderer",
    "DiagramResult",
    "MermaidCliRenderer",
]
