"""Command-level pipelines: build, watch, status, clean and diagrams."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Sequence

from .builder import DocumentBuilder, Runner
from .config import ProjectConfig
from .dependencies import DependencyChecker
from .diagrams import DiagramProcessor, DiagramRenderer, DiagramResult
from .discovery import FragmentDiscovery
from .errors import BuildError, BuildIOError
from .formats import FORMATS, get_format
from .frontmatter import merge_metadata
from .logging import get_logger
from .models import DiscoveredFiles, DocumentMetadata
from .watcher import WatchScheduler


@dataclass
class ProjectStatus:
    """Snapshot reported by `docpilot status`."""

    config: ProjectConfig
    discovered: DiscoveredFiles
    metadata: DocumentMetadata


class Orchestrator:
    """Coordinates discovery, metadata resolution and conversion for one project."""

    def __init__(
        self,
        config: ProjectConfig,
        *,
        runner: Runner | None = None,
        dependency_checker: DependencyChecker | None = None,
        diagram_renderer: DiagramRenderer | None = None,
        observer_factory: Callable[[], Any] | None = None,
        validate_dependencies: bool = True,
    ) -> None:
        self.config = config
        self._runner = runner
        self.dependency_checker = dependency_checker or DependencyChecker()
        self._diagram_renderer = diagram_renderer
        self._observer_factory = observer_factory
        self.validate_dependencies = validate_dependencies
        self.logger = get_logger("orchestrator")

    def discover(self) -> DiscoveredFiles:
        return FragmentDiscovery(self.config).discover_all()

    def build_cycle(self, fmt: str) -> Path:
        """Run one discovery -> merge -> convert pass for ``fmt``."""
        descriptor = get_format(fmt)
        discovered = self.discover()
        if not discovered.fragments:
            raise BuildError(f"No markdown files found in {self.config.root}")
        builder = DocumentBuilder(self.config, descriptor, runner=self._runner)
        return builder.build(discovered.fragments, self.config.output_path(descriptor.extension))

    def run_build(self, fmt: str) -> Path:
        get_format(fmt)
        if self.validate_dependencies:
            self.dependency_checker.validate_for_build(fmt)
        return self.build_cycle(fmt)

    def run_build_all(self) -> List[Path]:
        """Build every format from a single discovery pass."""
        if self.validate_dependencies:
            self.dependency_checker.validate_for_build("all")
        discovered = self.discover()
        if not discovered.fragments:
            raise BuildError(f"No markdown files found in {self.config.root}")

        outputs: List[Path] = []
        for descriptor in FORMATS.values():
            builder = DocumentBuilder(self.config, descriptor, runner=self._runner)
            outputs.append(
                builder.build(discovered.fragments, self.config.output_path(descriptor.extension))
            )
        return outputs

    def create_watcher(self, fmt: str) -> WatchScheduler:
        get_format(fmt)
        return WatchScheduler(
            lambda: self.build_cycle(fmt),
            self.config.root,
            ignore_dirs=[self.config.output_dir],
            observer_factory=self._observer_factory,
        )

    def run_watch(self, fmt: str) -> WatchScheduler:
        """Block in the watch loop; returns the stopped scheduler."""
        self.logger.info("Starting file watcher for %s format", fmt)
        scheduler = self.create_watcher(fmt)
        scheduler.run()
        return scheduler

    def run_status(self) -> ProjectStatus:
        discovered = self.discover()
        return ProjectStatus(
            config=self.config,
            discovered=discovered,
            metadata=merge_metadata(discovered.fragments),
        )

    def run_clean(self) -> bool:
        """Remove the output directory; returns False when it was already absent."""
        output_dir = self.config.output_dir.resolve()
        root = self.config.root.resolve()
        if not output_dir.exists():
            return False
        if output_dir == root or output_dir in root.parents:
            raise BuildIOError(f"Refusing to remove {output_dir}: it contains the project")
        shutil.rmtree(output_dir)
        self.logger.info("Cleaned output directory: %s", output_dir)
        return True

    def run_diagrams(self, formats: Sequence[str] = ("svg",)) -> List[DiagramResult]:
        discovered = self.discover()
        processor = DiagramProcessor(self.config.output_dir, self._diagram_renderer)
        return processor.process_all(discovered.diagram_files, formats)


__all__ = ["Orchestrator", "ProjectStatus"]
