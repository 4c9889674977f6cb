"""Fragment discovery and natural ordering for a project root."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Iterable, List, Pattern, Sequence, Tuple

from .config import CONFIG_CANDIDATES, ProjectConfig
from .errors import DiscoveryError
from .frontmatter import FRAGMENT_SUFFIX, parse_fragment
from .logging import get_logger
from .models import DiscoveredFiles, Fragment

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
}

DIAGRAM_SUFFIXES = frozenset({".mmd"})
IMAGE_SUFFIXES = frozenset({".png", ".jpg", ".jpeg", ".svg", ".pdf", ".gif", ".webp"})
TEMPLATE_SUFFIXES = frozenset({".latex", ".tex"})
BIBLIOGRAPHY_SUFFIXES = frozenset({".bib", ".bibtex", ".json", ".yaml"})

# Walk depth per category; 1 means files directly inside the walked directory.
FRAGMENT_DEPTH = 1
DIAGRAM_DEPTH = 2
IMAGE_DEPTH = 3
TEMPLATE_DEPTH = 2
BIBLIOGRAPHY_DEPTH = 2

_DIGIT_RUN = re.compile(r"(\d+)")


def natural_key(name: str) -> Tuple[Tuple[object, str], ...]:
    """Sort key that compares digit runs numerically: ``2-a`` < ``10-a``."""
    parts = _DIGIT_RUN.split(name)
    key: List[Tuple[object, str]] = []
    for index, part in enumerate(parts):
        # re.split alternates text and captured digits, so positions line up.
        if index % 2:
            key.append((int(part), part))
        else:
            key.append((part.casefold(), part))
    return tuple(key)


def sort_fragment_paths(paths: Iterable[Path]) -> List[Path]:
    """Order paths by natural filename comparison, ties broken by full path."""
    return sorted(paths, key=lambda path: (natural_key(path.name), str(path)))


def compile_exclusions(patterns: Sequence[str]) -> List[Pattern[str]]:
    """Compile exclusion patterns, treating invalid regexes as literals."""
    compiled: List[Pattern[str]] = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error:
            compiled.append(re.compile(re.escape(pattern)))
    return compiled


class FragmentDiscovery:
    """Enumerates fragments and auxiliary files below a project root."""

    def __init__(self, config: ProjectConfig) -> None:
        self.config = config
        self.logger = get_logger("discovery")
        self._exclusions = compile_exclusions(config.exclude_files)

    def discover_all(self) -> DiscoveredFiles:
        """Return every category of project file for one build cycle."""
        root = self.config.root
        if not root.is_dir():
            raise DiscoveryError(f"Project root not found: {root}")

        self.logger.info("Discovering project files in %s", root)
        discovered = DiscoveredFiles(
            fragments=self.discover_fragments(),
            diagram_files=self._walk(root, DIAGRAM_SUFFIXES, DIAGRAM_DEPTH),
            image_files=self._walk(self.config.images_dir, IMAGE_SUFFIXES, IMAGE_DEPTH),
            template_files=self._walk(
                self.config.templates_dir, TEMPLATE_SUFFIXES, TEMPLATE_DEPTH
            ),
            bibliography_files=[
                path
                for path in self._walk(root, BIBLIOGRAPHY_SUFFIXES, BIBLIOGRAPHY_DEPTH)
                if path.name not in CONFIG_CANDIDATES
            ],
        )
        self.logger.info(
            "Found %d markdown files, %d diagram files, %d images",
            len(discovered.fragments),
            len(discovered.diagram_files),
            len(discovered.image_files),
        )
        return discovered

    def discover_fragments(self) -> List[Fragment]:
        """Parse the root-level fragments in document order."""
        candidates = [
            path
            for path in self._walk(self.config.root, {FRAGMENT_SUFFIX}, FRAGMENT_DEPTH)
            if not self.should_exclude(path)
        ]
        fragments: List[Fragment] = []
        for path in sort_fragment_paths(candidates):
            self.logger.debug("Parsing markdown file: %s", path.name)
            try:
                fragments.append(parse_fragment(path))
            except (OSError, UnicodeDecodeError) as exc:
                raise DiscoveryError(f"Failed to read {path}: {exc}") from exc
        return fragments

    def should_exclude(self, path: Path) -> bool:
        return any(pattern.search(path.name) for pattern in self._exclusions)

    def _walk(self, base: Path, suffixes: Iterable[str], max_depth: int) -> List[Path]:
        if not base.is_dir():
            return []

        wanted = {suffix.lower() for suffix in suffixes}
        skipped = {self.config.output_dir}
        results: List[Path] = []

        def _raise(exc: OSError) -> None:
            raise exc

        try:
            for dirpath, dirnames, filenames in os.walk(base, onerror=_raise):
                current = Path(dirpath)
                level = len(current.relative_to(base).parts)
                if level + 1 >= max_depth:
                    dirnames[:] = []
                else:
                    dirnames[:] = sorted(
                        name
                        for name in dirnames
                        if name not in _EXCLUDED_DIRS and current / name not in skipped
                    )
                for filename in filenames:
                    path = current / filename
                    if path.suffix.lower() in wanted and path.is_file():
                        results.append(path)
        except OSError as exc:
            raise DiscoveryError(f"Failed to scan {base}: {exc}") from exc

        return sorted(results)


__all__ = [
    "FragmentDiscovery",
    "compile_exclusions",
    "natural_key",
    "sort_fragment_paths",
]
