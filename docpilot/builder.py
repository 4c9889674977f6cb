"""Pandoc invocation for a single output format."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence

from .config import ProjectConfig
from .dependencies import install_hint
from .errors import BuildError, BuildIOError, DependencyMissingError
from .formats import FormatDescriptor, detect_babel_lang
from .frontmatter import merge_metadata
from .logging import get_logger
from .models import DocumentMetadata, Fragment

DEFAULT_TITLE = "Document"
DEFAULT_TOP_LEVEL_DIVISION = "section"
AUTHOR_SEPARATOR = ", "

Runner = Callable[[Sequence[str], Path], "subprocess.CompletedProcess[str]"]


class DocumentBuilder:
    """Turns merged metadata and ordered fragments into one converter run."""

    def __init__(
        self,
        config: ProjectConfig,
        descriptor: FormatDescriptor,
        *,
        executable: str = "pandoc",
        runner: Runner | None = None,
    ) -> None:
        self.config = config
        self.descriptor = descriptor
        self.executable = executable
        self._runner = runner or self._default_runner
        self.logger = get_logger("builder")

    def build(self, fragments: Sequence[Fragment], output_path: Path) -> Path:
        """Render ``fragments`` into ``output_path`` and return the artifact path."""
        if not fragments:
            raise BuildError("No markdown files found")

        self.logger.info("Building %s: %s", self.descriptor.name.upper(), output_path)
        metadata = merge_metadata(fragments)
        args = self.build_arguments(fragments, output_path, metadata)
        self.ensure_output_dir(output_path)

        command = [self.executable, *args]
        self.logger.debug("Pandoc command: %s", " ".join(command))
        try:
            completed = self._runner(command, self.config.root)
        except FileNotFoundError as exc:
            raise DependencyMissingError(self.executable, install_hint(self.executable)) from exc

        if completed.returncode != 0:
            stderr = completed.stderr or ""
            raise BuildError(f"Pandoc failed: {stderr}", stderr=stderr)
        if not output_path.exists():
            raise BuildError(f"Pandoc exited cleanly but did not write {output_path}")

        self.logger.info(
            "%s generated successfully: %s", self.descriptor.name.upper(), output_path
        )
        return output_path

    def build_arguments(
        self,
        fragments: Sequence[Fragment],
        output_path: Path,
        metadata: DocumentMetadata,
    ) -> List[str]:
        """Return the converter argument list (without the executable)."""
        descriptor = self.descriptor
        args: List[str] = ["--standalone", *descriptor.baseline_flags]

        template = self.find_template()
        if template is not None:
            args.extend([descriptor.template_flag, str(template)])
            self.logger.info("Using template: %s", template)

        args.append("--citeproc")

        if descriptor.top_level_division:
            division = metadata.top_level_division or DEFAULT_TOP_LEVEL_DIVISION
            args.extend(["--top-level-division", division])

        if metadata.numbersections is not False:
            args.append("--number-sections")

        if metadata.toc:
            args.append("--toc")
            if metadata.toc_depth is not None:
                args.append(f"--toc-depth={metadata.toc_depth}")

        args.extend(self.metadata_arguments(metadata))
        args.extend(str(fragment.path) for fragment in fragments)
        args.extend(["-o", str(output_path)])
        return args

    def metadata_arguments(self, metadata: DocumentMetadata) -> List[str]:
        descriptor = self.descriptor
        args: List[str] = []

        def _meta(name: str, value: Any) -> None:
            args.extend(["--metadata", f"{name}={_format_value(value)}"])

        _meta("title", metadata.title or DEFAULT_TITLE)
        if metadata.author:
            _meta("author", AUTHOR_SEPARATOR.join(metadata.author))
        if metadata.date:
            _meta("date", metadata.date)
        if metadata.subtitle:
            _meta("subtitle", metadata.subtitle)

        if metadata.lang:
            _meta("lang", metadata.lang)
        if descriptor.derive_babel_lang:
            if metadata.babel_lang:
                _meta("babel-lang", metadata.babel_lang)
            elif metadata.lang:
                _meta("babel-lang", detect_babel_lang(metadata.lang))

        for key, value in metadata.items():
            name = descriptor.metadata_names.get(key)
            if name is None:
                continue
            if isinstance(value, tuple):
                for item in value:
                    _meta(name, item)
            else:
                _meta(name, value)

        for path in metadata.bibliography or ():
            args.extend(["--bibliography", path])
        if metadata.csl:
            args.extend(["--csl", metadata.csl])

        for key in sorted(metadata.extra):
            value = metadata.extra[key]
            if _is_scalar(value):
                _meta(key, value)
            elif isinstance(value, list) and all(_is_scalar(item) for item in value):
                for item in value:
                    _meta(key, item)
            else:
                # Nested values still reach pandoc through the fragment's own front-matter.
                self.logger.debug("Not forwarding structured metadata key '%s' as a flag", key)

        return args

    def find_template(self) -> Optional[Path]:
        """Return the preferred template, else the first one with the format's extension."""
        templates_dir = self.config.templates_dir
        preferred = self.descriptor.preferred_template
        if preferred is not None and (templates_dir / preferred).is_file():
            return templates_dir / preferred
        if not templates_dir.is_dir():
            return None
        try:
            candidates = sorted(
                path
                for path in templates_dir.iterdir()
                if path.is_file() and path.suffix == f".{self.descriptor.template_extension}"
            )
        except OSError as exc:
            raise BuildIOError(f"Failed to read templates directory {templates_dir}: {exc}") from exc
        return candidates[0] if candidates else None

    def ensure_output_dir(self, output_path: Path) -> None:
        directory = output_path.parent
        if directory.is_dir():
            return
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise BuildIOError(f"Cannot create output directory {directory}: {exc}") from exc
        self.logger.info("Created output directory: %s", directory)

    @staticmethod
    def _default_runner(
        command: Sequence[str], cwd: Path
    ) -> "subprocess.CompletedProcess[str]":
        return subprocess.run(
            list(command),
            cwd=str(cwd),
            check=False,
            text=True,
            capture_output=True,
        )


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


__all__ = ["AUTHOR_SEPARATOR", "DEFAULT_TITLE", "DocumentBuilder", "Runner"]
