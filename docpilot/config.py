"""Configuration loading for docpilot (docpilot.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigError
from .logging import get_logger

CONFIG_CANDIDATES = (
    "docpilot.yml",
    "docpilot.yaml",
    ".docpilot.yml",
    ".docpilot.yaml",
)

SUPPORTED_FORMATS = ("pdf", "docx", "html")

logger = get_logger("config")


@dataclass(frozen=True)
class ProjectConfig:
    """Process-wide project settings, resolved against an explicit root."""

    root: Path
    name: str = "document"
    output_dir: Path = Path("output")
    templates_dir: Path = Path("templates")
    images_dir: Path = Path("images")
    exclude_files: tuple[str, ...] = ("README.md",)
    default_format: str = "pdf"

    def __post_init__(self) -> None:
        root = Path(self.root).expanduser().resolve()
        object.__setattr__(self, "root", root)
        for attr in ("output_dir", "templates_dir", "images_dir"):
            value = Path(getattr(self, attr)).expanduser()
            if not value.is_absolute():
                value = root / value
            # Always absolute and free of ".." segments.
            value = value.resolve()
            object.__setattr__(self, attr, value)
        object.__setattr__(self, "exclude_files", tuple(self.exclude_files))

    def output_path(self, fmt: str) -> Path:
        """Return the artifact path for the given output format."""
        return self.output_dir / f"{self.name}.{fmt}"


@dataclass
class SettingsFile:
    """Mirror of the docpilot.yml layout, used for `config init/show`."""

    name: str = "document"
    output_dir: str = "output"
    templates_dir: str = "templates"
    images_dir: str = "images"
    exclude_files: List[str] = field(default_factory=lambda: ["README.md"])
    default_format: str = "pdf"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project": {
                "name": self.name,
                "output_dir": self.output_dir,
                "templates_dir": self.templates_dir,
                "images_dir": self.images_dir,
                "exclude_files": list(self.exclude_files),
            },
            "build": {"default_format": self.default_format},
        }


def find_config_file(root: Path) -> Optional[Path]:
    """Return the first settings file present in ``root``."""
    for candidate in CONFIG_CANDIDATES:
        path = Path(root) / candidate
        if path.is_file():
            return path
    return None


def load_settings(path: Path) -> SettingsFile:
    """Parse a settings file; a missing file yields defaults."""
    if not path.exists():
        logger.debug("Config file not found: %s", path)
        return SettingsFile()

    logger.info("Loading config from: %s", path)
    data = _read_config(path)
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config file: {path.name} must contain a mapping at the root")

    project = _as_dict(data.get("project"))
    build = _as_dict(data.get("build"))
    defaults = SettingsFile()

    default_format = _as_str(build.get("default_format")) or defaults.default_format
    if default_format not in SUPPORTED_FORMATS:
        raise ConfigError(
            f"Invalid config file: unsupported default_format '{default_format}'"
        )

    exclude = project.get("exclude_files")
    return SettingsFile(
        name=_as_str(project.get("name")) or defaults.name,
        output_dir=_as_str(project.get("output_dir")) or defaults.output_dir,
        templates_dir=_as_str(project.get("templates_dir")) or defaults.templates_dir,
        images_dir=_as_str(project.get("images_dir")) or defaults.images_dir,
        exclude_files=_as_str_list(exclude) if exclude is not None else defaults.exclude_files,
        default_format=default_format,
    )


def load_config(root: Path | str, config_path: Path | None = None) -> ProjectConfig:
    """Load the project configuration for ``root``."""
    root_path = Path(root).expanduser().resolve()
    path = config_path or find_config_file(root_path)
    settings = load_settings(path) if path is not None else SettingsFile()
    return ProjectConfig(
        root=root_path,
        name=settings.name,
        output_dir=Path(settings.output_dir),
        templates_dir=Path(settings.templates_dir),
        images_dir=Path(settings.images_dir),
        exclude_files=tuple(settings.exclude_files),
        default_format=settings.default_format,
    )


def save_settings(settings: SettingsFile, path: Path) -> None:
    """Write ``settings`` as YAML to ``path``."""
    logger.info("Saving config to: %s", path)
    text = yaml.safe_dump(settings.to_dict(), sort_keys=False, default_flow_style=False)
    path.write_text(text, encoding="utf-8")


def dump_settings(settings: SettingsFile) -> str:
    return yaml.safe_dump(settings.to_dict(), sort_keys=False, default_flow_style=False)


def _read_config(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ConfigError(f"Invalid config file: {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid config file: {path.name}: {exc}") from exc
    return {} if loaded is None else loaded


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "CONFIG_CANDIDATES",
    "ProjectConfig",
    "SUPPORTED_FORMATS",
    "SettingsFile",
    "dump_settings",
    "find_config_file",
    "load_config",
    "load_settings",
    "save_settings",
]
