"""Template listing, installation and the Eisvogel download."""

from __future__ import annotations

import io
import shutil
import zipfile
from pathlib import Path
from typing import Callable, List
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .errors import DocPilotError
from .logging import get_logger

EISVOGEL_URL = (
    "https://github.com/Wandmalfarbe/pandoc-latex-template/releases/latest/download/Eisvogel.zip"
)
EISVOGEL_FILENAME = "eisvogel.latex"

Fetcher = Callable[[str], bytes]


class TemplateManager:
    """Manages converter templates stored in the project's templates directory."""

    def __init__(self, templates_dir: Path, fetch: Fetcher | None = None) -> None:
        self.templates_dir = templates_dir
        self._fetch = fetch or _http_fetch
        self.logger = get_logger("templates")

    def list_templates(self) -> List[str]:
        if not self.templates_dir.is_dir():
            return []
        return sorted(path.name for path in self.templates_dir.iterdir() if path.is_file())

    def install_template(self, source: Path) -> Path:
        """Copy ``source`` into the templates directory and return the new path."""
        self.logger.info("Installing template from: %s", source)
        if not source.is_file():
            raise DocPilotError(f"Template file not found: {source}")
        self.ensure_templates_dir()
        destination = self.templates_dir / source.name
        shutil.copyfile(source, destination)
        self.logger.info("Template installed: %s", destination)
        return destination

    def download_eisvogel(self, url: str = EISVOGEL_URL) -> Path:
        """Download the Eisvogel release archive and extract its LaTeX template."""
        self.logger.info("Downloading Eisvogel template")
        payload = self._fetch(url)
        try:
            archive = zipfile.ZipFile(io.BytesIO(payload))
        except zipfile.BadZipFile as exc:
            raise DocPilotError(f"Failed to open Eisvogel archive: {exc}") from exc

        with archive:
            member = next(
                (name for name in archive.namelist() if name.endswith(".latex")), None
            )
            if member is None:
                raise DocPilotError("No .latex file found in Eisvogel archive")
            content = archive.read(member)

        self.ensure_templates_dir()
        destination = self.templates_dir / EISVOGEL_FILENAME
        destination.write_bytes(content)
        self.logger.info("Downloaded Eisvogel template to: %s", destination)
        return destination

    def ensure_templates_dir(self) -> None:
        if not self.templates_dir.exists():
            self.templates_dir.mkdir(parents=True, exist_ok=True)
            self.logger.debug("Created templates directory: %s", self.templates_dir)


def _http_fetch(url: str) -> bytes:
    request = Request(url, headers={"User-Agent": "docpilot"})
    try:
        with urlopen(request, timeout=60) as response:  # type: ignore[arg-type]
            return response.read()
    except HTTPError as exc:  # pragma: no cover - depends on network
        raise DocPilotError(f"Failed to download template: HTTP {exc.code}") from exc
    except URLError as exc:  # pragma: no cover - depends on network
        raise DocPilotError(f"Failed to download template: {exc.reason}") from exc


__all__ = ["EISVOGEL_FILENAME", "EISVOGEL_URL", "TemplateManager"]
