"""Tests for `docpilot init` scaffolding."""

from __future__ import annotations

import datetime as dt
from pathlib import Path

from docpilot.errors import DocPilotError
from docpilot.frontmatter import extract_frontmatter
from docpilot.scaffold import ProjectScaffold
from docpilot.templates import TemplateManager


def test_initialize_creates_layout_and_starter_fragments(tmp_path: Path) -> None:
    scaffold = ProjectScaffold(tmp_path, 'The "Big" Report', today=dt.date(2024, 5, 1))

    result = scaffold.initialize()

    for name in ("output", "templates", "images"):
        assert (tmp_path / name).is_dir()
    setup = tmp_path / "00-setup.md"
    metadata, _ = extract_frontmatter(setup.read_text(encoding="utf-8"), setup)
    assert metadata.title == 'The "Big" Report'
    assert metadata.date == "2024-05-01"
    assert metadata.top_level_division == "section"
    assert (tmp_path / "01-introduction.md").exists()
    assert len(result.created) == 5
    assert result.skipped == []


def test_initialize_never_overwrites(tmp_path: Path) -> None:
    setup = tmp_path / "00-setup.md"
    setup.write_text("---\ntitle: Mine\n---\n", encoding="utf-8")

    result = ProjectScaffold(tmp_path, "ignored").initialize()

    assert setup.read_text(encoding="utf-8") == "---\ntitle: Mine\n---\n"
    assert setup in result.skipped

    again = ProjectScaffold(tmp_path, "ignored").initialize()
    assert again.created == []


def test_template_download_failure_is_not_fatal(tmp_path: Path) -> None:
    def fetch(url: str) -> bytes:
        raise DocPilotError("Failed to download template: offline")

    templates = TemplateManager(tmp_path / "templates", fetch=fetch)

    result = ProjectScaffold(tmp_path, "offline", templates=templates).initialize()

    assert (tmp_path / "00-setup.md").exists()
    assert not (tmp_path / "templates" / "eisvogel.latex").exists()
    assert len(result.created) == 5
