"""Tests for external tool detection."""

from __future__ import annotations

import subprocess

import pytest

from docpilot.dependencies import DependencyChecker, install_hint
from docpilot.errors import DependencyMissingError


def _checker(*installed: str, version: str = "pandoc 3.1.9\nCompiled with ...\n") -> DependencyChecker:
    return DependencyChecker(
        which=lambda name: f"/usr/bin/{name}" if name in installed else None,
        runner=lambda args: version,
    )


@pytest.mark.parametrize(
    "package, platform, expected",
    [
        ("pandoc", "linux", "sudo apt install pandoc"),
        ("texlive", "linux", "sudo apt install texlive-xetex"),
        ("pandoc", "darwin", "brew install pandoc"),
        ("texlive", "darwin", "brew install --cask mactex"),
        ("mermaid-cli", "win32", "npm install -g @mermaid-js/mermaid-cli"),
        ("pandoc", "win32", "Install pandoc via your package manager"),
    ],
)
def test_install_hints_follow_platform(package: str, platform: str, expected: str) -> None:
    assert install_hint(package, platform=platform) == expected


def test_check_all_reports_each_tool() -> None:
    statuses = {status.name: status for status in _checker("pandoc").check_all()}

    assert list(statuses) == ["pandoc", "xelatex", "mmdc"]
    assert statuses["pandoc"].available is True
    assert statuses["pandoc"].version == "pandoc 3.1.9"
    assert statuses["xelatex"].available is False
    assert statuses["xelatex"].version is None
    assert statuses["mmdc"].required is False


def test_failed_version_probe_still_counts_as_available() -> None:
    def runner(args):
        raise subprocess.CalledProcessError(1, args)

    checker = DependencyChecker(which=lambda name: f"/usr/bin/{name}", runner=runner)

    status = checker.check("pandoc")

    assert status.available is True
    assert status.version is None


def test_validate_for_build_names_the_single_missing_tool() -> None:
    with pytest.raises(DependencyMissingError) as excinfo:
        _checker("pandoc").validate_for_build("pdf")

    assert excinfo.value.tool == "xelatex"
    assert "Missing required dependencies for pdf format" in excinfo.value.hint


def test_validate_for_build_only_needs_pandoc_for_docx() -> None:
    _checker("pandoc").validate_for_build("docx")
    _checker("pandoc").validate_for_build("html")


def test_validate_for_build_lists_every_missing_tool() -> None:
    with pytest.raises(DependencyMissingError) as excinfo:
        _checker().validate_for_build("all")

    assert excinfo.value.tool == "multiple"
    assert "  - pandoc:" in excinfo.value.hint
    assert "  - xelatex:" in excinfo.value.hint
