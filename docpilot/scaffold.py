"""`docpilot init` project scaffolding."""

from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .errors import DocPilotError
from .frontmatter import SETUP_FRAGMENT
from .logging import get_logger
from .templates import TemplateManager

INTRODUCTION_FRAGMENT = "01-introduction.md"
PROJECT_DIRS = ("output", "templates", "images")

_SETUP_TEMPLATE = """\
---
# Document metadata
title: "{title}"
author: ["Your Name"]
date: "{date}"
# subtitle: "Document Subtitle"

# Language (babel-lang is derived from lang for PDF output)
lang: "en"
# babel-lang: "ngerman"

# Document structure
top-level-division: "section"
numbersections: true
# secnumdepth: 3
# toc: true
# toc-depth: 3

# Layout
# documentclass: "article"
# classoption: ["11pt", "a4paper"]
# geometry: ["margin=2.5cm"]
# mainfont: "Times New Roman"

# Bibliography
# bibliography: ["references.bib"]
# csl: "ieee.csl"
# link-citations: true

# Links
# colorlinks: true
# linkcolor: "blue"
---

# Project Setup

The front-matter above configures the whole document. Values set here take
precedence over front-matter in every other fragment.

Add content in numbered Markdown files (`01-introduction.md`,
`02-chapter.md`, ...) and run `docpilot build pdf`.
"""

_INTRODUCTION_TEMPLATE = """\
# Introduction

Welcome to **{title}**.

Fragments are assembled in natural filename order, so `02-results.md` comes
before `10-appendix.md`. Images belong in `images/`, templates in
`templates/`.
"""


@dataclass
class ScaffoldResult:
    created: List[Path] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)


class ProjectScaffold:
    """Creates the starter layout for a new document project."""

    def __init__(
        self,
        root: Path,
        name: str,
        *,
        today: Optional[_dt.date] = None,
        templates: TemplateManager | None = None,
    ) -> None:
        self.root = root
        self.name = name
        self.today = today or _dt.date.today()
        self.templates = templates
        self.logger = get_logger("scaffold")

    def initialize(self) -> ScaffoldResult:
        """Create directories and starter fragments, never overwriting files."""
        self.logger.info("Initializing docpilot project: %s", self.name)
        result = ScaffoldResult()

        for name in PROJECT_DIRS:
            directory = self.root / name
            if directory.is_dir():
                result.skipped.append(directory)
                continue
            directory.mkdir(parents=True, exist_ok=True)
            self.logger.debug("Created directory: %s", directory)
            result.created.append(directory)

        self._write(
            self.root / SETUP_FRAGMENT,
            _SETUP_TEMPLATE.format(title=_yaml_escape(self.name), date=self.today.isoformat()),
            result,
        )
        self._write(
            self.root / INTRODUCTION_FRAGMENT,
            _INTRODUCTION_TEMPLATE.format(title=self.name),
            result,
        )

        if self.templates is not None:
            try:
                result.created.append(self.templates.download_eisvogel())
            except DocPilotError as exc:
                self.logger.warning("Failed to download Eisvogel template: %s", exc)
                self.logger.info(
                    "Continuing without template; run 'docpilot templates download-eisvogel' later"
                )

        return result

    def _write(self, path: Path, content: str, result: ScaffoldResult) -> None:
        if path.exists():
            self.logger.info("Keeping existing %s", path.name)
            result.skipped.append(path)
            return
        path.write_text(content, encoding="utf-8")
        self.logger.info("Created %s", path.name)
        result.created.append(path)


def _yaml_escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


__all__ = ["INTRODUCTION_FRAGMENT", "PROJECT_DIRS", "ProjectScaffold", "ScaffoldResult"]
