"""Core data models shared across docpilot components."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class DocumentMetadata:
    """Document settings read from fragment front-matter."""

    title: Optional[str] = None
    author: Optional[Tuple[str, ...]] = None
    date: Optional[str] = None
    subtitle: Optional[str] = None

    lang: Optional[str] = None
    babel_lang: Optional[str] = None

    top_level_division: Optional[str] = None
    numbersections: Optional[bool] = None
    secnumdepth: Optional[int] = None
    toc: Optional[bool] = None
    toc_depth: Optional[int] = None
    lof: Optional[bool] = None
    lot: Optional[bool] = None

    documentclass: Optional[str] = None
    classoption: Optional[Tuple[str, ...]] = None
    geometry: Optional[Tuple[str, ...]] = None
    fontsize: Optional[str] = None
    mainfont: Optional[str] = None
    sansfont: Optional[str] = None
    monofont: Optional[str] = None

    bibliography: Optional[Tuple[str, ...]] = None
    csl: Optional[str] = None
    link_citations: Optional[bool] = None

    colorlinks: Optional[bool] = None
    linkcolor: Optional[str] = None
    urlcolor: Optional[str] = None
    citecolor: Optional[str] = None
    book: Optional[bool] = None

    # Keys outside the known schema, forwarded to the converter untouched.
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def known_keys(cls) -> Tuple[str, ...]:
        return tuple(item.name for item in fields(cls) if item.name != "extra")

    def items(self) -> Iterator[Tuple[str, Any]]:
        """Yield populated known keys in schema order."""
        for key in self.known_keys():
            value = getattr(self, key)
            if value is not None:
                yield key, value

    def is_empty(self) -> bool:
        return not self.extra and next(self.items(), None) is None


@dataclass(frozen=True)
class Fragment:
    """One discovered Markdown source file."""

    path: Path
    metadata: DocumentMetadata
    body: str
    dependencies: Tuple[Path, ...] = ()
    has_inline_diagram: bool = False
    last_modified: float = 0.0

    @property
    def name(self) -> str:
        return self.path.name


@dataclass
class DiscoveredFiles:
    """Result of one discovery pass over a project root."""

    fragments: List[Fragment] = field(default_factory=list)
    diagram_files: List[Path] = field(default_factory=list)
    image_files: List[Path] = field(default_factory=list)
    template_files: List[Path] = field(default_factory=list)
    bibliography_files: List[Path] = field(default_factory=list)
