"""Output format descriptors consumed by the document builder."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

FALLBACK_BABEL_LANG = "english"

# Primary language subtag -> LaTeX babel language name.
BABEL_LANGUAGES: Mapping[str, str] = {
    "de": "ngerman",
    "fr": "french",
    "es": "spanish",
    "it": "italian",
    "pt": "portuguese",
    "nl": "dutch",
    "ru": "russian",
}


def detect_babel_lang(lang: str) -> str:
    """Return the babel name for a BCP 47 tag such as ``de-AT``."""
    primary = lang.replace("_", "-").split("-", 1)[0].strip().lower()
    return BABEL_LANGUAGES.get(primary, FALLBACK_BABEL_LANG)


@dataclass(frozen=True)
class FormatDescriptor:
    """Everything that differs between one output format and another."""

    name: str
    extension: str
    baseline_flags: Tuple[str, ...]
    template_extension: str
    template_flag: str
    preferred_template: Optional[str] = None
    top_level_division: bool = False
    derive_babel_lang: bool = False
    # Known metadata keys forwarded as ``--metadata <pandoc-name>=<value>``.
    metadata_names: Mapping[str, str] = field(default_factory=dict)
    required_tools: Tuple[str, ...] = ("pandoc",)


_COMMON_METADATA: Dict[str, str] = {
    "link_citations": "link-citations",
}

_LATEX_METADATA: Dict[str, str] = {
    **_COMMON_METADATA,
    "secnumdepth": "secnumdepth",
    "lof": "lof",
    "lot": "lot",
    "documentclass": "documentclass",
    "classoption": "classoption",
    "geometry": "geometry",
    "fontsize": "fontsize",
    "mainfont": "mainfont",
    "sansfont": "sansfont",
    "monofont": "monofont",
    "colorlinks": "colorlinks",
    "linkcolor": "linkcolor",
    "urlcolor": "urlcolor",
    "citecolor": "citecolor",
    "book": "book",
}

_HTML_METADATA: Dict[str, str] = {
    **_COMMON_METADATA,
    "fontsize": "fontsize",
    "mainfont": "mainfont",
    "monofont": "monofont",
    "linkcolor": "linkcolor",
}

PDF = FormatDescriptor(
    name="pdf",
    extension="pdf",
    baseline_flags=("--listings", "--pdf-engine", "xelatex"),
    template_extension="latex",
    template_flag="--template",
    preferred_template="eisvogel.latex",
    top_level_division=True,
    derive_babel_lang=True,
    metadata_names=_LATEX_METADATA,
    required_tools=("pandoc", "xelatex"),
)

DOCX = FormatDescriptor(
    name="docx",
    extension="docx",
    baseline_flags=("--to", "docx"),
    template_extension="docx",
    template_flag="--reference-doc",
    metadata_names=_COMMON_METADATA,
)

HTML = FormatDescriptor(
    name="html",
    extension="html",
    baseline_flags=("--to", "html5", "--embed-resources"),
    template_extension="html",
    template_flag="--template",
    metadata_names=_HTML_METADATA,
)

FORMATS: Mapping[str, FormatDescriptor] = {
    descriptor.name: descriptor for descriptor in (PDF, DOCX, HTML)
}


def get_format(name: str) -> FormatDescriptor:
    try:
        return FORMATS[name.lower()]
    except KeyError:
        supported = ", ".join(sorted(FORMATS))
        raise ValueError(f"Unsupported format '{name}' (expected one of: {supported})") from None


__all__ = [
    "BABEL_LANGUAGES",
    "DOCX",
    "FALLBACK_BABEL_LANG",
    "FORMATS",
    "FormatDescriptor",
    "HTML",
    "PDF",
    "detect_babel_lang",
    "get_format",
]
