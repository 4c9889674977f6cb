"""Front-matter extraction, dependency scanning and cross-fragment metadata merge."""

from __future__ import annotations

import copy
import datetime as _dt
import re
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import yaml

from .errors import FrontMatterError
from .models import DocumentMetadata, Fragment

SETUP_FRAGMENT = "00-setup.md"
FRAGMENT_SUFFIX = ".md"

_OPENING = "---"
_CLOSING = ("---", "...")

_IMAGE_PATTERN = re.compile(r"!\[[^\]]*\]\(([^)]+)\)")
_LINK_PATTERN = re.compile(r"(?<!!)\[[^\]]*\]\(([^)]+)\)")
_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")
_INLINE_DIAGRAM = "```mermaid"

_ALIASES = {"authors": "author"}

_STR_KEYS = {
    "title",
    "date",
    "subtitle",
    "lang",
    "babel_lang",
    "top_level_division",
    "documentclass",
    "fontsize",
    "mainfont",
    "sansfont",
    "monofont",
    "csl",
    "linkcolor",
    "urlcolor",
    "citecolor",
}
_LIST_KEYS = {"author", "classoption", "geometry", "bibliography"}
_BOOL_KEYS = {"numbersections", "toc", "lof", "lot", "link_citations", "colorlinks", "book"}
_INT_KEYS = {"secnumdepth", "toc_depth"}


def parse_fragment(path: Path) -> Fragment:
    """Read ``path`` and split it into metadata, body and local dependencies."""
    text = path.read_text(encoding="utf-8")
    metadata, body = extract_frontmatter(text, path)
    return Fragment(
        path=path,
        metadata=metadata,
        body=body,
        dependencies=tuple(extract_dependencies(body, path.parent)),
        has_inline_diagram=_INLINE_DIAGRAM in body,
        last_modified=path.stat().st_mtime,
    )


def extract_frontmatter(text: str, path: Path) -> Tuple[DocumentMetadata, str]:
    """Return the parsed front-matter and the remaining body of ``text``.

    A file that does not open with a delimiter line has no front-matter and is
    returned whole. Once the opening delimiter is present the block must close
    and parse, otherwise :class:`FrontMatterError` is raised.
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip("\r\n").rstrip() != _OPENING:
        return DocumentMetadata(), text

    closing_index: Optional[int] = None
    for index in range(1, len(lines)):
        if lines[index].rstrip("\r\n").rstrip() in _CLOSING:
            closing_index = index
            break
    if closing_index is None:
        raise FrontMatterError(path, "missing closing delimiter")

    block = "".join(lines[1:closing_index])
    body = "".join(lines[closing_index + 1 :])

    try:
        loaded = yaml.safe_load(block)
    except yaml.YAMLError as exc:
        raise FrontMatterError(path, str(exc)) from exc

    if loaded is None:
        return DocumentMetadata(), body
    if not isinstance(loaded, dict):
        raise FrontMatterError(path, "front-matter must be a mapping")

    return build_metadata(loaded, path), body


def build_metadata(data: Dict[Any, Any], path: Path) -> DocumentMetadata:
    """Map raw YAML data onto the known schema, keeping unknown keys in ``extra``."""
    known = set(DocumentMetadata.known_keys())
    values: Dict[str, Any] = {}
    extra: Dict[str, Any] = {}

    for raw_key, value in data.items():
        key = str(raw_key)
        normalized = key.replace("-", "_")
        normalized = _ALIASES.get(normalized, normalized)
        if value is None:
            continue
        if normalized not in known:
            extra[key] = value
            continue
        values[normalized] = _coerce(normalized, value, path)

    return DocumentMetadata(**values, extra=extra)


def _coerce(key: str, value: Any, path: Path) -> Any:
    if key in _STR_KEYS:
        result = _as_scalar_str(value)
    elif key in _LIST_KEYS:
        result = _as_str_tuple(value)
    elif key in _BOOL_KEYS:
        result = _as_bool(value)
    elif key in _INT_KEYS:
        result = _as_int(value)
    else:  # pragma: no cover - every known key is classified above
        result = value
    if result is None:
        raise FrontMatterError(path, f"unexpected value for '{key}': {value!r}")
    return result


def _as_scalar_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (_dt.date, _dt.datetime)):
        return value.isoformat()
    if isinstance(value, (str, int, float)):
        return str(value)
    return None


def _as_str_tuple(value: Any) -> Optional[Tuple[str, ...]]:
    if isinstance(value, (list, tuple)):
        items = [_as_scalar_str(item) for item in value]
        if any(item is None for item in items):
            return None
        return tuple(item for item in items if item is not None)
    scalar = _as_scalar_str(value)
    return (scalar,) if scalar is not None else None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "on", "1"}:
            return True
        if lowered in {"false", "no", "off", "0"}:
            return False
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def extract_dependencies(body: str, base_dir: Path) -> List[Path]:
    """Return local files referenced by images and fragment links in ``body``."""
    found: List[Path] = []
    seen: set[Path] = set()

    def _collect(pattern: re.Pattern[str], accept: Callable[[Path], bool]) -> None:
        for match in pattern.finditer(body):
            target = _clean_target(match.group(1))
            if not target:
                continue
            candidate = base_dir / target
            if candidate in seen or not candidate.exists() or not accept(candidate):
                continue
            seen.add(candidate)
            found.append(candidate)

    _collect(_IMAGE_PATTERN, lambda _path: True)
    _collect(_LINK_PATTERN, lambda path: path.suffix == FRAGMENT_SUFFIX)
    return found


def _clean_target(raw: str) -> str:
    target = raw.strip()
    if target.startswith("<") and ">" in target:
        target = target[1 : target.index(">")]
    else:
        # drop an optional link title: ![alt](path "title")
        target = target.split()[0] if target else ""
    if _SCHEME_PATTERN.match(target) or target.startswith("//"):
        return ""
    target = target.split("#", 1)[0]
    target = target.split("?", 1)[0]
    return target


def merge_metadata(
    fragments: Sequence[Fragment], *, setup_name: str = SETUP_FRAGMENT
) -> DocumentMetadata:
    """Resolve one :class:`DocumentMetadata` for a build.

    The setup fragment seeds the result and always wins. Every key still unset
    afterwards takes the first non-empty value found in discovery order, so
    different keys may come from different fragments.
    """
    values: Dict[str, Any] = {}
    extra: Dict[str, Any] = {}

    setup = next((fragment for fragment in fragments if fragment.name == setup_name), None)
    if setup is not None:
        values.update(setup.metadata.items())
        extra.update(copy.deepcopy(setup.metadata.extra))

    for fragment in fragments:
        _fill_missing(values, fragment.metadata.items())
        _fill_missing(extra, fragment.metadata.extra.items())

    return DocumentMetadata(**values, extra=extra)


def _fill_missing(target: Dict[str, Any], source: Iterable[Tuple[str, Any]]) -> None:
    for key, value in source:
        if key in target or _is_empty(value):
            continue
        target[key] = copy.deepcopy(value)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return not value
    return False


__all__ = [
    "FRAGMENT_SUFFIX",
    "SETUP_FRAGMENT",
    "build_metadata",
    "extract_dependencies",
    "extract_frontmatter",
    "merge_metadata",
    "parse_fragment",
]
