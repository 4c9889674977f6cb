"""Tests for pandoc argument assembly and invocation."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from docpilot.builder import DocumentBuilder
from docpilot.errors import BuildError, DependencyMissingError
from docpilot.formats import DOCX, HTML, PDF
from docpilot.frontmatter import merge_metadata
from tests._fixtures.fake_pandoc import FakePandoc


def _metadata_values(args: list[str]) -> list[str]:
    return [args[index + 1] for index, arg in enumerate(args) if arg == "--metadata"]


def _arguments(project, descriptor, **config):
    fragments = project.discover(**config).fragments
    builder = DocumentBuilder(project.config(**config), descriptor, runner=FakePandoc())
    output = project.path() / "output" / f"document.{descriptor.extension}"
    return builder.build_arguments(fragments, output, merge_metadata(fragments)), output


def test_pdf_arguments_are_assembled_in_order(project) -> None:
    project.write(
        {
            "00-setup.md": "---\ntitle: Report\nauthor: [Ada, Grace]\nlang: de\n---\n",
            "01-intro.md": "# Intro\n",
        }
    )
    root = project.path()

    args, output = _arguments(project, PDF)

    assert args[:7] == [
        "--standalone",
        "--listings",
        "--pdf-engine",
        "xelatex",
        "--citeproc",
        "--top-level-division",
        "section",
    ]
    assert args[7] == "--number-sections"
    assert _metadata_values(args)[:4] == [
        "title=Report",
        "author=Ada, Grace",
        "lang=de",
        "babel-lang=ngerman",
    ]
    assert args[-4:] == [
        str(root / "00-setup.md"),
        str(root / "01-intro.md"),
        "-o",
        str(output),
    ]


def test_explicit_babel_lang_wins_over_derived(project) -> None:
    project.write({"00-setup.md": "---\nlang: de-AT\nbabel-lang: naustrian\n---\n"})

    args, _ = _arguments(project, PDF)

    assert "babel-lang=naustrian" in _metadata_values(args)
    assert "babel-lang=ngerman" not in _metadata_values(args)


def test_unknown_language_falls_back_to_english(project) -> None:
    project.write({"00-setup.md": "---\nlang: tlh\n---\n"})

    args, _ = _arguments(project, PDF)

    assert "babel-lang=english" in _metadata_values(args)


def test_docx_skips_latex_only_arguments(project) -> None:
    project.write({"00-setup.md": "---\nlang: de\ngeometry: [margin=2cm]\n---\n"})

    args, _ = _arguments(project, DOCX)

    assert args[:3] == ["--standalone", "--to", "docx"]
    assert "--top-level-division" not in args
    assert not any(value.startswith("babel-lang=") for value in _metadata_values(args))
    assert not any(value.startswith("geometry=") for value in _metadata_values(args))


def test_title_defaults_when_unset(project) -> None:
    project.write({"01-intro.md": "# Intro\n"})

    args, _ = _arguments(project, HTML)

    assert _metadata_values(args)[0] == "title=Document"
    assert "--embed-resources" in args


def test_section_numbering_and_toc_follow_metadata(project) -> None:
    project.write({"00-setup.md": "---\nnumbersections: false\ntoc: true\ntoc-depth: 2\n---\n"})

    args, _ = _arguments(project, PDF)

    assert "--number-sections" not in args
    assert args[args.index("--toc") + 1] == "--toc-depth=2"


def test_latex_options_and_bibliography_are_forwarded(project) -> None:
    project.write(
        {
            "00-setup.md": (
                "---\n"
                "classoption: [11pt, a4paper]\n"
                "bibliography: refs.bib\n"
                "csl: ieee.csl\n"
                "link-citations: true\n"
                "---\n"
            )
        }
    )

    args, _ = _arguments(project, PDF)
    values = _metadata_values(args)

    assert "classoption=11pt" in values
    assert "classoption=a4paper" in values
    assert "link-citations=true" in values
    assert args[args.index("--bibliography") + 1] == "refs.bib"
    assert args[args.index("--csl") + 1] == "ieee.csl"


def test_extra_scalars_are_forwarded_and_nested_values_skipped(project) -> None:
    project.write(
        {
            "00-setup.md": (
                "---\n"
                "keywords: [alpha, beta]\n"
                "draft: true\n"
                "header:\n"
                "  left: x\n"
                "---\n"
            )
        }
    )

    args, _ = _arguments(project, HTML)
    values = _metadata_values(args)

    assert values[-3:] == ["draft=true", "keywords=alpha", "keywords=beta"]
    assert not any(value.startswith("header=") for value in values)


def test_preferred_template_is_chosen_first(project) -> None:
    project.write(
        {
            "01-intro.md": "# Intro\n",
            "templates/a-custom.latex": "%",
            "templates/eisvogel.latex": "%",
        }
    )

    args, _ = _arguments(project, PDF)

    assert args[args.index("--template") + 1] == str(project.path() / "templates/eisvogel.latex")


def test_first_template_by_name_is_used_without_preferred(project) -> None:
    project.write(
        {
            "01-intro.md": "# Intro\n",
            "templates/b.latex": "%",
            "templates/a.latex": "%",
            "templates/reference.docx": "docx",
        }
    )

    pdf_args, _ = _arguments(project, PDF)
    docx_args, _ = _arguments(project, DOCX)

    assert pdf_args[pdf_args.index("--template") + 1].endswith("a.latex")
    assert docx_args[docx_args.index("--reference-doc") + 1].endswith("reference.docx")


def test_build_creates_output_directory_and_returns_artifact(project) -> None:
    project.write({"01-intro.md": "# Intro\n"})
    runner = FakePandoc()
    config = project.config()
    builder = DocumentBuilder(config, PDF, runner=runner)
    output = config.output_path("pdf")

    result = builder.build(project.discover().fragments, output)

    assert result == output
    assert output.read_text(encoding="utf-8") == "artifact"
    assert runner.calls[0][0] == "pandoc"


def test_build_failure_carries_stderr(project) -> None:
    project.write({"01-intro.md": "# Intro\n"})
    config = project.config()
    builder = DocumentBuilder(config, PDF, runner=FakePandoc(returncode=43, stderr="Error producing PDF"))

    with pytest.raises(BuildError) as excinfo:
        builder.build(project.discover().fragments, config.output_path("pdf"))

    assert excinfo.value.stderr == "Error producing PDF"
    assert "Pandoc failed: Error producing PDF" in str(excinfo.value)


def test_missing_output_is_a_build_error(project) -> None:
    project.write({"01-intro.md": "# Intro\n"})
    config = project.config()
    builder = DocumentBuilder(config, HTML, runner=FakePandoc(write_output=False))

    with pytest.raises(BuildError, match="did not write"):
        builder.build(project.discover().fragments, config.output_path("html"))


def test_missing_converter_is_reported_as_dependency(project) -> None:
    project.write({"01-intro.md": "# Intro\n"})
    config = project.config()

    def _runner(command, cwd: Path) -> subprocess.CompletedProcess:
        raise FileNotFoundError(command[0])

    builder = DocumentBuilder(config, DOCX, runner=_runner)

    with pytest.raises(DependencyMissingError) as excinfo:
        builder.build(project.discover().fragments, config.output_path("docx"))

    assert excinfo.value.tool == "pandoc"


def test_build_without_fragments_fails(project) -> None:
    config = project.config()
    builder = DocumentBuilder(config, PDF, runner=FakePandoc())

    with pytest.raises(BuildError, match="No markdown files"):
        builder.build([], config.output_path("pdf"))
