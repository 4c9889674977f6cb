"""CLI entrypoints for docpilot commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List

from .config import (
    CONFIG_CANDIDATES,
    SettingsFile,
    dump_settings,
    find_config_file,
    load_config,
    load_settings,
    save_settings,
)
from .dependencies import DependencyChecker
from .errors import DocPilotError
from .formats import FORMATS
from .logging import configure_logging
from .orchestrator import Orchestrator
from .scaffold import ProjectScaffold
from .templates import TemplateManager


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docpilot",
        description="Assemble numbered Markdown fragments into PDF, DOCX or HTML with pandoc.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "-C",
        "--root",
        default=".",
        help="Project directory (defaults to current directory).",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to a docpilot.yml settings file.",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write a DEBUG log to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Initialize a new document project.")
    _add_verbose_option(init_parser, suppress_default=True)
    init_parser.add_argument("-n", "--name", default=None, help="Project name.")
    init_parser.add_argument(
        "--download-template",
        action="store_true",
        help="Also download the Eisvogel LaTeX template.",
    )

    build_parser = subparsers.add_parser("build", help="Build documents.")
    _add_verbose_option(build_parser, suppress_default=True)
    build_parser.add_argument(
        "format",
        nargs="?",
        choices=[*FORMATS, "all"],
        default=None,
        help="Output format to build (defaults to build.default_format).",
    )
    build_parser.add_argument(
        "--watch",
        action="store_true",
        help="Rebuild whenever a fragment or YAML file changes.",
    )

    check_parser = subparsers.add_parser("check", help="Check external dependencies.")
    _add_verbose_option(check_parser, suppress_default=True)

    status_parser = subparsers.add_parser("status", help="Show project status.")
    _add_verbose_option(status_parser, suppress_default=True)

    clean_parser = subparsers.add_parser("clean", help="Remove generated files.")
    _add_verbose_option(clean_parser, suppress_default=True)

    templates_parser = subparsers.add_parser("templates", help="Manage templates.")
    _add_verbose_option(templates_parser, suppress_default=True)
    template_actions = templates_parser.add_subparsers(dest="action")
    template_actions.add_parser("list", help="List installed templates.")
    template_actions.add_parser("download-eisvogel", help="Download the Eisvogel template.")
    install_parser = template_actions.add_parser("install", help="Install a template file.")
    install_parser.add_argument("path", help="Template file to copy into the project.")

    diagrams_parser = subparsers.add_parser("diagrams", help="Render Mermaid diagram files.")
    _add_verbose_option(diagrams_parser, suppress_default=True)
    diagrams_parser.add_argument(
        "--png",
        action="store_true",
        help="Render PNG images in addition to SVG.",
    )

    config_parser = subparsers.add_parser("config", help="Manage configuration.")
    _add_verbose_option(config_parser, suppress_default=True)
    config_actions = config_parser.add_subparsers(dest="action")
    config_actions.add_parser("init", help="Create a default docpilot.yml.")
    config_actions.add_parser("show", help="Show the effective configuration.")

    return parser


def main(argv: List[str] | None = None) -> None:
    """CLI entrypoint for docpilot commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_file = Path(args.log_file).expanduser() if args.log_file else None
    configure_logging(verbose=bool(args.verbose), log_file=log_file)
    root = Path(args.root).expanduser().resolve()

    try:
        _dispatch(args, root)
    except DocPilotError as exc:
        parser.exit(1, f"Error: {exc}\nRun with --verbose for more details.\n")
    except OSError as exc:
        parser.exit(1, f"Error: I/O failure: {exc}\n")


def _dispatch(args: argparse.Namespace, root: Path) -> None:
    command = args.command

    if command == "init":
        name = args.name or root.name or "document"
        templates = TemplateManager(root / "templates") if args.download_template else None
        result = ProjectScaffold(root, name, templates=templates).initialize()
        print(f"Project '{name}' initialized ({len(result.created)} created, {len(result.skipped)} kept)")
        print()
        print("Next steps:")
        print("  1. Edit 00-setup.md to configure your document")
        print("  2. Add your content in numbered markdown files")
        print("  3. Run 'docpilot build pdf' to generate your document")
        return

    if command == "check":
        _print_dependency_report(DependencyChecker())
        return

    if command == "config":
        _run_config(args.action, root, args.config)
        return

    config_path = Path(args.config).expanduser() if args.config else None
    config = load_config(root, config_path)
    orchestrator = Orchestrator(config)

    if command == "build":
        fmt = args.format or config.default_format
        if args.watch:
            if fmt == "all":
                raise DocPilotError("--watch supports a single format (pdf, docx or html)")
            orchestrator.validate_dependencies = False
            orchestrator.run_watch(fmt)
            return
        if fmt == "all":
            outputs = orchestrator.run_build_all()
            print("All formats built successfully:")
            for output in outputs:
                print(f"  {output.suffix.lstrip('.').upper():<5} {_relativize(output)}")
            return
        output = orchestrator.run_build(fmt)
        print(f"{fmt.upper()} built successfully: {_relativize(output)}")
    elif command == "status":
        _print_status(orchestrator)
    elif command == "clean":
        if orchestrator.run_clean():
            print(f"Cleaned output directory: {_relativize(config.output_dir)}")
        else:
            print("Output directory already clean")
    elif command == "templates":
        _run_templates(args, TemplateManager(config.templates_dir))
    elif command == "diagrams":
        formats = ("svg", "png") if args.png else ("svg",)
        results = orchestrator.run_diagrams(formats)
        if not results:
            print("No Mermaid files found")
            print("Create .mmd files next to your fragments to render diagrams")
            return
        print(f"Processed {len(results)} Mermaid diagrams:")
        for result in results:
            if result.ok:
                rendered = ", ".join(_relativize(path) for path in result.outputs)
                print(f"  ok     {result.source.stem}: {rendered}")
            else:
                print(f"  failed {result.source.stem}: {result.error}")
        if not all(result.ok for result in results):
            raise DocPilotError("Some diagrams failed to render")
    else:  # pragma: no cover - argparse enforces choices
        raise DocPilotError(f"Unknown command: {command}")


def _print_dependency_report(checker: DependencyChecker) -> None:
    print("DEPENDENCY CHECK")
    print("================")
    all_good = True
    for status in checker.check_all():
        state = "Available" if status.available else "Missing"
        required = "REQUIRED" if status.required else "OPTIONAL"
        print(f"{status.name}: {state} ({required})")
        if status.version:
            print(f"    Version: {status.version}")
        if not status.available:
            print(f"    Install: {status.install_hint}")
            if status.required:
                all_good = False
        print()
    if all_good:
        print("All required dependencies are available!")
    else:
        print("Some required dependencies are missing. Install them to continue.")


def _print_status(orchestrator: Orchestrator) -> None:
    status = orchestrator.run_status()
    discovered = status.discovered
    print("PROJECT STATUS")
    print("==============")
    print(f"Project: {status.config.name}")
    print(f"Title:   {status.metadata.title or '(untitled)'}")
    print(f"Output:  {_relativize(status.config.output_dir)}")
    print()
    print("Content:")
    print(f"  Markdown files: {len(discovered.fragments)}")
    print(f"  Mermaid files:  {len(discovered.diagram_files)}")
    print(f"  Images:         {len(discovered.image_files)}")
    print(f"  Templates:      {len(discovered.template_files)}")
    print(f"  Bibliography:   {len(discovered.bibliography_files)}")
    if discovered.fragments:
        print()
        print("Files:")
        for fragment in discovered.fragments:
            suffix = f" ({len(fragment.dependencies)} local references)" if fragment.dependencies else ""
            print(f"  - {fragment.name}{suffix}")


def _run_templates(args: argparse.Namespace, manager: TemplateManager) -> None:
    action = args.action
    if action == "list":
        templates = manager.list_templates()
        print("Available templates:")
        if not templates:
            print("  No templates installed")
            print("  Use 'docpilot templates download-eisvogel' to get started")
        for name in templates:
            print(f"  - {name}")
    elif action == "download-eisvogel":
        path = manager.download_eisvogel()
        print(f"Eisvogel template downloaded: {_relativize(path)}")
    elif action == "install":
        path = manager.install_template(Path(args.path).expanduser())
        print(f"Template installed: {_relativize(path)}")
    else:
        print("Template management")
        print("Available commands:")
        print("  list              - List installed templates")
        print("  download-eisvogel - Download the Eisvogel LaTeX template")
        print("  install <path>    - Install template from file")


def _run_config(action: str | None, root: Path, config_arg: str | None) -> None:
    if action == "init":
        path = Path(config_arg).expanduser() if config_arg else root / CONFIG_CANDIDATES[0]
        if path.exists():
            print(f"Config file already exists: {_relativize(path)}")
            return
        save_settings(SettingsFile(), path)
        print(f"Created config file: {_relativize(path)}")
    elif action == "show":
        path = Path(config_arg).expanduser() if config_arg else find_config_file(root)
        if path is not None and path.exists():
            print(f"Configuration from: {_relativize(path)}")
            print(dump_settings(load_settings(path)))
        else:
            print("No config file found, using defaults")
            print(dump_settings(SettingsFile()))
    else:
        print("Configuration management")
        print("Available commands:")
        print("  init  - Create default config file")
        print("  show  - Show current configuration")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
