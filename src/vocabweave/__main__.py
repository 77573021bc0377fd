"""Main entry point for the VocabWeave command-line interface."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import yaml

from . import __version__, paths
from .config import VocabConfig, load_config
from .logging_utils import setup_logging
from .storage import JsonFileStore
from .templates import DEFAULT_CONFIG_YAML
from .workflow import restore_document, run_document

logger = logging.getLogger(__name__)


def _add_debug_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug level logging.",
    )


def _add_output_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Where to write the result (default: overwrite the input file).",
    )


def _build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser for the VocabWeave CLI.

    Returns:
        argparse.ArgumentParser: The configured parser.

    """
    parser = argparse.ArgumentParser(description="VocabWeave: weave learnable vocabulary into HTML documents")
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"VocabWeave {__version__}",
        help="Show the version number and exit.",
    )
    _add_debug_flag(parser)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'init' command
    init_parser = subparsers.add_parser("init", help="Initialize a new VocabWeave project.")
    init_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="The directory to initialize the project in (default: current directory).",
    )
    _add_debug_flag(init_parser)

    # 'run' command
    run_parser = subparsers.add_parser("run", help="Substitute vocabulary in an HTML file.")
    run_parser.add_argument("file", help="The HTML file to process.")
    _add_output_flag(run_parser)
    run_parser.add_argument(
        "--project",
        default=".",
        help="Where to start looking for the '.vocabweave' project directory (default: current directory).",
    )
    run_parser.add_argument(
        "--scroll",
        type=float,
        default=0.0,
        help="Vertical scroll offset of the simulated viewport, in pixels.",
    )
    run_parser.add_argument(
        "--viewport-height",
        type=float,
        default=800.0,
        help="Height of the simulated viewport, in pixels.",
    )
    run_parser.add_argument(
        "--full-page",
        action="store_true",
        help="Treat the whole document as visible.",
    )
    run_parser.add_argument(
        "--url",
        default=None,
        help="Address of the document, checked against the site rules.",
    )
    _add_debug_flag(run_parser)

    # 'restore' command
    restore_parser = subparsers.add_parser("restore", help="Undo every substitution in an HTML file.")
    restore_parser.add_argument("file", help="The HTML file to restore.")
    _add_output_flag(restore_parser)
    _add_debug_flag(restore_parser)

    return parser


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments for the VocabWeave CLI.

    Returns:
        argparse.Namespace: An object containing the parsed command-line arguments.

    """
    parser = _build_parser()
    args_list = sys.argv[1:] if argv is None else argv

    # If no arguments are provided, print help
    if not args_list:
        parser.print_help(sys.stderr)
        sys.exit(1)

    return parser.parse_args(args_list)


def _init_project(target_path: str) -> None:
    """Initialize a new VocabWeave project structure."""
    path = Path(target_path).resolve()
    logger.info("Initializing VocabWeave project in: %s", path)

    config_dir = path / paths.PROJECT_SUBDIR / "configs"
    config_file = config_dir / "main.yaml"

    if config_file.exists():
        logger.warning("Configuration file already exists at: %s", config_file)
        return

    try:
        config_dir.mkdir(parents=True, exist_ok=True)
        config_file.write_text(DEFAULT_CONFIG_YAML, encoding="utf-8")
        logger.info("Created default configuration at: %s", config_file)
        logger.info("Project initialized successfully!")
    except OSError:
        logger.exception("Failed to initialize project")
        sys.exit(1)


def _load_config(root_path: Path) -> VocabConfig | None:
    """
    Load configuration from the fixed file path relative to root_path.

    Returns:
        An optional VocabConfig object if loading is successful, otherwise None.

    """
    try:
        config_path = paths.get_config_file_path(root_path)
        logger.info("Loading configuration from: %s", config_path)
        return load_config(config_path)
    except FileNotFoundError:
        logger.exception("Could not find a valid configuration file.")
        return None
    except (yaml.YAMLError, ValueError):
        logger.exception("The configuration file is invalid.")
        return None


def _read_input(file_path: str) -> tuple[Path, str]:
    path = Path(file_path).resolve()
    if not path.is_file():
        logger.error("File does not exist: %s", path)
        sys.exit(1)
    return path, path.read_text(encoding="utf-8")


def _write_output(html: str, input_path: Path, output: str | None) -> Path:
    out_path = Path(output).resolve() if output else input_path
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(html, encoding="utf-8")
    logger.info("Wrote %s", out_path)
    return out_path


def _run(args: argparse.Namespace) -> None:
    input_path, html = _read_input(args.file)
    project_path = Path(args.project).resolve()
    try:
        project_root = paths.find_project_root(project_path)
    except FileNotFoundError:
        logger.exception("No VocabWeave project found.")
        sys.exit(1)

    setup_logging(version=__version__, debug=args.debug, project_root=project_root)
    config = _load_config(project_root)
    if config is None:
        logger.critical("Failed to load configuration. Aborting.")
        sys.exit(1)

    store = JsonFileStore(paths.get_store_file_path(project_root))
    result, summary = asyncio.run(
        run_document(
            html,
            config,
            store=store,
            scroll_y=args.scroll,
            viewport_height=args.viewport_height,
            full_page=args.full_page,
            url=args.url,
        ),
    )
    _write_output(result, input_path, args.output)
    logger.debug("Run finished with status '%s'.", summary.status)


def _restore(args: argparse.Namespace) -> None:
    input_path, html = _read_input(args.file)
    result, restored = restore_document(html)
    logger.info("Restored %d substitutions.", restored)
    _write_output(result, input_path, args.output)


def main(argv: list[str] | None = None) -> None:
    """
    Run the main entry point for the VocabWeave command-line interface.

    Orchestrates the entire process:
    1. Parses command-line arguments.
    2. Loads the configuration.
    3. Runs the requested command.
    """
    try:
        args = _parse_args(argv)

        if args.command == "init":
            init_path = Path(args.path).resolve()
            if not init_path.exists():
                logger.error("Path does not exist: %s", init_path)
                sys.exit(1)
            if not init_path.is_dir():
                logger.error("Path is not a directory: %s", init_path)
                sys.exit(1)

            setup_logging(version=__version__, debug=args.debug)
            _init_project(str(init_path))
            return

        if args.command == "run":
            _run(args)
        elif args.command == "restore":
            setup_logging(version=__version__, debug=args.debug)
            _restore(args)
        else:
            logger.error("Unknown command: %s", args.command)
            sys.exit(1)

    except Exception:
        logger.exception("An unexpected error occurred")
        logger.critical("An unrecoverable error occurred. Please check the logs for details.")
        sys.exit(1)

    logger.info("Done.")


if __name__ == "__main__":
    main()
