#!/usr/bin/env python3
"""
mdbook-nadi Command Line Interface
==================================

Usage:
    mdbook-nadi                      Preprocess a book (mdBook JSON on stdin/stdout)
    mdbook-nadi supports RENDERER    Exit 0 when the renderer is supported
    mdbook-nadi render FILE          Process a single markdown file
    mdbook-nadi config               Show the effective configuration
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from .chapter import ChapterProcessor
from .config import load_config
from .evaluator import create_evaluator
from .exceptions import ConfigError, ProtocolError
from .logging_utils import configure_logging
from .preprocessor import NadiPreprocessor, parse_input
from .version import __version__

# =============================================================================
# ANSI Colors
# =============================================================================


class Colors:
    """ANSI color codes for terminal output."""
    RED = '\033[0;31m'
    GREEN = '\033[0;32m'
    NC = '\033[0m'  # No Color

    @classmethod
    def disable(cls):
        """Disable colors (for non-TTY output)."""
        cls.RED = cls.GREEN = cls.NC = ''


def print_error(msg: str) -> None:
    print(f"{Colors.RED}✗{Colors.NC} {msg}", file=sys.stderr)


def print_ok(msg: str) -> None:
    print(f"{Colors.GREEN}✓{Colors.NC} {msg}", file=sys.stderr)


# =============================================================================
# Commands
# =============================================================================

def cmd_supports(args: argparse.Namespace) -> int:
    """Signal renderer support through the exit status."""
    return 0 if NadiPreprocessor().supports_renderer(args.renderer) else 1


def cmd_preprocess(args: argparse.Namespace) -> int:
    """Run as an mdBook preprocessor."""
    preprocessor = NadiPreprocessor()
    try:
        context, book = parse_input(sys.stdin)
        config = preprocessor.resolve_config(context)
        if not (args.verbose or args.quiet):
            configure_logging(config.log_level)
        preprocessor.config = config
        book = preprocessor.run(context, book)
    except (ProtocolError, ConfigError) as e:
        print_error(str(e))
        return 1

    json.dump(book, sys.stdout)
    return 0


def cmd_render(args: argparse.Namespace) -> int:
    """Process one markdown file outside of mdBook."""
    source = Path(args.file)
    if not source.exists():
        print_error(f"File not found: {source}")
        return 1
    cwd = Path(args.cwd) if args.cwd else source.parent

    try:
        config = load_config(cwd, config_path=Path(args.config) if args.config else None)
    except ConfigError as e:
        print_error(str(e))
        return 1
    if not (args.verbose or args.quiet):
        configure_logging(config.log_level)

    evaluator = create_evaluator(config.nadi_command, config.nadi_args, config.timeout)
    result = ChapterProcessor(evaluator, config).process(source.read_text(encoding="utf-8"), cwd)

    if args.output:
        Path(args.output).write_text(result, encoding="utf-8")
        print_ok(f"Written: {args.output}")
    else:
        sys.stdout.write(result)
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Show the effective configuration as YAML."""
    try:
        config = load_config(Path(args.root), config_path=Path(args.config) if args.config else None)
    except ConfigError as e:
        print_error(str(e))
        return 1
    sys.stdout.write(yaml.safe_dump(config.to_dict(), sort_keys=False))
    return 0


# =============================================================================
# Main
# =============================================================================

def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdbook-nadi",
        description="mdbook preprocessor to run nadi tasks and display results inside the markdown file.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"mdbook-nadi {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log errors")
    parser.set_defaults(func=cmd_preprocess)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # supports
    sub = subparsers.add_parser("supports", help="Check whether a renderer is supported by this preprocessor")
    sub.add_argument("renderer", help="Renderer name")
    sub.set_defaults(func=cmd_supports)

    # render
    sub = subparsers.add_parser("render", help="Process a single markdown file")
    sub.add_argument("file", help="Markdown file")
    sub.add_argument("--cwd", help="Working directory for tasks (default: the file's directory)")
    sub.add_argument("-o", "--output", help="Write the result here instead of stdout")
    sub.add_argument("-c", "--config", help="YAML configuration file")
    sub.set_defaults(func=cmd_render)

    # config
    sub = subparsers.add_parser("config", help="Show the effective configuration")
    sub.add_argument("--root", default=".", help="Book root directory")
    sub.add_argument("-c", "--config", help="YAML configuration file")
    sub.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    if not sys.stderr.isatty():
        Colors.disable()

    args = make_parser().parse_args(argv)
    if args.verbose:
        configure_logging("DEBUG")
    elif args.quiet:
        configure_logging("ERROR")
    else:
        configure_logging("INFO")

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
