"""Command-line surface: argument routing and output rendering."""

from buildgate.ui.cli import CLIError, build_parser, run_cli
from buildgate.ui.render import CLIRenderer, create_renderer

__all__ = ["CLIError", "CLIRenderer", "build_parser", "create_renderer", "run_cli"]
