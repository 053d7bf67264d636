"""hulaki CLI - Command line interface for hulaki."""

from hulaki.cli.commands import cli
from hulaki.cli.output import ResponseOutput, create_output


def main() -> None:
    """Main entry point for the hulaki CLI."""
    cli()


__all__ = ["main", "cli", "ResponseOutput", "create_output"]
