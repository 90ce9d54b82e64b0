import argparse
import sys
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from rich.theme import Theme
from rich_argparse import RichHelpFormatter
from warpbuild.arguments import add_build_arguments
from warpbuild.src.constants.cli_constants import (
    __version__,
    get_banner_text,
    APP_DESCRIPTION,
)


class WarpBuildHelpFormatter(RichHelpFormatter):
    """Help formatter with warpbuild's colours."""

    def __init__(self, prog):
        super().__init__(prog, max_help_position=30, width=100)
        self.console = Console(
            theme=Theme(
                {
                    "command": "bold cyan",
                    "argument": "green",
                    "option": "yellow",
                    "version": "blue",
                    "title": "bold magenta",
                }
            )
        )


def display_banner():
    console = Console()
    version_info = Text(f"v{__version__}", style="blue")
    tagline = Text(APP_DESCRIPTION, style="italic")

    panel = Panel.fit(
        Text.assemble(get_banner_text(), "\n", tagline, "\n", version_info),
        border_style="green",
        padding=(1, 2),
    )
    console.print(panel)


def create_cli_parser():
    parser = argparse.ArgumentParser(
        prog="warpbuild",
        description=f"warpbuild: {APP_DESCRIPTION}",
        formatter_class=WarpBuildHelpFormatter,
    )
    parser.add_argument(
        "--version", action="version", version=f"warpbuild {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command")

    build_parser = subparsers.add_parser(
        "build-ios",
        help="Prepare credentials and schedule an iOS build",
        formatter_class=WarpBuildHelpFormatter,
        description="Make sure your iOS signing credentials are in place, then build on the build server.",
    )
    add_build_arguments(build_parser)

    subparsers.add_parser(
        "setup",
        help="Setup warpbuild configuration",
        formatter_class=WarpBuildHelpFormatter,
        description="Interactive wizard to write ~/.warpbuild/config.toml.",
    )
    return parser


def main(argv=None):
    load_dotenv()

    argv = sys.argv[1:] if argv is None else argv
    if not argv or "-h" in argv or "--help" in argv:
        display_banner()

    parser = create_cli_parser()
    args = parser.parse_args(argv)

    if args.command == "build-ios":
        from warpbuild.commands.build_ios import run_build_ios_command

        return run_build_ios_command(args)
    elif args.command == "setup":
        from warpbuild.commands.setup import run_setup_command

        return run_setup_command(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
