import sys

from warpbuild.arguments import create_build_options
from warpbuild.logger import get_console
from warpbuild.src.build.ios_builder import IOSBuilder
from warpbuild.src.build.options import BuildOptions
from warpbuild.src.errors import WarpBuildError
from warpbuild.src.utils.config_loader import get_server_config


def print_configuration_summary(console, options: BuildOptions) -> None:
    console.print("\n[bold blue]Build Configuration:[/]")
    if options.public_url:
        console.print(f"[cyan]Manifest:[/] {options.public_url}")
    else:
        console.print(f"[cyan]Project:[/] {options.project_dir.resolve()}")

    enabled = [
        key.replace("_", " ").title()
        for key, value in vars(options).items()
        if isinstance(value, bool) and value
    ]
    if enabled:
        console.print("\n[cyan]Enabled Options:[/]")
        for name in enabled:
            console.print(f"  • {name}")


def main(parsed_args) -> int:
    console = get_console()
    options = create_build_options(parsed_args)
    print_configuration_summary(console, options)

    if options.clear_push_cert:
        console.print(
            "[yellow]Warning: push certificates are deprecated, use push keys instead[/]"
        )

    try:
        builder = IOSBuilder(options, get_server_config())
        builder.run()
        return 0
    except WarpBuildError as e:
        console.print(f"\n[red]Error:[/] {e}")
        return 1


def run_build_ios_command(args):
    """Entry point for the build-ios command from CLI"""
    return main(parsed_args=args)


# For direct script execution - route through the CLI
if __name__ == "__main__":
    from warpbuild.cli import main as cli_main

    sys.exit(cli_main())
