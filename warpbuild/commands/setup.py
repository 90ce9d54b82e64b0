import toml
from rich import box
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text

from warpbuild.logger import get_console
from warpbuild.src.utils.config_loader import get_base_dir, get_config_path

console = get_console()


def ensure_directory_exists(directory_path):
    """Create directory if it doesn't exist."""
    if not directory_path.exists():
        directory_path.mkdir(parents=True, exist_ok=True)
        return False
    return True


def ask_secret(label: str, current: str) -> str:
    """Ask for a secret without echoing the stored one back."""
    entered = Prompt.ask(
        label, default="********" if current else "", password=True
    )
    return current if entered == "********" else entered


def create_or_update_config(config_path) -> bool:
    """Create or update the config file based on user input."""
    config_data = {}
    if config_path.exists():
        try:
            config_data = toml.load(config_path)
        except (OSError, toml.TomlDecodeError) as e:
            console.print(f"[yellow]Warning: Could not parse existing config: {e}[/]")
            if not Confirm.ask("Would you like to create a new configuration?", default=True):
                return False
            config_data = {}

    console.print(
        Panel("Let's configure your warpbuild settings", style="bold green", box=box.ROUNDED)
    )

    console.print("\n[bold blue]Build Server Configuration[/bold blue]")
    server = config_data.setdefault("server", {})
    server["url"] = Prompt.ask("Build server URL", default=server.get("url", ""))
    server["username"] = Prompt.ask("Username", default=server.get("username", ""))
    server["access_token"] = ask_secret("Access token", server.get("access_token", ""))

    console.print("\n[bold blue]Apple Developer Configuration[/bold blue]")
    apple = config_data.setdefault("apple", {})
    apple["apple_id"] = Prompt.ask(
        "Apple ID (email)", default=apple.get("apple_id", "changeme@apple.com")
    )

    if Confirm.ask("Do you want to set your Apple ID password?", default=False):
        apple["apple_password"] = Prompt.ask("Apple ID password", password=True)
    elif "apple_password" in apple:
        if Confirm.ask("Remove existing password from config?", default=False):
            del apple["apple_password"]

    with open(config_path, "w") as f:
        toml.dump(config_data, f)
    return True


def run_setup_command(args):
    """Run the setup command."""
    console.print(
        Panel.fit(
            Text("warpbuild Setup Wizard", style="bold magenta"),
            border_style="green",
            padding=(1, 8),
        )
    )

    base_dir = get_base_dir()
    table = Table(title="Directory Structure", box=box.ROUNDED)
    table.add_column("Directory", style="cyan")
    table.add_column("Status", style="green")
    for dir_path in (base_dir, base_dir / "sessions"):
        existed = ensure_directory_exists(dir_path)
        table.add_row(str(dir_path), "✓ Already exists" if existed else "✓ Created")
    console.print(table)

    config_path = get_config_path()
    try:
        if not create_or_update_config(config_path):
            console.print("[bold red]Configuration not saved.[/bold red]")
            return 1
    except (EOFError, KeyboardInterrupt):
        console.print("\n[yellow]Setup canceled[/]")
        return 1

    console.print(f"[bold green]✓ Configuration saved to {config_path}[/bold green]")
    console.print(
        "\n[bold cyan]What's next?[/bold cyan]\n\n"
        "• To build your app: [green]warpbuild build-ios path/to/project[/green]\n"
        "• For more help: [green]warpbuild --help[/green]"
    )
    return 0
