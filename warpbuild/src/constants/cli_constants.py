from rich.text import Text

__version__ = "0.1.0"

APP_DESCRIPTION = "Prepare iOS signing credentials and schedule remote builds"


def get_banner_text() -> Text:
    banner = Text()
    banner.append("warp", style="bold cyan")
    banner.append("build", style="bold magenta")
    return banner
