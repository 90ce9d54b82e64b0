import re
import requests

from warpbuild.logger import get_console
from warpbuild.src.apple.developer_portal_api import BundleId
from warpbuild.src.errors import AppRegistrationError, PortalRequestError


def app_name_for_experience(experience_name: str) -> str:
    """Portal app names only allow letters, digits and spaces."""
    words = re.sub(r"[^A-Za-z0-9]+", " ", experience_name).split()
    return "warpbuild " + " ".join(words)


def ensure_app_exists(apple_ctx, experience_name: str) -> BundleId:
    """Register the app's bundle identifier, reusing it if it already exists."""
    console = get_console()
    try:
        bundle = apple_ctx.api.register_bundle_id(
            apple_ctx.team_id,
            apple_ctx.bundle_identifier,
            app_name_for_experience(experience_name),
        )
    except (PortalRequestError, requests.RequestException) as e:
        raise AppRegistrationError(
            f"Could not register app {apple_ctx.bundle_identifier}: {e}"
        ) from e

    console.log(f"[green]App {bundle.identifier} is registered[/] ({bundle.id})")
    return bundle
