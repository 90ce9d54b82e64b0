import os
from pathlib import Path
import toml
from typing import Dict, Any, Optional

from warpbuild.src.errors import ConfigError


def get_base_dir() -> Path:
    """Return the directory holding warpbuild's config and sessions."""
    return Path.home() / ".warpbuild"


def get_config_path() -> Path:
    """Return the path to the configuration file."""
    return get_base_dir() / "config.toml"


def load_config() -> Dict[str, Any]:
    """Load configuration from TOML file."""
    config_path = get_config_path()
    if not config_path.exists():
        return {}

    try:
        return toml.load(config_path)
    except Exception as e:
        raise ConfigError(f"Failed to load config: {e}")


def get_apple_credentials() -> Dict[str, Optional[str]]:
    """Get Apple credentials from environment or config."""
    apple_config = load_config().get("apple", {})

    credentials = {
        "apple_id": os.environ.get("APPLE_ID") or apple_config.get("apple_id"),
        "apple_password": os.environ.get("APPLE_PASSWORD")
        or apple_config.get("apple_password"),
    }

    if not credentials["apple_id"]:
        raise ConfigError(
            f"Apple ID not found. Set APPLE_ID or add [apple] section with apple_id to {get_config_path()}"
        )

    return credentials


def get_session_dir() -> Path:
    """Get session directory from environment or config."""
    env_session_dir = os.environ.get("WARPBUILD_SESSION_DIR")
    if env_session_dir:
        return Path(env_session_dir)

    session_dir = load_config().get("apple", {}).get("session_dir")
    if session_dir:
        return Path(session_dir)

    return get_base_dir() / "sessions"


def get_server_config() -> Dict[str, Optional[str]]:
    """Get build server settings. The URL and access token are required."""
    server_config = load_config().get("server", {})

    settings = {
        "url": os.environ.get("WARPBUILD_SERVER_URL") or server_config.get("url"),
        "access_token": os.environ.get("WARPBUILD_ACCESS_TOKEN")
        or server_config.get("access_token"),
        "username": server_config.get("username"),
    }

    missing = [key for key in ("url", "access_token") if not settings[key]]
    if missing:
        raise ConfigError(
            f"Build server {', '.join(missing)} not configured. "
            f"Add them under [server] in {get_config_path()}"
        )

    settings["url"] = settings["url"].rstrip("/")
    return settings


def is_non_interactive() -> bool:
    return bool(os.environ.get("NON_INTERACTIVE"))
