import json
import requests
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from warpbuild.logger import get_console
from warpbuild.src.errors import MetadataFetchError


@dataclass(frozen=True)
class ProjectMetadata:
    username: str
    experience_name: str
    bundle_identifier: Optional[str]
    sdk_version: Optional[str]


def load_hosted_manifest(public_url: str, session: requests.Session = None) -> Dict[str, Any]:
    session = session or requests.Session()
    try:
        response = session.get(public_url, headers={"Accept": "application/json"})
        response.raise_for_status()
        return response.json()
    except (requests.RequestException, ValueError) as e:
        raise MetadataFetchError(f"Could not load manifest from {public_url}: {e}") from e


def load_local_manifest(project_dir: Path) -> Dict[str, Any]:
    app_json = Path(project_dir) / "app.json"
    if not app_json.exists():
        raise MetadataFetchError(f"No app.json found in {Path(project_dir).resolve()}")
    try:
        with open(app_json) as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        raise MetadataFetchError(f"Could not read {app_json}: {e}") from e


def metadata_from_manifest(
    manifest: Dict[str, Any], default_username: Optional[str] = None
) -> ProjectMetadata:
    """app.json nests the config under "expo", hosted manifests don't"""
    config = manifest.get("expo", manifest)

    slug = config.get("slug")
    username = config.get("owner") or default_username
    if not slug:
        raise MetadataFetchError("Project manifest has no slug")
    if not username:
        raise MetadataFetchError(
            "Project manifest has no owner and no username is configured under [server]"
        )

    return ProjectMetadata(
        username=username,
        experience_name=f"@{username}/{slug}",
        bundle_identifier=(config.get("ios") or {}).get("bundleIdentifier"),
        sdk_version=config.get("sdkVersion"),
    )


def fetch_project_metadata(options, server_config, session=None) -> ProjectMetadata:
    console = get_console()
    if options.public_url:
        console.print(f"[blue]Fetching manifest from {options.public_url}...")
        manifest = load_hosted_manifest(options.public_url, session)
    else:
        manifest = load_local_manifest(options.project_dir)

    metadata = metadata_from_manifest(manifest, server_config.get("username"))
    console.print(f"[cyan]Project:[/] {metadata.experience_name}")
    return metadata
