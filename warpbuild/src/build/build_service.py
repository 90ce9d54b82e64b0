import requests
from typing import Any, Dict, List, Optional

from warpbuild.logger import get_console
from warpbuild.src.errors import BuildServiceError

console = get_console()


class BuildServiceAPI:
    """Client for the build server's status, publish and build endpoints"""

    def __init__(self, server_config: Dict[str, Any], session: requests.Session = None):
        self.base_url = server_config["url"]
        self.session = session or requests.Session()
        self.headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {server_config['access_token']}",
        }

    def _request(self, method: str, path: str, action: str, **kwargs) -> dict:
        try:
            response = self.session.request(
                method, f"{self.base_url}/{path}", headers=self.headers, **kwargs
            )
            response.raise_for_status()
            return response.json() if response.content else {}
        except requests.RequestException as e:
            error_msg = f"Failed to {action}: {e}"
            if getattr(e, "response", None) is not None:
                error_msg += f"\nResponse body: {e.response.text}"
            raise BuildServiceError(error_msg) from e

    def check_status(
        self, platform: str, sdk_version: str, experience_name: str = None
    ) -> List[dict]:
        """Recent build jobs of the project for the platform/SDK version"""
        data = self._request(
            "GET",
            "build/status",
            "check build status",
            params={
                "platform": platform,
                "sdkVersion": sdk_version,
                "experienceName": experience_name,
            },
        )
        return data.get("jobs", [])

    def ensure_release_exists(self, platform: str, project_metadata) -> List[str]:
        """Ids of the published release to build, publishing first if needed"""
        console.print("[blue]Looking for a published release...")
        data = self._request(
            "POST",
            "publish/releases/ensure",
            "find a published release",
            json={
                "platform": platform,
                "experienceName": project_metadata.experience_name,
                "sdkVersion": project_metadata.sdk_version,
            },
        )
        ids = data.get("ids", [])
        if not ids:
            raise BuildServiceError(
                f"No release of {project_metadata.experience_name} is published for "
                f"SDK {project_metadata.sdk_version}, publish the project first"
            )
        return ids

    def build(
        self,
        published_ids: Optional[List[str]],
        platform: str,
        extra_args: Dict[str, Any],
    ) -> str:
        data = self._request(
            "POST",
            "build/start",
            "schedule build",
            json={
                "platform": platform,
                "publishedIds": published_ids,
                "extraArgs": extra_args,
            },
        )
        build_id = data.get("id")
        if not build_id:
            raise BuildServiceError(f"Build server did not return a build id: {data}")
        return build_id
