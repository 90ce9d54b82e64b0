import requests
from typing import Any, Dict, Iterable, List, Optional

from warpbuild.logger import get_console
from warpbuild.src.core.cert_utils import p12_serial_number
from warpbuild.src.credentials.kinds import (
    CredentialKind,
    CredentialSet,
    REQUIRED_CREDENTIALS,
    credential_set_from_wire,
    credential_set_to_wire,
    is_complete,
    sort_kinds,
)
from warpbuild.src.credentials import generate as generate_module
from warpbuild.src.credentials import prompt as prompt_module
from warpbuild.src.credentials import revoke as revoke_module
from warpbuild.src.errors import (
    CredentialFetchError,
    GenerationError,
    MissingCredentialError,
    PersistError,
)

console = get_console()


class CredentialsAPI:
    """Client for the build server's iOS credential endpoints"""

    def __init__(self, server_config: Dict[str, Any], session: requests.Session = None):
        self.base_url = server_config["url"]
        self.session = session or requests.Session()
        self.headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {server_config['access_token']}",
        }

    def _project_params(self, metadata) -> Dict[str, str]:
        return {
            "username": metadata.username,
            "experienceName": metadata.experience_name,
            "bundleIdentifier": metadata.bundle_identifier,
        }

    def _request(self, method: str, path: str, **kwargs) -> dict:
        response = self.session.request(
            method, f"{self.base_url}/{path}", headers=self.headers, **kwargs
        )
        response.raise_for_status()
        if not response.content:
            return {}
        return response.json()

    def get_credentials(self, metadata) -> dict:
        return self._request(
            "GET", "credentials/ios", params=self._project_params(metadata)
        ).get("credentials") or {}

    def clear_credentials(self, metadata, kinds: List[str]) -> None:
        self._request(
            "POST",
            "credentials/ios/clear",
            json={**self._project_params(metadata), "only": kinds},
        )

    def update_credentials(
        self, metadata, credentials: dict, user_credential_ids: List[str]
    ) -> None:
        self._request(
            "POST",
            "credentials/ios/update",
            json={
                **self._project_params(metadata),
                "credentials": credentials,
                "userCredentialsIds": user_credential_ids,
            },
        )

    def list_user_credentials(self, username: str) -> List[dict]:
        return self._request(
            "GET", "credentials/ios/user", params={"username": username}
        ).get("credentials", [])


def determine_missing_credentials(
    existing: CredentialSet,
) -> Optional[List[CredentialKind]]:
    """Required kinds not present in `existing`, or None if nothing is missing.

    A stored legacy push certificate still satisfies the push requirement.
    """
    missing = []
    for kind in REQUIRED_CREDENTIALS:
        if is_complete(kind, existing.get(kind)):
            continue
        if kind is CredentialKind.PUSH_KEY and is_complete(
            CredentialKind.PUSH_CERT, existing.get(CredentialKind.PUSH_CERT)
        ):
            continue
        missing.append(kind)
    return missing or None


class CredentialStore:
    """Everything the credential orchestrator does to stored credentials."""

    def __init__(self, api: CredentialsAPI):
        self.api = api

    def fetch(self, metadata) -> CredentialSet:
        console.print(
            f"[blue]Fetching stored credentials for {metadata.experience_name}..."
        )
        try:
            data = self.api.get_credentials(metadata)
        except requests.RequestException as e:
            raise CredentialFetchError(f"Failed to fetch credentials: {e}") from e

        credentials = credential_set_from_wire(data)
        console.log(f"Stored credentials: {[kind.value for kind in credentials]}")
        return credentials

    def clear(self, metadata, kinds: Iterable[CredentialKind]) -> None:
        kinds = sort_kinds(kinds)
        console.print(
            f"[yellow]Clearing credentials:[/] {', '.join(k.value for k in kinds)}"
        )
        try:
            self.api.clear_credentials(metadata, [kind.value for kind in kinds])
        except requests.RequestException as e:
            raise PersistError(f"Failed to clear credentials: {e}") from e

    def determine_missing(self, existing: CredentialSet) -> Optional[List[CredentialKind]]:
        return determine_missing_credentials(existing)

    def get_distribution_cert_serial_number(self, metadata) -> str:
        dist_cert = self.fetch(metadata).get(CredentialKind.DISTRIBUTION_CERT)
        if not dist_cert:
            raise MissingCredentialError(
                f"No distribution certificate stored for {metadata.experience_name}"
            )

        if dist_cert.get("certSerialNumber"):
            return dist_cert["certSerialNumber"].upper()

        try:
            return p12_serial_number(dist_cert["certP12"], dist_cert["certPassword"])
        except (KeyError, ValueError, RuntimeError) as e:
            raise GenerationError(
                f"Could not read the distribution certificate serial number: {e}"
            ) from e

    def list_user_credentials(self, username: str, kind: CredentialKind) -> List[dict]:
        """Credentials the user already owns for other apps, usable by id."""
        try:
            credentials = self.api.list_user_credentials(username)
        except requests.RequestException as e:
            console.print(f"[yellow]Could not list existing credentials: {e}")
            return []
        return [c for c in credentials if c.get("type") == kind.value]

    def prompt(self, apple_ctx, options, missing) -> prompt_module.PromptResult:
        return prompt_module.prompt(self, apple_ctx, options, missing)

    def generate(self, apple_ctx, to_generate, metadata) -> CredentialSet:
        return generate_module.generate(apple_ctx, to_generate, metadata)

    def update(
        self, metadata, new_credentials: CredentialSet, user_credential_ids: List[str]
    ) -> None:
        console.print(
            f"[blue]Saving credentials:[/] {', '.join(k.value for k in sort_kinds(new_credentials))}"
        )
        try:
            self.api.update_credentials(
                metadata,
                credential_set_to_wire(new_credentials),
                list(user_credential_ids),
            )
        except requests.RequestException as e:
            raise PersistError(f"Failed to save credentials: {e}") from e
        console.print("[green]Credentials saved[/]")

    def revoke(self, apple_ctx, kinds: Iterable[CredentialKind]) -> None:
        revoke_module.revoke(apple_ctx, sort_kinds(kinds))
