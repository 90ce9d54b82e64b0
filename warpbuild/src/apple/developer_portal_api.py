import base64
import requests
from typing import List, Optional
from dataclasses import dataclass

from warpbuild.logger import get_console
from warpbuild.src.errors import PortalRequestError

console = get_console()

SERVICES_URL = "https://developer.apple.com/services-account"
ACCOUNT_URL = f"{SERVICES_URL}/QH65B2/account"

# Portal service id for Apple Push Notification service keys
APNS_SERVICE_ID = "U27F4V844T"

DISTRIBUTION_CERT_TYPES = ("DISTRIBUTION", "IOS_DISTRIBUTION")
PUSH_CERT_TYPES = ("APNS_PRODUCTION", "IOS_PUSH_PRODUCTION")


@dataclass
class Team:
    team_id: str
    name: str
    status: str
    type: str


@dataclass
class Certificate:
    id: str
    serial_number: str
    certificate_type: str
    name: str
    content: Optional[bytes] = None  # DER, only present right after creation


@dataclass
class BundleId:
    id: str
    identifier: str
    name: str


@dataclass
class Profile:
    id: str
    name: str
    profile_state: str
    content: Optional[bytes] = None


@dataclass
class Key:
    id: str
    name: str
    services: List[str]


class DeveloperPortalAPI:
    """Apple Developer Portal API client"""

    def __init__(self, auth_instance):
        """Initialize with an authenticated session"""
        self.auth = auth_instance
        self.session = auth_instance.session
        self.default_headers = {
            "Accept": "application/json, text/plain, */*",
            "Accept-Language": "en-US,en;q=0.5",
            "Content-Type": "application/vnd.api+json",
            "X-Requested-With": "XMLHttpRequest",
            "X-HTTP-Method-Override": "GET",
        }

    def _write_headers(self, content_type: str = "application/vnd.api+json") -> dict:
        """Headers for requests that change portal state"""
        return {
            "Accept": "application/json, text/plain, */*",
            "Accept-Language": "en-US,en;q=0.5",
            "Content-Type": content_type,
            "Origin": "https://developer.apple.com",
            "X-Requested-With": "XMLHttpRequest",
            "csrf": self.auth.csrf,
            "csrf_ts": str(self.auth.csrf_ts),
        }

    def _check_response(
        self, response: requests.Response, action: str, expected=(200,)
    ) -> None:
        if response.status_code in expected:
            return
        console.print(f"[red]Failed to {action}: {response.status_code}")
        raise PortalRequestError(
            f"Failed to {action}: {response.status_code}",
            status_code=response.status_code,
            body=response.text,
        )

    def _query(self, resource: str, query: str, team_id: str, action: str) -> dict:
        response = self.session.post(
            f"{SERVICES_URL}/v1/{resource}",
            json={"urlEncodedQueryParams": query, "teamId": team_id},
            headers=self.default_headers.copy(),
        )
        self._check_response(response, action)
        return response.json()

    def list_teams(self) -> List[Team]:
        """List all teams the authenticated user has access to"""
        console.print("[blue]Fetching teams from Developer Portal...")

        response = self.session.post(
            f"{ACCOUNT_URL}/getTeams",
            json={"includeInMigrationTeams": 1},
            headers={
                "Accept": "application/json, text/javascript",
                "Content-Type": "application/json",
                "X-Requested-With": "XMLHttpRequest",
            },
        )
        self._check_response(response, "fetch teams")

        data = response.json()
        if data.get("resultCode") != 0:
            raise PortalRequestError(f"API error while fetching teams: {data}")

        teams = [
            Team(
                team_id=team["teamId"],
                name=team["name"],
                status=team["status"],
                type=team["entityType"],
            )
            for team in data.get("teams", [])
        ]
        console.print(f"[green]Found {len(teams)} teams")
        return teams

    def list_certificates(
        self, team_id: str, certificate_types=None
    ) -> List[Certificate]:
        """List certificates for a team, optionally only the given types"""
        data = self._query(
            "certificates",
            "limit=1000&sort=displayName",
            team_id,
            "fetch certificates",
        )

        certificates = []
        for cert in data.get("data", []):
            attrs = cert["attributes"]
            if certificate_types and attrs["certificateType"] not in certificate_types:
                continue
            certificates.append(
                Certificate(
                    id=cert["id"],
                    serial_number=attrs["serialNumber"],
                    certificate_type=attrs["certificateType"],
                    name=attrs["name"],
                )
            )
        return certificates

    def create_certificate(
        self, team_id: str, csr_pem: str, certificate_type: str = "IOS_DISTRIBUTION"
    ) -> Certificate:
        """Submit a CSR and return the issued certificate"""
        console.print(f"[blue]Requesting {certificate_type} certificate...")

        payload = {
            "data": {
                "type": "certificates",
                "attributes": {
                    "certificateType": certificate_type,
                    "csrContent": csr_pem,
                    "teamId": team_id,
                },
            }
        }
        response = self.session.post(
            f"{SERVICES_URL}/v1/certificates",
            json=payload,
            headers=self._write_headers(),
        )
        self._check_response(response, "create certificate", expected=(200, 201))

        cert = response.json()["data"]
        attrs = cert["attributes"]
        console.print(f"[green]Created certificate {attrs['serialNumber']}")
        return Certificate(
            id=cert["id"],
            serial_number=attrs["serialNumber"],
            certificate_type=attrs["certificateType"],
            name=attrs["name"],
            content=base64.b64decode(attrs["certificateContent"]),
        )

    def revoke_certificate(self, team_id: str, certificate_id: str) -> None:
        console.print(f"[blue]Revoking certificate {certificate_id}...")
        response = self.session.delete(
            f"{SERVICES_URL}/v1/certificates/{certificate_id}",
            json={"teamId": team_id},
            headers=self._write_headers(),
        )
        self._check_response(response, "revoke certificate", expected=(200, 204))

    def list_keys(self, team_id: str) -> List[Key]:
        response = self.session.post(
            f"{ACCOUNT_URL}/auth/key/list",
            json={"teamId": team_id, "pageSize": 500, "pageNumber": 1},
            headers=self._write_headers("application/json"),
        )
        self._check_response(response, "fetch keys")

        keys = []
        for key in response.json().get("keys", []):
            keys.append(
                Key(
                    id=key["keyId"],
                    name=key.get("keyName", ""),
                    services=[
                        service.get("service", {}).get("id")
                        for service in key.get("services", [])
                    ],
                )
            )
        return keys

    def create_push_key(self, team_id: str, name: str) -> Key:
        console.print(f"[blue]Creating APNs key {name}...")
        response = self.session.post(
            f"{ACCOUNT_URL}/auth/key/create",
            json={
                "name": name,
                "serviceConfigurations": [
                    {"serviceId": APNS_SERVICE_ID, "identifiers": {}}
                ],
                "teamId": team_id,
            },
            headers=self._write_headers("application/json"),
        )
        self._check_response(response, "create push key")

        key = response.json().get("key", {})
        if not key.get("keyId"):
            raise PortalRequestError("No key ID in create key response")
        return Key(id=key["keyId"], name=key.get("keyName", name), services=[APNS_SERVICE_ID])

    def download_push_key(self, team_id: str, key_id: str) -> str:
        """Download the .p8 contents; Apple only allows this once per key"""
        response = self.session.get(
            f"{ACCOUNT_URL}/auth/key/download",
            params={"teamId": team_id, "keyId": key_id},
            headers={"Accept": "*/*", "X-Requested-With": "XMLHttpRequest"},
        )
        self._check_response(response, "download push key")
        return response.text

    def revoke_key(self, team_id: str, key_id: str) -> None:
        console.print(f"[blue]Revoking key {key_id}...")
        response = self.session.post(
            f"{ACCOUNT_URL}/auth/key/revoke",
            json={"teamId": team_id, "keyId": key_id},
            headers=self._write_headers("application/json"),
        )
        self._check_response(response, "revoke key")

    def find_bundle_id(self, team_id: str, identifier: str) -> Optional[BundleId]:
        data = self._query(
            "bundleIds",
            f"filter[identifier]={identifier}",
            team_id,
            "fetch bundle IDs",
        )
        # The filter is a prefix match, only take exact hits
        for bundle in data.get("data", []):
            attrs = bundle["attributes"]
            if attrs["identifier"] == identifier:
                return BundleId(
                    id=bundle["id"], identifier=attrs["identifier"], name=attrs["name"]
                )
        return None

    def register_bundle_id(self, team_id: str, identifier: str, name: str) -> BundleId:
        """Register a new bundle ID (or get existing)"""
        console.print(f"[blue]Registering bundle ID {identifier}...")

        payload = {
            "data": {
                "type": "bundleIds",
                "attributes": {
                    "identifier": identifier,
                    "name": name,
                    "seedId": team_id,
                    "teamId": team_id,
                },
                "relationships": {"bundleIdCapabilities": {"data": []}},
            }
        }
        response = self.session.post(
            f"{SERVICES_URL}/v1/bundleIds",
            json=payload,
            headers=self._write_headers(),
        )

        if response.status_code == 409:
            errors = response.json().get("errors", [{}])
            if errors and errors[0].get("resultCode") == 9400:  # Already exists
                console.print(f"[yellow]Bundle ID {identifier} already registered")
                existing = self.find_bundle_id(team_id, identifier)
                if existing:
                    return existing
            raise PortalRequestError(
                f"Bundle ID registration failed: {response.text}",
                status_code=409,
                body=response.text,
            )

        self._check_response(response, "register bundle ID", expected=(200, 201))

        bundle = response.json()["data"]
        attrs = bundle["attributes"]
        console.print(f"[green]Registered bundle ID {attrs['identifier']}")
        return BundleId(id=bundle["id"], identifier=attrs["identifier"], name=attrs["name"])

    def list_profiles_for_bundle_id(
        self, team_id: str, bundle_id_resource_id: str
    ) -> List[Profile]:
        data = self._query(
            "profiles",
            f"limit=1000&filter[bundleId]={bundle_id_resource_id}"
            "&fields[profiles]=name,profileState",
            team_id,
            "fetch profiles",
        )
        return [
            Profile(
                id=profile["id"],
                name=profile["attributes"]["name"],
                profile_state=profile["attributes"]["profileState"],
            )
            for profile in data.get("data", [])
        ]

    def create_app_store_profile(
        self,
        team_id: str,
        bundle_id_resource_id: str,
        certificate_id: str,
        name: str,
    ) -> Profile:
        console.print(f"[blue]Creating App Store profile:[/] {name}")

        payload = {
            "data": {
                "type": "profiles",
                "attributes": {
                    "name": name,
                    "profileType": "IOS_APP_STORE",
                    "teamId": team_id,
                },
                "relationships": {
                    "bundleId": {
                        "data": {"type": "bundleIds", "id": bundle_id_resource_id}
                    },
                    "certificates": {
                        "data": [{"type": "certificates", "id": certificate_id}]
                    },
                    "devices": {"data": []},
                },
            }
        }
        response = self.session.post(
            f"{SERVICES_URL}/v1/profiles",
            json=payload,
            headers=self._write_headers(),
        )
        self._check_response(response, "create profile", expected=(200, 201))

        profile = response.json()["data"]
        attrs = profile["attributes"]
        return Profile(
            id=profile["id"],
            name=attrs["name"],
            profile_state=attrs.get("profileState", "ACTIVE"),
            content=base64.b64decode(attrs["profileContent"]),
        )

    def delete_profile(self, team_id: str, profile_id: str) -> None:
        console.print(f"[blue]Deleting provisioning profile {profile_id}...")
        response = self.session.delete(
            f"{SERVICES_URL}/v1/profiles/{profile_id}",
            json={"teamId": team_id},
            headers=self._write_headers(),
        )
        self._check_response(response, "delete profile", expected=(200, 204))
