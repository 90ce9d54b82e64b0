import requests
from typing import List

from warpbuild.logger import get_console
from warpbuild.src.apple.developer_portal_api import (
    APNS_SERVICE_ID,
    DISTRIBUTION_CERT_TYPES,
    PUSH_CERT_TYPES,
)
from warpbuild.src.credentials.kinds import CredentialKind
from warpbuild.src.errors import PortalRequestError, RevokeError

console = get_console()


def revoke_distribution_certs(apple_ctx) -> int:
    api, team_id = apple_ctx.api, apple_ctx.team_id
    certificates = api.list_certificates(team_id, DISTRIBUTION_CERT_TYPES)
    for certificate in certificates:
        api.revoke_certificate(team_id, certificate.id)
    return len(certificates)


def revoke_push_keys(apple_ctx) -> int:
    api, team_id = apple_ctx.api, apple_ctx.team_id
    keys = [key for key in api.list_keys(team_id) if APNS_SERVICE_ID in key.services]
    for key in keys:
        api.revoke_key(team_id, key.id)
    return len(keys)


def revoke_push_certs(apple_ctx) -> int:
    api, team_id = apple_ctx.api, apple_ctx.team_id
    certificates = [
        c
        for c in api.list_certificates(team_id, PUSH_CERT_TYPES)
        if c.name == apple_ctx.bundle_identifier
    ]
    for certificate in certificates:
        api.revoke_certificate(team_id, certificate.id)
    return len(certificates)


def revoke_provisioning_profiles(apple_ctx) -> int:
    api, team_id = apple_ctx.api, apple_ctx.team_id
    bundle = api.find_bundle_id(team_id, apple_ctx.bundle_identifier)
    if not bundle:
        return 0
    profiles = api.list_profiles_for_bundle_id(team_id, bundle.id)
    for profile in profiles:
        api.delete_profile(team_id, profile.id)
    return len(profiles)


REVOKERS = {
    CredentialKind.DISTRIBUTION_CERT: revoke_distribution_certs,
    CredentialKind.PUSH_KEY: revoke_push_keys,
    CredentialKind.PUSH_CERT: revoke_push_certs,
    CredentialKind.PROVISIONING_PROFILE: revoke_provisioning_profiles,
}


def revoke(apple_ctx, kinds: List[CredentialKind]) -> None:
    """Revoke the given kinds on the Apple Developer Portal.

    Certificates and APNs keys are revoked team wide, profiles and push
    certificates only for the app's bundle identifier.
    """
    for kind in kinds:
        console.print(f"[yellow]Revoking {kind.label}...")
        try:
            count = REVOKERS[kind](apple_ctx)
        except (PortalRequestError, requests.RequestException) as e:
            raise RevokeError(f"Failed to revoke {kind.label}: {e}") from e
        console.print(f"[green]Revoked {count} item(s)")
