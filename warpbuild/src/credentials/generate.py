import base64
import time
import requests
from typing import Any, Dict, Iterable

from warpbuild.logger import get_console
from warpbuild.src.apple.developer_portal_api import DISTRIBUTION_CERT_TYPES
from warpbuild.src.core.cert_utils import create_private_key_and_csr, export_p12
from warpbuild.src.credentials.kinds import CredentialKind, CredentialSet, sort_kinds
from warpbuild.src.errors import GenerationError, PortalRequestError

console = get_console()


def generate_distribution_cert(apple_ctx) -> Dict[str, Any]:
    private_key, csr = create_private_key_and_csr(f"warpbuild {apple_ctx.team_id}")
    certificate = apple_ctx.api.create_certificate(apple_ctx.team_id, csr)
    cert_p12, cert_password = export_p12(certificate.content, private_key)
    return {
        "certId": certificate.id,
        "certP12": cert_p12,
        "certPassword": cert_password,
        "certSerialNumber": certificate.serial_number.upper(),
        "teamId": apple_ctx.team_id,
    }


def generate_push_key(apple_ctx) -> Dict[str, Any]:
    key = apple_ctx.api.create_push_key(
        apple_ctx.team_id, f"warpbuild push key {int(time.time())}"
    )
    return {
        "apnsKeyId": key.id,
        "apnsKeyP8": apple_ctx.api.download_push_key(apple_ctx.team_id, key.id),
        "teamId": apple_ctx.team_id,
    }


def generate_provisioning_profile(apple_ctx, metadata: Dict[str, Any]) -> Dict[str, Any]:
    serial_number = metadata.get("distCertSerialNumber")
    if not serial_number:
        raise GenerationError(
            "A provisioning profile needs a distribution certificate serial number"
        )

    certificates = apple_ctx.api.list_certificates(
        apple_ctx.team_id, DISTRIBUTION_CERT_TYPES
    )
    certificate = next(
        (c for c in certificates if c.serial_number.upper() == serial_number.upper()),
        None,
    )
    if not certificate:
        raise GenerationError(
            f"Distribution certificate {serial_number} is not in team {apple_ctx.team_id}, "
            "it may have been revoked"
        )

    bundle = apple_ctx.api.find_bundle_id(apple_ctx.team_id, apple_ctx.bundle_identifier)
    if not bundle:
        raise GenerationError(f"App {apple_ctx.bundle_identifier} is not registered")

    profile = apple_ctx.api.create_app_store_profile(
        apple_ctx.team_id,
        bundle.id,
        certificate.id,
        f"warpbuild {apple_ctx.bundle_identifier} AppStore {int(time.time())}",
    )
    return {
        "provisioningProfileId": profile.id,
        "provisioningProfile": base64.b64encode(profile.content).decode("utf-8"),
    }


def generate(apple_ctx, to_generate: Iterable[CredentialKind], metadata) -> CredentialSet:
    """Create the requested credentials in the Developer Portal.

    The certificate comes first so that a profile generated in the same run
    is bound to it.
    """
    metadata = dict(metadata or {})
    generated = {}

    for kind in sort_kinds(to_generate):
        console.print(f"[blue]Generating {kind.label}...")
        try:
            if kind is CredentialKind.DISTRIBUTION_CERT:
                generated[kind] = generate_distribution_cert(apple_ctx)
                metadata["distCertSerialNumber"] = generated[kind]["certSerialNumber"]
            elif kind is CredentialKind.PUSH_KEY:
                generated[kind] = generate_push_key(apple_ctx)
            elif kind is CredentialKind.PROVISIONING_PROFILE:
                generated[kind] = generate_provisioning_profile(apple_ctx, metadata)
            else:
                raise GenerationError(
                    "Push certificates can no longer be generated, use a push key instead"
                )
        except (PortalRequestError, requests.RequestException, RuntimeError) as e:
            raise GenerationError(f"Failed to generate {kind.label}: {e}") from e
        console.print(f"[green]Generated {kind.label}")

    return generated
