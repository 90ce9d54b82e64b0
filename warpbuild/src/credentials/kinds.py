from enum import Enum
from typing import Any, Dict, Iterable, List


class CredentialKind(str, Enum):
    """Signing credentials an iOS build needs. Values are the backend's keys."""

    DISTRIBUTION_CERT = "distributionCert"
    PUSH_KEY = "pushKey"
    # TODO: drop once the backend stops accepting push certificates
    PUSH_CERT = "pushCert"
    PROVISIONING_PROFILE = "provisioningProfile"

    @property
    def label(self) -> str:
        return KIND_LABELS[self]


KIND_LABELS = {
    CredentialKind.DISTRIBUTION_CERT: "Apple Distribution Certificate",
    CredentialKind.PUSH_KEY: "Apple Push Notifications service key",
    CredentialKind.PUSH_CERT: "Apple Push Notifications certificate (deprecated)",
    CredentialKind.PROVISIONING_PROFILE: "Apple Provisioning Profile",
}

# Canonical order: the profile is last because it's bound to the certificate
ALL_KINDS = (
    CredentialKind.DISTRIBUTION_CERT,
    CredentialKind.PUSH_KEY,
    CredentialKind.PUSH_CERT,
    CredentialKind.PROVISIONING_PROFILE,
)

REQUIRED_CREDENTIALS = (
    CredentialKind.DISTRIBUTION_CERT,
    CredentialKind.PUSH_KEY,
    CredentialKind.PROVISIONING_PROFILE,
)

# Fields a stored credential must carry to be usable
REQUIRED_FIELDS = {
    CredentialKind.DISTRIBUTION_CERT: ("certP12", "certPassword"),
    CredentialKind.PUSH_KEY: ("apnsKeyP8", "apnsKeyId"),
    CredentialKind.PUSH_CERT: ("pushP12", "pushPassword"),
    CredentialKind.PROVISIONING_PROFILE: ("provisioningProfile",),
}

CredentialSet = Dict[CredentialKind, Dict[str, Any]]


def sort_kinds(kinds: Iterable[CredentialKind]) -> List[CredentialKind]:
    kinds = set(kinds)
    return [kind for kind in ALL_KINDS if kind in kinds]


def is_complete(kind: CredentialKind, value) -> bool:
    if not isinstance(value, dict):
        return False
    return all(value.get(field) for field in REQUIRED_FIELDS[kind])


def credential_set_from_wire(data: Dict[str, Any]) -> CredentialSet:
    """Build a CredentialSet from the backend's JSON, skipping unknown keys."""
    credentials = {}
    for kind in ALL_KINDS:
        value = (data or {}).get(kind.value)
        if value:
            credentials[kind] = dict(value)
    return credentials


def credential_set_to_wire(credentials: CredentialSet) -> Dict[str, Any]:
    return {kind.value: value for kind, value in credentials.items()}
