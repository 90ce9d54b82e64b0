from typing import FrozenSet, Optional

from warpbuild.src.credentials.kinds import CredentialKind

# Option attribute that marks each kind for clearing on its own
CLEAR_FLAGS = {
    CredentialKind.DISTRIBUTION_CERT: "clear_dist_cert",
    CredentialKind.PUSH_KEY: "clear_push_key",
    CredentialKind.PUSH_CERT: "clear_push_cert",
    CredentialKind.PROVISIONING_PROFILE: "clear_provisioning_profile",
}


def determine_credentials_to_clear(options) -> Optional[FrozenSet[CredentialKind]]:
    """Kinds the user asked to clear, or None when no clear flag is set.

    `clear_credentials` marks every kind regardless of the individual flags.
    An empty set is never returned, so callers can tell "nothing requested"
    apart from a real request.
    """
    clear_all = bool(getattr(options, "clear_credentials", False))
    to_clear = {
        kind: clear_all or bool(getattr(options, flag, False))
        for kind, flag in CLEAR_FLAGS.items()
    }
    kinds = frozenset(kind for kind, selected in to_clear.items() if selected)
    return kinds or None
