import base64
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from rich.prompt import Prompt

from warpbuild.logger import get_console
from warpbuild.src.core.cert_utils import p12_serial_number
from warpbuild.src.credentials.kinds import CredentialKind, CredentialSet, sort_kinds
from warpbuild.src.errors import MissingCredentialError, PromptAborted
from warpbuild.src.utils.config_loader import is_non_interactive

console = get_console()

# Kinds that are not tied to one app and can be reused from the user's account
REUSABLE_KINDS = (CredentialKind.DISTRIBUTION_CERT, CredentialKind.PUSH_KEY)


@dataclass
class PromptResult:
    user_credential_ids: List[str] = field(default_factory=list)
    credentials: CredentialSet = field(default_factory=dict)
    to_generate: List[CredentialKind] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)


def _read_file(path, description: str) -> bytes:
    path = Path(path).expanduser()
    if not path.exists():
        raise MissingCredentialError(f"{description} not found: {path}")
    return path.read_bytes()


def _dist_cert_from_file(p12_path, password: str, team_id: str) -> Dict[str, Any]:
    cert_p12 = base64.b64encode(_read_file(p12_path, "Distribution certificate")).decode(
        "utf-8"
    )
    try:
        serial = p12_serial_number(cert_p12, password)
    except RuntimeError as e:
        raise MissingCredentialError(
            f"Could not open distribution certificate {p12_path}: {e}"
        ) from e
    return {
        "certP12": cert_p12,
        "certPassword": password,
        "certSerialNumber": serial,
        "teamId": team_id,
    }


def _push_key_from_file(p8_path, key_id: str, team_id: str) -> Dict[str, Any]:
    return {
        "apnsKeyP8": _read_file(p8_path, "Push key").decode("utf-8"),
        "apnsKeyId": key_id,
        "teamId": team_id,
    }


def _profile_from_file(profile_path) -> Dict[str, Any]:
    content = _read_file(profile_path, "Provisioning profile")
    return {"provisioningProfile": base64.b64encode(content).decode("utf-8")}


def _from_options(kind: CredentialKind, options, team_id: str) -> Optional[Dict[str, Any]]:
    """Credentials passed on the command line, if any"""
    if kind is CredentialKind.DISTRIBUTION_CERT and options.dist_p12_path:
        password = os.environ.get("DIST_CERT_PASSWORD")
        if password is None:
            raise MissingCredentialError(
                "DIST_CERT_PASSWORD must be set when using --dist-p12-path"
            )
        return _dist_cert_from_file(options.dist_p12_path, password, team_id)
    if kind is CredentialKind.PUSH_KEY and options.push_p8_path:
        if not options.push_id:
            raise MissingCredentialError("--push-id is required with --push-p8-path")
        return _push_key_from_file(options.push_p8_path, options.push_id, team_id)
    if kind is CredentialKind.PROVISIONING_PROFILE and options.provisioning_profile_path:
        return _profile_from_file(options.provisioning_profile_path)
    return None


def _ask_for_files(kind: CredentialKind, team_id: str) -> Dict[str, Any]:
    if kind is CredentialKind.DISTRIBUTION_CERT:
        path = Prompt.ask("Path to distribution certificate (.p12)")
        password = Prompt.ask("Certificate password", password=True)
        return _dist_cert_from_file(path, password, team_id)
    if kind is CredentialKind.PUSH_KEY:
        path = Prompt.ask("Path to APNs key (.p8)")
        key_id = Prompt.ask("Key ID")
        return _push_key_from_file(path, key_id, team_id)
    path = Prompt.ask("Path to provisioning profile (.mobileprovision)")
    return _profile_from_file(path)


def _choose(kind: CredentialKind, reusable: List[dict]) -> str:
    console.print(f"\n[bold]{kind.label}[/] is missing")
    console.print("[1] Let warpbuild generate it")
    console.print("[2] Upload my own")
    choices = ["1", "2"]
    if reusable:
        console.print(f"[3] Reuse one of my {len(reusable)} existing credentials")
        choices.append("3")
    return Prompt.ask("Choose", choices=choices, default="1")


def _choose_existing(reusable: List[dict]) -> dict:
    for index, credential in enumerate(reusable, start=1):
        description = credential.get("name") or credential.get("apnsKeyId") or credential.get(
            "certSerialNumber", ""
        )
        console.print(f"[{index}] {description} (team {credential.get('teamId', '?')})")
    choice = Prompt.ask(
        "Credential", choices=[str(i) for i in range(1, len(reusable) + 1)], default="1"
    )
    return reusable[int(choice) - 1]


def _record(result: PromptResult, kind: CredentialKind, value: Dict[str, Any]) -> None:
    result.credentials[kind] = value
    if kind is not CredentialKind.DISTRIBUTION_CERT:
        return

    serial = value.get("certSerialNumber")
    if not serial and value.get("certP12"):
        try:
            serial = p12_serial_number(value["certP12"], value.get("certPassword", ""))
        except (ValueError, RuntimeError) as e:
            raise MissingCredentialError(
                f"Could not read the selected distribution certificate: {e}"
            ) from e
    if serial:
        # The profile we may generate next must be bound to this certificate
        result.metadata["distCertSerialNumber"] = serial


def prompt(store, apple_ctx, options, missing) -> PromptResult:
    """Ask how each missing credential should be provided.

    Credentials passed as options are always used. Otherwise the user picks
    between generating, uploading files and reusing a credential from their
    account (recorded by id so the backend links instead of copying it).
    Without a terminal everything else is generated.
    """
    result = PromptResult()
    team_id = apple_ctx.team_id

    try:
        for kind in sort_kinds(missing):
            provided = _from_options(kind, options, team_id)
            if provided:
                console.print(f"[green]Using {kind.label} from command line options")
                _record(result, kind, provided)
                continue

            if is_non_interactive():
                result.to_generate.append(kind)
                continue

            reusable = []
            if kind in REUSABLE_KINDS:
                reusable = [
                    c
                    for c in store.list_user_credentials(apple_ctx.username, kind)
                    if c.get("id") is not None and c.get("teamId") in (None, team_id)
                ]

            choice = _choose(kind, reusable)
            if choice == "1":
                result.to_generate.append(kind)
            elif choice == "2":
                _record(result, kind, _ask_for_files(kind, team_id))
            else:
                existing = dict(_choose_existing(reusable))
                credential_id = str(existing.pop("id"))
                existing.pop("type", None)
                result.user_credential_ids.append(credential_id)
                _record(result, kind, existing)
    except (EOFError, KeyboardInterrupt):
        raise PromptAborted("Credential prompt canceled") from None

    return result
