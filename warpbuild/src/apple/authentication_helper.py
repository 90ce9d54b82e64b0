import getpass
import requests
from dataclasses import dataclass
from rich.prompt import Prompt

from warpbuild.logger import get_console
from warpbuild.src.apple.apple_account_login import AppleDeveloperAuth
from warpbuild.src.apple.developer_portal_api import DeveloperPortalAPI, Team
from warpbuild.src.errors import (
    AuthenticationError,
    ConfigError,
    PortalRequestError,
    PromptAborted,
)
from warpbuild.src.utils.config_loader import (
    get_apple_credentials,
    get_session_dir,
    is_non_interactive,
)


@dataclass(frozen=True)
class AppleAuthData:
    auth: AppleDeveloperAuth
    api: DeveloperPortalAPI
    team: Team


def sign_in(console) -> AppleDeveloperAuth:
    """Sign in with a saved session if possible, else with the password."""
    try:
        credentials = get_apple_credentials()
    except ConfigError as e:
        raise AuthenticationError(str(e)) from e

    apple_id = credentials["apple_id"]
    apple_password = credentials["apple_password"]
    auth = AppleDeveloperAuth(get_session_dir())

    auth.email = apple_id
    if auth.load_session() and auth.validate_token():
        console.print("[green]Loaded existing Apple session")
        return auth

    if not apple_password:
        console.print("[yellow]No Apple password found in configuration.[/]")
        if is_non_interactive():
            raise AuthenticationError(
                "No valid Apple session and NON_INTERACTIVE mode prevents asking for a password"
            )
        try:
            apple_password = getpass.getpass("Enter Apple ID password: ")
        except (EOFError, KeyboardInterrupt):
            raise PromptAborted("Password input canceled") from None

    console.print(f"Authenticating with Apple ID: {apple_id}")
    if not auth.authenticate(apple_id, apple_password):
        raise AuthenticationError(f"Apple rejected the credentials for {apple_id}")

    console.print("[green]Authentication verified successfully[/]")
    return auth


def choose_team(console, api: DeveloperPortalAPI, team_id: str = None) -> Team:
    teams = api.list_teams()
    if not teams:
        raise AuthenticationError("This Apple ID is not a member of any developer team")

    if team_id:
        for team in teams:
            if team.team_id == team_id:
                return team
        raise AuthenticationError(f"Apple ID has no access to team {team_id}")

    if len(teams) == 1 or is_non_interactive():
        return teams[0]

    for index, team in enumerate(teams, start=1):
        console.print(f"[{index}] {team.name} ({team.team_id}, {team.type})")
    try:
        choice = Prompt.ask(
            "Select team",
            choices=[str(i) for i in range(1, len(teams) + 1)],
            default="1",
        )
    except (EOFError, KeyboardInterrupt):
        raise PromptAborted("Team selection canceled") from None
    return teams[int(choice) - 1]


def authenticate(options) -> AppleAuthData:
    """Sign in to the Apple Developer account and pick the team to work in."""
    console = get_console()
    try:
        auth = sign_in(console)
    except requests.RequestException as e:
        raise AuthenticationError(f"Could not reach Apple to sign in: {e}") from e

    api = DeveloperPortalAPI(auth)
    try:
        team = choose_team(console, api, getattr(options, "team_id", None))
    except (PortalRequestError, requests.RequestException) as e:
        raise AuthenticationError(f"Could not list developer teams: {e}") from e
    console.print(f"[blue]Using team:[/] {team.name} ({team.team_id})")
    return AppleAuthData(auth=auth, api=api, team=team)
