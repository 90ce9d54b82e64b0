from enum import Enum
from typing import Any, Callable, Dict

from warpbuild.logger import get_console
from warpbuild.src.apple.app_registration import ensure_app_exists
from warpbuild.src.apple.context import AppleContextProvider
from warpbuild.src.credentials.clear_decision import determine_credentials_to_clear
from warpbuild.src.credentials.kinds import CredentialKind, sort_kinds


class CredentialState(Enum):
    START = "start"
    CLEARING = "clearing"
    FETCHING = "fetching"
    ANALYZING = "analyzing"
    REGISTERING_APP = "registering app"
    PROMPTING = "prompting"
    GENERATING = "generating"
    PERSISTING = "persisting"
    DONE = "done"
    ABORTED = "aborted"


class CredentialOrchestrator:
    """Brings the stored iOS credentials of one project into a buildable state.

    clear (if requested) -> fetch -> find missing -> register app -> prompt
    -> generate -> save. The first failing step aborts the run; nothing that
    already happened (a clear, for instance) is rolled back, re-running is
    safe because fetching and the missing analysis start from scratch.
    """

    def __init__(
        self,
        store,
        options,
        context_provider: AppleContextProvider = None,
        app_registrar: Callable = ensure_app_exists,
    ):
        self.console = get_console()
        self.store = store
        self.options = options
        self.context_provider = context_provider or AppleContextProvider(options)
        self.app_registrar = app_registrar
        self.state = CredentialState.START

    def _transition(self, state: CredentialState) -> None:
        self.console.log(f"[dim]credentials: {self.state.value} -> {state.value}[/]")
        self.state = state

    def _apple_ctx(self, project_metadata):
        return self.context_provider.get(
            project_metadata.bundle_identifier, project_metadata.username
        )

    def prepare_credentials(self, project_metadata) -> None:
        try:
            self._run(project_metadata)
        except BaseException:
            self._transition(CredentialState.ABORTED)
            raise

    def _run(self, project_metadata) -> None:
        to_clear = determine_credentials_to_clear(self.options)
        if to_clear is not None:
            self._transition(CredentialState.CLEARING)
            self.store.clear(project_metadata, to_clear)
            if self.options.revoke_credentials:
                self.store.revoke(self._apple_ctx(project_metadata), sort_kinds(to_clear))

        self._transition(CredentialState.FETCHING)
        existing = self.store.fetch(project_metadata)

        self._transition(CredentialState.ANALYZING)
        missing = self.store.determine_missing(existing)
        if missing is None:
            self.console.print("[green]All required credentials are already stored[/]")
            self._transition(CredentialState.DONE)
            return

        self.console.print(
            f"[yellow]Missing credentials:[/] {', '.join(kind.value for kind in missing)}"
        )
        metadata: Dict[str, Any] = {}
        if (
            CredentialKind.PROVISIONING_PROFILE in missing
            and CredentialKind.DISTRIBUTION_CERT not in missing
        ):
            # The new profile has to be bound to the certificate we already have
            metadata["distCertSerialNumber"] = self.store.get_distribution_cert_serial_number(
                project_metadata
            )

        apple_ctx = self._apple_ctx(project_metadata)

        self._transition(CredentialState.REGISTERING_APP)
        self.app_registrar(apple_ctx, project_metadata.experience_name)

        self._transition(CredentialState.PROMPTING)
        answers = self.store.prompt(apple_ctx, self.options, missing)
        metadata.update(answers.metadata)

        self._transition(CredentialState.GENERATING)
        generated = self.store.generate(apple_ctx, answers.to_generate, metadata)

        # Generated values win if a kind shows up in both
        new_credentials = {**answers.credentials, **generated}

        self._transition(CredentialState.PERSISTING)
        self.store.update(project_metadata, new_credentials, answers.user_credential_ids)

        self._transition(CredentialState.DONE)
