from typing import Any, Dict, List, Optional

from warpbuild.logger import get_console
from warpbuild.src.build.build_service import BuildServiceAPI
from warpbuild.src.build.conflict_guard import ensure_no_conflict
from warpbuild.src.build.project_metadata import ProjectMetadata, fetch_project_metadata
from warpbuild.src.build.project_validator import validate_project
from warpbuild.src.credentials.orchestrator import CredentialOrchestrator
from warpbuild.src.credentials.store import CredentialsAPI, CredentialStore

PLATFORM_IOS = "ios"


class IOSBuilder:
    """Runs one iOS build request from project metadata to a scheduled build."""

    def __init__(
        self,
        options,
        server_config: Dict[str, Any],
        build_service: BuildServiceAPI = None,
        credentials: CredentialOrchestrator = None,
    ):
        self.console = get_console()
        self.options = options
        self.server_config = server_config
        self.build_service = build_service or BuildServiceAPI(server_config)
        self.credentials = credentials or CredentialOrchestrator(
            CredentialStore(CredentialsAPI(server_config)), options
        )

    def run(self) -> str:
        project_metadata = self.fetch_project_metadata()
        validate_project(project_metadata)
        self.ensure_no_in_progress_builds_exist(project_metadata)
        self.credentials.prepare_credentials(project_metadata)
        published_ids = self.ensure_project_is_published(project_metadata)
        return self.schedule_build(published_ids, project_metadata.bundle_identifier)

    def fetch_project_metadata(self) -> ProjectMetadata:
        return fetch_project_metadata(self.options, self.server_config)

    def ensure_no_in_progress_builds_exist(self, project_metadata) -> None:
        ensure_no_conflict(
            self.build_service,
            PLATFORM_IOS,
            project_metadata.sdk_version,
            project_metadata.experience_name,
        )

    def ensure_project_is_published(self, project_metadata) -> Optional[List[str]]:
        # A hosted manifest is already published by whoever serves it
        if self.options.public_url:
            return None
        return self.build_service.ensure_release_exists(PLATFORM_IOS, project_metadata)

    def schedule_build(self, published_ids, bundle_identifier: str) -> str:
        extra_args = {"bundleIdentifier": bundle_identifier}
        if self.options.public_url:
            extra_args["publicUrl"] = self.options.public_url

        build_id = self.build_service.build(published_ids, PLATFORM_IOS, extra_args)
        self.console.print(f"[bold green]✓ Build scheduled:[/] {build_id}")
        return build_id
