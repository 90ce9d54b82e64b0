class WarpBuildError(Exception):
    """Base class for every error that aborts a build run."""


class ConfigError(WarpBuildError, ValueError):
    """Configuration is missing or unreadable."""


class AuthenticationError(WarpBuildError):
    """The Apple Developer account rejected our credentials."""


class PortalRequestError(WarpBuildError):
    """A Developer Portal request came back with an unexpected status."""

    def __init__(self, message: str, status_code: int = None, body: str = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class MetadataFetchError(WarpBuildError):
    pass


class ProjectValidationError(WarpBuildError):
    pass


class InProgressBuildConflict(WarpBuildError):
    """A build for the same platform is already queued or running."""


class AppRegistrationError(WarpBuildError):
    pass


class PromptAborted(WarpBuildError):
    pass


class GenerationError(WarpBuildError):
    pass


class PersistError(WarpBuildError):
    """Saving credentials to (or clearing them from) the backend failed."""


class RevokeError(WarpBuildError):
    pass


class MissingCredentialError(WarpBuildError):
    """A stored credential we depend on is not there."""


class CredentialFetchError(WarpBuildError):
    """The credential backend could not return the stored credentials."""


class BuildServiceError(WarpBuildError):
    """The build server refused or failed a status, publish or build request."""
