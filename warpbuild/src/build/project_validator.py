import re

from warpbuild.src.errors import ProjectValidationError

BUNDLE_IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9\-.]+$")


def validate_project(project_metadata) -> None:
    bundle_identifier = project_metadata.bundle_identifier
    if not bundle_identifier:
        raise ProjectValidationError(
            "Your project must have an ios.bundleIdentifier set to build for iOS"
        )
    if not BUNDLE_IDENTIFIER_PATTERN.match(bundle_identifier):
        raise ProjectValidationError(
            f"{bundle_identifier} is not a valid iOS bundle identifier, "
            "only letters, digits, '-' and '.' are allowed"
        )
    if not project_metadata.sdk_version:
        raise ProjectValidationError("Your project must have an sdkVersion set")
