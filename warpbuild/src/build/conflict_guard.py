from warpbuild.src.errors import InProgressBuildConflict

IN_PROGRESS_STATUSES = ("pending", "sent-to-queue", "in-progress")


def ensure_no_conflict(
    service, platform: str, sdk_version: str, experience_name: str = None
) -> None:
    """Refuse to touch credentials while a build for the platform may be using them."""
    jobs = service.check_status(platform, sdk_version, experience_name)
    for job in jobs:
        if job.get("platform", platform) != platform:
            continue
        if job.get("status") in IN_PROGRESS_STATUSES:
            raise InProgressBuildConflict(
                f"Cannot start a new {platform} build, build {job.get('id', '?')} "
                f"is {job['status']}. Wait for it to finish first."
            )
