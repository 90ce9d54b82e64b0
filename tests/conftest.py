"""Pytest fixtures shared by the test suite."""

import pytest

from warpbuild.src.build.options import BuildOptions
from warpbuild.src.build.project_metadata import ProjectMetadata

ENV_VARS = (
    "APPLE_ID",
    "APPLE_PASSWORD",
    "WARPBUILD_SESSION_DIR",
    "WARPBUILD_SERVER_URL",
    "WARPBUILD_ACCESS_TOKEN",
    "NON_INTERACTIVE",
    "DIST_CERT_PASSWORD",
)


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Point ~ at a temp dir and drop any warpbuild related env vars."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def project_metadata():
    return ProjectMetadata(
        username="jane",
        experience_name="@jane/rocket",
        bundle_identifier="com.jane.rocket",
        sdk_version="49.0.0",
    )


@pytest.fixture
def options():
    return BuildOptions()
