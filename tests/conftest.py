"""Pytest configuration and fixtures."""

import json
from unittest.mock import MagicMock

import pytest

from core.exceptions import RegistryUnavailable
from core.package_manager import CommandResult, NpmPackageManager
from core.registry import RegistryClient


def _packument(latest: str, versions=None, deprecated: str | None = None) -> dict:
    versions = versions or [latest]
    data = {
        "dist-tags": {"latest": latest},
        "versions": {version: {"version": version} for version in versions},
    }
    if deprecated:
        data["deprecated"] = deprecated
    return data


@pytest.fixture
def packument():
    """Factory for minimal registry documents."""
    return _packument


@pytest.fixture
def sample_package_json():
    """Sample package.json data for testing."""
    return {
        "name": "test-project",
        "version": "1.0.0",
        "dependencies": {
            "express": "^4.18.0",
            "lodash": "~4.17.21",
        },
        "devDependencies": {
            "jest": "^29.0.0",
        },
    }


@pytest.fixture
def write_manifest(tmp_path):
    """Write package.json data into a temporary project and return its root."""

    def _write(data: dict, indent: int = 2, lockfile: bool = False):
        project = tmp_path / "project"
        project.mkdir(exist_ok=True)
        (project / "package.json").write_text(json.dumps(data, indent=indent) + "\n")
        if lockfile:
            (project / "package-lock.json").write_text('{"lockfileVersion": 3}\n')
        return project

    return _write


@pytest.fixture
def make_registry(monkeypatch):
    """Build a RegistryClient answering from a name -> packument mapping.

    Unknown names raise RegistryUnavailable; Exception values are raised.
    """

    def _make(metadata: dict) -> RegistryClient:
        client = RegistryClient()
        client.calls = []

        async def fake_fetch(package_name):
            client.calls.append(package_name)
            value = metadata.get(package_name)
            if value is None:
                raise RegistryUnavailable(f"Registry returned 404 for {package_name}", package=package_name)
            if isinstance(value, Exception):
                raise value
            return value

        monkeypatch.setattr(client, "_fetch_package_metadata", fake_fetch)
        return client

    return _make


def ok(*args: str, stdout: str = "") -> CommandResult:
    return CommandResult(args=list(args), returncode=0, stdout=stdout)


@pytest.fixture
def package_manager():
    """An npm stand-in whose commands all succeed."""
    manager = MagicMock(spec=NpmPackageManager)
    manager.install.return_value = ok("npm", "install")
    manager.run_tests.return_value = ok("npm", "test", stdout="all tests passed")
    manager.install_package.return_value = ok("npm", "install")
    manager.view_deprecated.return_value = None
    return manager
