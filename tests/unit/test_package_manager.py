"""Tests for npm subprocess commands."""

import subprocess
from unittest.mock import patch

import pytest

from core.package_manager import NpmPackageManager


def completed(args, returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=args, returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def run():
    with patch("core.package_manager.subprocess.run") as mock_run:
        mock_run.side_effect = lambda args, **kwargs: completed(args)
        yield mock_run


class TestNpmPackageManager:
    """Test command construction and result capture."""

    def test_install(self, run, tmp_path):
        result = NpmPackageManager().install(tmp_path)

        assert result.success
        assert result.args == ["npm", "install"]
        args, kwargs = run.call_args
        assert args[0] == ["npm", "install"]
        assert kwargs["cwd"] == tmp_path
        assert kwargs["timeout"] == 300.0
        assert kwargs["capture_output"] is True
        assert kwargs["check"] is False

    def test_clean_install_uses_ci(self, run, tmp_path):
        NpmPackageManager(executable="/usr/bin/npm", timeout=60).install(tmp_path, clean=True)

        args, kwargs = run.call_args
        assert args[0] == ["/usr/bin/npm", "ci"]
        assert kwargs["timeout"] == 60

    def test_default_test_command(self, run, tmp_path):
        NpmPackageManager().run_tests(tmp_path)
        assert run.call_args[0][0] == ["npm", "test"]

    def test_custom_test_command(self, run, tmp_path):
        NpmPackageManager().run_tests(tmp_path, "npx vitest run --reporter 'dot'")
        assert run.call_args[0][0] == ["npx", "vitest", "run", "--reporter", "dot"]

    def test_install_package(self, run, tmp_path):
        NpmPackageManager().install_package(tmp_path, "@types/node", "20.0.0")
        assert run.call_args[0][0] == ["npm", "install", "@types/node@20.0.0"]

    def test_failed_command_output(self, run, tmp_path):
        run.side_effect = lambda args, **kwargs: completed(args, 1, stdout="partial", stderr="ERR!")

        result = NpmPackageManager().install(tmp_path)

        assert not result.success
        assert result.returncode == 1
        assert result.output == "partial\nERR!"

    def test_timeout(self, run, tmp_path):
        run.side_effect = subprocess.TimeoutExpired(cmd=["npm", "install"], timeout=1)

        result = NpmPackageManager(timeout=1).install(tmp_path)

        assert result.returncode == -1
        assert "timed out" in result.stderr

    def test_missing_executable(self, run, tmp_path):
        run.side_effect = FileNotFoundError("No such file or directory: 'npm'")

        result = NpmPackageManager().install(tmp_path)

        assert result.returncode == -1
        assert not result.success


class TestViewDeprecated:
    def test_deprecated_notice(self, run):
        run.side_effect = lambda args, **kwargs: completed(args, stdout="request has been deprecated\n")

        notice = NpmPackageManager().view_deprecated("request", "2.88.2")

        assert notice == "request has been deprecated"
        assert run.call_args[0][0] == ["npm", "view", "request@2.88.2", "deprecated"]

    def test_not_deprecated(self, run):
        assert NpmPackageManager().view_deprecated("lodash") is None
        assert run.call_args[0][0] == ["npm", "view", "lodash", "deprecated"]

    def test_unknown_package(self, run):
        run.side_effect = lambda args, **kwargs: completed(args, 1, stderr="E404")
        assert NpmPackageManager().view_deprecated("does-not-exist") is None
