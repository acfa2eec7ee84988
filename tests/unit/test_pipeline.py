"""Tests for the analyze/fix/validate workflow."""

import json
from unittest.mock import patch

import pytest

from core.config import Settings
from core.exceptions import ManifestNotFound, RegistryUnavailable
from core.models import Confidence, Dependency, Fix, FixChange, Issue, IssueKind
from core.package_manager import CommandResult
from core.pipeline import run_analysis, validate_fixes
from core.registry import RegistryClient


@pytest.fixture
def registry_data(packument):
    return {
        "left-pad": packument("1.3.0"),
        "request": packument("2.88.2", deprecated="request is deprecated, use axios instead"),
        "axios": packument("1.6.0"),
    }


@pytest.fixture
def fake_registry(registry_data):
    fetched = []

    async def fake_fetch(self, package_name):
        fetched.append(package_name)
        if package_name not in registry_data:
            raise RegistryUnavailable(f"Registry returned 404 for {package_name}", package=package_name)
        return registry_data[package_name]

    with patch.object(RegistryClient, "_fetch_package_metadata", fake_fetch):
        yield fetched


class TestRunAnalysis:
    @pytest.mark.asyncio
    async def test_analysis_with_fixes(self, write_manifest, fake_registry):
        project = write_manifest({"dependencies": {"left-pad": "1.0.0", "request": "^2.88.2"}})

        results = await run_analysis(project, Settings())

        assert len(results) == 1
        result = results[0]
        assert result.ecosystem == "node"
        by_kind = {issue.kind: issue for issue in result.issues}
        assert by_kind[IssueKind.OUTDATED].fixes[0].changes == [FixChange("left-pad", "1.0.0", "1.3.0")]
        assert by_kind[IssueKind.DEPRECATED].fixes[0].changes[0].replacement == "axios"

    @pytest.mark.asyncio
    async def test_analysis_without_fixes(self, write_manifest, fake_registry):
        """The fixer is skipped; only the fix the analyzer attaches itself remains."""
        project = write_manifest({"dependencies": {"left-pad": "1.0.0", "request": "^2.88.2"}})

        results = await run_analysis(project, Settings(), generate_fixes=False)

        by_kind = {issue.kind: issue for issue in results[0].issues}
        assert by_kind[IssueKind.DEPRECATED].fixes == []
        assert len(by_kind[IssueKind.OUTDATED].fixes) == 1
        assert "axios" not in fake_registry

    @pytest.mark.asyncio
    async def test_no_manifest(self, tmp_path):
        with pytest.raises(ManifestNotFound):
            await run_analysis(tmp_path, Settings())

    @pytest.mark.asyncio
    async def test_requested_ecosystem_without_manifest(self, tmp_path):
        with pytest.raises(ManifestNotFound):
            await run_analysis(tmp_path, Settings(), ecosystem="node")


class TestValidateFixes:
    def make_issues(self):
        bump = Fix("Update left-pad", [FixChange("left-pad", "1.0.0", "1.3.0")], Confidence.HIGH)
        manual = Fix("Manual intervention required: gone", [], Confidence.LOW)
        return [
            Issue(
                kind=IssueKind.DEPRECATED,
                message="left-pad is deprecated",
                affected=[Dependency("left-pad", "1.0.0")],
                fixes=[bump, manual],
            )
        ]

    def test_each_fix_in_its_own_sandbox(self, write_manifest, package_manager):
        project = write_manifest({"dependencies": {"left-pad": "1.0.0"}})
        issues = self.make_issues()

        validations = validate_fixes(project, issues, Settings(), package_manager=package_manager)

        assert len(validations) == 1
        assert validations[0].fix is issues[0].fixes[0]
        assert validations[0].result.success is True
        # Sandbox setup install plus the post-fix install
        assert package_manager.install.call_count == 2
        sandbox_dir = package_manager.install.call_args[0][0]
        assert sandbox_dir != project
        assert not sandbox_dir.exists()
        assert json.loads((project / "package.json").read_text())["dependencies"]["left-pad"] == "1.0.0"

    def test_setup_failure_is_a_failed_validation(self, write_manifest, package_manager):
        project = write_manifest({"dependencies": {"left-pad": "1.0.0"}})
        package_manager.install.return_value = CommandResult(args=["npm", "install"], returncode=1, stderr="E404")

        validations = validate_fixes(project, self.make_issues(), Settings(), package_manager=package_manager)

        assert len(validations) == 1
        assert validations[0].result.success is False
        assert "E404" in validations[0].result.error
        package_manager.run_tests.assert_not_called()

    def test_uses_configured_test_command(self, write_manifest, package_manager):
        project = write_manifest({"dependencies": {"left-pad": "1.0.0"}})

        validate_fixes(
            project, self.make_issues(), Settings(test_command="npm run test:ci"), package_manager=package_manager
        )

        assert package_manager.run_tests.call_args[0][1] == "npm run test:ci"
