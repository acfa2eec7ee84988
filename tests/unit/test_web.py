"""Tests for web application functionality."""

import json
from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from apps.web.main import app
from core.exceptions import RegistryUnavailable
from core.models import (
    AnalysisResult,
    AnalysisSummary,
    Confidence,
    Dependency,
    Fix,
    FixChange,
    Issue,
    IssueKind,
)

PACKAGE_JSON = json.dumps({"name": "app", "dependencies": {"left-pad": "1.0.0"}})


def outdated_result() -> AnalysisResult:
    issue = Issue(
        kind=IssueKind.OUTDATED,
        message="left-pad is outdated (1.0.0 -> 1.3.0)",
        affected=[Dependency("left-pad", "1.0.0")],
        fixes=[Fix("Update left-pad from 1.0.0 to 1.3.0", [FixChange("left-pad", "1.0.0", "1.3.0")], Confidence.HIGH)],
    )
    return AnalysisResult(ecosystem="node", issues=[issue], summary=AnalysisSummary.from_issues([issue]))


class TestWebApp:
    """Test web application endpoints."""

    def setup_method(self):
        """Setup test fixtures."""
        self.client = TestClient(app)

    def test_health(self):
        response = self.client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_analyze_api_success(self):
        """Should analyze package.json content and return issues."""
        with patch("apps.web.main.run_analysis", new=AsyncMock(return_value=[outdated_result()])) as run:
            response = self.client.post("/api/analyze", json={"content": PACKAGE_JSON})

        assert response.status_code == 200
        data = response.json()
        assert data["ecosystem"] == "node"
        assert data["summary"]["totalIssues"] == 1
        issue = data["issues"][0]
        assert issue["type"] == "outdated"
        assert issue["severity"] == "medium"
        assert issue["fixes"][0]["changes"][0]["to"] == "1.3.0"
        assert run.call_args.kwargs["ecosystem"] == "node"
        assert run.call_args.kwargs["generate_fixes"] is True

    def test_analyze_api_stages_manifest(self):
        """The uploaded content should be analyzed from a package.json file."""
        seen = {}

        async def fake_run(project_dir, settings, ecosystem=None, generate_fixes=True):
            with open(f"{project_dir}/package.json", encoding="utf-8") as handle:
                seen["content"] = handle.read()
            seen["registry_url"] = settings.registry_url
            return [outdated_result()]

        with patch("apps.web.main.run_analysis", new=fake_run):
            response = self.client.post(
                "/api/analyze",
                json={"content": PACKAGE_JSON, "registry_url": "https://registry.npmjs.org/", "generate_fixes": False},
            )

        assert response.status_code == 200
        assert seen["content"] == PACKAGE_JSON
        assert seen["registry_url"] == "https://registry.npmjs.org"

    def test_analyze_api_rejects_unconfigured_registry(self):
        """Callers cannot point the server at arbitrary hosts."""
        run = AsyncMock(return_value=[outdated_result()])
        with patch("apps.web.main.run_analysis", new=run):
            response = self.client.post(
                "/api/analyze",
                json={"content": PACKAGE_JSON, "registry_url": "http://169.254.169.254/latest"},
            )

        assert response.status_code == 400
        assert "Registry not allowed" in response.json()["detail"]
        run.assert_not_called()

    def test_analyze_api_empty_content(self):
        """Should return 400 for empty content."""
        response = self.client.post("/api/analyze", json={"content": "   "})
        assert response.status_code == 400
        assert "No content provided" in response.json()["detail"]

    def test_analyze_api_unsupported_ecosystem(self):
        """Should return 400 for content that is not package.json."""
        response = self.client.post("/api/analyze", json={"content": "fastapi==0.85.0"})
        assert response.status_code == 400
        assert "Unsupported ecosystem" in response.json()["detail"]

    def test_analyze_api_invalid_json(self):
        response = self.client.post("/api/analyze", json={"content": '{"dependencies": {"a": "1.0.0"'})
        assert response.status_code == 400

    def test_analyze_api_unexpected_error(self):
        failing = AsyncMock(side_effect=RegistryUnavailable("Registry unreachable"))
        with patch("apps.web.main.run_analysis", new=failing):
            response = self.client.post("/api/analyze", json={"content": PACKAGE_JSON})

        assert response.status_code == 500
        assert "Registry unreachable" in response.json()["detail"]

    def test_analyze_api_missing_content(self):
        """Should reject requests without a content field."""
        response = self.client.post("/api/analyze", json={})
        assert response.status_code == 422
