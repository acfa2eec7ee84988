"""Dependency issue detection for Node.js projects."""

import asyncio
import logging
from pathlib import Path

from .config import Settings
from .exceptions import ManifestError, ManifestNotFound, RegistryError
from .models import (
    AnalysisResult,
    AnalysisSummary,
    Confidence,
    Dependency,
    Fix,
    FixChange,
    Issue,
    IssueKind,
)
from .package_manager import NpmPackageManager
from .parse_node import LOCKFILE_NAME, MANIFEST_NAME, load_manifest
from .registry import RegistryClient
from .semver import min_version

logger = logging.getLogger(__name__)


class NodeAnalyzer:
    """Finds outdated, deprecated and conflicting package.json entries."""

    name = "node-package-analyzer"
    ecosystem = "node"

    def __init__(
        self,
        registry: RegistryClient | None = None,
        settings: Settings | None = None,
        package_manager: NpmPackageManager | None = None,
    ):
        self.settings = settings or Settings()
        self.registry = registry or RegistryClient(
            registry_url=self.settings.registry_url,
            timeout=self.settings.registry_timeout,
            max_concurrency=self.settings.max_concurrency,
        )
        self.package_manager = package_manager or NpmPackageManager(
            executable=self.settings.npm_executable,
            timeout=self.settings.command_timeout,
        )
        # Caps concurrent npm view processes
        self._npm_slots = asyncio.Semaphore(self.settings.max_concurrency)

    def supported_files(self) -> list[str]:
        return [MANIFEST_NAME, LOCKFILE_NAME]

    def detect(self, project_root: str | Path) -> bool:
        """Return True if a parseable package.json exists at the root."""
        try:
            load_manifest(project_root)
        except ManifestError:
            return False
        return True

    async def analyze(self, project_root: str | Path) -> AnalysisResult:
        """Run the outdated, deprecation and conflict passes.

        Raises:
            ManifestNotFound: if no valid package.json is present
        """
        try:
            manifest = load_manifest(project_root)
        except ManifestError as e:
            raise ManifestNotFound(f"No valid {MANIFEST_NAME} found in {project_root}") from e

        issues: list[Issue] = []
        issues.extend(await self.find_outdated(manifest.entries))
        issues.extend(await self.find_deprecated(manifest.entries))
        issues.extend(self.find_conflicts(manifest.entries))

        logger.info("Found %d issue(s) in %s", len(issues), project_root)
        return AnalysisResult(
            ecosystem=self.ecosystem,
            issues=issues,
            summary=AnalysisSummary.from_issues(issues),
        )

    async def find_outdated(self, dependencies: list[Dependency]) -> list[Issue]:
        results = await asyncio.gather(*(self._check_outdated(dep) for dep in dependencies))
        return [issue for issue in results if issue is not None]

    async def _check_outdated(self, dep: Dependency) -> Issue | None:
        try:
            latest = await self.registry.get_latest_version(dep.name)
        except RegistryError as e:
            logger.warning("Skipping %s: %s", dep.name, e)
            return None

        current_version = min_version(dep.version)
        latest_version = min_version(latest)
        if current_version is None or latest_version is None:
            logger.warning(
                "Could not parse version for %s: current=%r, latest=%r",
                dep.name, dep.version, latest,
            )
            return None

        if latest_version <= current_version:
            return None

        return Issue(
            kind=IssueKind.OUTDATED,
            message=f"Package {dep.name} is outdated (current: {dep.version}, latest: {latest})",
            affected=[dep],
            fixes=[
                Fix(
                    description=f"Update {dep.name} to latest version ({latest})",
                    changes=[FixChange(name=dep.name, from_version=dep.version, to_version=latest)],
                    confidence=Confidence.HIGH,
                )
            ],
        )

    async def find_deprecated(self, dependencies: list[Dependency]) -> list[Issue]:
        notices = await asyncio.gather(*(self._deprecation_notice(dep) for dep in dependencies))
        return [
            Issue(
                kind=IssueKind.DEPRECATED,
                message=f"Package {dep.name} is deprecated: {notice}",
                affected=[dep],
                notice=notice,
            )
            for dep, notice in zip(dependencies, notices)
            if notice
        ]

    async def _deprecation_notice(self, dep: Dependency) -> str | None:
        if self.settings.deprecation_source == "npm":
            async with self._npm_slots:
                return await asyncio.to_thread(self.package_manager.view_deprecated, dep.name, dep.version)

        try:
            info = await self.registry.fetch_info(dep.name)
        except RegistryError as e:
            logger.warning("Skipping deprecation check for %s: %s", dep.name, e)
            return None
        return info.deprecated

    def find_conflicts(self, dependencies: list[Dependency]) -> list[Issue]:
        """Flag names declared with different literal ranges across categories."""
        first_seen: dict[str, Dependency] = {}
        conflicts: dict[str, list[Dependency]] = {}

        for dep in dependencies:
            original = first_seen.setdefault(dep.name, dep)
            if original is dep or original.version == dep.version:
                continue
            conflicts.setdefault(dep.name, [original]).append(dep)

        issues = []
        for name, affected in conflicts.items():
            declared = ", ".join(f"{dep.category.value}: {dep.version}" for dep in affected)
            issues.append(
                Issue(
                    kind=IssueKind.VERSION_CONFLICT,
                    message=f"Version conflict for {name} ({declared})",
                    affected=affected,
                )
            )
        return issues
