"""Analyze, fix and validate workflow shared by the CLI and the web API."""

import logging
from dataclasses import dataclass
from pathlib import Path

from .config import Settings
from .detect import detect_ecosystems
from .exceptions import ManifestNotFound, SandboxSetupFailed
from .models import AnalysisResult, Fix, Issue, SandboxResult
from .package_manager import NpmPackageManager
from .plugins import PluginRegistry, default_registry
from .registry import RegistryClient
from .sandbox import SandboxManager

logger = logging.getLogger(__name__)


@dataclass
class Validation:
    issue: Issue
    fix: Fix
    result: SandboxResult


async def run_analysis(
    project_root: str | Path,
    settings: Settings,
    ecosystem: str | None = None,
    plugins: PluginRegistry | None = None,
    generate_fixes: bool = True,
) -> list[AnalysisResult]:
    """Analyze every detected (or the requested) ecosystem.

    A fresh registry client is built for the run and shared by the
    analyzer and fixer, so each package is fetched at most once.

    Raises:
        ManifestNotFound: if no requested ecosystem has a manifest
    """
    plugins = plugins or default_registry()
    ecosystems = [ecosystem] if ecosystem else detect_ecosystems(project_root)
    if not ecosystems:
        raise ManifestNotFound(f"No supported manifest found in {project_root}")

    registry = RegistryClient(
        registry_url=settings.registry_url,
        timeout=settings.registry_timeout,
        max_concurrency=settings.max_concurrency,
    )

    results = []
    for name in ecosystems:
        analyzer = plugins.analyzer(name, registry, settings)
        if not analyzer.detect(project_root):
            logger.info("No %s manifest in %s", name, project_root)
            continue

        result = await analyzer.analyze(project_root)
        if generate_fixes:
            fixer = plugins.fixer(name, registry, settings)
            for issue in result.issues:
                if not fixer.can_fix(issue):
                    continue
                fixes = await fixer.generate_fixes(issue)
                if fixes:
                    issue.fixes = fixes
        results.append(result)

    if not results:
        raise ManifestNotFound(f"No valid manifest found in {project_root}")
    return results


def validate_fixes(
    project_root: str | Path,
    issues: list[Issue],
    settings: Settings,
    package_manager: NpmPackageManager | None = None,
) -> list[Validation]:
    """Try every actionable fix in its own sandbox.

    A sandbox that cannot be provisioned counts as a failed validation for
    that fix; the remaining fixes are still tried.
    """
    package_manager = package_manager or NpmPackageManager(
        executable=settings.npm_executable, timeout=settings.command_timeout
    )
    validations = []

    for issue in issues:
        for fix in issue.fixes:
            if fix.is_manual:
                continue

            sandbox = SandboxManager(
                project_root,
                registry_url=settings.registry_url,
                timeout=settings.command_timeout,
                package_manager=package_manager,
                test_command=settings.test_command,
            )
            try:
                with sandbox:
                    result = sandbox.test_fix(fix)
            except SandboxSetupFailed as e:
                logger.warning("Could not validate %r: %s", fix.description, e)
                result = SandboxResult(success=False, duration_ms=0, error=str(e))

            logger.info(
                "Fix %r %s", fix.description, "passed" if result.success else "failed"
            )
            validations.append(Validation(issue=issue, fix=fix, result=result))

    return validations
