"""Fix generation for Node.js dependency issues."""

import logging
import re
from pathlib import Path

from .config import Settings
from .exceptions import RegistryError
from .models import Confidence, Fix, FixChange, Issue, IssueKind
from .parse_node import MANIFEST_NAME, apply_changes, dump_manifest, load_manifest
from .registry import RegistryClient
from .semver import is_newer, min_version

logger = logging.getLogger(__name__)

# Checked in order; the first match names the replacement package.
# This is a heuristic and can misread unusual wording.
REPLACEMENT_PATTERNS = [
    re.compile(r"\buse\s+([@\w./-]+)(?:\s+instead)?", re.IGNORECASE),
    re.compile(r"\breplaced\s+by\s+([@\w./-]+)", re.IGNORECASE),
    re.compile(r"\bmigrate\s+to\s+([@\w./-]+)", re.IGNORECASE),
]


def extract_replacement(message: str) -> str | None:
    """Find a replacement package name in a deprecation message."""
    for pattern in REPLACEMENT_PATTERNS:
        match = pattern.search(message)
        if match:
            candidate = match.group(1).rstrip("./")
            if candidate:
                return candidate
    return None


class NodeFixer:
    """Produces ranked fixes for issues found by the analyzer."""

    name = "node-package-fixer"
    ecosystem = "node"

    FIXABLE = {IssueKind.OUTDATED, IssueKind.DEPRECATED, IssueKind.VERSION_CONFLICT}

    def __init__(self, registry: RegistryClient | None = None, settings: Settings | None = None):
        self.settings = settings or Settings()
        self.registry = registry or RegistryClient(
            registry_url=self.settings.registry_url,
            timeout=self.settings.registry_timeout,
            max_concurrency=self.settings.max_concurrency,
        )

    def can_fix(self, issue: Issue) -> bool:
        return issue.kind in self.FIXABLE

    async def generate_fixes(self, issue: Issue) -> list[Fix]:
        """Generate candidate fixes, best first.

        Registry failures are logged and produce an empty or partial list.
        """
        if not issue.affected:
            return []

        handlers = {
            IssueKind.OUTDATED: self._fix_outdated,
            IssueKind.VERSION_CONFLICT: self._fix_conflict,
            IssueKind.DEPRECATED: self._fix_deprecated,
            IssueKind.ABANDONED: self._fix_abandoned,
        }
        handler = handlers.get(issue.kind)
        if handler is None:
            return []

        fixes: list[Fix] = []
        try:
            await handler(issue, fixes)
        except RegistryError as e:
            logger.warning("Could not generate fixes for %s: %s", issue.package, e)
        return fixes

    def apply_fix(self, fix: Fix, project_root: str | Path) -> int:
        """Write one fix into the project's package.json.

        No backup and no install; see ApplyEngine for the full workflow.
        """
        manifest = load_manifest(project_root)
        applied = apply_changes(manifest.data, fix.changes)
        if applied:
            path = Path(project_root) / MANIFEST_NAME
            path.write_text(dump_manifest(manifest.data), encoding="utf-8")
        return applied

    async def _fix_outdated(self, issue: Issue, fixes: list[Fix]) -> None:
        dep = issue.affected[0]
        latest = await self.registry.get_latest_version(dep.name)

        if is_newer(latest, dep.version):
            fixes.append(
                Fix(
                    description=f"Update {dep.name} to latest version ({latest})",
                    changes=[FixChange(name=dep.name, from_version=dep.version, to_version=latest)],
                    confidence=Confidence.HIGH,
                )
            )
        else:
            logger.info("%s is no longer outdated (latest: %s)", dep.name, latest)

    async def _fix_conflict(self, issue: Issue, fixes: list[Fix]) -> None:
        name = issue.package
        latest = await self.registry.get_latest_version(name)
        latest_version = min_version(latest)
        declared = [min_version(dep.version) for dep in issue.affected]

        if latest_version is None or any(version is None for version in declared):
            logger.warning("Could not compare versions for %s", name)
            return
        if latest_version <= max(declared):
            return

        fixes.append(
            Fix(
                description=f"Align every declaration of {name} to {latest}",
                changes=[
                    FixChange(name=dep.name, from_version=dep.version, to_version=latest)
                    for dep in issue.affected
                ],
                confidence=Confidence.HIGH,
            )
        )

    async def _fix_deprecated(self, issue: Issue, fixes: list[Fix]) -> None:
        dep = issue.affected[0]
        info = await self.registry.fetch_info(dep.name)
        # The notice found during analysis describes the declared version
        notice = issue.notice or info.deprecated
        if not notice:
            return

        replacement = extract_replacement(notice)
        if replacement and replacement != dep.name:
            replacement_latest = await self.registry.get_latest_version(replacement)
            fixes.append(
                Fix(
                    description=f"Replace deprecated {dep.name} with {replacement}@{replacement_latest}",
                    changes=[
                        FixChange(
                            name=dep.name,
                            from_version=dep.version,
                            to_version=replacement_latest,
                            replacement=replacement,
                        )
                    ],
                    confidence=Confidence.HIGH,
                )
            )
            return

        if is_newer(info.latest, dep.version):
            fixes.append(
                Fix(
                    description=f"Update {dep.name} to latest version ({info.latest})",
                    changes=[FixChange(name=dep.name, from_version=dep.version, to_version=info.latest)],
                    confidence=Confidence.MEDIUM,
                )
            )
        fixes.append(
            Fix(
                description=f"Manual intervention required: {notice}",
                changes=[],
                confidence=Confidence.LOW,
            )
        )

    async def _fix_abandoned(self, issue: Issue, fixes: list[Fix]) -> None:
        dep = issue.affected[0]
        try:
            latest = await self.registry.get_latest_version(dep.name)
            fixes.append(
                Fix(
                    description=f"Update {dep.name} to latest version ({latest})",
                    changes=[FixChange(name=dep.name, from_version=dep.version, to_version=latest)],
                    confidence=Confidence.MEDIUM,
                )
            )
        finally:
            fixes.append(
                Fix(
                    description=f"Consider finding an actively maintained alternative to {dep.name}",
                    changes=[],
                    confidence=Confidence.LOW,
                )
            )
