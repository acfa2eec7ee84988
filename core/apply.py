"""Writes accepted fixes into the real package.json."""

import logging
import os
import shutil
import tempfile
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from .exceptions import BackupFailed, InstallFailed
from .models import Fix, FixChange, Issue
from .package_manager import NpmPackageManager
from .parse_node import MANIFEST_NAME, apply_changes, dump_manifest, load_manifest

logger = logging.getLogger(__name__)


@dataclass
class ApplyOptions:
    force: bool = False
    no_backup: bool = False
    no_install: bool = False


@dataclass
class ApplyReport:
    """What an ApplyEngine run did."""

    changes_made: bool = False
    applied: list[FixChange] = field(default_factory=list)
    backup_path: Path | None = None
    installed: bool = False
    cancelled: bool = False


def first_fix(issue: Issue) -> Fix:
    return issue.fixes[0]


class ApplyEngine:
    """Backs up, patches and reinstalls a project.

    The engine either commits fully (backup, write, optional install) or
    stops before touching the manifest. A failed install is reported but
    not rolled back; the backup is left for manual recovery.
    """

    def __init__(
        self,
        project_root: str | Path,
        package_manager: NpmPackageManager | None = None,
        choose_fix: Callable[[Issue], Fix] | None = None,
        confirm: Callable[[list[Issue]], bool] | None = None,
        backup_suffix: str = ".depmend.backup",
    ):
        """Initialize apply engine.

        Args:
            project_root: Project containing package.json
            package_manager: Command runner used for the final install
            choose_fix: Picks a fix when an issue has several (default: first)
            confirm: Asked before writing unless ``force`` is set
            backup_suffix: Appended to the manifest name for the backup copy
        """
        self.project_root = Path(project_root)
        self.package_manager = package_manager or NpmPackageManager()
        self.choose_fix = choose_fix or first_fix
        self.confirm = confirm
        self.manifest_path = self.project_root / MANIFEST_NAME
        self.backup_path = self.project_root / f"{MANIFEST_NAME}{backup_suffix}"

    def execute(self, selected_issues: list[Issue], options: ApplyOptions | None = None) -> ApplyReport:
        """Apply one fix per selected issue.

        Raises:
            ManifestNotFound: if package.json is missing
            BackupFailed: if the backup cannot be written (nothing is modified)
            InstallFailed: if the post-write install fails
        """
        options = options or ApplyOptions()
        report = ApplyReport()

        issues = [issue for issue in selected_issues if issue.fixes]
        if not issues:
            logger.info("No fixes to apply")
            return report

        if not options.force and self.confirm is not None and not self.confirm(issues):
            logger.info("Apply cancelled")
            report.cancelled = True
            return report

        manifest = load_manifest(self.project_root)
        for issue in issues:
            fix = self.choose_fix(issue) if len(issue.fixes) > 1 else issue.fixes[0]
            if fix.is_manual:
                logger.info("Skipping manual fix for %s: %s", issue.package, fix.description)
                continue
            for change in fix.changes:
                if apply_changes(manifest.data, [change]):
                    report.applied.append(change)

        if not report.applied:
            logger.info("No changes were made to %s", MANIFEST_NAME)
            return report

        if not options.no_backup:
            report.backup_path = self._backup()

        self._write(dump_manifest(manifest.data))
        report.changes_made = True
        logger.info("Applied %d change(s) to %s", len(report.applied), self.manifest_path)

        if not options.no_install:
            result = self.package_manager.install(self.project_root, clean=False)
            if not result.success:
                raise InstallFailed(
                    f"Dependency install failed with exit code {result.returncode}",
                    output=result.output,
                )
            report.installed = True

        return report

    def _backup(self) -> Path:
        try:
            shutil.copyfile(self.manifest_path, self.backup_path)
        except OSError as e:
            raise BackupFailed(f"Failed to create backup at {self.backup_path}: {e}") from e
        logger.info("Created backup at %s", self.backup_path)
        return self.backup_path

    def _write(self, content: str) -> None:
        # Write to a sibling temp file and swap it in so a failure never
        # leaves a half-written manifest
        fd, tmp_name = tempfile.mkstemp(prefix=".package.json.", dir=self.project_root)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            os.replace(tmp_name, self.manifest_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
