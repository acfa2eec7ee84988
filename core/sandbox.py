"""Disposable project copies for validating fixes before they are applied.

A sandbox holds copies of package.json (and package-lock.json when present)
in a fresh temporary directory configured for a chosen registry. Fixes are
applied to the copy, dependencies reinstalled and the project's tests run
there, so the real project is never touched.

Lifecycle::

    UNINITIALIZED --create()--> CREATED <--> TESTING
          |                        |
          +--------cleanup()-------+--> CLEANED

A sandbox belongs to one caller at a time. Separate sandboxes use separate
directories and may run in parallel.
"""

import json
import logging
import shutil
import tempfile
import time
from enum import Enum
from pathlib import Path

from .config import DEFAULT_REGISTRY
from .exceptions import SandboxSetupFailed
from .models import Fix, SandboxResult, SandboxSession
from .package_manager import CommandResult, NpmPackageManager, elapsed_ms
from .parse_node import LOCKFILE_NAME, MANIFEST_NAME, apply_changes, dump_manifest, set_version

logger = logging.getLogger(__name__)


class SandboxState(str, Enum):
    UNINITIALIZED = "uninitialized"
    CREATED = "created"
    TESTING = "testing"
    CLEANED = "cleaned"


class SandboxManager:
    """Creates, uses and removes one sandbox copy of a project."""

    def __init__(
        self,
        project_root: str | Path,
        registry_url: str = DEFAULT_REGISTRY,
        timeout: float = 300.0,
        package_manager: NpmPackageManager | None = None,
        temp_dir: str | Path | None = None,
        test_command: str | None = None,
    ):
        """Initialize sandbox manager.

        Args:
            project_root: Project whose manifest is copied
            registry_url: Registry written to the sandbox .npmrc
            timeout: Per-command timeout in seconds
            package_manager: Command runner (defaults to npm)
            temp_dir: Explicit sandbox directory; a fresh one is made if omitted
            test_command: Test command run after each install (defaults to npm test)
        """
        self.project_root = Path(project_root)
        self.registry_url = registry_url
        self.timeout = timeout
        self.package_manager = package_manager or NpmPackageManager(timeout=timeout)
        self.test_command = test_command
        self._requested_dir = Path(temp_dir) if temp_dir else None
        self.session: SandboxSession | None = None
        self.state = SandboxState.UNINITIALIZED

    @property
    def work_dir(self) -> Path | None:
        return self.session.work_dir if self.session else self._requested_dir

    @property
    def manifest_path(self) -> Path:
        if self.work_dir is None:
            raise RuntimeError("Sandbox has not been created")
        return self.work_dir / MANIFEST_NAME

    def __enter__(self) -> "SandboxManager":
        self.create()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def create(self) -> SandboxSession:
        """Provision the sandbox and install its dependencies.

        Raises:
            SandboxSetupFailed: on any provisioning failure, after cleanup
        """
        if self.state is not SandboxState.UNINITIALIZED:
            raise SandboxSetupFailed(f"Sandbox cannot be created from state {self.state.value}")

        try:
            work_dir = self._make_work_dir()
            self.session = SandboxSession(
                work_dir=work_dir,
                registry_url=self.registry_url,
                timeout=self.timeout,
            )

            shutil.copyfile(self.project_root / MANIFEST_NAME, work_dir / MANIFEST_NAME)
            lockfile = self.project_root / LOCKFILE_NAME
            if lockfile.is_file():
                shutil.copyfile(lockfile, work_dir / LOCKFILE_NAME)
                self.session.has_lock = True

            (work_dir / ".npmrc").write_text(f"registry={self.registry_url}\n", encoding="utf-8")

            result = self.package_manager.install(work_dir, clean=self.session.has_lock)
            if not result.success:
                raise SandboxSetupFailed(f"Dependency install failed in sandbox: {result.output}")
        except Exception as e:
            self.cleanup()
            if isinstance(e, SandboxSetupFailed):
                raise
            raise SandboxSetupFailed(f"Failed to create sandbox: {e}") from e

        self.state = SandboxState.CREATED
        logger.info("Created sandbox at %s", work_dir)
        return self.session

    def _make_work_dir(self) -> Path:
        if self._requested_dir is None:
            return Path(tempfile.mkdtemp(prefix="depmend-"))

        work_dir = self._requested_dir
        if work_dir.resolve() == self.project_root.resolve():
            raise SandboxSetupFailed("Sandbox directory must not be the project directory")
        work_dir.mkdir(parents=True, exist_ok=True)
        return work_dir

    def test_fix(self, fix: Fix) -> SandboxResult:
        """Apply a fix in the sandbox, reinstall and run the tests.

        Failures are reported in the result, never raised.
        """
        start = time.monotonic()
        if self.state is not SandboxState.CREATED:
            return SandboxResult(
                success=False,
                duration_ms=0,
                error=f"Sandbox is not ready (state: {self.state.value})",
            )

        self.state = SandboxState.TESTING
        try:
            data = self._read_manifest()
            apply_changes(data, fix.changes)
            self.manifest_path.write_text(dump_manifest(data), encoding="utf-8")

            install = self.package_manager.install(self.work_dir, clean=False)
            if not install.success:
                return _failed(install, start, "Install failed")

            tests = self.package_manager.run_tests(self.work_dir, self.test_command)
            if not tests.success:
                return _failed(tests, start, "Tests failed")

            return SandboxResult(success=True, duration_ms=elapsed_ms(start), output=tests.output)
        except Exception as e:
            logger.warning("Error testing fix %r: %s", fix.description, e)
            return SandboxResult(success=False, duration_ms=elapsed_ms(start), error=str(e))
        finally:
            self.state = SandboxState.CREATED

    def test_package_versions(
        self,
        package_name: str,
        versions: list[str],
        test_command: str | None = None,
    ) -> dict[str, SandboxResult]:
        """Try candidate versions of one package in the given order.

        The sandboxed manifest is restored byte-for-byte after every attempt
        and again when the loop ends, whatever happened.
        """
        results: dict[str, SandboxResult] = {}
        if self.state is not SandboxState.CREATED:
            error = f"Sandbox is not ready (state: {self.state.value})"
            return {version: SandboxResult(success=False, duration_ms=0, error=error) for version in versions}

        original = self.manifest_path.read_bytes()
        self.state = SandboxState.TESTING
        try:
            for version in versions:
                start = time.monotonic()
                try:
                    results[version] = self._test_version(package_name, version, test_command, start)
                except Exception as e:
                    logger.warning("Error testing %s@%s: %s", package_name, version, e)
                    results[version] = SandboxResult(
                        success=False, duration_ms=elapsed_ms(start), error=str(e)
                    )
                finally:
                    self.manifest_path.write_bytes(original)
        finally:
            self.manifest_path.write_bytes(original)
            self.state = SandboxState.CREATED

        return results

    def _test_version(
        self, package_name: str, version: str, test_command: str | None, start: float
    ) -> SandboxResult:
        data = self._read_manifest()
        set_version(data, package_name, version)
        self.manifest_path.write_text(dump_manifest(data), encoding="utf-8")

        install = self.package_manager.install_package(self.work_dir, package_name, version)
        if not install.success:
            return _failed(install, start, "Install failed")

        if test_command:
            tests = self.package_manager.run_tests(self.work_dir, test_command)
            if not tests.success:
                return _failed(tests, start, "Tests failed")
            return SandboxResult(success=True, duration_ms=elapsed_ms(start), output=tests.output)

        return SandboxResult(success=True, duration_ms=elapsed_ms(start), output=install.output)

    def cleanup(self) -> None:
        """Remove the sandbox directory. Safe to call more than once."""
        work_dir = self.work_dir
        if work_dir is not None and work_dir.resolve() != self.project_root.resolve():
            try:
                shutil.rmtree(work_dir)
                logger.info("Removed sandbox %s", work_dir)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.error("Error cleaning up sandbox %s: %s", work_dir, e)
        self.state = SandboxState.CLEANED

    def _read_manifest(self) -> dict:
        return json.loads(self.manifest_path.read_text(encoding="utf-8"))


def _failed(result: CommandResult, start: float, reason: str) -> SandboxResult:
    return SandboxResult(
        success=False,
        duration_ms=elapsed_ms(start),
        output=result.output,
        error=f"{reason} (exit code {result.returncode})",
    )
