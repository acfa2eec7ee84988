"""npm subprocess commands."""

import logging
import shlex
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Captured outcome of one package-manager command."""

    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


class NpmPackageManager:
    """Runs npm as a black box with a hard timeout per command."""

    def __init__(self, executable: str = "npm", timeout: float = 300.0):
        self.executable = executable
        self.timeout = timeout

    def install(self, cwd: str | Path, clean: bool = False) -> CommandResult:
        """Install dependencies; ``clean`` uses the lockfile (npm ci)."""
        return self._run([self.executable, "ci" if clean else "install"], cwd)

    def run_tests(self, cwd: str | Path, command: str | None = None) -> CommandResult:
        args = shlex.split(command) if command else [self.executable, "test"]
        return self._run(args, cwd)

    def install_package(self, cwd: str | Path, name: str, version: str) -> CommandResult:
        return self._run([self.executable, "install", f"{name}@{version}"], cwd)

    def view_deprecated(self, name: str, spec: str | None = None) -> str | None:
        """Return the deprecation notice for ``name@spec``, if any."""
        target = f"{name}@{spec}" if spec else name
        result = self._run([self.executable, "view", target, "deprecated"], None)
        if not result.success:
            # npm view fails for unknown packages; treat as not deprecated
            return None
        notice = result.stdout.strip()
        return notice or None

    def _run(self, args: list[str], cwd: str | Path | None) -> CommandResult:
        logger.info("Running %s (cwd=%s)", " ".join(args), cwd or ".")
        start = time.monotonic()

        try:
            completed = subprocess.run(
                args,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            logger.warning("Command timed out after %ss: %s", self.timeout, " ".join(args))
            return CommandResult(
                args=args,
                returncode=-1,
                stderr=f"Command timed out after {self.timeout}s",
                duration_ms=elapsed_ms(start),
            )
        except OSError as e:
            logger.warning("Could not run %s: %s", args[0], e)
            return CommandResult(args=args, returncode=-1, stderr=str(e), duration_ms=elapsed_ms(start))

        result = CommandResult(
            args=args,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            duration_ms=elapsed_ms(start),
        )
        if not result.success:
            logger.debug("Command exited %s: %s", result.returncode, " ".join(args))
        return result


def elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
