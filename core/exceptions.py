"""Exception hierarchy for DepMend.

Whole-operation failures (missing manifest, backup, sandbox provisioning)
propagate to the caller. Per-package failures are caught by the component
that owns the loop and logged.
"""


class DepMendError(Exception):
    """Base class for all DepMend errors."""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(DepMendError):
    """Configuration file is unreadable or invalid."""

    code = "CONFIG_ERROR"


class ManifestError(DepMendError):
    """Manifest content could not be parsed."""

    code = "MANIFEST_ERROR"


class ManifestNotFound(ManifestError):
    """No valid manifest exists at the project root."""

    code = "MANIFEST_NOT_FOUND"


class RegistryError(DepMendError):
    """A registry lookup failed for one package."""

    code = "REGISTRY_ERROR"

    def __init__(self, message: str, package: str | None = None) -> None:
        super().__init__(message)
        self.package = package


class RegistryTimeout(RegistryError):
    code = "REGISTRY_TIMEOUT"


class RegistryUnavailable(RegistryError):
    code = "REGISTRY_UNAVAILABLE"


class SandboxSetupFailed(DepMendError):
    """Provisioning a sandbox failed; the sandbox has been cleaned up."""

    code = "SANDBOX_SETUP_FAILED"


class InstallFailed(DepMendError):
    """A real (non-sandbox) dependency install exited non-zero."""

    code = "INSTALL_FAILED"

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


class BackupFailed(DepMendError):
    """The manifest backup could not be written; nothing was modified."""

    code = "BACKUP_FAILED"
