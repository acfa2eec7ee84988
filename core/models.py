"""Core data models for DepMend."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class DependencyCategory(str, Enum):
    """Manifest sections that declare dependencies, in scan order."""

    RUNTIME = "dependencies"
    DEV = "devDependencies"
    PEER = "peerDependencies"
    OPTIONAL = "optionalDependencies"


class IssueKind(str, Enum):
    OUTDATED = "outdated"
    DEPRECATED = "deprecated"
    VERSION_CONFLICT = "version-conflict"
    ABANDONED = "abandoned"  # only generated internally for now


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Confidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


SEVERITY_BY_KIND = {
    IssueKind.OUTDATED: Severity.MEDIUM,
    IssueKind.DEPRECATED: Severity.HIGH,
    IssueKind.VERSION_CONFLICT: Severity.HIGH,
    IssueKind.ABANDONED: Severity.MEDIUM,
}


@dataclass
class Dependency:
    """A single declared dependency in one manifest category."""

    name: str
    version: str  # declared range or exact version
    category: DependencyCategory = DependencyCategory.RUNTIME

    def to_dict(self) -> dict:
        return {"name": self.name, "version": self.version, "category": self.category.value}


@dataclass
class FixChange:
    """One edit of a manifest entry.

    When ``replacement`` is set the entry is renamed to that package.
    """

    name: str
    from_version: str
    to_version: str
    replacement: str | None = None

    def to_dict(self) -> dict:
        data = {"name": self.name, "from": self.from_version, "to": self.to_version}
        if self.replacement:
            data["replacement"] = self.replacement
        return data


@dataclass
class Fix:
    """A proposed set of changes resolving an issue."""

    description: str
    changes: list[FixChange]
    confidence: Confidence

    @property
    def is_manual(self) -> bool:
        """A fix without changes only marks that manual work is needed."""
        return not self.changes

    def to_dict(self) -> dict:
        return {
            "description": self.description,
            "changes": [change.to_dict() for change in self.changes],
            "confidence": self.confidence.value,
        }


@dataclass
class Issue:
    """A detected problem with one or more dependencies."""

    kind: IssueKind
    message: str
    affected: list[Dependency]
    fixes: list[Fix] = field(default_factory=list)
    notice: str | None = None
    severity: Severity = field(init=False)

    def __post_init__(self):
        self.severity = SEVERITY_BY_KIND[self.kind]

    @property
    def package(self) -> str:
        return self.affected[0].name if self.affected else ""

    def to_dict(self) -> dict:
        return {
            "type": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "dependencies": [dep.to_dict() for dep in self.affected],
            "fixes": [fix.to_dict() for fix in self.fixes],
        }


@dataclass
class PackageInfo:
    """Registry metadata for one package."""

    name: str
    dist_tags: dict[str, str]
    deprecated: str | None = None
    versions: set[str] = field(default_factory=set)

    @property
    def latest(self) -> str:
        return self.dist_tags["latest"]

    @classmethod
    def from_metadata(cls, name: str, metadata: dict) -> "PackageInfo":
        """Build from a registry packument.

        Raises:
            KeyError: if ``dist-tags.latest`` is missing
        """
        dist_tags = dict(metadata.get("dist-tags") or {})
        latest = dist_tags["latest"]

        raw_versions = metadata.get("versions") or {}
        versions = set(raw_versions)

        deprecated = metadata.get("deprecated")
        if not deprecated and isinstance(raw_versions, dict):
            latest_manifest = raw_versions.get(latest) or {}
            deprecated = latest_manifest.get("deprecated")

        return cls(
            name=name,
            dist_tags=dist_tags,
            deprecated=deprecated or None,
            versions=versions,
        )


@dataclass
class AnalysisSummary:
    total_issues: int = 0
    by_severity: dict[str, int] = field(
        default_factory=lambda: {severity.value: 0 for severity in Severity}
    )

    @classmethod
    def from_issues(cls, issues: list[Issue]) -> "AnalysisSummary":
        summary = cls(total_issues=len(issues))
        for issue in issues:
            summary.by_severity[issue.severity.value] += 1
        return summary

    def to_dict(self) -> dict:
        return {"totalIssues": self.total_issues, "bySeverity": dict(self.by_severity)}


@dataclass
class AnalysisResult:
    """Result of analyzing one ecosystem in a project."""

    ecosystem: str
    issues: list[Issue]
    summary: AnalysisSummary

    def to_dict(self) -> dict:
        return {
            "ecosystem": self.ecosystem,
            "issues": [issue.to_dict() for issue in self.issues],
            "summary": self.summary.to_dict(),
        }


@dataclass
class SandboxResult:
    """Outcome of validating something inside a sandbox."""

    success: bool
    duration_ms: int
    output: str | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "durationMs": self.duration_ms,
            "output": self.output,
            "error": self.error,
        }


@dataclass
class SandboxSession:
    """A provisioned sandbox directory."""

    work_dir: Path
    registry_url: str
    timeout: float
    has_lock: bool = False
