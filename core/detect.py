"""Ecosystem detection for dependency manifests."""

import re
from pathlib import Path

# Manifest file name -> ecosystem
MANIFEST_FILES = {
    "package.json": "node",
}


def identify(content: str, filename: str | None = None) -> str:
    """Detect ecosystem from content and filename hints.

    Args:
        content: The manifest file content
        filename: Optional filename for additional context

    Returns:
        Detected ecosystem: 'node' or 'unknown'
    """
    # Filename-based detection (takes precedence)
    if filename:
        for manifest_name, ecosystem in MANIFEST_FILES.items():
            if filename.endswith(manifest_name):
                return ecosystem
        return "unknown"

    node_patterns = [
        r'"(?:dependencies|devDependencies|peerDependencies|optionalDependencies)"\s*:',
    ]
    for pattern in node_patterns:
        if re.search(pattern, content):
            return "node"

    return "unknown"


def detect_ecosystems(project_root: str | Path) -> list[str]:
    """List ecosystems whose manifest exists at the project root."""
    root = Path(project_root)
    found = []
    for manifest_name, ecosystem in MANIFEST_FILES.items():
        if (root / manifest_name).is_file() and ecosystem not in found:
            found.append(ecosystem)
    return found
