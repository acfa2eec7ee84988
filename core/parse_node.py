"""Node.js package.json parsing and rewriting."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from .exceptions import ManifestError, ManifestNotFound
from .models import Dependency, DependencyCategory, FixChange

logger = logging.getLogger(__name__)

MANIFEST_NAME = "package.json"
LOCKFILE_NAME = "package-lock.json"


@dataclass
class Manifest:
    """A parsed package.json."""

    ecosystem: str  # always "node"
    raw: str
    data: dict
    entries: list[Dependency]

    def by_name(self, name: str) -> list[Dependency]:
        return [entry for entry in self.entries if entry.name == name]


def parse_package_json(content: str) -> Manifest:
    """Parse package.json content into Manifest.

    Args:
        content: The package.json file content

    Returns:
        Parsed Manifest object

    Raises:
        ManifestError: if the content is not a JSON object
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ManifestError(f"Invalid package.json: {e}") from e

    if not isinstance(data, dict):
        raise ManifestError("Invalid package.json: root must be an object")

    entries: list[Dependency] = []
    for category in DependencyCategory:
        section = data.get(category.value)
        if not section:
            continue
        if not isinstance(section, dict):
            logger.warning("Ignoring %s: expected an object", category.value)
            continue

        for name, version in section.items():
            if not isinstance(version, str):
                logger.warning("Ignoring %s in %s: version is not a string", name, category.value)
                continue
            entries.append(Dependency(name=name, version=version, category=category))

    return Manifest(ecosystem="node", raw=content, data=data, entries=entries)


def load_manifest(project_root: str | Path) -> Manifest:
    """Read and parse the package.json at a project root."""
    path = Path(project_root) / MANIFEST_NAME
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ManifestNotFound(f"No {MANIFEST_NAME} found in {project_root}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestError(f"Could not read {path}: {e}") from e
    return parse_package_json(content)


def dump_manifest(data: dict) -> str:
    """Render manifest data with 2-space indentation and a trailing newline."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def _rename_key(section: dict, old: str, new: str, value: str) -> dict:
    if new in section:
        # Already declared; drop the old entry and update the existing one
        renamed = {key: val for key, val in section.items() if key != old}
        renamed[new] = value
        return renamed
    # Keep the renamed entry at the same position
    return {(new if key == old else key): (value if key == old else val) for key, val in section.items()}


def apply_changes(data: dict, changes: list[FixChange]) -> int:
    """Merge fix changes into manifest data in place.

    Each change is applied to every category that declares its name. Names
    missing from the manifest are skipped.

    Returns:
        Number of category entries actually edited
    """
    applied = 0
    for change in changes:
        edited = 0
        for category in DependencyCategory:
            section = data.get(category.value)
            if not isinstance(section, dict) or change.name not in section:
                continue

            if change.replacement and change.replacement != change.name:
                data[category.value] = _rename_key(
                    section, change.name, change.replacement, change.to_version
                )
            else:
                section[change.name] = change.to_version
            edited += 1

        if not edited:
            logger.debug("Skipping change for %s: not declared in manifest", change.name)
        applied += edited
    return applied


def set_version(data: dict, name: str, version: str) -> int:
    """Set one package's declared version in every category that has it."""
    return apply_changes(data, [FixChange(name=name, from_version="", to_version=version)])
