"""npm semver ranges reduced to comparable versions."""

import re

from packaging.version import InvalidVersion, Version

ZERO = Version("0.0.0")

_VERSION_RE = re.compile(
    r"^v?(\d+|[xX*])(?:\.(\d+|[xX*]))?(?:\.(\d+|[xX*]))?"
    r"(?:-([0-9A-Za-z.-]+))?(?:\+[0-9A-Za-z.-]+)?$"
)
_OPERATOR_SPACING_RE = re.compile(r"(\^|~>|~|>=|<=|>|<|=)\s+")
_COMPARATOR_RE = re.compile(r"^(\^|~>|~|>=|<=|>|<|=)?(.*)$")
_HYPHEN_RE = re.compile(r"\s+-\s+")

# Prerelease forms whose packaging order matches semver precedence
_PRERELEASE_RE = re.compile(r"^(alpha|beta|rc)(?:\.(\d+))?$")

_NON_REGISTRY_PREFIXES = (
    "git+", "git:", "github:", "http:", "https:", "file:", "link:",
    "npm:", "workspace:", "portal:", "patch:",
)


class _Unparseable(Exception):
    pass


def _split(text: str) -> tuple[int | None, int | None, int | None, str | None]:
    match = _VERSION_RE.match(text.strip())
    if not match:
        raise _Unparseable(text)

    numbers: list[int | None] = []
    for part in match.group(1, 2, 3):
        if part is None or part in ("x", "X", "*"):
            numbers.append(None)
        else:
            numbers.append(int(part))

    # Anything after a wildcard is a wildcard too ("1.x.3" == "1.x")
    for index in range(1, 3):
        if numbers[index - 1] is None:
            numbers[index] = None

    return numbers[0], numbers[1], numbers[2], match.group(4)


def _build(major: int, minor: int, patch: int, pre: str | None = None) -> Version:
    text = f"{major}.{minor}.{patch}"
    if pre:
        if not _PRERELEASE_RE.match(pre):
            raise _Unparseable(pre)
        text += f"-{pre}"
    try:
        return Version(text)
    except InvalidVersion as exc:
        raise _Unparseable(text) from exc


def _comparator_floor(comparator: str) -> Version:
    operator, text = _COMPARATOR_RE.match(comparator).groups()
    major, minor, patch, pre = _split(text)

    if operator in ("<", "<="):
        return ZERO
    if major is None:
        return ZERO
    if operator == ">":
        if minor is None:
            return _build(major + 1, 0, 0)
        if patch is None:
            return _build(major, minor + 1, 0)
        return _build(major, minor, patch + 1)
    if patch is None:
        return _build(major, minor or 0, 0)
    return _build(major, minor, patch, pre)


def _set_floor(comparator_set: str) -> Version:
    comparator_set = comparator_set.strip()
    if not comparator_set:
        return ZERO

    bounds = _HYPHEN_RE.split(comparator_set)
    if len(bounds) == 2:
        return _comparator_floor(bounds[0].strip())

    normalized = _OPERATOR_SPACING_RE.sub(r"\1", comparator_set)
    return max((_comparator_floor(token) for token in normalized.split()), default=ZERO)


def parse_version(text: str) -> Version | None:
    """Parse an exact semver string such as ``1.2.3`` or ``v2.0.0-beta.1``."""
    try:
        major, minor, patch, pre = _split(text)
        if major is None or minor is None or patch is None:
            return None
        return _build(major, minor, patch, pre)
    except _Unparseable:
        return None


def min_version(spec: str) -> Version | None:
    """Return the lowest version that can satisfy an npm range.

    Returns None for specifiers that do not name a registry version
    (git URLs, local paths, aliases, dist tags) or cannot be parsed.
    """
    if spec is None:
        return None
    spec = spec.strip()
    if spec.startswith(_NON_REGISTRY_PREFIXES):
        return None

    try:
        return min(_set_floor(part) for part in spec.split("||"))
    except _Unparseable:
        return None


def is_newer(candidate: str, current: str) -> bool | None:
    """Compare two ranges by their minimum versions.

    Returns None when either side cannot be parsed.
    """
    candidate_version = min_version(candidate)
    current_version = min_version(current)
    if candidate_version is None or current_version is None:
        return None
    return candidate_version > current_version
