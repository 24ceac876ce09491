"""balenaOS version normalisation and semantic ordering."""

import re
from typing import Iterable, List, Optional, Tuple

from packaging.version import InvalidVersion, Version

_PREFIX_RE = re.compile(r"^\s*(balena\s*os|resin\s*os)\s+", re.IGNORECASE)
_VARIANT_RE = re.compile(r"[.\-](prod|dev)$", re.IGNORECASE)
_REV_RE = re.compile(r"rev(\d+)", re.IGNORECASE)


def normalize_os_version(raw: Optional[str]) -> Optional[str]:
    """Strip the OS name prefix and variant suffix from a version string.

    Examples:
        "balenaOS 2.88.4+rev1" -> "2.88.4+rev1"
        "2.88.4+rev1.prod"     -> "2.88.4+rev1"
        "v2.50.1.dev"          -> "2.50.1"

    Args:
        raw: Version as reported by the API (may be None or empty)

    Returns:
        Normalised version string, or None if nothing is left
    """
    if raw is None:
        return None
    version = _PREFIX_RE.sub("", raw).strip()
    version = _VARIANT_RE.sub("", version)
    if version[:1] in ("v", "V"):
        version = version[1:]
    return version or None


def version_key(raw: str) -> Tuple[Version, int]:
    """Sort key for a balenaOS version.

    Build metadata ("+revN") does not take part in PEP 440 ordering of the
    release itself, so the revision number is kept as a tie breaker.

    Raises:
        ValueError: If the version cannot be parsed
    """
    version = normalize_os_version(raw)
    if version is None:
        raise ValueError(f"Invalid OS version: {raw!r}")

    core, _, build = version.partition("+")
    try:
        parsed = Version(core)
    except InvalidVersion as e:
        raise ValueError(f"Invalid OS version: {raw!r}") from e

    rev_match = _REV_RE.search(build)
    return parsed, int(rev_match.group(1)) if rev_match else 0


def compare_versions(a: str, b: str) -> int:
    """Return 1 if a > b, -1 if a < b, 0 if equal."""
    key_a, key_b = version_key(a), version_key(b)
    if key_a > key_b:
        return 1
    if key_a < key_b:
        return -1
    return 0


def version_gt(a: str, b: str) -> bool:
    """True if version a is strictly greater than version b."""
    return compare_versions(a, b) > 0


def is_prerelease(raw: str) -> bool:
    return version_key(raw)[0].is_prerelease


def sort_versions_desc(versions: Iterable[str]) -> List[str]:
    """Normalise, de-duplicate and sort versions newest first.

    Unparseable entries are dropped.
    """
    seen = {}
    for raw in versions:
        version = normalize_os_version(raw)
        if version is None or version in seen:
            continue
        try:
            seen[version] = version_key(version)
        except ValueError:
            continue
    return sorted(seen, key=lambda v: seen[v], reverse=True)
