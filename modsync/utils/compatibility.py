"""Pick the version/file of a catalog project that fits an instance."""
import re
from datetime import datetime, timezone
from typing import List, Optional

from modsync.models import (
    CompatibilityResult,
    FileRecord,
    IncompatibilityReason,
    VersionRecord,
)

KNOWN_LOADERS = ("fabric", "forge", "neoforge", "quilt")

_NUMERIC_TAG = re.compile(r"^[0-9.]+$")


def normalize_loader(loader: Optional[str]) -> Optional[str]:
    """'' / None / 'Vanilla' -> None, anything else lowercased"""
    if not loader:
        return None
    value = loader.strip().lower()
    if not value or value == "vanilla":
        return None
    return value


def expected_extension(content_type: str) -> str:
    if content_type == "modpack":
        return ".mrpack"
    if content_type == "mod":
        return ".jar"
    return ".zip"


def game_version_tag_matches(tag: str, game_version: str) -> bool:
    """Exact match, or a broad 'X.Y' tag covering any 'X.Y.z' patch"""
    if tag == game_version:
        return True
    if _NUMERIC_TAG.match(tag) and len(tag.split(".")) == 2:
        return game_version.startswith(f"{tag}.")
    return False


def game_version_compatible(tags: List[str], game_version: str) -> bool:
    if not tags:
        return True
    return any(game_version_tag_matches(tag, game_version) for tag in tags)


def loader_compatible(loaders: List[str], loader: Optional[str], content_type: str) -> bool:
    if content_type != "mod":
        return True
    if not loaders:
        return True
    if loader is None:
        return False
    return loader in [l.lower() for l in loaders]


def select_file(version: VersionRecord, content_type: str) -> Optional[FileRecord]:
    """Primary file with the right extension, then any with it, then the first"""
    if not version.files:
        return None
    extension = expected_extension(content_type)
    for f in version.files:
        if f.primary and f.filename.lower().endswith(extension):
            return f
    for f in version.files:
        if f.filename.lower().endswith(extension):
            return f
    return version.files[0]


def resolve_compatible_version(content_type: str, versions: List[VersionRecord],
                               game_version: str, loader: Optional[str]) -> CompatibilityResult:
    """First version (in the given order) that fits ``game_version``/``loader``.

    ``versions`` must already be newest-first. When nothing fits, the reason
    reported is the first blocking stage reached over the whole walk:
    game version, then loader (mods only), then missing files.
    """
    loader = normalize_loader(loader)
    found_mc = False
    found_loader = False

    for version in versions:
        if not game_version_compatible(version.game_versions, game_version):
            continue
        found_mc = True
        if not loader_compatible(version.loaders, loader, content_type):
            continue
        found_loader = True
        chosen = select_file(version, content_type)
        if chosen is None:
            continue
        return CompatibilityResult(version=version, file=chosen)

    if not found_mc:
        return CompatibilityResult(reason=IncompatibilityReason.NO_COMPATIBLE_VERSION)
    if not found_loader and content_type == "mod":
        return CompatibilityResult(reason=IncompatibilityReason.NO_COMPATIBLE_LOADER)
    return CompatibilityResult(reason=IncompatibilityReason.NO_INSTALLABLE_FILE)


def _published_at(version: VersionRecord) -> float:
    if not version.date_published:
        return 0.0
    try:
        stamp = datetime.fromisoformat(version.date_published.replace("Z", "+00:00"))
    except ValueError:
        return 0.0
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp.timestamp()


def sort_versions_newest_first(versions: List[VersionRecord]) -> List[VersionRecord]:
    """Order by publish date, newest first; undated versions sink to the end"""
    return sorted(versions, key=_published_at, reverse=True)
