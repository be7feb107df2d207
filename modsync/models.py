"""Typed records for catalog payloads and installed content.

Catalog JSON is turned into these objects at the client boundary
(``from_modrinth`` / ``from_curseforge``), so the matching, compatibility
and update code never handles raw dictionaries.
"""
import re
from enum import Enum
from typing import List, Dict, Optional, Any

from modsync.errors import MalformedResponse

SOURCES = ("modrinth", "curseforge")
CONTENT_TYPES = ("mod", "resourcepack", "shader", "modpack")

DISABLED_SUFFIX = ".disabled"


def _str_list(value) -> List[str]:
    """Keep only the string entries of a JSON array; anything else -> []"""
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def _str(value, default="") -> str:
    if value is None:
        return default
    return str(value)


def normalize_content_type(content_type: Optional[str]) -> str:
    """Map a free-form content type onto one of CONTENT_TYPES (default mod)"""
    value = (content_type or "mod").strip().lower()
    aliases = {
        "mods": "mod",
        "resourcepacks": "resourcepack",
        "shaders": "shader",
        "shaderpack": "shader",
        "shaderpacks": "shader",
        "modpacks": "modpack",
    }
    value = aliases.get(value, value)
    return value if value in CONTENT_TYPES else "mod"


class IncompatibilityReason(str, Enum):
    """Why no installable version was found for a target instance"""
    NO_COMPATIBLE_VERSION = "NoCompatibleVersion"
    NO_COMPATIBLE_LOADER = "NoCompatibleLoader"
    NO_INSTALLABLE_FILE = "NoInstallableFile"


class FileRecord:
    """One downloadable artifact of a catalog version"""

    def __init__(self, url: str, filename: str, primary: bool = False):
        self.url = url
        self.filename = filename
        self.primary = primary

    @classmethod
    def from_modrinth(cls, data: Dict[str, Any]) -> "FileRecord":
        if not isinstance(data, dict):
            raise MalformedResponse("modrinth", f"file entry is {type(data).__name__}, expected object")
        return cls(
            url=_str(data.get("url")),
            filename=_str(data.get("filename")),
            primary=bool(data.get("primary", False)),
        )

    def to_dict(self):
        return {"url": self.url, "filename": self.filename, "primary": self.primary}

    def __repr__(self):
        return f"FileRecord({self.filename!r}, primary={self.primary})"


class VersionRecord:
    """A published version of a catalog project"""

    def __init__(self, id: str, version_number: str, game_versions: List[str] = None,
                 loaders: List[str] = None, date_published: str = "",
                 files: List[FileRecord] = None):
        self.id = id
        self.version_number = version_number
        self.game_versions = game_versions or []
        self.loaders = loaders or []
        self.date_published = date_published
        self.files = files or []

    @classmethod
    def from_modrinth(cls, data: Dict[str, Any]) -> "VersionRecord":
        if not isinstance(data, dict):
            raise MalformedResponse("modrinth", f"version entry is {type(data).__name__}, expected object")
        files = data.get("files") or []
        if not isinstance(files, list):
            raise MalformedResponse("modrinth", "version 'files' is not an array")
        return cls(
            id=_str(data.get("id")),
            version_number=_str(data.get("version_number")),
            game_versions=_str_list(data.get("game_versions")),
            loaders=_str_list(data.get("loaders")),
            date_published=_str(data.get("date_published")),
            files=[FileRecord.from_modrinth(f) for f in files],
        )

    def primary_or_first_file(self) -> Optional[FileRecord]:
        for f in self.files:
            if f.primary:
                return f
        return self.files[0] if self.files else None

    def to_dict(self):
        return {
            "id": self.id,
            "version_number": self.version_number,
            "game_versions": list(self.game_versions),
            "loaders": list(self.loaders),
            "date_published": self.date_published,
            "files": [f.to_dict() for f in self.files],
        }

    def __repr__(self):
        return f"VersionRecord({self.version_number!r}, {self.game_versions}, {self.loaders})"


class CatalogHit:
    """Raw candidate from a catalog search. Never persisted as-is."""

    def __init__(self, id: str, slug: str, title: str, author: str = "Unknown",
                 icon_url: Optional[str] = None, source: str = "modrinth",
                 latest_version: Optional[str] = None, project_type: Optional[str] = None):
        self.id = id
        self.slug = slug
        self.title = title
        self.author = author
        self.icon_url = icon_url
        self.source = source
        self.latest_version = latest_version
        self.project_type = project_type

    @classmethod
    def from_modrinth(cls, data: Dict[str, Any], content_type: str) -> "CatalogHit":
        if not isinstance(data, dict):
            raise MalformedResponse("modrinth", f"search hit is {type(data).__name__}, expected object")
        return cls(
            id=_str(data.get("project_id")),
            slug=_str(data.get("slug")),
            title=_str(data.get("title")),
            author=_str(data.get("author"), "Unknown") or "Unknown",
            icon_url=data.get("icon_url") or None,
            source="modrinth",
            latest_version=data.get("latest_version") or None,
            project_type=_str(data.get("project_type"), content_type) or content_type,
        )

    @classmethod
    def from_curseforge(cls, data: Dict[str, Any], content_type: str) -> "CatalogHit":
        if not isinstance(data, dict):
            raise MalformedResponse("curseforge", f"search entry is {type(data).__name__}, expected object")
        authors = data.get("authors")
        author = "Unknown"
        if isinstance(authors, list) and authors and isinstance(authors[0], dict):
            author = _str(authors[0].get("name"), "Unknown") or "Unknown"
        logo = data.get("logo")
        icon_url = logo.get("url") if isinstance(logo, dict) else None

        slug = _str(data.get("slug"))
        if not slug:
            links = data.get("links")
            website = links.get("websiteUrl") if isinstance(links, dict) else None
            slug = slug_from_curseforge_url(website) or ""

        project_id = data.get("id")
        return cls(
            id="" if project_id is None else str(project_id),
            slug=slug,
            title=_str(data.get("name")),
            author=author,
            icon_url=icon_url or None,
            source="curseforge",
            latest_version=None,
            project_type=content_type,
        )

    def dedupe_key(self) -> str:
        return "|".join([self.id, self.slug, self.title])

    def __repr__(self):
        return f"CatalogHit({self.source}:{self.slug or self.id})"


def slug_from_curseforge_url(url: Optional[str]) -> Optional[str]:
    """https://www.curseforge.com/minecraft/mc-mods/jei -> jei"""
    if not url:
        return None
    path = url.split("?", 1)[0].rstrip("/")
    last = path.rsplit("/", 1)[-1]
    return last or None


class ProjectIdentity:
    """The catalog project an installed file was matched to"""

    FIELDS = ("project_id", "slug", "title", "author", "icon_url", "source", "project_type", "match_score")

    def __init__(self, project_id: str, slug: str, title: str, author: str,
                 source: str, project_type: str, icon_url: Optional[str] = None,
                 match_score: int = 0):
        self.project_id = project_id
        self.slug = slug
        self.title = title
        self.author = author
        self.icon_url = icon_url
        self.source = source if source in SOURCES else "modrinth"
        self.project_type = project_type
        self.match_score = match_score

    @classmethod
    def from_hit(cls, hit: CatalogHit, project_type: str, score: int) -> "ProjectIdentity":
        return cls(
            project_id=hit.id,
            slug=hit.slug,
            title=hit.title,
            author=hit.author or "Unknown",
            icon_url=hit.icon_url,
            source=hit.source,
            project_type=project_type,
            match_score=score,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["ProjectIdentity"]:
        """Rebuild from a cache record; None when it carries no project id"""
        if not data or not data.get("project_id"):
            return None
        return cls(
            project_id=_str(data.get("project_id")),
            slug=_str(data.get("slug")),
            title=_str(data.get("title")),
            author=_str(data.get("author"), "Unknown") or "Unknown",
            icon_url=data.get("icon_url"),
            source=_str(data.get("source"), "modrinth"),
            project_type=_str(data.get("project_type"), "mod"),
            match_score=int(data.get("match_score") or 0),
        )

    def to_dict(self):
        return {name: getattr(self, name) for name in self.FIELDS}

    def __repr__(self):
        return f"ProjectIdentity({self.source}:{self.project_id} {self.slug!r})"


def strip_disabled(file_name: str) -> str:
    """sodium.jar.disabled -> sodium.jar"""
    if file_name.lower().endswith(DISABLED_SUFFIX):
        return file_name[:-len(DISABLED_SUFFIX)]
    return file_name


_VERSION_IN_NAME = re.compile(r"\d+\.\d+\.?\d*")


def display_name_from_file(file_name: str) -> str:
    """Fallback name for content that was never identified"""
    name = file_name
    for token in (".jar", ".zip", ".mrpack", DISABLED_SUFFIX):
        name = name.replace(token, "")
    return re.sub(r"[-_]", " ", name)


def version_from_file(file_name: str) -> str:
    match = _VERSION_IN_NAME.search(file_name)
    return match.group(0) if match else ""


class InstalledContentRecord:
    """A file observed in one of an instance's content folders"""

    def __init__(self, file_name: str, content_type: str,
                 identity: Optional[ProjectIdentity] = None,
                 update_available: bool = False,
                 latest_version: Optional[str] = None,
                 update_file_name: Optional[str] = None,
                 update_download_url: Optional[str] = None,
                 update_checked: bool = False):
        self.file_name = file_name
        self.content_type = content_type
        self.identity = identity
        self.update_available = update_available
        self.latest_version = latest_version
        self.update_file_name = update_file_name
        self.update_download_url = update_download_url
        self.update_checked = update_checked

    @property
    def enabled(self) -> bool:
        return not self.file_name.lower().endswith(DISABLED_SUFFIX)

    @property
    def name(self) -> str:
        if self.identity and self.identity.title:
            return self.identity.title
        return display_name_from_file(self.file_name)

    @property
    def author(self) -> str:
        if self.identity and self.identity.author:
            return self.identity.author
        return "Unknown"

    @property
    def version(self) -> str:
        return version_from_file(self.file_name)

    @property
    def state(self) -> str:
        if self.identity is None:
            return "UNIDENTIFIED"
        if self.update_available:
            return "UPDATE_AVAILABLE"
        return "UP_TO_DATE" if self.update_checked else "IDENTIFIED"

    def to_dict(self):
        return {
            "file_name": self.file_name,
            "content_type": self.content_type,
            "enabled": self.enabled,
            "name": self.name,
            "author": self.author,
            "version": self.version,
            "state": self.state,
            "identity": self.identity.to_dict() if self.identity else None,
            "update_available": self.update_available,
            "latest_version": self.latest_version,
            "update_file_name": self.update_file_name,
            "update_download_url": self.update_download_url,
        }

    def __repr__(self):
        return f"InstalledContentRecord({self.file_name!r}, {self.state})"


class CompatibilityResult:
    """Outcome of picking a version/file for a target instance"""

    def __init__(self, version: Optional[VersionRecord] = None,
                 file: Optional[FileRecord] = None,
                 reason: Optional[IncompatibilityReason] = None):
        self.version = version
        self.file = file
        self.reason = reason

    @property
    def compatible(self) -> bool:
        return self.reason is None and self.version is not None

    def to_dict(self):
        return {
            "version": self.version.to_dict() if self.version else None,
            "file": self.file.to_dict() if self.file else None,
            "reason": self.reason.value if self.reason else None,
        }

    def __repr__(self):
        if self.compatible:
            return f"CompatibilityResult({self.version.version_number!r}, {self.file.filename!r})"
        return f"CompatibilityResult(reason={self.reason})"
