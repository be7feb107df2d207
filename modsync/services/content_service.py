"""
Content service for modsync - installed content listing and refresh

Ties the local content folders of an instance to the identity and update
services, and exposes the compatibility view for a catalog project.
"""

import logging
import os
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from modsync.catalogs import get_catalogs
from modsync.errors import CatalogUnavailable, UnknownInstance
from modsync.models import (
    DISABLED_SUFFIX,
    CompatibilityResult,
    InstalledContentRecord,
    normalize_content_type,
    strip_disabled,
)
from modsync.services.cache_service import CacheStore
from modsync.services.identity_service import IdentityService
from modsync.services.update_service import UpdateChecker
from modsync.utils.compatibility import resolve_compatible_version, sort_versions_newest_first
from modsync.utils.config import get_instance, resolve_path

log = logging.getLogger(__name__)

CONTENT_FOLDERS = {
    "mod": "mods",
    "resourcepack": "resourcepacks",
    "shader": "shaderpacks",
}

CONTENT_EXTENSIONS = {
    "mod": (".jar",),
    "resourcepack": (".zip",),
    "shader": (".zip",),
}

LISTED_TYPES = tuple(CONTENT_FOLDERS)


class ContentFolder:
    """Files of one instance, per content type"""

    def __init__(self, instance_path: str):
        self.instance_path = instance_path

    def folder(self, content_type: str) -> str:
        if content_type not in CONTENT_FOLDERS:
            raise ValueError(f"Unsupported content type: {content_type}")
        return os.path.join(self.instance_path, CONTENT_FOLDERS[content_type])

    def list_files(self, content_type: str) -> List[str]:
        """File names in the content folder; '.disabled' files included"""
        folder = self.folder(content_type)
        if not os.path.isdir(folder):
            return []
        names = []
        for fn in os.listdir(folder):
            if not os.path.isfile(os.path.join(folder, fn)):
                continue
            base = strip_disabled(fn)
            if base.lower().endswith(CONTENT_EXTENSIONS[content_type]):
                names.append(fn)
        return sorted(names, key=str.lower)

    def remove(self, content_type: str, file_name: str) -> bool:
        path = os.path.join(self.folder(content_type), os.path.basename(file_name))
        if os.path.exists(path):
            os.remove(path)
            return True
        return False

    def set_enabled(self, content_type: str, file_name: str, enabled: bool) -> str:
        """Rename to add/remove the '.disabled' suffix; returns the new name"""
        folder = self.folder(content_type)
        file_name = os.path.basename(file_name)
        is_disabled = file_name.lower().endswith(DISABLED_SUFFIX)
        if enabled and is_disabled:
            new_name = file_name[:-len(DISABLED_SUFFIX)]
        elif not enabled and not is_disabled:
            new_name = file_name + DISABLED_SUFFIX
        else:
            return file_name
        os.rename(os.path.join(folder, file_name), os.path.join(folder, new_name))
        return new_name


class ContentInstaller(ABC):
    """Downloads/removes content files. Supplied by the host application."""

    @abstractmethod
    def install(self, instance: Dict[str, Any], content_type: str, download_url: str, file_name: str) -> None:
        ...

    def remove(self, instance: Dict[str, Any], content_type: str, file_name: str) -> None:
        ContentFolder(instance["path"]).remove(content_type, file_name)


class ContentService:
    """Orchestrates listing, identification and update checks per instance"""

    def __init__(self, cfg, cache: Optional[CacheStore] = None, catalogs: Optional[Dict[str, object]] = None):
        self.cfg = cfg
        if cache is None:
            cache = CacheStore.from_config(cfg, path=resolve_path(cfg, cfg.get("cache_file", "content_cache.json")))
        self.cache = cache
        self.catalogs = catalogs if catalogs is not None else get_catalogs(cfg)
        self.identity = IdentityService(self.cache, self.catalogs)
        self.updates = UpdateChecker(self.cache, self.catalogs)

    def instance(self, scope_id: str) -> Dict[str, Any]:
        instance = get_instance(self.cfg, scope_id)
        if instance is None:
            raise UnknownInstance(scope_id)
        return instance

    def instance_ids(self) -> List[str]:
        return list(self.cfg.get("instances", {}))

    def build_records(self, scope_id: str, content_type: str, file_names: List[str]) -> List[InstalledContentRecord]:
        """Listing entries from whatever is fresh in the cache"""
        records = []
        for file_name in file_names:
            record = InstalledContentRecord(file_name, content_type)
            cached = self.cache.get(scope_id, content_type, file_name) or {}
            record.identity = self.cache.get_identity(scope_id, content_type, file_name)
            if "update_checked_at" in cached:
                record.update_checked = True
                record.update_available = bool(cached.get("update_available"))
                record.latest_version = cached.get("latest_version")
                record.update_file_name = cached.get("update_file_name")
                record.update_download_url = cached.get("update_download_url")
            records.append(record)
        return records

    def list_content(self, scope_id: str, content_type: str) -> List[InstalledContentRecord]:
        """Current files (orphaned cache entries swept) with cached metadata"""
        content_type = normalize_content_type(content_type)
        files = ContentFolder(self.instance(scope_id)["path"]).list_files(content_type)
        self.cache.remove_orphans(scope_id, content_type, files)
        return self.build_records(scope_id, content_type, files)

    def refresh(self, scope_id: str, content_type: str,
                cancel: Optional[threading.Event] = None) -> List[InstalledContentRecord]:
        """List, identify unidentified files, then check identified ones for updates"""
        content_type = normalize_content_type(content_type)
        records = self.list_content(scope_id, content_type)
        pending = [r.file_name for r in records if r.identity is None]
        if pending:
            log.info(f"[IDENTIFY] {scope_id}/{content_type}: {len(pending)} unidentified file(s)")
            self.identity.enrich(scope_id, content_type, pending, cancel=cancel)
            records = self.build_records(scope_id, content_type, [r.file_name for r in records])
        return self.updates.check_all(scope_id, self.instance(scope_id), records, cancel=cancel)

    def refresh_all(self, cancel: Optional[threading.Event] = None):
        """Refresh every configured instance and content type, sequentially"""
        for scope_id in self.instance_ids():
            for content_type in LISTED_TYPES:
                if cancel is not None and cancel.is_set():
                    return
                try:
                    self.refresh(scope_id, content_type, cancel=cancel)
                except (OSError, UnknownInstance, ValueError) as e:
                    log.error(f"[REFRESH] {scope_id}/{content_type} failed: {e}")

    def check_updates(self, scope_id: str, content_type: str,
                      cancel: Optional[threading.Event] = None) -> List[InstalledContentRecord]:
        records = self.list_content(scope_id, content_type)
        return self.updates.check_all(scope_id, self.instance(scope_id), records, cancel=cancel)

    def update_all(self, scope_id: str, content_type: str, installer: ContentInstaller,
                   cancel: Optional[threading.Event] = None) -> Dict[str, Any]:
        records = self.check_updates(scope_id, content_type, cancel=cancel)
        report = self.updates.update_all(scope_id, self.instance(scope_id), records, installer, cancel=cancel)
        # Replaced files left orphans behind
        self.list_content(scope_id, content_type)
        return report

    def set_enabled(self, scope_id: str, content_type: str, file_name: str, enabled: bool) -> str:
        """Toggle the '.disabled' marker; the item re-enters unidentified under its new name"""
        content_type = normalize_content_type(content_type)
        return ContentFolder(self.instance(scope_id)["path"]).set_enabled(content_type, file_name, enabled)

    def forget_instance(self, scope_id: str) -> int:
        return self.cache.remove_scope(scope_id)

    def _sorted_versions(self, project_id: str):
        catalog = self.catalogs.get("modrinth")
        if catalog is None:
            raise CatalogUnavailable("modrinth", "catalog is not configured")
        return sort_versions_newest_first(catalog.list_versions(project_id))

    def compatibility(self, scope_id: str, project_id: str, content_type: str) -> CompatibilityResult:
        """Best Modrinth version/file of ``project_id`` for this instance"""
        content_type = normalize_content_type(content_type)
        instance = self.instance(scope_id)
        versions = self._sorted_versions(project_id)
        return resolve_compatible_version(content_type, versions, instance["mc_version"], instance.get("loader"))

    def compatibility_all(self, project_id: str, content_type: str) -> Dict[str, Any]:
        """Resolve ``project_id`` against every configured instance.

        The version listing is fetched once. ``selected`` is the first
        compatible instance, else the first instance, else None.
        Returns: {'instances': [{'instance_id', 'compatible', 'version', 'file', 'reason'}], 'selected'}
        """
        content_type = normalize_content_type(content_type)
        versions = self._sorted_versions(project_id)
        results = []
        selected = None
        for scope_id in self.instance_ids():
            instance = self.instance(scope_id)
            result = resolve_compatible_version(content_type, versions, instance["mc_version"], instance.get("loader"))
            if result.compatible and selected is None:
                selected = scope_id
            results.append(dict(result.to_dict(), instance_id=scope_id, compatible=result.compatible))
        if selected is None and results:
            selected = results[0]["instance_id"]
        return {"instances": results, "selected": selected}
