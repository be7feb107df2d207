"""
Update service for modsync - update detection and sequential update-all

An installed file is considered outdated when the newest compatible file
the catalog offers has a different name. This is a filename heuristic, not
a semantic version comparison: a pure rename also reads as an update.
"""

import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from modsync.errors import CatalogError
from modsync.models import DISABLED_SUFFIX, FileRecord, InstalledContentRecord, VersionRecord, strip_disabled
from modsync.services.cache_service import CacheStore
from modsync.utils.compatibility import KNOWN_LOADERS, normalize_loader

log = logging.getLogger(__name__)


def _cancelled(cancel: Optional[threading.Event]) -> bool:
    return cancel is not None and cancel.is_set()


def version_filters(instance: Dict[str, Any], content_type: str) -> Tuple[List[str], Optional[List[str]]]:
    """(game_versions, loaders) filters for a version listing call"""
    game_versions = [instance.get("mc_version", "")]
    loaders = None
    if content_type == "mod":
        loader = normalize_loader(instance.get("loader"))
        if loader in KNOWN_LOADERS:
            loaders = [loader]
    return game_versions, loaders


class UpdateChecker:
    """Decides, per installed item, whether a newer compatible file exists"""

    def __init__(self, cache: CacheStore, catalogs: Dict[str, object]):
        self.cache = cache
        self.catalogs = catalogs

    def fetch_latest(self, instance: Dict[str, Any], item: InstalledContentRecord) -> Optional[Tuple[VersionRecord, FileRecord]]:
        """Newest version/file the catalog lists for this instance, if any"""
        identity = item.identity
        catalog = self.catalogs.get(identity.source)
        if catalog is None or not catalog.supports_version_listing:
            return None

        game_versions, loaders = version_filters(instance, item.content_type)
        versions = catalog.list_versions(identity.project_id, game_versions=game_versions, loaders=loaders)
        if not versions:
            return None

        latest = versions[0]
        target = latest.primary_or_first_file()
        if target is None or not target.filename or not target.url:
            return None
        return latest, target

    def _apply_cached(self, item: InstalledContentRecord, cached: Dict[str, Any]) -> InstalledContentRecord:
        item.update_checked = True
        item.update_available = bool(cached.get("update_available"))
        item.latest_version = cached.get("latest_version") or item.latest_version
        item.update_file_name = cached.get("update_file_name")
        item.update_download_url = cached.get("update_download_url")
        return item

    def check_item(self, scope_id: str, instance: Dict[str, Any],
                   item: InstalledContentRecord) -> InstalledContentRecord:
        """Fill in the update verdict for one identified item.

        Raises CatalogError on network or payload failures; the cache is
        only written once a verdict has been reached.
        """
        if item.identity is None:
            return item

        cached = self.cache.get_update(scope_id, item.content_type, item.file_name)
        if cached is not None:
            return self._apply_cached(item, cached)

        catalog = self.catalogs.get(item.identity.source)
        if item.identity.source == "curseforge" or (catalog is not None and not catalog.supports_version_listing):
            # No lightweight version listing: updates stay manual
            record = self.cache.set_update(scope_id, item.content_type, item.file_name,
                                           update_available=False, latest_version=item.latest_version)
            return self._apply_cached(item, record)

        if catalog is None:
            log.warning(f"[UPDATES] No {item.identity.source} client configured; skipping {item.file_name}")
            return item

        latest = self.fetch_latest(instance, item)
        if latest is None:
            log.debug(f"[UPDATES] No compatible file listed for {item.file_name}")
            return item

        version, target = latest
        available = target.filename.lower() != strip_disabled(item.file_name).lower()
        record = self.cache.set_update(
            scope_id, item.content_type, item.file_name,
            update_available=available,
            latest_version=version.version_number or item.latest_version,
            update_file_name=target.filename if available else None,
            update_download_url=target.url if available else None,
        )
        if available:
            log.info(f"[UPDATES] {item.file_name} -> {target.filename} ({version.version_number})")
        return self._apply_cached(item, record)

    def check_all(self, scope_id: str, instance: Dict[str, Any], items: List[InstalledContentRecord],
                  cancel: Optional[threading.Event] = None) -> List[InstalledContentRecord]:
        """Check items one by one, in order; a failing item keeps its old state"""
        for item in items:
            if _cancelled(cancel):
                log.info(f"[UPDATES] Cancelled update check for {scope_id}")
                break
            try:
                self.check_item(scope_id, instance, item)
            except CatalogError as e:
                log.warning(f"[UPDATES] Failed to check {item.file_name}: {e}")
        return items

    def apply_update(self, scope_id: str, instance: Dict[str, Any],
                     item: InstalledContentRecord, installer) -> str:
        """Install the pending update for ``item``; returns the new file name.

        The old cache entry is dropped: the new file starts unidentified.
        A disabled item is installed disabled.
        """
        download_url = item.update_download_url
        file_name = item.update_file_name
        if not download_url or not file_name:
            latest = self.fetch_latest(instance, item)
            if latest is None:
                raise LookupError(f"No compatible update found for {item.file_name}")
            download_url, file_name = latest[1].url, latest[1].filename
        if not item.enabled:
            # stays disabled under its new name
            file_name += DISABLED_SUFFIX

        installer.install(instance, item.content_type, download_url, file_name)
        if file_name.lower() != item.file_name.lower():
            installer.remove(instance, item.content_type, item.file_name)
            self.cache.remove_one(scope_id, item.content_type, item.file_name)
        return file_name

    def update_all(self, scope_id: str, instance: Dict[str, Any], items: List[InstalledContentRecord],
                   installer, cancel: Optional[threading.Event] = None) -> Dict[str, Any]:
        """Apply every pending update sequentially.

        Failures are reported per item; items already updated stay updated.
        Returns: {'updated': [{'from', 'to'}], 'failed': [{'file_name', 'error'}]}
        """
        report = {"updated": [], "failed": []}
        pending = [i for i in items if i.update_available and i.identity is not None]
        log.info(f"[UPDATES] Updating {len(pending)} item(s) for {scope_id}")

        for item in pending:
            if _cancelled(cancel):
                log.info(f"[UPDATES] Cancelled update-all for {scope_id}")
                break
            try:
                new_name = self.apply_update(scope_id, instance, item, installer)
            except Exception as e:
                log.error(f"[UPDATES] Failed to update {item.file_name}: {e}")
                report["failed"].append({"file_name": item.file_name, "error": str(e)})
                continue
            report["updated"].append({"from": item.file_name, "to": new_name})

        return report
