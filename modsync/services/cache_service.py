"""
Cache service for modsync - identity and update-check persistence

One JSON root object under a fixed namespace maps
``scope::content_type::lowercased file name`` to a record holding two
independently expiring field groups: the catalog identity (long TTL) and
the last update-check verdict (short TTL). Expired groups read as absent
but stay on disk until overwritten or swept.
"""

import json
import logging
import os
import threading
import time
from typing import Callable, Dict, Any, Iterable, List, Optional

from modsync.errors import CacheCorrupt
from modsync.models import ProjectIdentity

log = logging.getLogger(__name__)

NAMESPACE = "modsync:installed-content-cache:v1"

HOUR_MS = 60 * 60 * 1000
DEFAULT_IDENTITY_TTL_MS = 30 * 24 * HOUR_MS
DEFAULT_UPDATE_TTL_MS = 6 * HOUR_MS

IDENTITY_FIELDS = ProjectIdentity.FIELDS
UPDATE_FIELDS = ("update_available", "latest_version", "update_file_name", "update_download_url")

IDENTITY_STAMP = "identified_at"
UPDATE_STAMP = "update_checked_at"


def _now_ms() -> int:
    return int(time.time() * 1000)


def make_key(scope_id: str, content_type: str, file_name: str) -> str:
    return f"{scope_id}::{content_type}::{file_name.lower()}"


class CacheStore:
    """TTL-bounded store for installed content records.

    Pass ``path=None`` for a purely in-memory store. Subscribers are called
    as ``callback(event, keys)`` after every change, where event is one of
    'set', 'remove', 'orphans', 'scope', 'expired'.
    """

    def __init__(self, path: Optional[str] = None,
                 identity_ttl_ms: int = DEFAULT_IDENTITY_TTL_MS,
                 update_ttl_ms: int = DEFAULT_UPDATE_TTL_MS,
                 clock: Callable[[], int] = _now_ms):
        self.path = path
        self.identity_ttl_ms = identity_ttl_ms
        self.update_ttl_ms = update_ttl_ms
        self.clock = clock
        self._lock = threading.RLock()
        self._subscribers = []
        self._records = self._load()

    @classmethod
    def from_config(cls, cfg: Dict[str, Any], path: Optional[str] = None) -> "CacheStore":
        return cls(
            path=path,
            identity_ttl_ms=int(float(cfg.get("identity_ttl_hours", 24 * 30)) * HOUR_MS),
            update_ttl_ms=int(float(cfg.get("update_ttl_hours", 6)) * HOUR_MS),
        )

    # -- persistence -----------------------------------------------------

    def _read_root(self) -> Dict[str, Any]:
        if not self.path or not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r") as f:
                root = json.load(f)
        except (OSError, ValueError) as e:
            raise CacheCorrupt(f"cannot decode {self.path}: {e}") from e
        if not isinstance(root, dict):
            raise CacheCorrupt(f"{self.path} does not hold a JSON object")
        return root

    def _load(self) -> Dict[str, Dict[str, Any]]:
        try:
            records = self._read_root().get(NAMESPACE, {})
        except CacheCorrupt as e:
            log.warning(f"[CACHE] {e}; starting with an empty cache")
            return {}
        if not isinstance(records, dict):
            log.warning(f"[CACHE] namespace {NAMESPACE} is not an object; starting with an empty cache")
            return {}
        return {k: v for k, v in records.items() if isinstance(v, dict)}

    def _save(self):
        if not self.path:
            return
        try:
            root = self._read_root()
        except CacheCorrupt:
            root = {}
        root[NAMESPACE] = self._records
        tmp_path = f"{self.path}.tmp"
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(tmp_path, "w") as f:
                json.dump(root, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            log.error(f"[CACHE] Failed to write {self.path}: {e}")

    # -- change notification ---------------------------------------------

    def subscribe(self, callback: Callable[[str, List[str]], None]):
        with self._lock:
            if callback not in self._subscribers:
                self._subscribers.append(callback)

    def unsubscribe(self, callback):
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def _notify(self, event: str, keys: List[str]):
        if not keys:
            return
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event, keys)
            except Exception as e:
                log.warning(f"[CACHE] Subscriber {callback!r} failed on '{event}': {e}")

    # -- TTL -------------------------------------------------------------

    def _fresh(self, record: Dict[str, Any], stamp_field: str, ttl_ms: int) -> bool:
        stamp = record.get(stamp_field)
        if not isinstance(stamp, (int, float)):
            return False
        return self.clock() - stamp <= ttl_ms

    def identity_fresh(self, record: Dict[str, Any]) -> bool:
        return self._fresh(record, IDENTITY_STAMP, self.identity_ttl_ms)

    def update_fresh(self, record: Dict[str, Any]) -> bool:
        return self._fresh(record, UPDATE_STAMP, self.update_ttl_ms)

    # -- operations ------------------------------------------------------

    def get(self, scope_id: str, content_type: str, file_name: str) -> Optional[Dict[str, Any]]:
        """Record with only its unexpired field groups, or None if all expired"""
        with self._lock:
            record = self._records.get(make_key(scope_id, content_type, file_name))
            if record is None:
                return None
            view = {}
            if self.identity_fresh(record):
                for name in IDENTITY_FIELDS + (IDENTITY_STAMP,):
                    if name in record:
                        view[name] = record[name]
            if self.update_fresh(record):
                for name in UPDATE_FIELDS + (UPDATE_STAMP,):
                    if name in record:
                        view[name] = record[name]
            return view or None

    def get_identity(self, scope_id, content_type, file_name) -> Optional[ProjectIdentity]:
        return ProjectIdentity.from_dict(self.get(scope_id, content_type, file_name))

    def get_update(self, scope_id, content_type, file_name) -> Optional[Dict[str, Any]]:
        """Unexpired update-check fields, or None"""
        record = self.get(scope_id, content_type, file_name)
        if not record or UPDATE_STAMP not in record:
            return None
        return {name: record.get(name) for name in UPDATE_FIELDS + (UPDATE_STAMP,)}

    def get_raw(self, scope_id, content_type, file_name) -> Optional[Dict[str, Any]]:
        """Stored record regardless of expiry (for confidence comparisons)"""
        with self._lock:
            record = self._records.get(make_key(scope_id, content_type, file_name))
            return dict(record) if record is not None else None

    def set(self, scope_id: str, content_type: str, file_name: str, partial: Dict[str, Any]) -> Dict[str, Any]:
        """Merge ``partial`` into the record and stamp the field groups it touches"""
        key = make_key(scope_id, content_type, file_name)
        identity = {k: v for k, v in partial.items() if k in IDENTITY_FIELDS}
        update = {k: v for k, v in partial.items() if k in UPDATE_FIELDS}
        with self._lock:
            record = dict(self._records.get(key, {}))
            now = self.clock()
            if identity:
                record.update(identity)
                record[IDENTITY_STAMP] = now
            if update:
                record.update(update)
                record[UPDATE_STAMP] = now
            self._records[key] = record
            self._save()
        self._notify("set", [key])
        return dict(record)

    def set_identity(self, scope_id, content_type, file_name, identity: ProjectIdentity):
        return self.set(scope_id, content_type, file_name, identity.to_dict())

    def set_update(self, scope_id, content_type, file_name, update_available: bool,
                   latest_version: Optional[str] = None,
                   update_file_name: Optional[str] = None,
                   update_download_url: Optional[str] = None):
        return self.set(scope_id, content_type, file_name, {
            "update_available": bool(update_available),
            "latest_version": latest_version,
            "update_file_name": update_file_name,
            "update_download_url": update_download_url,
        })

    def clear_update(self, scope_id: str, content_type: str, file_name: str) -> bool:
        """Forget the update verdict, keeping the identity"""
        key = make_key(scope_id, content_type, file_name)
        with self._lock:
            record = self._records.get(key)
            if record is None or not any(name in record for name in UPDATE_FIELDS + (UPDATE_STAMP,)):
                return False
            for name in UPDATE_FIELDS + (UPDATE_STAMP,):
                record.pop(name, None)
            self._save()
        self._notify("set", [key])
        return True

    def remove_one(self, scope_id: str, content_type: str, file_name: str) -> bool:
        key = make_key(scope_id, content_type, file_name)
        with self._lock:
            removed = self._records.pop(key, None) is not None
            if removed:
                self._save()
        if removed:
            self._notify("remove", [key])
        return removed

    def _remove_where(self, predicate, event: str) -> int:
        with self._lock:
            doomed = [k for k, v in self._records.items() if predicate(k, v)]
            for key in doomed:
                del self._records[key]
            if doomed:
                self._save()
        self._notify(event, doomed)
        return len(doomed)

    def remove_orphans(self, scope_id: str, content_type: str, current_file_names: Iterable[str]) -> int:
        """Drop records under scope/type whose file is no longer present.

        Call after every content listing refresh.
        """
        prefix = f"{scope_id}::{content_type}::"
        current = {name.lower() for name in current_file_names}
        removed = self._remove_where(
            lambda key, _: key.startswith(prefix) and key[len(prefix):] not in current,
            "orphans",
        )
        if removed:
            log.info(f"[CACHE] Swept {removed} orphaned {content_type} record(s) for {scope_id}")
        return removed

    def remove_scope(self, scope_id: str) -> int:
        """Drop every record of an instance. Call when the instance is deleted."""
        prefix = f"{scope_id}::"
        removed = self._remove_where(lambda key, _: key.startswith(prefix), "scope")
        if removed:
            log.info(f"[CACHE] Removed {removed} record(s) for deleted instance {scope_id}")
        return removed

    def purge_expired(self) -> int:
        """Physically delete records whose every field group has expired"""
        return self._remove_where(
            lambda _, record: not self.identity_fresh(record) and not self.update_fresh(record),
            "expired",
        )

    def __len__(self):
        with self._lock:
            return len(self._records)
