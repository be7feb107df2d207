"""Base catalog abstraction for remote content catalogs"""
from abc import ABC, abstractmethod
import logging
from typing import Any, Dict, List, Optional

import requests

from modsync.errors import NetworkFailure, MalformedResponse
from modsync.models import CatalogHit, VersionRecord

log = logging.getLogger(__name__)


class CatalogClient(ABC):
    """Abstract base class for catalog (Modrinth, CurseForge) clients"""

    source = "unknown"
    supports_version_listing = False

    def __init__(self, cfg, session=None):
        self.cfg = cfg
        self.timeout = cfg.get("request_timeout", 30)
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", cfg.get("user_agent", "modsync/1.0"))

    @abstractmethod
    def search(self, query: str, content_type: str) -> List[CatalogHit]:
        """Search the catalog for projects of ``content_type`` matching ``query``"""
        ...

    def list_versions(self, project_id: str, game_versions: Optional[List[str]] = None,
                      loaders: Optional[List[str]] = None) -> List[VersionRecord]:
        """Versions of a project, newest first, optionally filtered.

        Only catalogs with ``supports_version_listing`` implement this.
        """
        raise NotImplementedError(f"{self.source} has no lightweight version listing")

    def get_json(self, url: str, params: Optional[Dict[str, Any]] = None,
                 headers: Optional[Dict[str, str]] = None) -> Any:
        """GET ``url`` and decode JSON, mapping failures onto catalog errors"""
        try:
            r = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise NetworkFailure(self.source, f"request to {url} failed: {e}") from e

        if r.status_code < 200 or r.status_code >= 300:
            raise NetworkFailure(self.source, f"{url} answered HTTP {r.status_code}")

        try:
            return r.json()
        except ValueError as e:
            raise MalformedResponse(self.source, f"{url} did not return JSON: {e}") from e

    def __repr__(self):
        return f"<{type(self).__name__} {self.source}>"
