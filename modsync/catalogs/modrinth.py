"""Modrinth catalog client"""
import json
import logging
from typing import List, Optional

from modsync.catalogs.base import CatalogClient
from modsync.errors import MalformedResponse
from modsync.models import CatalogHit, VersionRecord

log = logging.getLogger(__name__)

SEARCH_LIMIT = 20


class ModrinthCatalog(CatalogClient):
    """Modrinth v2 API: search plus per-project version listing"""

    source = "modrinth"
    supports_version_listing = True

    def __init__(self, cfg, session=None):
        super().__init__(cfg, session=session)
        self.base_url = cfg.get("modrinth_api_base", "https://api.modrinth.com/v2").rstrip("/")

    def search(self, query, content_type):
        # Modrinth facet syntax: [["A"],["B"]] = A AND B
        facets = json.dumps([[f"project_type:{content_type}"]])
        data = self.get_json(f"{self.base_url}/search", params={
            "query": query,
            "facets": facets,
            "limit": SEARCH_LIMIT,
        })
        if not isinstance(data, dict) or not isinstance(data.get("hits", []), list):
            raise MalformedResponse(self.source, "search response has no 'hits' array")

        hits = [CatalogHit.from_modrinth(hit, content_type) for hit in data.get("hits", [])]
        log.debug(f"[MODRINTH] '{query}' ({content_type}) -> {len(hits)} hit(s)")
        return hits

    def list_versions(self, project_id: str, game_versions: Optional[List[str]] = None,
                      loaders: Optional[List[str]] = None) -> List[VersionRecord]:
        params = {}
        if game_versions:
            params["game_versions"] = json.dumps(list(game_versions))
        if loaders:
            params["loaders"] = json.dumps(list(loaders))

        data = self.get_json(f"{self.base_url}/project/{project_id}/version", params=params or None)
        if not isinstance(data, list):
            raise MalformedResponse(self.source, f"version listing for {project_id} is not an array")

        versions = [VersionRecord.from_modrinth(v) for v in data]
        log.debug(f"[MODRINTH] {project_id}: {len(versions)} version(s) for {game_versions} {loaders or ''}")
        return versions
