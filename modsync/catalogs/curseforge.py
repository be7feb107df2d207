"""CurseForge catalog client"""
import logging

from modsync.catalogs.base import CatalogClient
from modsync.errors import CatalogUnavailable, MalformedResponse
from modsync.models import CatalogHit
from modsync.utils.config import get_curseforge_api_key

log = logging.getLogger(__name__)

MINECRAFT_GAME_ID = 432
PAGE_SIZE = 20
SORT_BY_POPULARITY = 2

CLASS_IDS = {
    "mod": 6,
    "resourcepack": 12,
    "shader": 6552,
    "modpack": 4471,
}


class CurseForgeCatalog(CatalogClient):
    """CurseForge v1 API (search only).

    There is no lightweight per-version listing, so updates for CurseForge
    content are left to the user.
    """

    source = "curseforge"
    supports_version_listing = False

    def __init__(self, cfg, session=None):
        super().__init__(cfg, session=session)
        self.base_url = cfg.get("curseforge_api_base", "https://api.curseforge.com/v1").rstrip("/")
        self.api_key = get_curseforge_api_key(cfg)

    @property
    def available(self):
        return bool(self.api_key)

    def _headers(self):
        if not self.api_key:
            raise CatalogUnavailable(self.source, "API key missing; set CURSEFORGE_API_KEY or curseforge_api_key")
        return {"x-api-key": self.api_key, "Accept": "application/json"}

    def search(self, query, content_type):
        data = self.get_json(f"{self.base_url}/mods/search", headers=self._headers(), params={
            "gameId": MINECRAFT_GAME_ID,
            "searchFilter": query,
            "classId": CLASS_IDS.get(content_type, CLASS_IDS["mod"]),
            "pageSize": PAGE_SIZE,
            "sortField": SORT_BY_POPULARITY,
            "sortOrder": "desc",
        })
        if not isinstance(data, dict) or not isinstance(data.get("data", []), list):
            raise MalformedResponse(self.source, "search response has no 'data' array")

        hits = [CatalogHit.from_curseforge(entry, content_type) for entry in data.get("data", [])]
        log.debug(f"[CURSEFORGE] '{query}' ({content_type}) -> {len(hits)} hit(s)")
        return hits
