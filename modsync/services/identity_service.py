"""
Identity service for modsync - match installed files to catalog projects

Filename -> queries -> catalog search -> best confident hit -> cache.
Items that cannot be matched confidently stay unidentified and are retried
on the next listing refresh.
"""

import logging
import threading
from typing import Dict, Iterable, List, Optional

from modsync.errors import CatalogError
from modsync.models import CatalogHit, ProjectIdentity
from modsync.services.cache_service import CacheStore
from modsync.utils.match_scorer import select_best_match
from modsync.utils.query_generator import generate_queries

log = logging.getLogger(__name__)

# Only the broadest queries go to the network; all of them are scored
SEARCH_QUERY_COUNT = 2


def query_variants(query: str) -> List[str]:
    """journey-map -> ['journey-map', 'journey map', 'journey+map']"""
    variants = []
    for term in (query, query.replace("-", " "), query.replace("-", "+")):
        if term.strip() and term not in variants:
            variants.append(term)
    return variants


class IdentityService:
    """Resolves and caches the catalog identity of installed content"""

    def __init__(self, cache: CacheStore, catalogs: Dict[str, object]):
        self.cache = cache
        self.catalogs = catalogs

    def _searchable_catalogs(self):
        for source, catalog in self.catalogs.items():
            if getattr(catalog, "available", True):
                yield source, catalog
            else:
                log.debug(f"[IDENTIFY] Skipping {source}: not configured")

    def search_candidates(self, queries: List[str], content_type: str) -> List[CatalogHit]:
        """Search every catalog for the leading queries, de-duplicating hits.

        A failing catalog is skipped as long as another call succeeds; if
        every call fails the last error is raised.
        """
        hits = {}
        calls = 0
        failures = 0
        last_error = None

        for query in queries[:SEARCH_QUERY_COUNT]:
            for term in query_variants(query):
                for source, catalog in self._searchable_catalogs():
                    calls += 1
                    try:
                        results = catalog.search(term, content_type)
                    except CatalogError as e:
                        failures += 1
                        last_error = e
                        log.warning(f"[IDENTIFY] {source} search for '{term}' failed: {e}")
                        continue
                    for hit in results:
                        key = hit.dedupe_key()
                        if key.replace("|", "").strip() and key not in hits:
                            hits[key] = hit

        if calls and failures == calls:
            raise last_error
        return list(hits.values())

    def identify(self, scope_id: str, content_type: str, file_name: str,
                 force: bool = False) -> Optional[ProjectIdentity]:
        """Identity for one file; network only when nothing fresh is cached.

        Raises CatalogError when no catalog could be searched.
        """
        if not force:
            cached = self.cache.get_identity(scope_id, content_type, file_name)
            if cached is not None:
                return cached

        queries = generate_queries(file_name)
        if not queries:
            log.debug(f"[IDENTIFY] No usable query for {file_name}")
            return None

        hits = self.search_candidates(queries, content_type)
        match = select_best_match(queries, hits)
        if match is None:
            log.info(f"[IDENTIFY] No confident match for {file_name} ({len(hits)} candidate(s))")
            return self.cache.get_identity(scope_id, content_type, file_name)

        identity = ProjectIdentity.from_hit(match.hit, content_type, match.score)
        if not self._should_replace(scope_id, content_type, file_name, identity):
            return self.cache.get_identity(scope_id, content_type, file_name)

        previous = self.cache.get_raw(scope_id, content_type, file_name) or {}
        previous_project = (previous.get("project_id"), previous.get("source"))
        if previous_project[0] and previous_project != (identity.project_id, identity.source):
            # verdict belonged to the previous project
            self.cache.clear_update(scope_id, content_type, file_name)
        self.cache.set_identity(scope_id, content_type, file_name, identity)
        log.info(f"[IDENTIFY] {file_name} -> {identity.source}:{identity.slug} "
                 f"(score {match.score}, query '{match.query}')")
        return identity

    def _should_replace(self, scope_id, content_type, file_name, identity: ProjectIdentity) -> bool:
        """Only a higher-confidence match may overwrite a live identity"""
        current = self.cache.get_identity(scope_id, content_type, file_name)
        if current is None:
            return True
        if current.project_id == identity.project_id and current.source == identity.source:
            return True
        return identity.match_score > current.match_score

    def enrich(self, scope_id: str, content_type: str, file_names: Iterable[str],
               cancel: Optional[threading.Event] = None) -> Dict[str, ProjectIdentity]:
        """Identify every unidentified file, one at a time, in list order.

        A failure on one file is logged and never stops the batch.
        Returns: {file_name: identity} for each file now identified
        """
        identified = {}
        for file_name in file_names:
            if cancel is not None and cancel.is_set():
                log.info(f"[IDENTIFY] Cancelled enrichment for {scope_id}/{content_type}")
                break
            try:
                identity = self.identify(scope_id, content_type, file_name)
            except CatalogError as e:
                log.warning(f"[IDENTIFY] Failed to identify {file_name}: {e}")
                continue
            if identity is not None:
                identified[file_name] = identity
        return identified
